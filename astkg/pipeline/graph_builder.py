"""
Graph Builder
=============

Writes an AST snapshot into FalkorDB as a code graph.

Nodes:
- (:Class {id, name, full_name, package_name, file_path, type, super_class, ...})
- (:Method {id, name, signature, class_name, package_name, file_path, ...})
- (:Endpoint {id, path, method})

Relationships:
- (:Class)-[:CONTAINS]->(:Method)
- (:Method)-[:CALLS]->(:Method)
- (:Endpoint)-[:HANDLED_BY]->(:Method)
- (:Class)-[:EXTENDS]->(:Class)

Every write is a ``MERGE`` keyed on ``id``, so rebuilding from the same
snapshot leaves the graph unchanged. Rows are sent in ``UNWIND $rows``
batches.
"""

import time
import structlog
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from astkg.models import ASTSnapshot, ClassInfo, MethodInfo
from astkg.storage.graph import FalkorDBClient

log = structlog.get_logger()


INDEX_QUERIES = [
    "CREATE INDEX FOR (c:Class) ON (c.id)",
    "CREATE INDEX FOR (c:Class) ON (c.name)",
    "CREATE INDEX FOR (m:Method) ON (m.id)",
    "CREATE INDEX FOR (m:Method) ON (m.name)",
    "CREATE INDEX FOR (e:Endpoint) ON (e.id)",
]

MERGE_CLASSES = """
UNWIND $rows AS row
MERGE (c:Class {id: row.id})
SET c.name = row.name,
    c.full_name = row.full_name,
    c.package_name = row.package_name,
    c.file_path = row.file_path,
    c.type = row.type,
    c.super_class = row.super_class,
    c.implements = row.implements,
    c.is_abstract = row.is_abstract,
    c.is_interface = row.is_interface,
    c.start_line = row.start_line,
    c.end_line = row.end_line
"""

MERGE_METHODS = """
UNWIND $rows AS row
MERGE (m:Method {id: row.id})
SET m.name = row.name,
    m.signature = row.signature,
    m.class_name = row.class_name,
    m.package_name = row.package_name,
    m.file_path = row.file_path,
    m.modifier = row.modifier,
    m.is_static = row.is_static,
    m.return_type = row.return_type,
    m.parameter_types = row.parameter_types,
    m.start_line = row.start_line,
    m.end_line = row.end_line
"""

MERGE_ENDPOINTS = """
UNWIND $rows AS row
MERGE (e:Endpoint {id: row.id})
SET e.path = row.path,
    e.method = row.method
"""

MERGE_CONTAINS = """
UNWIND $rows AS row
MATCH (c:Class {id: row.src}), (m:Method {id: row.dst})
MERGE (c)-[:CONTAINS]->(m)
"""

MERGE_CALLS = """
UNWIND $rows AS row
MATCH (a:Method {id: row.src}), (b:Method {id: row.dst})
MERGE (a)-[:CALLS]->(b)
"""

MERGE_HANDLED_BY = """
UNWIND $rows AS row
MATCH (e:Endpoint {id: row.src}), (m:Method {id: row.dst})
MERGE (e)-[:HANDLED_BY]->(m)
"""

MERGE_EXTENDS = """
UNWIND $rows AS row
MATCH (a:Class {id: row.src}), (b:Class {id: row.dst})
MERGE (a)-[:EXTENDS]->(b)
"""


@dataclass
class GraphBuildResult:
    """Counts of rows written by one build."""
    classes: int = 0
    methods: int = 0
    endpoints: int = 0
    contains: int = 0
    calls: int = 0
    handled_by: int = 0
    extends: int = 0
    duration_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"GraphBuild: {self.classes} classes, {self.methods} methods, "
            f"{self.endpoints} endpoints | CONTAINS={self.contains} "
            f"CALLS={self.calls} HANDLED_BY={self.handled_by} "
            f"EXTENDS={self.extends} in {self.duration_seconds:.1f}s"
        )


class _ClassIndex:
    """Resolves class references by simple or fully qualified name."""

    def __init__(self, classes: List[ClassInfo]):
        self._by_name: Dict[str, ClassInfo] = {}
        for cls in classes:
            for key in (cls.full_name, cls.name):
                if key and key not in self._by_name:
                    self._by_name[key] = cls

    def get(self, name: Optional[str]) -> Optional[ClassInfo]:
        if not name:
            return None
        return self._by_name.get(name) or self._by_name.get(name.rsplit(".", 1)[-1])


class GraphBuilder:
    """
    Upserts AST snapshots into the code graph.

    Example:
        builder = GraphBuilder(falkordb_client)
        result = await builder.build_graph(snapshot)
        print(result.summary())
    """

    def __init__(self, graph: FalkorDBClient, batch_size: int = 500):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.graph = graph
        self.batch_size = batch_size

    async def build_graph(self, snapshot: ASTSnapshot) -> GraphBuildResult:
        """
        Write nodes first, then relationships.

        Raises:
            Whatever the graph client raises; a partial build is safe to
            repeat since every write is a MERGE.
        """
        start = time.time()
        log.info(f"Starting graph construction: {snapshot.summary()}")

        await self._ensure_indexes()

        classes = _ClassIndex(snapshot.classes)
        class_rows = [self._class_row(c) for c in snapshot.classes]
        method_rows = [self._method_row(m, classes) for m in snapshot.methods]
        method_ids = {row["id"] for row in method_rows}

        result = GraphBuildResult()
        result.classes = await self._write(MERGE_CLASSES, class_rows)
        result.methods = await self._write(MERGE_METHODS, method_rows)

        endpoint_rows = [
            {"id": f"{e.method.upper()} {e.path}", "path": e.path, "method": e.method.upper()}
            for e in snapshot.api_endpoints
        ]
        result.endpoints = await self._write(MERGE_ENDPOINTS, endpoint_rows)

        result.contains = await self._write(
            MERGE_CONTAINS, self._contains_rows(snapshot.methods, classes)
        )
        result.calls = await self._write(
            MERGE_CALLS, self._calls_rows(snapshot.methods, method_ids)
        )
        result.handled_by = await self._write(
            MERGE_HANDLED_BY, self._handled_by_rows(snapshot, classes)
        )
        result.extends = await self._write(
            MERGE_EXTENDS, self._extends_rows(snapshot.classes, classes)
        )

        result.duration_seconds = time.time() - start
        log.info(result.summary())
        return result

    async def _ensure_indexes(self) -> None:
        for cypher in INDEX_QUERIES:
            try:
                await self.graph.query(cypher)
            except Exception as e:
                # FalkorDB rejects re-creating an existing index
                log.debug(f"Index not created ({cypher}): {e}")

    async def _write(self, cypher: str, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        return await self.graph.query_batched(cypher, rows, batch_size=self.batch_size)

    @staticmethod
    def _class_row(cls: ClassInfo) -> Dict[str, Any]:
        return {
            "id": cls.node_id,
            "name": cls.name,
            "full_name": cls.full_name or cls.name,
            "package_name": cls.package_name,
            "file_path": cls.file_path,
            "type": (cls.type or "CLASS").upper(),
            "super_class": cls.extends_class,
            "implements": cls.implements_class,
            "is_abstract": cls.is_abstract,
            "is_interface": cls.is_interface,
            "start_line": cls.start_line,
            "end_line": cls.end_line,
        }

    @staticmethod
    def _method_row(method: MethodInfo, classes: _ClassIndex) -> Dict[str, Any]:
        owner = classes.get(method.class_name)
        return {
            "id": method.node_id,
            "name": method.name,
            "signature": method.full_signature or f"{method.name}({', '.join(method.arguments)})",
            "class_name": owner.name if owner else method.class_name,
            "package_name": owner.package_name if owner else "",
            "file_path": method.file_path or (owner.file_path if owner else ""),
            "modifier": method.modifier,
            "is_static": method.is_static,
            "return_type": method.return_type,
            "parameter_types": list(method.arguments),
            "start_line": method.start_line,
            "end_line": method.end_line,
        }

    @staticmethod
    def _contains_rows(methods: List[MethodInfo], classes: _ClassIndex) -> List[Dict[str, str]]:
        rows = []
        for method in methods:
            owner = classes.get(method.class_name)
            if owner is not None:
                rows.append({"src": owner.node_id, "dst": method.node_id})
        return rows

    @staticmethod
    def _calls_rows(methods: List[MethodInfo], method_ids: set) -> List[Dict[str, str]]:
        rows = []
        seen = set()
        for method in methods:
            for target in method.calls_to:
                key = (method.node_id, target)
                if target in method_ids and key not in seen:
                    seen.add(key)
                    rows.append({"src": method.node_id, "dst": target})
        return rows

    @staticmethod
    def _handled_by_rows(snapshot: ASTSnapshot, classes: _ClassIndex) -> List[Dict[str, str]]:
        rows = []
        for endpoint in snapshot.api_endpoints:
            controller = classes.get(endpoint.controller_class)
            controller_names = {endpoint.controller_class}
            if controller is not None:
                controller_names.update({controller.name, controller.full_name})

            handler = next(
                (
                    m for m in snapshot.methods
                    if m.name == endpoint.handler_method and m.class_name in controller_names
                ),
                None,
            )
            if handler is not None:
                rows.append({
                    "src": f"{endpoint.method.upper()} {endpoint.path}",
                    "dst": handler.node_id,
                })
        return rows

    @staticmethod
    def _extends_rows(class_infos: List[ClassInfo], classes: _ClassIndex) -> List[Dict[str, str]]:
        rows = []
        for cls in class_infos:
            parent = classes.get(cls.extends_class)
            if parent is not None and parent.node_id != cls.node_id:
                rows.append({"src": cls.node_id, "dst": parent.node_id})
        return rows
