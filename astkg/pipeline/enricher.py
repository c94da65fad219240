"""
Semantic Enricher
=================

Gives every undescribed method in the graph an LLM-written description:

    (:Method)-[:HAS_DESCRIPTION]->(:Description {id, content, type, source_file})

Per method:
1. Read its source lines (``start_line``..``end_line``) when the file exists
2. Ask the LLM for ``{"content": "..."}``
3. Create the Description node

A method whose LLM answer cannot be used still gets a placeholder
description, so one bad response never stalls the stage. LLM calls run
concurrently under a semaphore.
"""

import asyncio
import json
import structlog
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from astkg.llm import OpenRouterService
from astkg.storage.graph import FalkorDBClient

log = structlog.get_logger()

MAX_METHODS_PER_RUN = 1000

FIND_UNDESCRIBED_METHODS = f"""
MATCH (m:Method)
WHERE NOT (m)-[:HAS_DESCRIPTION]->(:Description)
RETURN m.id AS id,
       m.name AS name,
       m.signature AS signature,
       m.class_name AS class_name,
       m.file_path AS file_path,
       m.return_type AS return_type,
       m.start_line AS start_line,
       m.end_line AS end_line
LIMIT {MAX_METHODS_PER_RUN}
"""

CREATE_DESCRIPTION = """
MATCH (m:Method {id: $method_id})
CREATE (d:Description {
    id: $description_id,
    content: $content,
    type: 'llm_generated',
    source_file: $source_file
})
CREATE (m)-[:HAS_DESCRIPTION]->(d)
RETURN count(d) AS created
"""

ENRICHMENT_SYSTEM_PROMPT = (
    "You document source code. Answer only with a JSON object of the form "
    '{"content": "<description>"}.'
)

ENRICHMENT_PROMPT = """Describe what the following method does, in two or three sentences.
Mention its inputs, its effect or result, and the business concept it serves.

Class: {class_name}
Method: {method_name}

Code:
{code}
"""

SOURCE_UNAVAILABLE = "// Source code not available"


@dataclass
class MethodToEnrich:
    """Method record read from the graph."""
    id: str
    name: str
    signature: str
    class_name: str
    file_path: str
    return_type: str = "void"
    start_line: int = 0
    end_line: int = 0

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "MethodToEnrich":
        signature = record.get("signature") or f"unknown_{record.get('id')}"
        return cls(
            id=record.get("id") or f"unknown_{signature}",
            name=record.get("name") or "unknown",
            signature=signature,
            class_name=record.get("class_name") or "Unknown",
            file_path=record.get("file_path") or "",
            return_type=record.get("return_type") or "void",
            start_line=int(record.get("start_line") or 0),
            end_line=int(record.get("end_line") or 0),
        )


@dataclass
class EnrichmentResult:
    """Outcome of one enrichment stage run."""
    found: int = 0
    enriched: int = 0
    placeholders: int = 0
    failed: int = 0
    duration_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"Enrichment: {self.enriched}/{self.found} described "
            f"({self.placeholders} placeholders, {self.failed} failed) "
            f"in {self.duration_seconds:.1f}s"
        )


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence, if any."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[len("```json"):]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def placeholder_description(method: MethodToEnrich) -> str:
    return f"Method {method.name} in {method.class_name} - analysis pending due to processing error."


class SemanticEnricher:
    """
    Creates Description nodes for undescribed methods.

    Example:
        enricher = SemanticEnricher(graph, llm, source_root="/repo", max_concurrent=4)
        result = await enricher.enrich_methods()
    """

    def __init__(
        self,
        graph: FalkorDBClient,
        llm: OpenRouterService,
        source_root: Optional[str] = None,
        max_concurrent: int = 2,
    ):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self.graph = graph
        self.llm = llm
        self.source_root = Path(source_root) if source_root else None
        self.max_concurrent = max_concurrent

    async def enrich_methods(self) -> EnrichmentResult:
        """
        Describe every method that has no Description yet (up to 1000 per run).

        Raises:
            Whatever the graph client raises while listing methods; per-method
            failures are counted, not raised.
        """
        loop = asyncio.get_event_loop()
        start = loop.time()

        records = await self.graph.query(FIND_UNDESCRIBED_METHODS)
        methods = [MethodToEnrich.from_record(r) for r in records]

        result = EnrichmentResult(found=len(methods))
        log.info(f"Found {len(methods)} methods needing descriptions")

        if not methods:
            return result

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def enrich_with_limit(method: MethodToEnrich) -> str:
            async with semaphore:
                return await self._enrich_one(method)

        outcomes = await asyncio.gather(*[enrich_with_limit(m) for m in methods])

        result.enriched = sum(1 for o in outcomes if o in ("enriched", "placeholder"))
        result.placeholders = outcomes.count("placeholder")
        result.failed = outcomes.count("failed")
        result.duration_seconds = loop.time() - start

        log.info(result.summary())
        return result

    async def _enrich_one(self, method: MethodToEnrich) -> str:
        """Returns "enriched", "placeholder" or "failed"."""
        try:
            code = await self._read_method_code(method)
            content = await self._describe(method, code)
            outcome = "enriched"
            if content is None:
                content = placeholder_description(method)
                outcome = "placeholder"

            await self._create_description(method, content)
            log.debug(f"Created description for method: {method.signature}")
            return outcome

        except Exception as e:
            log.error(f"Failed to enrich method {method.signature}: {e}", exc_info=True)
            return "failed"

    def _resolve_path(self, file_path: str) -> Path:
        path = Path(file_path)
        if not path.is_absolute() and self.source_root is not None:
            path = self.source_root / path
        return path

    async def _read_method_code(self, method: MethodToEnrich) -> str:
        if not method.file_path:
            return SOURCE_UNAVAILABLE

        path = self._resolve_path(method.file_path)
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._read_lines_sync, path, method)

    @staticmethod
    def _read_lines_sync(path: Path, method: MethodToEnrich) -> str:
        if not path.exists():
            log.warning(f"Source file not found: {path}")
            return SOURCE_UNAVAILABLE

        lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        start_idx = max(0, method.start_line - 1)
        end_idx = min(len(lines), method.end_line) if method.end_line > 0 else len(lines)
        return "\n".join(lines[start_idx:end_idx])

    async def _describe(self, method: MethodToEnrich, code: str) -> Optional[str]:
        """LLM description, or None when the call or its JSON fails."""
        prompt = ENRICHMENT_PROMPT.format(
            class_name=method.class_name,
            method_name=method.name,
            code=code,
        )
        try:
            response = await self.llm.generate(prompt, system_prompt=ENRICHMENT_SYSTEM_PROMPT)
            payload = json.loads(strip_code_fences(response))
            content = payload.get("content") if isinstance(payload, dict) else None
            if not content or not str(content).strip():
                raise ValueError("LLM response has no 'content'")
            return str(content).strip()

        except Exception as e:
            log.error(f"Failed to get description for method {method.signature}: {e}", exc_info=True)
            return None

    async def _create_description(self, method: MethodToEnrich, content: str) -> None:
        description_id = f"desc_{method.id}_{uuid4().hex[:8]}"
        records = await self.graph.query(CREATE_DESCRIPTION, {
            "method_id": method.id,
            "description_id": description_id,
            "content": content,
            "source_file": method.file_path,
        })
        created = records[0].get("created", 0) if records else 0
        if not created:
            raise RuntimeError(f"Method node {method.id} not found while creating description")
