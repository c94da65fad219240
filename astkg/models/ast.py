"""
AST Snapshot Models
===================

Structural snapshot of a codebase as returned by the AST analysis service.

The service answers in camelCase JSON and may add fields over time, so
``from_dict`` maps the known keys and ignores the rest.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _get(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key among camelCase/snake_case spellings."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class ClassInfo:
    """Class descriptor from the AST."""
    name: str
    full_name: str = ""
    package_name: str = ""
    file_path: str = ""
    type: str = "CLASS"
    extends_class: Optional[str] = None
    implements_class: Optional[str] = None
    is_abstract: bool = False
    is_interface: bool = False
    annotations: List[str] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0

    @property
    def node_id(self) -> str:
        return self.full_name or self.name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassInfo":
        return cls(
            name=_get(data, "name", default=""),
            full_name=_get(data, "fullName", "full_name", default=""),
            package_name=_get(data, "packageName", "package_name", default=""),
            file_path=_get(data, "filePath", "file_path", default=""),
            type=_get(data, "type", default="CLASS"),
            extends_class=_get(data, "extendsClass", "extends_class"),
            implements_class=_get(data, "implementsClass", "implements_class"),
            is_abstract=bool(_get(data, "isAbstract", "is_abstract", default=False)),
            is_interface=bool(_get(data, "isInterface", "is_interface", default=False)),
            annotations=list(_get(data, "annotations", default=[])),
            start_line=int(_get(data, "startLine", "start_line", default=0)),
            end_line=int(_get(data, "endLine", "end_line", default=0)),
        )


@dataclass
class MethodInfo:
    """Method descriptor from the AST."""
    name: str
    full_signature: str = ""
    class_name: str = ""
    file_path: str = ""
    modifier: str = ""
    is_static: bool = False
    return_type: str = ""
    arguments: List[str] = field(default_factory=list)
    annotations: List[str] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0
    calls_to: List[str] = field(default_factory=list)

    @property
    def node_id(self) -> str:
        return self.full_signature or f"{self.class_name}.{self.name}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MethodInfo":
        return cls(
            name=_get(data, "name", default=""),
            full_signature=_get(data, "fullSignature", "full_signature", default=""),
            class_name=_get(data, "className", "class_name", default=""),
            file_path=_get(data, "filePath", "file_path", default=""),
            modifier=_get(data, "modifier", default=""),
            is_static=bool(_get(data, "isStatic", "is_static", default=False)),
            return_type=_get(data, "returnType", "return_type", default=""),
            arguments=list(_get(data, "arguments", default=[])),
            annotations=list(_get(data, "annotations", default=[])),
            start_line=int(_get(data, "startLine", "start_line", default=0)),
            end_line=int(_get(data, "endLine", "end_line", default=0)),
            calls_to=list(_get(data, "callsTo", "calls_to", default=[])),
        )


@dataclass
class ApiEndpoint:
    """REST endpoint descriptor from the AST."""
    path: str
    method: str = "GET"
    controller_class: str = ""
    handler_method: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiEndpoint":
        return cls(
            path=_get(data, "path", default=""),
            method=_get(data, "method", default="GET"),
            controller_class=_get(data, "controllerClass", "controller_class", default=""),
            handler_method=_get(data, "handlerMethod", "handler_method", default=""),
        )


@dataclass
class ASTSnapshot:
    """
    Complete structural snapshot of a codebase.

    A snapshot with zero classes and zero methods is a valid outcome
    meaning "nothing to ingest".
    """
    classes: List[ClassInfo] = field(default_factory=list)
    methods: List[MethodInfo] = field(default_factory=list)
    api_endpoints: List[ApiEndpoint] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.classes and not self.methods

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ASTSnapshot":
        return cls(
            classes=[ClassInfo.from_dict(c) for c in data.get("classes") or []],
            methods=[MethodInfo.from_dict(m) for m in data.get("methods") or []],
            api_endpoints=[
                ApiEndpoint.from_dict(e)
                for e in _get(data, "apiEndpoints", "api_endpoints", default=[])
            ],
        )

    def summary(self) -> Dict[str, int]:
        return {
            "classes": len(self.classes),
            "methods": len(self.methods),
            "api_endpoints": len(self.api_endpoints),
        }
