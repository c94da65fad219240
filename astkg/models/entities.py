"""
Entity Models
=============

Dataclasses for the code entities held by the registry and for the
transient records produced while answering a query.

- ClassEntity / MethodEntity: registry records, read-only for the query path
- SimilarEntity: a vector-search match (name + score + kind)
- PreFilteringResult: outcome of the embedding pre-filter
- ExtractedEntities: final structured output of a query
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class EntityKind(str, Enum):
    """Kind tag carried by similarity-search matches."""
    CLASS = "class"
    METHOD = "method"


class ClassType(Enum):
    CLASS = "CLASS"
    INTERFACE = "INTERFACE"
    ENUM = "ENUM"
    ANNOTATION = "ANNOTATION"
    RECORD = "RECORD"


@dataclass
class ClassEntity:
    """
    A class (or interface, enum, ...) known to the entity registry.

    Attributes:
        id: Graph node id
        name: Simple class name, unique per registry snapshot by assumption
        full_name: Fully qualified name
        package_name: Declaring package
        file_path: Source file
        description: LLM-generated description, if enriched
        super_class: Name of the parent class, if any
        class_type: CLASS / INTERFACE / ENUM / ANNOTATION / RECORD
        method_names: Names of declared methods
    """
    id: str
    name: str
    full_name: str = ""
    package_name: str = ""
    file_path: str = ""
    description: Optional[str] = None
    super_class: Optional[str] = None
    class_type: ClassType = ClassType.CLASS
    method_names: List[str] = field(default_factory=list)


@dataclass
class MethodEntity:
    """
    A method known to the entity registry.

    Attributes:
        id: Graph node id
        name: Simple method name
        signature: Full signature
        class_name: Declaring class
        package_name: Declaring package
        file_path: Source file
        description: LLM-generated description, if enriched
        return_type: Declared return type
        parameter_types: Declared parameter types
    """
    id: str
    name: str
    signature: str = ""
    class_name: str = ""
    package_name: str = ""
    file_path: str = ""
    description: Optional[str] = None
    return_type: str = ""
    parameter_types: List[str] = field(default_factory=list)


@dataclass
class SimilarEntity:
    """
    Raw match returned by similarity search.

    Not yet resolved to a registry entity; discarded after mapping.
    """
    name: str
    score: float
    kind: EntityKind
    full_name: Optional[str] = None
    package_name: Optional[str] = None
    signature: Optional[str] = None
    class_name: Optional[str] = None

    def __repr__(self) -> str:
        return f"<SimilarEntity({self.kind.value}:{self.name}, score={self.score:.3f})>"


@dataclass
class PreFilteringResult:
    """
    Outcome of the embedding pre-filter for one query.

    ``unmatched_count`` counts candidates that had no registry entity with
    the same name. ``fallback_used`` is True when similarity search failed
    and the full population was passed through.
    """
    filtered_classes: List[ClassEntity]
    filtered_methods: List[MethodEntity]
    original_class_count: int
    original_method_count: int
    reduction_percentage: float
    unmatched_count: int = 0
    fallback_used: bool = False

    @property
    def original_total(self) -> int:
        return self.original_class_count + self.original_method_count

    @property
    def filtered_total(self) -> int:
        return len(self.filtered_classes) + len(self.filtered_methods)


@dataclass
class ExtractedEntities:
    """
    Entities identified as relevant to a query.

    An empty value means "nothing found", not proof of absence: every
    failure on the query path also degrades to an empty value.
    """
    classes: List[str] = field(default_factory=list)
    methods: List[str] = field(default_factory=list)
    packages: List[str] = field(default_factory=list)
    terms: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "ExtractedEntities":
        return cls()

    def has_entities(self) -> bool:
        """True if any of the four lists is non-empty."""
        return bool(self.classes or self.methods or self.packages or self.terms)

    def get_all_entities(self) -> List[str]:
        """Classes, methods, packages and terms as one list."""
        return [*self.classes, *self.methods, *self.packages, *self.terms]

    def get_total_count(self) -> int:
        return len(self.get_all_entities())
