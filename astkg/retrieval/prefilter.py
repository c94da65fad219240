"""
Pre-filter helpers: ranking, capping and name mapping of similarity matches.

Pure functions over ``SimilarEntity`` lists; the analyzer composes them.
"""

import math
from typing import Dict, List, Sequence, Tuple, TypeVar

from astkg.models import EntityKind, SimilarEntity

E = TypeVar("E")


def rank_and_cap(candidates: Sequence[SimilarEntity], cap: int) -> List[SimilarEntity]:
    """Highest scores first (stable on ties), truncated to ``cap``."""
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    return ranked[:max(cap, 0)]


def partition_by_kind(
    candidates: Sequence[SimilarEntity],
) -> Tuple[List[SimilarEntity], List[SimilarEntity]]:
    """Split into (class candidates, method candidates), keeping order."""
    classes = [c for c in candidates if c.kind == EntityKind.CLASS]
    methods = [c for c in candidates if c.kind == EntityKind.METHOD]
    return classes, methods


def build_name_index(population: Sequence[E]) -> Dict[str, E]:
    """Name -> entity; the first entity with a given name wins."""
    index: Dict[str, E] = {}
    for entity in population:
        index.setdefault(entity.name, entity)
    return index


def map_candidates(
    candidates: Sequence[SimilarEntity],
    population: Sequence[E],
) -> Tuple[List[E], int]:
    """
    Resolve candidates to registry entities by exact name.

    Candidates without a match are skipped and counted. Each entity is
    returned at most once, in candidate order.

    Returns:
        (entities, unmatched_count)
    """
    index = build_name_index(population)
    entities: List[E] = []
    seen = set()
    unmatched = 0

    for candidate in candidates:
        entity = index.get(candidate.name)
        if entity is None:
            unmatched += 1
            continue
        if id(entity) in seen:
            continue
        seen.add(id(entity))
        entities.append(entity)

    return entities, unmatched


def calculate_reduction_percentage(original_total: int, filtered_total: int) -> float:
    """
    round(100 * (1 - filtered/original)) with halves rounded up.

    0 when there was nothing to filter.
    """
    if original_total <= 0:
        return 0.0
    return float(math.floor(100.0 * (1.0 - filtered_total / original_total) + 0.5))
