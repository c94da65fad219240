"""
ASTKG Core: the CodeKnowledgeGraph facade.
"""

from astkg.core.code_knowledge_graph import CodeKnowledgeGraph

__all__ = [
    "CodeKnowledgeGraph",
]
