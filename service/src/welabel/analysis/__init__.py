"""Element tree context and relationship inference."""

from .analyzer import (
    RelationshipAnalyzer,
    identifiers_related,
    normalize_role,
    titles_related,
)
from .tree import ElementTree, SnapshotElementTree

__all__ = [
    "ElementTree",
    "SnapshotElementTree",
    "RelationshipAnalyzer",
    "identifiers_related",
    "normalize_role",
    "titles_related",
]
