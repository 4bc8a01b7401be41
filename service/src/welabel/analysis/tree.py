"""Read-only element tree context for relationship analysis."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Optional, Sequence

from ..models.element import UIElementInfo

logger = logging.getLogger(__name__)


class ElementTree(ABC):
    """
    Parent/children lookups over a UI hierarchy snapshot.

    Elements never point at their parents; this object supplies that
    context from outside so snapshots stay acyclic and immutable.
    """

    @abstractmethod
    def parent_of(self, element: UIElementInfo) -> Optional[UIElementInfo]:
        """Return the element's parent, or None at the root / when unknown."""
        pass

    @abstractmethod
    def children_of(self, element: UIElementInfo) -> List[UIElementInfo]:
        """Return the element's children in order (possibly empty)."""
        pass


class _Node:
    """Arena slot: an element plus parent/children indices."""

    __slots__ = ("element", "parent", "children")

    def __init__(self, element: UIElementInfo, parent: Optional[int]) -> None:
        self.element = element
        self.parent = parent
        self.children: List[int] = []


class SnapshotElementTree(ElementTree):
    """
    Element tree built once from a nested snapshot.

    Nodes live in a flat arena and refer to each other by index. Lookups
    match by object identity first and fall back to structural equality,
    so an element that was re-fetched from the provider still resolves.
    """

    def __init__(self, root: UIElementInfo) -> None:
        self._nodes: List[_Node] = []
        self._by_identity: Dict[int, int] = {}
        self.root = root
        self._add(root, None)

    @classmethod
    def from_ancestors(
        cls, element: UIElementInfo, ancestors: Sequence[UIElementInfo]
    ) -> "SnapshotElementTree":
        """
        Build a tree from an element and its ancestor chain (nearest first).

        Providers often return ancestors whose ``children`` were not
        traversed. Missing links are synthesized so that each ancestor ends
        up as the parent of the next element down the chain.
        """
        if not ancestors:
            return cls(element)

        chain = [element, *ancestors]
        tree = cls(chain[-1])
        for depth in range(len(chain) - 1, 0, -1):
            parent, child = chain[depth], chain[depth - 1]
            parent_index = tree._index_of(parent)
            if parent_index is None:
                continue
            if tree._child_position(parent_index, child) is None:
                tree._add(child, parent_index)
        return tree

    def _add(self, element: UIElementInfo, parent: Optional[int]) -> int:
        index = len(self._nodes)
        self._nodes.append(_Node(element, parent))
        self._by_identity.setdefault(id(element), index)
        if parent is not None:
            self._nodes[parent].children.append(index)
        for child in element.children or ():
            self._add(child, index)
        return index

    def _index_of(self, element: UIElementInfo) -> Optional[int]:
        index = self._by_identity.get(id(element))
        if index is not None and self._nodes[index].element is element:
            return index
        for index, node in enumerate(self._nodes):
            if node.element == element:
                return index
        return None

    def _child_position(self, parent: int, element: UIElementInfo) -> Optional[int]:
        children = self._nodes[parent].children
        for position, child in enumerate(children):
            if self._nodes[child].element is element:
                return position
        for position, child in enumerate(children):
            if self._nodes[child].element == element:
                return position
        return None

    def parent_of(self, element: UIElementInfo) -> Optional[UIElementInfo]:
        index = self._index_of(element)
        if index is None:
            return None
        parent = self._nodes[index].parent
        return self._nodes[parent].element if parent is not None else None

    def children_of(self, element: UIElementInfo) -> List[UIElementInfo]:
        index = self._index_of(element)
        if index is None:
            return list(element.children or ())
        return [self._nodes[child].element for child in self._nodes[index].children]

    def siblings_of(self, element: UIElementInfo) -> List[UIElementInfo]:
        """Parent's children excluding the element itself (by position)."""
        index = self._index_of(element)
        if index is None or self._nodes[index].parent is None:
            return []
        parent = self._nodes[self._nodes[index].parent]
        return [self._nodes[child].element for child in parent.children if child != index]

    def sibling_index(self, element: UIElementInfo) -> Optional[int]:
        """Position of the element within its parent's children."""
        index = self._index_of(element)
        if index is None or self._nodes[index].parent is None:
            return None
        return self._nodes[self._nodes[index].parent].children.index(index)

    def element_at_path(self, path: Sequence[int]) -> UIElementInfo:
        """
        Follow child positions from the root.

        Raises:
            ValueError: If the path leaves the tree.
        """
        node = self._nodes[0]
        for step in path:
            if step < 0 or step >= len(node.children):
                raise ValueError(f"No element at path {list(path)}")
            node = self._nodes[node.children[step]]
        return node.element

    def nodes(self) -> List[UIElementInfo]:
        """All elements in the snapshot, depth-first from the root."""
        return [node.element for node in self._nodes]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[UIElementInfo]:
        return (node.element for node in self._nodes)
