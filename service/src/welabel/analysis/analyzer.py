"""Relationship inference between UI elements.

Given a target element, where it was interacted with, and a read-only tree
context, four independent passes propose related elements:

- hierarchy: parent, grandparent, first children, first siblings
- spatial: containment and significant overlap among siblings
- functional: conventional pairings (field/label, label/control, button/container)
- logical: related identifiers and titles among siblings

Results are concatenated in pass order and stably sorted by relevance.
"""

import logging
import re
from typing import FrozenSet, List, Optional, Sequence, Tuple

from ..models.element import RelatedElement, RelationshipType, UIElementInfo
from ..models.geometry import Point, spatial_relation
from .tree import ElementTree

logger = logging.getLogger(__name__)

# Hierarchy caps keep output bounded on densely nested UIs
MAX_CHILDREN = 5
MAX_SIBLINGS = 3

PARENT_SCORE = 0.9
GRANDPARENT_SCORE = 0.7
CHILD_SCORE, CHILD_STEP, CHILD_FLOOR = 0.85, 0.05, 0.6
SIBLING_SCORE, SIBLING_STEP, SIBLING_FLOOR = 0.7, 0.1, 0.5

CONTAINMENT_SCORE = 0.8
OVERLAP_SCORE = 0.7
OVERLAP_RATIO = 0.3

LABEL_SEARCH_DISTANCE = 50.0
CONTAINER_SEARCH_DISTANCE = 200.0
FIELD_LABEL_SCORE = 0.9
LABEL_CONTROL_SCORE = 0.85
BUTTON_CONTAINER_SCORE = 0.7
RANK_STEP = 0.1

IDENTIFIER_SCORE = 0.8
TITLE_SCORE = 0.75

# Roles are compared in normalized form, see normalize_role()
TEXT_INPUT_ROLES: FrozenSet[str] = frozenset({"textfield", "textarea", "combobox"})
LABEL_ROLES: FrozenSet[str] = frozenset({"statictext", "label"})
CONTROL_ROLES: FrozenSet[str] = frozenset(
    {"button", "checkbox", "radiobutton", "textfield", "combobox"}
)
CONTAINER_ROLES: FrozenSet[str] = frozenset({"group", "window", "sheet", "scrollarea"})
BUTTON_ROLE = "button"

TITLE_STOPWORDS: FrozenSet[str] = frozenset(
    {
        "the", "a", "an", "of", "in", "on", "at", "by",
        "with", "and", "or", "for", "to", "from",
    }
)

_NUMBERED_IDENTIFIER = re.compile(r"^([a-z]+)([0-9]+)$", re.IGNORECASE)
_WORD = re.compile(r"\w+")


def normalize_role(role: str) -> str:
    """
    Canonical role name for comparisons.

    ``AXTextField``, ``textField`` and ``text_field`` all become ``textfield``.
    """
    if role.startswith("AX") and len(role) > 2 and role[2].isupper():
        role = role[2:]
    return role.replace("_", "").replace("-", "").lower()


def _common_prefix_length(first: str, second: str) -> int:
    length = 0
    for a, b in zip(first, second):
        if a != b:
            break
        length += 1
    return length


def identifiers_related(first: str, second: str) -> bool:
    """
    Whether two identifiers look like members of the same group.

    True when both are long enough that half the shorter one exceeds 3
    characters and they share a common prefix or suffix longer than 3
    characters ("login_username"/"login_password"), or when both are
    ``<letters><digits>`` with the same letters ("item1"/"item2").
    """
    if not first or not second:
        return False

    window = min(len(first), len(second)) // 2
    if window > 3:
        if _common_prefix_length(first, second) > 3:
            return True
        if _common_prefix_length(first[::-1], second[::-1]) > 3:
            return True

    match_first = _NUMBERED_IDENTIFIER.match(first)
    match_second = _NUMBERED_IDENTIFIER.match(second)
    if match_first and match_second:
        return match_first.group(1) == match_second.group(1)

    return False


def _content_words(title: str) -> List[str]:
    return [word for word in _WORD.findall(title.lower()) if word not in TITLE_STOPWORDS]


def titles_related(first: str, second: str) -> bool:
    """
    Whether two titles suggest related controls.

    Related when one contains the other (case-insensitive), or, after
    dropping stopwords, they start with the same word or at least half of
    the smaller word set also appears in the other.
    """
    if not first or not second:
        return False

    lower_first, lower_second = first.lower(), second.lower()
    if lower_first in lower_second or lower_second in lower_first:
        return True

    words_first = _content_words(first)
    words_second = _content_words(second)
    if not words_first or not words_second:
        return False

    if words_first[0] == words_second[0]:
        return True

    set_first, set_second = set(words_first), set(words_second)
    shared = len(set_first & set_second)
    return shared / min(len(set_first), len(set_second)) >= 0.5


class RelationshipAnalyzer:
    """
    Infers related elements for a target UI element.

    Stateless: every call works only on its arguments, so a single instance
    can serve concurrent sessions. Passes that find nothing contribute an
    empty list; analysis never raises for missing context.
    """

    def analyze(
        self,
        target: UIElementInfo,
        at_position: Point,
        context: ElementTree,
    ) -> List[RelatedElement]:
        """
        Rank elements related to ``target``.

        Args:
            target: Element the user interacted with
            at_position: Screen position of the interaction
            context: Parent/children lookups for the snapshot ``target`` came from

        Returns:
            Related elements sorted by descending relevance; ties keep pass
            order (hierarchy, spatial, functional, logical).
        """
        parent = context.parent_of(target)
        siblings = self._siblings(target, parent, context)

        related: List[RelatedElement] = []
        related.extend(self.hierarchy_relationships(target, parent, siblings, context))
        related.extend(self.spatial_relationships(target, siblings))
        related.extend(self.functional_relationships(target, siblings))
        related.extend(self.logical_relationships(target, siblings))

        logger.debug(
            f"Analyzed {target.short_description} at ({at_position.x}, {at_position.y}): "
            f"{len(related)} related element(s)"
        )
        return sorted(related, key=lambda item: item.relevance_score, reverse=True)

    @staticmethod
    def _siblings(
        target: UIElementInfo,
        parent: Optional[UIElementInfo],
        context: ElementTree,
    ) -> List[UIElementInfo]:
        if parent is None:
            return []

        children = context.children_of(parent)
        position = next((i for i, child in enumerate(children) if child is target), None)
        if position is None:
            position = next((i for i, child in enumerate(children) if child == target), None)
        return [child for i, child in enumerate(children) if i != position]

    def hierarchy_relationships(
        self,
        target: UIElementInfo,
        parent: Optional[UIElementInfo],
        siblings: Sequence[UIElementInfo],
        context: ElementTree,
    ) -> List[RelatedElement]:
        related: List[RelatedElement] = []

        if parent is not None:
            related.append(
                RelatedElement(
                    relationship_type=RelationshipType.PARENT,
                    element=parent,
                    relevance_score=PARENT_SCORE,
                )
            )
            grandparent = context.parent_of(parent)
            if grandparent is not None:
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.CONTAINER,
                        element=grandparent,
                        relevance_score=GRANDPARENT_SCORE,
                    )
                )

        for index, child in enumerate(context.children_of(target)[:MAX_CHILDREN]):
            related.append(
                RelatedElement(
                    relationship_type=RelationshipType.CHILD,
                    element=child,
                    relevance_score=max(CHILD_SCORE - CHILD_STEP * index, CHILD_FLOOR),
                )
            )

        for index, sibling in enumerate(siblings[:MAX_SIBLINGS]):
            related.append(
                RelatedElement(
                    relationship_type=RelationshipType.SIBLING,
                    element=sibling,
                    relevance_score=max(SIBLING_SCORE - SIBLING_STEP * index, SIBLING_FLOOR),
                )
            )

        return related

    def spatial_relationships(
        self, target: UIElementInfo, siblings: Sequence[UIElementInfo]
    ) -> List[RelatedElement]:
        related: List[RelatedElement] = []

        for sibling in siblings:
            if target.contains(sibling):
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.CONTAINED,
                        element=sibling,
                        relevance_score=CONTAINMENT_SCORE,
                        notes="Element is contained spatially",
                    )
                )

            if sibling.contains(target):
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.CONTAINER,
                        element=sibling,
                        relevance_score=CONTAINMENT_SCORE,
                        notes="Element is a spatial container",
                    )
                )

            overlap = target.overlap_area(sibling)
            smaller_area = min(target.frame.area, sibling.frame.area)
            if overlap > 0 and smaller_area > 0 and overlap / smaller_area > OVERLAP_RATIO:
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.LOGICAL,
                        element=sibling,
                        relevance_score=OVERLAP_SCORE,
                        notes="Elements overlap spatially",
                    )
                )

        return related

    def functional_relationships(
        self, target: UIElementInfo, siblings: Sequence[UIElementInfo]
    ) -> List[RelatedElement]:
        related: List[RelatedElement] = []
        role = normalize_role(target.role)

        if role in TEXT_INPUT_ROLES:
            labels = self._nearby(target, siblings, LABEL_ROLES, LABEL_SEARCH_DISTANCE)
            for rank, label in enumerate(labels):
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.FUNCTIONAL,
                        element=label,
                        relevance_score=max(FIELD_LABEL_SCORE - RANK_STEP * rank, 0.0),
                        notes=f"Potential field label ({spatial_relation(target.frame, label.frame).value})",
                    )
                )

        if role in LABEL_ROLES:
            controls = self._nearby(target, siblings, CONTROL_ROLES, LABEL_SEARCH_DISTANCE)
            for rank, control in enumerate(controls):
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.FUNCTIONAL,
                        element=control,
                        relevance_score=max(LABEL_CONTROL_SCORE - RANK_STEP * rank, 0.0),
                        notes="Element potentially described by this label",
                    )
                )

        if role == BUTTON_ROLE:
            containers = self._nearby(
                target, siblings, CONTAINER_ROLES, CONTAINER_SEARCH_DISTANCE
            )
            for container in containers:
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.FUNCTIONAL,
                        element=container,
                        relevance_score=BUTTON_CONTAINER_SCORE,
                        notes="Container potentially affected by button",
                    )
                )

        return related

    @staticmethod
    def _nearby(
        target: UIElementInfo,
        candidates: Sequence[UIElementInfo],
        roles: FrozenSet[str],
        max_distance: float,
    ) -> List[UIElementInfo]:
        """Candidates with a matching role within ``max_distance``, nearest first."""
        in_range: List[Tuple[float, UIElementInfo]] = []
        for candidate in candidates:
            if normalize_role(candidate.role) not in roles:
                continue
            distance = target.distance_to(candidate)
            if distance <= max_distance:
                in_range.append((distance, candidate))
        in_range.sort(key=lambda pair: pair[0])
        return [candidate for _, candidate in in_range]

    def logical_relationships(
        self, target: UIElementInfo, siblings: Sequence[UIElementInfo]
    ) -> List[RelatedElement]:
        related: List[RelatedElement] = []

        for sibling in siblings:
            if target.identifier and sibling.identifier and identifiers_related(
                target.identifier, sibling.identifier
            ):
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.LOGICAL,
                        element=sibling,
                        relevance_score=IDENTIFIER_SCORE,
                        notes="Element with related identifier",
                    )
                )

            if target.title and sibling.title and titles_related(target.title, sibling.title):
                related.append(
                    RelatedElement(
                        relationship_type=RelationshipType.LOGICAL,
                        element=sibling,
                        relevance_score=TITLE_SCORE,
                        notes="Element with related title",
                    )
                )

        return related
