"""Tests for relationship inference between UI elements."""

import pytest

from welabel.analysis import (
    RelationshipAnalyzer,
    SnapshotElementTree,
    identifiers_related,
    normalize_role,
    titles_related,
)
from welabel.models import Point, Rect, RelationshipType, UIElementInfo


@pytest.fixture
def analyzer():
    return RelationshipAnalyzer()


def _element(role, x=0.0, y=0.0, width=10.0, height=10.0, **kwargs):
    return UIElementInfo(role=role, frame=Rect(x=x, y=y, width=width, height=height), **kwargs)


def _analyze(analyzer, root, path):
    tree = SnapshotElementTree(root)
    target = tree.element_at_path(path)
    return target, analyzer.analyze(target, target.center, tree)


def _of_type(results, relationship_type):
    return [r for r in results if r.relationship_type == relationship_type]


def test_hierarchy_scores_and_caps(analyzer):
    """Parent, grandparent, five children and three siblings with decaying scores."""
    children = tuple(_element("button", x=1000 + 20 * i, y=1000, title=f"Child {i}") for i in range(7))
    target = _element("group", x=0, y=500, width=400, height=50, children=children)
    siblings = tuple(_element("image", x=500 + 20 * i, y=0) for i in range(4))
    parent = _element("group", x=0, y=0, width=2000, height=2000, children=(target, *siblings))
    root = _element("window", x=0, y=0, width=4000, height=4000, children=(parent,))

    _, results = _analyze(analyzer, root, [0, 0])

    assert [r.relevance_score for r in _of_type(results, RelationshipType.PARENT)] == [0.9]
    assert _of_type(results, RelationshipType.PARENT)[0].element == parent

    containers = _of_type(results, RelationshipType.CONTAINER)
    assert [r.element.role for r in containers] == ["window"]
    assert containers[0].relevance_score == 0.7

    child_scores = [r.relevance_score for r in _of_type(results, RelationshipType.CHILD)]
    assert child_scores == pytest.approx([0.85, 0.8, 0.75, 0.7, 0.65])

    sibling_scores = [r.relevance_score for r in _of_type(results, RelationshipType.SIBLING)]
    assert sibling_scores == pytest.approx([0.7, 0.6, 0.5])


def test_child_and_sibling_scores_floor():
    """Floors are reached only past the caps, so they never drop below 0.6 / 0.5."""
    analyzer = RelationshipAnalyzer()
    siblings = tuple(_element("image", x=100 * i + 100, y=0) for i in range(3))
    parent = _element("group", width=1000, height=1000, children=(_element("image"), *siblings))

    _, results = _analyze(analyzer, parent, [0])

    assert min(r.relevance_score for r in _of_type(results, RelationshipType.SIBLING)) == pytest.approx(0.5)


def test_element_without_context_returns_empty(analyzer):
    """No parent, no siblings, no children: nothing to relate, and no error."""
    lonely = _element("textField", identifier="login_username", title="Username")

    results = analyzer.analyze(lonely, Point(x=5, y=5), SnapshotElementTree(lonely))

    assert results == []


def test_spatial_containment_is_one_directional(analyzer):
    big = _element("group", x=0, y=0, width=100, height=100)
    small = _element("image", x=10, y=10, width=20, height=20)
    root = _element("window", x=0, y=0, width=500, height=500, children=(big, small))

    _, from_big = _analyze(analyzer, root, [0])
    _, from_small = _analyze(analyzer, root, [1])

    contained = _of_type(from_big, RelationshipType.CONTAINED)
    assert [r.element for r in contained] == [small]
    assert contained[0].relevance_score == 0.8
    assert not [r for r in _of_type(from_big, RelationshipType.CONTAINER) if r.element == small]

    container = [r for r in _of_type(from_small, RelationshipType.CONTAINER) if r.element == big]
    assert len(container) == 1
    assert container[0].relevance_score == 0.8
    assert not _of_type(from_small, RelationshipType.CONTAINED)


def test_significant_overlap_is_logical(analyzer):
    target = _element("image", x=0, y=0, width=10, height=10)
    overlapping = _element("image", x=5, y=0, width=10, height=10)
    grazing = _element("image", x=9, y=0, width=10, height=10)
    root = _element("window", width=100, height=100, children=(target, overlapping, grazing))

    _, results = _analyze(analyzer, root, [0])

    overlaps = [r for r in results if r.notes == "Elements overlap spatially"]
    assert [r.element for r in overlaps] == [overlapping]
    assert overlaps[0].relationship_type == RelationshipType.LOGICAL
    assert overlaps[0].relevance_score == 0.7


def test_text_field_finds_nearby_labels_by_distance(analyzer):
    field = _element("textField", x=100, y=100, width=100, height=20)
    near = _element("staticText", x=140, y=80, width=20, height=10)
    mid = _element("staticText", x=185, y=125, width=10, height=10)
    far = _element("staticText", x=150, y=150, width=20, height=20)
    root = _element("window", width=1000, height=1000, children=(field, far, mid, near))

    _, results = _analyze(analyzer, root, [0])

    functional = _of_type(results, RelationshipType.FUNCTIONAL)
    assert [r.element for r in functional] == [near, mid]
    assert [r.relevance_score for r in functional] == pytest.approx([0.9, 0.8])
    assert functional[0].notes.startswith("Potential field label")


def test_label_finds_nearby_controls(analyzer):
    label = _element("staticText", x=0, y=0, width=40, height=20, title="Remember me")
    checkbox = _element("checkBox", x=45, y=0, width=20, height=20)
    image = _element("image", x=45, y=25, width=20, height=20)
    root = _element("window", width=1000, height=1000, children=(label, checkbox, image))

    _, results = _analyze(analyzer, root, [0])

    functional = _of_type(results, RelationshipType.FUNCTIONAL)
    assert [r.element for r in functional] == [checkbox]
    assert functional[0].relevance_score == 0.85


def test_button_finds_nearby_containers(analyzer):
    button = _element("button", x=0, y=0, width=80, height=30, title="Apply")
    panel = _element("group", x=0, y=100, width=200, height=100)
    remote = _element("group", x=600, y=600, width=50, height=50)
    root = _element("window", width=1000, height=1000, children=(button, panel, remote))

    _, results = _analyze(analyzer, root, [0])

    functional = _of_type(results, RelationshipType.FUNCTIONAL)
    assert [r.element for r in functional] == [panel]
    assert functional[0].relevance_score == 0.7


def test_accessibility_role_names_are_normalized(analyzer):
    field = _element("AXTextField", x=0, y=0, width=100, height=20)
    label = _element("AXStaticText", x=0, y=25, width=50, height=15)
    root = _element("AXWindow", width=500, height=500, children=(label, field))

    _, results = _analyze(analyzer, root, [1])

    assert [r.element for r in _of_type(results, RelationshipType.FUNCTIONAL)] == [label]


def test_related_identifiers_are_logical(analyzer):
    username = _element("textField", x=0, y=0, identifier="login_username")
    password = _element("textField", x=500, y=0, identifier="login_password")
    other = _element("button", x=900, y=0, identifier="foo")
    root = _element("window", width=1000, height=1000, children=(username, password, other))

    _, results = _analyze(analyzer, root, [0])

    logical = [r for r in results if r.notes == "Element with related identifier"]
    assert [r.element for r in logical] == [password]
    assert logical[0].relevance_score == 0.8


def test_related_titles_are_logical(analyzer):
    save = _element("button", x=0, y=0, title="Save")
    save_as = _element("button", x=500, y=0, title="Save As...")
    cancel = _element("button", x=900, y=0, title="Cancel")
    root = _element("window", width=1000, height=1000, children=(save, save_as, cancel))

    _, results = _analyze(analyzer, root, [0])

    logical = [r for r in results if r.notes == "Element with related title"]
    assert [r.element for r in logical] == [save_as]
    assert logical[0].relevance_score == 0.75


def test_results_sorted_with_stable_ties(analyzer):
    big = _element("group", x=0, y=0, width=100, height=100)
    small = _element("image", x=10, y=10, width=20, height=20)
    root = _element("window", width=500, height=500, children=(big, small))

    _, results = _analyze(analyzer, root, [1])

    scores = [r.relevance_score for r in results]
    assert scores == sorted(scores, reverse=True)
    # Hierarchy sibling (0.7) precedes the spatial overlap (0.7)
    tied = [r for r in results if r.relevance_score == 0.7]
    assert [r.relationship_type for r in tied] == [RelationshipType.SIBLING, RelationshipType.LOGICAL]


def test_scores_always_within_unit_interval(analyzer):
    labels = tuple(_element("staticText", x=i, y=25, width=5, height=5) for i in range(15))
    field = _element("textField", x=0, y=0, width=20, height=20)
    root = _element("window", width=500, height=500, children=(field, *labels))

    _, results = _analyze(analyzer, root, [0])

    functional = _of_type(results, RelationshipType.FUNCTIONAL)
    assert len(functional) == 15
    assert all(0.0 <= r.relevance_score <= 1.0 for r in results)
    assert functional[-1].relevance_score == 0.0


def test_analysis_leaves_snapshot_untouched(analyzer):
    child = _element("button", x=10, y=10, title="OK")
    root = _element("window", width=100, height=100, children=(child, _element("button", x=50, y=10, title="OK too")))
    before = root.model_copy(deep=True)

    _, results = _analyze(analyzer, root, [0])

    assert root == before
    assert all(r.element is not child for r in results)


@pytest.mark.parametrize(
    "first, second, expected",
    [
        ("login_username", "login_password", True),
        ("item1", "item2", True),
        ("foo", "bar", False),
        ("submitButton", "cancelButton", True),
        ("item1", "entry2", False),
        ("ab1", "ab2", True),
        ("", "item1", False),
    ],
)
def test_identifiers_related(first, second, expected):
    assert identifiers_related(first, second) is expected


@pytest.mark.parametrize(
    "first, second, expected",
    [
        ("Save", "Save As", True),
        ("save", "SAVE AS", True),
        ("Print document", "Print preview", True),
        ("The Save button", "the save file", True),
        ("Export to PDF", "PDF export", True),
        ("Open", "Close", False),
        ("the", "a", False),
    ],
)
def test_titles_related(first, second, expected):
    assert titles_related(first, second) is expected


@pytest.mark.parametrize(
    "role, expected",
    [
        ("AXTextField", "textfield"),
        ("textField", "textfield"),
        ("text_field", "textfield"),
        ("AXButton", "button"),
        ("axis", "axis"),
    ],
)
def test_normalize_role(role, expected):
    assert normalize_role(role) == expected
