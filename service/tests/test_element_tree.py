"""Tests for the snapshot element tree."""

import pytest

from welabel.analysis import SnapshotElementTree
from welabel.models import Rect, UIElementInfo


@pytest.fixture
def window():
    """Window > form > (label, field, button)."""
    label = UIElementInfo(role="staticText", title="Email", frame=Rect(x=10, y=10, width=60, height=20))
    field = UIElementInfo(role="textField", identifier="email", frame=Rect(x=80, y=10, width=200, height=20))
    button = UIElementInfo(role="button", title="Send", frame=Rect(x=80, y=50, width=80, height=30))
    form = UIElementInfo(
        role="group",
        title="Form",
        frame=Rect(x=0, y=0, width=300, height=100),
        children=(label, field, button),
    )
    return UIElementInfo(
        role="window",
        title="Main",
        frame=Rect(x=0, y=0, width=800, height=600),
        children=(form,),
    )


def test_parent_and_children(window):
    tree = SnapshotElementTree(window)
    form = window.children[0]
    field = form.children[1]

    assert tree.parent_of(field) is form
    assert tree.parent_of(form) is window
    assert tree.parent_of(window) is None
    assert tree.children_of(form) == list(form.children)
    assert len(tree) == 5


def test_lookup_falls_back_to_equality(window):
    tree = SnapshotElementTree(window)
    copy = window.children[0].children[2].model_copy(deep=True)

    assert tree.parent_of(copy) is window.children[0]


def test_unknown_element_uses_own_children(window):
    tree = SnapshotElementTree(window)
    stray = UIElementInfo(role="group", children=(UIElementInfo(role="button"),))

    assert tree.parent_of(stray) is None
    assert tree.children_of(stray) == [UIElementInfo(role="button")]


def test_siblings_exclude_target_by_position(window):
    tree = SnapshotElementTree(window)
    label, field, button = window.children[0].children

    assert tree.siblings_of(field) == [label, button]
    assert tree.sibling_index(button) == 2
    assert tree.siblings_of(window) == []


def test_element_at_path(window):
    tree = SnapshotElementTree(window)

    assert tree.element_at_path([]) is window
    assert tree.element_at_path([0, 2]).title == "Send"

    with pytest.raises(ValueError):
        tree.element_at_path([0, 5])


def test_from_ancestors_links_untraversed_parents():
    """Ancestors reported without children still become parents."""
    field = UIElementInfo(role="textField", identifier="search")
    toolbar = UIElementInfo(role="toolbar")
    main = UIElementInfo(role="window", title="Main")

    tree = SnapshotElementTree.from_ancestors(field, [toolbar, main])

    assert tree.parent_of(field) == toolbar
    assert tree.parent_of(toolbar) == main
    assert tree.children_of(toolbar) == [field]
    assert tree.root == main


def test_nodes_lists_every_element(window):
    tree = SnapshotElementTree(window)

    roles = [element.role for element in tree.nodes()]

    assert roles == ["window", "group", "staticText", "textField", "button"]
