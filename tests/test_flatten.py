"""Tests for tree flattening into the node arena."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from yamd.flatten import ARRAY_ATTR, IdCounter, flatten_tree
from yamd.tree_builder import build_node_tree
from yamd.types import GraphNode


def _flatten(value: object, **kwargs: object) -> tuple[dict[str, GraphNode], str]:
    result = flatten_tree(build_node_tree(value), **kwargs)  # type: ignore[arg-type]
    return result.nodes, result.root_id


def _assert_integrity(nodes: dict[str, GraphNode], root_id: str) -> None:
    assert nodes[root_id].parent_id is None
    for node in nodes.values():
        for child_id in node.children:
            assert child_id in nodes
            assert nodes[child_id].parent_id == node.id
        if node.id != root_id:
            assert node.parent_id in nodes
            assert node.id in nodes[node.parent_id].children


class TestIds:
    def test_preorder_ids_with_collapsed_wrapper(self) -> None:
        nodes, root_id = _flatten(["a", {"K": ["x"]}])
        assert root_id == "yamd_001"
        # yamd_003 went to the single-entry mapping that collapsed into K.
        assert list(nodes) == ["yamd_001", "yamd_002", "yamd_004", "yamd_005"]
        assert nodes["yamd_001"].children == ["yamd_002", "yamd_004"]
        assert nodes["yamd_004"].text_raw == "K"
        assert nodes["yamd_004"].parent_id == "yamd_001"
        assert nodes["yamd_005"].parent_id == "yamd_004"
        _assert_integrity(nodes, root_id)

    def test_custom_prefix_and_width(self) -> None:
        nodes, root_id = _flatten(["a", "b"], id_prefix="n", id_width=2)
        assert root_id == "n01"
        assert list(nodes) == ["n01", "n02", "n03"]

    def test_counter_rejects_zero_width(self) -> None:
        with pytest.raises(ValueError):
            IdCounter("x", 0)

    def test_counter_is_monotonic(self) -> None:
        counter = IdCounter("seg_", 3)
        assert [counter.next_id() for _ in range(3)] == ["seg_001", "seg_002", "seg_003"]

    def test_counter_overflows_width_gracefully(self) -> None:
        counter = IdCounter("n", 1)
        ids = [counter.next_id() for _ in range(10)]
        assert ids[-1] == "n10"
        assert len(set(ids)) == 10

    def test_determinism(self) -> None:
        value = {"A[ul]": ["x", {"B": "y", "C": "z"}], "D": None}
        first, _ = _flatten(value)
        second, _ = _flatten(value)
        assert list(first) == list(second)
        assert [node.children for node in first.values()] == [node.children for node in second.values()]


class TestShapes:
    def test_arrays_get_anonymous_display(self) -> None:
        nodes, root_id = _flatten([["a"]])
        assert nodes[root_id].attr == ARRAY_ATTR
        inner = nodes[nodes[root_id].children[0]]
        assert inner.type == "array"
        assert inner.attr == {"selfDisplay": "none", "childDisplay": "pl"}

    def test_multi_entry_mapping_is_materialized(self) -> None:
        nodes, root_id = _flatten([{"A": 1, "B": 2}])
        obj = nodes[nodes[root_id].children[0]]
        assert obj.type == "object"
        assert obj.attr == {}
        assert [nodes[child].text_raw for child in obj.children] == ["A", "B"]
        a_node = nodes[obj.children[0]]
        assert nodes[a_node.children[0]].text_raw == "1"
        _assert_integrity(nodes, root_id)

    def test_scalars_become_text(self) -> None:
        nodes, root_id = _flatten([True, None, 2.5])
        texts = [nodes[child] for child in nodes[root_id].children]
        assert [node.type for node in texts] == ["text", "text", "text"]
        assert [node.text_raw for node in texts] == ["true", None, "2.5"]

    def test_leaf_keeps_caption_and_has_no_children(self) -> None:
        nodes, root_id = _flatten({"Eq[latex]": {"content": "E=mc^2", "caption": "Energy", "id": "eq"}})
        (latex_id,) = nodes[root_id].children
        latex = nodes[latex_id]
        assert latex.type == "latex"
        assert latex.text_raw == "E=mc^2"
        assert latex.caption == "Energy"
        assert latex.html_id == "eq"
        assert latex.children == []

    def test_media_list_children_are_media_leaves(self) -> None:
        nodes, root_id = _flatten({"title": "x", "Fig[image-list]": {"children": ["a.png", "b.png"]}})
        (gallery_id,) = nodes[root_id].children
        gallery = nodes[gallery_id]
        assert gallery.type == "image-list"
        assert [nodes[child].type for child in gallery.children] == ["image", "image"]
        _assert_integrity(nodes, root_id)


class TestTimeline:
    def test_empty_timeline_entry_is_hidden(self) -> None:
        nodes, root_id = _flatten({"T[timeline]": [{"[]": "entry"}, {"Named": "x"}, {"[panel]": "y"}, "plain"]})
        (timeline_id,) = nodes[root_id].children
        timeline = nodes[timeline_id]
        assert timeline.attr == {"childDisplay": "timeline"}
        untitled, named, styled, plain = (nodes[child] for child in timeline.children)
        assert untitled.text_raw is None
        assert untitled.attr == {"selfDisplay": "none"}
        assert named.attr == {}
        assert styled.attr == {"selfDisplay": "panel"}
        assert plain.attr == {}

    def test_only_immediate_timeline_parent_counts(self) -> None:
        nodes, root_id = _flatten({"T[timeline]": [{"Outer": [{"[]": "deep"}]}]})
        deep = next(node for node in nodes.values() if node.text_raw is None and node.type == "node")
        assert deep.attr == {}
