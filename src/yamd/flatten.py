"""Typed node tree to id-addressed arena."""

from __future__ import annotations

from dataclasses import dataclass, field

from yamd.tree_builder import scalar_to_text
from yamd.types import AttrValue, GraphNode, TreeItem, TreeNode

DEFAULT_ID_PREFIX = "yamd_"
DEFAULT_ID_WIDTH = 3

ARRAY_ATTR: dict[str, str] = {"selfDisplay": "none", "childDisplay": "pl"}


@dataclass(slots=True)
class FlattenResult:
    nodes: dict[str, GraphNode] = field(default_factory=dict)
    root_id: str = ""


class IdCounter:
    """Monotonic zero-padded id source scoped to one compilation."""

    __slots__ = ("prefix", "width", "value")

    def __init__(self, prefix: str = DEFAULT_ID_PREFIX, width: int = DEFAULT_ID_WIDTH) -> None:
        if width < 1:
            raise ValueError("id width must be positive")
        self.prefix = prefix
        self.width = width
        self.value = 0

    def next_id(self) -> str:
        self.value += 1
        return f"{self.prefix}{self.value:0{self.width}d}"


class _Flattener:
    def __init__(self, counter: IdCounter) -> None:
        self.counter = counter
        self.nodes: dict[str, GraphNode] = {}

    def visit(self, item: TreeItem, parent_id: str | None) -> str:
        node_id = self.counter.next_id()
        if not isinstance(item, TreeNode):
            text = None if item is None else scalar_to_text(item)
            scalar_attr: dict[str, AttrValue] = {}
            if text is None and self._parent_is_timeline(parent_id):
                scalar_attr["selfDisplay"] = "none"
            self.nodes[node_id] = GraphNode(
                id=node_id,
                type="text",
                parent_id=parent_id,
                text_raw=text,
                text_original=text or "",
                attr=scalar_attr,
            )
            return node_id

        if item.type == "object" and len(item.children) == 1:
            # Single-entry mapping: the entry stands in for its wrapper.
            return self.visit(item.children[0], parent_id)

        attr = dict(ARRAY_ATTR) if item.type == "array" else dict(item.attr)
        if not item.text_raw and "selfDisplay" not in attr and self._parent_is_timeline(parent_id):
            attr["selfDisplay"] = "none"

        record = GraphNode(
            id=node_id,
            type=item.type,
            parent_id=parent_id,
            text_raw=item.text_raw,
            text_original=item.text_original,
            attr=attr,
            caption=item.caption,
            html_id=item.html_id,
        )
        # Recorded before the children so the timeline check can see it.
        self.nodes[node_id] = record
        for child in item.children:
            record.children.append(self.visit(child, node_id))
        return node_id

    def _parent_is_timeline(self, parent_id: str | None) -> bool:
        if parent_id is None:
            return False
        parent = self.nodes.get(parent_id)
        return parent is not None and parent.attr.get("childDisplay") == "timeline"


def flatten_tree(
    tree: TreeNode,
    *,
    id_prefix: str = DEFAULT_ID_PREFIX,
    id_width: int = DEFAULT_ID_WIDTH,
) -> FlattenResult:
    """Flatten a node tree depth-first, pre-order, into an arena.

    Every visited construct draws an id, including single-entry mappings that
    collapse into their entry, so ids are dense only up to those gaps.
    """

    flattener = _Flattener(IdCounter(id_prefix, id_width))
    root_id = flattener.visit(tree, None)
    return FlattenResult(nodes=flattener.nodes, root_id=root_id)
