"""Core types for the YAMD compilation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, TypeAlias, Union


AttrValue: TypeAlias = str | int | float | bool
ScalarValue: TypeAlias = str | int | float | bool | None
NodeType: TypeAlias = Literal[
    "text",
    "node",
    "latex",
    "image",
    "video",
    "image-list",
    "video-list",
    "array",
    "object",
]
SegmentType: TypeAlias = Literal["text", "latex_inline", "ref-asset", "ref-bib"]
AssetType: TypeAlias = Literal["latex", "latex-block", "image", "video"]
TreeItem: TypeAlias = Union["TreeNode", int, float, bool, None]
GenericValue: TypeAlias = Union[str, int, float, bool, None, list["GenericValue"], dict[object, "GenericValue"]]


LEAF_NODE_TYPES: frozenset[str] = frozenset({"latex", "image", "video"})
MEDIA_LIST_TYPES: frozenset[str] = frozenset({"image-list", "video-list"})


@dataclass(frozen=True, slots=True)
class AttrParseResult:
    """Attribute grammar result for one scalar key or string."""

    text_raw: str | None
    attr: dict[str, AttrValue]
    text_original: str
    html_id: str | None = None

    def __post_init__(self) -> None:
        if "id" in self.attr:
            raise ValueError("id must be carried as html_id, not inside attr")


@dataclass(slots=True)
class TreeNode:
    """Typed node produced by the tree builder; discarded after flattening."""

    type: NodeType
    text_raw: str | None = None
    text_original: str = ""
    attr: dict[str, AttrValue] = field(default_factory=dict)
    children: list[TreeItem] = field(default_factory=list)
    caption: str | None = None
    html_id: str | None = None


@dataclass(slots=True)
class GraphNode:
    """Arena record. Parent and children are ids, never object references."""

    id: str
    type: NodeType
    parent_id: str | None
    text_raw: str | None = None
    text_original: str = ""
    attr: dict[str, AttrValue] = field(default_factory=dict)
    children: list[str] = field(default_factory=list)
    caption: str | None = None
    html_id: str | None = None
    segments: list[str] | None = None
    asset_id: str | None = None
    fig_num: int | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("node id cannot be empty")
        if self.parent_id == self.id:
            raise ValueError(f"node {self.id} cannot be its own parent")

    @property
    def is_leaf(self) -> bool:
        return self.type in LEAF_NODE_TYPES


@dataclass(slots=True)
class Segment:
    """One inline fragment of a node's text, in reading order."""

    id: str
    type: SegmentType
    text_raw: str
    parent_id: str
    asset_id: str | None = None
    ref_id: str | None = None
    target_id: str | None = None
    link_text: str | None = None
    label: str | None = None
    bib_keys: tuple[str, ...] = ()
    bib_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("segment id cannot be empty")
        if self.type == "latex_inline" and not self.asset_id:
            raise ValueError("latex_inline segment must reference an asset")
        if self.type == "ref-asset" and not (self.ref_id and self.target_id):
            raise ValueError("ref-asset segment must carry ref_id and target_id")
        if self.type == "ref-bib" and len(self.bib_keys) != len(self.bib_ids):
            raise ValueError("ref-bib segment needs one bib id per key")


@dataclass(slots=True)
class Asset:
    """Registry entry for content that is rendered or numbered externally."""

    id: str
    type: AssetType
    content: str
    node_id: str | None = None
    segment_id: str | None = None
    caption: str | None = None
    caption_title: str | None = None
    no_index: bool = False
    index_of_same_type: int | None = None
    subindex: str | None = None
    index_str: str | None = None
    options: dict[str, AttrValue] = field(default_factory=dict)


@dataclass(slots=True)
class RefEntry:
    """One `\\ref{label}{target}` occurrence."""

    id: str
    target_id: str
    link_text: str
    source_node_id: str | None
    segment_id: str
    label: str | None = None

    @property
    def resolved(self) -> bool:
        return self.label is not None


@dataclass(slots=True)
class BibEntry:
    """Bibliography key with the nodes citing it, in first-seen order."""

    id: str
    bib_key: str
    referenced_by: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CompiledDocument:
    """Everything one compilation produces. Owned by a single caller."""

    nodes: dict[str, GraphNode]
    root_node_id: str
    assets: dict[str, Asset] = field(default_factory=dict)
    refs: dict[str, RefEntry] = field(default_factory=dict)
    bibs: dict[str, BibEntry] = field(default_factory=dict)
    bibs_lookup: dict[str, str] = field(default_factory=dict)
    segments: dict[str, Segment] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.root_node_id not in self.nodes:
            raise ValueError(f"root node {self.root_node_id!r} missing from arena")


def _compact(payload: dict[str, object]) -> dict[str, object]:
    return {key: value for key, value in payload.items() if value is not None}


def graph_node_to_dict(node: GraphNode) -> dict[str, object]:
    """Serialize one arena record using the renderer's camelCase keys."""

    payload: dict[str, object] = {
        "id": node.id,
        "type": node.type,
        "parentId": node.parent_id,
        "textRaw": node.text_raw,
        "textOriginal": node.text_original,
        "attr": dict(node.attr),
        "children": list(node.children),
    }
    # Optional fields are omitted rather than emitted as null.
    payload.update(
        _compact(
            {
                "caption": node.caption,
                "htmlId": node.html_id,
                "segments": list(node.segments) if node.segments is not None else None,
                "assetId": node.asset_id,
                "figNum": node.fig_num,
            },
        ),
    )
    return payload


def segment_to_dict(segment: Segment) -> dict[str, object]:
    payload = _compact(
        {
            "id": segment.id,
            "type": segment.type,
            "textRaw": segment.text_raw,
            "parentId": segment.parent_id,
            "assetId": segment.asset_id,
            "refId": segment.ref_id,
            "targetId": segment.target_id,
            "linkText": segment.link_text,
            "label": segment.label,
        },
    )
    if segment.type == "ref-bib":
        payload["bibKeys"] = list(segment.bib_keys)
        payload["bibIds"] = list(segment.bib_ids)
    return payload


def asset_to_dict(asset: Asset) -> dict[str, object]:
    return _compact(
        {
            "id": asset.id,
            "type": asset.type,
            "content": asset.content,
            "nodeId": asset.node_id,
            "segmentId": asset.segment_id,
            "caption": asset.caption,
            "captionTitle": asset.caption_title,
            "no_index": asset.no_index,
            "indexOfSameType": asset.index_of_same_type,
            "subindex": asset.subindex,
            "indexStr": asset.index_str,
            "options": dict(sorted(asset.options.items())) if asset.options else None,
        },
    )


def ref_entry_to_dict(ref: RefEntry) -> dict[str, object]:
    return {
        "id": ref.id,
        "targetId": ref.target_id,
        "linkText": ref.link_text,
        "sourceNodeId": ref.source_node_id,
        "segmentId": ref.segment_id,
        "label": ref.label,
    }


def bib_entry_to_dict(bib: BibEntry) -> dict[str, object]:
    return {
        "id": bib.id,
        "bibKey": bib.bib_key,
        "referencedBy": list(bib.referenced_by),
    }


def document_to_dict(document: CompiledDocument) -> dict[str, object]:
    """Serialize a compiled document to a deterministic JSON-safe dict."""

    return {
        "nodes": {node_id: graph_node_to_dict(node) for node_id, node in document.nodes.items()},
        "rootNodeId": document.root_node_id,
        "assets": {asset_id: asset_to_dict(asset) for asset_id, asset in document.assets.items()},
        "refs": {ref_id: ref_entry_to_dict(ref) for ref_id, ref in document.refs.items()},
        "bibs": {bib_id: bib_entry_to_dict(bib) for bib_id, bib in document.bibs.items()},
        "bibsLookup": dict(document.bibs_lookup),
        "segments": {
            segment_id: segment_to_dict(segment)
            for segment_id, segment in document.segments.items()
        },
    }
