"""Inline segmentation of node text and asset indexing.

Recognized markup, in priority order:

    $x+y$                  inline math (not `$ref{`)
    \\ref{label}{target}    cross-reference; empty label is derived later
    \\bib{key1, key2}       bibliography citation, one segment per key
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from yamd.flatten import DEFAULT_ID_WIDTH, IdCounter
from yamd.references import derive_ref_label
from yamd.types import (
    Asset,
    AttrValue,
    BibEntry,
    GraphNode,
    RefEntry,
    Segment,
)

log = logging.getLogger(__name__)

SEGMENT_PATTERN = re.compile(
    r"(?P<math>\$(?!ref\{)(?P<math_body>[^$]*)\$)"
    r"|(?P<ref>\\ref\{(?P<ref_label>[^}]*)\}\{(?P<ref_target>[^}]*)\})"
    r"|(?P<bib>\\bib\{(?P<bib_keys>[\w.-]+(?:\s*,\s*[\w.-]+)*)\})",
)
_INLINE_MATH_RE = re.compile(r"\$(?!ref\{)[^$]*\S[^$]*\$")
_REF_RE = re.compile(r"\\ref\{[^}]*\}\{[^}]*\S[^}]*\}")
_BIB_RE = re.compile(r"\\bib\{[\w.-]+(?:\s*,\s*[\w.-]+)*\}")

BIB_KEY_PREFIX = "bib."
INDEXED_ASSET_TYPES: tuple[str, ...] = ("latex-block", "image", "video")
DEFAULT_SUBINDEX_SCHEME = "abc"

_BLOCK_ASSET_TYPES = {"latex": "latex-block", "image": "image", "video": "video"}
_ASSET_OPTION_KEYS: dict[str, tuple[str, ...]] = {
    "latex": ("height", "width"),
    "image": ("alt", "width", "height"),
    "video": ("width", "height", "controls", "autoplay", "loop", "muted", "playOnLoad"),
}
_LIST_MEMBER_TYPES = {"image": "image-list", "video": "video-list"}
_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})


@dataclass(slots=True)
class SegmentAnalysis:
    nodes: dict[str, GraphNode]
    assets: dict[str, Asset] = field(default_factory=dict)
    refs: dict[str, RefEntry] = field(default_factory=dict)
    bibs: dict[str, BibEntry] = field(default_factory=dict)
    bibs_lookup: dict[str, str] = field(default_factory=dict)
    segments: dict[str, Segment] = field(default_factory=dict)


def is_flag_set(value: AttrValue | None) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def split_bib_keys(raw: str) -> list[str]:
    keys: list[str] = []
    for item in raw.split(","):
        key = item.strip().removeprefix(BIB_KEY_PREFIX).strip()
        if key:
            keys.append(key)
    return keys


class SegmentAnalyzer:
    """Segments node text and grows the registries of one compilation."""

    def __init__(
        self,
        nodes: dict[str, GraphNode],
        *,
        assets: dict[str, Asset] | None = None,
        id_width: int = DEFAULT_ID_WIDTH,
    ) -> None:
        self.result = SegmentAnalysis(nodes=nodes, assets={} if assets is None else assets)
        self._segment_ids = IdCounter("seg_", id_width)
        self._ref_ids = IdCounter("ref_", id_width)
        self._bib_ids = IdCounter("bib_", id_width)
        # Inline and block math share one id sequence.
        self._asset_ids = {
            "latex": IdCounter("latex_", id_width),
            "image": IdCounter("image_", id_width),
            "video": IdCounter("video_", id_width),
        }

    def _add_segment(self, segment: Segment) -> Segment:
        self.result.segments[segment.id] = segment
        return segment

    def _text_segment(self, text: str, parent_id: str) -> Segment:
        return self._add_segment(
            Segment(id=self._segment_ids.next_id(), type="text", text_raw=text, parent_id=parent_id),
        )

    def _math_segment(self, body: str, markup: str, parent_id: str) -> Segment:
        if not body.strip():
            return self._text_segment(markup, parent_id)
        segment_id = self._segment_ids.next_id()
        asset_id = self._asset_ids["latex"].next_id()
        self.result.assets[asset_id] = Asset(
            id=asset_id,
            type="latex",
            content=body,
            node_id=parent_id,
            segment_id=segment_id,
        )
        return self._add_segment(
            Segment(
                id=segment_id,
                type="latex_inline",
                text_raw=body,
                parent_id=parent_id,
                asset_id=asset_id,
            ),
        )

    def _ref_segment(self, label: str, target: str, markup: str, parent_id: str) -> Segment:
        target_id = target.strip()
        if not target_id:
            return self._text_segment(markup, parent_id)
        segment_id = self._segment_ids.next_id()
        ref_id = self._ref_ids.next_id()
        if label.strip():
            resolved: str | None = label
        else:
            resolved = derive_ref_label(target_id, self.result.nodes, self.result.assets)
        self.result.refs[ref_id] = RefEntry(
            id=ref_id,
            target_id=target_id,
            link_text=label,
            source_node_id=parent_id,
            segment_id=segment_id,
            label=resolved,
        )
        return self._add_segment(
            Segment(
                id=segment_id,
                type="ref-asset",
                text_raw=markup,
                parent_id=parent_id,
                ref_id=ref_id,
                target_id=target_id,
                link_text=label,
                label=resolved,
            ),
        )

    def _bib_id(self, key: str, source_node_id: str) -> str:
        bib_id = self.result.bibs_lookup.get(key)
        if bib_id is None:
            bib_id = self._bib_ids.next_id()
            self.result.bibs_lookup[key] = bib_id
            self.result.bibs[bib_id] = BibEntry(id=bib_id, bib_key=key)
        entry = self.result.bibs[bib_id]
        if source_node_id not in entry.referenced_by:
            entry.referenced_by.append(source_node_id)
        return bib_id

    def _bib_segments(self, raw_keys: str, markup: str, parent_id: str) -> list[Segment]:
        keys = split_bib_keys(raw_keys)
        if not keys:
            return [self._text_segment(markup, parent_id)]
        segments: list[Segment] = []
        for key in keys:
            bib_id = self._bib_id(key, parent_id)
            segments.append(
                self._add_segment(
                    Segment(
                        id=self._segment_ids.next_id(),
                        type="ref-bib",
                        text_raw=markup if len(keys) == 1 else f"\\bib{{{key}}}",
                        parent_id=parent_id,
                        bib_keys=(key,),
                        bib_ids=(bib_id,),
                    ),
                ),
            )
        return segments

    def segment_text(self, text: str, parent_id: str) -> list[Segment]:
        """Split `text` left to right into typed segments, registering as it goes."""

        if not text:
            return [self._text_segment(text, parent_id)]
        segments: list[Segment] = []
        position = 0
        for match in SEGMENT_PATTERN.finditer(text):
            if match.start() > position:
                segments.append(self._text_segment(text[position:match.start()], parent_id))
            markup = match.group(0)
            if match.group("math") is not None:
                segments.append(self._math_segment(match.group("math_body"), markup, parent_id))
            elif match.group("ref") is not None:
                segments.append(
                    self._ref_segment(match.group("ref_label"), match.group("ref_target"), markup, parent_id),
                )
            else:
                segments.extend(self._bib_segments(match.group("bib_keys"), markup, parent_id))
            position = match.end()
        if position < len(text):
            segments.append(self._text_segment(text[position:], parent_id))
        return segments

    def register_block_asset(self, node: GraphNode) -> Asset:
        """Register a latex/image/video leaf as a block asset."""

        asset_id = self._asset_ids[node.type].next_id()
        caption_title = node.attr.get("caption_title")
        asset = Asset(
            id=asset_id,
            type=_BLOCK_ASSET_TYPES[node.type],  # type: ignore[arg-type]
            content=node.text_raw or "",
            node_id=node.id,
            caption=node.caption,
            caption_title=str(caption_title) if caption_title is not None else None,
            no_index=is_flag_set(node.attr.get("no_index")),
            options={
                key: node.attr[key]
                for key in _ASSET_OPTION_KEYS[node.type]
                if node.attr.get(key) is not None
            },
        )
        self.result.assets[asset_id] = asset
        node.asset_id = asset_id
        return asset

    def analyze(self) -> SegmentAnalysis:
        for node in self.result.nodes.values():
            if node.is_leaf:
                self.register_block_asset(node)
            elif node.text_raw:
                node.segments = [segment.id for segment in self.segment_text(node.text_raw, node.id)]
        log.debug(
            "segmented %d nodes: %d assets, %d refs, %d bibs",
            sum(1 for node in self.result.nodes.values() if node.segments),
            len(self.result.assets),
            len(self.result.refs),
            len(self.result.bibs),
        )
        return self.result


def analyze_segments(
    nodes: dict[str, GraphNode],
    *,
    assets: dict[str, Asset] | None = None,
    id_width: int = DEFAULT_ID_WIDTH,
) -> SegmentAnalysis:
    """Segment every text-bearing node in arena order; leaf nodes become block assets."""

    return SegmentAnalyzer(nodes, assets=assets, id_width=id_width).analyze()


def compute_subindex(scheme: str, position: int, count: int) -> str:
    if scheme == "LR" and count == 2:
        return "L" if position == 0 else "R"
    if scheme == "abc":
        return chr(ord("a") + position)
    if scheme == "ABC":
        return chr(ord("A") + position)
    if scheme == "123":
        return str(position + 1)
    if position < len(scheme):
        return scheme[position]
    return str(position + 1)


def _walk_preorder(nodes: dict[str, GraphNode], root_id: str) -> list[GraphNode]:
    ordered: list[GraphNode] = []
    stack = [root_id]
    while stack:
        node = nodes.get(stack.pop())
        if node is None:
            continue
        ordered.append(node)
        stack.extend(reversed(node.children))
    return ordered


def scan_assets(nodes: dict[str, GraphNode], root_id: str, assets: dict[str, Asset]) -> None:
    """Assign `index_of_same_type` to block assets in tree order.

    Members of an image-list/video-list share the list's base index and get a
    subindex from the list's scheme. Image nodes receive their figure number.
    """

    counters = dict.fromkeys(INDEXED_ASSET_TYPES, 0)
    list_bases: dict[str, int] = {}

    for node in _walk_preorder(nodes, root_id):
        asset = assets.get(node.asset_id) if node.asset_id else None
        if asset is None or asset.type not in counters:
            continue
        if asset.no_index:
            asset.index_of_same_type = None
            continue

        parent = nodes.get(node.parent_id) if node.parent_id else None
        if parent is not None and parent.type == _LIST_MEMBER_TYPES.get(node.type):
            if parent.id not in list_bases:
                counters[asset.type] += 1
                list_bases[parent.id] = counters[asset.type]
            scheme = parent.attr.get("subindex")
            subindex = compute_subindex(
                str(scheme) if scheme else DEFAULT_SUBINDEX_SCHEME,
                parent.children.index(node.id),
                len(parent.children),
            )
            asset.index_of_same_type = list_bases[parent.id]
            asset.subindex = subindex
            asset.index_str = f"{asset.index_of_same_type}{subindex}"
        else:
            counters[asset.type] += 1
            asset.index_of_same_type = counters[asset.type]
            asset.subindex = None
            asset.index_str = str(asset.index_of_same_type)

        if node.type == "image":
            node.fig_num = asset.index_of_same_type


def has_inline_latex(text: str) -> bool:
    return bool(text) and _INLINE_MATH_RE.search(text) is not None


def has_references(text: str) -> bool:
    return bool(text) and _REF_RE.search(text) is not None


def has_bib_citations(text: str) -> bool:
    return bool(text) and _BIB_RE.search(text) is not None


def segments_to_text(segments: list[Segment]) -> str:
    """Rebuild source text; math bodies are re-wrapped in `$`."""

    return "".join(
        f"${segment.text_raw}$" if segment.type == "latex_inline" else segment.text_raw
        for segment in segments
    )


def segments_to_mathjax(segments: list[Segment]) -> str:
    return "".join(
        f"\\({segment.text_raw}\\)" if segment.type == "latex_inline" else segment.text_raw
        for segment in segments
    )
