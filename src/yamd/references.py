"""Cross-reference label derivation and resolution."""

from __future__ import annotations

import logging
import re

from yamd.types import Asset, CompiledDocument, GraphNode

log = logging.getLogger(__name__)

DEFAULT_EQUATION_TITLE = "Eq."

_DUAL_TARGET_RE = re.compile(r"^(?P<base>.+)-(?P<side>[01])$")
_DUAL_SIDES = {"0": "L", "1": "R"}


def find_target_node(target_id: str, nodes: dict[str, GraphNode]) -> GraphNode | None:
    """Look a reference target up by arena id, then by user-defined html id."""

    node = nodes.get(target_id)
    if node is not None:
        return node
    for candidate in nodes.values():
        if candidate.html_id == target_id:
            return candidate
    return None


def _image_label(node: GraphNode, assets: dict[str, Asset], side: str = "") -> str | None:
    if node.fig_num is None:
        return None
    asset = assets.get(node.asset_id) if node.asset_id else None
    subindex = asset.subindex if asset is not None and asset.subindex else ""
    return f"Fig. {node.fig_num}{subindex}{side}"


def derive_ref_label(
    target_id: str,
    nodes: dict[str, GraphNode],
    assets: dict[str, Asset],
) -> str | None:
    """Display text for an empty-label reference, or None while unresolved.

    Dual image targets are addressed as `<id>-0` and `<id>-1` and label as the
    left and right halves.
    """

    node = find_target_node(target_id, nodes)
    if node is None:
        match = _DUAL_TARGET_RE.match(target_id)
        if match is None:
            return None
        base = find_target_node(match.group("base"), nodes)
        if base is None or base.type != "image":
            return None
        return _image_label(base, assets, _DUAL_SIDES[match.group("side")])

    if node.type == "image":
        return _image_label(node, assets)

    asset = assets.get(node.asset_id) if node.asset_id else None
    if asset is None or asset.index_of_same_type is None:
        return None
    if node.type == "latex":
        return f"{asset.caption_title or DEFAULT_EQUATION_TITLE} {asset.index_of_same_type}"
    if node.type == "video":
        return f"Video {asset.index_str or asset.index_of_same_type}"
    return None


def resolve_ref_labels(document: CompiledDocument) -> int:
    """Fill labels of still-unresolved refs; returns how many were resolved."""

    resolved = 0
    for ref in document.refs.values():
        if ref.label is not None:
            continue
        label = derive_ref_label(ref.target_id, document.nodes, document.assets)
        if label is None:
            log.debug("reference %s to %r left unresolved", ref.id, ref.target_id)
            continue
        ref.label = label
        segment = document.segments.get(ref.segment_id)
        if segment is not None:
            segment.label = label
        resolved += 1
    return resolved
