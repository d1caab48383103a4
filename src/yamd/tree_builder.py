"""Generic value to typed node tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from yamd.attr_grammar import normalize_attr_key, parse_attr
from yamd.types import (
    LEAF_NODE_TYPES,
    MEDIA_LIST_TYPES,
    AttrParseResult,
    AttrValue,
    GenericValue,
    NodeType,
    TreeItem,
    TreeNode,
)

log = logging.getLogger(__name__)

# Keys that keep their own type instead of becoming a generic "node".
TYPED_NODE_TYPES: frozenset[str] = LEAF_NODE_TYPES | MEDIA_LIST_TYPES

# A null-valued key of one of these types may own its siblings.
INDENT_TOLERANT_TYPES: frozenset[str] = frozenset({"latex", "image", "video", "image-list"})

LIST_ATTR_KEYS: frozenset[str] = frozenset({"height", "width", "caption", "alignX", "subindex"})

_MEDIA_ITEM_TYPE: dict[str, NodeType] = {"image-list": "image", "video-list": "video"}

# Field name -> destination. "text_raw", "caption" and "html_id" are node slots,
# anything else is an attr key.
_LEAF_FIELDS: dict[str, dict[str, str]] = {
    "latex": {
        "content": "text_raw",
        "caption": "caption",
        "id": "html_id",
        "height": "height",
        "width": "width",
        "caption_title": "caption_title",
        "caption-title": "caption_title",
        "no_index": "no_index",
    },
    "image": {
        "src": "text_raw",
        "caption": "caption",
        "id": "html_id",
        "alt": "alt",
        "width": "width",
        "height": "height",
        "no_index": "no_index",
    },
    "video": {
        "src": "text_raw",
        "caption": "caption",
        "id": "html_id",
        "width": "width",
        "height": "height",
        "controls": "controls",
        "autoplay": "autoplay",
        "loop": "loop",
        "muted": "muted",
        "playOnLoad": "playOnLoad",
        "no_index": "no_index",
    },
}
_NODE_SLOTS = frozenset({"text_raw", "caption", "html_id"})


class YamdStructureError(ValueError):
    """Top-level value is neither a sequence nor a mapping."""


@dataclass(frozen=True, slots=True)
class _KeyEntry:
    key_text: str
    value: GenericValue
    parsed: AttrParseResult
    node_type: NodeType


def determine_node_type(attr: dict[str, AttrValue]) -> NodeType:
    declared = attr.get("type")
    if isinstance(declared, str) and declared in TYPED_NODE_TYPES:
        return declared  # type: ignore[return-value]
    return "node"


def scalar_to_text(value: object) -> str:
    """String form of a scalar as YAML would print it."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_scalar(value: object) -> bool:
    return not isinstance(value, (list, dict))


def _attr_scalar(value: object) -> AttrValue | None:
    if value is None or not _is_scalar(value):
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    return scalar_to_text(value)


def _classify(mapping: dict[object, GenericValue]) -> list[_KeyEntry]:
    entries: list[_KeyEntry] = []
    for key, value in mapping.items():
        key_text = key if isinstance(key, str) else scalar_to_text(key)
        parsed = parse_attr(key_text)
        entries.append(
            _KeyEntry(
                key_text=key_text,
                value=value,
                parsed=parsed,
                node_type=determine_node_type(parsed.attr),
            ),
        )
    return entries


def _find_indentation_mistake(entries: list[_KeyEntry]) -> _KeyEntry | None:
    if len(entries) < 2:
        return None
    for entry in entries:
        if entry.value is None and entry.node_type in INDENT_TOLERANT_TYPES:
            return entry
    return None


def _find_media_list(entries: list[_KeyEntry]) -> _KeyEntry | None:
    for entry in entries:
        if entry.node_type in MEDIA_LIST_TYPES:
            return entry
    return None


def _object_node(children: list[TreeItem]) -> TreeNode:
    return TreeNode(type="object", children=children)


def _apply_leaf_fields(node: TreeNode, leaf_type: str, fields: dict[object, GenericValue]) -> None:
    table = _LEAF_FIELDS[leaf_type]
    for raw_key, value in fields.items():
        key = scalar_to_text(raw_key).strip()
        target = table.get(key) or table.get(normalize_attr_key(key))
        if target is None or value is None or not _is_scalar(value):
            continue
        if target in _NODE_SLOTS:
            setattr(node, target, scalar_to_text(value))
        else:
            node.attr[target] = _attr_scalar(value)  # type: ignore[assignment]


def _sequence_fields(items: list[GenericValue]) -> dict[object, GenericValue]:
    """Merge a sequence of single-field mappings into one field mapping."""

    fields: dict[object, GenericValue] = {}
    for item in items:
        if isinstance(item, dict):
            fields.update(item)
    return fields


def build_leaf_node(parsed: AttrParseResult, leaf_type: str, value: GenericValue) -> TreeNode:
    """Build a latex/image/video node, absorbing `value` into its fields."""

    node = TreeNode(
        type=leaf_type,  # type: ignore[arg-type]
        text_raw=parsed.text_raw or "",
        text_original=parsed.text_original,
        attr=dict(parsed.attr),
        html_id=parsed.html_id,
    )
    if isinstance(value, dict):
        _apply_leaf_fields(node, leaf_type, value)
    elif isinstance(value, list):
        _apply_leaf_fields(node, leaf_type, _sequence_fields(value))
    elif value is not None:
        node.text_raw = scalar_to_text(value)
    return node


def coerce_media_item(item: GenericValue, media_type: str) -> TreeNode:
    """Force one media-list entry into an image or video leaf."""

    forced_attr: dict[str, AttrValue] = {"type": media_type, "selfDisplay": media_type}
    if isinstance(item, dict) and item:
        if "src" in item:
            src = scalar_to_text(item["src"])
            parsed = AttrParseResult(text_raw=src, attr=forced_attr, text_original=f"[{media_type}]{src}")
            return build_leaf_node(parsed, media_type, item)
        first_key, first_value = next(iter(item.items()))
        key_parsed = parse_attr(scalar_to_text(first_key))
        parsed = AttrParseResult(
            text_raw=key_parsed.text_raw,
            attr={**key_parsed.attr, **forced_attr},
            text_original=key_parsed.text_original or f"[{media_type}]",
            html_id=key_parsed.html_id,
        )
        return build_leaf_node(parsed, media_type, first_value)
    src = "" if isinstance(item, dict) else scalar_to_text(item)
    parsed = AttrParseResult(text_raw=src, attr=forced_attr, text_original=f"[{media_type}]{src}")
    return build_leaf_node(parsed, media_type, None)


def build_media_list_node(
    parsed: AttrParseResult,
    list_type: str,
    entries: dict[str, GenericValue],
) -> TreeNode:
    """Build an image-list/video-list node from every entry it consumed."""

    media_type = _MEDIA_ITEM_TYPE[list_type]
    attr = {key: value for key, value in parsed.attr.items() if key not in ("type", "selfDisplay")}
    node = TreeNode(
        type=list_type,  # type: ignore[arg-type]
        text_raw=parsed.text_raw or "",
        text_original=parsed.text_original,
        attr=attr,
        html_id=parsed.html_id,
    )
    for key, value in entries.items():
        if key in LIST_ATTR_KEYS:
            scalar = _attr_scalar(value)
            if scalar is None:
                continue
            if key == "caption":
                node.caption = scalar_to_text(scalar)
            else:
                node.attr[key] = scalar
        elif isinstance(value, list):
            node.children.extend(coerce_media_item(item, media_type) for item in value)
        elif key == "children":
            if value is not None:
                node.children.append(coerce_media_item(value, media_type))
        elif isinstance(value, dict) or value is None:
            # A bare `a.png:` entry is still a member.
            node.children.append(coerce_media_item({key: value}, media_type))
        else:
            # List-scoped attribute, e.g. a title next to the list key.
            node.attr[key] = _attr_scalar(value)  # type: ignore[assignment]
    return node


def _consumed_entries(entries: list[_KeyEntry], owner: _KeyEntry) -> dict[str, GenericValue]:
    consumed: dict[str, GenericValue] = {
        entry.key_text: entry.value for entry in entries if entry is not owner
    }
    main = owner.value
    if isinstance(main, list):
        consumed["children"] = main
    elif isinstance(main, dict):
        consumed.update({scalar_to_text(key): value for key, value in main.items()})
    elif main is not None:
        consumed["children"] = [main]
    return consumed


def _build_keyed_node(entry: _KeyEntry) -> TreeNode:
    parsed = entry.parsed
    if entry.node_type in LEAF_NODE_TYPES:
        return build_leaf_node(parsed, entry.node_type, entry.value)

    value = entry.value
    if isinstance(value, list):
        children = [build_item(item) for item in value]
    elif value is None:
        children = []
    else:
        children = [build_item(value)]
    return TreeNode(
        type="node",
        text_raw=parsed.text_raw,
        text_original=parsed.text_original,
        attr=dict(parsed.attr),
        children=children,
        html_id=parsed.html_id,
    )


def build_mapping(mapping: dict[object, GenericValue]) -> TreeNode:
    """Build an object node, applying the whole-mapping grammar rules first."""

    entries = _classify(mapping)

    mistake = _find_indentation_mistake(entries)
    if mistake is not None:
        fields = {entry.key_text: entry.value for entry in entries if entry is not mistake}
        log.debug("leaf key %r has null value; absorbing %d sibling entries", mistake.key_text, len(fields))
        if mistake.node_type in MEDIA_LIST_TYPES:
            leaf = build_media_list_node(mistake.parsed, mistake.node_type, fields)
        else:
            leaf = build_leaf_node(mistake.parsed, mistake.node_type, fields)
        return _object_node([leaf])

    media_list = _find_media_list(entries)
    if media_list is not None:
        log.debug("%s key %r consumes %d entries", media_list.node_type, media_list.key_text, len(entries))
        consumed = _consumed_entries(entries, media_list)
        return _object_node([build_media_list_node(media_list.parsed, media_list.node_type, consumed)])

    return _object_node([_build_keyed_node(entry) for entry in entries])


def build_item(value: GenericValue) -> TreeItem:
    """Recursively map one generic value; never raises."""

    if isinstance(value, str):
        parsed = parse_attr(value)
        return TreeNode(
            type="text",
            text_raw=parsed.text_raw,
            text_original=parsed.text_original,
            attr=dict(parsed.attr),
            html_id=parsed.html_id,
        )
    if isinstance(value, list):
        return TreeNode(type="array", children=[build_item(item) for item in value])
    if isinstance(value, dict):
        return build_mapping(value)
    if value is None or isinstance(value, (bool, int, float)):
        return value
    # Dates and other tagged scalars the deserializer may produce.
    return build_item(scalar_to_text(value))


def build_node_tree(value: GenericValue) -> TreeNode:
    """Build the typed tree for a whole document.

    The root is always an array node; a top-level mapping is wrapped as a
    one-element sequence.
    """

    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        raise YamdStructureError(
            f"expected a sequence or mapping at top level, got {type(value).__name__}",
        )
    return TreeNode(type="array", children=[build_item(item) for item in value])
