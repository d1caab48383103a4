"""Square-bracket attribute grammar for YAMD keys and strings.

Examples::

    Hello[divider]              -> text "Hello", {selfDisplay: divider}
    [latex]Energy               -> text "Energy", {type: latex, selfDisplay: latex}
    Items[child=ul,class=tight] -> text "Items", {childDisplay: ul, selfClass: tight}
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from yamd.types import AttrParseResult, AttrValue


ATTR_WHITELIST: frozenset[str] = frozenset({
    "selfDisplay",
    "childDisplay",
    "selfClass",
    "childClass",
    "alignX",
    "alignY",
    "panelDefault",
    "type",
    "valueNum",
    "alt",
    "width",
    "height",
    "controls",
    "autoplay",
    "loop",
    "muted",
    "playOnLoad",
    "caption_title",
    "no_index",
})

# Recognized, but routed to the node's html_id instead of attr.
HTML_ID_KEY = "id"

CHILD_DISPLAY_VALUES: frozenset[str] = frozenset({"ul", "ol", "pl", "p", "timeline"})

_SPAN_RE = re.compile(r"\[([^\[\]]*)\]")
_QUOTE_EDGE_RE = re.compile(r"^[\"']|[\"']$")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")

_KEY_SYNONYMS: dict[str, str] = {
    "style": "selfDisplay",
    "self": "selfDisplay",
    "display": "selfDisplay",
    "selfdisplay": "selfDisplay",
    "self_display": "selfDisplay",
    "selfstyle": "selfDisplay",
    "self_style": "selfDisplay",
    "child": "childDisplay",
    "childstyle": "childDisplay",
    "child_style": "childDisplay",
    "childdisplay": "childDisplay",
    "child_display": "childDisplay",
    "class": "selfClass",
    "selfclass": "selfClass",
    "self_class": "selfClass",
    "childclass": "childClass",
    "child_class": "childClass",
    "valuenum": "valueNum",
    "value_num": "valueNum",
    "paneldefault": "panelDefault",
    "panel_default": "panelDefault",
    "alignx": "alignX",
    "align_x": "alignX",
    "aligny": "alignY",
    "align_y": "alignY",
    "captiontitle": "caption_title",
    "caption-title": "caption_title",
    "noindex": "no_index",
    "no-index": "no_index",
    "playonload": "playOnLoad",
    "play_on_load": "playOnLoad",
}

_CHILD_DISPLAY_SYNONYMS: dict[str, str] = {
    "unordered-list": "ul",
    "unordered_list": "ul",
    "bullet-list": "ul",
    "bullet_list": "ul",
    "ordered-list": "ol",
    "ordered_list": "ol",
    "numbered-list": "ol",
    "numbered_list": "ol",
    "paragraph": "p",
    "paragraphs": "p",
    "paragraph-list": "p",
    "paragraph_list": "p",
    "plain-list": "pl",
    "plain_list": "pl",
    "plainlist": "pl",
}

_LEAF_SHORTHANDS: dict[str, str] = {
    "latex": "latex",
    "image": "image",
    "img": "image",
    "video": "video",
    "vid": "video",
    "image-list": "image-list",
    "imagelist": "image-list",
    "video-list": "video-list",
    "videolist": "video-list",
}


@dataclass(frozen=True, slots=True)
class _Span:
    start: int
    end: int
    content: str


def normalize_attr_key(key: str) -> str:
    """Map a key synonym to its canonical attribute name."""

    return _KEY_SYNONYMS.get(key.strip().lower(), key.strip())


def normalize_attr_value(key: str, value: str) -> str:
    """Normalize long-form childDisplay values; other keys pass through."""

    if key != "childDisplay":
        return value
    lowered = value.strip().lower()
    if lowered in CHILD_DISPLAY_VALUES:
        return lowered
    return _CHILD_DISPLAY_SYNONYMS.get(lowered, value)


def parse_shorthand_attr(shorthand: str) -> dict[str, AttrValue]:
    """Resolve a bracket word with no `=` sign."""

    word = shorthand.strip().lower()
    leaf_type = _LEAF_SHORTHANDS.get(word)
    if leaf_type is not None:
        return {"type": leaf_type, "selfDisplay": leaf_type}
    child_display = normalize_attr_value("childDisplay", word)
    if child_display in CHILD_DISPLAY_VALUES:
        return {"childDisplay": child_display}
    return {"selfDisplay": word}


def _find_spans(text: str) -> list[_Span]:
    return [
        _Span(start=match.start(), end=match.end(), content=match.group(1))
        for match in _SPAN_RE.finditer(text)
    ]


def _select_active_span(spans: list[_Span], text_length: int) -> _Span | None:
    first = spans[0]
    if first.start == 0 and first.content.strip():
        return first
    last = spans[-1]
    if last.end == text_length and last.content.strip():
        return last
    for span in spans:
        if span.content.strip():
            return span
    return None


def _cut(text: str, span: _Span) -> str:
    return (text[:span.start] + text[span.end:]).strip()


def _coerce_value(key: str, raw_value: str) -> AttrValue:
    value = _QUOTE_EDGE_RE.sub("", normalize_attr_value(key, raw_value))
    if key == "valueNum":
        # Leading integer wins: "3.7" and "3px" both give 3.
        number = _LEADING_INT_RE.match(value.strip())
        if number is not None:
            return int(number.group(0))
    return value


def _parse_attr_body(body: str) -> tuple[dict[str, AttrValue], str | None]:
    """Parse bracket content into (attr, html_id)."""

    if "=" not in body:
        return parse_shorthand_attr(body), None

    attr: dict[str, AttrValue] = {}
    html_id: str | None = None
    for pair in (item.strip() for item in body.split(",")):
        if not pair:
            continue
        if "=" not in pair:
            attr.update(parse_shorthand_attr(pair))
            continue
        raw_key, _, raw_value = pair.partition("=")
        if not raw_key.strip():
            continue
        key = normalize_attr_key(raw_key)
        value = _coerce_value(key, raw_value.strip())
        if key == HTML_ID_KEY:
            html_id = str(value)
        elif key in ATTR_WHITELIST:
            attr[key] = value
    return attr, html_id


def parse_attr(text: object) -> AttrParseResult:
    """Split a scalar into display text and its bracket attributes.

    Never raises: input that cannot be interpreted yields an empty attr set.
    """

    if not isinstance(text, str):
        return AttrParseResult(text_raw=None, attr={}, text_original="")
    trimmed = text.strip()
    if not trimmed:
        return AttrParseResult(text_raw=None, attr={}, text_original=trimmed)

    spans = _find_spans(trimmed)
    if not spans:
        return AttrParseResult(text_raw=trimmed, attr={}, text_original=trimmed)

    active = _select_active_span(spans, len(trimmed))
    if active is None:
        # Every span is empty.
        if len(spans) == 1:
            return AttrParseResult(
                text_raw=_cut(trimmed, spans[0]) or None,
                attr={},
                text_original=trimmed,
            )
        if trimmed == "[][]":
            return AttrParseResult(text_raw="[]", attr={}, text_original=trimmed)
        return AttrParseResult(
            text_raw=_cut(trimmed, spans[-1]),
            attr={},
            text_original=trimmed,
        )

    attr, html_id = _parse_attr_body(active.content.strip())
    return AttrParseResult(
        text_raw=_cut(trimmed, active) or None,
        attr=attr,
        text_original=trimmed,
        html_id=html_id,
    )
