"""Tests for YAML loading and JSON I/O helpers."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from yamd.io_utils import dumps_json, load_json, load_source_text, save_json
from yamd.yaml_source import parse_yaml_source


class TestParseYamlSource:
    def test_mapping_order_is_preserved(self) -> None:
        result = parse_yaml_source("b: 1\na: 2\nc: 3\n")
        assert result.ok
        assert list(result.value) == ["b", "a", "c"]  # type: ignore[arg-type]

    def test_bracket_keys_need_quotes_only_at_start(self) -> None:
        result = parse_yaml_source('Title[divider]: x\n"[panel]Body": y\n')
        assert result.value == {"Title[divider]": "x", "[panel]Body": "y"}

    def test_syntax_error_reports_position(self) -> None:
        result = parse_yaml_source("a: 1\nb: [unclosed\n")
        assert not result.ok
        assert result.error is not None
        assert result.error.line is not None
        assert "line" in str(result.error)


class TestIoUtils:
    def test_dumps_keeps_key_order(self) -> None:
        payload = dumps_json({"b": 1, "a": [1, 2]}, pretty=False)
        assert payload == b'{"b":1,"a":[1,2]}'

    def test_save_and_load_round_trip(self, tmp_path: Path) -> None:
        target = tmp_path / "out" / "doc.json"
        save_json({"nodes": {}, "rootNodeId": "yamd_001"}, target)
        assert load_json(target) == {"nodes": {}, "rootNodeId": "yamd_001"}
        assert target.read_bytes().startswith(b"{\n  ")

    def test_source_text_strips_bom(self, tmp_path: Path) -> None:
        source = tmp_path / "doc.yaml"
        source.write_bytes(b"\xef\xbb\xbfIntro: hi\n")
        assert load_source_text(source) == "Intro: hi\n"
