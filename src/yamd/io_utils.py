"""I/O utilities: YAMD source loading and orjson-backed JSON output."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def load_source_text(path: Path) -> str:
    """Read a YAMD source file as UTF-8, tolerating a leading BOM."""
    return path.read_text(encoding="utf-8-sig")


def load_json(path: Path) -> Any:
    return orjson.loads(path.read_bytes())


def dumps_json(obj: Any, *, pretty: bool = True) -> bytes:
    """Serialize with orjson. Key order is kept: arena order is meaningful."""
    return orjson.dumps(obj, option=orjson.OPT_INDENT_2 if pretty else 0)


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps_json(obj, pretty=pretty))
