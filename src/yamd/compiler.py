"""YAMD compiler: source text (or a deserialized value) to a compiled document.

Stages run strictly in sequence, each consuming the previous stage's output:

    YAML -> node tree -> arena -> segments/assets -> asset scan -> ref labels

Public API:

* ``compile_yamd(source, options=...)`` - compile YAMD source text.
* ``compile_value(value, options=...)`` - compile an already-deserialized value.
* ``compile_result_to_dict(result)`` - the renderer-facing output record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from yamd.flatten import DEFAULT_ID_PREFIX, DEFAULT_ID_WIDTH, flatten_tree
from yamd.references import resolve_ref_labels
from yamd.segments import analyze_segments, scan_assets
from yamd.tree_builder import YamdStructureError, build_node_tree
from yamd.types import CompiledDocument, GenericValue, document_to_dict
from yamd.yaml_source import parse_yaml_source

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Result codes
# ---------------------------------------------------------------------------

CODE_OK = 0
CODE_INVALID_INPUT = -1
CODE_YAML_ERROR = -2
CODE_BAD_TOP_LEVEL = -3
CODE_TOO_DEEP = -4

# Recursive aliases (`a: &x [1, *x]`) load as self-containing values.
_TOO_DEEP_MESSAGE = "document nests too deeply or contains itself"


@dataclass(frozen=True, slots=True)
class CompileOptions:
    id_prefix: str = DEFAULT_ID_PREFIX
    id_width: int = DEFAULT_ID_WIDTH
    process_segments: bool = True
    resolve_refs: bool = True

    def __post_init__(self) -> None:
        if not self.id_prefix:
            raise ValueError("id_prefix cannot be empty")
        if self.id_width < 1:
            raise ValueError("id_width must be positive")


@dataclass(frozen=True, slots=True)
class CompileResult:
    """Outcome of one compilation. `data` is None whenever `code` is negative."""

    code: int
    message: str
    data: CompiledDocument | None = None

    @property
    def ok(self) -> bool:
        return self.code == CODE_OK


def _failure(code: int, message: str) -> CompileResult:
    log.debug("compilation failed (%d): %s", code, message)
    return CompileResult(code=code, message=message)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def compile_value(value: GenericValue, *, options: CompileOptions | None = None) -> CompileResult:
    """Compile a deserialized value, skipping the YAML stage."""

    opts = options or CompileOptions()
    try:
        return _compile_tree(value, opts)
    except YamdStructureError as exc:
        return _failure(CODE_BAD_TOP_LEVEL, str(exc))
    except RecursionError:
        return _failure(CODE_TOO_DEEP, _TOO_DEEP_MESSAGE)


def _compile_tree(value: GenericValue, opts: CompileOptions) -> CompileResult:
    tree = build_node_tree(value)
    flat = flatten_tree(tree, id_prefix=opts.id_prefix, id_width=opts.id_width)
    document = CompiledDocument(nodes=flat.nodes, root_node_id=flat.root_id)

    if opts.process_segments:
        analysis = analyze_segments(document.nodes, id_width=opts.id_width)
        document.assets = analysis.assets
        document.refs = analysis.refs
        document.bibs = analysis.bibs
        document.bibs_lookup = analysis.bibs_lookup
        document.segments = analysis.segments
        scan_assets(document.nodes, document.root_node_id, document.assets)
        if opts.resolve_refs:
            resolve_ref_labels(document)

    log.debug(
        "compiled %d nodes, %d segments, %d assets",
        len(document.nodes),
        len(document.segments),
        len(document.assets),
    )
    return CompileResult(code=CODE_OK, message="ok", data=document)


def compile_yamd(source: object, *, options: CompileOptions | None = None) -> CompileResult:
    """Compile YAMD source text. Fatal problems come back as negative codes."""

    if not isinstance(source, str) or not source.strip():
        return _failure(CODE_INVALID_INPUT, "input must be a non-empty string")

    try:
        parsed = parse_yaml_source(source)
    except RecursionError:
        return _failure(CODE_TOO_DEEP, _TOO_DEEP_MESSAGE)
    if parsed.error is not None:
        return _failure(CODE_YAML_ERROR, f"YAML syntax error: {parsed.error}")
    return compile_value(parsed.value, options=options)


def compile_result_to_dict(result: CompileResult) -> dict[str, object]:
    return {
        "code": result.code,
        "message": result.message,
        "data": document_to_dict(result.data) if result.data is not None else None,
    }
