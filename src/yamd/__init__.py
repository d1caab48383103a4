"""YAMD compiler: bracket-attributed YAML to an id-addressed document graph."""

from yamd.attr_grammar import parse_attr
from yamd.compiler import (
    CompileOptions,
    CompileResult,
    compile_result_to_dict,
    compile_value,
    compile_yamd,
)
from yamd.document_view import DocumentView, MissingEntry
from yamd.flatten import FlattenResult, flatten_tree
from yamd.references import derive_ref_label, resolve_ref_labels
from yamd.segments import SegmentAnalysis, analyze_segments, scan_assets
from yamd.tree_builder import YamdStructureError, build_node_tree
from yamd.types import (
    Asset,
    AttrParseResult,
    BibEntry,
    CompiledDocument,
    GraphNode,
    RefEntry,
    Segment,
    TreeNode,
    document_to_dict,
)

__all__ = [
    "Asset",
    "AttrParseResult",
    "BibEntry",
    "CompileOptions",
    "CompileResult",
    "CompiledDocument",
    "DocumentView",
    "FlattenResult",
    "GraphNode",
    "MissingEntry",
    "RefEntry",
    "Segment",
    "SegmentAnalysis",
    "TreeNode",
    "YamdStructureError",
    "analyze_segments",
    "build_node_tree",
    "compile_result_to_dict",
    "compile_value",
    "compile_yamd",
    "derive_ref_label",
    "document_to_dict",
    "flatten_tree",
    "parse_attr",
    "resolve_ref_labels",
    "scan_assets",
]
