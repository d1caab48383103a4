"""Read-only lookup interface over a compiled document.

Lookups never raise for unknown ids: an editor may already have deleted the
entry, so a `MissingEntry` stands in for it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from yamd.types import Asset, BibEntry, CompiledDocument, GraphNode, RefEntry, Segment


@dataclass(frozen=True, slots=True)
class MissingEntry:
    kind: str
    entry_id: str
    message: str

    def __bool__(self) -> bool:
        return False


def _missing(kind: str, entry_id: str) -> MissingEntry:
    return MissingEntry(kind=kind, entry_id=entry_id, message=f"{kind} {entry_id!r} not found")


class DocumentView:
    def __init__(self, document: CompiledDocument) -> None:
        self.document = document

    @property
    def root(self) -> GraphNode:
        return self.document.nodes[self.document.root_node_id]

    def get_node(self, node_id: str) -> GraphNode | MissingEntry:
        return self.document.nodes.get(node_id) or _missing("node", node_id)

    def get_asset(self, asset_id: str) -> Asset | MissingEntry:
        return self.document.assets.get(asset_id) or _missing("asset", asset_id)

    def get_ref(self, ref_id: str) -> RefEntry | MissingEntry:
        return self.document.refs.get(ref_id) or _missing("ref", ref_id)

    def get_segment(self, segment_id: str) -> Segment | MissingEntry:
        return self.document.segments.get(segment_id) or _missing("segment", segment_id)

    def get_bib(self, bib_id: str) -> BibEntry | MissingEntry:
        return self.document.bibs.get(bib_id) or _missing("bib", bib_id)

    def bib_for_key(self, bib_key: str) -> BibEntry | MissingEntry:
        bib_id = self.document.bibs_lookup.get(bib_key)
        if bib_id is None:
            return _missing("bib key", bib_key)
        return self.get_bib(bib_id)

    def iter_bibs(self) -> Iterator[BibEntry]:
        """Bibliography entries in first-cited order."""

        yield from self.document.bibs.values()

    def children_of(self, node_id: str) -> list[GraphNode | MissingEntry]:
        node = self.get_node(node_id)
        if isinstance(node, MissingEntry):
            return []
        return [self.get_node(child_id) for child_id in node.children]

    def segments_of(self, node_id: str) -> list[Segment | MissingEntry]:
        node = self.get_node(node_id)
        if isinstance(node, MissingEntry) or node.segments is None:
            return []
        return [self.get_segment(segment_id) for segment_id in node.segments]
