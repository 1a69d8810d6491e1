"""Typed data structures used by the link statistics engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

EXISTING_LINK_TO_TARGET = "ExistingLinkToTarget"
EXISTING_LINK_ELSEWHERE = "ExistingLinkElsewhere"
POTENTIAL_LINK = "PotentialLink"
IGNORED = "Ignored"

OCCURRENCE_KINDS = (
    EXISTING_LINK_TO_TARGET,
    EXISTING_LINK_ELSEWHERE,
    POTENTIAL_LINK,
    IGNORED,
)


@dataclass(frozen=True)
class Reference:
    """Pointer to one entity inside the content system."""

    collection: str
    id: str

    @classmethod
    def of(cls, collection: str, entity_id: Any) -> "Reference":
        return cls(collection=str(collection), id=str(entity_id))


@dataclass(frozen=True)
class LinkContext:
    """The link node wrapping a text fragment.

    ``serial`` is unique per link node within one traversal so that two
    adjacent links to the same target are never merged into one run.
    """

    serial: int
    reference: Optional[Reference] = None
    url: Optional[str] = None

    @property
    def is_internal(self) -> bool:
        return self.reference is not None


@dataclass(frozen=True)
class Fragment:
    """A piece of text in document order together with its link context."""

    text: str
    link: Optional[LinkContext]
    block: int


@dataclass(frozen=True)
class ContentDocument:
    """One entity instance in a single locale, holding rich-text fields."""

    collection: str
    id: str
    locale: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    title: Optional[str] = None
    slug: Optional[str] = None

    @property
    def reference(self) -> Reference:
        return Reference.of(self.collection, self.id)


@dataclass(frozen=True)
class IndexedDocument:
    """A document whose fields were flattened once for a whole request."""

    document: ContentDocument
    fields: Tuple[Tuple[str, Tuple[Fragment, ...]], ...]
    error: Optional[str] = None


@dataclass(frozen=True)
class Occurrence:
    """One match of an anchor inside a document's merged run text."""

    collection: str
    document_id: str
    field: str
    start: int
    end: int
    text: str
    kind: str


@dataclass(frozen=True)
class LinkStats:
    """Aggregated classification for one anchor against one target."""

    anchor: str
    existing_links: int = 0
    potential_links: int = 0
    occurrences: Tuple[Occurrence, ...] = ()
    details: Optional[Dict[str, Dict[str, List[str]]]] = None
    skipped: Tuple[Reference, ...] = ()
