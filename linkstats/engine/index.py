"""Coordinator for a link statistics analysis request."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from asgiref.sync import sync_to_async

from .anchors import normalize
from .classify import CorpusEntry, classify, empty_details
from .config import EngineConfig, load_config
from .corpus import CorpusSource, gather_corpus
from .errors import InvalidRequest
from .traversal import index_document
from .types import Reference

logger = logging.getLogger(__name__)

_LOCALE_RE = re.compile(r"^[a-z]{2,3}(?:[-_][A-Za-z]{2,4})?$")


@dataclass(frozen=True)
class AnalysisRequest:
    """Validated input for one analysis pass."""

    entity_type: str
    entity_id: str
    language: str
    anchors: Tuple[Any, ...]
    target_slug: Optional[str] = None
    include_details: bool = False

    def __post_init__(self) -> None:
        missing = [
            name
            for name in ("entity_type", "entity_id", "language")
            if getattr(self, name) in (None, "")
        ]
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")
        if not isinstance(self.anchors, (list, tuple)):
            raise InvalidRequest("anchors must be a list")
        if not isinstance(self.language, str) or not _LOCALE_RE.match(self.language):
            raise InvalidRequest(f"Invalid locale: {self.language!r}")
        object.__setattr__(self, "entity_type", str(self.entity_type))
        object.__setattr__(self, "entity_id", str(self.entity_id))
        object.__setattr__(self, "anchors", tuple(self.anchors))

    @property
    def target(self) -> Reference:
        return Reference.of(self.entity_type, self.entity_id)


@dataclass(frozen=True)
class AnchorReport:
    """Per-anchor outcome returned to callers."""

    anchor: str
    existing_links: int = 0
    potential_links: int = 0
    details: Optional[Dict[str, Dict[str, List[str]]]] = None
    error: Optional[str] = None
    skipped: bool = False
    skipped_documents: Tuple[Reference, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "anchor": self.anchor,
            "existingLinks": self.existing_links,
            "potentialLinks": self.potential_links,
        }
        if self.details is not None:
            payload["details"] = self.details
        if self.error is not None:
            payload["error"] = self.error
        if self.skipped:
            payload["skipped"] = True
        if self.skipped_documents:
            payload["skippedDocuments"] = [
                f"{reference.collection}:{reference.id}" for reference in self.skipped_documents
            ]
        return payload


async def analyze(
    request: AnalysisRequest,
    source: CorpusSource,
    config: EngineConfig | None = None,
) -> List[AnchorReport]:
    """Fetch the corpus once and classify every anchor of ``request`` against it."""

    engine_config = config or load_config(None)
    corpus = await gather_corpus(source, engine_config, request.language, exclude=request.target)
    snapshot = tuple(index_document(document) for document in corpus)
    for indexed in snapshot:
        if indexed.error is not None:
            logger.warning(
                "Skipping %s:%s, content cannot be traversed (%s)",
                indexed.document.collection,
                indexed.document.id,
                indexed.error,
            )
    logger.info(
        "Analyzing %d anchor(s) for %s:%s [%s] against %d document(s)",
        len(request.anchors),
        request.entity_type,
        request.entity_id,
        request.language,
        len(snapshot),
    )
    return await classify_anchors(
        request.anchors,
        request.target,
        snapshot,
        locale=request.language,
        target_slug=request.target_slug,
        include_details=request.include_details,
    )


async def classify_anchors(
    anchors: Sequence[Any],
    target: Reference,
    corpus: Sequence[CorpusEntry],
    *,
    locale: str,
    target_slug: str | None = None,
    include_details: bool = False,
) -> List[AnchorReport]:
    """Classify each anchor concurrently; one failing anchor never drops the others."""

    normalized = [normalize(anchor) for anchor in anchors]

    async def _run(anchor: str) -> AnchorReport:
        if not anchor:
            return AnchorReport(
                anchor=anchor,
                details=empty_details() if include_details else None,
                skipped=True,
            )
        stats = await sync_to_async(classify, thread_sensitive=False)(
            anchor,
            target,
            corpus,
            locale=locale,
            target_slug=target_slug,
            include_details=include_details,
        )
        logger.debug(
            "Anchor %r: existing=%d potential=%d",
            anchor,
            stats.existing_links,
            stats.potential_links,
        )
        return AnchorReport(
            anchor=anchor,
            existing_links=stats.existing_links,
            potential_links=stats.potential_links,
            details=stats.details,
            skipped_documents=stats.skipped,
        )

    outcomes = await asyncio.gather(*(_run(anchor) for anchor in normalized), return_exceptions=True)

    reports: List[AnchorReport] = []
    for anchor, outcome in zip(normalized, outcomes):
        if isinstance(outcome, AnchorReport):
            reports.append(outcome)
            continue
        if not isinstance(outcome, Exception):
            raise outcome
        logger.error("Classification failed for anchor %r", anchor, exc_info=outcome)
        reports.append(AnchorReport(anchor=anchor, error=str(outcome) or type(outcome).__name__))
    return reports
