"""Classify anchor occurrences as existing links or potential links."""

from __future__ import annotations

import re
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlparse

from .traversal import index_document
from .types import (
    EXISTING_LINK_ELSEWHERE,
    EXISTING_LINK_TO_TARGET,
    IGNORED,
    POTENTIAL_LINK,
    ContentDocument,
    Fragment,
    IndexedDocument,
    LinkContext,
    LinkStats,
    Occurrence,
    Reference,
)

_WORD_CHAR_RE = re.compile(r"\w")

CorpusEntry = Union[ContentDocument, IndexedDocument]


def compile_anchor(anchor: str) -> re.Pattern[str]:
    """Case-insensitive matcher for ``anchor`` where any whitespace run matches."""

    parts = [re.escape(part) for part in anchor.split()]
    return re.compile(r"\s+".join(parts), flags=re.IGNORECASE)


def iter_runs(fragments: Iterable[Fragment]) -> Iterator[Tuple[str, Optional[LinkContext]]]:
    """Merge consecutive fragments sharing a block and a link into one text run."""

    current_key: Optional[Tuple[int, Optional[int]]] = None
    current_link: Optional[LinkContext] = None
    parts: List[str] = []
    for fragment in fragments:
        key = (fragment.block, fragment.link.serial if fragment.link else None)
        if key != current_key and parts:
            yield "".join(parts), current_link
            parts = []
        current_key = key
        current_link = fragment.link
        parts.append(fragment.text)
    if parts:
        yield "".join(parts), current_link


def classify(
    anchor: str,
    target: Reference,
    corpus: Sequence[CorpusEntry],
    *,
    locale: str,
    target_slug: str | None = None,
    include_details: bool = False,
) -> LinkStats:
    """Count existing and potential links for ``anchor`` pointing at ``target``.

    Parameters
    ----------
    anchor:
        A normalized anchor phrase. An empty anchor short-circuits to zero
        counts without scanning the corpus.
    target:
        The entity the links should point to. Its own document is skipped.
    corpus:
        Candidate source documents, either raw or already indexed. Documents
        in another locale are skipped even if the caller handed them over.
    locale:
        The locale under analysis.
    target_slug:
        Optional slug of the target. URL links whose last path segment equals
        it are counted as links to the target.
    include_details:
        When ``True`` the result lists contributing document ids per
        collection for existing and potential links.

    Returns
    -------
    LinkStats
        Counts plus every occurrence with its classification.
    """

    if not anchor:
        return LinkStats(anchor=anchor, details=empty_details() if include_details else None)

    pattern = compile_anchor(anchor)
    slug = target_slug.strip().lower() if target_slug else None
    occurrences: List[Occurrence] = []
    skipped: List[Reference] = []

    for entry in corpus:
        indexed = entry if isinstance(entry, IndexedDocument) else index_document(entry)
        document = indexed.document
        if document.locale != locale:
            continue
        if document.reference == target:
            continue
        if indexed.error is not None:
            skipped.append(document.reference)
            continue

        for field_name, fragments in indexed.fields:
            for text, link in iter_runs(fragments):
                for match, whole_word in iter_matches(pattern, text):
                    occurrences.append(
                        Occurrence(
                            collection=document.collection,
                            document_id=document.id,
                            field=field_name,
                            start=match.start(),
                            end=match.end(),
                            text=match.group(0),
                            kind=_classify_match(whole_word, link, target, slug),
                        )
                    )

    existing = sum(1 for item in occurrences if item.kind == EXISTING_LINK_TO_TARGET)
    potential = sum(1 for item in occurrences if item.kind == POTENTIAL_LINK)
    return LinkStats(
        anchor=anchor,
        existing_links=existing,
        potential_links=potential,
        occurrences=tuple(occurrences),
        details=_build_details(occurrences) if include_details else None,
        skipped=tuple(skipped),
    )


def iter_matches(pattern: re.Pattern[str], text: str) -> Iterator[Tuple[re.Match[str], bool]]:
    """Yield every match of ``pattern`` with whether it stands as whole words.

    A sub-word hit only advances the search by one character, so a whole-word
    occurrence overlapping it (``"bora bora"`` in ``"Tabora bora bora"``) is
    still found.
    """

    position = 0
    while position <= len(text):
        match = pattern.search(text, position)
        if match is None:
            return
        whole_word = _on_word_boundaries(text, match)
        yield match, whole_word
        position = match.end() if whole_word and match.end() > match.start() else match.start() + 1


def _classify_match(
    whole_word: bool,
    link: Optional[LinkContext],
    target: Reference,
    slug: Optional[str],
) -> str:
    if not whole_word:
        return IGNORED
    if link is None:
        return POTENTIAL_LINK
    if link.reference is not None and link.reference == target:
        return EXISTING_LINK_TO_TARGET
    if slug and link.url and _url_slug(link.url) == slug:
        return EXISTING_LINK_TO_TARGET
    return EXISTING_LINK_ELSEWHERE


def _is_word_char(char: str) -> bool:
    return bool(_WORD_CHAR_RE.match(char))


def _on_word_boundaries(text: str, match: re.Match[str]) -> bool:
    matched = match.group(0)
    start, end = match.span()
    if start > 0 and _is_word_char(matched[0]) and _is_word_char(text[start - 1]):
        return False
    if end < len(text) and _is_word_char(matched[-1]) and _is_word_char(text[end]):
        return False
    return True


def _url_slug(url: str) -> str:
    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    return segments[-1].lower() if segments else ""


def empty_details() -> Dict[str, Dict[str, List[str]]]:
    return {"internalLinks": {}, "potentialLinks": {}}


def _build_details(occurrences: Iterable[Occurrence]) -> Dict[str, Dict[str, List[str]]]:
    buckets = {EXISTING_LINK_TO_TARGET: "internalLinks", POTENTIAL_LINK: "potentialLinks"}
    details = empty_details()
    for occurrence in occurrences:
        bucket = buckets.get(occurrence.kind)
        if bucket is None:
            continue
        ids = details[bucket].setdefault(occurrence.collection, [])
        if occurrence.document_id not in ids:
            ids.append(occurrence.document_id)
    return details
