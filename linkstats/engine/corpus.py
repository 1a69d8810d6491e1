"""Corpus construction for a single analysis request."""

from __future__ import annotations

import asyncio
from typing import Iterable, List, Protocol, Tuple

from asgiref.sync import sync_to_async

from .config import EngineConfig
from .types import ContentDocument, Reference


class CorpusSource(Protocol):
    """Anything able to list documents of one collection in one locale."""

    def fetch(
        self,
        collection: str,
        locale: str,
        *,
        exclude_id: str | None = None,
        limit: int = 1000,
    ) -> List[ContentDocument]:
        ...


class InMemoryCorpus:
    """Corpus source over a fixed list of documents."""

    def __init__(self, documents: Iterable[ContentDocument]) -> None:
        self._documents = tuple(documents)

    def fetch(
        self,
        collection: str,
        locale: str,
        *,
        exclude_id: str | None = None,
        limit: int = 1000,
    ) -> List[ContentDocument]:
        matches = [
            document
            for document in self._documents
            if document.collection == collection
            and document.locale == locale
            and (exclude_id is None or document.id != exclude_id)
        ]
        return matches[:limit]


async def gather_corpus(
    source: CorpusSource,
    config: EngineConfig,
    locale: str,
    *,
    exclude: Reference | None = None,
) -> Tuple[ContentDocument, ...]:
    """Fetch every configured collection concurrently and return one snapshot."""

    async def _fetch(collection: str) -> List[ContentDocument]:
        exclude_id = exclude.id if exclude is not None and exclude.collection == collection else None
        return await sync_to_async(source.fetch)(
            collection,
            locale,
            exclude_id=exclude_id,
            limit=config.max_documents,
        )

    batches = await asyncio.gather(*(_fetch(collection) for collection in config.collections))
    return tuple(document for batch in batches for document in batch)
