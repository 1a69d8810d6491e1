"""Service functions tying the engine to the database.

These functions encapsulate the application's use of the link statistics
engine so they can be unit tested and reused from the views and management
commands. They build the per-locale corpus from stored ``ContentEntry`` rows,
run an analysis request through the async engine, and optionally persist the
resulting counts into the entity's ``SeoStats`` record.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from asgiref.sync import async_to_sync
from django.conf import settings

from .engine.config import EngineConfig, load_config
from .engine.index import AnalysisRequest, AnchorReport, analyze
from .engine.types import ContentDocument
from .models import ContentEntry
from .store import StatsKey, record_link_stats

logger = logging.getLogger(__name__)


def get_engine_config() -> EngineConfig:
    """Load the engine configuration named by ``settings.LINKSTATS_CONFIG``."""

    return load_config(getattr(settings, 'LINKSTATS_CONFIG', None))


class DatabaseCorpus:
    """Corpus source reading ``ContentEntry`` rows of one collection and locale."""

    def __init__(self, config: EngineConfig) -> None:
        self.config = config

    def fetch(
        self,
        collection: str,
        locale: str,
        *,
        exclude_id: str | None = None,
        limit: int = 1000,
    ) -> List[ContentDocument]:
        queryset = ContentEntry.objects.filter(collection=collection, locale=locale)
        if exclude_id is not None:
            queryset = queryset.exclude(entity_id=exclude_id)
        documents = [self.to_document(entry) for entry in queryset.order_by('id')[:limit]]
        logger.debug('Loaded %d %s document(s) for locale %s', len(documents), collection, locale)
        return documents

    def to_document(self, entry: ContentEntry) -> ContentDocument:
        """Select the configured rich-text fields (and FAQ answers) of ``entry``."""

        content: Dict[str, Any] = entry.content if isinstance(entry.content, dict) else {}
        fields: Dict[str, Any] = {}
        for name in self.config.fields_for(entry.collection):
            if content.get(name):
                fields[name] = content[name]

        faqs = content.get('faqs')
        if self.config.include_faq_answers and isinstance(faqs, list):
            for index, faq in enumerate(faqs):
                if isinstance(faq, dict) and faq.get('answer'):
                    fields[f'faqs.{index}.answer'] = faq['answer']

        return ContentDocument(
            collection=entry.collection,
            id=entry.entity_id,
            locale=entry.locale,
            fields=fields,
            title=entry.title or None,
            slug=entry.slug or None,
        )


def calculate_link_stats(
    request: AnalysisRequest,
    *,
    persist: bool = False,
    config: EngineConfig | None = None,
) -> List[AnchorReport]:
    """Run ``request`` against the stored corpus.

    Parameters
    ----------
    request:
        A validated analysis request.
    persist:
        When ``True`` the counts are merged into the ``link_keywords`` of the
        ``(entity_type, entity_id, language)`` statistics record.
    config:
        Engine configuration; defaults to :func:`get_engine_config`.

    Returns
    -------
    list of AnchorReport
        One report per requested anchor, in request order.
    """

    engine_config = config or get_engine_config()
    reports = async_to_sync(analyze)(request, DatabaseCorpus(engine_config), engine_config)
    if persist:
        key = StatsKey(request.entity_type, request.entity_id, request.language)
        record_link_stats(key, reports)
    return reports
