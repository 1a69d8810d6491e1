"""Persistence for per-locale SEO statistics records.

Records are keyed by ``(entity_type, entity_id, locale)``. Writes are partial:
fields missing from a patch (or passed as ``None``) keep their stored value.
The write path is a conditional ``UPDATE`` followed, only when no row matched,
by an ``INSERT``; the unique constraint on the key turns a racing insert into
an ``IntegrityError`` which is resolved by re-running the update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from .engine.anchors import normalize
from .engine.errors import LinkStatsError
from .engine.index import AnchorReport
from .models import SeoStats

logger = logging.getLogger(__name__)

PATCH_FIELDS = ('focus_keyphrase', 'stats', 'link_keywords', 'calculated_at')


class StatsPersistenceError(LinkStatsError):
    """The statistics store could not complete a read or write."""


@dataclass(frozen=True)
class StatsKey:
    """Unique key of a statistics record. The locale is never implied."""

    entity_type: str
    entity_id: str
    locale: str

    def __post_init__(self) -> None:
        for name in ('entity_type', 'entity_id', 'locale'):
            value = getattr(self, name)
            if value in (None, ''):
                raise StatsPersistenceError(f'Stats key requires {name}')
            object.__setattr__(self, name, str(value))

    def as_filter(self) -> Dict[str, str]:
        return {
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'locale': self.locale,
        }

    def __str__(self) -> str:
        return f'{self.entity_type}:{self.entity_id} [{self.locale}]'


def clean_link_keywords(value: Any) -> Dict[str, Any]:
    """Normalize every stored keyword and drop entries that end up empty."""

    if not isinstance(value, Mapping) or not isinstance(value.get('keywords', []), list):
        raise StatsPersistenceError('link_keywords must be an object with a "keywords" list')

    keywords: List[Dict[str, Any]] = []
    for entry in value.get('keywords') or []:
        if not isinstance(entry, Mapping):
            continue
        keyword = normalize(entry.get('keyword'))
        if not keyword:
            continue
        keywords.append({**entry, 'keyword': keyword})
    return {**value, 'keywords': keywords}


def read(key: StatsKey) -> SeoStats | None:
    """Return the record stored under ``key`` or ``None``."""

    try:
        return SeoStats.objects.filter(**key.as_filter()).first()
    except DatabaseError as exc:
        raise StatsPersistenceError(f'Failed to read stats for {key}') from exc


def upsert(key: StatsKey, patch: Mapping[str, Any]) -> SeoStats:
    """Create or partially update the record stored under ``key``."""

    unknown = sorted(set(patch) - set(PATCH_FIELDS))
    if unknown:
        raise StatsPersistenceError(f'Unknown stats fields: {", ".join(unknown)}')

    changes = {name: value for name, value in patch.items() if value is not None}
    if 'link_keywords' in changes:
        changes['link_keywords'] = clean_link_keywords(changes['link_keywords'])

    now = timezone.now()
    try:
        with transaction.atomic():
            queryset = SeoStats.objects.filter(**key.as_filter())
            if queryset.update(updated_at=now, **changes):
                logger.info('Updated seo stats for %s (%s)', key, ', '.join(sorted(changes)) or 'touch')
            else:
                try:
                    with transaction.atomic():
                        SeoStats.objects.create(
                            **key.as_filter(),
                            created_at=now,
                            updated_at=now,
                            **changes,
                        )
                    logger.info('Inserted seo stats for %s', key)
                except IntegrityError:
                    # Another writer inserted the same key first; last write wins.
                    logger.info('Concurrent insert for %s, retrying update', key)
                    if not queryset.update(updated_at=now, **changes):
                        raise StatsPersistenceError(f'Could not insert or update stats for {key}')
            return queryset.get()
    except StatsPersistenceError:
        raise
    except DatabaseError as exc:
        logger.error('Failed to save seo stats for %s', key, exc_info=exc)
        raise StatsPersistenceError(f'Failed to save stats for {key}') from exc


def merge_link_keywords(current: Mapping[str, Any] | None, reports: Iterable[AnchorReport]) -> Dict[str, Any]:
    """Fold fresh link counts into a ``link_keywords`` payload.

    Existing entries keep their cached counters and any extra keys; anchors
    seen for the first time are appended. Failed or degenerate reports are
    ignored so a transient error never overwrites good counts with zeros.
    """

    base: Dict[str, Any] = dict(current or {})
    keywords = [dict(entry) for entry in base.get('keywords') or [] if isinstance(entry, Mapping)]
    positions = {normalize(entry.get('keyword')).lower(): index for index, entry in enumerate(keywords)}

    for report in reports:
        if report.error is not None or report.skipped or not report.anchor:
            continue
        lookup = report.anchor.lower()
        if lookup in positions:
            entry = keywords[positions[lookup]]
        else:
            entry = {
                'keyword': report.anchor,
                'linksCount': 0,
                'potentialLinksCount': 0,
                'cachedTotal': 0,
                'cachedHeadings': 0,
            }
            positions[lookup] = len(keywords)
            keywords.append(entry)
        entry['linksCount'] = report.existing_links
        entry['potentialLinksCount'] = report.potential_links

    base['keywords'] = keywords
    return base


def record_link_stats(
    key: StatsKey,
    reports: Iterable[AnchorReport],
    calculated_at: datetime | None = None,
) -> SeoStats:
    """Merge analysis results into the stored ``link_keywords`` for ``key``."""

    try:
        with transaction.atomic():
            existing = SeoStats.objects.select_for_update().filter(**key.as_filter()).first()
            current = existing.link_keywords if existing is not None else None
            merged = merge_link_keywords(current, reports)
            return upsert(
                key,
                {
                    'link_keywords': merged,
                    'calculated_at': calculated_at or timezone.now(),
                },
            )
    except StatsPersistenceError:
        raise
    except DatabaseError as exc:
        raise StatsPersistenceError(f'Failed to record link stats for {key}') from exc
