"""Database models for the linkstats app.

The app stores the rich-text corpus that anchors are matched against
(``ContentEntry``) and the per-locale SEO statistics calculated for each
entity (``SeoStats``). Both are keyed by entity *and* locale so that data
for one language never leaks into another.
"""

from __future__ import annotations

from typing import Any, Dict

from django.db import models
from django.utils import timezone


class ContentEntry(models.Model):
    """One localized entity (post, tag, team member, ...) and its rich text.

    ``content`` maps field names to Lexical JSON trees or legacy HTML, plus an
    optional ``faqs`` list of ``{"question", "answer"}`` objects.
    """

    collection = models.CharField(max_length=64, db_index=True)
    entity_id = models.CharField(max_length=64)
    locale = models.CharField(max_length=10, db_index=True)
    title = models.CharField(max_length=300, blank=True)
    slug = models.CharField(max_length=255, blank=True)
    content = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['collection', 'entity_id', 'locale'],
                name='content_entry_entity_locale_uniq',
            ),
        ]
        ordering = ['collection', 'id']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return f"{self.collection}:{self.entity_id} [{self.locale}]"


class SeoStats(models.Model):
    """Persisted SEO statistics for one entity in one locale."""

    entity_type = models.CharField(max_length=64, db_index=True)
    entity_id = models.CharField(max_length=64, db_index=True)
    locale = models.CharField(max_length=10)
    focus_keyphrase = models.TextField(null=True, blank=True)
    stats = models.JSONField(null=True, blank=True)
    link_keywords = models.JSONField(null=True, blank=True)
    calculated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['entity_type', 'entity_id', 'locale'],
                name='seo_stats_entity_locale_uniq',
            ),
        ]
        verbose_name = 'SEO stats'
        verbose_name_plural = 'SEO stats'

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return f"{self.entity_type}:{self.entity_id} [{self.locale}]"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation used by the API views."""

        return {
            'id': self.pk,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'locale': self.locale,
            'focus_keyphrase': self.focus_keyphrase,
            'stats': self.stats,
            'link_keywords': self.link_keywords,
            'calculated_at': self.calculated_at.isoformat() if self.calculated_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
