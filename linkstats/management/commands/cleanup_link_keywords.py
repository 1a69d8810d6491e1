"""Re-normalize the keywords stored in every ``SeoStats.link_keywords``.

Older imports saved anchors with serialization debris such as ``{"yacht"}``
or ``["skipper"]``. The command runs each stored keyword through the same
normalizer the API uses and drops entries that end up empty.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.utils import timezone

from linkstats.models import SeoStats
from linkstats.store import clean_link_keywords


class Command(BaseCommand):
    help = 'Strip serialization debris (braces, quotes, brackets) from stored link keywords.'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Report changes without saving them')
        parser.add_argument('--locale', help='Only clean records of this locale')

    def handle(self, *args, **options):
        records = SeoStats.objects.filter(link_keywords__isnull=False).order_by('id')
        if options['locale']:
            records = records.filter(locale=options['locale'])

        updated = 0
        skipped = 0
        for record in records:
            current = record.link_keywords
            if not isinstance(current, dict) or not isinstance(current.get('keywords'), list):
                skipped += 1
                continue
            cleaned = clean_link_keywords(current)
            if cleaned == current:
                skipped += 1
                continue

            before = ', '.join(str(entry.get('keyword')) for entry in current['keywords'][:2] if isinstance(entry, dict))
            after = ', '.join(entry['keyword'] for entry in cleaned['keywords'][:2])
            self.stdout.write(f'{record}: {before} -> {after}')
            if not options['dry_run']:
                record.link_keywords = cleaned
                record.updated_at = timezone.now()
                record.save(update_fields=['link_keywords', 'updated_at'])
            updated += 1

        verb = 'Would update' if options['dry_run'] else 'Updated'
        self.stdout.write(self.style.SUCCESS(f'{verb} {updated} record(s), skipped {skipped}'))
