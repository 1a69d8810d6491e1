from django.contrib import admin

from .models import ContentEntry, SeoStats


@admin.register(ContentEntry)
class ContentEntryAdmin(admin.ModelAdmin):
    list_display = ('collection', 'entity_id', 'locale', 'title', 'slug', 'updated_at')
    list_filter = ('collection', 'locale')
    search_fields = ('entity_id', 'title', 'slug')


@admin.register(SeoStats)
class SeoStatsAdmin(admin.ModelAdmin):
    list_display = ('entity_type', 'entity_id', 'locale', 'focus_keyphrase', 'calculated_at', 'updated_at')
    list_filter = ('entity_type', 'locale')
    search_fields = ('entity_id', 'focus_keyphrase')
    readonly_fields = ('created_at', 'updated_at')
