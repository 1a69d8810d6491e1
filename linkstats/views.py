"""JSON API views for the linkstats app.

The views decode request payloads, validate them with the app's forms and
delegate to the services and store. Every error response is a JSON object
with a ``detail`` message; validation failures add the per-field ``errors``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from django import forms
from django.conf import settings
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST

from .engine.errors import InvalidRequest
from .forms import CalculateLinksForm, SeoStatsQueryForm, SeoStatsWriteForm
from .services import calculate_link_stats
from .store import StatsKey, StatsPersistenceError, read, upsert

logger = logging.getLogger(__name__)


def _error(detail: str, status: int, errors: Dict[str, Any] | None = None) -> JsonResponse:
    payload: Dict[str, Any] = {'detail': detail}
    if errors:
        payload['errors'] = errors
    return JsonResponse(payload, status=status)


def _form_error(form: forms.Form) -> JsonResponse:
    """400 response naming the missing fields and the invalid ones separately."""

    missing: List[str] = []
    invalid: List[str] = []
    for name, errors in form.errors.as_data().items():
        if any(error.code == 'required' for error in errors):
            missing.append(name)
        else:
            invalid.append(name)

    parts = []
    if missing:
        parts.append(f"Missing required fields: {', '.join(missing)}")
    if invalid:
        parts.append(f"Invalid fields: {', '.join(invalid)}")
    return _error('; '.join(parts) or 'Invalid request.', 400, form.errors.get_json_data())


def _json_body(request: HttpRequest) -> Dict[str, Any] | None:
    """Return the decoded JSON object in the request body, or ``None``."""

    try:
        payload = json.loads(request.body or b'{}')
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _default_locale() -> str:
    return getattr(settings, 'LINKSTATS_DEFAULT_LOCALE', 'uk')


@csrf_exempt
@require_POST
def calculate_links(request: HttpRequest) -> JsonResponse:
    """Count existing and potential internal links for each requested anchor."""

    payload = _json_body(request)
    if payload is None:
        return _error('Request body must be a JSON object.', 400)

    form = CalculateLinksForm(payload)
    if not form.is_valid():
        return _form_error(form)

    try:
        analysis = form.to_request()
    except InvalidRequest as exc:
        return _error(str(exc), 400)

    try:
        reports = calculate_link_stats(analysis, persist=form.cleaned_data['persist'])
    except StatsPersistenceError as exc:
        logger.error('Failed to persist link stats: %s', exc)
        return _error('Failed to save link stats.', 500)

    return JsonResponse({'results': [report.to_dict() for report in reports]})


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def seo_stats(request: HttpRequest) -> JsonResponse:
    """Read (GET) or partially write (POST) a per-locale statistics record."""

    if request.method == 'GET':
        return _read_stats(request)
    return _write_stats(request)


def _read_stats(request: HttpRequest) -> JsonResponse:
    form = SeoStatsQueryForm(request.GET)
    if not form.is_valid():
        return _form_error(form)

    locale = form.cleaned_data['locale']
    if not locale:
        locale = _default_locale()
        logger.warning(
            'No locale given for %s:%s, falling back to %s',
            form.cleaned_data['entity_type'],
            form.cleaned_data['entity_id'],
            locale,
        )

    key = StatsKey(form.cleaned_data['entity_type'], form.cleaned_data['entity_id'], locale)
    try:
        record = read(key)
    except StatsPersistenceError as exc:
        logger.error('Failed to read seo stats: %s', exc)
        return _error('Failed to fetch stats.', 500)

    return JsonResponse(record.to_dict() if record is not None else None, safe=False)


def _write_stats(request: HttpRequest) -> JsonResponse:
    payload = _json_body(request)
    if payload is None:
        return _error('Request body must be a JSON object.', 400)

    form = SeoStatsWriteForm(payload)
    if not form.is_valid():
        return _form_error(form)

    locale = form.cleaned_data['locale']
    if not locale:
        locale = _default_locale()
        logger.warning(
            'No locale given when saving %s:%s, falling back to %s',
            form.cleaned_data['entity_type'],
            form.cleaned_data['entity_id'],
            locale,
        )

    key = StatsKey(form.cleaned_data['entity_type'], form.cleaned_data['entity_id'], locale)
    try:
        record = upsert(key, form.patch())
    except StatsPersistenceError as exc:
        logger.error('Failed to save seo stats: %s', exc)
        return _error('Failed to save stats.', 500)

    return JsonResponse(record.to_dict())
