from __future__ import annotations

import logging
import time
from typing import Callable

from django.conf import settings
from django.core.cache import caches
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.urls import Resolver404, resolve

logger = logging.getLogger(__name__)

DEFAULT_THROTTLE_LIMIT = 60  # requests
DEFAULT_THROTTLE_WINDOW = 60  # seconds
DEFAULT_THROTTLE_KEY_PREFIX = 'linkstats:throttle'


class SlidingWindowRateThrottle:
    """Per-client sliding-window limit for the analysis and stats endpoints.

    A full-corpus scan runs on every analysis request, so the protected
    routes are capped per client IP using the configured cache backend.
    """

    def __init__(
        self,
        get_response: Callable[[HttpRequest], HttpResponse],
        *,
        limit: int | None = None,
        window: int | None = None,
        cache_alias: str = 'default',
        key_prefix: str | None = None,
    ) -> None:
        self.get_response = get_response
        self.limit = limit or getattr(settings, 'LINKSTATS_THROTTLE_LIMIT', DEFAULT_THROTTLE_LIMIT)
        self.window = window or getattr(settings, 'LINKSTATS_THROTTLE_WINDOW', DEFAULT_THROTTLE_WINDOW)
        self.cache = caches[cache_alias]
        self.key_prefix = key_prefix or getattr(
            settings, 'LINKSTATS_THROTTLE_KEY_PREFIX', DEFAULT_THROTTLE_KEY_PREFIX
        )

    def __call__(self, request: HttpRequest) -> HttpResponse:
        if request.method not in ('GET', 'POST'):
            return self.get_response(request)

        route_name = self._route_name(request)
        protected_routes = getattr(settings, 'LINKSTATS_THROTTLED_ROUTES', [])
        if route_name is None or route_name not in protected_routes:
            return self.get_response(request)

        cache_key = f"{self.key_prefix}:{route_name}:{self._get_client_ip(request)}"
        now = time.time()
        bucket = [stamp for stamp in self.cache.get(cache_key, []) if stamp > now - self.window]

        if len(bucket) >= self.limit:
            logger.warning('Throttled %s for %s', route_name, self._get_client_ip(request))
            return JsonResponse(
                {
                    'detail': 'Rate limit exceeded. Try again shortly.',
                    'route': route_name,
                },
                status=429,
            )

        bucket.append(now)
        self.cache.set(cache_key, bucket, timeout=self.window)
        return self.get_response(request)

    def _route_name(self, request: HttpRequest) -> str | None:
        # Middleware runs before URL resolution, so resolve the path here.
        match = getattr(request, 'resolver_match', None)
        if match is None:
            try:
                match = resolve(request.path_info)
            except Resolver404:
                return None
        return match.view_name

    def _get_client_ip(self, request: HttpRequest) -> str:
        header = getattr(settings, 'LINKSTATS_THROTTLE_IP_HEADER', 'HTTP_X_FORWARDED_FOR')
        if header in request.META:
            return request.META[header].split(',')[0].strip()
        return request.META.get('REMOTE_ADDR', '0.0.0.0')


def sliding_window_rate_throttle(get_response: Callable[[HttpRequest], HttpResponse]) -> SlidingWindowRateThrottle:
    return SlidingWindowRateThrottle(get_response)
