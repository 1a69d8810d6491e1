"""Exceptions raised by the link statistics engine."""

from __future__ import annotations


class LinkStatsError(Exception):
    """Base class for link statistics failures."""


class InvalidRequest(LinkStatsError):
    """An analysis request is missing key fields or carries bad values."""


class MalformedContentError(LinkStatsError):
    """A rich-text value cannot be traversed."""
