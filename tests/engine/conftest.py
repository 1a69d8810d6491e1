"""Shared fixtures and Lexical builders for engine tests."""

from __future__ import annotations

from typing import Any, Dict

import pytest

from linkstats.engine.config import load_config
from linkstats.engine.types import ContentDocument


@pytest.fixture()
def engine_config():
    """Provide a fresh copy of the default engine configuration."""

    return load_config(None)


def text(value: str, fmt: int = 0) -> Dict[str, Any]:
    return {"type": "text", "text": value, "format": fmt, "version": 1}


def paragraph(*children: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "paragraph", "children": list(children), "version": 1}


def heading(*children: Dict[str, Any], tag: str = "h2") -> Dict[str, Any]:
    return {"type": "heading", "tag": tag, "children": list(children), "version": 1}


def internal_link(collection: str, doc_id: Any, *children: Dict[str, Any], nested: bool = False) -> Dict[str, Any]:
    value: Any = {"id": doc_id} if nested else doc_id
    return {
        "type": "link",
        "fields": {"linkType": "internal", "doc": {"relationTo": collection, "value": value}},
        "children": list(children),
        "version": 1,
    }


def url_link(url: str, *children: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "link",
        "fields": {"linkType": "custom", "url": url},
        "children": list(children),
        "version": 1,
    }


def lexical(*blocks: Dict[str, Any]) -> Dict[str, Any]:
    return {"root": {"type": "root", "children": list(blocks), "version": 1}}


def make_document(
    collection: str,
    doc_id: str,
    *,
    locale: str = "uk",
    **fields: Any,
) -> ContentDocument:
    return ContentDocument(
        collection=collection,
        id=doc_id,
        locale=locale,
        fields=fields,
        title=f"{collection} {doc_id}",
    )
