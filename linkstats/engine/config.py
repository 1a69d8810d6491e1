"""Configuration helpers for the link statistics engine."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml


@dataclass(frozen=True)
class EngineConfig:
    """Typed wrapper around the engine configuration dictionary."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    @property
    def collections(self) -> List[str]:
        return list(self.raw.get("collections", {}))

    def fields_for(self, collection: str) -> List[str]:
        return list(self.raw.get("collections", {}).get(collection) or [])

    @property
    def locales(self) -> List[str]:
        return list(self.raw.get("locales", []))

    @property
    def default_locale(self) -> str:
        return self.raw.get("default_locale", "uk")

    @property
    def include_faq_answers(self) -> bool:
        return bool(self.raw.get("include_faq_answers", True))

    @property
    def max_documents(self) -> int:
        return int(self.raw.get("max_documents_per_collection", 1000))


DEFAULTS: Dict[str, Any] = {
    "default_locale": "uk",
    "locales": ["uk", "ru", "en"],
    "max_documents_per_collection": 1000,
    "include_faq_answers": True,
    "collections": {
        "posts-new": ["content", "summary"],
        "tags-new": ["content", "summary"],
        "team-new": ["bio", "bio_summary"],
        "certificates-new": ["description", "requirements", "program"],
        "trainings": ["content", "summary"],
    },
}


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load configuration from YAML, merging with defaults."""

    data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            user = yaml.safe_load(stream) or {}
        merge_into(data, user)

    return EngineConfig(data)


def merge_into(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value
