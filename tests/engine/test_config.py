"""Engine configuration loading tests."""

from __future__ import annotations

from linkstats.engine.config import DEFAULTS, load_config


def test_defaults_are_used_without_a_file(tmp_path):
    config = load_config(tmp_path / "missing.yaml")

    assert config.default_locale == "uk"
    assert config.locales == ["uk", "ru", "en"]
    assert config.max_documents == 1000
    assert config.include_faq_answers is True
    assert config.fields_for("team-new") == ["bio", "bio_summary"]
    assert config.fields_for("unknown") == []


def test_yaml_overrides_merge_over_defaults(tmp_path):
    path = tmp_path / "linkstats.yaml"
    path.write_text(
        "max_documents_per_collection: 50\n"
        "include_faq_answers: false\n"
        "collections:\n"
        "  posts-new: [content]\n"
        "  events: [body]\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.max_documents == 50
    assert config.include_faq_answers is False
    assert config.fields_for("posts-new") == ["content"]
    assert config.fields_for("events") == ["body"]
    assert "trainings" in config.collections
    assert config.default_locale == "uk"


def test_loading_does_not_mutate_defaults(tmp_path):
    path = tmp_path / "linkstats.yaml"
    path.write_text("collections:\n  posts-new: [summary]\n", encoding="utf-8")

    load_config(path)

    assert DEFAULTS["collections"]["posts-new"] == ["content", "summary"]
