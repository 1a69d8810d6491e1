"""Occurrence classification tests."""

from __future__ import annotations

from collections import Counter

import pytest

from linkstats.engine.classify import classify, compile_anchor, iter_runs
from linkstats.engine.traversal import flatten
from linkstats.engine.types import (
    EXISTING_LINK_ELSEWHERE,
    EXISTING_LINK_TO_TARGET,
    IGNORED,
    OCCURRENCE_KINDS,
    POTENTIAL_LINK,
    Reference,
)

from .conftest import internal_link, lexical, make_document, paragraph, text, url_link

TARGET = Reference("certificates-new", "a")


def _doc(doc_id, *blocks, collection="posts-new", locale="uk"):
    return make_document(collection, doc_id, locale=locale, content=lexical(*blocks))


def test_compile_anchor_matches_any_whitespace_run_case_insensitively():
    pattern = compile_anchor("Yacht  School")

    assert pattern.search("our yacht\n\tschool") is not None
    assert pattern.search("YACHT SCHOOL") is not None
    assert pattern.search("yachtschool") is None


def test_iter_runs_splits_on_block_and_link_changes():
    link = internal_link("posts-new", "1", text("linked"))
    fragments = flatten(lexical(paragraph(text("a"), text("b", fmt=1), link, text("c")), paragraph(text("d"))))

    runs = [run for run, _ in iter_runs(fragments)]

    assert runs == ["ab", "linked", "c", "d"]


def test_sub_word_matches_are_ignored():
    corpus = [_doc("1", paragraph(text("Best yachting school in town")))]

    stats = classify("yacht", TARGET, corpus, locale="uk")

    assert stats.potential_links == 0
    assert [occurrence.kind for occurrence in stats.occurrences] == [IGNORED]


def test_phrase_inside_sentence_is_a_potential_link():
    corpus = [_doc("1", paragraph(text("Visit our yacht school this summer.")))]

    stats = classify("yacht school", TARGET, corpus, locale="uk")

    assert (stats.existing_links, stats.potential_links) == (0, 1)


def test_matching_is_case_insensitive():
    corpus = [_doc("1", paragraph(text("YACHT School")))]

    assert classify("yacht school", TARGET, corpus, locale="uk").potential_links == 1


def test_target_document_is_never_scanned():
    corpus = [_doc("a", paragraph(text("yacht school")), collection="certificates-new")]

    stats = classify("yacht school", TARGET, corpus, locale="uk")

    assert stats.occurrences == ()


def test_same_id_in_other_collection_is_still_scanned():
    corpus = [_doc("a", paragraph(text("yacht school")), collection="posts-new")]

    assert classify("yacht school", TARGET, corpus, locale="uk").potential_links == 1


def test_every_occurrence_counts_separately():
    corpus = [
        _doc(
            "1",
            paragraph(internal_link("certificates-new", "a", text("yacht school"))),
            paragraph(text("A yacht school. Another yacht school.")),
        )
    ]

    stats = classify("yacht school", TARGET, corpus, locale="uk")

    assert (stats.existing_links, stats.potential_links) == (1, 2)


def test_links_elsewhere_count_as_neither():
    corpus = [
        _doc(
            "1",
            paragraph(
                internal_link("certificates-new", "b", text("yacht school")),
                text(" and "),
                url_link("https://example.com/other", text("yacht school")),
            ),
        )
    ]

    stats = classify("yacht school", TARGET, corpus, locale="uk")

    assert (stats.existing_links, stats.potential_links) == (0, 0)
    assert [occurrence.kind for occurrence in stats.occurrences] == [
        EXISTING_LINK_ELSEWHERE,
        EXISTING_LINK_ELSEWHERE,
    ]


def test_phrase_split_across_formatting_is_matched():
    corpus = [_doc("1", paragraph(text("yacht "), text("school", fmt=1)))]

    assert classify("yacht school", TARGET, corpus, locale="uk").potential_links == 1


def test_phrase_is_not_merged_across_link_boundary():
    corpus = [_doc("1", paragraph(text("yacht "), internal_link("certificates-new", "a", text("school"))))]

    stats = classify("yacht school", TARGET, corpus, locale="uk")

    assert stats.occurrences == ()


def test_phrase_is_not_merged_across_blocks():
    corpus = [_doc("1", paragraph(text("yacht")), paragraph(text("school")))]

    assert classify("yacht school", TARGET, corpus, locale="uk").occurrences == ()


def test_documents_in_other_locales_are_skipped():
    corpus = [
        _doc("1", paragraph(text("yacht school")), locale="ru"),
        _doc("2", paragraph(text("yacht school"))),
    ]

    stats = classify("yacht school", TARGET, corpus, locale="uk")

    assert stats.potential_links == 1
    assert {occurrence.document_id for occurrence in stats.occurrences} == {"2"}


def test_empty_anchor_short_circuits():
    corpus = [_doc("1", paragraph(text("anything")))]

    stats = classify("", TARGET, corpus, locale="uk", include_details=True)

    assert (stats.existing_links, stats.potential_links) == (0, 0)
    assert stats.details == {"internalLinks": {}, "potentialLinks": {}}


def test_occurrences_partition_into_known_kinds():
    corpus = [
        _doc(
            "1",
            paragraph(internal_link("certificates-new", "a", text("skipper"))),
            paragraph(text("skipper skippers skipper")),
            paragraph(url_link("/elsewhere", text("Skipper"))),
        )
    ]

    stats = classify("skipper", TARGET, corpus, locale="uk")
    kinds = Counter(occurrence.kind for occurrence in stats.occurrences)

    assert set(kinds) <= set(OCCURRENCE_KINDS)
    assert sum(kinds.values()) == len(stats.occurrences) == 5
    assert kinds[EXISTING_LINK_TO_TARGET] == stats.existing_links == 1
    assert kinds[POTENTIAL_LINK] == stats.potential_links == 2
    assert kinds[IGNORED] == 1
    assert kinds[EXISTING_LINK_ELSEWHERE] == 1


def test_details_list_distinct_ids_per_collection():
    corpus = [
        _doc("1", paragraph(internal_link("certificates-new", "a", text("skipper")), text(" skipper"))),
        _doc("2", paragraph(text("skipper, skipper"))),
        _doc("7", paragraph(text("skipper")), collection="tags-new"),
    ]

    stats = classify("skipper", TARGET, corpus, locale="uk", include_details=True)

    assert stats.details == {
        "internalLinks": {"posts-new": ["1"]},
        "potentialLinks": {"posts-new": ["1", "2"], "tags-new": ["7"]},
    }


def test_details_are_omitted_unless_requested():
    corpus = [_doc("1", paragraph(text("skipper")))]

    assert classify("skipper", TARGET, corpus, locale="uk").details is None


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/certificates/yacht-school",
        "/certificates/yacht-school/",
        "https://example.com/uk/Yacht-School?utm=1",
    ],
)
def test_url_link_to_target_slug_counts_as_existing(url):
    corpus = [_doc("1", paragraph(url_link(url, text("yacht school"))))]

    stats = classify("yacht school", TARGET, corpus, locale="uk", target_slug="yacht-school")

    assert stats.existing_links == 1


def test_url_link_without_slug_is_elsewhere():
    corpus = [_doc("1", paragraph(url_link("/certificates/yacht-school", text("yacht school"))))]

    stats = classify("yacht school", TARGET, corpus, locale="uk")

    assert stats.existing_links == 0
    assert stats.occurrences[0].kind == EXISTING_LINK_ELSEWHERE


def test_malformed_documents_are_skipped_and_reported():
    corpus = [
        make_document("posts-new", "broken", content={"root": 3}),
        _doc("2", paragraph(text("yacht school"))),
    ]

    stats = classify("yacht school", TARGET, corpus, locale="uk")

    assert stats.potential_links == 1
    assert stats.skipped == (Reference("posts-new", "broken"),)


def test_sub_word_hit_does_not_hide_overlapping_whole_word_match():
    corpus = [_doc("1", paragraph(text("Tabora bora bora trip")))]

    stats = classify("bora bora", TARGET, corpus, locale="uk")

    assert stats.potential_links == 1
    assert [(o.start, o.end, o.kind) for o in stats.occurrences] == [
        (2, 11, IGNORED),
        (7, 16, POTENTIAL_LINK),
    ]


def test_cyrillic_sub_word_hit_does_not_hide_whole_word_match():
    corpus = [_doc("1", paragraph(text("Заправа права права")))]

    stats = classify("права права", TARGET, corpus, locale="uk")

    assert stats.potential_links == 1
