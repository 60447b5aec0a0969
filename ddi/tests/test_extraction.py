"""Tests for the Drug Interactions section extractor."""

from ddi_checker.extraction import extract_interaction_section


def test_missing_phrase_returns_first_10000_chars() -> None:
    document = "x" * 12_000
    assert extract_interaction_section(document) == "x" * 10_000


def test_missing_phrase_short_document_returned_whole() -> None:
    document = "<h1>Simvastatin</h1><p>Indications and usage</p>"
    assert extract_interaction_section(document) == document


def test_section_cut_at_next_h2() -> None:
    """The excerpt runs from the phrase up to the next <h2 heading."""
    document = (
        "<h2>6 ADVERSE REACTIONS</h2><p>Myopathy.</p>"
        "<h2>7 DRUG INTERACTIONS</h2><p>Avoid strong CYP3A4 inhibitors.</p>"
        "<h2>8 USE IN SPECIFIC POPULATIONS</h2>"
    )
    result = extract_interaction_section(document)
    assert result == "DRUG INTERACTIONS</h2><p>Avoid strong CYP3A4 inhibitors.</p>"


def test_match_is_case_insensitive() -> None:
    document = "intro Drug Interactions: none known <H2>next"
    assert extract_interaction_section(document) == "Drug Interactions: none known "


def test_no_following_heading_returns_tail() -> None:
    document = "header <p>drug interactions</p><p>Do not exceed 20 mg.</p>"
    assert (
        extract_interaction_section(document)
        == "drug interactions</p><p>Do not exceed 20 mg.</p>"
    )


def test_first_occurrence_wins() -> None:
    """A table-of-contents mention comes before the real section."""
    document = "TOC: 7 Drug Interactions<h2>1 INDICATIONS</h2> ... drug interactions body"
    assert extract_interaction_section(document) == "Drug Interactions"


def test_empty_document() -> None:
    assert extract_interaction_section("") == ""
    assert extract_interaction_section(None) == ""


def test_malformed_markup_does_not_raise() -> None:
    document = "<<<h2 drug interactions <h2<h2 >>>"
    assert extract_interaction_section(document) == "drug interactions "
