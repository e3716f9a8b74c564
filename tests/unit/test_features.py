"""Tests for feature extraction."""

from focusflow.intelligence.features import (
    KEYWORD_FAMILIES,
    count_keyword_hits,
    extract_features,
    extract_keywords,
)
from focusflow.models import TaskContext


def test_empty_text_yields_zero_features():
    features = extract_features(TaskContext())
    assert features.word_count == 0
    assert features.title_len == 0
    assert features.desc_len == 0
    assert not features.has_text
    assert all(features.hits(f) == 0 for f in KEYWORD_FAMILIES)


def test_lengths_and_word_count():
    ctx = TaskContext(title="Write release notes", description="Cover the new export command")
    features = extract_features(ctx)
    assert features.title_len == len("Write release notes")
    assert features.desc_len == len("Cover the new export command")
    assert features.word_count == 8
    assert features.has_text


def test_stems_match_word_starts():
    # "secur" hits "security"; "integrat" hits "integration"
    assert count_keyword_hits("improve security of the integration", "technical") == 2
    # Stems only match at the start of a word
    assert count_keyword_hits("insecurity", "technical") == 0


def test_hits_count_distinct_stems_not_occurrences():
    assert count_keyword_hits("debug debug debug", "problem_solving") == 1
    assert count_keyword_hits("debug and fix", "problem_solving") == 2


def test_keyword_matching_is_case_insensitive():
    features = extract_features(TaskContext(title="URGENT: Fix API Deadline"))
    assert features.hits("urgent") == 2
    assert features.hits("technical") == 1
    assert features.hits("problem_solving") == 1


def test_unknown_family_has_no_hits():
    features = extract_features(TaskContext(title="anything"))
    assert features.hits("nonexistent") == 0


def test_extract_keywords_skips_short_and_stopwords():
    words = extract_keywords("Fix the API for this new login flow with tokens")
    assert words == ["login", "flow", "tokens"]


def test_extract_keywords_dedups_and_limits():
    words = extract_keywords("alpha beta gamma alpha delta epsilon zeta", limit=3)
    assert words == ["alpha", "beta", "gamma"]
