"""Tests for the relevance filter strategies."""

from __future__ import annotations

from synth_scraper.core.relevance import (
    KeywordRelevanceStrategy,
    RelevanceFilter,
    TokenRelevanceStrategy,
    stemmed_tokens,
)


class SpyTokenStrategy(TokenRelevanceStrategy):
    def __init__(self):
        self.calls = []

    def is_relevant(self, markup, category):
        self.calls.append(category)
        return super().is_relevant(markup, category)


class TestKeywordStrategy:
    def test_matches_static_keyword_case_insensitively(self):
        strategy = KeywordRelevanceStrategy()
        assert strategy.is_relevant("<h1>Our BLOG</h1>", "blog articles") is True

    def test_category_lookup_is_normalized(self):
        strategy = KeywordRelevanceStrategy()
        assert strategy.is_relevant("<p>Price: $10</p>", "  Product   Data ") is True

    def test_unknown_category_is_not_relevant(self):
        strategy = KeywordRelevanceStrategy()
        assert strategy.knows("job listings") is False
        assert strategy.is_relevant("<p>jobs jobs jobs</p>", "job listings") is False

    def test_custom_table(self):
        strategy = KeywordRelevanceStrategy({"Recipes": ["ingredient"]})
        assert strategy.is_relevant("<li>Ingredients</li>", "recipes") is True


class TestTokenStrategy:
    def test_stems_both_sides(self):
        assert "event" in stemmed_tokens("Upcoming EVENTS")
        assert TokenRelevanceStrategy().is_relevant("<p>One event only</p>", "events") is True

    def test_inflected_forms_match(self):
        assert TokenRelevanceStrategy().is_relevant("<p>We run every day</p>", "running shoes") is True

    def test_no_overlap(self):
        assert TokenRelevanceStrategy().is_relevant("<p>hiking trails</p>", "product data") is False

    def test_empty_inputs(self):
        strategy = TokenRelevanceStrategy()
        assert strategy.is_relevant("", "events") is False
        assert strategy.is_relevant("<p>events</p>", "") is False


class TestRelevanceFilter:
    def test_keyword_hit_short_circuits_tokens(self):
        spy = SpyTokenStrategy()
        relevance = RelevanceFilter(token_strategy=spy)

        assert relevance.is_relevant("<p>new blog post</p>", "blog articles") is True
        assert spy.calls == []

    def test_unknown_category_consults_token_strategy(self):
        spy = SpyTokenStrategy()
        relevance = RelevanceFilter(token_strategy=spy)

        assert relevance.is_relevant("<h2>Concert events</h2>", "events") is True
        assert spy.calls == ["events"]

    def test_known_category_keyword_miss_still_consults_tokens(self):
        spy = SpyTokenStrategy()
        relevance = RelevanceFilter(token_strategy=spy)

        assert relevance.is_relevant("<p>nothing here</p>", "product data") is False
        assert spy.calls == ["product data"]

    def test_unknown_category_without_overlap_is_skipped(self):
        assert RelevanceFilter().is_relevant("<p>weather report</p>", "job listings") is False

    def test_empty_markup(self):
        assert RelevanceFilter().is_relevant("", "blog articles") is False
