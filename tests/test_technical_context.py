"""
Tests for tickerlink/nlp/technical_context.py - technical and geographic
context classification.
"""

import re

import pytest

from tickerlink.nlp.technical_context import (
    AMBIGUOUS_TOKEN_PENALTY,
    TECHNICAL_CONTEXT_PENALTY,
    TechnicalContextDetector,
)


def _check(detector, token, text, occurrence=0):
    position = [m.start() for m in re.finditer(re.escape(token), text)][occurrence]
    return detector.is_in_technical_context(token, text, position)


# =============================================================================
# TECHNICAL PATTERNS
# =============================================================================


class TestTechnicalPatterns:
    """Tokens that are part of technical-analysis shorthand."""

    @pytest.mark.parametrize(
        "token,text",
        [
            ("WH", "Stock hit a new 52WH today"),
            ("WH", "Broke the 52 WH on volume"),
            ("WH", "NVDA printing a new WH again"),
            ("WL", "Sitting right at the 52WL"),
            ("EMA", "Reclaimed the EMA20 this morning"),
            ("EMA", "Holding above EMA 20"),
            ("EMA", "Bounced off the 20EMA"),
            ("DMA", "Lost the 200 DMA"),
            ("RSI", "RSI14 is oversold"),
            ("MACD", "MACD12 crossing up"),
            ("BB", "Tagging BB20 upper band"),
            ("AVWAP", "Testing AVWAP from earnings"),
            ("ATH", "Another ATH for the index"),
        ],
    )
    def test_token_inside_technical_term(self, technical_detector, token, text):
        assert _check(technical_detector, token, text) is True

    def test_match_must_cover_the_token(self, technical_detector):
        """An EMA20 nearby does not implicate a separate bare EMA."""
        text = "EMA20 held and EMA bounce"
        assert _check(technical_detector, "EMA", text, occurrence=0) is True
        assert _check(technical_detector, "EMA", text, occurrence=1) is False

    def test_ordinary_ticker_not_technical(self, technical_detector):
        text = "AAPL looking strong into earnings"
        assert technical_detector.is_in_technical_context("AAPL", text, 0) is False

    def test_pattern_outside_window_ignored(self, technical_detector):
        text = "52WH" + " " * 60 + "WH"
        assert technical_detector.is_in_technical_context("WH", text, len(text) - 2) is False

    def test_empty_input(self, technical_detector):
        assert technical_detector.is_in_technical_context("", "text", 0) is False
        assert technical_detector.is_in_technical_context("WH", "", 0) is False


# =============================================================================
# GEOGRAPHIC CONTEXT
# =============================================================================


class TestGeographicContext:
    """Country codes used as market references rather than tickers."""

    @pytest.mark.parametrize(
        "token,text",
        [
            ("US", "US market is strong today"),
            ("EU", "EU indices fell overnight"),
            ("JP", "JP economy data came in hot"),
            ("CA", "CA outlook improving"),
        ],
    )
    def test_geographic_patterns(self, technical_detector, token, text):
        assert _check(technical_detector, token, text) is True

    def test_marker_proximity_fallback(self, technical_detector):
        """A market keyword within 20 chars of a country code counts."""
        assert _check(technical_detector, "US", "US heavy trading session") is True

    def test_marker_too_far(self, technical_detector):
        assert _check(technical_detector, "US", "US stocks and the broader market rally") is False

    def test_fallback_only_for_country_codes(self, technical_detector):
        assert _check(technical_detector, "NVDA", "NVDA market cap is huge") is False


# =============================================================================
# CONTENT-LEVEL CHECKS
# =============================================================================


class TestTechnicalContent:
    def test_primarily_technical(self, technical_detector):
        assert technical_detector.is_primarily_technical_content("RSI14 EMA20 52WH AVWAP breakout") is True

    def test_short_messages_never_technical(self, technical_detector):
        assert technical_detector.is_primarily_technical_content("RSI14 EMA20") is False

    def test_regular_text_not_technical(self, technical_detector):
        assert technical_detector.is_primarily_technical_content(
            "I like AAPL and MSFT a lot today"
        ) is False

    def test_extract_technical_terms(self, technical_detector):
        terms = technical_detector.extract_technical_terms("Price above ema20 and 52WH, RSI 14")

        assert "EMA20" in terms
        assert "52WH" in terms
        assert "RSI 14" in terms

    def test_extract_terms_deduplicates(self, technical_detector):
        assert technical_detector.extract_technical_terms("EMA20 then ema20 again") == ["EMA20"]


# =============================================================================
# PENALTY
# =============================================================================


class TestConfusionPenalty:
    def test_confusable_tokens(self, technical_detector):
        assert technical_detector.could_be_confused_with_technical("WH") is True
        assert technical_detector.could_be_confused_with_technical("vix") is True
        assert technical_detector.could_be_confused_with_technical("AAPL") is False

    def test_prefix_is_strong_indicator(self, technical_detector):
        assert technical_detector.has_strong_symbol_indicators("WH", "$WH", 1) is True
        assert technical_detector.has_strong_symbol_indicators("WH", "#WH", 1) is True

    def test_keyword_is_strong_indicator_in_either_order(self, technical_detector):
        assert technical_detector.has_strong_symbol_indicators("US", "US shares rally", 0) is True
        assert technical_detector.has_strong_symbol_indicators("SP", "bullish on SP", 11) is True

    def test_no_indicator(self, technical_detector):
        assert technical_detector.has_strong_symbol_indicators("US", "US looks weak", 0) is False

    def test_technical_context_vetoes(self, technical_detector):
        assert technical_detector.get_technical_confusion_penalty("WH", "new WH", 4) == TECHNICAL_CONTEXT_PENALTY

    def test_unambiguous_token_no_penalty(self, technical_detector):
        assert technical_detector.get_technical_confusion_penalty("AAPL", "AAPL up", 0) == 0.0

    def test_ambiguous_with_indicator_no_penalty(self, technical_detector):
        assert technical_detector.get_technical_confusion_penalty("WH", "$WH", 1) == 0.0

    def test_ambiguous_without_indicator_light_penalty(self, technical_detector):
        penalty = technical_detector.get_technical_confusion_penalty("WH", "WH looks weak", 0)
        assert penalty == AMBIGUOUS_TOKEN_PENALTY


# =============================================================================
# PATTERN REGISTRY
# =============================================================================


class TestPatternRegistry:
    def test_add_string_pattern(self, technical_detector):
        before = len(technical_detector.get_technical_patterns())
        technical_detector.add_technical_pattern(r"\bVWAP\b", "Volume Weighted Average Price", ["VWAP"])

        assert len(technical_detector.get_technical_patterns()) == before + 1
        assert technical_detector.is_in_technical_context("VWAP", "above vwap now", 6) is True

    def test_add_compiled_pattern(self, technical_detector):
        tech = technical_detector.add_technical_pattern(re.compile(r"\bHOD\b"), "High of day")
        assert tech.description == "High of day"
        assert technical_detector.is_in_technical_context("HOD", "new HOD", 4) is True

    def test_patterns_returned_as_copy(self, technical_detector):
        patterns = technical_detector.get_technical_patterns()
        patterns.clear()
        assert technical_detector.get_technical_patterns()

    def test_custom_pattern_set(self):
        detector = TechnicalContextDetector(technical_patterns=[], geographic_patterns=[])
        assert detector.is_in_technical_context("WH", "52WH", 2) is False
