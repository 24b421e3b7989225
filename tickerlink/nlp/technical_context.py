"""
Technical-analysis and geographic context classification.

Decides whether an uppercase token next to "52 WH", "EMA 20" or "US market"
is really jargon rather than a ticker, and turns that into a confidence
penalty for the symbol detector.

The penalty for a token inside a technical or geographic term (1.5) is larger
than any combination of boosts, so context can veto even an allowlisted
ticker. Tokens that are merely ambiguous get a light penalty instead.
"""

import logging
import re
from typing import Iterable, List, Optional, Union

from tickerlink.nlp.lexicon import (
    CONFUSABLE_TOKENS,
    EXPLICIT_PREFIXES,
    GEOGRAPHIC_CODES,
    GEOGRAPHIC_MARKERS,
    SYMBOL_SPECIFIC_KEYWORDS,
)
from tickerlink.nlp.schemas import TechnicalPattern

logger = logging.getLogger(__name__)

TECHNICAL_CONTEXT_PENALTY = 1.5
AMBIGUOUS_TOKEN_PENALTY = 0.2

CONTEXT_WINDOW = 30  # chars either side of the token for pattern checks
GEOGRAPHIC_WINDOW = 50
GEOGRAPHIC_MAX_DISTANCE = 20
INDICATOR_WINDOW = 50  # 100-char window for symbol-specific keywords
TECHNICAL_RATIO_THRESHOLD = 0.3
MIN_WORDS_FOR_RATIO = 5


def _pattern(regex: str) -> re.Pattern:
    return re.compile(regex, re.IGNORECASE)


# =============================================================================
# PATTERN TABLES
# =============================================================================

DEFAULT_TECHNICAL_PATTERNS = (
    TechnicalPattern(
        _pattern(r"\b\d+\s?WH\b"),
        "Week High indicator (e.g., 52WH)",
        ("52WH", "52 WH", "4WH", "12WH"),
    ),
    TechnicalPattern(
        _pattern(r"\b(?:week|high|new)\s+(?:week\s+)?(?:high\s+)?WH\b"),
        "Week High reference (reverse order)",
        ("new WH", "week high WH", "high WH"),
    ),
    TechnicalPattern(
        _pattern(r"\b\d+\s?WL\b"),
        "Week Low indicator (e.g., 52WL)",
        ("52WL", "52 WL", "4WL"),
    ),
    TechnicalPattern(
        _pattern(r"\b(?:EMA|SMA|DMA)\s?\d+\b"),
        "Moving Average indicators",
        ("EMA20", "SMA 50", "DMA200"),
    ),
    TechnicalPattern(
        _pattern(r"\b\d+\s?(?:EMA|SMA|DMA)\b"),
        "Moving Average indicators (prefix format)",
        ("20EMA", "50 SMA", "200DMA"),
    ),
    TechnicalPattern(
        _pattern(r"\b(?:RSI|MACD|BB)\s?\d+\b"),
        "Technical indicators with numbers",
        ("RSI14", "RSI 14", "MACD12", "BB20"),
    ),
    TechnicalPattern(
        _pattern(r"\bAVWAP\b"),
        "Anchored Volume Weighted Average Price",
        ("AVWAP",),
    ),
    TechnicalPattern(
        _pattern(r"\b(?:ATH|ATL)\b"),
        "All Time High/Low",
        ("ATH", "ATL"),
    ),
)

_GEO_CODES_ALT = "US|UK|EU|CA|JP|CN|DE|FR|IT|ES|KR|AU"

DEFAULT_GEOGRAPHIC_PATTERNS = (
    TechnicalPattern(
        _pattern(rf"\b(?:{_GEO_CODES_ALT})\s+(?:market|markets|indices|index|economy|economic)\b"),
        "Geographic market references",
        ("US market", "EU indices", "JP economy", "AU market"),
    ),
    TechnicalPattern(
        _pattern(rf"\b(?:{_GEO_CODES_ALT})\s+(?:conditions|performance|outlook|data)\b"),
        "Geographic economic references",
        ("US conditions", "EU performance", "CA outlook"),
    ),
)

_GEO_MARKER_PATTERN = re.compile(
    r"\b(?:" + "|".join(GEOGRAPHIC_MARKERS) + r")\b", re.IGNORECASE
)


class TechnicalContextDetector:
    """Classifies tokens that could be technical-analysis or geographic jargon."""

    def __init__(
        self,
        technical_patterns: Optional[Iterable[TechnicalPattern]] = None,
        geographic_patterns: Optional[Iterable[TechnicalPattern]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._technical_patterns: List[TechnicalPattern] = list(
            DEFAULT_TECHNICAL_PATTERNS if technical_patterns is None else technical_patterns
        )
        self._geographic_patterns: List[TechnicalPattern] = list(
            DEFAULT_GEOGRAPHIC_PATTERNS if geographic_patterns is None else geographic_patterns
        )
        self.logger = logger or logging.getLogger(__name__)

    # -------------------------------------------------------------------------
    # Context checks
    # -------------------------------------------------------------------------

    def is_in_technical_context(self, token: str, text: str, position: int) -> bool:
        """
        Check whether the token at ``position`` is part of a technical or
        geographic term.

        Only the ±30 character window around the token is inspected, and a
        pattern match counts only if it covers this occurrence of the token,
        so an unrelated "EMA20" elsewhere in the window does not implicate it.

        Args:
            token: Candidate symbol as it appears in the text
            text: Full message text
            position: Character offset of the token in ``text``

        Returns:
            True if the token reads as jargon rather than a ticker
        """
        if not token or not text:
            return False

        start = max(0, position - CONTEXT_WINDOW)
        end = min(len(text), position + len(token) + CONTEXT_WINDOW)
        window = text[start:end]
        relative = position - start

        self.logger.debug(f"Checking technical context for '{token}' in: '{window}'")

        for tech in self._technical_patterns:
            if self._pattern_covers_token(tech.pattern, window, token, relative):
                self.logger.debug(f"'{token}' found in technical context: {tech.description}")
                return True

        for geo in self._geographic_patterns:
            if self._pattern_covers_token(geo.pattern, window, token, relative):
                self.logger.debug(f"'{token}' found in geographic context: {geo.description}")
                return True

        if self._is_near_geographic_marker(token, text, position):
            self.logger.debug(f"'{token}' found in geographic context via marker proximity")
            return True

        return False

    @staticmethod
    def _pattern_covers_token(pattern: re.Pattern, window: str, token: str, relative: int) -> bool:
        token_upper = token.upper()
        token_end = relative + len(token)
        for match in pattern.finditer(window):
            if token_upper not in match.group(0).upper():
                continue
            if match.start() <= relative and token_end <= match.end():
                return True
        return False

    def _is_near_geographic_marker(self, token: str, text: str, position: int) -> bool:
        if token.upper() not in GEOGRAPHIC_CODES:
            return False

        start = max(0, position - GEOGRAPHIC_WINDOW)
        end = min(len(text), position + len(token) + GEOGRAPHIC_WINDOW)
        context = text[start:end]
        token_start = position - start
        token_end = token_start + len(token)

        for marker in _GEO_MARKER_PATTERN.finditer(context):
            if marker.start() >= token_end:
                distance = marker.start() - token_end
            else:
                distance = token_start - marker.end()
            if 0 <= distance <= GEOGRAPHIC_MAX_DISTANCE:
                return True
        return False

    def is_primarily_technical_content(self, text: str) -> bool:
        """
        True when more than 30% of the words are technical terms.

        Messages under five words never qualify.
        """
        if not text:
            return False

        words = text.split()
        if len(words) < MIN_WORDS_FOR_RATIO:
            return False

        term_count = sum(
            len(tech.pattern.findall(text)) for tech in self._technical_patterns
        )
        ratio = term_count / len(words)
        if ratio > TECHNICAL_RATIO_THRESHOLD:
            self.logger.debug(
                f"Content flagged as primarily technical: {term_count}/{len(words)} "
                f"terms ({ratio * 100:.1f}%)"
            )
            return True
        return False

    def extract_technical_terms(self, text: str) -> List[str]:
        """Technical terms in ``text``, uppercased, first occurrence order."""
        if not text:
            return []

        found = []
        for tech in self._technical_patterns:
            for match in tech.pattern.finditer(text):
                term = match.group(0).upper()
                if term not in found:
                    found.append(term)
        return found

    # -------------------------------------------------------------------------
    # Ambiguity and penalty
    # -------------------------------------------------------------------------

    @staticmethod
    def could_be_confused_with_technical(token: str) -> bool:
        return bool(token) and token.upper() in CONFUSABLE_TOKENS

    def has_strong_symbol_indicators(self, token: str, text: str, position: int) -> bool:
        """
        True when the mention is clearly about a ticker.

        Either the token carries explicit "$"/"#" notation, or a
        symbol-specific keyword ("shares", "bullish", "target", ...) appears
        together with the token inside a 100 character window.
        """
        if not token or not text:
            return False

        if position > 0 and text[position - 1] in EXPLICIT_PREFIXES:
            self.logger.debug(f"'{token}' has strong prefix indicator: {text[position - 1]}")
            return True

        start = max(0, position - INDICATOR_WINDOW)
        end = min(len(text), position + len(token) + INDICATOR_WINDOW)
        context = text[start:end].lower()
        symbol = re.escape(token.lower())

        for keyword in SYMBOL_SPECIFIC_KEYWORDS:
            kw = re.escape(keyword)
            if re.search(rf"\b{kw}\b.*\b{symbol}\b|\b{symbol}\b.*\b{kw}\b", context):
                self.logger.debug(f"'{token}' has strong stock context keyword: {keyword}")
                return True
        return False

    def get_technical_confusion_penalty(self, token: str, text: str, position: int) -> float:
        """
        Confidence penalty for a candidate token.

        Returns:
            1.5 inside a technical/geographic term, 0.0 for unambiguous
            tokens or ambiguous ones with strong ticker indicators, otherwise 0.2
        """
        if self.is_in_technical_context(token, text, position):
            return TECHNICAL_CONTEXT_PENALTY

        if not self.could_be_confused_with_technical(token):
            return 0.0

        if self.has_strong_symbol_indicators(token, text, position):
            return 0.0

        return AMBIGUOUS_TOKEN_PENALTY

    # -------------------------------------------------------------------------
    # Pattern registry
    # -------------------------------------------------------------------------

    def add_technical_pattern(
        self,
        pattern: Union[str, re.Pattern],
        description: str,
        examples: Iterable[str] = (),
    ) -> TechnicalPattern:
        """Register an extra technical pattern (strings compile case-insensitive)."""
        compiled = _pattern(pattern) if isinstance(pattern, str) else pattern
        tech = TechnicalPattern(compiled, description, tuple(examples))
        self._technical_patterns.append(tech)
        self.logger.info(f"Added custom technical pattern: {description}")
        return tech

    def get_technical_patterns(self) -> List[TechnicalPattern]:
        return list(self._technical_patterns)
