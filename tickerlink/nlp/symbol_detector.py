"""
Ticker detection and disambiguation for trading-chat messages.

Pipeline for free text:
1. Candidate extraction with the symbol regex ($ / # prefixes recorded)
2. Lexicon gate (allowlist, common words, Hebrew-chat stopwords)
3. Confidence scoring from prefixes, keywords, shape and list context,
   minus the technical-context penalty
4. Threshold (lower for allowlisted symbols)
5. Context-trust recovery of single-letter tickers
6. Dedupe, rank by priority then confidence, truncate

Examples:
    "Check out AAPL and MSFT for good trades"  -> AAPL, MSFT
    "Buy $AAPL and MSFT"                        -> AAPL ranks above MSFT
    "QUBT / BKV / MSFT / VEEV 👀" (deals line)  -> all four at 1.0
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from tickerlink.logging_utils import format_symbol_summary
from tickerlink.nlp.allowlist import SymbolAllowlist
from tickerlink.nlp.lexicon import (
    COMMON_WORDS,
    ENGLISH_STOCK_KEYWORDS,
    EXPLICIT_PREFIXES,
    HEBREW_KEYWORDS,
    HEBREW_STOPWORDS,
    HEBREW_TIER_BOOSTS,
    MAX_SYMBOL_RESULTS,
    SINGLE_LETTER_KEYWORDS,
    SINGLE_LETTER_WORDS,
    SYMBOL_PATTERN,
    contains_hebrew,
    has_symbol_format,
)
from tickerlink.nlp.message_structure import TopPicksParser
from tickerlink.nlp.schemas import StockSymbol, SymbolPriority
from tickerlink.nlp.technical_context import TechnicalContextDetector

logger = logging.getLogger(__name__)

# =============================================================================
# SCORING CONSTANTS
# =============================================================================

BASE_CONFIDENCE = 0.5
ALLOWLIST_BOOST = 0.4
PREFIX_BOOSTS = {"$": 0.4, "#": 0.3}
ENGLISH_KEYWORD_BOOST = 0.2
LENGTH_BOOST = 0.1  # 2-4 letters
STANDALONE_BOOST = 0.1
LIST_MEMBER_BOOST = 0.1
SINGLE_LETTER_BONUS = 0.2

PREFIXED_CEILING = 1.0
BARE_CEILING = 0.95  # keeps "$X" strictly above a bare "X"

ACCEPT_THRESHOLD = 0.3
ALLOWLIST_ACCEPT_THRESHOLD = 0.2
TRUSTED_CONFIDENCE = 0.5  # multi-letter symbols at or above this vouch for single letters

KEYWORD_WINDOW = 100
SINGLE_LETTER_WINDOW = 30

_LIST_SEPARATOR_BEFORE = re.compile(r"(?<![A-Za-z])[$#]?[A-Z]{1,5}\s*[/,]\s*[$#]?$")
_LIST_SEPARATOR_AFTER = re.compile(r"^\s*[/,]\s*[$#]?[A-Z]{1,5}(?![A-Za-z])")

_EMOJI = r"[\U0001F300-\U0001FAFF\u2600-\u27BF\u2B00-\u2BFF]"
_EMOJI_BEFORE = re.compile(rf"(?<![A-Za-z])[$#]?[A-Z]{{1,5}}\s*{_EMOJI}+\s*[$#]?$")
_EMOJI_AFTER = re.compile(rf"^\s*{_EMOJI}+\s*[$#]?[A-Z]{{1,5}}(?![A-Za-z])")

_DEALS_SPLIT = re.compile(r"[/\s]+")
_NON_WORD = re.compile(r"\W", re.UNICODE)
_DEALS_TOKEN = re.compile(r"^[A-Za-z]{1,5}$")


def _compile_keywords(keywords) -> re.Pattern:
    # Hebrew words take attached prefix letters (ב, ה, ו), so they match as substrings
    alternatives = [
        re.escape(kw) if contains_hebrew(kw) else rf"\b{re.escape(kw.lower())}\b" for kw in keywords
    ]
    return re.compile("|".join(alternatives))


# Matched against lowercased text windows
_ENGLISH_KEYWORDS = _compile_keywords(ENGLISH_STOCK_KEYWORDS)
_HEBREW_TIER_KEYWORDS = {tier: _compile_keywords(kws) for tier, kws in HEBREW_KEYWORDS.items()}
_SINGLE_LETTER_KEYWORDS = _compile_keywords(
    SINGLE_LETTER_KEYWORDS + HEBREW_KEYWORDS["strong"] + HEBREW_KEYWORDS["medium"]
)


@dataclass
class _Candidate:
    symbol: str
    offset: int
    prefix: str = ""


@dataclass
class _Scored:
    symbol: str
    offset: int
    confidence: float
    priority: SymbolPriority = SymbolPriority.REGULAR


class SymbolDetector:
    """
    Scores uppercase tokens in chat text and returns the likely tickers.

    The allowlist and technical classifier are injected so tests and
    deployments can share or isolate them; defaults are fresh instances.
    """

    def __init__(
        self,
        symbol_allowlist: Optional[SymbolAllowlist] = None,
        technical_detector: Optional[TechnicalContextDetector] = None,
        *,
        max_results: int = MAX_SYMBOL_RESULTS,
        symbol_pattern: str = SYMBOL_PATTERN,
        context_trust_min_symbols: int = 1,
        top_picks_parser: Optional[TopPicksParser] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._allowlist = symbol_allowlist if symbol_allowlist is not None else SymbolAllowlist()
        self._technical = (
            technical_detector if technical_detector is not None else TechnicalContextDetector()
        )
        self.max_results = max_results
        self._pattern = re.compile(symbol_pattern)
        self.context_trust_min_symbols = context_trust_min_symbols
        self._top_picks = top_picks_parser or TopPicksParser(
            validator=self.is_valid_symbol_with_context
        )
        self.logger = logger or logging.getLogger(__name__)

    @property
    def symbol_allowlist(self) -> SymbolAllowlist:
        return self._allowlist

    @property
    def technical_detector(self) -> TechnicalContextDetector:
        return self._technical

    # =========================================================================
    # FREE TEXT
    # =========================================================================

    def detect_symbols(self, content: str) -> List[StockSymbol]:
        return self.detect_symbols_from_analysis(content)

    def detect_symbols_from_analysis(self, content: str) -> List[StockSymbol]:
        """
        Detect tickers in free-form message text.

        Symbols listed in a "top picks" section are promoted to top_long /
        top_short priority with full confidence and rank first.

        Args:
            content: Message text, ideally already passed through clean_text

        Returns:
            Ranked symbols, at most ``max_results``; empty for empty input
        """
        if not isinstance(content, str) or not content.strip():
            return []

        accepted: List[_Scored] = []
        held_back: List[_Candidate] = []

        for candidate in self._extract_candidates(content):
            allowlisted = self._allowlist.is_symbol_allowed(candidate.symbol)

            if len(candidate.symbol) == 1 and not allowlisted:
                held_back.append(candidate)
                continue

            if not self._passes_lexicon(candidate, allowlisted):
                self.logger.debug(f"Rejected '{candidate.symbol}': common word")
                continue

            confidence = self._score(candidate, content, allowlisted)
            threshold = ALLOWLIST_ACCEPT_THRESHOLD if allowlisted else ACCEPT_THRESHOLD
            if confidence >= threshold:
                accepted.append(_Scored(candidate.symbol, candidate.offset, confidence))
            else:
                self.logger.debug(
                    f"Rejected '{candidate.symbol}': confidence {confidence:.2f} < {threshold}"
                )

        accepted.extend(self._recover_single_letters(content, held_back, accepted))
        accepted = self._apply_top_picks(content, accepted)

        results = self._finalize(accepted)
        if results:
            self.logger.debug(f"🔍 Detected {len(results)} symbols: {format_symbol_summary(results)}")
        return results

    def _extract_candidates(self, content: str) -> List[_Candidate]:
        group = "symbol" if "symbol" in self._pattern.groupindex else (1 if self._pattern.groups else 0)
        candidates = []
        for match in self._pattern.finditer(content):
            symbol = match.group(group)
            if not symbol:
                continue
            offset = match.start(group)
            prefix = content[offset - 1] if offset > 0 and content[offset - 1] in EXPLICIT_PREFIXES else ""
            candidates.append(_Candidate(symbol.upper(), offset, prefix))
        return candidates

    def _passes_lexicon(self, candidate: _Candidate, allowlisted: bool) -> bool:
        if allowlisted or candidate.prefix:
            return True
        return candidate.symbol not in COMMON_WORDS and candidate.symbol not in HEBREW_STOPWORDS

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def _score(
        self, candidate: _Candidate, content: str, allowlisted: bool, bonus: float = 0.0
    ) -> float:
        symbol, offset = candidate.symbol, candidate.offset
        end = offset + len(symbol)

        raw = BASE_CONFIDENCE + bonus
        if allowlisted:
            raw += ALLOWLIST_BOOST
        raw += PREFIX_BOOSTS.get(candidate.prefix, 0.0)

        window = content[max(0, offset - KEYWORD_WINDOW):end + KEYWORD_WINDOW].lower()
        if _ENGLISH_KEYWORDS.search(window):
            raw += ENGLISH_KEYWORD_BOOST
        raw += self._hebrew_tier_boost(window)

        if 2 <= len(symbol) <= 4:
            raw += LENGTH_BOOST
        if self._is_standalone(content, offset, end):
            raw += STANDALONE_BOOST
        if self._is_list_member(content, candidate):
            raw += LIST_MEMBER_BOOST

        ceiling = PREFIXED_CEILING if candidate.prefix else BARE_CEILING
        penalty = self._technical.get_technical_confusion_penalty(symbol, content, offset)
        return min(raw, ceiling) - penalty

    @staticmethod
    def _hebrew_tier_boost(window_lower: str) -> float:
        best = 0.0
        for tier, pattern in _HEBREW_TIER_KEYWORDS.items():
            if pattern.search(window_lower):
                best = max(best, HEBREW_TIER_BOOSTS[tier])
        return best

    @staticmethod
    def _is_standalone(content: str, start: int, end: int) -> bool:
        before_ok = start == 0 or content[start - 1].isspace()
        after_ok = end >= len(content) or content[end].isspace()
        return before_ok and after_ok

    @staticmethod
    def _is_list_member(content: str, candidate: _Candidate) -> bool:
        start = candidate.offset - len(candidate.prefix)
        end = candidate.offset + len(candidate.symbol)
        before = content[max(0, start - SINGLE_LETTER_WINDOW):start]
        after = content[end:end + SINGLE_LETTER_WINDOW]
        return bool(_LIST_SEPARATOR_BEFORE.search(before) or _LIST_SEPARATOR_AFTER.match(after))

    # -------------------------------------------------------------------------
    # Single-letter recovery
    # -------------------------------------------------------------------------

    def _recover_single_letters(
        self, content: str, held_back: Sequence[_Candidate], accepted: Sequence[_Scored]
    ) -> List[_Scored]:
        if not held_back:
            return []

        trusted = [s for s in accepted if len(s.symbol) > 1 and s.confidence >= TRUSTED_CONFIDENCE]
        recovered = []
        for candidate in held_back:
            if candidate.prefix:
                confidence = self._score(candidate, content, allowlisted=False)
            elif len(trusted) < self.context_trust_min_symbols:
                self.logger.debug(
                    f"Rejected '{candidate.symbol}': only {len(trusted)} trusted symbols in message"
                )
                continue
            elif not self._has_single_letter_context(candidate, content):
                self.logger.debug(f"Rejected '{candidate.symbol}': no single-letter ticker context")
                continue
            else:
                confidence = self._score(
                    candidate, content, allowlisted=False, bonus=SINGLE_LETTER_BONUS
                )

            if confidence >= ACCEPT_THRESHOLD:
                recovered.append(_Scored(candidate.symbol, candidate.offset, confidence))
                self.logger.debug(f"Recovered single-letter symbol '{candidate.symbol}'")
        return recovered

    def _has_single_letter_context(self, candidate: _Candidate, content: str) -> bool:
        if self._is_list_member(content, candidate):
            return True

        start, end = candidate.offset, candidate.offset + 1
        before = content[max(0, start - SINGLE_LETTER_WINDOW):start]
        after = content[end:end + SINGLE_LETTER_WINDOW]
        if _EMOJI_BEFORE.search(before) or _EMOJI_AFTER.match(after):
            return True

        # "A" and "I" are ordinary words; only list shape recovers them
        if candidate.symbol in SINGLE_LETTER_WORDS:
            return False

        window = (before + content[start:end] + after).lower()
        return _SINGLE_LETTER_KEYWORDS.search(window) is not None

    # -------------------------------------------------------------------------
    # Ranking
    # -------------------------------------------------------------------------

    def _apply_top_picks(self, content: str, accepted: List[_Scored]) -> List[_Scored]:
        if not self._top_picks.has_top_picks(content):
            return accepted

        picks = self._top_picks.parse_top_picks(content)
        priorities: Dict[str, SymbolPriority] = {}
        for symbol in picks.long_picks:
            priorities.setdefault(symbol, SymbolPriority.TOP_LONG)
        for symbol in picks.short_picks:
            priorities.setdefault(symbol, SymbolPriority.TOP_SHORT)
        if not priorities:
            return accepted

        updated = []
        seen = set()
        for scored in accepted:
            priority = priorities.get(scored.symbol)
            if priority is not None:
                scored = _Scored(scored.symbol, scored.offset, 1.0, priority)
                seen.add(scored.symbol)
            updated.append(scored)

        for symbol, priority in priorities.items():
            if symbol not in seen:
                offset = content.find(symbol)
                updated.append(_Scored(symbol, offset if offset >= 0 else len(content), 1.0, priority))
        return updated

    def _finalize(self, scored: Sequence[_Scored]) -> List[StockSymbol]:
        best: Dict[str, _Scored] = {}
        for item in scored:
            current = best.get(item.symbol)
            if current is None or self._rank_key(item) < self._rank_key(current):
                best[item.symbol] = item

        ranked = sorted(best.values(), key=self._rank_key)[: self.max_results]
        return [
            StockSymbol(
                symbol=item.symbol,
                confidence=round(min(1.0, max(0.0, item.confidence)), 4),
                position=index,
                priority=item.priority,
            )
            for index, item in enumerate(ranked)
        ]

    @staticmethod
    def _rank_key(item: _Scored) -> Tuple[int, float, int]:
        return (item.priority.sort_order, -item.confidence, item.offset)

    # =========================================================================
    # STRUCTURED INPUT
    # =========================================================================

    def detect_symbols_from_top_picks(self, content: str) -> List[StockSymbol]:
        """Symbols from a "top picks" section only, longs before shorts, at 1.0."""
        if not isinstance(content, str) or not self._top_picks.has_top_picks(content):
            return []

        picks = self._top_picks.parse_top_picks(content)
        results: List[StockSymbol] = []
        seen = set()
        tagged = [(s, SymbolPriority.TOP_LONG) for s in picks.long_picks] + [
            (s, SymbolPriority.TOP_SHORT) for s in picks.short_picks
        ]
        for symbol, priority in tagged:
            if symbol in seen or len(results) >= self.max_results:
                continue
            seen.add(symbol)
            results.append(
                StockSymbol(symbol=symbol, confidence=1.0, position=len(results), priority=priority)
            )
        return results

    def detect_symbols_from_deals_line(self, line: str) -> List[StockSymbol]:
        """
        Parse a deals line such as "QUBT / BKV / MSFT / VEEV 👀".

        Tokens are split on "/" and whitespace and stripped of emoji and
        punctuation. Every 1-5 letter token is validated against the rest of
        the line, so single letters need another real ticker beside them.
        """
        if not isinstance(line, str) or not line.strip():
            return []

        tokens: List[str] = []
        for part in _DEALS_SPLIT.split(line):
            token = _NON_WORD.sub("", part)
            if _DEALS_TOKEN.match(token):
                token = token.upper()
                if token not in tokens:
                    tokens.append(token)

        results: List[StockSymbol] = []
        for token in tokens:
            if len(results) >= self.max_results:
                break
            if self.is_valid_symbol_with_context(token, tokens):
                results.append(StockSymbol(symbol=token, confidence=1.0, position=len(results)))
            else:
                self.logger.debug(f"Rejected deals token '{token}'")

        self.logger.info(f"💼 Deals line parsed: {format_symbol_summary(results) or 'no symbols'}")
        return results

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def is_likely_stock_symbol(self, symbol: str) -> bool:
        """Format and lexicon check, without any surrounding text."""
        if not has_symbol_format(symbol):
            return False
        if self._allowlist.is_symbol_allowed(symbol):
            return True
        return (
            symbol not in COMMON_WORDS
            and symbol not in HEBREW_STOPWORDS
            and symbol not in SINGLE_LETTER_WORDS
        )

    def is_valid_symbol_with_context(self, symbol: str, context_symbols: Sequence[str]) -> bool:
        """
        Validate a symbol that came from a closed list (deals line, picks line).

        Multi-letter symbols only need to pass the lexicon. A list is
        ticker-shaped context, so single letters (including "A" and "I")
        pass when ``context_trust_min_symbols`` other valid multi-letter
        symbols share the list.
        """
        if not symbol:
            return False
        symbol = symbol.upper()
        if not has_symbol_format(symbol):
            return False
        if self._allowlist.is_symbol_allowed(symbol):
            return True
        if len(symbol) > 1:
            return self.is_likely_stock_symbol(symbol)

        trusted = [
            s.upper()
            for s in context_symbols
            if s and len(s) > 1 and s.upper() != symbol and self.is_likely_stock_symbol(s.upper())
        ]
        return len(trusted) >= self.context_trust_min_symbols
