"""
Analysis linker - in-memory index of analyst commentary per ticker.

Every message in an analysis channel is scanned on its first line (where
analysts put the ticker being discussed). Matching messages are indexed per
symbol so a later mention of that symbol can link back to the most relevant
recent analysis. Messages from trusted authors also feed their "$SYMBOL"
mentions into the allowlist.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from cachetools import TLRUCache

from tickerlink.message_cleaner import clean_text, first_line
from tickerlink.nlp.allowlist import EXPIRY_EPSILON, SymbolAllowlist, utc_now
from tickerlink.nlp.schemas import AnalysisData, IncomingMessage, StockSymbol
from tickerlink.nlp.symbol_detector import SymbolDetector
from tickerlink.nlp.technical_context import TechnicalContextDetector

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_DAYS = 7
DEFAULT_MAX_PER_SYMBOL = 20
DEFAULT_ANALYSIS_LIMIT = 3
MAX_CACHED_ANALYSES = 10_000

# Relevance keyword tiers for indexed analysis
STRONG_KEYWORDS = ("analysis", "target", "price target", "bullish", "bearish", "recommendation")
MEDIUM_KEYWORDS = ("chart", "technical", "support", "resistance", "breakout", "trend")
WEAK_KEYWORDS = ("buy", "sell", "hold", "watch", "trade")

# (max age in hours, score); anything older scores 0.2
RECENCY_TIERS = ((1, 1.0), (6, 0.8), (24, 0.6), (72, 0.4))
STALE_RECENCY_SCORE = 0.2


def build_message_url(guild_id: Optional[str], channel_id: str, message_id: str) -> str:
    """Jump link for a Discord message; DMs have no guild and use "@me"."""
    return f"https://discord.com/channels/{guild_id or '@me'}/{channel_id}/{message_id}"


def calculate_relevance_score(content: str, symbol_count: int) -> float:
    """
    Score how useful a message is as analysis for its symbols.

    Starts at 0.5, adds 0.3 / 0.2 / 0.1 per strong / medium / weak keyword,
    0.1 for long posts, and 0.2 for a single-symbol post (0.1 for up to
    three symbols). Capped at 1.0.
    """
    score = 0.5
    lower = (content or "").lower()

    score += 0.3 * sum(1 for kw in STRONG_KEYWORDS if kw in lower)
    score += 0.2 * sum(1 for kw in MEDIUM_KEYWORDS if kw in lower)
    score += 0.1 * sum(1 for kw in WEAK_KEYWORDS if kw in lower)

    if len(content or "") > 200:
        score += 0.1

    if symbol_count == 1:
        score += 0.2
    elif symbol_count <= 3:
        score += 0.1

    return min(score, 1.0)


class AnalysisLinker:
    """
    Indexes analyst messages per symbol and serves the most relevant ones.

    Analyses live in ``cachetools.TLRUCache`` instances keyed by
    (symbol, message_id), each expiring ``max_age_days`` after the message
    was posted.
    """

    def __init__(
        self,
        symbol_detector: SymbolDetector,
        symbol_allowlist: Optional[SymbolAllowlist] = None,
        trusted_author_ids: Iterable[str] = (),
        max_age_days: int = DEFAULT_MAX_AGE_DAYS,
        max_per_symbol: int = DEFAULT_MAX_PER_SYMBOL,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[logging.Logger] = None,
    ):
        self.detector = symbol_detector
        self.allowlist = (
            symbol_allowlist if symbol_allowlist is not None else symbol_detector.symbol_allowlist
        )
        self.trusted_author_ids = {str(author_id) for author_id in trusted_author_ids}
        self.max_age = timedelta(days=max_age_days)
        self.max_per_symbol = max_per_symbol
        self._clock = clock
        self.logger = logger or logging.getLogger(__name__)

        self._cache = self._new_cache()
        self._latest = self._new_cache()
        self._lock = threading.Lock()

    def _new_cache(self) -> TLRUCache:
        return TLRUCache(maxsize=MAX_CACHED_ANALYSES, ttu=self._expires_at, timer=self._clock)

    def _expires_at(self, _key, analysis: AnalysisData, _now: datetime) -> datetime:
        return analysis.timestamp + self.max_age + EXPIRY_EPSILON

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def process_message(self, message: IncomingMessage) -> List[StockSymbol]:
        """
        Index a message and, for trusted authors, update the allowlist.

        Detection runs before the allowlist update, so a "$SYMBOL" in this
        message only boosts later messages.

        Returns:
            Symbols detected on the message's first line
        """
        if message.is_bot:
            return []

        symbols = self.index_message(message)

        if str(message.author_id) in self.trusted_author_ids:
            self.allowlist.extract_symbols_from_admin_message(
                message.content, str(message.author_id), str(message.message_id)
            )
        return symbols

    def index_message(self, message: IncomingMessage) -> List[StockSymbol]:
        if message.is_bot:
            return []

        headline = first_line(clean_text(message.content))
        symbols = self.detector.detect_symbols(headline)
        if not symbols:
            return []

        symbol_names = [s.symbol for s in symbols]
        analysis = AnalysisData(
            message_id=str(message.message_id),
            channel_id=str(message.channel_id),
            author_id=str(message.author_id),
            content=message.content,
            symbols=symbol_names,
            timestamp=message.created_at,
            relevance_score=calculate_relevance_score(message.content, len(symbols)),
            message_url=build_message_url(message.guild_id, message.channel_id, message.message_id),
        )

        with self._lock:
            for symbol in symbol_names:
                self._add_to_cache(symbol, analysis)
                self._latest[symbol] = analysis

        self.logger.info(
            f"📈 Indexed analysis for symbols: {', '.join(symbol_names)} "
            f"from {message.author_name or message.author_id}"
        )
        return symbols

    def _entries_for(self, symbol: str) -> List[AnalysisData]:
        # caller holds the lock; TLRUCache iteration skips expired keys
        entries = (self._cache.get(key) for key in list(self._cache) if key[0] == symbol)
        return [analysis for analysis in entries if analysis is not None]

    def _add_to_cache(self, symbol: str, analysis: AnalysisData) -> None:
        self._cache[(symbol, analysis.message_id)] = analysis
        entries = sorted(self._entries_for(symbol), key=lambda a: a.timestamp, reverse=True)
        for dropped in entries[self.max_per_symbol:]:
            del self._cache[(symbol, dropped.message_id)]

    def initialize_from_historical_data(self, historical: Mapping[str, AnalysisData]) -> int:
        """Replace the index with one latest analysis per symbol; stale ones are skipped."""
        with self._lock:
            self._cache = self._new_cache()
            self._latest = self._new_cache()
            for symbol, analysis in historical.items():
                symbol = symbol.upper()
                self._latest[symbol] = analysis
                self._add_to_cache(symbol, analysis)
            loaded = sorted(self._latest)

        self.logger.info(f"✅ Historical analysis loaded for: {', '.join(loaded) or 'no symbols'}")
        return len(loaded)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @staticmethod
    def _recency_score(timestamp: datetime, now: datetime) -> float:
        age_hours = (now - timestamp).total_seconds() / 3600
        for max_hours, score in RECENCY_TIERS:
            if age_hours <= max_hours:
                return score
        return STALE_RECENCY_SCORE

    def get_latest_analysis(self, symbol: str, limit: int = DEFAULT_ANALYSIS_LIMIT) -> List[AnalysisData]:
        """Most relevant recent analyses for ``symbol`` (recency tier + relevance)."""
        now = self._clock()
        with self._lock:
            recent = self._entries_for(symbol.upper())

        recent.sort(key=lambda a: self._recency_score(a.timestamp, now) + a.relevance_score, reverse=True)
        return recent[:limit]

    def get_all_relevant_analysis(self, symbols: Iterable[str]) -> Dict[str, List[AnalysisData]]:
        results = {}
        for symbol in symbols:
            analyses = self.get_latest_analysis(symbol)
            if analyses:
                results[symbol.upper()] = analyses
        return results

    def get_latest_analysis_url(self, symbol: str) -> Optional[str]:
        with self._lock:
            latest = self._latest.get(symbol.upper())
        return latest.message_url if latest else None

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def cleanup_expired_analysis(self) -> int:
        with self._lock:
            before = len(self._cache)
            self._cache.expire()
            self._latest.expire()
            removed = before - len(self._cache)

        if removed:
            self.logger.info(f"🧹 Cleaned up {removed} expired analysis entries")
        return removed

    def get_cache_stats(self) -> dict:
        with self._lock:
            keys = list(self._cache)
        return {
            "total_symbols": len({symbol for symbol, _ in keys}),
            "total_analyses": len(keys),
        }


def create_analysis_linker(config=None) -> AnalysisLinker:
    """Wire allowlist, classifier, detector and linker from settings."""
    if config is None:
        from tickerlink.config import settings

        config = settings()

    allowlist = SymbolAllowlist(max_age_days=config.ALLOWLIST_MAX_AGE_DAYS)
    detector = SymbolDetector(
        allowlist,
        TechnicalContextDetector(),
        max_results=config.MAX_SYMBOL_RESULTS,
        symbol_pattern=config.SYMBOL_PATTERN,
        context_trust_min_symbols=config.CONTEXT_TRUST_MIN_SYMBOLS,
    )
    return AnalysisLinker(
        detector,
        allowlist,
        trusted_author_ids=config.trusted_author_ids_list,
        max_age_days=config.ANALYSIS_MAX_AGE_DAYS,
    )
