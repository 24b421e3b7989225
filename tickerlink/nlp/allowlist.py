"""
Rolling allowlist of analyst-confirmed tickers.

When a trusted analyst writes "$XYZ", XYZ becomes trusted for the next
``max_age_days`` days: the detector accepts it at a lower threshold and gives
it a confidence boost. Entries live in a ``cachetools.TLRUCache`` whose
per-entry expiry is derived from the confirmation timestamp, so historical
entries age out on the same schedule as fresh ones. A periodic asyncio task
sweeps expired entries.
"""

import asyncio
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from cachetools import TLRUCache

from tickerlink.nlp.lexicon import EXPLICIT_SYMBOL_PATTERN, has_symbol_format
from tickerlink.nlp.schemas import AllowlistEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_DAYS = 14
DEFAULT_CLEANUP_INTERVAL_SECONDS = 3600
CONTEXT_MAX_CHARS = 200
MAX_ALLOWLIST_SYMBOLS = 10_000

# TLRUCache drops an entry once now >= expires; entries stay live through max_age inclusive
EXPIRY_EPSILON = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SymbolAllowlist:
    """
    Symbols confirmed by analysts, keyed by uppercase symbol.

    One entry per symbol: a re-confirmation replaces the entry and restarts
    its expiry window. All cache access goes through a lock.
    """

    def __init__(
        self,
        max_age_days: int = DEFAULT_MAX_AGE_DAYS,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[logging.Logger] = None,
    ):
        self.max_age = timedelta(days=max_age_days)
        self._clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self._cache = self._new_cache()
        self._lock = threading.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None

    def _new_cache(self) -> TLRUCache:
        return TLRUCache(maxsize=MAX_ALLOWLIST_SYMBOLS, ttu=self._expires_at, timer=self._clock)

    def _expires_at(self, _symbol: str, entry: AllowlistEntry, _now: datetime) -> datetime:
        return entry.timestamp + self.max_age + EXPIRY_EPSILON

    def _is_live(self, entry: AllowlistEntry, now: datetime) -> bool:
        return now < self._expires_at(entry.symbol, entry, now)

    def _evict_expired(self) -> int:
        # caller holds the lock
        before = len(self._cache)
        self._cache.expire()
        return before - len(self._cache)

    def __contains__(self, symbol: str) -> bool:
        return self.is_symbol_allowed(symbol)

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired()
            return len(self._cache)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_symbol(
        self, symbol: str, admin_id: str, message_id: str, context: str = ""
    ) -> AllowlistEntry:
        """Add or refresh a symbol. The entry timestamp is reset to now."""
        normalized = symbol.upper()
        entry = AllowlistEntry(
            symbol=normalized,
            timestamp=self._clock(),
            admin_id=str(admin_id),
            message_id=str(message_id),
            context=(context or "")[:CONTEXT_MAX_CHARS],
        )
        with self._lock:
            self._cache[normalized] = entry
        self.logger.info(f"✅ Added symbol to allowlist: {normalized} (admin {admin_id})")
        return entry

    def remove_symbol(self, symbol: str) -> bool:
        normalized = symbol.upper()
        with self._lock:
            self._evict_expired()
            removed = self._cache.pop(normalized, None) is not None
        if removed:
            self.logger.info(f"Removed symbol from allowlist: {normalized}")
        return removed

    def clear(self) -> int:
        """Drop every entry, returning how many live entries there were."""
        with self._lock:
            self._evict_expired()
            count = len(self._cache)
            self._cache.clear()
        self.logger.info(f"Cleared {count} symbols from allowlist")
        return count

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_symbol_entry(self, symbol: str) -> Optional[AllowlistEntry]:
        """Return the live entry for ``symbol``; expired entries are evicted first."""
        if not symbol:
            return None
        with self._lock:
            self._evict_expired()
            return self._cache.get(symbol.upper())

    def is_symbol_allowed(self, symbol: str) -> bool:
        return self.get_symbol_entry(symbol) is not None

    def get_allowed_symbols(self) -> List[str]:
        with self._lock:
            self._evict_expired()
            return sorted(self._cache)

    def get_stats(self) -> dict:
        with self._lock:
            self._evict_expired()
            timestamps = [entry.timestamp for entry in self._cache.values()]
        return {
            "total_symbols": len(timestamps),
            "oldest_entry": min(timestamps) if timestamps else None,
            "newest_entry": max(timestamps) if timestamps else None,
        }

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def extract_symbols_from_admin_message(
        self, text: str, admin_id: str, message_id: str
    ) -> List[str]:
        """
        Record every "$SYMBOL" an analyst wrote in ``text``.

        Args:
            text: Full message content
            admin_id: Discord ID of the author
            message_id: Discord ID of the message

        Returns:
            Symbols added or refreshed, de-duplicated, in first-seen order
        """
        if not text:
            return []

        symbols: List[str] = []
        for match in EXPLICIT_SYMBOL_PATTERN.finditer(text):
            symbol = match.group(1).upper()
            if not has_symbol_format(symbol) or symbol in symbols:
                continue
            self.add_symbol(symbol, admin_id, message_id, text)
            symbols.append(symbol)

        if symbols:
            self.logger.info(
                f"📋 Extracted {len(symbols)} symbols from admin message {message_id}: "
                f"{', '.join(symbols)}"
            )
        return symbols

    def initialize_from_historical_data(self, entries: Iterable[AllowlistEntry]) -> int:
        """
        Replace the allowlist with historical confirmations.

        Entries already past the expiry window are skipped. When a symbol
        appears more than once the newest confirmation wins.

        Returns:
            Number of symbols loaded
        """
        now = self._clock()
        fresh: Dict[str, AllowlistEntry] = {}
        for entry in entries:
            if not self._is_live(entry, now):
                self.logger.debug(f"Skipping expired historical entry {entry.symbol}")
                continue
            symbol = entry.symbol.upper()
            current = fresh.get(symbol)
            if current is None or entry.timestamp > current.timestamp:
                fresh[symbol] = entry.model_copy(update={"symbol": symbol})

        cache = self._new_cache()
        cache.update(fresh)
        with self._lock:
            self._cache = cache
        self.logger.info(f"📊 Allowlist initialized with {len(fresh)} symbols from history")
        return len(fresh)

    # -------------------------------------------------------------------------
    # Expiry sweep
    # -------------------------------------------------------------------------

    def cleanup_expired_entries(self) -> int:
        with self._lock:
            removed = self._evict_expired()
        if removed:
            self.logger.info(f"🧹 Removed {removed} expired allowlist entries")
        return removed

    def start_cleanup_task(
        self, interval_seconds: float = DEFAULT_CLEANUP_INTERVAL_SECONDS
    ) -> asyncio.Task:
        """
        Start the periodic sweep on the running event loop.

        Calling this again while a sweep is running returns the existing task.
        Must be called from inside a coroutine.
        """
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return self._cleanup_task

        async def _sweep_loop():
            while True:
                await asyncio.sleep(interval_seconds)
                try:
                    self.cleanup_expired_entries()
                except Exception as e:
                    self.logger.error(f"Allowlist cleanup failed: {e}")

        self._cleanup_task = asyncio.get_running_loop().create_task(_sweep_loop())
        self.logger.info(f"Allowlist cleanup scheduled every {interval_seconds}s")
        return self._cleanup_task

    def stop_cleanup_task(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None
            self.logger.info("Allowlist cleanup stopped")
