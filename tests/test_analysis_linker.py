"""
Tests for tickerlink/linker.py - indexing analyst messages per symbol.
"""

from datetime import timedelta

import pytest

from tickerlink.config import _Settings
from tickerlink.linker import (
    AnalysisLinker,
    build_message_url,
    calculate_relevance_score,
    create_analysis_linker,
)
from tickerlink.nlp.schemas import AnalysisData, IncomingMessage

TRUSTED_ID = "42"


@pytest.fixture
def linker(detector, allowlist, clock):
    return AnalysisLinker(detector, allowlist, trusted_author_ids=[TRUSTED_ID], clock=clock)


@pytest.fixture
def make_message(clock):
    counter = {"id": 1000}

    def _make(content, author_id="7", age=timedelta(0), is_bot=False, guild_id="1"):
        counter["id"] += 1
        return IncomingMessage(
            message_id=str(counter["id"]),
            channel_id="500",
            author_id=author_id,
            content=content,
            created_at=clock.now - age,
            guild_id=guild_id,
            author_name="analyst",
            is_bot=is_bot,
        )

    return _make


# =============================================================================
# INDEXING
# =============================================================================


class TestProcessMessage:
    def test_indexes_first_line_symbols(self, linker, make_message, names):
        message = make_message("NVDA breakout setup\nAlso watching AMD")
        symbols = linker.process_message(message)

        assert names(symbols) == ["NVDA"]
        latest = linker.get_latest_analysis("NVDA")
        assert [a.message_id for a in latest] == [message.message_id]
        assert linker.get_latest_analysis("AMD") == []

    def test_markup_cleaned_before_detection(self, linker, make_message, names):
        message = make_message("<:PUMP:123456> <@999> https://x.com/ABC TSLA update")
        assert names(linker.process_message(message)) == ["TSLA"]

    def test_bot_messages_ignored(self, linker, make_message):
        assert linker.process_message(make_message("NVDA update", is_bot=True)) == []
        assert linker.get_cache_stats()["total_analyses"] == 0

    def test_message_without_symbols_not_indexed(self, linker, make_message):
        assert linker.process_message(make_message("good morning everyone")) == []
        assert linker.get_cache_stats() == {"total_symbols": 0, "total_analyses": 0}

    def test_trusted_author_feeds_allowlist(self, linker, make_message, allowlist):
        linker.process_message(make_message("NVDA plan\nadding $ACHR and $NVDA", author_id=TRUSTED_ID))

        assert allowlist.get_allowed_symbols() == ["ACHR", "NVDA"]
        assert allowlist.get_symbol_entry("ACHR").admin_id == TRUSTED_ID

    def test_untrusted_author_does_not_feed_allowlist(self, linker, make_message, allowlist):
        linker.process_message(make_message("NVDA plan\nadding $ACHR"))
        assert len(allowlist) == 0

    def test_message_url(self, linker, make_message):
        message = make_message("NVDA plan")
        linker.process_message(message)

        assert linker.get_latest_analysis_url("nvda") == (
            f"https://discord.com/channels/1/500/{message.message_id}"
        )
        assert linker.get_latest_analysis_url("AMD") is None


# =============================================================================
# QUERIES
# =============================================================================


class TestQueries:
    def test_recent_analysis_ranked_first(self, linker, make_message):
        older = make_message("NVDA analysis, price target raised, bullish", age=timedelta(hours=30))
        newer = make_message("NVDA", age=timedelta(minutes=30))
        linker.process_message(older)
        linker.process_message(newer)

        latest = linker.get_latest_analysis("NVDA")
        assert [a.message_id for a in latest] == [newer.message_id, older.message_id]

    def test_limit(self, linker, make_message):
        for hours in range(5):
            linker.process_message(make_message("NVDA", age=timedelta(hours=hours)))

        assert len(linker.get_latest_analysis("NVDA")) == 3
        assert len(linker.get_latest_analysis("NVDA", limit=5)) == 5

    def test_expired_analysis_excluded(self, linker, make_message):
        linker.process_message(make_message("NVDA", age=timedelta(days=8)))
        assert linker.get_latest_analysis("NVDA") == []

    def test_get_all_relevant_analysis(self, linker, make_message):
        linker.process_message(make_message("NVDA and AMD"))

        results = linker.get_all_relevant_analysis(["NVDA", "AMD", "TSLA"])
        assert set(results) == {"NVDA", "AMD"}

    def test_max_per_symbol_keeps_newest(self, detector, allowlist, clock, make_message):
        small = AnalysisLinker(detector, allowlist, max_per_symbol=2, clock=clock)
        messages = [make_message("NVDA", age=timedelta(hours=h)) for h in (3, 2, 1)]
        for message in messages:
            small.process_message(message)

        assert small.get_cache_stats() == {"total_symbols": 1, "total_analyses": 2}
        kept = {a.message_id for a in small.get_latest_analysis("NVDA", limit=10)}
        assert kept == {messages[1].message_id, messages[2].message_id}


# =============================================================================
# MAINTENANCE
# =============================================================================


class TestMaintenance:
    def test_cleanup_expired_analysis(self, linker, make_message, clock):
        linker.process_message(make_message("NVDA", age=timedelta(days=6)))
        linker.process_message(make_message("AMD"))
        clock.advance(days=2)

        assert linker.cleanup_expired_analysis() == 1
        assert linker.get_cache_stats() == {"total_symbols": 1, "total_analyses": 1}
        assert linker.get_latest_analysis_url("NVDA") is None

    def test_initialize_from_historical_data(self, linker, make_message, clock):
        linker.process_message(make_message("TSLA"))
        historical = {
            "nvda": AnalysisData(
                message_id="1",
                channel_id="500",
                author_id="7",
                content="NVDA",
                symbols=["NVDA"],
                timestamp=clock.now - timedelta(hours=2),
                message_url="https://discord.com/channels/1/500/1",
            )
        }

        assert linker.initialize_from_historical_data(historical) == 1
        assert linker.get_latest_analysis_url("NVDA") == "https://discord.com/channels/1/500/1"
        assert linker.get_latest_analysis("TSLA") == []

    def test_historical_naive_and_stale_timestamps(self, linker, clock):
        naive_now = clock.now.replace(tzinfo=None)

        def _analysis(message_id, age):
            return AnalysisData(
                message_id=message_id,
                channel_id="500",
                author_id="7",
                content="update",
                timestamp=naive_now - age,
            )

        historical = {"NVDA": _analysis("1", timedelta(hours=2)), "AMD": _analysis("2", timedelta(days=9))}

        assert linker.initialize_from_historical_data(historical) == 1
        assert [a.message_id for a in linker.get_latest_analysis("NVDA")] == ["1"]
        assert linker.get_latest_analysis("AMD") == []


# =============================================================================
# HELPERS
# =============================================================================


class TestHelpers:
    def test_relevance_baseline(self):
        assert calculate_relevance_score("NVDA", 1) == pytest.approx(0.7)
        assert calculate_relevance_score("NVDA AMD", 2) == pytest.approx(0.6)
        assert calculate_relevance_score("lots of names", 5) == pytest.approx(0.5)

    def test_relevance_keywords_and_length(self):
        assert calculate_relevance_score("watch this", 5) == pytest.approx(0.6)
        assert calculate_relevance_score("support level", 5) == pytest.approx(0.7)
        assert calculate_relevance_score("x" * 201, 5) == pytest.approx(0.6)

    def test_relevance_capped(self):
        text = "analysis with price target, bullish recommendation and breakout chart"
        assert calculate_relevance_score(text, 1) == 1.0

    def test_build_message_url(self):
        assert build_message_url("1", "2", "3") == "https://discord.com/channels/1/2/3"
        assert build_message_url(None, "2", "3") == "https://discord.com/channels/@me/2/3"

    def test_create_analysis_linker_from_settings(self):
        config = _Settings(
            TRUSTED_AUTHOR_IDS="42, 43",
            MAX_SYMBOL_RESULTS=5,
            CONTEXT_TRUST_MIN_SYMBOLS=2,
            ALLOWLIST_MAX_AGE_DAYS=3,
            ANALYSIS_MAX_AGE_DAYS=2,
        )
        linker = create_analysis_linker(config)

        assert linker.trusted_author_ids == {"42", "43"}
        assert linker.detector.max_results == 5
        assert linker.detector.context_trust_min_symbols == 2
        assert linker.allowlist is linker.detector.symbol_allowlist
        assert linker.allowlist.max_age == timedelta(days=3)
        assert linker.max_age == timedelta(days=2)
