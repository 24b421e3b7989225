"""
Pytest configuration and shared fixtures for the test suite.

Provides:
- A controllable clock for expiry tests
- Allowlist / classifier / detector fixtures wired the way the bot wires them
- Pytest markers for test categorization
"""

from datetime import datetime, timedelta, timezone

import pytest

from tickerlink.nlp.allowlist import SymbolAllowlist
from tickerlink.nlp.symbol_detector import SymbolDetector
from tickerlink.nlp.technical_context import TechnicalContextDetector


# =============================================================================
# ANYIO BACKEND CONFIGURATION
# =============================================================================


@pytest.fixture
def anyio_backend():
    """Use asyncio backend only (trio is not installed)."""
    return "asyncio"


# =============================================================================
# PYTEST MARKERS CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers",
        "discord: marks tests that exercise the discord.py wiring",
    )


# =============================================================================
# CLOCK
# =============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 3, 14, 30, tzinfo=timezone.utc))


# =============================================================================
# DETECTION FIXTURES
# =============================================================================


@pytest.fixture
def allowlist(clock):
    return SymbolAllowlist(max_age_days=14, clock=clock)


@pytest.fixture
def technical_detector():
    return TechnicalContextDetector()


@pytest.fixture
def detector(allowlist, technical_detector):
    return SymbolDetector(allowlist, technical_detector)


def symbols_of(results):
    """Symbol names from a detection result, in ranked order."""
    return [s.symbol for s in results]


@pytest.fixture
def names():
    return symbols_of
