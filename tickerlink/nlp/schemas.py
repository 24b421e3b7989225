"""
Data models for symbol detection and analysis linking.

StockSymbol and AllowlistEntry are immutable pydantic models: detection
results are created fresh per call and never edited afterwards, and an
allowlist refresh replaces the entry instead of mutating it.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _assume_utc(value: datetime) -> datetime:
    """Backfill sources hand back naive datetimes; those are UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class SymbolPriority(str, Enum):
    """
    Display priority of a detected symbol.

    Set by message-structure parsing ("top picks" sections), independent of
    detection confidence. Lower sort order comes first.
    """

    TOP_LONG = "top_long"
    TOP_SHORT = "top_short"
    REGULAR = "regular"

    @property
    def sort_order(self) -> int:
        return _PRIORITY_ORDER[self]


_PRIORITY_ORDER = {
    SymbolPriority.TOP_LONG: 0,
    SymbolPriority.TOP_SHORT: 1,
    SymbolPriority.REGULAR: 2,
}


# =============================================================================
# DETECTION RESULTS
# =============================================================================


class StockSymbol(BaseModel):
    """A ticker detected in a message."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1, max_length=5, pattern=r"^[A-Z]{1,5}$")
    confidence: float = Field(..., ge=0.0, le=1.0)
    position: int = Field(0, ge=0, description="Index within the ranked result list")
    priority: SymbolPriority = SymbolPriority.REGULAR


class AllowlistEntry(BaseModel):
    """An analyst confirmation of a ticker."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    timestamp: datetime
    admin_id: str
    message_id: str
    context: str = Field("", description="First 200 chars of the confirming message")

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: datetime) -> datetime:
        return _assume_utc(value)


@dataclass(frozen=True)
class TechnicalPattern:
    """A technical-analysis or geographic term that can masquerade as a ticker."""

    pattern: re.Pattern
    description: str
    examples: tuple = ()


# =============================================================================
# LINKING
# =============================================================================


class AnalysisData(BaseModel):
    """An indexed analyst message, stored per symbol by the linker."""

    message_id: str
    channel_id: str
    author_id: str
    content: str
    symbols: List[str] = Field(default_factory=list)
    timestamp: datetime
    relevance_score: float = Field(0.5, ge=0.0, le=1.0)
    message_url: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: datetime) -> datetime:
        return _assume_utc(value)


@dataclass
class IncomingMessage:
    """Discord-free view of a chat message."""

    message_id: str
    channel_id: str
    author_id: str
    content: str
    created_at: datetime
    guild_id: Optional[str] = None
    author_name: str = ""
    is_bot: bool = False


@dataclass
class TopPicksResult:
    long_picks: List[str] = field(default_factory=list)
    short_picks: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.long_picks) + len(self.short_picks)
