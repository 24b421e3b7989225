"""
Symbol detection for Discord trading chat.

PIPELINE:
- Static lexicons and keyword tiers (lexicon.py)
- Technical / geographic context classifier (technical_context.py)
- Analyst-confirmed allowlist with rolling expiry (allowlist.py)
- Scoring detector with context-trust recovery (symbol_detector.py)
- Structured post parsers: top picks, Hebrew update, deals (message_structure.py)
"""

# =============================================================================
# SCHEMAS
# =============================================================================
from tickerlink.nlp.schemas import (
    AllowlistEntry,
    AnalysisData,
    IncomingMessage,
    StockSymbol,
    SymbolPriority,
    TechnicalPattern,
    TopPicksResult,
)

# =============================================================================
# CLASSIFIERS
# =============================================================================
from tickerlink.nlp.technical_context import TechnicalContextDetector
from tickerlink.nlp.allowlist import SymbolAllowlist
from tickerlink.nlp.message_structure import (
    HebrewUpdateDetector,
    TopPicksParser,
    find_deals_symbol_line,
    has_deals_command,
)

# =============================================================================
# DETECTOR
# =============================================================================
from tickerlink.nlp.symbol_detector import SymbolDetector

__all__ = [
    "AllowlistEntry",
    "AnalysisData",
    "IncomingMessage",
    "StockSymbol",
    "SymbolPriority",
    "TechnicalPattern",
    "TopPicksResult",
    "TechnicalContextDetector",
    "SymbolAllowlist",
    "HebrewUpdateDetector",
    "TopPicksParser",
    "find_deals_symbol_line",
    "has_deals_command",
    "SymbolDetector",
]
