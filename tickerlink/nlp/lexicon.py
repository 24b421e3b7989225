"""
Static reference tables for symbol detection.

Everything here is immutable data consumed by the technical-context
classifier, the symbol allowlist and the symbol detector:
- Symbol regex and format check
- English common words that look like tickers
- Hebrew-context stopwords
- Hebrew keyword tiers (strong / medium / weak)
- English stock keywords
- Ambiguous technical / geographic tokens
"""

import re

# =============================================================================
# SYMBOL SHAPE
# =============================================================================

# Runs of 1-5 uppercase ASCII letters. The boundaries are ASCII-only so a
# ticker glued to a Hebrew prefix letter ("בTSLA") or an emoji still matches.
SYMBOL_PATTERN = r"(?<![A-Za-z0-9_])(?P<symbol>[A-Z]{1,5})(?![A-Za-z0-9_])"

# Explicit "$SYMBOL" mention as written by analysts
EXPLICIT_SYMBOL_PATTERN = re.compile(r"\$([A-Z]{1,5})(?![A-Za-z])")

_SYMBOL_FORMAT = re.compile(r"^[A-Z]{1,5}$")

EXPLICIT_PREFIXES = ("$", "#")

MAX_SYMBOL_RESULTS = 25  # Discord allows 25 buttons per message


def has_symbol_format(symbol: str) -> bool:
    """Return True for 1-5 uppercase ASCII letters."""
    return bool(symbol) and bool(_SYMBOL_FORMAT.match(symbol))


# =============================================================================
# COMMON WORDS - Uppercase English words that should never become tickers
# =============================================================================

COMMON_WORDS = frozenset(
    {
        # Articles, pronouns, prepositions
        "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HER",
        "WAS", "ONE", "OUR", "HAD", "HAS", "HIS", "HOW", "MAN", "NEW", "NOW",
        "OLD", "SEE", "TWO", "WHO", "BOY", "DID", "ITS", "LET", "PUT", "SAY",
        "SHE", "TOO", "USE", "DAY", "GET", "MAY", "WAY", "GOT", "OUT", "TOP",
        "RUN", "TRY", "WIN", "YES", "YET", "BAD", "BIG", "END", "FAR", "FEW",
        "LOT", "OFF", "RED", "SET", "SIX", "TEN", "THIS", "THAT", "WHAT",
        "WHEN", "WHERE", "WHICH", "WHILE", "WITH", "WILL", "WELL", "VERY",
        "THAN", "THEY", "THEM", "THEN", "THERE", "THESE", "THOSE", "WANT",
        "WORK", "YEAR", "OVER", "INTO", "FROM", "BEEN", "HAVE", "ONLY", "SOME",
        "TIME", "BACK", "AFTER", "FIRST", "QUICK", "BROWN", "FOX", "JUMPS",
        "LAZY", "DOG", "JUST", "LIKE", "LOOK", "GOOD", "GREAT", "CHECK",
        "NEXT", "WEEK", "MONTH", "TODAY", "STILL", "ABOUT", "ALSO", "MORE",
        "MOST", "MUCH", "EVEN", "HERE", "NEED", "KEEP", "MAKE", "TAKE",
        "SHOW", "OK", "OKAY", "IT", "IS", "IN", "ON", "AT", "TO",
        "OF", "OR", "IF", "BE", "AS", "BY", "DO", "GO", "NO", "SO", "UP",
        "WE", "ME", "MY", "HE", "AN", "AM", "AH", "OH", "HI",
        # Trading vocabulary
        "BUY", "SELL", "HOLD", "LONG", "SHORT", "CALL", "CALLS", "PUTS",
        "TRIM", "ADD", "EXIT", "ENTRY", "STOP", "LIMIT", "HIGH", "LOW",
        "OPEN", "CLOSE", "WATCH", "ALERT", "NOTE", "TRADE", "TRADES",
        "STOCK", "PRICE", "CHART", "DIP", "RIP", "MOON", "PUMP", "DUMP",
        "BULL", "BEAR", "RISK", "LEVEL", "ZONE", "SETUP",
        # Abbreviations that are not tickers
        "USD", "CEO", "CFO", "IPO", "SEC", "FDA", "API", "URL", "PDF", "FAQ",
        "ETF", "EPS", "OTC", "EOD", "EOW", "EOM", "YTD", "DTE", "ITM", "OTM",
        "IMO", "IMHO", "TBH", "FYI", "BTW", "LOL", "OMG", "WTF", "YOLO",
        "FOMO", "HODL", "BTFD", "DCA", "DD", "TA", "FA", "PT", "TP", "SL",
        "PM", "DIAMOND", "HANDS",
    }
)

# Single letters that are ordinary English words; they need a "$" prefix or
# list-shaped context before context-trust recovers them.
SINGLE_LETTER_WORDS = frozenset({"A", "I"})

# =============================================================================
# HEBREW CONTEXT
# =============================================================================

# Latin-script chat fillers and session names that Hebrew-language trading
# chat drops between Hebrew words. Rejected wherever they appear.
HEBREW_STOPWORDS = frozenset({"VS", "WOW", "ASAP", "LIVE", "ZOOM", "BRO", "GG", "DM"})

_HEBREW_LETTER = re.compile(r"[\u0590-\u05FF]")


def contains_hebrew(text: str) -> bool:
    return bool(text) and bool(_HEBREW_LETTER.search(text))


# Keyword tiers used by the manager's Hebrew analysis posts.
HEBREW_KEYWORDS = {
    "strong": (
        "ברייקאאוט",
        "פריצה",
        "relative strength",
        "שיא",
        "ווליום",
        "ממוצע",
        "AVWAP",
        "EMA20",
        "50DMA",
        "HTF",
        "קו פריצה",
        "בלו סקייס",
        "אלכסון",
        "קונסולדיציה",
        "ריטטס",
        "אינסייד קנדל",
        "falling wedge",
        "ליברמור",
        "ATH",
    ),
    "medium": (
        "עולה",
        "נע",
        "מעל",
        "שמירה",
        "המשכיות",
        "טרנד",
        "מומנטום",
        "סטאפ",
        "באונס",
        "כריטסט",
        "רייד ווינרס",
        "IBD50",
        "Sector Leaders",
        "פוקוס",
    ),
    "weak": (
        "מניה",
        "מניית",
        "watch",
        "יום",
        "שבוע",
        "חדש",
        "נהדר",
    ),
}

HEBREW_TIER_BOOSTS = {"strong": 0.3, "medium": 0.2, "weak": 0.1}

# =============================================================================
# ENGLISH KEYWORDS
# =============================================================================

ENGLISH_STOCK_KEYWORDS = (
    "stock",
    "ticker",
    "symbol",
    "shares",
    "equity",
    "trade",
    "buy",
    "sell",
    "analysis",
    "chart",
    "price",
    "target",
)

# Keywords that, next to a lone letter, make it read like a ticker
SINGLE_LETTER_KEYWORDS = ("target", "breakout", "analysis", "stock", "price", "chart")

# Keywords that refer to the symbol itself rather than the market in general
SYMBOL_SPECIFIC_KEYWORDS = (
    "ticker",
    "shares",
    "equity",
    "trade",
    "buy",
    "sell",
    "target",
    "price target",
    "analysis",
    "bullish",
    "bearish",
    "chart",
)

# =============================================================================
# TECHNICAL / GEOGRAPHIC AMBIGUITY
# =============================================================================

GEOGRAPHIC_CODES = frozenset(
    {"US", "UK", "EU", "CA", "JP", "CN", "DE", "FR", "IT", "ES", "KR", "AU"}
)

GEOGRAPHIC_MARKERS = (
    "market",
    "markets",
    "indices",
    "index",
    "economy",
    "economic",
    "conditions",
    "performance",
    "outlook",
    "data",
    "trading",
)

CONFUSABLE_TOKENS = frozenset(
    {
        "WH", "WL", "EMA", "SMA", "DMA", "RSI", "MACD", "BB", "ATR", "ADX",
        "CCI", "MFI", "ATH", "ATL", "SP", "DOW", "VIX",
        "US", "UK", "EU", "CA", "JP", "CN", "AU",
    }
)
