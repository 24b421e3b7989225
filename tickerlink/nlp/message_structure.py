"""
Parsers for the structured posts analysts use in the trading channels.

- "Top picks" sections (Hebrew "טופ פיקס" or English "top picks") with
  "📈 long:" / "📉 short:" lines
- The manager's Hebrew daily update layout
- Deals posts: a symbol line followed by the /createdeals command
"""

import logging
import re
from typing import Callable, List, Optional, Sequence

from tickerlink.nlp.lexicon import COMMON_WORDS, has_symbol_format
from tickerlink.nlp.schemas import TopPicksResult

logger = logging.getLogger(__name__)

DEFAULT_DEALS_COMMAND = "/createdeals"

SymbolValidator = Callable[[str, Sequence[str]], bool]

# =============================================================================
# TOP PICKS
# =============================================================================

TOP_PICKS_SECTION = re.compile(r"(?:❕\s*טופ פיקס|טופ פיקס|top\s*picks?)[:：]?", re.IGNORECASE)
TOP_PICKS_HEADER = re.compile(r"(?:❕\s*טופ פיקס|top\s*picks?)[:：]", re.IGNORECASE)
LONG_LINE = re.compile(r"(?:📈\s*)?long\s*[:：]\s*(.+)", re.IGNORECASE)
SHORT_LINE = re.compile(r"(?:📉\s*)?short\s*[:：]\s*(.+)", re.IGNORECASE)

_PICK_SEPARATORS = re.compile(r"[,，、]")
_PICK_TOKEN = re.compile(r"(?<![A-Za-z])([A-Z]{1,5})(?![A-Za-z])")

# Technical shorthand that shows up inside picks lines ("NVDA AVWAP reclaim")
_PICKS_EXCLUDED = frozenset({"AVWAP"})


def _lexicon_validator(symbol: str, context_symbols: Sequence[str]) -> bool:
    if not has_symbol_format(symbol) or symbol in COMMON_WORDS:
        return False
    if len(symbol) > 1:
        return True
    return any(
        len(s) > 1 and s != symbol and s not in COMMON_WORDS for s in context_symbols
    )


class TopPicksParser:
    """
    Extracts long/short picks from a "top picks" section.

    Each picks line is validated as a closed list: single letters count only
    when another real ticker sits on the same line.
    """

    def __init__(self, validator: Optional[SymbolValidator] = None):
        self._validator = validator or _lexicon_validator

    def has_top_picks(self, content: str) -> bool:
        return bool(content) and TOP_PICKS_HEADER.search(content) is not None

    def parse_top_picks(self, content: str) -> TopPicksResult:
        result = TopPicksResult()
        if not content:
            return result

        section = TOP_PICKS_SECTION.search(content)
        if section is None:
            logger.debug("No top picks section found in message")
            return result

        for line in content[section.start():].split("\n"):
            long_match = LONG_LINE.search(line)
            if long_match:
                result.long_picks = self._extract_symbols(long_match.group(1))
                continue
            short_match = SHORT_LINE.search(line)
            if short_match:
                result.short_picks = self._extract_symbols(short_match.group(1))

        if result.total:
            logger.info(
                f"📌 Parsed top picks: {len(result.long_picks)} long, "
                f"{len(result.short_picks)} short"
            )
        return result

    def _extract_symbols(self, text: str) -> List[str]:
        cleaned = " ".join(_PICK_SEPARATORS.sub(" ", text).split())
        tokens = [
            token
            for token in _PICK_TOKEN.findall(cleaned)
            if token not in _PICKS_EXCLUDED
        ]

        symbols: List[str] = []
        for token in tokens:
            if token in symbols:
                continue
            if self._validator(token, tokens):
                symbols.append(token)
            else:
                logger.debug(f"Top picks token rejected: {token}")
        return symbols


# =============================================================================
# HEBREW DAILY UPDATE
# =============================================================================

HEBREW_SECTION_HEADER = re.compile(r"❗\s*[\u0590-\u05FF]")
HEBREW_TOP_PICKS = re.compile(r"❕\s*טופ פיקס")
LONG_SHORT_MARKER = re.compile(r"📈\s*long:|📉\s*short:", re.IGNORECASE)
REMINDER_BULLET = "🔹"
SHORT_SIDE_SECTION = re.compile(r"🔻\s*שורט סייד")

MIN_HEBREW_SECTIONS = 3
MIN_REMINDERS = 2


class HebrewUpdateDetector:
    """Recognises the manager's structured Hebrew daily update."""

    def is_hebrew_daily_update(self, content: str) -> bool:
        if not content:
            return False

        sections = len(HEBREW_SECTION_HEADER.findall(content))
        if sections < MIN_HEBREW_SECTIONS:
            logger.debug(f"Hebrew sections found: {sections}, need at least {MIN_HEBREW_SECTIONS}")
            return False
        if not HEBREW_TOP_PICKS.search(content):
            logger.debug("No Hebrew top picks section found")
            return False
        if not LONG_SHORT_MARKER.search(content):
            logger.debug("No long/short indicators found")
            return False
        reminders = content.count(REMINDER_BULLET)
        if reminders < MIN_REMINDERS:
            logger.debug(f"Reminder bullets found: {reminders}, need at least {MIN_REMINDERS}")
            return False
        if not SHORT_SIDE_SECTION.search(content):
            logger.debug("No short side section found")
            return False

        logger.info("Message identified as Hebrew daily update")
        return True

    def extract_hebrew_sections(self, content: str) -> List[str]:
        """Split the update into "❗"-headed sections, dropping any preamble."""
        sections: List[str] = []
        current = ""
        for line in (content or "").split("\n"):
            if HEBREW_SECTION_HEADER.search(line):
                if current.strip():
                    sections.append(current.strip())
                current = line
            elif current and line.strip():
                current += "\n" + line
        if current.strip():
            sections.append(current.strip())
        return sections


# =============================================================================
# DEALS POSTS
# =============================================================================


def has_deals_command(content: str, command: str = DEFAULT_DEALS_COMMAND) -> bool:
    return bool(content) and command.lower() in content.lower()


def find_deals_symbol_line(content: str, command: str = DEFAULT_DEALS_COMMAND) -> Optional[str]:
    """
    Return the line directly above the deals command.

    None when the command is missing, sits on the first line, or the line
    above it is blank.
    """
    if not content:
        return None

    lines = content.split("\n")
    command_lower = command.lower()
    for index, line in enumerate(lines):
        if command_lower in line.lower():
            if index == 0:
                logger.debug(f"{command} is on the first line, no symbols to parse")
                return None
            symbol_line = lines[index - 1].strip()
            return symbol_line or None
    return None
