"""
Discord Message Cleaning Module

Strips Discord markup from message text before symbol detection, so URL
paths, mention IDs and custom emoji names are never scanned as tickers.
"""

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE)
MENTION_PATTERN = re.compile(r"<(?:@[!&]?|#)\d+>")
CUSTOM_EMOJI_PATTERN = re.compile(r"<a?:\w+:\d+>")
BROADCAST_PATTERN = re.compile(r"@(?:everyone|here)\b")
_SPACES = re.compile(r"[ \t\f\v]+")


def clean_text(text: Optional[str]) -> str:
    """Remove URLs, mentions, custom emoji and @everyone/@here from Discord text.

    Line breaks are kept (analysts put the ticker on the first line); runs
    of other whitespace collapse to a single space.

    Args:
        text: Raw message content

    Returns:
        Cleaned text, or "" for empty input
    """
    if not text:
        return ""

    cleaned = URL_PATTERN.sub(" ", text)
    cleaned = CUSTOM_EMOJI_PATTERN.sub(" ", cleaned)
    cleaned = MENTION_PATTERN.sub(" ", cleaned)
    cleaned = BROADCAST_PATTERN.sub(" ", cleaned)

    lines = [_SPACES.sub(" ", line).strip() for line in cleaned.split("\n")]
    return "\n".join(line for line in lines if line)


def first_line(text: Optional[str]) -> str:
    if not text:
        return ""
    return text.split("\n", 1)[0].strip()
