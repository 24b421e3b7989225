import logging
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the bot process.

    Args:
        level: Level name such as "DEBUG"; defaults to the LOG_LEVEL setting
    """
    if level is None:
        from tickerlink.config import settings

        level = settings().LOG_LEVEL

    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)
    # discord.py gateway logs stay at WARNING
    logging.getLogger("discord").setLevel(logging.WARNING)


def format_symbol_summary(symbols: Iterable) -> str:
    """Render detection results for a log line, e.g. "AAPL(0.90), MSFT(0.80)"."""
    return ", ".join(f"{s.symbol}({s.confidence:.2f})" for s in symbols)
