"""Centralised settings object – importable from anywhere."""
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

from tickerlink.nlp.lexicon import MAX_SYMBOL_RESULTS, SYMBOL_PATTERN

# Auto-load .env from repo root
load_dotenv(Path(__file__).resolve().parents[1] / ".env")


def _split_ids(raw: str) -> list[str]:
    return [cid.strip() for cid in raw.split(",") if cid.strip()]


class _Settings(BaseSettings):
    # === Discord Configuration ======================================
    DISCORD_BOT_TOKEN: str = ""
    ANALYSIS_CHANNEL_IDS: str = ""  # Comma-separated channel IDs to index
    DEALS_CHANNEL_ID: str = ""
    DEALS_COMMAND: str = "/createdeals"
    TRUSTED_AUTHOR_IDS: str = ""  # Analysts whose $SYMBOLs feed the allowlist

    # === Detection ===================================================
    MAX_SYMBOL_RESULTS: int = MAX_SYMBOL_RESULTS
    SYMBOL_PATTERN: str = SYMBOL_PATTERN
    CONTEXT_TRUST_MIN_SYMBOLS: int = 1

    # === Retention ===================================================
    ALLOWLIST_MAX_AGE_DAYS: int = 14
    ALLOWLIST_CLEANUP_INTERVAL_SECONDS: int = 3600
    ANALYSIS_MAX_AGE_DAYS: int = 7

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def analysis_channel_ids_list(self) -> list[str]:
        """Parse comma-separated ANALYSIS_CHANNEL_IDS into a list."""
        return _split_ids(self.ANALYSIS_CHANNEL_IDS)

    @property
    def trusted_author_ids_list(self) -> list[str]:
        """Parse comma-separated TRUSTED_AUTHOR_IDS into a list."""
        return _split_ids(self.TRUSTED_AUTHOR_IDS)


@lru_cache
def settings() -> _Settings:
    return _Settings()
