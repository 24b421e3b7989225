"""
tickerlink - Core Package
=========================

Detects stock tickers in Discord trading-chat messages (mixed Hebrew and
English, emoji-heavy) and links each ticker to the latest analyst commentary.

Core Modules:
- config: Centralized configuration management
- nlp: Symbol detection, allowlist and technical-context classification
- linker: In-memory index of analyst messages per symbol
- message_cleaner: Discord markup removal before detection
- logging_utils: Logging setup and log formatting helpers
- bot: Discord wiring
"""

__version__ = "1.0.0"
