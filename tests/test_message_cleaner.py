"""
Tests for tickerlink/message_cleaner.py - Discord markup removal.
"""

import pytest

from tickerlink.message_cleaner import clean_text, first_line


class TestCleanText:
    def test_urls_removed(self):
        assert clean_text("Check https://example.com/AAPL/chart NVDA") == "Check NVDA"
        assert clean_text("see www.tradingview.com/x/ABC please") == "see please"

    def test_mentions_removed(self):
        assert clean_text("<@123> <@!456> <@&789> <#111> look at TSLA") == "look at TSLA"

    def test_custom_emoji_removed(self):
        assert clean_text("<:AAPL:123456> <a:PUMP:999> MSFT") == "MSFT"

    def test_broadcast_mentions_removed(self):
        assert clean_text("@everyone NVDA alert @here") == "NVDA alert"

    def test_lines_preserved_whitespace_collapsed(self):
        assert clean_text("NVDA\n\n   setup    here  ") == "NVDA\nsetup here"

    def test_unicode_emoji_kept(self):
        assert clean_text("QUBT / BKV 👀") == "QUBT / BKV 👀"

    @pytest.mark.parametrize("text", ["", None])
    def test_empty(self, text):
        assert clean_text(text) == ""


class TestFirstLine:
    def test_first_line(self):
        assert first_line("  NVDA plan  \nmore text") == "NVDA plan"

    def test_single_line(self):
        assert first_line("NVDA") == "NVDA"

    def test_empty(self):
        assert first_line("") == ""
        assert first_line(None) == ""
