import logging
from typing import List

from discord.ext import commands

from tickerlink.linker import AnalysisLinker
from tickerlink.nlp.message_structure import find_deals_symbol_line, has_deals_command
from tickerlink.nlp.schemas import IncomingMessage, StockSymbol

logger = logging.getLogger(__name__)


def to_incoming_message(message) -> IncomingMessage:
    """Discord-free copy of the fields the linker needs."""
    return IncomingMessage(
        message_id=str(message.id),
        channel_id=str(message.channel.id),
        guild_id=str(message.guild.id) if message.guild else None,
        author_id=str(message.author.id),
        author_name=str(message.author.display_name or message.author.name),
        content=message.content or "",
        created_at=message.created_at,
        is_bot=bool(message.author.bot),
    )


async def handle_message(message, *, linker: AnalysisLinker, config) -> List[StockSymbol]:
    """Route one Discord message to the analysis index or the deals parser.

    Failures are logged and swallowed so one bad message never stops the bot.
    """
    if message.author.bot:
        return []

    channel_id = str(message.channel.id)
    try:
        if channel_id in config.analysis_channel_ids_list:
            return linker.process_message(to_incoming_message(message))

        if (
            config.DEALS_CHANNEL_ID
            and channel_id == str(config.DEALS_CHANNEL_ID)
            and has_deals_command(message.content, config.DEALS_COMMAND)
        ):
            logger.info(f"🎯 Processing deals message {message.id} with {config.DEALS_COMMAND}")
            line = find_deals_symbol_line(message.content, config.DEALS_COMMAND)
            if not line:
                logger.warning(f"No symbol line found in deals message {message.id}")
                return []
            return linker.detector.detect_symbols_from_deals_line(line)
    except Exception as e:
        logger.error(f"Error processing message {message.id}: {e}")
    return []


def register_events(bot: commands.Bot, linker: AnalysisLinker, config):
    @bot.event
    async def on_ready():
        linker.allowlist.start_cleanup_task(config.ALLOWLIST_CLEANUP_INTERVAL_SECONDS)
        logger.info(f"✅ Bot is online and logged in as {bot.user}")

    @bot.event
    async def on_message(message):
        if message.author == bot.user:
            return

        await handle_message(message, linker=linker, config=config)
        await bot.process_commands(message)
