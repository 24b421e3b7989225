import discord
from discord.ext import commands as dpy_cmds

__all__ = ["create_bot"]


def create_bot(command_prefix: str = "!", linker=None, config=None):
    from tickerlink.config import settings
    from tickerlink.linker import create_analysis_linker

    config = config or settings()
    linker = linker or create_analysis_linker(config)

    intents = discord.Intents.default()
    intents.message_content = True

    bot = dpy_cmds.Bot(command_prefix=command_prefix, intents=intents)

    from .events import register_events

    register_events(bot, linker, config)
    return bot
