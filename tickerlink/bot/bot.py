import logging

from tickerlink.config import settings
from tickerlink.linker import create_analysis_linker
from tickerlink.logging_utils import configure_logging
from . import create_bot

logger = logging.getLogger(__name__)


def main():
    config = settings()
    configure_logging(config.LOG_LEVEL)

    token = config.DISCORD_BOT_TOKEN
    if not token:
        raise RuntimeError("DISCORD_BOT_TOKEN not set")

    linker = create_analysis_linker(config)
    logger.info(
        f"Watching {len(config.analysis_channel_ids_list)} analysis channels, "
        f"{len(linker.trusted_author_ids)} trusted authors"
    )

    bot = create_bot(linker=linker, config=config)
    bot.run(token, log_handler=None)


if __name__ == "__main__":
    main()
