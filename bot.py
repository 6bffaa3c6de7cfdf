import asyncio
import logging
import sys

from dotenv import load_dotenv

from musicbot.bridge import Bridge
from musicbot.config import BridgeConfig
from musicbot.errors import BridgeError
from musicbot.logs import configure_logging

logger = logging.getLogger("musicbot")


def main():
    # ----- Setup -----
    if not load_dotenv():  # loads .env
        logging.basicConfig(level=logging.INFO)
        logger.critical("Failed to load .env file")
        return 1
    configure_logging()

    try:
        config = BridgeConfig.from_env()
        asyncio.run(Bridge(config).run())
    except BridgeError as e:
        logger.critical(f"Bot stopped: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
