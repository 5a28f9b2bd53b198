"""
main.py
Entry point for the help channel bot.
Tracks which help channels are free or busy and keeps a status summary posted
in each guild's status channel.
"""

from __future__ import annotations
import asyncio
import logging
import logging.handlers
import os
import sys
from pathlib import Path

import discord
from discord.ext import commands
from dotenv import load_dotenv

# ──────────────────────────────────────────────
# Environment
# ──────────────────────────────────────────────
load_dotenv()

DISCORD_TOKEN = os.getenv("DISCORD_BOT_TOKEN", "")
LOG_LEVEL     = os.getenv("LOG_LEVEL", "INFO").upper()

# Imported after load_dotenv so module-level os.getenv calls see .env values
from monitor.config import apply_config, load_free_command_config  # noqa: E402
from monitor.errors import ConfigurationError  # noqa: E402
from monitor.handlers import EventHandlers  # noqa: E402
from monitor.publisher import StatusPublisher  # noqa: E402
from monitor.state import ChannelMonitor  # noqa: E402

log = logging.getLogger("helpbot.main")

EXTENSIONS = ("bot.commands", "bot.events", "bot.help_threads", "bot.filesharing")


def setup_logging() -> None:
    Path("logs").mkdir(exist_ok=True)

    log_formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVEL)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    root_logger.addHandler(console_handler)

    # Rotating file handler
    file_handler = logging.handlers.RotatingFileHandler(
        "logs/help_bot.log",
        maxBytes=5_000_000,   # 5 MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(log_formatter)
    root_logger.addHandler(file_handler)


# ──────────────────────────────────────────────
# Bot subclass
# ──────────────────────────────────────────────

class HelpChannelBot(commands.Bot):
    def __init__(self, monitor: ChannelMonitor):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members         = True
        super().__init__(command_prefix="!", intents=intents)

        from bot.sink import DiscordMessagingSink
        self.channel_monitor  = monitor
        self.status_publisher = StatusPublisher(monitor, DiscordMessagingSink(self))
        self.free_handlers    = EventHandlers(monitor, self.status_publisher)

    async def setup_hook(self) -> None:
        """Called once after login, before starting the bot's event loop."""
        from database.db import init_db
        await init_db()

        # Load cogs (discord.py calls setup() in each module)
        for ext in EXTENSIONS:
            await self._load_ext(ext)
        log.info("Setup complete. Bot ready.")

    async def _load_ext(self, module: str) -> None:
        """Load a cog from its module, with error logging."""
        try:
            await self.load_extension(module)
            log.info("Loaded extension: %s", module)
        except Exception as e:
            log.exception("Failed to load extension %s: %s", module, e)

    async def close(self) -> None:
        log.info("Shutting down bot...")
        await self.status_publisher.wait_idle()
        from database.db import close_db
        await close_db()
        await super().close()


# ──────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────

def main() -> None:
    setup_logging()
    if not DISCORD_TOKEN:
        log.error("DISCORD_BOT_TOKEN is not set in .env — cannot start.")
        sys.exit(1)

    try:
        monitor = apply_config(ChannelMonitor(), load_free_command_config())
    except ConfigurationError as e:
        log.error("Invalid free command configuration: %s", e)
        sys.exit(1)
    log.debug("Config loaded: %r", monitor)

    bot = HelpChannelBot(monitor)

    try:
        asyncio.run(bot.start(DISCORD_TOKEN))
    except KeyboardInterrupt:
        log.info("Bot interrupted by user.")
    except discord.LoginFailure as e:
        log.error("Discord login failed: %s", e)
        sys.exit(1)
    except Exception as e:
        log.exception("Unexpected error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
