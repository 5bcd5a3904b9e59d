"""
VoltBot - Discord economy bot
Wallets and banks, a shop, jobs, blackjack and timed giveaways/raffles
"""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import sys
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands, tasks

from .config import VoltConfig
from .db.database import DatabaseManager
from .services.blackjack_service import BlackjackService
from .services.economy_service import EconomyService
from .services.errors import VoltError
from .services.jobs_service import JobsService
from .services.raffle_service import RaffleService
from .services.shop_service import ShopService
from .utils.checks import safe_reply
from .utils.constants import Emojis, Paths, RaffleConfig
from .utils.rng import RandomSource
from .web.app import start_dashboard

DEBUG_MODE = VoltConfig.BOT.DEBUG_MODE
TOKEN = VoltConfig.BOT.TOKEN
SYNC_COMMANDS = VoltConfig.BOT.SYNC_COMMANDS
SYNC_GUILD_ID = VoltConfig.BOT.SYNC_GUILD_ID
SYNC_TIMEOUT_SECONDS = 45

COGS = (
    "economy_cog",
    "shop_cog",
    "jobs_cog",
    "casino_cog",
    "giveaway_cog",
)


@dataclass(frozen=True)
class _Ansi:
    reset: str = "\x1b[0m"
    red: str = "\x1b[31m"
    yellow: str = "\x1b[33m"
    cyan: str = "\x1b[36m"
    gray: str = "\x1b[90m"


ANSI = _Ansi()
OK_TAG = "[OK]"
WARN_TAG = "[WARN]"
ERR_TAG = "[ERR]"

logger = logging.getLogger("VoltBot")


def _supports_color() -> bool:
    if os.getenv("NO_COLOR"):
        return False
    stream = sys.stdout
    return hasattr(stream, "isatty") and stream.isatty()


class _ColorFormatter(logging.Formatter):
    def __init__(self, *, use_color: bool):
        super().__init__("%(asctime)s | %(levelname)s | %(name)s | %(message)s", "%H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        if not self.use_color:
            return msg

        if record.levelno >= logging.ERROR:
            color = ANSI.red
        elif record.levelno >= logging.WARNING:
            color = ANSI.yellow
        elif record.levelno >= logging.INFO:
            color = ANSI.cyan
        else:
            color = ANSI.gray

        return f"{color}{msg}{ANSI.reset}"


def setup_logging(log_file: str = Paths.LOG_FILE) -> logging.Logger:
    level = logging.DEBUG if DEBUG_MODE else logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(_ColorFormatter(use_color=_supports_color()))

    root.addHandler(file_handler)
    root.addHandler(console_handler)

    # discord.py is chatty at DEBUG
    logging.getLogger("discord").setLevel(logging.INFO)
    return logger


class VoltBot(commands.Bot):
    """
    Main bot class.
    Owns the database and the services; cogs reach them through the bot.
    """

    def __init__(self, database: Optional[DatabaseManager] = None, rng: Optional[RandomSource] = None):
        intents = discord.Intents.default()
        intents.members = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
            description="Economy, shop, jobs, blackjack and giveaways.",
        )

        self.db = database or DatabaseManager(Paths.DB_NAME)
        self.rng = rng or RandomSource()
        self.economy = EconomyService(self.db, self.rng)
        self.shop = ShopService(self.db, self.rng, economy=self.economy)
        self.jobs = JobsService(self.db, self.rng, economy=self.economy)
        self.blackjack = BlackjackService(self.db, self.rng, economy=self.economy)
        self.raffles = RaffleService(self.db, self.rng, economy=self.economy, shop=self.shop)

        self.start_time = datetime.now(timezone.utc)
        self.dashboard_runner = None
        self.cog_package = f"{__package__}.cogs"

    def _log_startup_banner(self):
        logger.info("VoltBot starting up")
        logger.info(
            f"Python {platform.python_version()} | discord.py {discord.__version__} | "
            f"OS {platform.system()} {platform.release()}"
        )
        logger.info(f"DB {self.db.db_path} | Jobs mode {self.jobs.mode.value} | Debug {DEBUG_MODE}")

    async def setup_hook(self):
        """
        Called when the bot is starting up
        Initialize storage, load cogs, sync commands, start background work
        """
        started = datetime.now(timezone.utc)
        self._log_startup_banner()

        await self.db.initialize()
        logger.info(f"{OK_TAG} Database initialized")

        self.tree.error(self.on_app_command_error)
        await self.load_cogs()

        if SYNC_COMMANDS:
            await self.sync_commands()
        else:
            logger.info("Command sync disabled (VOLT_SYNC_COMMANDS=false)")

        self.start_background_tasks()

        try:
            self.dashboard_runner = await start_dashboard(self)
        except OSError as e:
            logger.error(f"{ERR_TAG} Dashboard failed to start: {e}")

        elapsed = (datetime.now(timezone.utc) - started).total_seconds()
        logger.info(f"{OK_TAG} Ready (startup {elapsed:.2f}s)")

    async def load_cogs(self) -> list[str]:
        loaded = []
        for cog_name in COGS:
            await self.load_extension(f"{self.cog_package}.{cog_name}")
            loaded.append(cog_name)
            logger.info(f"{OK_TAG} Loaded cog: {cog_name}")
        return loaded

    async def sync_commands(self):
        """Syncs slash commands with a bounded timeout so startup never stalls."""
        try:
            if SYNC_GUILD_ID:
                guild_obj = discord.Object(id=SYNC_GUILD_ID)
                self.tree.copy_global_to(guild=guild_obj)
                synced = await asyncio.wait_for(self.tree.sync(guild=guild_obj), timeout=SYNC_TIMEOUT_SECONDS)
                logger.info(f"{OK_TAG} Synced {len(synced)} application commands to guild {SYNC_GUILD_ID}")
            else:
                synced = await asyncio.wait_for(self.tree.sync(), timeout=SYNC_TIMEOUT_SECONDS)
                logger.info(f"{OK_TAG} Synced {len(synced)} application commands")
        except asyncio.TimeoutError:
            logger.warning(f"{WARN_TAG} Command sync timed out after {SYNC_TIMEOUT_SECONDS}s; continuing startup")
        except discord.HTTPException:
            logger.error(f"{ERR_TAG} Failed to sync application commands")
            logger.error(traceback.format_exc())

    # -------------------------------------------------------------------------
    # BACKGROUND TASKS
    # -------------------------------------------------------------------------

    def start_background_tasks(self):
        if not self.conclude_raffles.is_running():
            self.conclude_raffles.start()
        if not self.auto_save.is_running():
            self.auto_save.start()
        logger.info("Background tasks started")

    @tasks.loop(seconds=RaffleConfig.POLL_SECONDS)
    async def conclude_raffles(self):
        """Concludes giveaways/raffles whose end time has passed."""
        try:
            results = await self.raffles.conclude_due()
        except Exception:
            logger.error(f"{ERR_TAG} Raffle scheduler failed")
            logger.error(traceback.format_exc())
            return

        for result in results:
            self.dispatch("raffle_concluded", result)

    @conclude_raffles.before_loop
    async def before_conclude_raffles(self):
        await self.wait_until_ready()

    @tasks.loop(hours=1)
    async def auto_save(self):
        """Hourly database backup"""
        try:
            await self.db.backup()
        except Exception as e:
            logger.error(f"Error during auto-save: {e}")

    @auto_save.before_loop
    async def before_auto_save(self):
        await self.wait_until_ready()

    # -------------------------------------------------------------------------
    # EVENTS
    # -------------------------------------------------------------------------

    async def on_ready(self):
        logger.info(f"{OK_TAG} Logged in as {self.user} ({self.user.id}) | Guilds: {len(self.guilds)}")
        await self.change_presence(
            activity=discord.Activity(type=discord.ActivityType.playing, name="/balance | /shop | /blackjack")
        )

    async def on_error(self, event_method: str, *args, **kwargs):
        """Global event error handler (prevents silent failures)."""
        logger.error(f"{ERR_TAG} Event error in {event_method}")
        logger.error(traceback.format_exc())

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        """Global error handler for slash commands"""
        original = getattr(error, "original", error)
        try:
            if isinstance(original, VoltError):
                return await safe_reply(interaction, content=f"{Emojis.ERROR} {original}", ephemeral=True)

            if isinstance(error, app_commands.MissingPermissions):
                return await safe_reply(
                    interaction,
                    content=f"{Emojis.ERROR} You don't have permission to use this command.",
                    ephemeral=True,
                )

            if isinstance(error, app_commands.CheckFailure):
                return await safe_reply(interaction, content=f"{Emojis.ERROR} You can't use this here.", ephemeral=True)

            command = interaction.command.qualified_name if interaction.command else "?"
            logger.error(f"App command error in /{command}: {original}")
            logger.error("".join(traceback.format_exception(type(original), original, original.__traceback__)))
            return await safe_reply(
                interaction,
                content=f"{Emojis.ERROR} An internal error occurred.",
                ephemeral=True,
            )
        except discord.HTTPException:
            return

    async def close(self):
        """Cleanup when bot is shutting down"""
        logger.info("Bot shutting down...")

        if self.conclude_raffles.is_running():
            self.conclude_raffles.cancel()
        if self.auto_save.is_running():
            self.auto_save.cancel()

        if self.dashboard_runner is not None:
            await self.dashboard_runner.cleanup()
            self.dashboard_runner = None

        await self.db.close()
        await super().close()
        logger.info("Bot shutdown complete")


async def run_bot(token: str):
    bot = VoltBot()
    async with bot:
        logger.info("Connecting to Discord...")
        await bot.start(token)


def main():
    setup_logging()
    if not TOKEN:
        logger.error(f"{ERR_TAG} DISCORD_TOKEN is missing (check your `.env`)")
        sys.exit(1)

    try:
        asyncio.run(run_bot(TOKEN))
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")


if __name__ == "__main__":
    main()
