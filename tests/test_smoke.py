"""
Startup validation: every module imports and the bot wires up its cogs
without touching Discord.
"""
import importlib
from types import SimpleNamespace

import pytest

from voltbot.bot import COGS, VoltBot
from voltbot.data.casino_games import BLACKJACK
from voltbot.services.errors import InvalidArgumentError
from voltbot.utils.constants import Emojis, Times

MODULES = [
    "voltbot.config",
    "voltbot.db.database",
    "voltbot.services.errors",
    "voltbot.services.economy_service",
    "voltbot.services.shop_service",
    "voltbot.services.jobs_service",
    "voltbot.services.blackjack_service",
    "voltbot.services.raffle_service",
    "voltbot.utils.checks",
    "voltbot.utils.format",
    "voltbot.web.app",
] + [f"voltbot.cogs.{name}" for name in COGS]

EXPECTED_COMMANDS = {
    "balance", "deposit", "withdraw", "give", "rob", "drain", "leaderboard", "bake",
    "shop", "buy", "inventory", "transfer-item", "redeem", "add-item", "remove-item", "reward-item",
    "work", "joblist", "select-task", "quit", "complete-job", "add-job", "remove-job",
    "blackjack", "hit", "stand",
    "giveaway-create", "raffle", "giveaway", "rafflelist",
}


@pytest.mark.parametrize("module", MODULES)
def test_imports(module):
    importlib.import_module(module)


async def test_bot_loads_every_cog(database, rng):
    bot = VoltBot(database=database, rng=rng)

    loaded = await bot.load_cogs()

    assert loaded == list(COGS)
    names = {command.name for command in bot.tree.get_commands()}
    assert names == EXPECTED_COMMANDS
    assert bot.raffles.shop is bot.shop
    assert bot.shop.economy is bot.economy


class _Response:
    def __init__(self):
        self.sent = []

    def is_done(self):
        return False

    async def send_message(self, **payload):
        self.sent.append(payload)


def _interaction():
    return SimpleNamespace(response=_Response(), command=None)


@pytest.mark.parametrize(
    "error,shown",
    [
        (InvalidArgumentError("amount must be a positive integer, got 0"), "amount must be a positive integer"),
        (ValueError("invalid literal for int()"), "An internal error occurred."),
    ],
)
async def test_error_handler_only_shows_volt_errors(database, rng, error, shown):
    bot = VoltBot(database=database, rng=rng)
    interaction = _interaction()

    await bot.on_app_command_error(interaction, error)

    [reply] = interaction.response.sent
    assert shown in reply["content"]
    assert reply["ephemeral"] is True


def test_game_tables_carry_only_used_keys():
    assert set(BLACKJACK) == {"name", "target", "dealer_stands_on", "payout", "blackjack_payout", "push_payout"}
    assert not hasattr(Times, "WEEK")
    for unused in ("DICE", "ZAP", "INFO"):
        assert not hasattr(Emojis, unused)
