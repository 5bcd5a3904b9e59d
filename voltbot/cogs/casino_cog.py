"""
Casino Cog - blackjack against the house
"""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..data.casino_games import BLACKJACK
from ..services.blackjack_service import BlackjackGame, GameStatus
from ..services.errors import NoActiveGameError
from ..utils.checks import safe_reply
from ..utils.constants import CasinoConfig, Colors, Emojis
from ..utils.format import format_currency, format_hand

logger = logging.getLogger("VoltBot.Casino")

RESULT_TEXT = {
    GameStatus.PLAYER_WIN: ("🎉 You win!", Colors.GREEN),
    GameStatus.DEALER_WIN: ("💀 Dealer wins.", Colors.RED),
    GameStatus.PUSH: ("🤝 Push - your bet is returned.", Colors.ORANGE),
}


def game_embed(game: BlackjackGame) -> discord.Embed:
    if game.finished:
        title, color = RESULT_TEXT[game.status]
        dealer_cards = format_hand(game.dealer_hand)
        dealer_total = str(game.dealer_total)
    else:
        title, color = BLACKJACK["name"], Colors.BLURPLE
        dealer_cards = f"{format_hand(game.dealer_hand[:1])} {Emojis.HIDDEN_CARD}"
        dealer_total = "?"

    embed = discord.Embed(title=title, color=color)
    embed.add_field(name=f"🎩 Dealer ({dealer_total})", value=f"`{dealer_cards}`", inline=False)
    embed.add_field(name=f"👤 You ({game.player_total})", value=f"`{format_hand(game.player_hand)}`", inline=False)

    if game.finished:
        if game.busted:
            embed.description = "Bust! You went over 21."
        elif game.status is GameStatus.PLAYER_WIN and game.player_natural:
            embed.description = f"Blackjack! Paid {format_currency(game.payout)}."
        elif game.payout:
            embed.description = f"Paid {format_currency(game.payout)}."
        elif game.dealer_natural:
            embed.description = "Dealer has blackjack."
    elif game.player_natural:
        embed.description = "Blackjack! /stand to collect."
    else:
        embed.description = "/hit to draw, /stand to hold."

    footer = f"Bet: {format_currency(game.bet)}"
    if game.wallet is not None:
        footer += f" | Wallet: {format_currency(game.wallet)}"
    embed.set_footer(text=footer)
    return embed


class CasinoCog(commands.Cog):
    """Blackjack commands."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def blackjack(self):
        return self.bot.blackjack

    async def _active_game(self, interaction: discord.Interaction) -> BlackjackGame:
        game = await self.blackjack.get_active_game(str(interaction.user.id))
        if game is None:
            raise NoActiveGameError()
        return game

    @app_commands.command(name="blackjack", description="🃏 Start a game of blackjack")
    @app_commands.describe(bet="How much to bet")
    async def blackjack_start(self, interaction: discord.Interaction, bet: int):
        if bet < CasinoConfig.BLACKJACK_MIN_BET:
            return await safe_reply(
                interaction,
                content=f"{Emojis.ERROR} Minimum bet is {format_currency(CasinoConfig.BLACKJACK_MIN_BET)}.",
                ephemeral=True,
            )
        game = await self.blackjack.start_game(str(interaction.user.id), bet)
        await safe_reply(interaction, embed=game_embed(game))

    @app_commands.command(name="hit", description="🃏 Draw another card")
    async def hit(self, interaction: discord.Interaction):
        game = await self._active_game(interaction)
        game = await self.blackjack.hit(game.game_id)
        await safe_reply(interaction, embed=game_embed(game))

    @app_commands.command(name="stand", description="✋ Hold your hand and let the dealer play")
    async def stand(self, interaction: discord.Interaction):
        game = await self._active_game(interaction)
        game = await self.blackjack.stand(game.game_id)
        await safe_reply(interaction, embed=game_embed(game))


async def setup(bot: commands.Bot):
    await bot.add_cog(CasinoCog(bot))
