"""
Giveaway Cog - reaction giveaways, ticket raffles and winner announcements
"""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..services.errors import RaffleClosedError
from ..services.raffle_service import GIVEAWAY, RAFFLE, CurrencyPrize, Raffle
from ..utils.checks import is_admin, safe_defer, safe_reply
from ..utils.constants import Colors, Emojis, RaffleConfig
from ..utils.format import format_currency, format_dt, format_duration

logger = logging.getLogger("VoltBot.Giveaways")

UNIT_CHOICES = [app_commands.Choice(name=unit, value=unit) for unit in RaffleConfig.TIME_UNITS]


def prize_text(raffle: Raffle) -> str:
    if isinstance(raffle.prize, CurrencyPrize):
        return format_currency(raffle.prize.amount)
    return f"**{raffle.prize.name}**"


def raffle_embed(raffle: Raffle) -> discord.Embed:
    if raffle.kind == GIVEAWAY:
        title = f"{Emojis.PARTY} Giveaway: {raffle.name}"
        how = f"React with {Emojis.PARTY} to enter!"
        color = Colors.GOLD
    else:
        title = f"{Emojis.TICKET} Raffle: {raffle.name}"
        how = (
            f"Buy a **{raffle.ticket_name}** from the shop for {format_currency(raffle.ticket_cost)} "
            f"({raffle.ticket_quantity} available) to enter!"
        )
        color = Colors.ORANGE

    embed = discord.Embed(title=title, description=how, color=color)
    embed.add_field(name="Prize", value=prize_text(raffle), inline=True)
    embed.add_field(name="Winners", value=str(raffle.winners), inline=True)
    embed.add_field(name="Ends", value=format_dt(raffle.ends_at, "R"), inline=True)
    if raffle.repeat_count:
        embed.set_footer(
            text=f"Repeats {raffle.repeat_count} more time(s), {format_duration(raffle.duration_seconds)} each"
        )
    return embed


class GiveawayCog(commands.Cog):
    """Giveaway and raffle commands."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def raffles(self):
        return self.bot.raffles

    async def _announce(self, raffle: Raffle, channel: discord.abc.Messageable | None = None):
        channel = channel or (self.bot.get_channel(int(raffle.channel_id)) if raffle.channel_id else None)
        if channel is None:
            return
        message = await channel.send(embed=raffle_embed(raffle))
        if raffle.kind == GIVEAWAY:
            await message.add_reaction(Emojis.PARTY)
        await self.raffles.set_message(raffle.raffle_id, channel.id, message.id)

    # -------------------------------------------------------------------------
    # CREATION (ADMIN)
    # -------------------------------------------------------------------------

    @app_commands.command(name="giveaway-create", description="🎉 (Admin) Start a reaction giveaway")
    @app_commands.describe(
        name="Giveaway name",
        prize="An amount, or the name of a shop item",
        winners="Number of winners",
        duration="How long it runs",
        unit="Duration unit",
        repeat="How many times to run it again afterwards",
    )
    @app_commands.choices(unit=UNIT_CHOICES)
    @is_admin()
    async def giveaway_create(
        self,
        interaction: discord.Interaction,
        name: str,
        prize: str,
        winners: app_commands.Range[int, 1],
        duration: app_commands.Range[int, 1],
        unit: app_commands.Choice[str],
        repeat: app_commands.Range[int, 0] = 0,
    ):
        await safe_defer(interaction, ephemeral=True)
        raffle = await self.raffles.create_giveaway(
            name, prize, winners, duration * RaffleConfig.TIME_UNITS[unit.value],
            repeat=repeat, channel_id=interaction.channel_id,
        )
        await self._announce(raffle, interaction.channel)
        await safe_reply(interaction, content=f"{Emojis.SUCCESS} Giveaway **{raffle.name}** started.", ephemeral=True)

    @app_commands.command(name="raffle", description="🎟️ (Admin) Start a ticket raffle")
    @app_commands.describe(
        name="Raffle name",
        prize="An amount, or the name of a shop item",
        winners="Number of winners",
        ticket_cost="Price of one ticket",
        ticket_quantity="Tickets available",
        duration="How long it runs",
        unit="Duration unit",
        repeat="How many times to run it again afterwards",
    )
    @app_commands.choices(unit=UNIT_CHOICES)
    @is_admin()
    async def raffle_create(
        self,
        interaction: discord.Interaction,
        name: str,
        prize: str,
        winners: app_commands.Range[int, 1],
        ticket_cost: app_commands.Range[int, 1],
        ticket_quantity: app_commands.Range[int, 1],
        duration: app_commands.Range[int, 1],
        unit: app_commands.Choice[str],
        repeat: app_commands.Range[int, 0] = 0,
    ):
        await safe_defer(interaction, ephemeral=True)
        raffle = await self.raffles.create_raffle(
            name, prize, winners, duration * RaffleConfig.TIME_UNITS[unit.value],
            ticket_cost, ticket_quantity, repeat=repeat, channel_id=interaction.channel_id,
        )
        await self._announce(raffle, interaction.channel)
        await safe_reply(interaction, content=f"{Emojis.SUCCESS} Raffle **{raffle.name}** started.", ephemeral=True)

    # -------------------------------------------------------------------------
    # LISTINGS
    # -------------------------------------------------------------------------

    async def _list(self, interaction: discord.Interaction, kind: str):
        await safe_defer(interaction)
        active = await self.raffles.get_active(kind)
        label = "Giveaways" if kind == GIVEAWAY else "Raffles"

        embed = discord.Embed(title=f"Active {label}", color=Colors.GOLD)
        if not active:
            embed.description = f"No active {label.lower()}."
        for raffle in active[:25]:
            embed.add_field(
                name=f"#{raffle.raffle_id} {raffle.name}",
                value=f"Prize: {prize_text(raffle)} | Winners: {raffle.winners} | Ends {format_dt(raffle.ends_at, 'R')}",
                inline=False,
            )
        await safe_reply(interaction, embed=embed)

    @app_commands.command(name="giveaway", description="🎉 List active giveaways")
    async def giveaway_list(self, interaction: discord.Interaction):
        await self._list(interaction, GIVEAWAY)

    @app_commands.command(name="rafflelist", description="🎟️ List active raffles")
    async def raffle_list(self, interaction: discord.Interaction):
        await self._list(interaction, RAFFLE)

    # -------------------------------------------------------------------------
    # ENTRIES & RESULTS
    # -------------------------------------------------------------------------

    async def _reaction_raffle(self, payload: discord.RawReactionActionEvent) -> Raffle | None:
        if str(payload.emoji) != Emojis.PARTY:
            return None
        if self.bot.user and payload.user_id == self.bot.user.id:
            return None
        raffle = await self.raffles.get_raffle_by_message(payload.message_id)
        if raffle is None or raffle.kind != GIVEAWAY:
            return None
        return raffle

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        raffle = await self._reaction_raffle(payload)
        if raffle is None:
            return
        try:
            entered = await self.raffles.enter_giveaway(raffle.raffle_id, str(payload.user_id))
        except RaffleClosedError:
            logger.debug(f"Late reaction from {payload.user_id} on giveaway #{raffle.raffle_id} ignored")
            return
        if entered:
            logger.debug(f"{payload.user_id} entered giveaway #{raffle.raffle_id}")

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent):
        raffle = await self._reaction_raffle(payload)
        if raffle and await self.raffles.leave_giveaway(raffle.raffle_id, str(payload.user_id)):
            logger.debug(f"{payload.user_id} left giveaway #{raffle.raffle_id}")

    @commands.Cog.listener()
    async def on_raffle_concluded(self, result: dict):
        """Fired by the bot's scheduler after each conclusion."""
        raffle: Raffle = result["raffle"]
        channel = self.bot.get_channel(int(raffle.channel_id)) if raffle.channel_id else None

        if channel is not None:
            if result["winners"]:
                mentions = ", ".join(f"<@{uid}>" for uid in result["winners"])
                text = f"{Emojis.PARTY} **{raffle.name}** is over! Congratulations {mentions}, you each won {prize_text(raffle)}!"
                if not result["awarded"]:
                    text += f"\n{Emojis.WARNING} The prize item no longer exists; an admin will sort it out."
            else:
                text = f"**{raffle.name}** ended with no entries."
            await channel.send(text)

        if result["next"] is not None:
            await self._announce(result["next"], channel)


async def setup(bot: commands.Bot):
    await bot.add_cog(GiveawayCog(bot))
