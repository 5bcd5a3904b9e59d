"""
Economy Cog - wallet/bank commands, transfers, robbing and rankings
"""

from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..utils.checks import is_admin, safe_defer, safe_reply
from ..utils.constants import Colors, EconomyConfig, Emojis
from ..utils.format import format_currency

logger = logging.getLogger("VoltBot.Economy")


class EconomyCog(commands.Cog):
    """Balances, banking, P2P transfers, robbing."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def economy(self):
        return self.bot.economy

    @app_commands.command(name="balance", description="💰 Check your wallet and bank balance")
    @app_commands.describe(user="Whose balance to check (defaults to you)")
    async def balance(self, interaction: discord.Interaction, user: Optional[discord.User] = None):
        target = user or interaction.user
        balances = await self.economy.get_balances(str(target.id))

        embed = discord.Embed(title=f"{Emojis.MONEY_BAG} {target.display_name}'s Balance", color=Colors.GOLD)
        embed.add_field(name="Wallet", value=format_currency(balances["wallet"]), inline=True)
        embed.add_field(name=f"{Emojis.BANK} Bank", value=format_currency(balances["bank"]), inline=True)
        embed.add_field(
            name="Total", value=format_currency(balances["wallet"] + balances["bank"]), inline=False
        )
        await safe_reply(interaction, embed=embed)

    @app_commands.command(name="deposit", description="🏦 Move money from your wallet to the bank")
    @app_commands.describe(amount="How much to deposit")
    async def deposit(self, interaction: discord.Interaction, amount: app_commands.Range[int, 1]):
        result = await self.economy.deposit(str(interaction.user.id), amount)
        await safe_reply(
            interaction,
            content=(
                f"{Emojis.BANK} Deposited **{format_currency(amount)}**. "
                f"Wallet: {format_currency(result['wallet'])} | Bank: {format_currency(result['bank'])}"
            ),
        )

    @app_commands.command(name="withdraw", description="💵 Move money from the bank to your wallet")
    @app_commands.describe(amount="How much to withdraw")
    async def withdraw(self, interaction: discord.Interaction, amount: app_commands.Range[int, 1]):
        result = await self.economy.withdraw(str(interaction.user.id), amount)
        await safe_reply(
            interaction,
            content=(
                f"{Emojis.MONEY_BAG} Withdrew **{format_currency(amount)}**. "
                f"Wallet: {format_currency(result['wallet'])} | Bank: {format_currency(result['bank'])}"
            ),
        )

    @app_commands.command(name="give", description="🤝 Give money from your wallet to another user")
    @app_commands.describe(user="Who receives the money", amount="How much to give")
    async def give(self, interaction: discord.Interaction, user: discord.User, amount: app_commands.Range[int, 1]):
        if user.id == interaction.user.id:
            return await safe_reply(interaction, content=f"{Emojis.ERROR} You can't give money to yourself.", ephemeral=True)
        if user.bot:
            return await safe_reply(interaction, content=f"{Emojis.ERROR} Bots don't need {EconomyConfig.CURRENCY_NAME}.", ephemeral=True)

        await self.economy.transfer_from_wallet(str(interaction.user.id), str(user.id), amount)
        await safe_reply(
            interaction,
            content=f"{Emojis.SUCCESS} {interaction.user.mention} gave **{format_currency(amount)}** to {user.mention}.",
        )

    async def _rob(self, interaction: discord.Interaction, user: discord.User):
        if user.id == interaction.user.id:
            return await safe_reply(interaction, content=f"{Emojis.ERROR} You can't rob yourself! 🤦", ephemeral=True)
        if user.bot:
            return await safe_reply(interaction, content=f"{Emojis.ERROR} You can't rob bots!", ephemeral=True)

        result = await self.economy.rob_user(str(interaction.user.id), str(user.id))

        if not result["success"]:
            return await safe_reply(interaction, content=f"{Emojis.ERROR} {user.mention} has nothing in their wallet to rob!")

        if result["outcome"] == "success":
            embed = discord.Embed(
                title=f"{Emojis.MONEY_BAG} Robbery Successful!",
                description=f"{interaction.user.mention} stole **{format_currency(result['amount_stolen'])}** from {user.mention}!",
                color=Colors.GREEN,
            )
        else:
            if result["penalty"]:
                detail = f"paid **{format_currency(result['penalty'])}** to {user.mention} as a fine"
            else:
                detail = "was too broke to pay the fine"
            embed = discord.Embed(
                title=f"{Emojis.POLICE} Caught!",
                description=f"{interaction.user.mention} got caught and {detail}.",
                color=Colors.RED,
            )
        await safe_reply(interaction, embed=embed)

    @app_commands.command(name="rob", description="🦹 Try to rob another user's wallet")
    @app_commands.describe(user="The user to rob")
    async def rob(self, interaction: discord.Interaction, user: discord.User):
        await self._rob(interaction, user)

    @app_commands.command(name="drain", description="⚡ Drain power from another user's wallet")
    @app_commands.describe(user="The user to drain")
    async def drain(self, interaction: discord.Interaction, user: discord.User):
        await self._rob(interaction, user)

    @app_commands.command(name="leaderboard", description="🏆 The richest users")
    async def leaderboard(self, interaction: discord.Interaction):
        await safe_defer(interaction)
        rows = await self.economy.get_leaderboard()

        if not rows:
            return await safe_reply(interaction, content="Nobody has any money yet.")

        lines = []
        for rank, row in enumerate(rows, start=1):
            lines.append(f"**{rank}.** <@{row['user_id']}> - {format_currency(row['total'])}")

        embed = discord.Embed(
            title=f"🏆 Top {len(rows)} by {EconomyConfig.CURRENCY_NAME}",
            description="\n".join(lines),
            color=Colors.GOLD,
        )
        await safe_reply(interaction, embed=embed)

    @app_commands.command(name="bake", description="🍕 (Admin) Bake fresh currency into your wallet")
    @is_admin()
    async def bake(self, interaction: discord.Interaction):
        amount = await self.economy.bake(str(interaction.user.id))
        logger.info(f"{interaction.user} baked {amount}")
        await safe_reply(interaction, content=f"{Emojis.COIN} Baked **{format_currency(amount)}**!", ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(EconomyCog(bot))
