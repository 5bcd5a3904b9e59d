"""
Shop Cog - catalog, buying, inventory and item trading
"""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..utils.checks import is_admin, safe_defer, safe_reply
from ..utils.constants import Colors, Emojis
from ..utils.format import format_currency

logger = logging.getLogger("VoltBot.Shop")


class ShopCog(commands.Cog):
    """Shop and inventory commands."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def shop(self):
        return self.bot.shop

    async def item_autocomplete(self, interaction: discord.Interaction, current: str):
        items = await self.shop.get_shop_items()
        current = current.lower()
        return [
            app_commands.Choice(name=item["name"][:100], value=item["name"][:100])
            for item in items
            if current in item["name"].lower()
        ][:25]

    @app_commands.command(name="shop", description="🛍️ Browse the shop")
    async def shop_list(self, interaction: discord.Interaction):
        await safe_defer(interaction)
        items = await self.shop.get_shop_items()

        embed = discord.Embed(title=f"{Emojis.SHOP} Shop", color=Colors.BLURPLE)
        if not items:
            embed.description = "The shop is empty right now."
        for item in items[:25]:
            stock = f"{item['quantity']} left" if item["quantity"] > 0 else "**Sold out**"
            embed.add_field(
                name=f"{item['name']} - {format_currency(item['price'])}",
                value=f"{item['description'] or 'No description'}\n{stock}",
                inline=False,
            )
        await safe_reply(interaction, embed=embed)

    @app_commands.command(name="buy", description="🛒 Buy an item from the shop")
    @app_commands.describe(item="Item name")
    @app_commands.autocomplete(item=item_autocomplete)
    async def buy(self, interaction: discord.Interaction, item: str):
        result = await self.shop.purchase(str(interaction.user.id), item)
        await safe_reply(
            interaction,
            content=(
                f"{Emojis.SUCCESS} You bought **{result['name']}** for {format_currency(result['price'])}. "
                f"You now own {result['owned']}. Wallet: {format_currency(result['wallet'])}"
            ),
        )

    @app_commands.command(name="inventory", description="🎒 See what you own")
    @app_commands.describe(user="Whose inventory to view (defaults to you)")
    async def inventory(self, interaction: discord.Interaction, user: discord.User = None):
        target = user or interaction.user
        rows = await self.shop.get_inventory(str(target.id))

        embed = discord.Embed(title=f"{Emojis.BACKPACK} {target.display_name}'s Inventory", color=Colors.TEAL)
        if rows:
            embed.description = "\n".join(f"**{row['name']}** x{row['quantity']}" for row in rows)
        else:
            embed.description = "Empty."
        await safe_reply(interaction, embed=embed)

    @app_commands.command(name="transfer-item", description="🎁 Give items to another user")
    @app_commands.describe(user="Recipient", item="Item name", quantity="How many")
    async def transfer_item(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        item: str,
        quantity: app_commands.Range[int, 1] = 1,
    ):
        if user.id == interaction.user.id:
            return await safe_reply(interaction, content=f"{Emojis.ERROR} You can't give items to yourself.", ephemeral=True)

        result = await self.shop.transfer_item(str(interaction.user.id), str(user.id), item, quantity)
        await safe_reply(
            interaction,
            content=f"{Emojis.SUCCESS} {interaction.user.mention} gave {quantity}x **{result['name']}** to {user.mention}.",
        )

    @app_commands.command(name="redeem", description="✨ Use up one of your items")
    @app_commands.describe(item="Item name")
    async def redeem(self, interaction: discord.Interaction, item: str):
        result = await self.shop.redeem_item(str(interaction.user.id), item)
        await safe_reply(
            interaction,
            content=f"{Emojis.SUCCESS} {interaction.user.mention} redeemed **{result['name']}** ({result['remaining']} left).",
        )

    # -------------------------------------------------------------------------
    # ADMIN
    # -------------------------------------------------------------------------

    @app_commands.command(name="add-item", description="➕ (Admin) List an item in the shop")
    @app_commands.describe(name="Item name", price="Price", description="Description", quantity="Stock")
    @is_admin()
    async def add_item(
        self,
        interaction: discord.Interaction,
        name: str,
        price: app_commands.Range[int, 1],
        description: str = "",
        quantity: app_commands.Range[int, 1] = 1,
    ):
        item = await self.shop.add_shop_item(price, name, description, quantity)
        logger.info(f"{interaction.user} listed '{item['name']}'")
        await safe_reply(
            interaction,
            content=f"{Emojis.SUCCESS} **{item['name']}** is now in the shop for {format_currency(item['price'])} ({item['quantity']} in stock).",
            ephemeral=True,
        )

    @app_commands.command(name="remove-item", description="➖ (Admin) Remove an item from the shop")
    @app_commands.describe(name="Item name")
    @is_admin()
    async def remove_item(self, interaction: discord.Interaction, name: str):
        removed = await self.shop.remove_shop_item(name)
        if removed:
            message = f"{Emojis.SUCCESS} **{name}** was removed from the shop."
        else:
            message = f"{Emojis.WARNING} No item named **{name}** is listed."
        await safe_reply(interaction, content=message, ephemeral=True)

    @app_commands.command(name="reward-item", description="🎁 (Admin) Grant items to a user")
    @app_commands.describe(user="Recipient", item="Item name", quantity="How many")
    @is_admin()
    async def reward_item(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        item: str,
        quantity: app_commands.Range[int, 1] = 1,
    ):
        result = await self.shop.reward_item(str(user.id), item, quantity)
        await safe_reply(
            interaction,
            content=f"{Emojis.SUCCESS} {user.mention} received {quantity}x **{result['name']}** (now owns {result['owned']}).",
        )


async def setup(bot: commands.Bot):
    await bot.add_cog(ShopCog(bot))
