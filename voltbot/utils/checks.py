# utils/checks.py
import discord
from discord import app_commands


def has_permissions(*permission_names: str):
    """
    Checks if the invoking user has the given Discord guild permissions.
    Intended for slash commands (app_commands).
    """
    async def predicate(interaction: discord.Interaction) -> bool:
        if not interaction.guild or not interaction.user:
            raise app_commands.MissingPermissions(list(permission_names))

        perms = getattr(interaction.user, "guild_permissions", None)
        if perms is None:
            raise app_commands.MissingPermissions(list(permission_names))

        missing = [name for name in permission_names if not getattr(perms, name, False)]
        if missing:
            raise app_commands.MissingPermissions(missing)
        return True

    return app_commands.check(predicate)


def is_admin():
    """Privileged commands are for guild administrators."""
    return has_permissions("administrator")


async def safe_defer(interaction: discord.Interaction, *, ephemeral: bool = False, thinking: bool = True):
    """
    Safely defers an interaction response if it hasn't been responded to yet.
    Useful when commands may do DB work before replying.
    """
    try:
        if not interaction.response.is_done():
            await interaction.response.defer(ephemeral=ephemeral, thinking=thinking)
    except (discord.InteractionResponded, discord.NotFound):
        return


async def safe_reply(
    interaction: discord.Interaction,
    *,
    content: str | None = None,
    embed: discord.Embed | None = None,
    view: discord.ui.View | None = None,
    ephemeral: bool = False,
    **kwargs,
):
    """
    Sends a response or followup depending on whether the interaction was already responded to.
    """
    payload: dict[str, object] = dict(content=content, ephemeral=ephemeral, **kwargs)
    if embed is not None:
        payload["embed"] = embed
    if view is not None:
        payload["view"] = view

    try:
        if interaction.response.is_done():
            return await interaction.followup.send(**payload)
        return await interaction.response.send_message(**payload)
    except discord.NotFound:
        return None
