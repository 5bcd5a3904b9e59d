"""
Jobs Cog - the job board, taking jobs, and admin-paid completion
"""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..services.jobs_service import AssignmentMode
from ..utils.checks import is_admin, safe_defer, safe_reply
from ..utils.constants import Colors, Emojis
from ..utils.format import format_currency

logger = logging.getLogger("VoltBot.Jobs")


class JobsCog(commands.Cog):
    """Job commands for both assignment modes."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def jobs(self):
        return self.bot.jobs

    @property
    def single_mode(self) -> bool:
        return self.jobs.mode is AssignmentMode.SINGLE

    @app_commands.command(name="work", description="🛠️ Get a job from the board")
    async def work(self, interaction: discord.Interaction):
        user_id = str(interaction.user.id)
        if self.single_mode:
            job = await self.jobs.assign_cycled_job(user_id)
        else:
            job = await self.jobs.assign_random_job(user_id)

        if job is None:
            message = "There are no jobs available for you right now."
            return await safe_reply(interaction, content=f"{Emojis.WARNING} {message}", ephemeral=True)

        embed = discord.Embed(
            title=f"{Emojis.WORK} New Job",
            description=f"**#{job['job_id']}** {job['description']}",
            color=Colors.TEAL,
        )
        embed.set_footer(text="Finish it and ask an admin to /complete-job you.")
        await safe_reply(interaction, embed=embed)

    @app_commands.command(name="joblist", description="📋 Every job and who is on it")
    async def joblist(self, interaction: discord.Interaction):
        await safe_defer(interaction)
        jobs = await self.jobs.get_job_list()

        embed = discord.Embed(title="📋 Job Board", color=Colors.BLURPLE)
        if not jobs:
            embed.description = "No jobs have been posted."
        for job in jobs[:25]:
            assignees = ", ".join(f"<@{uid}>" for uid in job["assignees"]) or "Nobody"
            embed.add_field(name=f"#{job['job_id']} {job['description'][:200]}", value=assignees, inline=False)
        await safe_reply(interaction, embed=embed)

    @app_commands.command(name="select-task", description="🎯 Pick a specific job")
    @app_commands.describe(job_id="Job number from /joblist")
    async def select_task(self, interaction: discord.Interaction, job_id: int):
        if not self.single_mode:
            return await safe_reply(
                interaction, content=f"{Emojis.WARNING} Use /work to get a job on this server.", ephemeral=True
            )
        job = await self.jobs.assign_job(str(interaction.user.id), job_id)
        await safe_reply(interaction, content=f"{Emojis.SUCCESS} You took job **#{job['job_id']}**: {job['description']}")

    @app_commands.command(name="quit", description="🚪 Quit a job without a reward")
    @app_commands.describe(job_id="Job number (needed when you hold several)")
    async def quit(self, interaction: discord.Interaction, job_id: int = None):
        user_id = str(interaction.user.id)
        if job_id is None and not self.single_mode:
            held = await self.jobs.get_user_jobs(user_id)
            if len(held) == 1:
                job_id = held[0]["job_id"]
            elif held:
                return await safe_reply(
                    interaction, content=f"{Emojis.WARNING} You hold several jobs; pass a job number.", ephemeral=True
                )

        if job_id is None and not self.single_mode:
            return await safe_reply(interaction, content=f"{Emojis.ERROR} You do not have an active job.", ephemeral=True)

        result = await self.jobs.quit_job(user_id, job_id)
        await safe_reply(interaction, content=f"You quit job **#{result['job_id']}**: {result['description']}")

    # -------------------------------------------------------------------------
    # ADMIN
    # -------------------------------------------------------------------------

    @app_commands.command(name="complete-job", description="✅ (Admin) Mark a user's job done and pay them")
    @app_commands.describe(user="Who finished", reward="Payout (0 for none)", job_id="Job number (multi-job servers)")
    @is_admin()
    async def complete_job(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        reward: app_commands.Range[int, 0],
        job_id: int = None,
    ):
        result = await self.jobs.complete_job(str(user.id), reward, job_id)
        logger.info(f"{interaction.user} completed job #{result['job_id']} for {user} ({reward})")
        await safe_reply(
            interaction,
            content=(
                f"{Emojis.SUCCESS} {user.mention} completed **#{result['job_id']}** {result['description']} "
                f"and earned {format_currency(reward)}!"
            ),
        )

    @app_commands.command(name="add-job", description="➕ (Admin) Post a job")
    @app_commands.describe(description="What needs doing")
    @is_admin()
    async def add_job(self, interaction: discord.Interaction, description: str):
        job = await self.jobs.add_job(description)
        await safe_reply(interaction, content=f"{Emojis.SUCCESS} Posted job **#{job['job_id']}**.", ephemeral=True)

    @app_commands.command(name="remove-job", description="➖ (Admin) Delete a job")
    @app_commands.describe(job_id="Job number")
    @is_admin()
    async def remove_job(self, interaction: discord.Interaction, job_id: int):
        job = await self.jobs.remove_job(job_id)
        await safe_reply(interaction, content=f"{Emojis.SUCCESS} Removed job **#{job['job_id']}**.", ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(JobsCog(bot))
