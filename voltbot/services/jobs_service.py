# services/jobs_service.py
from contextlib import asynccontextmanager
from enum import Enum
from typing import List, Optional

from .base_service import BaseService
from .economy_service import EconomyService
from .errors import AlreadyAssignedError, InvalidArgumentError, JobNotFoundError, NotAssignedError
from ..db.database import fetch_all, fetch_one, utcnow
from ..utils.constants import JobConfig

MODE_SETTING = "job_assignment_mode"
CURSOR_SETTING = "job_cycle_cursor"


class AssignmentMode(str, Enum):
    MULTI = "multi"    # a user may hold many jobs, each at most once
    SINGLE = "single"  # a user holds at most one job system-wide

    @classmethod
    def parse(cls, value) -> "AssignmentMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown job assignment mode: {value!r}") from None


class JobsService(BaseService):
    """
    Job templates plus the (job, user) assignment relation.

    One deployment runs one AssignmentMode. The first write pins it in the
    settings table; a service configured for the other mode refuses to touch
    that store.
    """

    def __init__(self, database=None, rng=None, economy: Optional[EconomyService] = None, mode=None):
        super().__init__("jobs", database, rng)
        self.economy = economy or EconomyService(self.db, self.rng)
        self.mode = AssignmentMode.parse(mode or JobConfig.ASSIGNMENT_MODE)

    @asynccontextmanager
    async def _transaction(self):
        async with self.db.transaction() as conn:
            row = await fetch_one(conn, "SELECT value FROM settings WHERE key = ?", MODE_SETTING)
            if row is None:
                await conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?)", (MODE_SETTING, self.mode.value)
                )
                self.logger.info(f"Pinned job assignment mode to '{self.mode.value}'")
            elif row["value"] != self.mode.value:
                raise RuntimeError(
                    f"Job store is pinned to '{row['value']}' mode; this service runs '{self.mode.value}'"
                )
            yield conn

    def _require_mode(self, expected: AssignmentMode, operation: str):
        if self.mode is not expected:
            raise RuntimeError(f"{operation} is only available in '{expected.value}' assignment mode")

    @staticmethod
    async def _get_job(conn, job_id: int) -> dict:
        job = await fetch_one(conn, "SELECT job_id, description FROM jobs WHERE job_id = ?", job_id)
        if not job:
            raise JobNotFoundError(job_id)
        return job

    @staticmethod
    async def _held_jobs(conn, user_id: str) -> List[dict]:
        return await fetch_all(
            conn,
            """SELECT j.job_id, j.description
               FROM job_assignments a JOIN jobs j ON j.job_id = a.job_id
               WHERE a.user_id = ?
               ORDER BY a.assigned_at ASC, j.job_id ASC""",
            str(user_id),
        )

    @staticmethod
    async def _link(conn, job_id: int, user_id: str):
        await conn.execute(
            "INSERT INTO job_assignments (job_id, user_id, assigned_at) VALUES (?, ?, ?)",
            (job_id, str(user_id), utcnow().isoformat()),
        )

    # -------------------------------------------------------------------------
    # JOB BOARD (both modes)
    # -------------------------------------------------------------------------

    async def add_job(self, description: str) -> dict:
        if not description or not description.strip():
            raise InvalidArgumentError("Job description must not be empty")

        async with self._transaction() as conn:
            cursor = await conn.execute("INSERT INTO jobs (description) VALUES (?)", (description.strip(),))
            job_id = cursor.lastrowid

        self.logger.info(f"Added job #{job_id}: {description.strip()}")
        return {"job_id": job_id, "description": description.strip()}

    async def get_job_list(self) -> List[dict]:
        """Every job with the ids of the users currently on it."""
        async with self.db.transaction() as conn:
            jobs = await fetch_all(conn, "SELECT job_id, description FROM jobs ORDER BY job_id ASC")
            links = await fetch_all(
                conn, "SELECT job_id, user_id FROM job_assignments ORDER BY assigned_at ASC, rowid ASC"
            )

        assignees = {}
        for link in links:
            assignees.setdefault(link["job_id"], []).append(link["user_id"])
        for job in jobs:
            job["assignees"] = assignees.get(job["job_id"], [])
        return jobs

    async def remove_job(self, job_id: int) -> dict:
        """Deletes the job; its assignments go with it."""
        async with self._transaction() as conn:
            job = await self._get_job(conn, job_id)
            await conn.execute("DELETE FROM jobs WHERE job_id = ?", (job_id,))

        self.logger.info(f"Removed job #{job_id}")
        return job

    async def get_user_jobs(self, user_id: str) -> List[dict]:
        async with self.db.transaction() as conn:
            return await self._held_jobs(conn, user_id)

    async def get_user_job(self, user_id: str) -> Optional[dict]:
        """The job a user holds, or None. In multi mode, the oldest one."""
        jobs = await self.get_user_jobs(user_id)
        return jobs[0] if jobs else None

    # -------------------------------------------------------------------------
    # MULTI-ASSIGNEE MODE
    # -------------------------------------------------------------------------

    async def assign_random_job(self, user_id: str) -> Optional[dict]:
        """
        Links the user to a random job they are not already on.
        Returns None when they are on every job.
        """
        self._require_mode(AssignmentMode.MULTI, "assign_random_job")
        async with self._transaction() as conn:
            candidates = await fetch_all(
                conn,
                """SELECT job_id, description FROM jobs
                   WHERE job_id NOT IN (SELECT job_id FROM job_assignments WHERE user_id = ?)
                   ORDER BY job_id ASC""",
                str(user_id),
            )
            if not candidates:
                return None

            job = self.rng.choice(candidates)
            await self._link(conn, job["job_id"], user_id)

        self.logger.info(f"Assigned job #{job['job_id']} to {user_id}")
        return job

    # -------------------------------------------------------------------------
    # SINGLE-ASSIGNEE (CYCLED) MODE
    # -------------------------------------------------------------------------

    async def _ensure_unemployed(self, conn, user_id: str):
        held = await self._held_jobs(conn, user_id)
        if held:
            raise AlreadyAssignedError(user_id, held[0]["job_id"], held[0]["description"])

    async def assign_cycled_job(self, user_id: str) -> Optional[dict]:
        """
        Round-robin over jobs by ascending id, wrapping. Returns None when
        the board is empty.
        """
        self._require_mode(AssignmentMode.SINGLE, "assign_cycled_job")
        async with self._transaction() as conn:
            await self._ensure_unemployed(conn, user_id)

            cursor_row = await fetch_one(conn, "SELECT value FROM settings WHERE key = ?", CURSOR_SETTING)
            last_id = int(cursor_row["value"]) if cursor_row else 0

            job = await fetch_one(
                conn, "SELECT job_id, description FROM jobs WHERE job_id > ? ORDER BY job_id ASC LIMIT 1", last_id
            )
            if job is None:
                job = await fetch_one(conn, "SELECT job_id, description FROM jobs ORDER BY job_id ASC LIMIT 1")
            if job is None:
                return None

            await self._link(conn, job["job_id"], user_id)
            await conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (CURSOR_SETTING, str(job["job_id"]))
            )

        self.logger.info(f"Cycled job #{job['job_id']} to {user_id}")
        return job

    async def assign_job(self, user_id: str, job_id: int) -> dict:
        """Lets a user pick a specific job."""
        self._require_mode(AssignmentMode.SINGLE, "assign_job")
        async with self._transaction() as conn:
            await self._ensure_unemployed(conn, user_id)
            job = await self._get_job(conn, job_id)
            await self._link(conn, job_id, user_id)

        self.logger.info(f"{user_id} selected job #{job_id}")
        return job

    # -------------------------------------------------------------------------
    # COMPLETION
    # -------------------------------------------------------------------------

    async def complete_job(self, user_id: str, reward: int, job_id: Optional[int] = None) -> dict:
        """
        Pays `reward` (0 allowed) into the user's wallet and removes exactly
        one assignment. The job itself stays on the board.

        Multi mode needs the job id; single mode looks up the held job.
        """
        if isinstance(reward, bool) or not isinstance(reward, int) or reward < 0:
            raise InvalidArgumentError(f"reward must be a non-negative integer, got {reward!r}")
        if self.mode is AssignmentMode.MULTI and job_id is None:
            raise InvalidArgumentError("job_id is required in multi assignment mode")

        async with self._transaction() as conn:
            held = await self._held_jobs(conn, user_id)
            if job_id is None:
                job = held[0] if held else None
            else:
                job = next((j for j in held if j["job_id"] == job_id), None)
            if job is None:
                raise NotAssignedError(user_id, job_id)

            await conn.execute(
                "DELETE FROM job_assignments WHERE job_id = ? AND user_id = ?", (job["job_id"], str(user_id))
            )
            wallet = await self.economy.apply_delta(conn, user_id, "wallet", reward)

        self.logger.info(f"{user_id} finished job #{job['job_id']} (reward {reward})")
        return {"job_id": job["job_id"], "description": job["description"], "reward": reward, "wallet": wallet}

    async def quit_job(self, user_id: str, job_id: Optional[int] = None) -> dict:
        return await self.complete_job(user_id, 0, job_id)
