# db/database.py
import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite

from ..utils.constants import Paths


class DatabaseManager:
    """
    Single persistent aiosqlite connection shared by every service.

    All access goes through one asyncio.Lock:
    - `transaction()` for multi-step mutations (commit on success, rollback on error)
    - `fetch_one` / `fetch_all` / `execute` for one-shot statements
    so a reader never sees another coroutine's half-applied transaction.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or Paths.DB_NAME
        self.logger = logging.getLogger("VoltBot.Database")
        self._lock = asyncio.Lock()
        self._connection: Optional[aiosqlite.Connection] = None

    async def get_connection(self) -> aiosqlite.Connection:
        """Returns the active connection or creates a new one."""
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
            # Enable Foreign Keys enforcement (inventory/assignment cascades)
            await self._connection.execute("PRAGMA foreign_keys = ON")
            # Enable Write-Ahead Logging so the dashboard can read while the bot writes
            await self._connection.execute("PRAGMA journal_mode = WAL")
            await self._connection.execute("PRAGMA synchronous = NORMAL")
        return self._connection

    async def close(self):
        """Closes the cached connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self.logger.info("🗄️ Database connection closed")

    # -------------------------------------------------------------------------
    # SCHEMA
    # -------------------------------------------------------------------------

    async def initialize(self):
        """
        The Master Schema Builder.
        Runs on startup to ensure all tables exist.
        """
        self.logger.info("Initializing Database Schema...")
        Path(self.db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

        async with self.transaction() as db:
            # ---------------------------------------------------------
            # 1. LEDGER
            # ---------------------------------------------------------
            await db.execute("""
            CREATE TABLE IF NOT EXISTS economy (
                user_id TEXT PRIMARY KEY,
                wallet INTEGER NOT NULL DEFAULT 0 CHECK (wallet >= 0),
                bank INTEGER NOT NULL DEFAULT 0 CHECK (bank >= 0)
            )
            """)

            # ---------------------------------------------------------
            # 2. SHOP & INVENTORY
            # ---------------------------------------------------------
            await db.execute("""
            CREATE TABLE IF NOT EXISTS items (
                item_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                description TEXT DEFAULT '',
                price INTEGER NOT NULL CHECK (price > 0),
                quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity >= 0),
                is_available INTEGER NOT NULL DEFAULT 1
            )
            """)

            await db.execute("""
            CREATE TABLE IF NOT EXISTS inventory (
                user_id TEXT NOT NULL,
                item_id INTEGER NOT NULL,
                quantity INTEGER NOT NULL CHECK (quantity > 0),
                PRIMARY KEY (user_id, item_id),
                FOREIGN KEY (item_id) REFERENCES items (item_id) ON DELETE CASCADE
            )
            """)

            # ---------------------------------------------------------
            # 3. JOBS
            # ---------------------------------------------------------
            await db.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                job_id INTEGER PRIMARY KEY AUTOINCREMENT,
                description TEXT NOT NULL
            )
            """)

            await db.execute("""
            CREATE TABLE IF NOT EXISTS job_assignments (
                job_id INTEGER NOT NULL,
                user_id TEXT NOT NULL,
                assigned_at TEXT NOT NULL,
                PRIMARY KEY (job_id, user_id),
                FOREIGN KEY (job_id) REFERENCES jobs (job_id) ON DELETE CASCADE
            )
            """)
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_job_assignments_user ON job_assignments(user_id)"
            )

            # ---------------------------------------------------------
            # 4. CASINO
            # ---------------------------------------------------------
            await db.execute("""
            CREATE TABLE IF NOT EXISTS blackjack_games (
                game_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL UNIQUE,
                bet INTEGER NOT NULL CHECK (bet > 0),
                player_hand TEXT NOT NULL,
                dealer_hand TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'in_progress',
                created_at TEXT NOT NULL
            )
            """)

            # ---------------------------------------------------------
            # 5. RAFFLES & GIVEAWAYS
            # ---------------------------------------------------------
            await db.execute("""
            CREATE TABLE IF NOT EXISTS raffles (
                raffle_id INTEGER PRIMARY KEY AUTOINCREMENT,
                kind TEXT NOT NULL CHECK (kind IN ('raffle', 'giveaway')),
                name TEXT NOT NULL,
                channel_id TEXT,
                message_id TEXT,
                prize_kind TEXT NOT NULL CHECK (prize_kind IN ('currency', 'item')),
                prize_value TEXT NOT NULL,
                winners INTEGER NOT NULL CHECK (winners > 0),
                ticket_cost INTEGER,
                ticket_quantity INTEGER,
                duration_seconds INTEGER NOT NULL CHECK (duration_seconds > 0),
                repeat_count INTEGER NOT NULL DEFAULT 0 CHECK (repeat_count >= 0),
                ends_at TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE (kind, name)
            )
            """)

            await db.execute("""
            CREATE TABLE IF NOT EXISTS raffle_entries (
                raffle_id INTEGER NOT NULL,
                user_id TEXT NOT NULL,
                ticket_count INTEGER NOT NULL DEFAULT 1,
                entered_at TEXT NOT NULL,
                PRIMARY KEY (raffle_id, user_id),
                FOREIGN KEY (raffle_id) REFERENCES raffles (raffle_id) ON DELETE CASCADE
            )
            """)

            # ---------------------------------------------------------
            # 6. DEPLOYMENT SETTINGS
            # ---------------------------------------------------------
            await db.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            )
            """)

        self.logger.info("✅ Database Schema Ready")

    # -------------------------------------------------------------------------
    # ACCESS
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self):
        """
        Transaction context manager for safe multi-step mutations.
        Automatically commits on success, rolls back on error.
        """
        async with self._lock:
            conn = await self.get_connection()
            await conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            else:
                await conn.commit()

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """Returns a single row as a dict, or None."""
        async with self._lock:
            conn = await self.get_connection()
            async with conn.execute(query, args) as cursor:
                row = await cursor.fetchone()
        return dict(row) if row else None

    async def fetch_all(self, query: str, *args) -> List[Dict[str, Any]]:
        """Returns every row as a list of dicts."""
        async with self._lock:
            conn = await self.get_connection()
            async with conn.execute(query, args) as cursor:
                rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def execute(self, query: str, *args) -> int:
        """Executes a write and commits. Returns the affected row count."""
        async with self._lock:
            conn = await self.get_connection()
            cursor = await conn.execute(query, args)
            await conn.commit()
            return cursor.rowcount

    # -------------------------------------------------------------------------
    # BACKUPS
    # -------------------------------------------------------------------------

    @staticmethod
    def _backup_sync(src_path: str, dst_path: str):
        with sqlite3.connect(src_path) as src, sqlite3.connect(dst_path) as dst:
            src.backup(dst)

    async def backup(self, backup_dir: str = Paths.BACKUP_DIR) -> str:
        """Writes a timestamped copy of the database and returns its path."""
        target_dir = Path(backup_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        dst = target_dir / f"{Path(self.db_path).stem}_{stamp}.db"

        async with self._lock:
            await asyncio.to_thread(self._backup_sync, self.db_path, str(dst))

        self.logger.info(f"Database backed up to {dst}")
        return str(dst)


# Helpers shared by the services for use inside `transaction()` blocks.

async def fetch_one(conn: aiosqlite.Connection, query: str, *args) -> Optional[Dict[str, Any]]:
    async with conn.execute(query, args) as cursor:
        row = await cursor.fetchone()
    return dict(row) if row else None


async def fetch_all(conn: aiosqlite.Connection, query: str, *args) -> List[Dict[str, Any]]:
    async with conn.execute(query, args) as cursor:
        rows = await cursor.fetchall()
    return [dict(row) for row in rows]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Initialize singleton
db = DatabaseManager()
