# services/base_service.py
import logging
from abc import ABC
from typing import Optional

from .errors import InvalidArgumentError
from ..db.database import DatabaseManager, db as default_db
from ..utils.rng import RandomSource


class BaseService(ABC):
    """
    The abstract base class for all logical services.
    Provides standard access to the Database, the Random Source and a Logger.
    """
    def __init__(
        self,
        service_name: str,
        database: Optional[DatabaseManager] = None,
        rng: Optional[RandomSource] = None,
    ):
        self.db = database or default_db
        self.rng = rng or RandomSource()
        self.logger = logging.getLogger(f"VoltBot.services.{service_name}")
        self.logger.debug(f"Service '{service_name}' initialized.")

    async def _log_error(self, method: str, error: Exception):
        """Standardized error logging."""
        self.logger.error(f"[{method}] Critical Error: {error}", exc_info=True)

    @staticmethod
    def _require_positive(name: str, value: int):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")

    async def _ensure_record(self, conn, table: str, key_col: str, key_val, defaults: dict) -> bool:
        """
        Generic helper to ensure a row exists in any table.
        Useful for initializing user states lazily.
        Returns True when a row was created.
        """
        cols = ", ".join([key_col, *defaults.keys()])
        placeholders = ", ".join(["?"] * (len(defaults) + 1))
        cursor = await conn.execute(
            f"INSERT OR IGNORE INTO {table} ({cols}) VALUES ({placeholders})",
            (key_val, *defaults.values()),
        )
        created = cursor.rowcount > 0
        if created:
            self.logger.debug(f"Created new record in {table} for ID {key_val}")
        return created
