# services/economy_service.py
import math
from typing import Optional

from .base_service import BaseService
from .errors import InsufficientFundsError, InvalidArgumentError
from ..db.database import fetch_one
from ..utils.constants import CrimeConfig, EconomyConfig


def roll_robbery(rng, target_wallet: int) -> tuple:
    """
    Returns (succeeded, amount): a coin flip, then
    amount = floor(target_wallet * p) with p uniform in [MIN, MAX).
    """
    succeeded = rng.chance(CrimeConfig.ROB_SUCCESS_CHANCE)
    percent = rng.uniform_float(CrimeConfig.ROB_MIN_PERCENT, CrimeConfig.ROB_MAX_PERCENT)
    return succeeded, math.floor(target_wallet * percent)


class EconomyService(BaseService):
    def __init__(self, database=None, rng=None):
        super().__init__("economy", database, rng)

    # -------------------------------------------------------------------------
    # LEDGER PRIMITIVES (run inside an open transaction)
    # -------------------------------------------------------------------------

    async def ensure_account(self, conn, user_id: str) -> bool:
        """Creates the 0/0 account on first reference."""
        return await self._ensure_record(
            conn,
            table="economy",
            key_col="user_id",
            key_val=str(user_id),
            defaults={"wallet": 0, "bank": 0},
        )

    async def read_balances(self, conn, user_id: str) -> dict:
        await self.ensure_account(conn, user_id)
        row = await fetch_one(conn, "SELECT wallet, bank FROM economy WHERE user_id = ?", str(user_id))
        return {"wallet": row["wallet"], "bank": row["bank"]}

    async def apply_delta(self, conn, user_id: str, column: str, delta: int) -> int:
        """
        Adds `delta` to the wallet or bank column and returns the new value.
        A negative delta that would take the balance below zero raises
        InsufficientFundsError and leaves the row untouched.
        """
        if column not in ("wallet", "bank"):
            raise InvalidArgumentError(f"Unknown balance column: {column}")
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise InvalidArgumentError(f"delta must be an integer, got {delta!r}")

        balances = await self.read_balances(conn, user_id)
        current = balances[column]
        if current + delta < 0:
            raise InsufficientFundsError(needed=-delta, available=current, balance=column)

        if delta:
            await conn.execute(
                f"UPDATE economy SET {column} = {column} + ? WHERE user_id = ?",
                (delta, str(user_id)),
            )
        return current + delta

    # -------------------------------------------------------------------------
    # BALANCES
    # -------------------------------------------------------------------------

    async def get_balances(self, user_id: str) -> dict:
        """Returns {"wallet", "bank"}; creates the account if needed."""
        async with self.db.transaction() as conn:
            return await self.read_balances(conn, user_id)

    async def update_wallet(self, user_id: str, delta: int) -> int:
        async with self.db.transaction() as conn:
            return await self.apply_delta(conn, user_id, "wallet", delta)

    async def update_bank(self, user_id: str, delta: int) -> int:
        async with self.db.transaction() as conn:
            return await self.apply_delta(conn, user_id, "bank", delta)

    async def bake(self, user_id: str, amount: Optional[int] = None) -> int:
        """Admin money creation. Returns the amount credited."""
        amount = EconomyConfig.BAKE_AMOUNT if amount is None else amount
        self._require_positive("amount", amount)
        await self.update_wallet(user_id, amount)
        self.logger.info(f"Baked {amount} into {user_id}'s wallet")
        return amount

    # -------------------------------------------------------------------------
    # BANKING SYSTEM
    # -------------------------------------------------------------------------

    async def deposit(self, user_id: str, amount: int) -> dict:
        """Moves money from Wallet -> Bank."""
        self._require_positive("amount", amount)
        async with self.db.transaction() as conn:
            wallet = await self.apply_delta(conn, user_id, "wallet", -amount)
            bank = await self.apply_delta(conn, user_id, "bank", amount)

        self.logger.info(f"{user_id} deposited {amount}")
        return {"amount": amount, "wallet": wallet, "bank": bank}

    async def withdraw(self, user_id: str, amount: int) -> dict:
        """Moves money from Bank -> Wallet."""
        self._require_positive("amount", amount)
        async with self.db.transaction() as conn:
            bank = await self.apply_delta(conn, user_id, "bank", -amount)
            wallet = await self.apply_delta(conn, user_id, "wallet", amount)

        self.logger.info(f"{user_id} withdrew {amount}")
        return {"amount": amount, "wallet": wallet, "bank": bank}

    # -------------------------------------------------------------------------
    # TRANSFER SYSTEM
    # -------------------------------------------------------------------------

    async def transfer_from_wallet(self, from_id: str, to_id: str, amount: int) -> dict:
        """
        P2P wallet transfer. Debit and credit commit together or not at all.
        Self-transfers are allowed here and net to zero; commands forbid them.
        """
        self._require_positive("amount", amount)
        async with self.db.transaction() as conn:
            await self.ensure_account(conn, to_id)
            sender_wallet = await self.apply_delta(conn, from_id, "wallet", -amount)
            receiver_wallet = await self.apply_delta(conn, to_id, "wallet", amount)

        self.logger.info(f"Transfer {from_id} -> {to_id}: {amount}")
        return {
            "amount": amount,
            "sender_wallet": sender_wallet if from_id != to_id else receiver_wallet,
            "receiver_wallet": receiver_wallet,
        }

    async def rob_user(self, robber_id: str, target_id: str) -> dict:
        """
        Coin-flip robbery of the target's wallet.

        Success moves the amount at stake target -> robber. Failure makes the robber owe
        floor(amount * PENALTY_RATE) to the target, paid only if affordable;
        `penalty` is what was actually paid, `penalty_due` what was owed.
        """
        if str(robber_id) == str(target_id):
            raise InvalidArgumentError("A user cannot rob themselves")

        async with self.db.transaction() as conn:
            await self.ensure_account(conn, robber_id)
            target = await self.read_balances(conn, target_id)
            target_wallet = target["wallet"]

            if target_wallet <= 0:
                return {"success": False, "message": "Target has no money to rob!"}

            succeeded, amount = roll_robbery(self.rng, target_wallet)

            if succeeded:
                await self.apply_delta(conn, target_id, "wallet", -amount)
                await self.apply_delta(conn, robber_id, "wallet", amount)
                self.logger.info(f"Rob {robber_id} -> {target_id}: stole {amount}")
                return {"success": True, "outcome": "success", "amount_stolen": amount}

            penalty_due = math.floor(amount * CrimeConfig.ROB_PENALTY_RATE)
            robber = await self.read_balances(conn, robber_id)
            penalty = 0
            if penalty_due > 0 and robber["wallet"] >= penalty_due:
                await self.apply_delta(conn, robber_id, "wallet", -penalty_due)
                await self.apply_delta(conn, target_id, "wallet", penalty_due)
                penalty = penalty_due

            self.logger.info(f"Rob {robber_id} -> {target_id}: failed, penalty {penalty}/{penalty_due}")
            return {
                "success": True,
                "outcome": "fail",
                "penalty": penalty,
                "penalty_due": penalty_due,
            }

    # -------------------------------------------------------------------------
    # RANKINGS
    # -------------------------------------------------------------------------

    async def get_leaderboard(self, limit: Optional[int] = None) -> list:
        """Top accounts by wallet + bank, descending; ties keep storage order."""
        limit = EconomyConfig.LEADERBOARD_SIZE if limit is None else limit
        self._require_positive("limit", limit)
        rows = await self.db.fetch_all(
            """SELECT user_id, wallet, bank, (wallet + bank) AS total
               FROM economy
               ORDER BY total DESC, rowid ASC
               LIMIT ?""",
            limit,
        )
        return rows

    async def total_money(self) -> int:
        """Sum of every wallet and bank; used by audits and tests."""
        row = await self.db.fetch_one("SELECT COALESCE(SUM(wallet + bank), 0) AS total FROM economy")
        return row["total"]
