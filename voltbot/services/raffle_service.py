# services/raffle_service.py
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Union

from .base_service import BaseService
from .economy_service import EconomyService
from .errors import (
    DuplicateNameError,
    InvalidArgumentError,
    InvalidPrizeError,
    RaffleClosedError,
    RaffleNotFoundError,
)
from .shop_service import ShopService
from ..db.database import fetch_all, fetch_one, utcnow
from ..utils.constants import RaffleConfig

GIVEAWAY = "giveaway"
RAFFLE = "raffle"
MAX_CURRENCY_PRIZE = 2**63 - 1  # SQLite INTEGER


@dataclass(frozen=True)
class CurrencyPrize:
    amount: int
    kind = "currency"

    @property
    def value(self) -> str:
        return str(self.amount)


@dataclass(frozen=True)
class ItemPrize:
    name: str
    kind = "item"

    @property
    def value(self) -> str:
        return self.name


Prize = Union[CurrencyPrize, ItemPrize]


def parse_prize(raw) -> Prize:
    """
    An all-digit string is a currency amount; anything else names a shop item.
    Item existence is checked by the service.
    """
    if isinstance(raw, (CurrencyPrize, ItemPrize)):
        return raw
    text = str(raw or "").strip()
    if not text:
        raise InvalidPrizeError(str(raw))
    if text.isdecimal():
        amount = int(text)
        if amount <= 0 or amount > MAX_CURRENCY_PRIZE:
            raise InvalidPrizeError(text)
        return CurrencyPrize(amount)
    return ItemPrize(text)


def ticket_name(raffle_name: str) -> str:
    return f"{raffle_name} {RaffleConfig.TICKET_SUFFIX}"


@dataclass
class Raffle:
    raffle_id: int
    kind: str
    name: str
    prize: Prize
    winners: int
    duration_seconds: int
    repeat_count: int
    ends_at: datetime
    created_at: datetime
    channel_id: Optional[str] = None
    message_id: Optional[str] = None
    ticket_cost: Optional[int] = None
    ticket_quantity: Optional[int] = None

    @property
    def ticket_name(self) -> Optional[str]:
        return ticket_name(self.name) if self.kind == RAFFLE else None

    def is_due(self, now: datetime) -> bool:
        return self.ends_at <= now

    @classmethod
    def from_row(cls, row: dict) -> "Raffle":
        if row["prize_kind"] == CurrencyPrize.kind:
            prize = CurrencyPrize(int(row["prize_value"]))
        else:
            prize = ItemPrize(row["prize_value"])
        return cls(
            raffle_id=row["raffle_id"],
            kind=row["kind"],
            name=row["name"],
            prize=prize,
            winners=row["winners"],
            duration_seconds=row["duration_seconds"],
            repeat_count=row["repeat_count"],
            ends_at=datetime.fromisoformat(row["ends_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            channel_id=row["channel_id"],
            message_id=row["message_id"],
            ticket_cost=row["ticket_cost"],
            ticket_quantity=row["ticket_quantity"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.raffle_id,
            "kind": self.kind,
            "name": self.name,
            "prize_kind": self.prize.kind,
            "prize": self.prize.value,
            "winners": self.winners,
            "repeat": self.repeat_count,
            "ends_at": self.ends_at.isoformat(),
            "channel_id": self.channel_id,
            "ticket_cost": self.ticket_cost,
            "ticket_quantity": self.ticket_quantity,
        }


class RaffleService(BaseService):
    """
    Timed giveaways (free entry) and raffles (entry by ticket item).

    Every instance is a stored row with a due time; `conclude_due` is polled
    by the bot, so pending draws survive a restart.
    """

    def __init__(self, database=None, rng=None, economy: Optional[EconomyService] = None,
                 shop: Optional[ShopService] = None):
        super().__init__("raffles", database, rng)
        self.economy = economy or EconomyService(self.db, self.rng)
        self.shop = shop or ShopService(self.db, self.rng, economy=self.economy)

    # -------------------------------------------------------------------------
    # CREATION
    # -------------------------------------------------------------------------

    async def _validate_prize(self, conn, raw) -> Prize:
        prize = parse_prize(raw)
        if isinstance(prize, ItemPrize):
            item = await self.shop.find_item(conn, prize.name)
            if not item or not item["is_available"]:
                raise InvalidPrizeError(prize.name)
        return prize

    async def _insert(self, conn, kind: str, name: str, prize: Prize, winners: int, duration_seconds: int,
                      repeat: int, now: datetime, channel_id=None, ticket_cost=None, ticket_quantity=None) -> Raffle:
        ends_at = now + timedelta(seconds=duration_seconds)
        cursor = await conn.execute(
            """INSERT INTO raffles (kind, name, channel_id, prize_kind, prize_value, winners,
                                    ticket_cost, ticket_quantity, duration_seconds, repeat_count,
                                    ends_at, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (kind, name, None if channel_id is None else str(channel_id), prize.kind, prize.value, winners,
             ticket_cost, ticket_quantity, duration_seconds, repeat, ends_at.isoformat(), now.isoformat()),
        )

        if kind == RAFFLE:
            await conn.execute(
                """INSERT INTO items (name, description, price, quantity, is_available)
                   VALUES (?, ?, ?, ?, 1)
                   ON CONFLICT(name) DO UPDATE SET
                       description = excluded.description,
                       price = excluded.price,
                       quantity = excluded.quantity,
                       is_available = 1""",
                (ticket_name(name), f"Entry ticket for the {name} raffle", ticket_cost, ticket_quantity),
            )

        return Raffle(
            raffle_id=cursor.lastrowid,
            kind=kind,
            name=name,
            prize=prize,
            winners=winners,
            duration_seconds=duration_seconds,
            repeat_count=repeat,
            ends_at=ends_at,
            created_at=now,
            channel_id=None if channel_id is None else str(channel_id),
            ticket_cost=ticket_cost,
            ticket_quantity=ticket_quantity,
        )

    async def _create(self, kind: str, name: str, prize, winners: int, duration_seconds: int, repeat: int,
                      channel_id=None, ticket_cost=None, ticket_quantity=None,
                      now: Optional[datetime] = None) -> Raffle:
        self._require_positive("winners", winners)
        self._require_positive("duration_seconds", duration_seconds)
        if isinstance(repeat, bool) or not isinstance(repeat, int) or repeat < 0:
            raise InvalidArgumentError(f"repeat must be a non-negative integer, got {repeat!r}")
        if not name or not name.strip():
            raise InvalidArgumentError(f"{kind.title()} name must not be empty")
        name = name.strip()
        now = now or utcnow()

        async with self.db.transaction() as conn:
            prize = await self._validate_prize(conn, prize)
            clash = await fetch_one(conn, "SELECT raffle_id FROM raffles WHERE kind = ? AND name = ?", kind, name)
            if clash:
                raise DuplicateNameError(name)
            if kind == RAFFLE:
                ticket = await self.shop.find_item(conn, ticket_name(name))
                if ticket and ticket["is_available"]:
                    raise DuplicateNameError(ticket_name(name))

            raffle = await self._insert(conn, kind, name, prize, winners, duration_seconds, repeat, now,
                                        channel_id, ticket_cost, ticket_quantity)

        self.logger.info(
            f"Created {kind} #{raffle.raffle_id} '{name}': prize {prize.value}, {winners} winner(s), "
            f"ends {raffle.ends_at.isoformat()}, repeat {repeat}"
        )
        return raffle

    async def create_giveaway(self, name: str, prize, winners: int, duration_seconds: int, repeat: int = 0,
                              channel_id=None, now: Optional[datetime] = None) -> Raffle:
        return await self._create(GIVEAWAY, name, prize, winners, duration_seconds, repeat,
                                  channel_id=channel_id, now=now)

    async def create_raffle(self, name: str, prize, winners: int, duration_seconds: int, ticket_cost: int,
                            ticket_quantity: int, repeat: int = 0, channel_id=None,
                            now: Optional[datetime] = None) -> Raffle:
        """Also lists '<name> Raffle Ticket' in the shop; holders of it are the entrants."""
        self._require_positive("ticket_cost", ticket_cost)
        self._require_positive("ticket_quantity", ticket_quantity)
        return await self._create(RAFFLE, name, prize, winners, duration_seconds, repeat,
                                  channel_id=channel_id, ticket_cost=ticket_cost,
                                  ticket_quantity=ticket_quantity, now=now)

    # -------------------------------------------------------------------------
    # ENTRIES
    # -------------------------------------------------------------------------

    async def _load(self, conn, raffle_id: int) -> Raffle:
        row = await fetch_one(conn, "SELECT * FROM raffles WHERE raffle_id = ?", raffle_id)
        if not row:
            raise RaffleNotFoundError(raffle_id)
        return Raffle.from_row(row)

    async def _giveaway(self, conn, raffle_id: int) -> Raffle:
        raffle = await self._load(conn, raffle_id)
        if raffle.kind != GIVEAWAY:
            raise InvalidArgumentError("Raffle entries come from ticket purchases, not reactions")
        return raffle

    async def enter_giveaway(self, raffle_id: int, user_id: str, now: Optional[datetime] = None) -> bool:
        """
        Returns False when the user was already entered.
        Raises RaffleClosedError once the end time has passed.
        """
        now = now or utcnow()
        async with self.db.transaction() as conn:
            giveaway = await self._giveaway(conn, raffle_id)
            if giveaway.is_due(now):
                raise RaffleClosedError(raffle_id, giveaway.name)
            cursor = await conn.execute(
                "INSERT OR IGNORE INTO raffle_entries (raffle_id, user_id, entered_at) VALUES (?, ?, ?)",
                (raffle_id, str(user_id), utcnow().isoformat()),
            )
        return cursor.rowcount > 0

    async def leave_giveaway(self, raffle_id: int, user_id: str) -> bool:
        async with self.db.transaction() as conn:
            await self._giveaway(conn, raffle_id)
            cursor = await conn.execute(
                "DELETE FROM raffle_entries WHERE raffle_id = ? AND user_id = ?", (raffle_id, str(user_id))
            )
        return cursor.rowcount > 0

    async def _entrants(self, conn, raffle: Raffle) -> List[str]:
        if raffle.kind == GIVEAWAY:
            rows = await fetch_all(
                conn,
                "SELECT DISTINCT user_id FROM raffle_entries WHERE raffle_id = ? ORDER BY entered_at, user_id",
                raffle.raffle_id,
            )
        else:
            rows = await fetch_all(
                conn,
                """SELECT DISTINCT inv.user_id FROM inventory inv
                   JOIN items i ON i.item_id = inv.item_id
                   WHERE i.name = ? AND inv.quantity > 0
                   ORDER BY inv.user_id""",
                raffle.ticket_name,
            )
        return [row["user_id"] for row in rows]

    async def get_entrants(self, raffle_id: int) -> List[str]:
        """Distinct entrant ids for either kind."""
        async with self.db.transaction() as conn:
            return await self._entrants(conn, await self._load(conn, raffle_id))

    # -------------------------------------------------------------------------
    # LOOKUPS
    # -------------------------------------------------------------------------

    async def get_raffle(self, raffle_id: int) -> Optional[Raffle]:
        row = await self.db.fetch_one("SELECT * FROM raffles WHERE raffle_id = ?", raffle_id)
        return Raffle.from_row(row) if row else None

    async def get_raffle_by_message(self, message_id) -> Optional[Raffle]:
        row = await self.db.fetch_one("SELECT * FROM raffles WHERE message_id = ?", str(message_id))
        return Raffle.from_row(row) if row else None

    async def get_active(self, kind: Optional[str] = None) -> List[Raffle]:
        if kind is None:
            rows = await self.db.fetch_all("SELECT * FROM raffles ORDER BY ends_at ASC, raffle_id ASC")
        else:
            rows = await self.db.fetch_all(
                "SELECT * FROM raffles WHERE kind = ? ORDER BY ends_at ASC, raffle_id ASC", kind
            )
        return [Raffle.from_row(row) for row in rows]

    async def set_message(self, raffle_id: int, channel_id, message_id) -> bool:
        """Records the announcement message that reactions are tracked on."""
        changed = await self.db.execute(
            "UPDATE raffles SET channel_id = ?, message_id = ? WHERE raffle_id = ?",
            str(channel_id), str(message_id), raffle_id,
        )
        return bool(changed)

    # -------------------------------------------------------------------------
    # CONCLUSION
    # -------------------------------------------------------------------------

    async def _award(self, conn, raffle: Raffle, winners: List[str]) -> bool:
        if isinstance(raffle.prize, CurrencyPrize):
            for user_id in winners:
                await self.economy.apply_delta(conn, user_id, "wallet", raffle.prize.amount)
            return True

        item = await self.shop.find_item(conn, raffle.prize.name)
        if not item:
            self.logger.warning(
                f"{raffle.kind.title()} #{raffle.raffle_id}: prize item '{raffle.prize.name}' no longer exists"
            )
            return False
        for user_id in winners:
            await self.shop.grant(conn, user_id, item["item_id"], 1)
        return True

    async def conclude(self, raffle_id: int, now: Optional[datetime] = None) -> dict:
        """
        Draws min(winners, entrants) distinct winners uniformly, pays each the
        full prize, then deletes the instance (and a raffle's ticket item).
        A repeating instance is recreated with repeat - 1.
        """
        now = now or utcnow()
        async with self.db.transaction() as conn:
            raffle = await self._load(conn, raffle_id)
            entrants = await self._entrants(conn, raffle)
            winners = self.rng.pick_without_replacement(entrants, raffle.winners)
            awarded = await self._award(conn, raffle, winners) if winners else False

            await conn.execute("DELETE FROM raffles WHERE raffle_id = ?", (raffle_id,))
            if raffle.kind == RAFFLE:
                await conn.execute("DELETE FROM items WHERE name = ?", (raffle.ticket_name,))

            successor = None
            if raffle.repeat_count > 0:
                successor = await self._insert(
                    conn, raffle.kind, raffle.name, raffle.prize, raffle.winners, raffle.duration_seconds,
                    raffle.repeat_count - 1, now, raffle.channel_id, raffle.ticket_cost, raffle.ticket_quantity,
                )

        if winners:
            self.logger.info(
                f"{raffle.kind.title()} #{raffle_id} '{raffle.name}' concluded: "
                f"winners {', '.join(winners)} each get {raffle.prize.value}"
            )
        else:
            self.logger.info(f"{raffle.kind.title()} #{raffle_id} '{raffle.name}' concluded with no entrants")
        if successor:
            self.logger.info(f"Repeating as #{successor.raffle_id} ({successor.repeat_count} repeats left)")

        return {
            "raffle": raffle,
            "entrants": entrants,
            "winners": winners,
            "prize": raffle.prize,
            "awarded": awarded,
            "next": successor,
        }

    async def conclude_due(self, now: Optional[datetime] = None) -> List[dict]:
        """Concludes every stored instance whose end time has passed."""
        now = now or utcnow()
        results = []
        for raffle in await self.get_active():
            if not raffle.is_due(now):
                continue
            try:
                results.append(await self.conclude(raffle.raffle_id, now=now))
            except RaffleNotFoundError:
                continue
            except Exception as e:
                # the row stays stored and is retried on the next poll
                await self._log_error(f"conclude_due #{raffle.raffle_id}", e)
        return results
