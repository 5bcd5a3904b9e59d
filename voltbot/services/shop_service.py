# services/shop_service.py
from datetime import datetime
from typing import List, Optional

from .base_service import BaseService
from .economy_service import EconomyService
from .errors import (
    DuplicateNameError,
    InsufficientQuantityError,
    InvalidArgumentError,
    ItemNotFoundError,
    NothingToRedeemError,
    OutOfStockError,
    RaffleClosedError,
)
from ..db.database import fetch_one, utcnow
from ..utils.constants import RaffleConfig


class ShopService(BaseService):
    """
    Catalog CRUD plus every inventory movement.
    Purchases run the wallet debit, inventory credit and stock decrement
    in one transaction.
    """

    def __init__(self, database=None, rng=None, economy: Optional[EconomyService] = None):
        super().__init__("shop", database, rng)
        self.economy = economy or EconomyService(self.db, self.rng)

    # -------------------------------------------------------------------------
    # INVENTORY PRIMITIVES (run inside an open transaction)
    # -------------------------------------------------------------------------

    @staticmethod
    async def find_item(conn, name: str) -> Optional[dict]:
        return await fetch_one(conn, "SELECT * FROM items WHERE name = ?", name)

    @staticmethod
    async def held_quantity(conn, user_id: str, item_id: int) -> int:
        row = await fetch_one(
            conn,
            "SELECT quantity FROM inventory WHERE user_id = ? AND item_id = ?",
            str(user_id), item_id,
        )
        return row["quantity"] if row else 0

    async def grant(self, conn, user_id: str, item_id: int, quantity: int = 1) -> int:
        """Adds units to a holding and returns the new quantity."""
        self._require_positive("quantity", quantity)
        await conn.execute(
            """INSERT INTO inventory (user_id, item_id, quantity) VALUES (?, ?, ?)
               ON CONFLICT(user_id, item_id) DO UPDATE SET quantity = quantity + excluded.quantity""",
            (str(user_id), item_id, quantity),
        )
        return await self.held_quantity(conn, user_id, item_id)

    @staticmethod
    async def _ensure_ticket_open(conn, item_name: str, now: datetime):
        """Raffle tickets stop selling once their raffle's end time has passed."""
        raffle = await fetch_one(
            conn,
            "SELECT raffle_id, name, ends_at FROM raffles WHERE kind = 'raffle' AND name || ' ' || ? = ?",
            RaffleConfig.TICKET_SUFFIX, item_name,
        )
        if raffle and datetime.fromisoformat(raffle["ends_at"]) <= now:
            raise RaffleClosedError(raffle["raffle_id"], raffle["name"])

    async def take(self, conn, user_id: str, item: dict, quantity: int = 1) -> int:
        """
        Removes units from a holding and returns what is left.
        The row is deleted when it reaches zero.
        """
        self._require_positive("quantity", quantity)
        held = await self.held_quantity(conn, user_id, item["item_id"])
        if held < quantity:
            raise InsufficientQuantityError(item["name"], needed=quantity, available=held)

        remaining = held - quantity
        if remaining == 0:
            await conn.execute(
                "DELETE FROM inventory WHERE user_id = ? AND item_id = ?",
                (str(user_id), item["item_id"]),
            )
        else:
            await conn.execute(
                "UPDATE inventory SET quantity = ? WHERE user_id = ? AND item_id = ?",
                (remaining, str(user_id), item["item_id"]),
            )
        return remaining

    # -------------------------------------------------------------------------
    # CATALOG
    # -------------------------------------------------------------------------

    async def add_shop_item(self, price: int, name: str, description: str = "", quantity: int = 1) -> dict:
        """
        Lists a new item. A name that exists but was removed is relisted
        with the new price, description and stock.
        """
        self._require_positive("price", price)
        self._require_positive("quantity", quantity)
        if not name or not name.strip():
            raise InvalidArgumentError("Item name must not be empty")

        async with self.db.transaction() as conn:
            existing = await self.find_item(conn, name)
            if existing and existing["is_available"]:
                raise DuplicateNameError(name)

            if existing:
                await conn.execute(
                    """UPDATE items SET price = ?, description = ?, quantity = ?, is_available = 1
                       WHERE item_id = ?""",
                    (price, description or "", quantity, existing["item_id"]),
                )
                action = "Relisted"
            else:
                await conn.execute(
                    "INSERT INTO items (name, description, price, quantity) VALUES (?, ?, ?, ?)",
                    (name, description or "", price, quantity),
                )
                action = "Listed"
            item = await self.find_item(conn, name)

        self.logger.info(f"{action} shop item '{name}' at {price} (stock {quantity})")
        return item

    async def remove_shop_item(self, name: str) -> bool:
        """Marks an item unavailable. Returns False when nothing was listed under that name."""
        changed = await self.db.execute(
            "UPDATE items SET is_available = 0 WHERE name = ? AND is_available = 1", name
        )
        if changed:
            self.logger.info(f"Removed shop item '{name}'")
        return bool(changed)

    async def get_shop_item_by_name(self, name: str) -> Optional[dict]:
        return await self.db.fetch_one("SELECT * FROM items WHERE name = ?", name)

    async def get_shop_items(self) -> List[dict]:
        return await self.db.fetch_all(
            "SELECT * FROM items WHERE is_available = 1 ORDER BY price ASC, name ASC"
        )

    # -------------------------------------------------------------------------
    # BUYING & HOLDINGS
    # -------------------------------------------------------------------------

    async def purchase(self, user_id: str, item_name: str) -> dict:
        """Buys one unit of an available, in-stock item."""
        async with self.db.transaction() as conn:
            item = await self.find_item(conn, item_name)
            if not item or not item["is_available"]:
                raise ItemNotFoundError(item_name)
            if item["quantity"] <= 0:
                raise OutOfStockError(item_name)
            await self._ensure_ticket_open(conn, item_name, utcnow())

            wallet = await self.economy.apply_delta(conn, user_id, "wallet", -item["price"])
            owned = await self.grant(conn, user_id, item["item_id"], 1)
            await conn.execute(
                "UPDATE items SET quantity = quantity - 1 WHERE item_id = ?", (item["item_id"],)
            )

        self.logger.info(f"{user_id} bought '{item_name}' for {item['price']}")
        return {
            "item_id": item["item_id"],
            "name": item["name"],
            "price": item["price"],
            "wallet": wallet,
            "owned": owned,
            "stock": item["quantity"] - 1,
        }

    async def transfer_item(self, from_id: str, to_id: str, item_name: str, quantity: int = 1) -> dict:
        self._require_positive("quantity", quantity)
        async with self.db.transaction() as conn:
            item = await self.find_item(conn, item_name)
            if not item:
                raise ItemNotFoundError(item_name)

            sender_left = await self.take(conn, from_id, item, quantity)
            receiver_has = await self.grant(conn, to_id, item["item_id"], quantity)

        self.logger.info(f"Item transfer {from_id} -> {to_id}: {quantity}x '{item_name}'")
        return {"name": item["name"], "quantity": quantity, "sender_left": sender_left, "receiver_has": receiver_has}

    async def redeem_item(self, user_id: str, item_name: str) -> dict:
        """Consumes one unit. Nothing is refunded."""
        async with self.db.transaction() as conn:
            item = await self.find_item(conn, item_name)
            if not item:
                raise ItemNotFoundError(item_name)
            if await self.held_quantity(conn, user_id, item["item_id"]) <= 0:
                raise NothingToRedeemError(item_name)
            remaining = await self.take(conn, user_id, item, 1)

        self.logger.info(f"{user_id} redeemed '{item_name}' ({remaining} left)")
        return {"name": item["name"], "remaining": remaining}

    async def reward_item(self, user_id: str, item_name: str, quantity: int = 1) -> dict:
        """Admin grant: no payment, shop stock untouched."""
        self._require_positive("quantity", quantity)
        async with self.db.transaction() as conn:
            item = await self.find_item(conn, item_name)
            if not item:
                raise ItemNotFoundError(item_name)
            owned = await self.grant(conn, user_id, item["item_id"], quantity)

        self.logger.info(f"Rewarded {user_id} with {quantity}x '{item_name}'")
        return {"name": item["name"], "quantity": quantity, "owned": owned}

    async def get_inventory(self, user_id: str) -> List[dict]:
        return await self.db.fetch_all(
            """SELECT i.item_id, i.name, i.description, inv.quantity
               FROM inventory inv
               JOIN items i ON i.item_id = inv.item_id
               WHERE inv.user_id = ?
               ORDER BY i.name ASC""",
            str(user_id),
        )
