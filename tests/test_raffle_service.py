import random
from datetime import timedelta

import pytest

from voltbot.db.database import utcnow
from voltbot.services.errors import (
    DuplicateNameError,
    InvalidPrizeError,
    RaffleClosedError,
    RaffleNotFoundError,
    VoltError,
)
from voltbot.services.raffle_service import (
    GIVEAWAY,
    RAFFLE,
    CurrencyPrize,
    MAX_CURRENCY_PRIZE,
    ItemPrize,
    parse_prize,
    ticket_name,
)
from voltbot.utils.rng import RandomSource

# entries and ticket sales close at ends_at, so instances are created relative to the real clock
NOW = utcnow().replace(microsecond=0)
HOUR = 3600


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("500", CurrencyPrize(500)),
        (" 42 ", CurrencyPrize(42)),
        ("Golden Pizza", ItemPrize("Golden Pizza")),
        ("12 Roses", ItemPrize("12 Roses")),
    ],
)
def test_parse_prize(raw, expected):
    assert parse_prize(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "0", None])
def test_parse_prize_rejects_empty_and_zero(raw):
    with pytest.raises(InvalidPrizeError):
        parse_prize(raw)


def test_parse_prize_caps_currency_at_storage_limit():
    assert parse_prize(str(MAX_CURRENCY_PRIZE)) == CurrencyPrize(MAX_CURRENCY_PRIZE)

    with pytest.raises(InvalidPrizeError):
        parse_prize(str(MAX_CURRENCY_PRIZE + 1))
    with pytest.raises(InvalidPrizeError):
        parse_prize("99999999999999999999")


def test_superscript_digits_name_an_item():
    assert parse_prize("²") == ItemPrize("²")


async def test_oversized_prize_is_rejected_at_creation(raffles):
    with pytest.raises(InvalidPrizeError):
        await raffles.create_giveaway("Huge", "99999999999999999999", 1, HOUR, now=NOW)

    assert await raffles.get_active() == []


async def _giveaway_with_entrants(raffles, name, entrants, **kwargs):
    giveaway = await raffles.create_giveaway(name, kwargs.pop("prize", "100"), kwargs.pop("winners", 1),
                                             HOUR, now=NOW, **kwargs)
    for user_id in entrants:
        await raffles.enter_giveaway(giveaway.raffle_id, user_id)
    return giveaway


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

async def test_create_giveaway(raffles):
    giveaway = await raffles.create_giveaway("Weekly", "250", 2, HOUR, repeat=1, channel_id=77, now=NOW)

    assert giveaway.kind == GIVEAWAY
    assert giveaway.prize == CurrencyPrize(250)
    assert giveaway.ends_at == NOW + timedelta(hours=1)
    assert giveaway.channel_id == "77"

    stored = await raffles.get_raffle(giveaway.raffle_id)
    assert stored.prize == CurrencyPrize(250)
    assert stored.ends_at == giveaway.ends_at
    assert stored.repeat_count == 1


async def test_item_prize_must_exist(raffles, shop):
    with pytest.raises(InvalidPrizeError):
        await raffles.create_giveaway("Loot", "Dragon Egg", 1, HOUR, now=NOW)

    await shop.add_shop_item(999, "Dragon Egg")
    giveaway = await raffles.create_giveaway("Loot", "Dragon Egg", 1, HOUR, now=NOW)
    assert giveaway.prize == ItemPrize("Dragon Egg")


async def test_duplicate_active_name(raffles):
    await raffles.create_giveaway("Weekly", "10", 1, HOUR, now=NOW)

    with pytest.raises(DuplicateNameError):
        await raffles.create_giveaway("Weekly", "20", 1, HOUR, now=NOW)


@pytest.mark.parametrize(
    "winners,duration,repeat",
    [(0, HOUR, 0), (1, 0, 0), (1, HOUR, -1)],
)
async def test_creation_validates_numbers(raffles, winners, duration, repeat):
    with pytest.raises(ValueError):
        await raffles.create_giveaway("Bad", "10", winners, duration, repeat=repeat, now=NOW)


async def test_create_raffle_lists_a_ticket(raffles, shop):
    raffle = await raffles.create_raffle("Spring", "1000", 1, HOUR, ticket_cost=25, ticket_quantity=10, now=NOW)

    ticket = await shop.get_shop_item_by_name(ticket_name("Spring"))
    assert raffle.kind == RAFFLE
    assert ticket["name"] == "Spring Raffle Ticket"
    assert ticket["price"] == 25
    assert ticket["quantity"] == 10


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------

async def test_enter_and_leave_giveaway(raffles):
    giveaway = await raffles.create_giveaway("Weekly", "10", 1, HOUR, now=NOW)

    assert await raffles.enter_giveaway(giveaway.raffle_id, "alice") is True
    assert await raffles.enter_giveaway(giveaway.raffle_id, "alice") is False
    assert await raffles.enter_giveaway(giveaway.raffle_id, "bob") is True
    assert await raffles.get_entrants(giveaway.raffle_id) == ["alice", "bob"]

    assert await raffles.leave_giveaway(giveaway.raffle_id, "alice") is True
    assert await raffles.leave_giveaway(giveaway.raffle_id, "alice") is False
    assert await raffles.get_entrants(giveaway.raffle_id) == ["bob"]


async def test_raffle_entries_come_from_tickets(raffles):
    raffle = await raffles.create_raffle("Spring", "10", 1, HOUR, 5, 10, now=NOW)

    with pytest.raises(ValueError):
        await raffles.enter_giveaway(raffle.raffle_id, "alice")


async def test_entries_close_at_the_end_time(raffles):
    giveaway = await raffles.create_giveaway("Flash", "10", 1, 60, now=NOW - timedelta(hours=1))

    with pytest.raises(RaffleClosedError) as exc:
        await raffles.enter_giveaway(giveaway.raffle_id, "late")

    assert isinstance(exc.value, VoltError)
    assert exc.value.raffle_id == giveaway.raffle_id
    assert await raffles.get_entrants(giveaway.raffle_id) == []


async def test_entry_cutoff_is_inclusive(raffles):
    giveaway = await raffles.create_giveaway("Weekly", "10", 1, HOUR, now=NOW)
    ends_at = NOW + timedelta(hours=1)

    assert await raffles.enter_giveaway(giveaway.raffle_id, "early", now=ends_at - timedelta(seconds=1))
    with pytest.raises(RaffleClosedError):
        await raffles.enter_giveaway(giveaway.raffle_id, "late", now=ends_at)

    assert await raffles.get_entrants(giveaway.raffle_id) == ["early"]


async def test_tickets_stop_selling_after_the_raffle_ends(raffles, shop, economy):
    raffle = await raffles.create_raffle("Expired", "500", 1, 60, 20, 5, now=NOW - timedelta(hours=2))
    await economy.update_wallet("A", 100)

    with pytest.raises(RaffleClosedError):
        await shop.purchase("A", ticket_name("Expired"))

    assert (await economy.get_balances("A"))["wallet"] == 100
    assert (await shop.get_shop_item_by_name(ticket_name("Expired")))["quantity"] == 5
    assert await raffles.get_entrants(raffle.raffle_id) == []


async def test_ordinary_items_are_not_tied_to_raffles(raffles, shop, economy):
    await raffles.create_raffle("Old", "500", 1, 60, 20, 5, now=NOW - timedelta(hours=2))
    await shop.add_shop_item(10, "Old Raffle")
    await economy.update_wallet("A", 100)

    bought = await shop.purchase("A", "Old Raffle")

    assert bought["wallet"] == 90


async def test_message_lookup(raffles):
    giveaway = await raffles.create_giveaway("Weekly", "10", 1, HOUR, now=NOW)

    assert await raffles.set_message(giveaway.raffle_id, 55, 9001) is True

    found = await raffles.get_raffle_by_message(9001)
    assert found.raffle_id == giveaway.raffle_id
    assert found.channel_id == "55"
    assert await raffles.get_raffle_by_message(1) is None


# ---------------------------------------------------------------------------
# Conclusion
# ---------------------------------------------------------------------------

async def test_two_winners_out_of_three(raffles, database, economy):
    raffles.rng = RandomSource(random.Random(3))
    seen = set()

    for round_no in range(20):
        giveaway = await _giveaway_with_entrants(raffles, "Draw", ["A", "B", "C"], winners=2)
        result = await raffles.conclude(giveaway.raffle_id, now=NOW)

        winners = result["winners"]
        assert len(winners) == 2
        assert len(set(winners)) == 2
        assert set(winners) <= {"A", "B", "C"}
        seen.update(winners)

    assert seen == {"A", "B", "C"}
    # 20 rounds x 2 winners x 100 each
    assert await economy.total_money() == 4000


async def test_currency_prize_goes_to_every_winner_in_full(raffles, economy, rng):
    giveaway = await _giveaway_with_entrants(raffles, "Weekly", ["A", "B", "C"], prize="300", winners=2)
    rng.picks.append(["C", "A"])

    result = await raffles.conclude(giveaway.raffle_id, now=NOW)

    assert result["winners"] == ["C", "A"]
    assert result["awarded"] is True
    assert (await economy.get_balances("A"))["wallet"] == 300
    assert (await economy.get_balances("B"))["wallet"] == 0
    assert (await economy.get_balances("C"))["wallet"] == 300


async def test_item_prize_grants_one_unit_each(raffles, shop):
    await shop.add_shop_item(50, "Trophy", quantity=1)
    giveaway = await _giveaway_with_entrants(raffles, "Cup", ["A", "B"], prize="Trophy", winners=5)

    result = await raffles.conclude(giveaway.raffle_id, now=NOW)

    assert sorted(result["winners"]) == ["A", "B"]
    for user in ("A", "B"):
        assert [(row["name"], row["quantity"]) for row in await shop.get_inventory(user)] == [("Trophy", 1)]
    # stock is not consumed by prizes
    assert (await shop.get_shop_item_by_name("Trophy"))["quantity"] == 1


async def test_missing_prize_item_is_reported(raffles, shop, database):
    await shop.add_shop_item(50, "Trophy")
    giveaway = await _giveaway_with_entrants(raffles, "Cup", ["A"], prize="Trophy")
    await database.execute("DELETE FROM items WHERE name = ?", "Trophy")

    result = await raffles.conclude(giveaway.raffle_id, now=NOW)

    assert result["winners"] == ["A"]
    assert result["awarded"] is False
    assert await raffles.get_raffle(giveaway.raffle_id) is None


async def test_no_entrants(raffles):
    giveaway = await raffles.create_giveaway("Quiet", "10", 1, HOUR, now=NOW)

    result = await raffles.conclude(giveaway.raffle_id, now=NOW)

    assert result["winners"] == []
    assert result["next"] is None
    assert await raffles.get_active() == []


async def test_conclusion_deletes_entries(raffles, database):
    giveaway = await _giveaway_with_entrants(raffles, "Weekly", ["A", "B"])

    await raffles.conclude(giveaway.raffle_id, now=NOW)

    assert await database.fetch_all("SELECT * FROM raffle_entries") == []
    with pytest.raises(RaffleNotFoundError):
        await raffles.conclude(giveaway.raffle_id, now=NOW)


async def test_ticket_raffle_end_to_end(raffles, shop, economy):
    raffle = await raffles.create_raffle("Spring", "500", 1, HOUR, 20, 3, now=NOW)
    for user in ("A", "B"):
        await economy.update_wallet(user, 100)
        await shop.purchase(user, ticket_name("Spring"))
    await shop.purchase("A", ticket_name("Spring"))

    assert await raffles.get_entrants(raffle.raffle_id) == ["A", "B"]

    result = await raffles.conclude(raffle.raffle_id, now=NOW)

    [winner] = result["winners"]
    assert winner in {"A", "B"}
    assert await shop.get_shop_item_by_name(ticket_name("Spring")) is None
    assert await shop.get_inventory("A") == []
    assert await shop.get_inventory("B") == []
    spent = {"A": 40, "B": 20}
    assert (await economy.get_balances(winner))["wallet"] == 100 - spent[winner] + 500


async def test_repeat_starts_a_fresh_instance(raffles):
    giveaway = await _giveaway_with_entrants(raffles, "Daily", ["A"], repeat=2)
    later = NOW + timedelta(hours=2)

    result = await raffles.conclude(giveaway.raffle_id, now=later)

    successor = result["next"]
    assert successor.name == "Daily"
    assert successor.repeat_count == 1
    assert successor.ends_at == later + timedelta(hours=1)
    assert successor.raffle_id != giveaway.raffle_id
    # the new instance starts with no entrants
    assert await raffles.get_entrants(successor.raffle_id) == []

    final = await raffles.conclude(successor.raffle_id, now=later)
    assert final["next"].repeat_count == 0
    last = await raffles.conclude(final["next"].raffle_id, now=later)
    assert last["next"] is None


async def test_repeating_raffle_restocks_tickets(raffles, shop, economy):
    raffle = await raffles.create_raffle("Weekly", "50", 1, HOUR, 10, 2, repeat=1, now=NOW)
    await economy.update_wallet("A", 10)
    await shop.purchase("A", ticket_name("Weekly"))

    result = await raffles.conclude(raffle.raffle_id, now=NOW)

    ticket = await shop.get_shop_item_by_name(ticket_name("Weekly"))
    assert result["next"].kind == RAFFLE
    assert ticket["quantity"] == 2
    assert await shop.get_inventory("A") == []


async def test_conclude_due_only_touches_expired(raffles):
    soon = await raffles.create_giveaway("Soon", "10", 1, 60, now=NOW)
    later = await raffles.create_giveaway("Later", "10", 1, 10 * HOUR, now=NOW)

    results = await raffles.conclude_due(now=NOW + timedelta(minutes=5))

    assert [r["raffle"].raffle_id for r in results] == [soon.raffle_id]
    assert [r.raffle_id for r in await raffles.get_active()] == [later.raffle_id]


async def test_get_active_filters_by_kind(raffles):
    await raffles.create_giveaway("G", "10", 1, HOUR, now=NOW)
    await raffles.create_raffle("R", "10", 1, HOUR, 5, 5, now=NOW)

    assert [r.name for r in await raffles.get_active(GIVEAWAY)] == ["G"]
    assert [r.name for r in await raffles.get_active(RAFFLE)] == ["R"]
    assert len(await raffles.get_active()) == 2


async def test_conclude_due_skips_a_failing_instance(raffles, database, economy):
    broken = await _giveaway_with_entrants(raffles, "Broken", ["A"])
    normal = await _giveaway_with_entrants(raffles, "Normal", ["B"])
    # too large for an INTEGER wallet column
    await database.execute(
        "UPDATE raffles SET prize_value = ? WHERE raffle_id = ?", "99999999999999999999", broken.raffle_id
    )

    results = await raffles.conclude_due(now=NOW + timedelta(hours=2))

    assert [r["raffle"].raffle_id for r in results] == [normal.raffle_id]
    assert [r.raffle_id for r in await raffles.get_active()] == [broken.raffle_id]
    assert await raffles.get_entrants(broken.raffle_id) == ["A"]
    assert (await economy.get_balances("A"))["wallet"] == 0
    assert (await economy.get_balances("B"))["wallet"] == 100
