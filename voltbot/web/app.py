"""
VoltBot Web Dashboard
Read-only aiohttp JSON API over the bot's economy store.
Runs alongside the bot in the same process, sharing the services.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from aiohttp import web

from ..config import VoltConfig
from ..utils.constants import EconomyConfig

logger = logging.getLogger("VoltBot.Dashboard")


def _user_tag(bot, user_id: str) -> Optional[str]:
    get_user = getattr(bot, "get_user", None)
    if get_user is None:
        return None
    try:
        user = get_user(int(user_id))
    except (TypeError, ValueError):
        return None
    return str(user) if user else None


def _limit(request: web.Request, default: int, maximum: int = 100) -> int:
    try:
        value = int(request.query.get("limit", default))
    except ValueError:
        raise web.HTTPBadRequest(text="limit must be an integer")
    return max(1, min(value, maximum))


# ═══════════════════════════════════════════════════════════════
# API
# ═══════════════════════════════════════════════════════════════

async def index(request: web.Request) -> web.Response:
    return web.json_response({
        "name": "VoltBot",
        "currency": {"name": EconomyConfig.CURRENCY_NAME, "symbol": EconomyConfig.CURRENCY_SYMBOL},
        "endpoints": [
            "/api/leaderboard",
            "/api/shop",
            "/api/jobs",
            "/api/giveaways",
            "/api/giveaways/active",
            "/api/health",
        ],
    })


async def api_health(request: web.Request) -> web.Response:
    bot = request.app["bot"]
    is_ready = getattr(bot, "is_ready", None)
    return web.json_response({
        "ok": True,
        "ready": bool(is_ready()) if callable(is_ready) else None,
        "time": datetime.now(timezone.utc).isoformat(),
    })


async def api_leaderboard(request: web.Request) -> web.Response:
    bot = request.app["bot"]
    rows = await bot.economy.get_leaderboard(_limit(request, EconomyConfig.LEADERBOARD_SIZE))
    leaderboard = [
        {
            "rank": rank,
            "user_id": row["user_id"],
            "user_tag": _user_tag(bot, row["user_id"]),
            "wallet": row["wallet"],
            "bank": row["bank"],
            "total": row["total"],
        }
        for rank, row in enumerate(rows, start=1)
    ]
    return web.json_response({"leaderboard": leaderboard})


async def api_shop(request: web.Request) -> web.Response:
    items = await request.app["bot"].shop.get_shop_items()
    return web.json_response({
        "items": [
            {
                "id": item["item_id"],
                "name": item["name"],
                "description": item["description"],
                "price": item["price"],
                "quantity": item["quantity"],
            }
            for item in items
        ]
    })


async def api_jobs(request: web.Request) -> web.Response:
    jobs_service = request.app["bot"].jobs
    jobs = await jobs_service.get_job_list()
    return web.json_response({"mode": jobs_service.mode.value, "jobs": jobs})


async def api_giveaways(request: web.Request) -> web.Response:
    raffles = await request.app["bot"].raffles.get_active()
    return web.json_response({"giveaways": [raffle.to_dict() for raffle in raffles]})


async def api_giveaways_active(request: web.Request) -> web.Response:
    """Instances whose end time has not passed yet."""
    now = datetime.now(timezone.utc)
    raffles = await request.app["bot"].raffles.get_active()
    return web.json_response({
        "giveaways": [raffle.to_dict() for raffle in raffles if not raffle.is_due(now)]
    })


# ═══════════════════════════════════════════════════════════════
# APP FACTORY
# ═══════════════════════════════════════════════════════════════

def create_app(bot) -> web.Application:
    app = web.Application()
    app["bot"] = bot

    app.router.add_get("/", index)
    app.router.add_get("/api/health", api_health)
    app.router.add_get("/api/leaderboard", api_leaderboard)
    app.router.add_get("/api/shop", api_shop)
    app.router.add_get("/api/jobs", api_jobs)
    app.router.add_get("/api/giveaways", api_giveaways)
    app.router.add_get("/api/giveaways/active", api_giveaways_active)

    return app


async def start_dashboard(bot, port: int = None):
    if not VoltConfig.DASHBOARD.ENABLED:
        logger.info("Dashboard disabled (DASHBOARD_ENABLED=false)")
        return None

    port = port or VoltConfig.DASHBOARD.PORT
    app = create_app(bot)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    logger.info(f"Dashboard running at http://localhost:{port}")
    return runner
