"""
Today's menu.

MenuRefresher fetches the day's catering order from Cater2Me on a cron
schedule (weekday mornings by default) and once at startup, and stores it in
MenuCache. The dispatcher only ever reads the cache. A failed refresh keeps
whatever menu was cached before.
"""

import logging
from datetime import date, datetime
from typing import Protocol, Sequence
from zoneinfo import ZoneInfo

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from lunchbell.domain.errors import MenuUnavailableError
from lunchbell.domain.models import Menu

logger = logging.getLogger(__name__)

CATER2ME_BASE_URL = "https://cater2.me"
REFRESH_JOB_ID = "menu-refresh"


class MenuCache:
    """Holds the most recently fetched menu, or nothing."""

    def __init__(self, menu: Menu | None = None) -> None:
        self._menu = menu

    def current(self) -> Menu | None:
        return self._menu

    def update(self, menu: Menu | None) -> None:
        self._menu = menu


class MenuSource(Protocol):
    async def load_todays_menu(self) -> Menu: ...


class Cater2MeClient:
    """Looks up today's order in the Cater2Me calendar feed and fetches its menu.

    `client_id` is the client_guid and `profile_ids` the ids from
    /clients/users/available_profiles.json; `user_id` is the guid from
    /clients/users/me.json.
    """

    def __init__(
        self,
        client_id: str,
        user_id: str,
        profile_ids: Sequence[str],
        *,
        timezone: str = "America/Los_Angeles",
        timeout_seconds: float = 10.0,
        base_url: str = CATER2ME_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.user_id = user_id
        self.profile_ids = list(profile_ids)
        self.tz = ZoneInfo(timezone)
        self.client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/clients/{client_id}/calendars",
            timeout=timeout_seconds,
            transport=transport,
        )

    async def load_todays_menu(self, today: date | None = None) -> Menu:
        today = today or datetime.now(self.tz).date()
        logger.info("Fetching today's menu from cater2.me...")

        orders = await self._get_json(
            "/orders_feed.json",
            params={
                "cal_by_profile_ids": ",".join(self.profile_ids),
                "cal_sort_by": "order_for",
                "cal_by_user_id": self.user_id,
            },
            what="orders",
        )
        order = next(
            (o for o in orders.get("orders") or [] if self._order_date(o) == today),
            None,
        )
        if order is None:
            raise MenuUnavailableError(f"No orders found for {today.isoformat()}.")

        details = await self._get_json(
            "/order_details.json",
            params={"order_id": order["id"]},
            what=f"menu for order {order['id']}",
        )
        menu = details.get("order")
        if not menu:
            raise MenuUnavailableError(f"No menu found for order {order['id']}.")
        return Menu.from_cater2me(menu)

    def _order_date(self, order: dict) -> date | None:
        raw = order.get("order_for")
        if not raw:
            return None
        try:
            when = datetime.fromisoformat(raw)
        except ValueError:
            logger.warning("Ignoring order %s with unparseable order_for %r", order.get("id"), raw)
            return None
        if when.tzinfo is not None:
            when = when.astimezone(self.tz)
        return when.date()

    async def _get_json(self, path: str, *, params: dict, what: str) -> dict:
        try:
            response = await self.client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise MenuUnavailableError(f"Error getting cater2me {what}: {exc}") from exc
        if response.status_code != 200:
            raise MenuUnavailableError(
                f"Error getting cater2me {what}: received {response.status_code} status code."
            )
        return response.json()

    async def close(self) -> None:
        await self.client.aclose()


class MenuRefresher:
    """Runs `source.load_todays_menu()` on a cron schedule and caches the result."""

    def __init__(
        self,
        source: MenuSource,
        cache: MenuCache,
        *,
        cron: str = "0 8 * * 1-5",
        timezone: str = "America/Los_Angeles",
    ) -> None:
        self.source = source
        self.cache = cache
        self.tz = ZoneInfo(timezone)
        self.trigger = CronTrigger.from_crontab(cron, timezone=self.tz)
        self.scheduler = AsyncIOScheduler(timezone=self.tz)

    async def refresh(self) -> Menu | None:
        try:
            menu = await self.source.load_todays_menu()
        except MenuUnavailableError as exc:
            logger.warning("Failed to load Cater2Me menu: %s", exc)
            return self.cache.current()
        self.cache.update(menu)
        logger.info("Got Cater2Me menu %s", menu)
        return menu

    def start(self, run_now: bool = True) -> None:
        """Schedule the refresh job; needs a running event loop."""
        logger.info("Starting cater2me cron job...")
        self.scheduler.add_job(
            self.refresh,
            trigger=self.trigger,
            id=REFRESH_JOB_ID,
            replace_existing=True,
            **({"next_run_time": datetime.now(self.tz)} if run_now else {}),
        )
        self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            logger.info("Stopping cater2me cron job")
            self.scheduler.shutdown(wait=False)
