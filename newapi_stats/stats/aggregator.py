"""
Usage-log aggregation. Walks /api/log/self page by page and sums consumption.

Pages are requested strictly one after another. The walk ends at the first of:
an empty page, the page count implied by the server's `total`, or MAX_PAGES.
"""

import math
from collections.abc import AsyncIterator
from datetime import datetime, time

from newapi_stats.client.auth import Authenticator
from newapi_stats.client.http import HttpClient, unwrap
from newapi_stats.observability.logger import get_logger
from newapi_stats.stats.models import LogPage, TimeWindow, UsageAggregate

log = get_logger("stats.aggregator")

PAGE_SIZE = 100
MAX_PAGES = 50  # hard ceiling per aggregation, even if the server reports more
LOG_TYPE_CONSUME = 0

END_OF_DAY = time(23, 59, 59, 999000)


def today_window(now: datetime | None = None) -> TimeWindow:
    """Epoch-second bounds of the local calendar day containing `now`.

    Naive datetimes are taken as local time; aware ones keep their own zone.
    """
    now = now or datetime.now()
    day = now.date()
    start = datetime.combine(day, time.min, tzinfo=now.tzinfo)
    end = datetime.combine(day, END_OF_DAY, tzinfo=now.tzinfo)
    return TimeWindow(start=math.floor(start.timestamp()), end=math.floor(end.timestamp()))


class LogAggregator:
    def __init__(self, http: HttpClient, auth: Authenticator):
        self.http = http
        self.auth = auth

    def _page_params(self, page: int, window: TimeWindow | None) -> dict[str, str]:
        params = {
            "p": str(page),
            "page_size": str(PAGE_SIZE),
            "type": str(LOG_TYPE_CONSUME),
            "token_name": "",
            "model_name": "",
            "group": "",
        }
        if window is not None:
            params["start_timestamp"] = str(window.start)
            params["end_timestamp"] = str(window.end)
        return params

    async def fetch_page(self, page: int, window: TimeWindow | None = None) -> LogPage:
        payload = await self.http.get_json(
            f"{self.auth.config.base_url}/api/log/self",
            headers=await self.auth.authorized_headers(),
            params=self._page_params(page, window),
        )
        return unwrap(payload, LogPage, "usage logs")

    async def iter_usage_pages(self, window: TimeWindow | None = None) -> AsyncIterator[UsageAggregate]:
        """Yield one UsageAggregate delta per non-empty page."""
        page = 1
        while page <= MAX_PAGES:
            data = await self.fetch_page(page, window)
            items = data.items or []
            log.debug("usage_page_fetched", page=page, items=len(items), total=data.total)

            if not items:
                return
            yield UsageAggregate.from_items(items)

            total_pages = math.ceil((data.total or 0) / PAGE_SIZE)
            if page >= total_pages:
                return
            page += 1

        log.warning("usage_page_cap_reached", max_pages=MAX_PAGES)

    async def aggregate(self, window: TimeWindow | None = None) -> UsageAggregate:
        usage = UsageAggregate()
        async for delta in self.iter_usage_pages(window):
            usage = usage + delta
        log.info(
            "usage_aggregated",
            window="all_time" if window is None else "range",
            consumption=usage.consumption,
            requests=usage.requests,
        )
        return usage

    async def aggregate_usage(
        self,
        start_timestamp: int | None = None,
        end_timestamp: int | None = None,
    ) -> UsageAggregate:
        """Sum usage between two epoch-second bounds, or over all time when both are omitted."""
        if (start_timestamp is None) != (end_timestamp is None):
            raise ValueError("start_timestamp and end_timestamp must be given together")
        window = None
        if start_timestamp is not None:
            window = TimeWindow(start=start_timestamp, end=end_timestamp)
        return await self.aggregate(window)

    async def aggregate_today(self, now: datetime | None = None) -> UsageAggregate:
        return await self.aggregate(today_window(now))
