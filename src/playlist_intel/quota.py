"""Daily API call budget.

YouTube grants 10,000 units per day. Every successful request counts as one
call; the tracker blocks once the day's count reaches the limit minus a
safety margin. The count resets implicitly when the stored date is not
today's local date.

Reads and writes are not locked: a single sync run at a time is assumed.
"""

import logging
from collections.abc import Callable
from datetime import date

from .models import QuotaUsage
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

DAILY_LIMIT = 10_000
SAFETY_MARGIN = 500
QUOTA_KEY = "quotaUsage"


class QuotaTracker:
    """Usage counter persisted under ``quotaUsage`` in a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        daily_limit: int = DAILY_LIMIT,
        safety_margin: int = SAFETY_MARGIN,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self.daily_limit = daily_limit
        self.safety_margin = safety_margin
        self._today = today

    @property
    def threshold(self) -> int:
        return self.daily_limit - self.safety_margin

    async def usage(self) -> QuotaUsage:
        """Return today's usage; a stale date reads as zero."""
        today = self._today().isoformat()
        data = (await self._store.get([QUOTA_KEY])).get(QUOTA_KEY) or {}
        if data.get("date") != today:
            return QuotaUsage(date=today, count=0)
        return QuotaUsage(date=today, count=int(data.get("count") or 0))

    async def can_call(self) -> bool:
        usage = await self.usage()
        return usage.count < self.threshold

    async def remaining(self) -> int:
        usage = await self.usage()
        return max(0, self.threshold - usage.count)

    async def record_call(self) -> QuotaUsage:
        usage = await self.usage()
        usage.count += 1
        await self._store.set({QUOTA_KEY: usage.to_dict()})
        if usage.count == self.threshold:
            logger.warning(
                "Daily quota threshold reached (%d/%d); further calls are blocked until tomorrow",
                usage.count,
                self.daily_limit,
            )
        return usage
