"""Fixed-interval polling loop for gator."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from gator.database import Database, NoFeedsError
from gator.feed_parser import FeedError, FeedFetcher
from gator.ingest import Ingestor
from gator.models import Feed, utcnow

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Outcome of one poll cycle."""

    feed: Feed | None
    stored: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Scheduler:
    """Polls one feed per tick, least recently fetched first.

    A cycle selects the feed, marks it fetched, fetches it and stores its
    items. The feed is marked before the request goes out, so a feed that
    keeps failing moves to the back of the queue like any other.
    """

    def __init__(
        self,
        db: Database,
        fetcher: FeedFetcher,
        ingestor: Ingestor,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.fetcher = fetcher
        self.ingestor = ingestor
        self.clock = clock

    async def run_once(self) -> CycleResult:
        """Run a single select, mark, fetch and ingest cycle."""
        try:
            feed = self.db.select_next_feed_to_fetch()
        except NoFeedsError as e:
            logger.warning("Nothing to poll: %s", e)
            return CycleResult(feed=None, error=e)

        self.db.mark_feed_fetched(feed.id, self.clock())

        try:
            fetched = await self.fetcher.fetch(feed.url)
        except FeedError as e:
            logger.warning("Feed '%s' error: %s", feed.name, e)
            return CycleResult(feed=feed, error=e)

        stored = self.ingestor.ingest(feed.id, fetched.items)
        logger.info(
            "Feed '%s': %d items, %d new posts", feed.name, len(fetched.items), stored
        )
        return CycleResult(feed=feed, stored=stored)

    async def run(
        self, interval: timedelta, stop_event: asyncio.Event | None = None
    ) -> None:
        """Run poll cycles every ``interval`` until ``stop_event`` is set.

        The first cycle starts immediately. Cycles never overlap: when one
        runs longer than the interval the next starts as soon as it ends, and
        the missed ticks are dropped.

        Raises:
            ValueError: If the interval is not positive.
        """
        period = interval.total_seconds()
        if period <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")

        stop = stop_event or asyncio.Event()
        loop = asyncio.get_running_loop()
        logger.info("Collecting feeds every %s", interval)

        next_fire = loop.time()
        while not stop.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Poll cycle failed")

            next_fire += period
            now = loop.time()
            if next_fire < now:
                next_fire = now

            try:
                await asyncio.wait_for(stop.wait(), timeout=next_fire - now)
            except asyncio.TimeoutError:
                pass

        logger.info("Poller stopped")
