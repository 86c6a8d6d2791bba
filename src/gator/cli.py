"""Command-line front end for gator."""

import asyncio
import contextlib
import logging
import signal
import sys
from dataclasses import dataclass
from datetime import timedelta

from gator.config import Config, ConfigError, parse_duration
from gator.database import Database, DuplicateFeedError
from gator.feed_parser import FeedFetcher
from gator.ingest import Ingestor
from gator.models import Feed
from gator.poller import Scheduler


class CommandError(Exception):
    """Raised when a command is invoked with bad arguments."""


@dataclass
class AppContext:
    """Everything a command needs, built once per process."""

    config: Config
    db: Database


class Command:
    """A CLI command: validates its arguments, then executes."""

    name: str = ""
    usage: str = ""
    description: str = ""
    min_args: int = 0
    max_args: int = 0

    def validate(self, args: list[str]) -> None:
        if not self.min_args <= len(args) <= self.max_args:
            raise CommandError(f"usage: gator {self.name} {self.usage}".rstrip())

    def execute(self, ctx: AppContext, args: list[str]) -> int:
        raise NotImplementedError


class AggCommand(Command):
    name = "agg"
    usage = "<time_between_reqs>"
    description = "Poll registered feeds forever, one per interval (e.g. 30s, 1m)."
    min_args = 1
    max_args = 1

    def validate(self, args: list[str]) -> None:
        super().validate(args)
        interval_for(args[0])

    def execute(self, ctx: AppContext, args: list[str]) -> int:
        interval = interval_for(args[0])
        print(f"Collecting feeds every {args[0]}")
        asyncio.run(aggregate(ctx, interval))
        return 0


class AddFeedCommand(Command):
    name = "addfeed"
    usage = "<name> <url>"
    description = "Register a feed to be polled."
    min_args = 2
    max_args = 2

    def execute(self, ctx: AppContext, args: list[str]) -> int:
        name, url = args
        try:
            feed = ctx.db.add_feed(Feed(url=url, name=name))
        except DuplicateFeedError as e:
            raise CommandError(str(e)) from e
        print(f"Feed added: {feed.name} ({feed.url}) id={feed.id}")
        return 0


class FeedsCommand(Command):
    name = "feeds"
    description = "List registered feeds."

    def execute(self, ctx: AppContext, args: list[str]) -> int:
        for feed in ctx.db.get_feeds():
            fetched = feed.last_fetched_at.isoformat() if feed.last_fetched_at else "never"
            print(f"{feed.name} {feed.url} (last fetched: {fetched})")
        return 0


class BrowseCommand(Command):
    name = "browse"
    usage = "[limit]"
    description = "Show the most recent posts."
    max_args = 1
    default_limit = 2

    def validate(self, args: list[str]) -> None:
        super().validate(args)
        if args:
            _limit_for(args[0])

    def execute(self, ctx: AppContext, args: list[str]) -> int:
        limit = _limit_for(args[0]) if args else self.default_limit
        for post in ctx.db.get_recent_posts(limit=limit):
            published = post["published_at"].isoformat() if post["published_at"] else "unknown date"
            print(f"{published} from {post['feed_name']}")
            print(f"--- {post['title']} ---")
            print(f"    {post['description'] or ''}")
            print(f"Link: {post['url']}")
            print("=" * 50)
        return 0


COMMANDS: dict[str, Command] = {
    command.name: command
    for command in (AggCommand(), AddFeedCommand(), FeedsCommand(), BrowseCommand())
}


def interval_for(text: str) -> timedelta:
    """Parse and check a polling interval argument.

    Raises:
        ConfigError: If the value is not a positive duration.
    """
    interval = parse_duration(text)
    if interval <= timedelta(0):
        raise ConfigError(f"interval must be positive, got {text!r}")
    return interval


def _limit_for(text: str) -> int:
    try:
        limit = int(text)
    except ValueError:
        raise CommandError(f"limit must be an integer, got {text!r}")
    if limit < 1:
        raise CommandError("limit must be at least 1")
    return limit


async def aggregate(
    ctx: AppContext, interval: timedelta, stop_event: asyncio.Event | None = None
) -> None:
    """Run the scheduler until stopped by a signal or ``stop_event``."""
    stop = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(sig, stop.set)

    async with FeedFetcher(
        user_agent=ctx.config.user_agent, timeout=ctx.config.fetch_timeout
    ) as fetcher:
        scheduler = Scheduler(ctx.db, fetcher, Ingestor(ctx.db))
        await scheduler.run(interval, stop)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def print_usage(stream=None) -> None:
    stream = stream or sys.stderr
    print("usage: gator <command> [args]\n\ncommands:", file=stream)
    for command in COMMANDS.values():
        print(f"  {command.name} {command.usage}".rstrip(), file=stream)
        print(f"      {command.description}", file=stream)


def main(argv: list[str] | None = None) -> int:
    """Dispatch a command. Returns the process exit code."""
    argv = sys.argv[1:] if argv is None else argv

    try:
        config = Config.from_env()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    configure_logging(config.log_level)

    if not argv:
        print("Error: not enough arguments", file=sys.stderr)
        print_usage()
        return 1

    name, args = argv[0], argv[1:]
    command = COMMANDS.get(name)
    if command is None:
        print(f"Error: unknown command: {name}", file=sys.stderr)
        print_usage()
        return 1

    try:
        command.validate(args)
    except (CommandError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    db = Database(config.db_path)
    db.connect()
    try:
        return command.execute(AppContext(config=config, db=db), args)
    except (CommandError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()
