"""RSS feed fetching and parsing using httpx and feedparser."""

import html
import logging
from urllib.parse import urlparse

import feedparser
import httpx

from gator.models import FetchedFeed, FetchedItem

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "gator"

# feedparser reports these when it recovers cleanly; the document itself is fine.
_BENIGN_BOZO = (feedparser.CharacterEncodingOverride, feedparser.NonXMLContentType)


class FeedError(Exception):
    """Base class for errors fetching or decoding a feed."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class FeedFetchError(FeedError):
    """Raised when a feed cannot be retrieved."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(url, message)
        self.status_code = status_code


class FeedParseError(FeedError):
    """Raised when a feed payload is not a readable RSS document."""


class FeedFetcher:
    """Fetches feeds over HTTP and decodes them into FetchedFeed objects.

    Use as an async context manager so the underlying client is closed::

        async with FeedFetcher(user_agent="gator") as fetcher:
            feed = await fetcher.fetch(url)
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "FeedFetcher":
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> FetchedFeed:
        """Fetch and decode the feed at ``url``.

        Args:
            url: The feed URL.

        Returns:
            FetchedFeed with un-escaped channel and item text.

        Raises:
            FeedFetchError: If the URL is invalid, unreachable, or answers
                with a non-2xx status.
            FeedParseError: If the body is not a well-formed feed.
        """
        _validate_url(url)
        if self._client is None:
            raise RuntimeError("FeedFetcher not open. Use 'async with FeedFetcher()'.")

        try:
            response = await self._client.get(
                url, headers={"User-Agent": self.user_agent}
            )
        except httpx.HTTPError as e:
            raise FeedFetchError(url, f"Could not reach URL: {e}") from e

        if not response.is_success:
            raise FeedFetchError(
                url,
                f"Unexpected HTTP status: {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return parse_feed(url, response.content)


def parse_feed(url: str, payload: bytes | str) -> FetchedFeed:
    """Decode an RSS payload into a FetchedFeed.

    Raises:
        FeedParseError: If the payload is malformed XML or not a feed at all.
    """
    parsed = feedparser.parse(payload)

    if parsed.bozo and not isinstance(parsed.bozo_exception, _BENIGN_BOZO):
        raise FeedParseError(url, f"Malformed feed XML: {parsed.bozo_exception}")

    if not parsed.version:
        raise FeedParseError(url, "URL does not point to a valid RSS or Atom feed")

    channel = parsed.feed
    return FetchedFeed(
        title=_unescape(channel.get("title")),
        link=channel.get("link", ""),
        description=_unescape(channel.get("description") or channel.get("subtitle")),
        items=[_to_item(entry) for entry in parsed.entries],
    )


def _to_item(entry) -> FetchedItem:
    return FetchedItem(
        title=_unescape(entry.get("title")),
        link=entry.get("link", ""),
        description=_unescape(entry.get("description") or entry.get("summary")),
        pub_date=entry.get("published") or entry.get("updated") or "",
    )


def _unescape(text: str | None) -> str:
    """Decode HTML entities; feeds frequently encode them twice."""
    return html.unescape(text) if text else ""


def _validate_url(url: str) -> None:
    """Validate that the URL has a valid format."""
    try:
        result = urlparse(url)
    except ValueError:
        raise FeedFetchError(url, "Invalid URL format")
    if not result.scheme or not result.netloc:
        raise FeedFetchError(url, "Invalid URL format")
    if result.scheme not in ("http", "https"):
        raise FeedFetchError(url, "Invalid URL format: only http and https are supported")
