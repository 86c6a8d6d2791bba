"""Turn fetched feed items into stored posts."""

import logging
from typing import Iterable

from gator import dates
from gator.database import Database, DuplicatePostError, StoreError
from gator.models import FetchedItem, Post

logger = logging.getLogger(__name__)


class Ingestor:
    """Stores fetched items one at a time.

    Each item is inserted independently. Duplicates are left to the store's
    unique constraint on post URL; a rejected item is logged and skipped.
    """

    def __init__(self, db: Database):
        self.db = db

    def ingest(self, feed_id: int, items: Iterable[FetchedItem]) -> int:
        """Store each item as a post. Returns count of posts stored."""
        stored = 0
        skipped = 0
        for item in items:
            post = Post(
                feed_id=feed_id,
                title=item.title,
                url=item.link,
                description=item.description or None,
                published_at=dates.resolve(item.pub_date),
            )
            try:
                self.db.create_post(post)
            except DuplicatePostError:
                logger.debug("Skipping already stored post %s", item.link)
                skipped += 1
                continue
            except StoreError as e:
                logger.warning("Could not store post '%s': %s", item.title, e)
                skipped += 1
                continue

            stored += 1
            logger.debug("Post '%s' created as id=%s", post.title, post.id)
        if skipped:
            logger.info("Feed %s: %d posts stored, %d skipped", feed_id, stored, skipped)
        return stored
