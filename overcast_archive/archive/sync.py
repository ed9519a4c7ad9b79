"""Archive synchronization service.

Reconciles a parsed Overcast export with the database: new feeds and
episodes are inserted, changed ones updated, and nothing is ever deleted.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..db.models import EPISODE_MUTABLE_FIELDS, FEED_MUTABLE_FIELDS
from ..db.repository import ArchiveRepositoryInterface
from ..errors import StorageError
from ..overcast.opml_parser import ParsedEpisode, ParsedFeed

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Counts of what an archive run did."""

    feeds_added: int = 0
    feeds_updated: int = 0
    feeds_unchanged: int = 0
    episodes_added: int = 0
    episodes_updated: int = 0
    episodes_unchanged: int = 0

    @property
    def changed(self) -> bool:
        return bool(
            self.feeds_added or self.feeds_updated or self.episodes_added or self.episodes_updated
        )


class ArchiveSyncService:
    """Service for upserting Overcast feeds and episodes into the archive.

    All writes happen inside one repository transaction, so either the whole
    export is applied or nothing is.

    Example:
        sync_service = ArchiveSyncService(repository)
        result = sync_service.sync(export.feeds)
        print(f"New episodes: {result.episodes_added}")
    """

    def __init__(self, repository: ArchiveRepositoryInterface):
        self.repository = repository

    def sync(self, feeds: Iterable[ParsedFeed]) -> SyncResult:
        """
        Upsert every feed and episode of an export in a single transaction.

        Parameters:
            feeds (Iterable[ParsedFeed]): Parsed feeds, each carrying its episodes.

        Returns:
            SyncResult: Added/updated/unchanged counts for feeds and episodes.

        Raises:
            StorageError: If any database operation fails; the transaction is rolled back.
        """
        result = SyncResult()

        try:
            with self.repository.transaction() as session:
                for feed in feeds:
                    self._upsert_feed(session, feed, result)
                    for episode in feed.episodes:
                        self._upsert_episode(session, episode, feed.id, result)
        except SQLAlchemyError as e:
            logger.error(f"Archive sync failed, rolled back: {e}")
            raise StorageError(f"Unable to write to the database: {e}") from e

        logger.info(
            f"Sync complete: feeds {result.feeds_added} added, {result.feeds_updated} updated, "
            f"{result.feeds_unchanged} unchanged; episodes {result.episodes_added} added, "
            f"{result.episodes_updated} updated, {result.episodes_unchanged} unchanged"
        )
        return result

    def _upsert_feed(self, session, parsed: ParsedFeed, result: SyncResult) -> None:
        fields = {name: getattr(parsed, name) for name in FEED_MUTABLE_FIELDS}
        existing = self.repository.get_feed(parsed.id, session=session)

        if existing is None:
            self.repository.add_feed(session, parsed.id, **fields)
            result.feeds_added += 1
            return

        changes = self._diff(existing, fields)
        if changes:
            self.repository.update_feed(session, existing, **changes)
            result.feeds_updated += 1
        else:
            result.feeds_unchanged += 1

    def _upsert_episode(
        self, session, parsed: ParsedEpisode, feed_id: int, result: SyncResult
    ) -> None:
        fields = {
            name: getattr(parsed, name) for name in EPISODE_MUTABLE_FIELDS if name != "feed_id"
        }
        existing = self.repository.get_episode(parsed.id, session=session)

        if existing is None:
            self.repository.add_episode(session, parsed.id, feed_id, **fields)
            result.episodes_added += 1
            return

        changes = self._diff(existing, {**fields, "feed_id": feed_id})
        if changes:
            self.repository.update_episode(session, existing, **changes)
            result.episodes_updated += 1
        else:
            result.episodes_unchanged += 1

    @staticmethod
    def _diff(row: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Return the subset of `fields` whose values differ from the row's current values.
        """
        changes: Dict[str, Any] = {}
        for name, value in fields.items():
            current: Optional[Any] = getattr(row, name)
            if current != value:
                changes[name] = value
        return changes
