"""Archive synchronization: upserting parsed exports into the database."""

from .sync import ArchiveSyncService, SyncResult

__all__ = [
    "ArchiveSyncService",
    "SyncResult",
]
