"""SQLAlchemy ORM models for archived Overcast feeds and episodes.

Column names follow the camelCase attribute names of Overcast's OPML export
so the archive can be queried with the same vocabulary.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Feed(Base):
    """A podcast the user follows (or followed) in Overcast.

    The primary key is Overcast's own `overcastId`, which is stable across
    exports, so re-archiving updates rows in place.
    """

    __tablename__ = "feeds"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    title: Mapped[Optional[str]] = mapped_column(Text)
    subscribed: Mapped[Optional[bool]] = mapped_column(Boolean)
    feed_url: Mapped[Optional[str]] = mapped_column("feedUrl", Text)
    html_url: Mapped[Optional[str]] = mapped_column("htmlUrl", Text)

    # Relationships
    episodes: Mapped[List["Episode"]] = relationship("Episode", back_populates="feed")

    def __repr__(self) -> str:
        return f"<Feed(id={self.id}, title={self.title!r})>"


class Episode(Base):
    """An episode of a feed together with the user's listening state."""

    __tablename__ = "episodes"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    title: Mapped[Optional[str]] = mapped_column(Text)
    played: Mapped[Optional[bool]] = mapped_column(Boolean)
    feed_id: Mapped[int] = mapped_column(
        "feedId", BigInteger, ForeignKey("feeds.id"), nullable=False, index=True
    )
    published_at: Mapped[Optional[datetime]] = mapped_column("publishedAt", DateTime)
    updated_at: Mapped[Optional[datetime]] = mapped_column("updatedAt", DateTime)
    html_url: Mapped[Optional[str]] = mapped_column("htmlUrl", Text)
    overcast_url: Mapped[Optional[str]] = mapped_column("overcastUrl", Text)
    mp3_url: Mapped[Optional[str]] = mapped_column("mp3Url", Text)
    progress: Mapped[Optional[int]] = mapped_column(Integer)  # seconds
    user_deleted: Mapped[Optional[bool]] = mapped_column("userDeleted", Boolean)

    # Relationships
    feed: Mapped["Feed"] = relationship("Feed", back_populates="episodes")

    def __repr__(self) -> str:
        return f"<Episode(id={self.id}, feed_id={self.feed_id}, title={self.title!r})>"


# Columns the archive run is allowed to overwrite, keyed by ORM attribute name.
FEED_MUTABLE_FIELDS = ("title", "subscribed", "feed_url", "html_url")
EPISODE_MUTABLE_FIELDS = (
    "title",
    "played",
    "feed_id",
    "published_at",
    "updated_at",
    "html_url",
    "overcast_url",
    "mp3_url",
    "progress",
    "user_deleted",
)
