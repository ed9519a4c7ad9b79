"""Parser for Overcast's extended OPML export.

The export nests episodes inside their feed:

    <opml version="1.0">
      <body>
        <outline text="playlists">...</outline>
        <outline text="feeds">
          <outline type="rss" overcastId="..." title="..." xmlUrl="..." subscribed="1">
            <outline type="podcast-episode" overcastId="..." title="..." progress="..."/>
          </outline>
        </outline>
      </body>
    </opml>
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..errors import OvercastParseError

logger = logging.getLogger(__name__)

RFC3339_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass
class ParsedEpisode:
    """Episode data from the Overcast export."""

    # Core identifiers
    id: int
    title: str

    # Listening state
    played: bool = False
    progress: Optional[int] = None
    user_deleted: bool = False

    # Dates
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Links
    html_url: Optional[str] = None
    overcast_url: Optional[str] = None
    mp3_url: Optional[str] = None


@dataclass
class ParsedFeed:
    """Feed data from the Overcast export."""

    # Core identifiers
    id: int
    title: str

    subscribed: bool = False
    feed_url: Optional[str] = None
    html_url: Optional[str] = None

    # Episodes
    episodes: List[ParsedEpisode] = field(default_factory=list)


@dataclass
class OvercastExport:
    """Result of parsing an export."""

    feeds: List[ParsedFeed]
    skipped_feeds: int = 0
    skipped_episodes: int = 0

    @property
    def episode_count(self) -> int:
        return sum(len(feed.episodes) for feed in self.feeds)


class OvercastOPMLParser:
    """Turns the raw export into ParsedFeed/ParsedEpisode records.

    Outlines without a title or an overcastId are skipped. Anything else
    unexpected is an error; there is no partial recovery.

    Example:
        parser = OvercastOPMLParser()
        export = parser.parse_string(opml)
        for feed in export.feeds:
            print(f"{feed.title}: {len(feed.episodes)} episodes")
    """

    FEEDS_OUTLINE_TEXT = "feeds"

    def parse_string(self, content: str) -> OvercastExport:
        """
        Parse an Overcast export document.

        Parameters:
            content (str): OPML XML content as a string.

        Returns:
            OvercastExport: Feeds with their episodes, plus counts of skipped outlines.

        Raises:
            OvercastParseError: If the XML is malformed, has no `feeds` outline, or an overcastId is not an integer.
        """
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            logger.error(f"Failed to parse Overcast export: {e}")
            raise OvercastParseError(f"Overcast export is not valid XML: {e}") from e

        if root.tag.lower() != "opml":
            raise OvercastParseError(
                f"Invalid OPML: root element is '{root.tag}', expected 'opml'"
            )

        feeds_outline = self._find_feeds_outline(root)
        if feeds_outline is None:
            raise OvercastParseError("Invalid Overcast export: no 'feeds' outline found")

        feeds = []
        skipped_feeds = 0
        skipped_episodes = 0

        for feed_outline in feeds_outline.findall("outline"):
            title = feed_outline.get("title")
            overcast_id = feed_outline.get("overcastId")
            if title is None or overcast_id is None:
                skipped_feeds += 1
                logger.debug(f"Skipped feed outline without title or id: {feed_outline.attrib}")
                continue

            feed = ParsedFeed(
                id=self._parse_id(overcast_id),
                title=title,
                subscribed=feed_outline.get("subscribed") == "1",
                feed_url=feed_outline.get("xmlUrl"),
                html_url=feed_outline.get("htmlUrl"),
            )

            for episode_outline in feed_outline.findall("outline"):
                episode = self._extract_episode(episode_outline)
                if episode is None:
                    skipped_episodes += 1
                    continue
                feed.episodes.append(episode)

            feeds.append(feed)
            logger.debug(f"Found feed: {feed.title} ({len(feed.episodes)} episodes)")

        export = OvercastExport(
            feeds=feeds,
            skipped_feeds=skipped_feeds,
            skipped_episodes=skipped_episodes,
        )
        logger.info(
            f"Parsed Overcast export: {len(feeds)} feeds, {export.episode_count} episodes, "
            f"{skipped_feeds + skipped_episodes} outlines skipped"
        )
        return export

    def _find_feeds_outline(self, root: ET.Element) -> Optional[ET.Element]:
        for outline in root.iter("outline"):
            if outline.get("text") == self.FEEDS_OUTLINE_TEXT:
                return outline
        return None

    def _extract_episode(self, outline: ET.Element) -> Optional[ParsedEpisode]:
        """
        Create a ParsedEpisode from an episode outline, or return None when it has no title or overcastId.
        """
        title = outline.get("title")
        overcast_id = outline.get("overcastId")
        if title is None or overcast_id is None:
            return None

        return ParsedEpisode(
            id=self._parse_id(overcast_id),
            title=title,
            played=outline.get("played") == "1",
            progress=self._parse_int(outline.get("progress")),
            user_deleted=outline.get("userDeleted") == "1",
            published_at=self._parse_datetime(outline.get("pubDate")),
            updated_at=self._parse_datetime(outline.get("userUpdatedDate")),
            html_url=outline.get("url"),
            overcast_url=outline.get("overcastUrl"),
            mp3_url=outline.get("enclosureUrl"),
        )

    def _parse_id(self, value: str) -> int:
        try:
            return int(value)
        except ValueError as e:
            raise OvercastParseError(f"Invalid overcastId: {value!r}") from e

    def _parse_int(self, value: Optional[str]) -> Optional[int]:
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.debug(f"Ignoring non-integer value: {value!r}")
            return None

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """
        Parse an RFC 3339 timestamp into a naive datetime in the timestamp's own offset.

        Overcast writes timestamps like `2021-03-01T09:30:00-05:00`. The wall-clock time is kept and the offset dropped. Values that are not a full date-time with an offset (bare dates, ISO basic format, naive times) yield None.
        """
        if not value:
            return None
        try:
            if not RFC3339_PATTERN.match(value):
                raise ValueError(value)
            return datetime.fromisoformat(value.upper()).replace(tzinfo=None)
        except ValueError:
            logger.debug(f"Ignoring unparseable date: {value!r}")
            return None
