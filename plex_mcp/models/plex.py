"""Pydantic models for Plex API responses."""

import logging
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class Tag(str, Enum):
    """Library view selecting which slice of a section to list."""
    NEWEST = "newest"
    RECENTLY_ADDED = "recentlyAdded"
    RECENTLY_VIEWED = "recentlyViewed"
    ON_DECK = "onDeck"
    UNWATCHED = "unwatched"
    COLLECTION = "collection"

    @classmethod
    def parse(cls, value: Optional[Union[str, "Tag"]]) -> "Tag":
        """Convert a raw tag value, falling back to NEWEST for anything unknown."""
        if value is None:
            return cls.NEWEST
        try:
            return cls(value)
        except ValueError:
            logger.debug(f"Unknown tag {value!r}, using {cls.NEWEST.value}")
            return cls.NEWEST


class ContentType(int, Enum):
    """Plex metadata type codes used by the `type` query parameter."""
    MOVIE = 1
    SHOW = 2
    SEASON = 3
    EPISODE = 4


class WatchlistFilter(str, Enum):
    """Watchlist availability filter."""
    ALL = "all"
    AVAILABLE = "available"
    RELEASED = "released"


class PlexModel(BaseModel):
    """Base for upstream shapes: unknown fields are kept, numeric ids become strings."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class PlexLibrarySection(PlexModel):
    """A Plex library section (e.g., Movies, TV Shows)."""
    key: str
    title: str
    type: str  # "movie", "show", "artist", "photo"


class PlexMedia(PlexModel):
    """One technical profile entry from an item's Media array."""
    optimizedForStreaming: bool = True


def _default_media() -> list[PlexMedia]:
    return [PlexMedia()]


class PlexItemBase(PlexModel):
    """Fields shared by every metadata item."""
    ratingKey: str
    title: str = ""
    year: Optional[int] = None
    summary: Optional[str] = None
    Media: list[PlexMedia] = Field(default_factory=_default_media)


class PlexMovie(PlexItemBase):
    type: Literal["movie"] = "movie"
    duration: Optional[int] = None
    rating: Optional[float] = None


class PlexShow(PlexItemBase):
    type: Literal["show"] = "show"
    childCount: Optional[int] = None  # seasons
    leafCount: Optional[int] = None  # episodes


class PlexSeason(PlexItemBase):
    type: Literal["season"] = "season"
    index: Optional[int] = None
    leafCount: Optional[int] = None
    parentRatingKey: Optional[str] = None


class PlexEpisode(PlexItemBase):
    type: Literal["episode"] = "episode"
    parentIndex: Optional[int] = None
    index: Optional[int] = None
    duration: Optional[int] = None


class PlexOtherItem(PlexItemBase):
    """Any item whose type has no dedicated model (artist, clip, collection...)."""
    type: str = "unknown"


PlexItem = Union[PlexMovie, PlexShow, PlexSeason, PlexEpisode, PlexOtherItem]

ITEM_MODELS: dict[str, type[PlexItemBase]] = {
    "movie": PlexMovie,
    "show": PlexShow,
    "season": PlexSeason,
    "episode": PlexEpisode,
}


def parse_item(raw: dict[str, Any]) -> PlexItem:
    """Build the model matching the item's `type` discriminant."""
    model = ITEM_MODELS.get(raw.get("type", ""), PlexOtherItem)
    return model.model_validate(raw)


class PlexDevice(PlexModel):
    """A client device registered with the Plex server."""
    clientIdentifier: str
    name: Optional[str] = None
    product: Optional[str] = None
    productVersion: Optional[str] = None
    platform: Optional[str] = None
    platformVersion: Optional[str] = None
    device: Optional[str] = None
    model: Optional[str] = None
    vendor: Optional[str] = None
    provides: Optional[Union[list[str], str]] = None
    owned: Optional[bool] = None
    lastSeenAt: Optional[int] = None
    publicAddress: Optional[str] = None


class LibraryPage(BaseModel):
    """A page of library items plus the full upstream count."""
    items: list[PlexItem]
    totalSize: int
