"""Pydantic models for Plex API."""

from .plex import (
    ContentType,
    LibraryPage,
    PlexDevice,
    PlexEpisode,
    PlexItem,
    PlexLibrarySection,
    PlexMedia,
    PlexMovie,
    PlexOtherItem,
    PlexSeason,
    PlexShow,
    Tag,
    WatchlistFilter,
    parse_item,
)

__all__ = [
    "ContentType",
    "LibraryPage",
    "PlexDevice",
    "PlexEpisode",
    "PlexItem",
    "PlexLibrarySection",
    "PlexMedia",
    "PlexMovie",
    "PlexOtherItem",
    "PlexSeason",
    "PlexShow",
    "Tag",
    "WatchlistFilter",
    "parse_item",
]
