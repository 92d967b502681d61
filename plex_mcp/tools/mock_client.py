"""Fixture-backed stand-in for PlexClient, used when USE_MOCK_PLEX=true."""

import logging
import time
from typing import Optional

from ..models.plex import (
    ContentType,
    LibraryPage,
    PlexDevice,
    PlexEpisode,
    PlexItem,
    PlexLibrarySection,
    PlexMovie,
    PlexSeason,
    Tag,
    WatchlistFilter,
    parse_item,
)
from .plex_client import PlexNotFoundError

logger = logging.getLogger(__name__)

STREAMABLE = [{"optimizedForStreaming": 1}]

LIBRARIES = [
    {"key": "1", "title": "Movies", "type": "movie"},
    {"key": "2", "title": "TV Shows", "type": "show"},
]

MATRIX = {
    "ratingKey": "101",
    "title": "The Matrix",
    "year": 1999,
    "type": "movie",
    "duration": 136,
    "rating": 8.7,
    "summary": "A computer hacker learns about the true nature of reality.",
    "Media": STREAMABLE,
}
INCEPTION = {
    "ratingKey": "102",
    "title": "Inception",
    "year": 2010,
    "type": "movie",
    "duration": 148,
    "rating": 8.8,
    "summary": "A thief who steals corporate secrets through the use of dream-sharing technology.",
    "Media": STREAMABLE,
}
SHAWSHANK = {
    "ratingKey": "104",
    "title": "The Shawshank Redemption",
    "year": 1994,
    "type": "movie",
    "duration": 142,
    "rating": 9.3,
    "summary": "Two imprisoned men bond over a number of years, finding solace and "
    "eventual redemption through acts of common decency.",
    "Media": STREAMABLE,
}
DARK_KNIGHT = {
    "ratingKey": "105",
    "title": "The Dark Knight",
    "year": 2008,
    "type": "movie",
    "duration": 152,
    "rating": 9.0,
    "summary": "When the menace known as the Joker wreaks havoc and chaos on the people "
    "of Gotham, Batman must accept one of the greatest psychological and physical "
    "tests of his ability to fight injustice.",
    "Media": STREAMABLE,
}

LIBRARY_CONTENTS = [
    MATRIX,
    INCEPTION,
    {
        "ratingKey": "103",
        "title": "Breaking Bad",
        "year": 2008,
        "type": "show",
        "childCount": 5,
        "summary": "A high school chemistry teacher turned methamphetamine manufacturer.",
        "Media": STREAMABLE,
    },
    SHAWSHANK,
    DARK_KNIGHT,
    {
        "ratingKey": "301",
        "title": "Lethal Weapon",
        "year": 1987,
        "type": "movie",
        "duration": 110,
        "rating": 7.6,
        "summary": "A veteran cop reluctantly teams with a reckless partner.",
        "Media": STREAMABLE,
    },
    {
        "ratingKey": "302",
        "title": "Lethal Weapon 2",
        "year": 1989,
        "type": "movie",
        "duration": 114,
        "rating": 7.2,
        "summary": "Riggs and Murtaugh protect a federal witness.",
        "Media": STREAMABLE,
    },
]

MOVIES = [MATRIX, INCEPTION, SHAWSHANK, DARK_KNIGHT]

SEASONS = [
    {"ratingKey": "201", "title": "Season 1", "index": 1, "leafCount": 10, "type": "season"},
    {"ratingKey": "202", "title": "Season 2", "index": 2, "leafCount": 12, "type": "season"},
]

EPISODES = [
    {
        "ratingKey": "301",
        "title": "Pilot",
        "parentIndex": 1,
        "index": 1,
        "duration": 45,
        "summary": "First episode.",
        "type": "episode",
    },
    {
        "ratingKey": "302",
        "title": "Second Episode",
        "parentIndex": 1,
        "index": 2,
        "duration": 43,
        "summary": "Second episode.",
        "type": "episode",
    },
]

SEARCH_RESULTS = [
    {"ratingKey": "101", "title": "The Matrix", "year": 1999, "type": "movie",
     "Media": STREAMABLE, "originallyAvailableAt": "1999-03-31"},
    {"ratingKey": "201", "title": "Breaking Bad", "year": 2008, "type": "show",
     "Media": STREAMABLE, "originallyAvailableAt": "2008-01-20"},
    {"ratingKey": "301", "title": "Lethal Weapon", "year": 1987, "type": "movie",
     "Media": STREAMABLE, "originallyAvailableAt": "1987-03-06"},
    {"ratingKey": "302", "title": "Lethal Weapon 2", "year": 1989, "type": "movie",
     "Media": STREAMABLE, "originallyAvailableAt": "1989-07-07"},
]

WATCHLIST = [
    {
        "ratingKey": "501",
        "title": "Dune",
        "year": 2021,
        "type": "movie",
        "duration": 155,
        "rating": 8.0,
        "summary": "A noble family becomes embroiled in a war for control over the "
        "galaxy's most valuable asset.",
    },
    {
        "ratingKey": "502",
        "title": "The Last of Us",
        "year": 2023,
        "type": "show",
        "childCount": 1,
        "summary": "After a global pandemic destroys civilization, a hardened survivor "
        "takes charge of a 14-year-old girl who may be humanity's last hope.",
    },
    {
        "ratingKey": "503",
        "title": "Oppenheimer",
        "year": 2023,
        "type": "movie",
        "duration": 180,
        "rating": 8.5,
        "summary": "The story of American scientist J. Robert Oppenheimer and his role "
        "in the development of the atomic bomb.",
    },
]

AVAILABLE_WATCHLIST_KEYS = {"501", "503"}


def _devices() -> list[dict]:
    last_seen = int(time.time() * 1000)
    return [
        {
            "id": 1,
            "name": "Mock iPhone",
            "platform": "iOS",
            "clientIdentifier": "mock-iphone-1",
            "createdAt": 1654131230,
            "product": "Plex for iOS",
            "productVersion": "8.0",
            "platformVersion": "17.0",
            "device": "iPhone",
            "model": "iPhone 14",
            "vendor": "Apple",
            "provides": ["player", "controller"],
            "owned": True,
            "lastSeenAt": last_seen,
            "publicAddress": "192.168.1.100",
        },
        {
            "id": 2,
            "name": "Mock Android TV",
            "platform": "Android",
            "clientIdentifier": "mock-android-tv-1",
            "createdAt": 1654131240,
            "product": "Plex for Android TV",
            "productVersion": "9.0",
            "platformVersion": "12.0",
            "device": "Android TV",
            "model": "SHIELD Android TV",
            "vendor": "NVIDIA",
            "provides": ["player"],
            "owned": True,
            "lastSeenAt": last_seen,
            "publicAddress": "192.168.1.101",
        },
    ]


class MockPlexClient:
    """Serves static fixtures through the PlexClient interface."""

    async def close(self):
        pass

    async def get_status(self) -> dict:
        return {"version": "mock", "machine_id": "mock-server"}

    async def get_libraries(self) -> list[PlexLibrarySection]:
        logger.debug("Mock: getting libraries")
        return [PlexLibrarySection.model_validate(lib) for lib in LIBRARIES]

    async def get_library_contents(
        self,
        library_id: str,
        type: int = ContentType.MOVIE,
        tag: Optional[str] = Tag.NEWEST,
        start: int = 0,
        size: int = 20,
    ) -> LibraryPage:
        view = Tag.parse(tag)
        logger.debug(
            f"Mock: getting contents of library {library_id} "
            f"(type={int(type)}, tag={view.value}, start={start}, size={size})"
        )
        page = LIBRARY_CONTENTS[start:start + size]
        return LibraryPage(
            items=[parse_item(item) for item in page],
            totalSize=len(LIBRARY_CONTENTS),
        )

    async def get_movies(self) -> list[PlexMovie]:
        logger.debug("Mock: getting movies")
        return [PlexMovie.model_validate(movie) for movie in MOVIES]

    async def get_seasons(self, show_id: str) -> list[PlexSeason]:
        logger.debug(f"Mock: getting seasons for show {show_id}")
        return [PlexSeason.model_validate(season) for season in SEASONS]

    async def get_episodes(self, season_id: str) -> list[PlexEpisode]:
        logger.debug(f"Mock: getting episodes for season {season_id}")
        return [PlexEpisode.model_validate(episode) for episode in EPISODES]

    async def get_metadata(self, item_id: str) -> Optional[PlexItem]:
        for item in LIBRARY_CONTENTS:
            if item["ratingKey"] == item_id:
                return parse_item(item)
        return None

    async def search(self, query: str) -> list[PlexItem]:
        logger.debug(f"Mock: searching for {query!r}")
        needle = query.lower()
        return [
            parse_item(item)
            for item in SEARCH_RESULTS
            if needle in item["title"].lower()
        ]

    async def get_watchlist(
        self,
        filter: Optional[str] = WatchlistFilter.ALL,
    ) -> list[PlexItem]:
        logger.debug(f"Mock: getting watchlist (filter={filter or 'none'})")
        items = WATCHLIST
        if filter and WatchlistFilter(filter) == WatchlistFilter.AVAILABLE:
            items = [item for item in WATCHLIST if item["ratingKey"] in AVAILABLE_WATCHLIST_KEYS]
        return [parse_item(item) for item in items]

    async def get_devices(self) -> list[PlexDevice]:
        logger.debug("Mock: getting devices")
        return [PlexDevice.model_validate(device) for device in _devices()]

    async def play_media(self, media_id: str, device_id: str) -> None:
        devices = await self.get_devices()
        if not any(d.clientIdentifier == device_id for d in devices):
            raise PlexNotFoundError(f"Device with ID {device_id} not found")
        if await self.get_metadata(media_id) is None:
            raise PlexNotFoundError(f"Media item with ID {media_id} not found")
        logger.info(f"Mock: started playback of media {media_id} on device {device_id}")
