"""Plex Media Server API client for MCP server."""

import asyncio
import logging
import os
import time
from typing import Optional

import aiohttp

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

logger = logging.getLogger(__name__)

DEFAULT_PLEX_URL = "http://localhost:32400"
DEFAULT_DISCOVER_URL = "https://metadata.provider.plex.tv"


class PlexError(Exception):
    """Base exception for Plex API errors."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class PlexConfigError(PlexError):
    """Raised when the client cannot be configured (missing token)."""
    pass


class PlexNotFoundError(PlexError):
    """Raised when a device or media item lookup comes back empty."""
    pass


class PlexClient:
    """Async client for Plex Media Server API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        discover_url: Optional[str] = None,
    ):
        self.base_url = (base_url or os.getenv("PLEX_URL") or DEFAULT_PLEX_URL).rstrip("/")
        self.token = token or os.getenv("PLEX_TOKEN", "")
        self.discover_url = (
            discover_url or os.getenv("PLEX_DISCOVER_URL") or DEFAULT_DISCOVER_URL
        ).rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None

        if not self.token:
            raise PlexConfigError(
                "PLEX_TOKEN not configured. Set PLEX_TOKEN or USE_MOCK_PLEX=true."
            )

    async def __aenter__(self) -> "PlexClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "X-Plex-Token": self.token,
                    "Accept": "application/json",
                }
            )
        return self._session

    async def close(self):
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _request(
        self,
        endpoint: str,
        base_url: Optional[str] = None,
        expect_json: bool = True,
        **kwargs,
    ) -> dict:
        """Make a GET request to the Plex API.

        Args:
            endpoint: Path appended to the base URL
            base_url: Alternate host, used for the watchlist service
            expect_json: False for commands whose reply body is ignored
            **kwargs: Passed through to aiohttp (e.g. params)

        Returns:
            Decoded JSON body, or an empty dict when expect_json is False
        """
        session = await self._get_session()
        url = f"{base_url or self.base_url}{endpoint}"

        try:
            async with session.get(url, **kwargs) as response:
                if response.status == 401:
                    raise PlexError("Invalid Plex token", status=401)
                if response.status >= 400:
                    raise PlexError(
                        f"Plex API error {response.status}: {response.reason}",
                        status=response.status,
                    )
                if not expect_json:
                    return {}
                return await response.json()
        except aiohttp.ClientError as e:
            logger.warning(f"Request to {endpoint} failed: {e}")
            raise PlexError(f"Connection error: {str(e)}")

    async def get_status(self) -> dict:
        """Get Plex server identity/status."""
        data = await self._request("/identity")
        mc = data.get("MediaContainer", {})
        return {
            "version": mc.get("version"),
            "machine_id": mc.get("machineIdentifier"),
        }

    async def get_libraries(self) -> list[PlexLibrarySection]:
        """Get all library sections."""
        data = await self._request("/library/sections")
        directories = data.get("MediaContainer", {}).get("Directory", [])
        return [PlexLibrarySection.model_validate(d) for d in directories]

    async def get_library_contents(
        self,
        library_id: str,
        type: int = ContentType.MOVIE,
        tag: Optional[str] = Tag.NEWEST,
        start: int = 0,
        size: int = 20,
    ) -> LibraryPage:
        """Get one page of items from a library section.

        Args:
            library_id: Section key of the library
            type: Content type code (1=movie, 2=show, 3=season, 4=episode)
            tag: Library view; unknown values fall back to "newest"
            start: Offset of the first item
            size: Maximum number of items to return

        Returns:
            The page of items and the total item count reported by the server
        """
        view = Tag.parse(tag)
        data = await self._request(
            f"/library/sections/{library_id}/{view.value}",
            params={
                "type": int(type),
                "X-Plex-Container-Start": start,
                "X-Plex-Container-Size": size,
            },
        )
        mc = data.get("MediaContainer", {})
        items = [parse_item(item) for item in mc.get("Metadata", [])]
        total_size = mc.get("totalSize") or len(items)
        return LibraryPage(items=items, totalSize=total_size)

    async def get_movies(self) -> list[PlexMovie]:
        """Get movies from every movie library, fetched concurrently."""
        libraries = await self.get_libraries()
        movie_libraries = [lib for lib in libraries if lib.type == "movie"]

        if not movie_libraries:
            logger.warning("No movie libraries found")
            return []

        pages = await asyncio.gather(
            *(self.get_library_contents(lib.key) for lib in movie_libraries)
        )
        return [item for page in pages for item in page.items if isinstance(item, PlexMovie)]

    async def _get_children(self, item_id: str) -> list[dict]:
        data = await self._request(f"/library/metadata/{item_id}/children")
        return data.get("MediaContainer", {}).get("Metadata", [])

    async def get_seasons(self, show_id: str) -> list[PlexSeason]:
        """Get all seasons of a TV show."""
        children = await self._get_children(show_id)
        return [PlexSeason.model_validate(c) for c in children]

    async def get_episodes(self, season_id: str) -> list[PlexEpisode]:
        """Get all episodes of a season."""
        children = await self._get_children(season_id)
        return [PlexEpisode.model_validate(c) for c in children]

    async def get_metadata(self, item_id: str) -> Optional[PlexItem]:
        """Get a single item by rating key, or None if the server has no such item."""
        try:
            data = await self._request(f"/library/metadata/{item_id}")
        except PlexError as e:
            if e.status == 404:
                return None
            raise
        metadata = data.get("MediaContainer", {}).get("Metadata", [])
        if not metadata:
            return None
        return parse_item(metadata[0])

    async def search(self, query: str) -> list[PlexItem]:
        """Search for content across all libraries."""
        data = await self._request("/search", params={"query": query})
        metadata = data.get("MediaContainer", {}).get("Metadata", [])
        return [parse_item(item) for item in metadata]

    async def get_watchlist(
        self,
        filter: Optional[str] = WatchlistFilter.ALL,
    ) -> list[PlexItem]:
        """Get the account watchlist from the Plex discover service."""
        watch_filter = WatchlistFilter(filter or WatchlistFilter.ALL)
        data = await self._request(
            f"/library/sections/watchlist/{watch_filter.value}",
            base_url=self.discover_url,
        )
        metadata = data.get("MediaContainer", {}).get("Metadata", [])
        return [parse_item(item) for item in metadata]

    async def get_devices(self) -> list[PlexDevice]:
        """Get all devices known to the Plex server."""
        data = await self._request("/devices")
        devices = data.get("MediaContainer", {}).get("Device", [])
        return [PlexDevice.model_validate(d) for d in devices]

    async def play_media(self, media_id: str, device_id: str) -> None:
        """Start playback of a media item on a device.

        Args:
            media_id: Rating key of the item to play
            device_id: Client identifier of the target device

        Raises:
            PlexNotFoundError: If the device or the media item does not exist
        """
        devices = await self.get_devices()
        if not any(d.clientIdentifier == device_id for d in devices):
            raise PlexNotFoundError(f"Device with ID {device_id} not found")

        if await self.get_metadata(media_id) is None:
            raise PlexNotFoundError(f"Media item with ID {media_id} not found")

        await self._request(
            "/player/playback/playMedia",
            expect_json=False,
            params={
                "machineIdentifier": device_id,
                "key": f"/library/metadata/{media_id}",
                "offset": 0,
                "type": "video",
                "commandID": int(time.time() * 1000),
            },
        )
        logger.info(f"Started playback of media {media_id} on device {device_id}")
