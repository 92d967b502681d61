"""Plex MCP Server - Plex library browsing via MCP protocol."""

import argparse
import asyncio
import logging
import os
import sys
from typing import Annotated, Literal, Optional, Union

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from .models.plex import ContentType, Tag
from .tools.formatters import (
    build_media_container,
    format_device,
    format_episode,
    format_library,
    format_media_item,
    format_movie,
    format_search_result,
    format_season,
)
from .tools.mock_client import MockPlexClient
from .tools.plex_client import PlexClient, PlexConfigError, PlexError

load_dotenv()

# Configure logging. stdout carries the stdio transport, so records go to stderr or LOG_FILE.
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=os.getenv("LOG_FILE") or None,
)
logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = FastMCP(
    "plex-mcp",
    instructions="Retrieve movies and TV shows from a Plex Media Server",
)

# Global client instance
_client: Optional[Union[PlexClient, MockPlexClient]] = None

TagName = Literal["newest", "recentlyAdded", "recentlyViewed", "onDeck", "unwatched", "collection"]


def use_mock() -> bool:
    return os.getenv("USE_MOCK_PLEX", "").lower() == "true"


def create_client() -> Union[PlexClient, MockPlexClient]:
    """Build the mock client when USE_MOCK_PLEX=true, the real one otherwise."""
    if use_mock():
        logger.info("Using mock Plex client (USE_MOCK_PLEX=true)")
        return MockPlexClient()
    client = PlexClient()
    logger.info(f"Plex client initialized for {client.base_url}")
    return client


def get_client() -> Union[PlexClient, MockPlexClient]:
    """Get or create the Plex client."""
    global _client
    if _client is None:
        try:
            _client = create_client()
        except PlexConfigError as e:
            raise ToolError(f"Configuration error: {str(e)}")
    return _client


@mcp.tool(name="list-libraries")
async def list_libraries() -> dict:
    """List all libraries on the Plex server.

    Returns:
        Library IDs, titles and types (movie, show, artist, photo)
    """
    logger.info("Getting libraries")
    try:
        libraries = await get_client().get_libraries()
        return {"libraries": [format_library(lib) for lib in libraries]}
    except PlexError as e:
        logger.error(f"Error getting libraries: {e}")
        raise ToolError(f"Error getting libraries: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error getting libraries")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="list-library-contents")
async def list_library_contents(
    libraryId: Annotated[str, Field(description="The ID of the library")],
    type: Annotated[
        int,
        Field(ge=1, le=4, description="The type of content to retrieve (1=movie, 2=show, 3=season, 4=episode)"),
    ] = ContentType.MOVIE.value,
    tag: Annotated[TagName, Field(description="The tag to filter by")] = Tag.NEWEST.value,
    start: Annotated[int, Field(ge=0, description="Starting index for pagination (default: 0)")] = 0,
    size: Annotated[int, Field(ge=1, description="Number of items to return (default: 20)")] = 20,
) -> dict:
    """Get one page of the contents of a library.

    Use list-libraries first to find the library ID.

    Returns:
        Media items with type-specific fields, the total item count in the library,
        and the raw MediaContainer for the page
    """
    logger.info(
        f"Getting contents of library {libraryId} "
        f"(type={type}, tag={tag}, start={start}, size={size})"
    )
    try:
        page = await get_client().get_library_contents(
            libraryId, type=type, tag=Tag.parse(tag), start=start, size=size
        )
        return {
            "media": [format_media_item(item) for item in page.items],
            "totalSize": page.totalSize,
            "object": build_media_container(page.items, "library items", page.totalSize),
        }
    except PlexError as e:
        logger.error(f"Error getting contents of library {libraryId}: {e}")
        raise ToolError(f"Error getting library contents: {str(e)}")
    except Exception as e:
        logger.exception(f"Unexpected error getting contents of library {libraryId}")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="list-movies")
async def list_movies() -> dict:
    """List movies from every movie library on the server.

    Returns:
        Movies with IDs, titles, years, durations, ratings and summaries
    """
    logger.info("Getting movies")
    try:
        movies = await get_client().get_movies()
        return {
            "movies": [format_movie(movie) for movie in movies],
            "object": build_media_container(movies, "movies"),
        }
    except PlexError as e:
        logger.error(f"Error getting movies: {e}")
        raise ToolError(f"Error getting movies: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error getting movies")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="list-seasons")
async def list_seasons(
    showId: Annotated[str, Field(description="The rating key of the TV show")],
) -> dict:
    """List the seasons of a TV show.

    Returns:
        Seasons with IDs, titles, season numbers and episode counts
    """
    logger.info(f"Getting seasons for show {showId}")
    try:
        seasons = await get_client().get_seasons(showId)
        return {"seasons": [format_season(season) for season in seasons]}
    except PlexError as e:
        logger.error(f"Error getting seasons for show {showId}: {e}")
        raise ToolError(f"Error getting seasons: {str(e)}")
    except Exception as e:
        logger.exception(f"Unexpected error getting seasons for show {showId}")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="list-episodes")
async def list_episodes(
    seasonId: Annotated[str, Field(description="The rating key of the season")],
) -> dict:
    """List the episodes of a season.

    Returns:
        Episodes with IDs, titles, season/episode numbers, durations and summaries
    """
    logger.info(f"Getting episodes for season {seasonId}")
    try:
        episodes = await get_client().get_episodes(seasonId)
        return {"episodes": [format_episode(episode) for episode in episodes]}
    except PlexError as e:
        logger.error(f"Error getting episodes for season {seasonId}: {e}")
        raise ToolError(f"Error getting episodes: {str(e)}")
    except Exception as e:
        logger.exception(f"Unexpected error getting episodes for season {seasonId}")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="search")
async def search(
    query: Annotated[str, Field(description="The search query")],
) -> dict:
    """Search for movies, shows and episodes across all libraries.

    Returns:
        Matching items with IDs, titles, types and years
    """
    if not query or not query.strip():
        raise ToolError("Search query is required")

    logger.info(f"Searching for {query!r}")
    try:
        results = await get_client().search(query)
        return {
            "results": [format_search_result(item) for item in results],
            "object": build_media_container(results, "search results"),
        }
    except PlexError as e:
        logger.error(f"Error searching for {query!r}: {e}")
        raise ToolError(f"Error searching: {str(e)}")
    except Exception as e:
        logger.exception(f"Unexpected error searching for {query!r}")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="list-watchlist")
async def list_watchlist(
    filter: Annotated[
        Optional[Literal["all", "available", "released"]],
        Field(description="Optional filter: 'all', 'available', or 'released'"),
    ] = None,
) -> dict:
    """Get the account's watchlist.

    Returns:
        Watchlist entries with type-specific fields
    """
    logger.info(f"Getting watchlist (filter={filter or 'none'})")
    try:
        watchlist = await get_client().get_watchlist(filter)
        return {"watchlist": [format_media_item(item) for item in watchlist]}
    except PlexError as e:
        logger.error(f"Error getting watchlist (filter={filter or 'none'}): {e}")
        raise ToolError(f"Error getting watchlist: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error getting watchlist")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="list-devices")
async def list_devices() -> dict:
    """List devices connected to the Plex server.

    Use the device ID with play-media to start playback on it.

    Returns:
        Devices with client identifiers, names, products, platforms and last-seen times
    """
    logger.info("Getting devices")
    try:
        devices = await get_client().get_devices()
        return {"devices": [format_device(device) for device in devices]}
    except PlexError as e:
        logger.error(f"Error getting devices: {e}")
        raise ToolError(f"Error getting devices: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error getting devices")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="play-media")
async def play_media(
    mediaId: Annotated[str, Field(description="The rating key of the item to play")],
    deviceId: Annotated[str, Field(description="The client identifier of the device (from list-devices)")],
) -> dict:
    """Start playback of a media item on a device.

    Returns:
        Confirmation that playback was started
    """
    logger.info(f"Playing media {mediaId} on device {deviceId}")
    try:
        await get_client().play_media(mediaId, deviceId)
        return {
            "success": True,
            "mediaId": mediaId,
            "deviceId": deviceId,
            "message": f"Started playback of {mediaId} on {deviceId}",
        }
    except PlexError as e:
        logger.error(f"Error playing media {mediaId} on device {deviceId}: {e}")
        raise ToolError(f"Playback failed: {str(e)}")
    except Exception as e:
        logger.exception(f"Unexpected error playing media {mediaId}")
        raise ToolError(f"Unexpected error: {str(e)}")


@mcp.tool(name="server-status")
async def server_status() -> dict:
    """Check Plex server status and connectivity.

    Returns:
        Server status and version information
    """
    try:
        status = await get_client().get_status()
        return {"status": "healthy", "plex": status}
    except (PlexError, ToolError) as e:
        return {"status": "unhealthy", "error": str(e)}
    except Exception as e:
        return {"status": "error", "error": str(e)}


async def serve_both(host: str, port: int) -> None:
    """Serve the same tools over stdio and SSE at once.

    SSE clients open GET /sse and post to /messages/?session_id=...; each connection
    keeps its own session.
    """
    await asyncio.gather(
        mcp.run_async(transport="stdio"),
        mcp.run_async(transport="sse", host=host, port=port, path="/sse"),
    )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Plex MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http", "both"],
        default="both",
        help="Transport mode (default: both, stdio plus sse)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3000")),
        help="Port for HTTP transport (default: 3000)",
    )

    args = parser.parse_args()

    global _client
    try:
        _client = create_client()
    except PlexConfigError as e:
        logger.error(f"Error initializing Plex client: {e}")
        logger.error("Set USE_MOCK_PLEX=true to use the mock client instead")
        sys.exit(1)

    logger.info(f"Starting Plex MCP server with {args.transport} transport")

    if args.transport == "stdio":
        mcp.run()
    elif args.transport == "sse":
        mcp.run(transport="sse", host=args.host, port=args.port, path="/sse")
    elif args.transport == "streamable-http":
        mcp.run(transport="streamable-http", host=args.host, port=args.port)
    else:
        logger.info(f"MCP SSE endpoint at http://{args.host}:{args.port}/sse")
        asyncio.run(serve_both(args.host, args.port))


if __name__ == "__main__":
    main()
