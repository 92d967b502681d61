import asyncio

import pytest

from plex_mcp.models.plex import PlexMovie, PlexSeason
from plex_mcp.tools.mock_client import LIBRARY_CONTENTS, MockPlexClient
from plex_mcp.tools.plex_client import PlexNotFoundError


@pytest.fixture
def client():
    return MockPlexClient()


def test_libraries(client):
    libraries = asyncio.run(client.get_libraries())

    assert [(lib.key, lib.title, lib.type) for lib in libraries] == [
        ("1", "Movies", "movie"),
        ("2", "TV Shows", "show"),
    ]


@pytest.mark.parametrize("size", [1, 3, 5, 20])
def test_library_contents_page_size(client, size):
    page = asyncio.run(client.get_library_contents("1", size=size))

    assert len(page.items) <= size
    assert page.totalSize == len(LIBRARY_CONTENTS)


def test_library_contents_start_offset(client):
    page = asyncio.run(client.get_library_contents("1", start=5, size=10))

    assert [item.ratingKey for item in page.items] == ["301", "302"]
    assert page.totalSize == 7


def test_library_contents_unknown_tag(client):
    page = asyncio.run(client.get_library_contents("1", tag="nonsense"))

    assert len(page.items) == 7


def test_movies_are_movie_models(client):
    movies = asyncio.run(client.get_movies())

    assert len(movies) == 4
    assert all(isinstance(movie, PlexMovie) for movie in movies)


def test_seasons(client):
    seasons = asyncio.run(client.get_seasons("103"))

    assert all(isinstance(season, PlexSeason) for season in seasons)
    assert [season.leafCount for season in seasons] == [10, 12]


def test_search_is_case_insensitive_substring(client):
    results = asyncio.run(client.search("LETHAL"))

    assert [item.title for item in results] == ["Lethal Weapon", "Lethal Weapon 2"]


def test_search_without_match(client):
    assert asyncio.run(client.search("zzz")) == []


def test_available_watchlist_is_strict_subset(client):
    everything = {item.ratingKey for item in asyncio.run(client.get_watchlist())}
    available = {item.ratingKey for item in asyncio.run(client.get_watchlist("available"))}

    assert available == {"501", "503"}
    assert available < everything


def test_devices(client):
    devices = asyncio.run(client.get_devices())

    assert [d.clientIdentifier for d in devices] == ["mock-iphone-1", "mock-android-tv-1"]
    assert devices[0].lastSeenAt > 0


def test_play_media(client):
    asyncio.run(client.play_media("101", "mock-iphone-1"))


def test_play_media_unknown_device(client):
    with pytest.raises(PlexNotFoundError):
        asyncio.run(client.play_media("101", "nope"))


def test_play_media_unknown_item(client):
    with pytest.raises(PlexNotFoundError):
        asyncio.run(client.play_media("999", "mock-iphone-1"))
