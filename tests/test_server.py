import asyncio
import json
import sys

import pytest
from fastmcp import Client

from plex_mcp import server
from plex_mcp.tools.mock_client import MockPlexClient
from plex_mcp.tools.plex_client import PlexError

TOOL_NAMES = {
    "list-libraries",
    "list-library-contents",
    "list-movies",
    "list-seasons",
    "list-episodes",
    "search",
    "list-watchlist",
    "list-devices",
    "play-media",
    "server-status",
}


@pytest.fixture
def mock_plex(monkeypatch):
    client = MockPlexClient()
    monkeypatch.setattr(server, "_client", client)
    return client


class FailingClient:
    """Client whose every call fails like an unreachable Plex server."""

    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            self.calls.append(name)
            raise PlexError("Plex API error 503: Service Unavailable")
        return fail


def call_tool(name, arguments=None):
    async def run():
        async with Client(server.mcp) as client:
            return await client.call_tool(name, arguments or {}, raise_on_error=False)

    return asyncio.run(run())


def payload(result):
    assert not result.is_error, result.content[0].text
    return json.loads(result.content[0].text)


def test_registered_tools():
    async def run():
        async with Client(server.mcp) as client:
            return await client.list_tools()

    tools = {tool.name: tool for tool in asyncio.run(run())}

    assert set(tools) == TOOL_NAMES
    schema = tools["list-library-contents"].inputSchema
    assert schema["required"] == ["libraryId"]
    assert "recentlyAdded" in json.dumps(schema["properties"]["tag"])


def test_list_libraries(mock_plex):
    data = payload(call_tool("list-libraries"))

    assert data == {
        "libraries": [
            {"id": "1", "title": "Movies", "type": "movie"},
            {"id": "2", "title": "TV Shows", "type": "show"},
        ]
    }


def test_list_library_contents_end_to_end(mock_plex):
    data = payload(call_tool("list-library-contents", {"libraryId": "1"}))

    movies = [item for item in data["media"] if item["type"] == "movie"]
    assert movies
    for item in movies:
        assert item["id"]
        assert item["title"]
        assert {"duration", "rating", "summary"} <= set(item)
    show = next(item for item in data["media"] if item["type"] == "show")
    assert show["seasons"] == 5
    assert "duration" not in show
    assert data["totalSize"] == 7


def test_list_library_contents_raw_container(mock_plex):
    data = payload(call_tool("list-library-contents", {"libraryId": "1"}))

    container = data["object"]["MediaContainer"]
    assert container["content"] == "library items"
    assert container["totalSize"] == 7
    for item in container["Metadata"]:
        assert all(media["optimizedForStreaming"] is True for media in item["Media"])


def test_list_library_contents_pagination(mock_plex):
    data = payload(call_tool("list-library-contents", {"libraryId": "1", "start": 2, "size": 2}))

    assert [item["id"] for item in data["media"]] == ["103", "104"]
    assert data["totalSize"] == 7


def test_list_library_contents_rejects_unknown_tag(mock_plex):
    result = call_tool("list-library-contents", {"libraryId": "1", "tag": "bogus"})

    assert result.is_error


def test_list_library_contents_requires_library_id(mock_plex):
    result = call_tool("list-library-contents", {})

    assert result.is_error


def test_list_movies(mock_plex):
    data = payload(call_tool("list-movies"))

    assert [movie["title"] for movie in data["movies"]] == [
        "The Matrix",
        "Inception",
        "The Shawshank Redemption",
        "The Dark Knight",
    ]
    assert data["object"]["MediaContainer"]["content"] == "movies"


def test_list_seasons(mock_plex):
    data = payload(call_tool("list-seasons", {"showId": "103"}))

    assert data["seasons"][0] == {"id": "201", "title": "Season 1", "seasonNumber": 1, "episodeCount": 10}


def test_list_episodes(mock_plex):
    data = payload(call_tool("list-episodes", {"seasonId": "201"}))

    assert data["episodes"][1] == {
        "id": "302",
        "title": "Second Episode",
        "seasonNumber": 1,
        "episodeNumber": 2,
        "duration": 43,
        "summary": "Second episode.",
    }


def test_search(mock_plex):
    data = payload(call_tool("search", {"query": "matrix"}))

    assert data["results"] == [{"id": "101", "title": "The Matrix", "type": "movie", "year": 1999}]
    assert data["object"]["MediaContainer"]["content"] == "search results"


@pytest.mark.parametrize("query", ["", "   ", "\t\n"])
def test_blank_search_is_error_without_upstream_call(monkeypatch, query):
    failing = FailingClient()
    monkeypatch.setattr(server, "_client", failing)

    result = call_tool("search", {"query": query})

    assert result.is_error
    assert "Search query is required" in result.content[0].text
    assert failing.calls == []


def test_watchlist_available_is_subset(mock_plex):
    everything = payload(call_tool("list-watchlist"))["watchlist"]
    available = payload(call_tool("list-watchlist", {"filter": "available"}))["watchlist"]

    all_ids = {item["id"] for item in everything}
    available_ids = {item["id"] for item in available}
    assert available_ids < all_ids
    assert next(item for item in everything if item["type"] == "show")["seasons"] == 1


def test_list_devices(mock_plex):
    data = payload(call_tool("list-devices"))

    assert [d["id"] for d in data["devices"]] == ["mock-iphone-1", "mock-android-tv-1"]
    assert data["devices"][1]["vendor"] == "NVIDIA"


def test_play_media(mock_plex):
    data = payload(call_tool("play-media", {"mediaId": "101", "deviceId": "mock-android-tv-1"}))

    assert data["success"] is True


def test_play_media_unknown_device_is_error(mock_plex):
    result = call_tool("play-media", {"mediaId": "101", "deviceId": "missing"})

    assert result.is_error
    assert "Device with ID missing not found" in result.content[0].text


def test_server_status(mock_plex):
    data = payload(call_tool("server-status"))

    assert data["status"] == "healthy"


@pytest.mark.parametrize(
    "name,arguments,message",
    [
        ("list-libraries", {}, "Error getting libraries"),
        ("list-library-contents", {"libraryId": "1"}, "Error getting library contents"),
        ("list-movies", {}, "Error getting movies"),
        ("list-seasons", {"showId": "1"}, "Error getting seasons"),
        ("list-episodes", {"seasonId": "1"}, "Error getting episodes"),
        ("search", {"query": "x"}, "Error searching"),
        ("list-watchlist", {}, "Error getting watchlist"),
        ("list-devices", {}, "Error getting devices"),
        ("play-media", {"mediaId": "1", "deviceId": "2"}, "Playback failed"),
    ],
)
def test_upstream_failure_becomes_error_result(monkeypatch, name, arguments, message):
    monkeypatch.setattr(server, "_client", FailingClient())

    result = call_tool(name, arguments)

    assert result.is_error
    assert message in result.content[0].text
    assert "503" in result.content[0].text


def test_server_status_reports_unhealthy(monkeypatch):
    monkeypatch.setattr(server, "_client", FailingClient())

    data = payload(call_tool("server-status"))

    assert data["status"] == "unhealthy"


def test_missing_token_is_error_result(monkeypatch):
    monkeypatch.setattr(server, "_client", None)
    monkeypatch.delenv("PLEX_TOKEN", raising=False)
    monkeypatch.delenv("USE_MOCK_PLEX", raising=False)

    result = call_tool("list-libraries")

    assert result.is_error
    assert "Configuration error" in result.content[0].text


def test_create_client_uses_mock_when_requested(monkeypatch):
    monkeypatch.setenv("USE_MOCK_PLEX", "true")
    monkeypatch.delenv("PLEX_TOKEN", raising=False)

    assert isinstance(server.create_client(), MockPlexClient)


def test_main_exits_without_token(monkeypatch):
    monkeypatch.setattr(server, "_client", None)
    monkeypatch.delenv("PLEX_TOKEN", raising=False)
    monkeypatch.delenv("USE_MOCK_PLEX", raising=False)
    monkeypatch.setattr(sys, "argv", ["plex-mcp", "--transport", "stdio"])

    with pytest.raises(SystemExit) as exc:
        server.main()

    assert exc.value.code == 1


def test_main_serves_stdio_and_sse_together(monkeypatch):
    calls = []

    async def record_run_async(transport=None, **kwargs):
        calls.append((transport, kwargs))

    monkeypatch.setattr(server, "_client", None)
    monkeypatch.setenv("USE_MOCK_PLEX", "true")
    monkeypatch.setattr(server.mcp, "run_async", record_run_async)
    monkeypatch.setattr(sys, "argv", ["plex-mcp", "--transport", "both", "--port", "4321"])

    server.main()

    assert isinstance(server._client, MockPlexClient)
    transports = dict(calls)
    assert set(transports) == {"stdio", "sse"}
    assert transports["sse"]["port"] == 4321
    assert transports["sse"]["path"] == "/sse"


def test_main_defaults_to_both_transports_on_env_port(monkeypatch):
    calls = []

    async def record_run_async(transport=None, **kwargs):
        calls.append((transport, kwargs))

    monkeypatch.setattr(server, "_client", None)
    monkeypatch.setenv("USE_MOCK_PLEX", "true")
    monkeypatch.setenv("PORT", "5555")
    monkeypatch.setattr(server.mcp, "run_async", record_run_async)
    monkeypatch.setattr(sys, "argv", ["plex-mcp"])

    server.main()

    assert dict(calls)["sse"]["port"] == 5555
    assert "stdio" in dict(calls)


def test_main_stdio_transport_uses_run(monkeypatch):
    calls = []

    monkeypatch.setattr(server, "_client", None)
    monkeypatch.setenv("USE_MOCK_PLEX", "true")
    monkeypatch.setattr(server.mcp, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.setattr(sys, "argv", ["plex-mcp", "--transport", "stdio"])

    server.main()

    assert calls == [((), {})]
