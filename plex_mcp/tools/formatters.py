"""Reshape Plex models into the flat dicts returned by the MCP tools."""

from typing import Any, Optional, Sequence

from ..models.plex import (
    PlexDevice,
    PlexEpisode,
    PlexItem,
    PlexItemBase,
    PlexLibrarySection,
    PlexMovie,
    PlexOtherItem,
    PlexSeason,
    PlexShow,
)


def format_library(section: PlexLibrarySection) -> dict:
    return {"id": section.key, "title": section.title, "type": section.type}


def format_media_item(item: PlexItem) -> dict:
    """Project an item to id/title/year/type plus the fields its type carries."""
    result: dict[str, Any] = {
        "id": item.ratingKey,
        "title": item.title,
        "year": item.year,
        "type": item.type,
    }

    if isinstance(item, PlexMovie):
        result.update(duration=item.duration, rating=item.rating, summary=item.summary)
    elif isinstance(item, PlexShow):
        result.update(seasons=item.childCount, episodes=item.leafCount, summary=item.summary)
    elif isinstance(item, PlexSeason):
        result.update(seasonNumber=item.index, episodeCount=item.leafCount)
    elif isinstance(item, PlexEpisode):
        result.update(
            seasonNumber=item.parentIndex,
            episodeNumber=item.index,
            duration=item.duration,
            summary=item.summary,
        )
    elif not isinstance(item, PlexOtherItem):
        raise TypeError(f"Unsupported item model: {type(item).__name__}")

    return result


def format_movie(movie: PlexMovie) -> dict:
    return {
        "id": movie.ratingKey,
        "title": movie.title,
        "year": movie.year,
        "duration": movie.duration,
        "rating": movie.rating,
        "summary": movie.summary,
    }


def format_season(season: PlexSeason) -> dict:
    return {
        "id": season.ratingKey,
        "title": season.title,
        "seasonNumber": season.index,
        "episodeCount": season.leafCount,
    }


def format_episode(episode: PlexEpisode) -> dict:
    return {
        "id": episode.ratingKey,
        "title": episode.title,
        "seasonNumber": episode.parentIndex,
        "episodeNumber": episode.index,
        "duration": episode.duration,
        "summary": episode.summary,
    }


def format_search_result(item: PlexItem) -> dict:
    return {
        "id": item.ratingKey,
        "title": item.title,
        "type": item.type,
        "year": item.year,
    }


def format_device(device: PlexDevice) -> dict:
    return {
        "id": device.clientIdentifier,
        "name": device.name,
        "product": device.product,
        "productVersion": device.productVersion,
        "platform": device.platform,
        "platformVersion": device.platformVersion,
        "device": device.device,
        "model": device.model,
        "vendor": device.vendor,
        "provides": device.provides,
        "owned": device.owned,
        "lastSeenAt": device.lastSeenAt,
        "publicAddress": device.publicAddress,
    }


def _raw_item(item: PlexItemBase) -> dict:
    raw = item.model_dump(mode="json", exclude_unset=True)
    raw["Media"] = [media.model_dump(mode="json") for media in item.Media]
    return raw


def build_media_container(
    items: Sequence[PlexItemBase],
    content: str,
    total_size: Optional[int] = None,
) -> dict:
    """Rebuild the upstream MediaContainer envelope for the given items.

    Every Media entry carries optimizedForStreaming (true unless the server said
    otherwise), and items without a Media array get a single default entry. Other
    fields appear only if the server sent them.
    """
    container: dict[str, Any] = {"content": content}
    if total_size is not None:
        container["totalSize"] = total_size
    container["Metadata"] = [_raw_item(item) for item in items]
    return {"MediaContainer": container}
