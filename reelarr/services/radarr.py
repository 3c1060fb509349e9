# reelarr/services/radarr.py

from typing import Any, Dict, List, Optional

from httpx import AsyncClient, Response
from pydantic import Field

from reelarr.core.clients import create_radarr_client, use_client
from reelarr.core.config import SettingsStore
from reelarr.core.exceptions import PatternNotFound, RadarrError
from reelarr.core.logger import setup_logger
from reelarr.core.models.settings import CamelModel, RadarrConfig
from reelarr.core.patterns import NoMatch, apply_pattern

logger = setup_logger(__name__)
LOG_TAG = "[RADARR]"


class RadarrRelease(CamelModel):
    title:        str
    info_url:     Optional[str] = None
    download_url: Optional[str] = None
    magnet_url:   Optional[str] = None
    protocol:     str
    publish_date: str
    indexer:      str
    size:         int = 0
    tmdb_id:      Optional[int] = Field(None, alias="tmdbId")


def _check(resp: Response, action: str) -> Response:
    if resp.is_error:
        logger.error(
            "%s Failed to %s: %s %s. Response: %s",
            LOG_TAG, action, resp.status_code, resp.reason_phrase, resp.text,
        )
        raise RadarrError(
            f"Failed to {action}: {resp.status_code} {resp.reason_phrase}",
            status_code=resp.status_code,
            body=resp.text,
        )
    return resp


async def _get_list(
    instance: RadarrConfig,
    endpoint: str,
    action: str,
    client: Optional[AsyncClient],
) -> List[Dict[str, Any]]:
    async with use_client(client, lambda: create_radarr_client(instance)) as c:
        resp = _check(await c.get(endpoint), action)
    return resp.json()


async def get_quality_profiles(instance: RadarrConfig, client: Optional[AsyncClient] = None) -> List[Dict[str, Any]]:
    return await _get_list(instance, "/qualityProfile", "get quality profiles", client)


async def get_root_folders(instance: RadarrConfig, client: Optional[AsyncClient] = None) -> List[Dict[str, Any]]:
    return await _get_list(instance, "/rootfolder", "get root folders", client)


async def get_tags(instance: RadarrConfig, client: Optional[AsyncClient] = None) -> List[Dict[str, Any]]:
    return await _get_list(instance, "/tag", "get tags", client)


async def add_movie(
    instance: RadarrConfig,
    tmdb_id: int,
    title: str,
    client: Optional[AsyncClient] = None,
) -> Any:
    payload = {
        "title": title,
        "qualityProfileId": instance.quality_profile_id,
        "monitored": True,
        "minimumAvailability": "released",
        "isAvailable": True,
        "tmdbId": tmdb_id,
        "tags": [instance.tag_id0],
        "addOptions": {"monitor": "movieOnly", "searchForMovie": False},
        "rootFolderPath": instance.root_folder_path,
    }
    async with use_client(client, lambda: create_radarr_client(instance)) as c:
        resp = _check(await c.post("/movie", json=payload), "add movie")
    logger.info("%s Added movie %s (tmdb %s)", LOG_TAG, title, tmdb_id)
    return resp.json()


def normalize_release_title(title: str, indexer: str, store: SettingsStore) -> str:
    """
    Rewrite a release title with the pattern aliased to its indexer. The
    original title is kept when no pattern exists, the guard does not match,
    or the rendered output is empty.
    """
    try:
        pattern = store.get_pattern_with_alias(indexer)
    except PatternNotFound:
        logger.debug("%s There is no pattern with alias: %s, not processing variables", LOG_TAG, indexer)
        return title

    output = apply_pattern(title, pattern)
    if isinstance(output, NoMatch) or not output:
        return title
    logger.debug("%s Processed title: %s -> %s", LOG_TAG, title, output)
    return output


async def post_release(
    instance: RadarrConfig,
    release: RadarrRelease,
    store: SettingsStore,
    client: Optional[AsyncClient] = None,
) -> Any:
    release = release.model_copy(update={"title": normalize_release_title(release.title, release.indexer, store)})
    payload = release.model_dump(by_alias=True, exclude_none=True)

    async with use_client(client, lambda: create_radarr_client(instance)) as c:
        resp = _check(await c.post("/release/push", json=payload), "post release to Radarr")

    data = resp.json()
    logger.info("%s Successfully posted release to Radarr: %s", LOG_TAG, release.title)
    logger.debug("%s request: %s response: %s", LOG_TAG, payload, data)
    return data
