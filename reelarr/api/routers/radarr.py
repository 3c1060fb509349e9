# reelarr/api/routers/radarr.py

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from reelarr.api.schemas import AddMovieRequest, PostReleaseRequest, RadarrCredentials
from reelarr.core.config import SettingsStore, get_settings_store
from reelarr.core.exceptions import RadarrError, TmdbError
from reelarr.core.logger import setup_logger
from reelarr.core.models.settings import RadarrConfig
from reelarr.core.patterns import PatternError
from reelarr.services import radarr
from reelarr.services.tmdb import get_first_popular_tmdb_movie, is_valid_tmdb_id

logger = setup_logger(__name__)
router = APIRouter(tags=["Radarr"])
LOG_TAG = "[RADARR]"


def _instance_or_404(instance_id: str, store: SettingsStore) -> RadarrConfig:
    instance = store.get_radarr_instance(instance_id)
    if instance is None:
        logger.error("%s Radarr instance not found: %s", LOG_TAG, instance_id)
        raise HTTPException(404, f"Radarr instance not found: {instance_id}")
    return instance


def _credentials(creds: RadarrCredentials) -> RadarrConfig:
    return RadarrConfig(base_url=creds.base_url, api_key=creds.api_key)


# ─── Lookups ─────────────────────────────────────────────────────────────────
@router.get("/{instance_id}/quality-profiles")
async def instance_quality_profiles(instance_id: str, store: SettingsStore = Depends(get_settings_store)):
    instance = _instance_or_404(instance_id, store)
    try:
        return await radarr.get_quality_profiles(instance)
    except RadarrError as e:
        raise HTTPException(500, str(e))


@router.post("/quality-profiles")
async def quality_profiles(creds: RadarrCredentials):
    try:
        return await radarr.get_quality_profiles(_credentials(creds))
    except RadarrError as e:
        raise HTTPException(500, str(e))


@router.post("/root-folders")
async def root_folders(creds: RadarrCredentials):
    try:
        return await radarr.get_root_folders(_credentials(creds))
    except RadarrError as e:
        raise HTTPException(500, str(e))


@router.post("/tags")
async def tags(creds: RadarrCredentials):
    try:
        return await radarr.get_tags(_credentials(creds))
    except RadarrError as e:
        raise HTTPException(500, str(e))


# ─── Movies & releases ───────────────────────────────────────────────────────
@router.post("/{instance_id}/add-movie")
async def add_movie(instance_id: str, req: AddMovieRequest, store: SettingsStore = Depends(get_settings_store)):
    """
    Add a movie by TMDb id when one is given and its year checks out,
    otherwise by the most popular search match for ``query``/``year``.
    """
    token = store.get().tmdb_config.token
    try:
        movie = None
        if req.tmdb_id:
            check = await is_valid_tmdb_id(req.tmdb_id, req.year, token=token)
            if check.ok:
                movie = check.movie
            else:
                logger.warning("%s %s, falling back to search", LOG_TAG, check.error)
        if movie is None:
            movie = await get_first_popular_tmdb_movie(req.query, req.year, token=token)
    except TmdbError as e:
        raise HTTPException(500, str(e))

    if not movie:
        logger.error("%s No movie found for query: %s and year: %s", LOG_TAG, req.query, req.year)
        raise HTTPException(404, f"No movie found for query: {req.query} and year: {req.year}")

    instance = _instance_or_404(instance_id, store)
    try:
        return await radarr.add_movie(instance, tmdb_id=movie["id"], title=movie.get("title", req.query))
    except RadarrError as e:
        raise HTTPException(500, str(e))


@router.post("/{instance_id}/post-release")
async def post_release(instance_id: str, req: PostReleaseRequest, store: SettingsStore = Depends(get_settings_store)):
    instance = _instance_or_404(instance_id, store)
    release = radarr.RadarrRelease(
        title=req.title,
        info_url=req.info_url,
        download_url=req.download_url,
        magnet_url=req.magnet_url,
        protocol=req.protocol,
        publish_date=datetime.now(timezone.utc).isoformat(),
        indexer=req.indexer,
        size=req.size,
    )
    try:
        return await radarr.post_release(instance, release, store)
    except PatternError as e:
        logger.error("%s Failed to post release: %s", LOG_TAG, e)
        raise HTTPException(422, str(e))
    except RadarrError as e:
        raise HTTPException(500, str(e))
