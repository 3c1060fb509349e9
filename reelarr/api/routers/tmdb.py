# reelarr/api/routers/tmdb.py

from fastapi import APIRouter, Depends, HTTPException

from reelarr.api.schemas import FindMovieRequest, MovieQueryRequest, MovieQueryResponse
from reelarr.core.config import SettingsStore, get_settings_store
from reelarr.core.exceptions import TmdbError
from reelarr.core.logger import setup_logger
from reelarr.services.tmdb import all_filters_passed, check_movie_filters, get_first_popular_tmdb_movie

logger = setup_logger(__name__)
router = APIRouter(tags=["TMDb"])


@router.post("/tmdb", name="tmdb.find_movie")
async def find_movie(req: FindMovieRequest, store: SettingsStore = Depends(get_settings_store)):
    token = store.get().tmdb_config.token
    try:
        return await get_first_popular_tmdb_movie(req.query, req.year, token=token)
    except TmdbError as e:
        raise HTTPException(500, str(e))


@router.post("/movie-query", response_model=MovieQueryResponse, name="tmdb.movie_query")
async def movie_query(req: MovieQueryRequest, store: SettingsStore = Depends(get_settings_store)):
    """
    Look up the most popular match and report how it fares against the
    configured TMDb thresholds.
    """
    tmdb_config = store.get().tmdb_config
    try:
        movie = await get_first_popular_tmdb_movie(req.query, req.year, token=tmdb_config.token)
    except TmdbError as e:
        logger.error("[TMDB] Error in Movie Query API: %s", e)
        raise HTTPException(500, str(e))

    checks = check_movie_filters(movie, tmdb_config)
    return MovieQueryResponse(
        movie=movie,
        filter_checks=checks,
        all_filters_passed=movie is not None and all_filters_passed(checks),
    )
