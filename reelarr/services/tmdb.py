# reelarr/services/tmdb.py

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import httpx
from httpx import AsyncClient

from reelarr.core.clients import create_tmdb_client, tmdb_limiter, use_client
from reelarr.core.exceptions import TmdbError
from reelarr.core.logger import setup_logger
from reelarr.core.models.settings import TmdbConfig

logger = setup_logger(__name__)
LOG_TAG = "[TMDB]"

# release year of a detail may differ this much from the requested one
YEAR_TOLERANCE = 2


async def _get(client: AsyncClient, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Internal TMDb GET with retry/backoff on rate limiting.
    """
    backoff = 1
    for attempt in range(3):
        async with tmdb_limiter:
            resp = await client.get(endpoint, params=params)
        if resp.status_code == 429:
            logger.warning("%s 429 for %s, backing off %ds (attempt %d)", LOG_TAG, endpoint, backoff, attempt + 1)
            await asyncio.sleep(backoff + random.random())
            backoff = min(backoff * 2, 8)
            continue
        if resp.is_error:
            raise TmdbError(resp.text)
        return resp.json()
    logger.error("%s Giving up on %s after retries", LOG_TAG, endpoint)
    raise TmdbError(f"TMDB rate limit exceeded for {endpoint}")


async def search_tmdb_movie(
    title: str,
    year: Optional[int] = None,
    *,
    token: str,
    client: Optional[AsyncClient] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {"query": title}
    if year:
        params["primary_release_year"] = year
    async with use_client(client, lambda: create_tmdb_client(token)) as c:
        return await _get(c, "/search/movie", params)


async def get_first_popular_tmdb_movie(
    title: str,
    year: Optional[int] = None,
    *,
    token: str,
    client: Optional[AsyncClient] = None,
) -> Optional[Dict[str, Any]]:
    data = await search_tmdb_movie(title, year, token=token, client=client)
    movies = data.get("results")
    result = None
    if isinstance(movies, list) and movies:
        result = max(movies, key=lambda m: m.get("popularity") or 0)
    logger.info(
        "%s Query: %s %s- Found %s with ID %s",
        LOG_TAG, title, f"year: {year} " if year else "",
        result.get("title") if result else None,
        result.get("id") if result else None,
    )
    return result


async def get_tmdb_movie_detail(
    tmdb_id: Union[int, str],
    *,
    token: str,
    client: Optional[AsyncClient] = None,
) -> Dict[str, Any]:
    async with use_client(client, lambda: create_tmdb_client(token)) as c:
        data = await _get(c, f"/movie/{tmdb_id}", {"language": "en-US"})
    if not data.get("id"):
        raise TmdbError(f"Invalid TMDB movie detail: {data}")
    return data


def year_from_release_date(detail: Dict[str, Any]) -> int:
    try:
        return int((detail.get("release_date") or "").split("-")[0])
    except ValueError:
        return -1


@dataclass
class TmdbIdCheck:
    movie: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.movie is not None


async def is_valid_tmdb_id(
    tmdb_id: Union[int, str],
    year: int,
    *,
    token: str,
    client: Optional[AsyncClient] = None,
) -> TmdbIdCheck:
    try:
        detail = await get_tmdb_movie_detail(tmdb_id, token=token, client=client)
    except (TmdbError, httpx.HTTPError) as e:
        logger.error("%s Unknown error validating TMDB ID %s: %s", LOG_TAG, tmdb_id, e)
        return TmdbIdCheck(error=f"Unknown error validating TMDB ID {tmdb_id}")

    release_year = year_from_release_date(detail)
    if release_year > 0 and year - YEAR_TOLERANCE <= release_year <= year + YEAR_TOLERANCE:
        detail["year"] = release_year
        return TmdbIdCheck(movie=detail)
    return TmdbIdCheck(error=f"TMDB ID {tmdb_id} is not valid for year {year}")


# ─── Threshold checks ────────────────────────────────────────────────────────
_FILTERS = (
    # (result key, config attribute, movie field, label)
    ("minimumVoteAverage", "minimum_vote_average", "vote_average", "Vote average"),
    ("minimumPopularity",  "minimum_popularity",   "popularity",   "Popularity"),
    ("minimumVoteCount",   "minimum_vote_count",   "vote_count",   "Vote count"),
)


def check_movie_filters(movie: Optional[Dict[str, Any]], config: TmdbConfig) -> Dict[str, Dict[str, Any]]:
    """
    Compare ``movie`` against the configured minimums. An unset minimum
    always passes; a missing movie fails every check.
    """
    checks: Dict[str, Dict[str, Any]] = {}
    for key, attr, movie_field, label in _FILTERS:
        minimum = getattr(config, attr)
        if movie is None:
            checks[key] = {"passed": False, "message": "No movie found"}
            continue
        if minimum is None:
            checks[key] = {"passed": True, "message": f"No minimum {label.lower()} filter set"}
            continue
        value = movie.get(movie_field) or 0
        passed = value >= minimum
        verb = "meets" if passed else "does not meet"
        checks[key] = {
            "passed": passed,
            "message": f"{label} {value} {verb} minimum requirement ({minimum})",
        }
    return checks


def all_filters_passed(checks: Dict[str, Dict[str, Any]]) -> bool:
    return all(c["passed"] for c in checks.values())
