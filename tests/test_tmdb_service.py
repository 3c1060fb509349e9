"""Tests for the TMDB service helpers."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from reelarr.core.exceptions import TmdbError
from reelarr.core.models.settings import TmdbConfig
from reelarr.services.tmdb import (
    all_filters_passed,
    check_movie_filters,
    get_first_popular_tmdb_movie,
    get_tmdb_movie_detail,
    is_valid_tmdb_id,
    year_from_release_date,
)

RESULTS = [
    {"id": 1, "title": "Alien Remake", "popularity": 3.5},
    {"id": 348, "title": "Alien", "popularity": 80.2},
    {"id": 7, "title": "Alien Doc", "popularity": None},
]


def tmdb_client(routes: dict, requests: list | None = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"status_message": "not found"})
        status, body = route
        return httpx.Response(status, json=body)
    return httpx.AsyncClient(base_url="https://tmdb.test/3", transport=httpx.MockTransport(handler))


def test_most_popular_result_is_picked():
    requests = []
    client = tmdb_client({"/3/search/movie": (200, {"results": RESULTS})}, requests)

    movie = asyncio.run(get_first_popular_tmdb_movie("Alien", 1979, token="t", client=client))

    assert movie["id"] == 348
    assert requests[0].url.params["query"] == "Alien"
    assert requests[0].url.params["primary_release_year"] == "1979"


def test_year_is_optional():
    requests = []
    client = tmdb_client({"/3/search/movie": (200, {"results": RESULTS})}, requests)
    asyncio.run(get_first_popular_tmdb_movie("Alien", token="t", client=client))
    assert "primary_release_year" not in requests[0].url.params


def test_no_results_gives_none():
    client = tmdb_client({"/3/search/movie": (200, {"results": []})})
    assert asyncio.run(get_first_popular_tmdb_movie("Nothing", token="t", client=client)) is None


def test_error_response_raises():
    client = tmdb_client({"/3/search/movie": (401, {"status_message": "bad token"})})
    with pytest.raises(TmdbError, match="bad token"):
        asyncio.run(get_first_popular_tmdb_movie("Alien", token="t", client=client))


def test_rate_limited_requests_are_retried(mocker):
    sleep = mocker.patch("reelarr.services.tmdb.asyncio.sleep", new=AsyncMock())
    responses = iter([httpx.Response(429), httpx.Response(200, json={"results": RESULTS})])
    client = httpx.AsyncClient(
        base_url="https://tmdb.test/3",
        transport=httpx.MockTransport(lambda request: next(responses)),
    )

    movie = asyncio.run(get_first_popular_tmdb_movie("Alien", token="t", client=client))

    assert movie["id"] == 348
    sleep.assert_awaited_once()


def test_detail_requires_id():
    client = tmdb_client({"/3/movie/5": (200, {"title": "no id"})})
    with pytest.raises(TmdbError):
        asyncio.run(get_tmdb_movie_detail(5, token="t", client=client))


@pytest.mark.parametrize(
    ("release_date", "year", "ok"),
    [
        ("1979-05-25", 1979, True),
        ("1979-05-25", 1981, True),
        ("1979-05-25", 1977, True),
        ("1979-05-25", 1982, False),
        ("", 1979, False),
    ],
)
def test_tmdb_id_year_window(release_date, year, ok):
    client = tmdb_client({"/3/movie/348": (200, {"id": 348, "title": "Alien", "release_date": release_date})})
    check = asyncio.run(is_valid_tmdb_id(348, year, token="t", client=client))
    assert check.ok is ok
    if ok:
        assert check.movie["year"] == 1979
    else:
        assert "not valid for year" in check.error


def test_tmdb_id_lookup_failure():
    client = tmdb_client({})
    check = asyncio.run(is_valid_tmdb_id(999, 2000, token="t", client=client))
    assert not check.ok
    assert check.error == "Unknown error validating TMDB ID 999"


def test_year_from_release_date():
    assert year_from_release_date({"release_date": "2024-07-19"}) == 2024
    assert year_from_release_date({"release_date": None}) == -1
    assert year_from_release_date({}) == -1


# ─── Threshold checks ────────────────────────────────────────────────────────

def test_filters_pass_and_fail():
    config = TmdbConfig(minimum_vote_average=6.5, minimum_popularity=10, minimum_vote_count=None)
    checks = check_movie_filters({"vote_average": 7.1, "popularity": 4.2, "vote_count": 3}, config)

    assert checks["minimumVoteAverage"] == {"passed": True, "message": "Vote average 7.1 meets minimum requirement (6.5)"}
    assert checks["minimumPopularity"]["passed"] is False
    assert "does not meet" in checks["minimumPopularity"]["message"]
    assert checks["minimumVoteCount"] == {"passed": True, "message": "No minimum vote count filter set"}
    assert not all_filters_passed(checks)


def test_filters_without_movie_all_fail():
    checks = check_movie_filters(None, TmdbConfig())
    assert all(not c["passed"] for c in checks.values())
    assert checks["minimumVoteCount"]["message"] == "No movie found"


def test_filters_with_no_minimums_pass():
    assert all_filters_passed(check_movie_filters({"vote_average": 1}, TmdbConfig()))
