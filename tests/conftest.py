import json
from pathlib import Path
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from reelarr.core.config import SettingsStore, get_settings_store
from reelarr.core.models.settings import Pattern, Variable
from reelarr.main import app


def _make_pattern(output: str, *variables: dict, aliases: list[str] | None = None) -> Pattern:
    return Pattern(
        variables=[Variable.model_validate(v) for v in variables],
        output=output,
        aliases=aliases or [],
    )


@pytest.fixture
def make_pattern() -> Callable[..., Pattern]:
    """Build a Pattern from camelCase variable dicts."""
    return _make_pattern


# Title plus year, e.g. "Griffin in Summer [2024] 1080p" -> "Griffin in Summer (2024)"
YEAR_PATTERN = {
    "variables": [
        {"name": "year", "regex": r"^.*\[(\d{4})\].*$", "replaceWith": "$1"},
        {"name": "title", "regex": r"\s*\[\d{4}\].*$", "replaceWith": ""},
    ],
    "output": "${title} (${year})",
    "aliases": ["MyIndexer"],
}

SETTINGS_DOC: dict[str, Any] = {
    "tmdbConfig": {"token": "tmdb-token", "minimumVoteAverage": 6, "minimumVoteCount": None, "minimumPopularity": None},
    "radarrInstances": {
        "main": {
            "baseUrl": "http://radarr.local",
            "apiKey": "secret",
            "qualityProfileId": "4",
            "tagId0": 2,
            "rootFolderPath": "/movies",
        },
    },
    "rssFeeds": {
        "feed1": {"url": "http://tracker.local/rss", "tags": {"title": "year"}},
        "empty": {"url": "http://tracker.local/empty", "tags": {}},
    },
    "patterns": {"year": YEAR_PATTERN},
}


@pytest.fixture
def settings_doc() -> dict[str, Any]:
    return json.loads(json.dumps(SETTINGS_DOC))


@pytest.fixture
def write_settings(tmp_path: Path) -> Callable[[Any], Path]:
    def _write(doc: Any) -> Path:
        path = tmp_path / "settings.json"
        path.write_text(json.dumps(doc), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def store(write_settings, settings_doc) -> SettingsStore:
    return SettingsStore(write_settings(settings_doc), ttl=60)


@pytest.fixture
def client(store: SettingsStore):
    app.dependency_overrides[get_settings_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
