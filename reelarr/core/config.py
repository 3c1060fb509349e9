# reelarr/core/config.py
import json
import os
import shutil
import time
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from reelarr.core.exceptions import PatternNotFound
from reelarr.core.logger import setup_logger
from reelarr.core.models.settings import (
    Pattern,
    RadarrConfig,
    RssFeed,
    Settings,
)
from reelarr.core.tags import PatternLookup, PatternRef

logger = setup_logger(__name__)
LOG_TAG = "[SETTINGS]"


# ─── 1) Process-level configuration ──────────────────────────────────────────
class AppConfig(BaseModel):
    config_dir:      Path  = Path("config")
    settings_ttl:    float = Field(60.0, ge=0, description="Seconds a settings read stays cached")
    rss_cache_ttl:   float = Field(300.0, ge=0, description="Seconds a fetched feed stays fresh")
    tmdb_base_url:   str   = "https://api.themoviedb.org/3"
    tmdb_rate_limit: int   = 40
    http_timeout:    float = 10.0

    @property
    def settings_path(self) -> Path:
        return self.config_dir / "settings.json"

    @property
    def rss_cache_dir(self) -> Path:
        return self.config_dir / "cache" / "rss"

    @classmethod
    def from_env(cls) -> "AppConfig":
        env = {
            "config_dir":      os.environ.get("REELARR_CONFIG_DIR"),
            "settings_ttl":    os.environ.get("REELARR_SETTINGS_TTL"),
            "rss_cache_ttl":   os.environ.get("REELARR_RSS_CACHE_TTL"),
            "tmdb_base_url":   os.environ.get("REELARR_TMDB_BASE_URL"),
            "tmdb_rate_limit": os.environ.get("REELARR_TMDB_RATE_LIMIT"),
            "http_timeout":    os.environ.get("REELARR_HTTP_TIMEOUT"),
        }
        return cls(**{k: v for k, v in env.items() if v is not None})


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    return AppConfig.from_env()


# ─── 2) Settings store ───────────────────────────────────────────────────────
@dataclass
class _CacheEntry:
    data: Settings
    pattern_aliases: Dict[str, Pattern]
    timestamp: float


def _alias_index(settings: Settings) -> Dict[str, Pattern]:
    return {
        alias.lower(): pattern
        for pattern in settings.patterns.values()
        for alias in pattern.aliases
    }


@dataclass
class SettingsStore:
    """
    Reads ``settings.json`` through a time-bounded cache. ``invalidate()``
    forces the next read back to disk; ``save()`` writes and refreshes it.
    """
    path: Path
    ttl: float = 60.0
    clock: Callable[[], float] = time.monotonic
    _cache: Optional[_CacheEntry] = field(default=None, init=False, repr=False)

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".bak")

    def invalidate(self) -> None:
        self._cache = None

    def _load_from_disk(self) -> Settings:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return Settings.model_validate(data)
        except (OSError, ValueError) as e:
            logger.error("%s Failed to load settings: %s", LOG_TAG, e)
            logger.error("%s Returning default settings", LOG_TAG)
            return Settings()

    def _entry(self) -> _CacheEntry:
        now = self.clock()
        cached = self._cache
        if cached is not None and now - cached.timestamp < self.ttl:
            return cached
        settings = self._load_from_disk()
        entry = _CacheEntry(settings, _alias_index(settings), now)
        self._cache = entry
        return entry

    def get(self) -> Settings:
        return self._entry().data

    def save(self, data: Any) -> Settings:
        """
        Validate and persist ``data``. Raises ``pydantic.ValidationError``
        when it is not a settings document at all.
        """
        parsed = data if isinstance(data, Settings) else Settings.model_validate(data)
        try:
            shutil.copyfile(self.path, self.backup_path)
        except OSError:
            logger.error("%s Failed to create backup of %s", LOG_TAG, self.path.name)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(parsed.to_json_dict(), indent=2), encoding="utf-8")
        self._cache = _CacheEntry(parsed, _alias_index(parsed), self.clock())
        return parsed

    # ─── Lookups ─────────────────────────────────────────────────────────────
    def get_pattern(self, pattern_id: str) -> Optional[Pattern]:
        return self.get().patterns.get(pattern_id)

    def get_pattern_with_alias(self, id_or_alias: str) -> Pattern:
        entry = self._entry()
        pattern = entry.data.patterns.get(id_or_alias)
        if pattern is None:
            pattern = entry.pattern_aliases.get(id_or_alias.lower())
        if pattern is None:
            raise PatternNotFound(id_or_alias)
        return pattern

    def pattern_lookup(self) -> PatternLookup:
        patterns = dict(self.get().patterns)
        return patterns.get

    def get_radarr_instance(self, instance_id: str) -> Optional[RadarrConfig]:
        return self.get().radarr_instances.get(instance_id)

    def get_feed(self, feed_id: str) -> Optional[RssFeed]:
        return self.get().rss_feeds.get(feed_id)

    def get_feed_processors(self, feed_id: str) -> List[Tuple[str, PatternRef]]:
        """
        Ordered ``(tag, pattern ref)`` pairs for a feed: the ``tags`` mapping
        (pattern ids) first, then inline processors.
        """
        feed = self.get_feed(feed_id)
        if feed is None:
            return []
        pairs: List[Tuple[str, PatternRef]] = list(feed.tags.items())
        pairs.extend((p.tag, p) for p in feed.processors if p.tag)
        return pairs


# ─── 3) Dependency provider ──────────────────────────────────────────────────
@lru_cache(maxsize=1)
def get_settings_store() -> SettingsStore:
    cfg = get_app_config()
    return SettingsStore(cfg.settings_path, ttl=cfg.settings_ttl)
