# reelarr/services/rss.py

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import aiofiles
from httpx import AsyncClient
from pydantic import BaseModel, ValidationError

from reelarr.core.clients import create_feed_client, use_client
from reelarr.core.config import SettingsStore, get_app_config
from reelarr.core.exceptions import RssFeedError
from reelarr.core.logger import setup_logger
from reelarr.core.tags import rewrite_document

logger = setup_logger(__name__)
LOG_TAG = "[RSS]"

# only these upstream response headers are passed through
PICK_RESPONSE_HEADERS = ("content-type",)
XML_MARKER = "<?xml"


class CachedRssEntry(BaseModel):
    date: datetime
    content: str
    headers: Dict[str, str]


@dataclass
class RssFeedResult:
    content: str
    headers: Dict[str, str]


def _pick_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: headers[k] for k in PICK_RESPONSE_HEADERS if k in headers}


async def _read_cache(cache_path: Path) -> Optional[CachedRssEntry]:
    if not cache_path.exists():
        return None
    try:
        async with aiofiles.open(cache_path, "r", encoding="utf-8") as f:
            raw = await f.read()
        return CachedRssEntry.model_validate_json(raw)
    except (OSError, ValidationError) as e:
        logger.error("%s cache read failed for %s: %s", LOG_TAG, cache_path.name, e)
        return None


async def _write_cache(cache_path: Path, content: str, headers: Dict[str, str], now: datetime) -> None:
    entry = CachedRssEntry(date=now, content=content, headers=headers)
    try:
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(cache_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(entry.model_dump(mode="json"), indent=2))
    except OSError as e:
        # the fetched feed is still served
        logger.warning("%s cache write failed for %s: %s", LOG_TAG, cache_path.name, e)


async def load_rss_feed(
    feed_id: str,
    url: str,
    *,
    cache_dir: Optional[Path] = None,
    cache_ttl: Optional[float] = None,
    client: Optional[AsyncClient] = None,
    now: Optional[datetime] = None,
) -> RssFeedResult:
    """
    Fetch a feed, serving it from ``<cache_dir>/<feed_id>.json`` while the
    cached copy is younger than ``cache_ttl`` seconds.

    A response that is not an XML document is cached empty so the upstream
    is not hit again until the entry expires. While that empty entry is
    fresh every call raises ``RssFeedError`` instead of refetching.
    """
    cfg = get_app_config()
    cache_dir = cache_dir or cfg.rss_cache_dir
    cache_ttl = cfg.rss_cache_ttl if cache_ttl is None else cache_ttl
    now = now or datetime.now(timezone.utc)
    cache_path = cache_dir / f"{feed_id}.json"

    cached = await _read_cache(cache_path)
    if cached is not None:
        cached_at = cached.date if cached.date.tzinfo else cached.date.replace(tzinfo=timezone.utc)
        if (now - cached_at).total_seconds() < cache_ttl:
            if XML_MARKER not in cached.content:
                logger.error("%s Cached RSS feed %s is invalid (%s)", LOG_TAG, feed_id, url)
                raise RssFeedError("Cached RSS feed is invalid")
            return RssFeedResult(cached.content, _pick_headers(cached.headers))

    logger.info("%s RSS feed %s: Fetching fresh data from %s", LOG_TAG, feed_id, url)
    async with use_client(client, create_feed_client) as c:
        resp = await c.get(url)
    headers = dict(resp.headers)
    body = resp.text
    logger.info("%s RSS feed %s: Fetched %d characters from %s", LOG_TAG, feed_id, len(body), url)

    if XML_MARKER not in body:
        logger.error("%s RSS feed %s is invalid (status %s)", LOG_TAG, feed_id, resp.status_code)
        await _write_cache(cache_path, "", headers, now)
        raise RssFeedError("RSS feed is invalid. Will retry in 5 minutes.")

    await _write_cache(cache_path, body, headers, now)
    return RssFeedResult(body, _pick_headers(headers))


async def process_feed(
    feed_id: str,
    store: SettingsStore,
    client: Optional[AsyncClient] = None,
) -> RssFeedResult:
    """
    Load a configured feed and rewrite its tags with the feed's processors.
    Raises ``LookupError`` for unknown feeds and ``RssFeedError`` when the
    feed is not usable.
    """
    feed = store.get_feed(feed_id)
    if feed is None:
        raise LookupError(f"RSS feed {feed_id} not found")
    if not feed.url:
        raise RssFeedError("RSS feed URL not configured")
    processors = store.get_feed_processors(feed_id)
    if not processors:
        raise RssFeedError("RSS feed processors not configured")

    result = await load_rss_feed(feed_id, feed.url, client=client)
    content = rewrite_document(result.content, processors, store.pattern_lookup())
    return RssFeedResult(content, result.headers)
