# reelarr/api/routers/rss.py

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from reelarr.core.config import SettingsStore, get_settings_store
from reelarr.core.exceptions import RssFeedError
from reelarr.core.logger import setup_logger
from reelarr.core.patterns import PatternError
from reelarr.services.rss import process_feed

logger = setup_logger(__name__)
router = APIRouter(tags=["RSS"])


@router.get("/{feed_id}", name="rss.get_feed")
async def get_feed(feed_id: str, store: SettingsStore = Depends(get_settings_store)):
    """
    Serve a configured upstream feed with its tags rewritten by the feed's
    patterns.
    """
    try:
        result = await process_feed(feed_id, store)
    except LookupError:
        raise HTTPException(404, "RSS feed not found")
    except PatternError as e:
        logger.error("[RSS] Error generating feed %s: %s", feed_id, e)
        raise HTTPException(422, str(e))
    except RssFeedError as e:
        logger.error("[RSS] Error generating feed %s: %s", feed_id, e)
        raise HTTPException(500, str(e))
    return Response(content=result.content, headers=result.headers)
