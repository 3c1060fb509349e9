# reelarr/api/routers/settings.py

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from reelarr.core.config import SettingsStore, get_settings_store
from reelarr.core.logger import setup_logger

logger = setup_logger(__name__)
router = APIRouter(tags=["Settings"])


@router.get("", summary="Fetch current settings", name="settings.get_settings")
def read_settings(store: SettingsStore = Depends(get_settings_store)) -> Dict[str, Any]:
    """Return cached settings; re-read from disk once the cache expires."""
    return store.get().to_json_dict()


@router.post("", summary="Replace all settings")
def replace_settings(
    new: Any = Body(...),
    store: SettingsStore = Depends(get_settings_store),
):
    """
    Validate, back up the previous file, persist and refresh the cache.
    """
    try:
        store.save(new)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail={"error": "Invalid settings format", "details": e.errors(include_url=False)})
    logger.info("[SETTINGS] Settings saved")
    return {"success": True}


@router.post("/invalidate", summary="Drop cached settings")
def invalidate_settings(store: SettingsStore = Depends(get_settings_store)):
    store.invalidate()
    return {"success": True}
