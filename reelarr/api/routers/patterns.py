# reelarr/api/routers/patterns.py
"""
Ad-hoc pattern endpoints: the pattern tester (JSON, reports variables) and
sanitize (plain text in, plain text out).
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from reelarr.api.schemas import PatternTesterRequest, PatternTesterResponse
from reelarr.core.config import SettingsStore, get_settings_store
from reelarr.core.exceptions import PatternNotFound
from reelarr.core.logger import setup_logger
from reelarr.core.models.settings import Pattern
from reelarr.core.patterns import Matched, PatternError, apply_pattern, render_output, resolve_variables

logger = setup_logger(__name__)
router = APIRouter(tags=["Patterns"])

NO_MATCH_MESSAGE = "Pattern processing failed - first variable did not match"


@router.post("/pattern-tester", response_model=PatternTesterResponse)
def pattern_tester(req: PatternTesterRequest, store: SettingsStore = Depends(get_settings_store)):
    pattern = store.get_pattern(req.pattern_id)
    if pattern is None:
        raise HTTPException(404, f'Pattern "{req.pattern_id}" not found')

    try:
        resolution = resolve_variables(req.input, pattern.variables)
    except PatternError as e:
        logger.error("[PATTERN] Pattern tester error: %s", e)
        raise HTTPException(422, str(e))

    if not isinstance(resolution, Matched):
        return PatternTesterResponse(error=NO_MATCH_MESSAGE)

    return PatternTesterResponse(
        variables=resolution.values,
        output=render_output(pattern.output, resolution.values),
    )


def _sanitize(pattern_id: str, text: str, store: SettingsStore) -> PlainTextResponse:
    try:
        pattern: Pattern = store.get_pattern_with_alias(pattern_id)
    except PatternNotFound:
        return PlainTextResponse(f'Pattern "{pattern_id}" not found', status_code=404)

    try:
        output = apply_pattern(text, pattern)
    except PatternError as e:
        logger.error("[PATTERN] Sanitize API error: %s", e)
        return PlainTextResponse(f"Error: {e}", status_code=422)

    if not isinstance(output, str):
        return PlainTextResponse(NO_MATCH_MESSAGE)
    return PlainTextResponse(output)


@router.get("/sanitize/{pattern_id}", response_class=PlainTextResponse)
def sanitize_query(
    pattern_id: str,
    input: Optional[str] = Query(None),
    store: SettingsStore = Depends(get_settings_store),
):
    if not input:
        return PlainTextResponse(
            "Input is required. Provide ?input=... or send text in POST body", status_code=400
        )
    return _sanitize(pattern_id, input, store)


@router.post("/sanitize/{pattern_id}", response_class=PlainTextResponse)
async def sanitize_body(
    pattern_id: str,
    request: Request,
    store: SettingsStore = Depends(get_settings_store),
):
    body = (await request.body()).decode("utf-8", errors="replace")
    if not body.strip():
        return PlainTextResponse("Input is required in request body", status_code=400)
    return _sanitize(pattern_id, body, store)
