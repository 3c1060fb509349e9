# reelarr/api/schemas.py

import re
from typing import Any, Dict, Optional, Union

from pydantic import Field, field_validator

from reelarr.core.models.settings import CamelModel

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _leading_int(value: Union[str, int, float]) -> Optional[int]:
    if isinstance(value, (int, float)):
        return int(value)
    m = _LEADING_INT_RE.match(value)
    return int(m.group(1)) if m else None


# ─── Patterns ────────────────────────────────────────────────────────────────
class PatternTesterRequest(CamelModel):
    input:      str
    pattern_id: str


class PatternTesterResponse(CamelModel):
    variables: Optional[Dict[str, str]] = None
    output:    Optional[str] = None
    error:     Optional[str] = None


# ─── TMDB ────────────────────────────────────────────────────────────────────
class FindMovieRequest(CamelModel):
    query: str
    year:  Optional[int] = None


class MovieQueryRequest(CamelModel):
    query: str = Field(min_length=1)
    year:  Optional[int] = None


class FilterCheckResult(CamelModel):
    passed:  bool
    message: str


class MovieQueryResponse(CamelModel):
    movie:              Optional[Dict[str, Any]]
    filter_checks:      Dict[str, FilterCheckResult]
    all_filters_passed: bool


# ─── Radarr ──────────────────────────────────────────────────────────────────
class RadarrCredentials(CamelModel):
    base_url: str
    api_key:  str


class AddMovieRequest(CamelModel):
    query:   str
    year:    int
    tmdb_id: Optional[str] = None

    @field_validator("year", mode="before")
    @classmethod
    def _year_from_string(cls, v: Any) -> Any:
        if isinstance(v, str):
            parsed = _leading_int(v)
            return parsed if parsed is not None else v
        return v

    @field_validator("tmdb_id", mode="before")
    @classmethod
    def _tmdb_id_to_string(cls, v: Any) -> Optional[str]:
        if v is None or v == "" or v == 0:
            return None
        return str(v).strip()


class PostReleaseRequest(CamelModel):
    title:             str
    info_url:          Optional[str] = None
    download_url:      Optional[str] = None
    magnet_url:        Optional[str] = None
    size:              int = 0
    indexer:           str
    download_protocol: str
    protocol:          str

    @field_validator("size", mode="before")
    @classmethod
    def _size_to_int(cls, v: Any) -> Any:
        if isinstance(v, (str, int, float)) and not isinstance(v, bool):
            return _leading_int(v) or 0
        return v
