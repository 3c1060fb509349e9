# reelarr/core/models/settings.py
from typing import Annotated, Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, WrapValidator
from pydantic.alias_generators import to_camel


def _or_default(default_factory: Callable[[], Any]):
    """
    Build a wrap validator that swaps an invalid value for a default instead
    of failing the whole settings document.
    """
    def _validate(value: Any, handler) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return default_factory()
    return _validate


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Lenient field types ─────────────────────────────────────────────────────
LenientStr      = Annotated[str, WrapValidator(_or_default(str))]
LenientInt      = Annotated[int, WrapValidator(_or_default(int))]
OptionalStr     = Annotated[Optional[str], WrapValidator(_or_default(lambda: None))]
OptionalFloat   = Annotated[Optional[float], WrapValidator(_or_default(lambda: None))]
OptionalInt     = Annotated[Optional[int], WrapValidator(_or_default(lambda: None))]
StrList         = Annotated[List[str], WrapValidator(_or_default(list))]
StrMap          = Annotated[Dict[str, str], WrapValidator(_or_default(dict))]


# ─── Pattern engine configuration ────────────────────────────────────────────
class Variable(CamelModel):
    """
    One step of a pattern: ``regex`` is replaced (first match only) by
    ``replace_with`` in the source text and the trimmed result is bound to
    ``name``. The source is the variable named by ``from_`` when it was
    already resolved, otherwise the pattern input.
    """
    name:         LenientStr  = ""
    from_:        OptionalStr = Field(None, alias="from")
    regex:        LenientStr  = ""
    replace_with: LenientStr  = ""


VariableList = Annotated[
    List[Annotated[Variable, WrapValidator(_or_default(Variable))]],
    WrapValidator(_or_default(list)),
]


class PatternBase(CamelModel):
    variables: VariableList = Field(default_factory=list)
    output:    LenientStr   = ""


class Pattern(PatternBase):
    """Named pattern, looked up by id or case-insensitively by alias."""
    aliases: StrList = Field(default_factory=list)


class Processor(PatternBase):
    """Pattern embedded in a feed definition and scoped to one tag."""
    tag: LenientStr = ""


class RssFeed(CamelModel):
    url:        LenientStr = ""
    # tag name -> pattern id, applied in insertion order
    tags:       StrMap     = Field(default_factory=dict)
    processors: Annotated[
        List[Annotated[Processor, WrapValidator(_or_default(Processor))]],
        WrapValidator(_or_default(list)),
    ] = Field(default_factory=list)


# ─── External services ───────────────────────────────────────────────────────
class TmdbConfig(CamelModel):
    token:                LenientStr    = ""
    minimum_vote_average: OptionalFloat = None
    minimum_vote_count:   OptionalInt   = None
    minimum_popularity:   OptionalFloat = None


class RadarrConfig(CamelModel):
    base_url:           LenientStr = ""
    api_key:            LenientStr = ""
    quality_profile_id: LenientInt = 0
    tag_id0:            LenientInt = 0
    root_folder_path:   LenientStr = ""


class Settings(CamelModel):
    tmdb_config: Annotated[TmdbConfig, WrapValidator(_or_default(TmdbConfig))] = Field(
        default_factory=TmdbConfig
    )
    radarr_instances: Annotated[
        Dict[str, Annotated[RadarrConfig, WrapValidator(_or_default(RadarrConfig))]],
        WrapValidator(_or_default(dict)),
    ] = Field(default_factory=dict)
    rss_feeds: Annotated[
        Dict[str, Annotated[RssFeed, WrapValidator(_or_default(RssFeed))]],
        WrapValidator(_or_default(dict)),
    ] = Field(default_factory=dict)
    patterns: Annotated[
        Dict[str, Annotated[Pattern, WrapValidator(_or_default(Pattern))]],
        WrapValidator(_or_default(dict)),
    ] = Field(default_factory=dict)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
