# reelarr/core/patterns.py
"""
Pattern engine: resolves a pattern's ordered variables against one text
fragment and renders the pattern's ``${name}`` output template.

Regexes and replacement strings are stored in settings using JavaScript
syntax (``(?<name>...)`` groups, ``$1`` / ``$<name>`` / ``$&`` replacement
tokens), so both are translated for Python's ``re`` here.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from reelarr.core.logger import setup_logger
from reelarr.core.models.settings import PatternBase, Variable

logger = setup_logger(__name__)
LOG_TAG = "[PATTERN]"

PLACEHOLDER_RE = re.compile(r"\$\{(\w+)\}", re.ASCII)

# (?<name>  but not the lookbehinds (?<= / (?<!
_JS_NAMED_GROUP_RE = re.compile(r"\(\?<(?=[A-Za-z_])")
_JS_NAMED_BACKREF_RE = re.compile(r"\\k<(\w+)>")
_REPLACEMENT_TOKEN_RE = re.compile(r"\$(\$|&|`|'|\d{1,2}|<[^>]*>)")


class PatternError(ValueError):
    """A variable's regex cannot be compiled."""

    def __init__(self, variable: str, regex: str, reason: str):
        self.variable = variable
        self.regex = regex
        self.reason = reason
        super().__init__(f"Invalid regex for variable '{variable}': {regex!r} ({reason})")


# ─── Resolution results ──────────────────────────────────────────────────────
@dataclass(frozen=True)
class ResolvedFrom:
    """The variable was derived from an already-resolved variable."""
    name: str
    value: str


@dataclass(frozen=True)
class FallbackToInput:
    """
    The variable was derived from the raw input. ``requested`` holds the
    ``from`` reference that could not be satisfied, if any.
    """
    requested: Optional[str] = None


VariableSource = Union[ResolvedFrom, FallbackToInput]


@dataclass(frozen=True)
class Matched:
    values: Dict[str, str]
    sources: Dict[str, VariableSource] = field(default_factory=dict)


class NoMatch:
    """The pattern does not apply to the input (guard failed or no variables)."""
    _instance: Optional["NoMatch"] = None

    def __new__(cls) -> "NoMatch":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH = NoMatch()

Resolution = Union[Matched, NoMatch]


# ─── Regex dialect ───────────────────────────────────────────────────────────
def translate_regex(source: str) -> str:
    """
    Rewrite a JavaScript regex for ``re``: ``(?<name>`` groups, ``\\k<name>``
    backreferences and a bare ``$``, which only matches at the very end of
    the input (Python's also matches before a trailing newline). Escapes and
    character classes are copied as they are.
    """
    out: List[str] = []
    i, end = 0, len(source)
    in_class = False
    while i < end:
        ch = source[i]
        if ch == "\\":
            backref = None if in_class else _JS_NAMED_BACKREF_RE.match(source, i)
            if backref:
                out.append(f"(?P={backref.group(1)})")
                i = backref.end()
            else:
                out.append(source[i:i + 2])
                i += 2
            continue
        if in_class:
            in_class = ch != "]"
        elif ch == "[":
            in_class = True
        elif ch == "$":
            out.append(r"\Z")
            i += 1
            continue
        elif _JS_NAMED_GROUP_RE.match(source, i):
            out.append("(?P<")
            i += 3
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def compile_regex(variable: Variable) -> re.Pattern[str]:
    try:
        return re.compile(translate_regex(variable.regex))
    except re.error as exc:
        raise PatternError(variable.name, variable.regex, str(exc)) from exc


def expand_replacement(match: re.Match[str], template: str) -> str:
    """Expand ``$``-style replacement tokens against ``match``."""
    group_count = match.re.groups
    group_names = match.re.groupindex

    def _group(index: Union[int, str]) -> str:
        return match.group(index) or ""

    def _token(token_match: re.Match[str]) -> str:
        token = token_match.group(1)
        if token == "$":
            return "$"
        if token == "&":
            return match.group(0)
        if token == "`":
            return match.string[:match.start()]
        if token == "'":
            return match.string[match.end():]
        if token.startswith("<"):
            if not group_names:
                return token_match.group(0)
            name = token[1:-1]
            return _group(name) if name in group_names else ""

        index = int(token)
        if 1 <= index <= group_count:
            return _group(index)
        if len(token) == 2:
            first = int(token[0])
            if 1 <= first <= group_count:
                return _group(first) + token[1]
        return token_match.group(0)

    return _REPLACEMENT_TOKEN_RE.sub(_token, template)


def replace_first(regex: re.Pattern[str], source: str, replace_with: str) -> str:
    return regex.sub(lambda m: expand_replacement(m, replace_with), source, count=1)


# ─── Resolver ────────────────────────────────────────────────────────────────
def resolve_variables(input_text: str, variables: Sequence[Variable]) -> Resolution:
    """
    Resolve ``variables`` in order against ``input_text``.

    The first variable is the guard: when its regex is not found anywhere in
    the input the result is ``NO_MATCH`` and nothing is computed. Every
    regex is compiled up front so a malformed one raises ``PatternError``
    whether or not the guard matches.
    """
    if not variables:
        logger.warning("%s No variables found in pattern", LOG_TAG)
        return NO_MATCH

    compiled: List[re.Pattern[str]] = [compile_regex(v) for v in variables]

    guard = variables[0]
    if not compiled[0].search(input_text):
        logger.debug("%s First variable %s not found in source %s", LOG_TAG, guard.name, input_text)
        return NO_MATCH

    values: Dict[str, str] = {}
    sources: Dict[str, VariableSource] = {}
    for variable, regex in zip(variables, compiled):
        if variable.from_ and variable.from_ in values:
            source_tag: VariableSource = ResolvedFrom(variable.from_, values[variable.from_])
            source = values[variable.from_]
        else:
            # unknown names and forward references fall back to the input
            source_tag = FallbackToInput(variable.from_ or None)
            source = input_text
        values[variable.name] = replace_first(regex, source, variable.replace_with).strip()
        sources[variable.name] = source_tag

    return Matched(values=values, sources=sources)


# ─── Renderer ────────────────────────────────────────────────────────────────
def render_output(template: str, variables: Dict[str, str]) -> str:
    """Substitute every ``${name}``; unbound names render as ''."""
    return PLACEHOLDER_RE.sub(lambda m: variables.get(m.group(1), ""), template)


# ─── Processor ───────────────────────────────────────────────────────────────
def apply_pattern(input_text: str, pattern: PatternBase) -> Union[str, NoMatch]:
    resolution = resolve_variables(input_text, pattern.variables)
    if isinstance(resolution, NoMatch):
        return NO_MATCH
    return render_output(pattern.output, resolution.values)
