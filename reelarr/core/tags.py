# reelarr/core/tags.py
"""
Tag extraction and in-place rewriting of XML documents (RSS feeds).

This is plain regex matching, not an XML parser: nested tags of the same
name close at the first closing tag and self-closing tags never match.
"""
import re
from typing import Callable, Iterable, List, Mapping, Optional, Tuple, Union

from reelarr.core.logger import setup_logger
from reelarr.core.models.settings import PatternBase
from reelarr.core.patterns import NoMatch, apply_pattern

logger = setup_logger(__name__)
LOG_TAG = "[RSS]"

# a pattern id, or an inline processor/pattern
PatternRef = Union[str, PatternBase]
PatternLookup = Callable[[str], Optional[PatternBase]]
TagPatterns = Union[Mapping[str, PatternRef], Iterable[Tuple[str, PatternRef]]]


def _tag_regex(tag: str) -> re.Pattern[str]:
    name = re.escape(tag)
    return re.compile(rf"<{name}(?:\s[^>]*)?>([\s\S]*?)</{name}>")


def extract_tags(document: str, tag: str) -> List[str]:
    """
    Return the inner content of every ``<tag ...>...</tag>`` in document
    order, verbatim.

    >>> extract_tags('<title>title1</title><title>title2</title>', 'title')
    ['title1', 'title2']
    """
    return [m.group(1) for m in _tag_regex(tag).finditer(document)]


def rewrite_tag(document: str, tag: str, pattern: PatternBase) -> str:
    """
    Apply ``pattern`` to every ``tag`` fragment of ``document``.

    Each rewritten fragment replaces the first literal occurrence of
    ``<tag>fragment</tag>``, so duplicate fragments are consumed front to
    back and fragments written with attributes are left as they are.
    """
    output = document
    for fragment in extract_tags(document, tag):
        rendered = apply_pattern(fragment, pattern)
        if isinstance(rendered, NoMatch):
            continue
        output = output.replace(f"<{tag}>{fragment}</{tag}>", f"<{tag}>{rendered}</{tag}>", 1)
    return output


def rewrite_document(
    document: str,
    tag_patterns: TagPatterns,
    lookup: PatternLookup,
) -> str:
    """
    Rewrite ``document`` one tag type at a time, in the order given. Later
    tags see the output of earlier ones. Pattern ids the lookup cannot
    resolve are logged and skipped.
    """
    items = tag_patterns.items() if isinstance(tag_patterns, Mapping) else tag_patterns
    output = document
    for tag, ref in items:
        pattern = lookup(ref) if isinstance(ref, str) else ref
        if pattern is None:
            logger.warning("%s Pattern %s not found for tag %s", LOG_TAG, ref, tag)
            continue
        output = rewrite_tag(output, tag, pattern)
    return output
