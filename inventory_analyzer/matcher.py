"""
Pattern matcher.

One pattern against one software name. All comparisons are case-insensitive.
A regex that does not compile never matches and is reported as a warning
once per pattern, so a single bad rule cannot block the rest of a rule set.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)


@lru_cache(maxsize=512)
def _compile(pattern: str) -> Optional[re.Pattern]:
    """Compiled pattern, or None when it does not compile. Failures are cached too."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        logger.warning("Invalid regex pattern %r: %s", pattern, exc)
        return None


def matches(name: str, pattern: str, pattern_type: str) -> bool:
    """
    Return True when name matches pattern under pattern_type semantics.

    name is expected to be trimmed already. Unknown pattern types never match.
    """
    if pattern is None:
        return False

    if pattern_type == "regex":
        compiled = _compile(pattern)
        return compiled is not None and compiled.search(name) is not None

    value = name.lower()
    needle = pattern.lower()

    if pattern_type == "exact":
        return value == needle
    if pattern_type == "contains":
        return needle in value
    if pattern_type == "startswith":
        return value.startswith(needle)
    if pattern_type == "endswith":
        return value.endswith(needle)
    return False
