import re
from fnmatch import translate
from typing import Iterable, Sequence, Union

Patterns = Sequence[re.Pattern]


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern]:
    """Turn shell-style wildcards ("*", "?", "[abc]") into case-insensitive regexes.
    A pattern must match the whole value, so "*lights*out*" finds "iLO 5 Lights-Out firmware"
    but "lights" alone does not."""
    return [re.compile(translate(pattern), re.IGNORECASE) for pattern in patterns]


def matches_any(value: str, patterns: Union[Patterns, Iterable[str]]) -> bool:
    """True if the value matches at least one of the patterns"""
    for pattern in patterns:
        if isinstance(pattern, str):
            pattern = re.compile(translate(pattern), re.IGNORECASE)
        if pattern.match(value):
            return True
    return False
