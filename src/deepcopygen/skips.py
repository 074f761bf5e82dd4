"""Skip selectors: paths whose values are shallow-copied.

A selector is relative to the receiver. Struct fields are dotted
(``Items.Tags``), slice and array elements add ``[i]`` and map contents add
``[k]``; pointers do not appear in paths.
"""

from __future__ import annotations

from collections.abc import Sequence

SkipSet = frozenset[str]

EMPTY: SkipSet = frozenset()


def parse_skips(selectors: str) -> SkipSet:
    """Parse a comma-separated selector list."""
    return frozenset(part.strip() for part in selectors.split(",") if part.strip())


def pair_skips(types: Sequence[str], skips: Sequence[str | SkipSet]) -> list[SkipSet]:
    """Pair skip occurrences with type occurrences by position.

    Types beyond the last skip occurrence get the empty set; extra skip
    occurrences are ignored.
    """
    paired: list[SkipSet] = []
    for index in range(len(types)):
        if index >= len(skips):
            paired.append(EMPTY)
            continue
        entry = skips[index]
        paired.append(parse_skips(entry) if isinstance(entry, str) else frozenset(entry))
    return paired


def join_path(parent: str, part: str) -> str:
    """Extend a selector path with a field name or an ``[i]``/``[k]`` suffix."""
    if not parent or part.startswith("["):
        return parent + part
    return f"{parent}.{part}"
