"""Tag normalization."""

from __future__ import annotations

from collections.abc import Iterable


def dedupe_tags(tags: Iterable[object] | None) -> tuple[str, ...]:
    """Deduplicate tags case-insensitively.

    Whitespace is trimmed, empty tags are dropped, the first spelling of
    each tag wins and input order is preserved.

    Examples:
        ["Wine", "wine ", "Patio"] -> ("Wine", "Patio")
    """
    if not tags or isinstance(tags, str):
        return ()

    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        cleaned = " ".join(tag.split())
        key = cleaned.casefold()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return tuple(result)
