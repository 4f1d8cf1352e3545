from __future__ import annotations

import re
from typing import Iterable

_SEPARATORS = re.compile(r"[\s\-]+")


def normalize_tag(tag: str) -> str:
    """Lowercase a tag and fold spaces and hyphens into underscores.

    ``"Gluten-Free"``, ``"gluten free"`` and ``"gluten_free"`` all become
    ``"gluten_free"``.
    """
    return _SEPARATORS.sub("_", str(tag).strip().lower()).strip("_")


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Normalise, drop empties and de-duplicate while keeping first-seen order.

    A bare string is rejected rather than split into characters.
    """
    if tags is None:
        return []
    if isinstance(tags, (str, bytes)) or not isinstance(tags, Iterable):
        raise ValueError(f"expected a list of tags, got {type(tags).__name__}")
    seen: dict[str, None] = {}
    for tag in tags:
        normalized = normalize_tag(tag)
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)
