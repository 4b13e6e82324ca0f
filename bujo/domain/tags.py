"""Tag (`#token`) and mention (`@token`) extraction from entry content."""
from __future__ import annotations

import re

TAG_RE = re.compile(r"(?<![\w#])#([A-Za-z][A-Za-z0-9-]*)")
MENTION_RE = re.compile(r"(?<![\w@])@([A-Za-z][A-Za-z0-9_-]*(?:\.[A-Za-z][A-Za-z0-9_-]*)*)")


def extract_tags(content: str) -> list[str]:
    """Case-folded, de-duplicated, sorted."""
    return sorted({m.lower() for m in TAG_RE.findall(content or "")})


def extract_mentions(content: str) -> list[str]:
    """De-duplicated and sorted; case is kept as written."""
    return sorted(set(MENTION_RE.findall(content or "")))
