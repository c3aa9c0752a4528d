"""Utility helpers for the MovieFeed service."""

from __future__ import annotations

import re
from typing import Any


MISSING_VALUE = "N/A"
YEAR_RE = re.compile(r"\b(18|19|20|21)\d{2}\b")


def strip_missing(value: Any) -> Any:
    """Return ``None`` for blank values and OMDb's ``N/A`` placeholder."""

    if isinstance(value, str) and value.strip() in {"", MISSING_VALUE}:
        return None
    return value


def year_from_release(released: str | None) -> str:
    """Extract the four digit year from a stored release value."""

    if not released:
        return ""
    match = YEAR_RE.search(str(released))
    return match.group(0) if match else ""
