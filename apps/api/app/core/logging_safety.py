"""Helpers for keeping raw identifiers out of log lines."""

from __future__ import annotations

import hashlib
from typing import Any


def safe_log_identifier(value: Any, *, prefix: str, length: int = 12) -> str:
    """Return a stable, non-reversible token usable as a correlation field.

    Subject ids issued by the identity provider and user record ids both go
    through here before they reach a log line.
    """
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(f"{prefix}:{text}".encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:length]}"
