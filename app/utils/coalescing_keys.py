"""Stable coalescing keys for upstream operations."""

from __future__ import annotations

import json
from hashlib import sha256
from typing import Any, Mapping


def build_coalescing_key(name: str, params: Mapping[str, Any] | None = None) -> str:
    """Build the key under which concurrent calls are considered the same.

    Params are serialized as canonical JSON (sorted keys), so dict ordering
    does not matter. ``None`` values are dropped, which makes an omitted
    argument and an explicit ``None`` coalesce together.

    Args:
        name: Operation name, e.g. ``"news:headlines"``.
        params: Operation parameters; must be JSON-serializable.

    Returns:
        ``name`` when there are no params, else ``"{name}:{digest16}"``.

    Raises:
        ValueError: If name is empty.
    """

    if not name:
        raise ValueError("name must be a non-empty string")

    cleaned = {k: v for k, v in (params or {}).items() if v is not None}
    if not cleaned:
        return name

    canonical = json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)
    return f"{name}:{sha256(canonical.encode()).hexdigest()[:16]}"
