from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Optional


_ENV_RE = re.compile(r"[^A-Z0-9_]+")


class DecodeError(ValueError):
    """A field stored as JSON text could not be decoded."""


def decode_json_field(value: Optional[str], *, field_name: str = "field") -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except (TypeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Unable to decode {field_name}: {exc}") from exc


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def parse_includes(value: str | Iterable[str] | None) -> dict[str, dict]:
    """Turn ``"nest.eggs,variables"`` into ``{"nest": {"eggs": {}}, "variables": {}}``."""
    if not value:
        return {}
    parts = value.split(",") if isinstance(value, str) else list(value)
    tree: dict[str, dict] = {}
    for part in parts:
        node = tree
        for segment in part.strip().split("."):
            segment = segment.strip()
            if not segment:
                break
            node = node.setdefault(segment, {})
    return tree


def normalize_env_var(value: str) -> str:
    value = value.strip().upper()
    value = _ENV_RE.sub("_", value)
    value = re.sub(r"_+", "_", value)
    value = value.strip("_")
    if not value:
        return "VAR"
    if value[0].isdigit():
        value = f"VAR_{value}"
    return value


def ensure_unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    output: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        output.append(item)
    return output
