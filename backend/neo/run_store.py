from __future__ import annotations

import time
from typing import Any

from vercel.cache import AsyncRuntimeCache

from neo import config


cache = AsyncRuntimeCache(namespace=config.RUN_STORE_NAMESPACE)


def _cache_key(run_id: str) -> str:
    return f"run:{run_id}"


async def _write(run_id: str, record: dict[str, Any]) -> None:
    await cache.set(
        _cache_key(run_id),
        record,
        {"ttl": config.RUN_STORE_TTL_SECONDS, "tags": [f"run:{run_id}"]},
    )


async def create_run_record(run_id: str, project_id: str, user_id: str) -> dict[str, Any]:
    """Store a queued run record using Vercel Runtime Cache."""
    record = {
        "run_id": run_id,
        "project_id": project_id,
        "user_id": user_id,
        "status": "queued",
        "events": [],
        "result": None,
        "error": None,
        "updated_at": time.time(),
    }
    await _write(run_id, record)
    return record


async def get_run_record(run_id: str) -> dict[str, Any] | None:
    val = await cache.get(_cache_key(run_id))
    return dict(val) if isinstance(val, dict) else None


async def update_run_record(run_id: str, **fields: Any) -> dict[str, Any] | None:
    """Merge fields into the stored record if it is still present."""
    base = await cache.get(_cache_key(run_id))
    if not isinstance(base, dict):
        return None
    updated = {**base, **fields, "updated_at": time.time()}
    await _write(run_id, updated)
    return updated
