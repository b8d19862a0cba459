"""On-disk JSON cache for RPC reads pinned to a block."""

import hashlib
import json
import logging
import os
import shutil
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from staking_vault.constants import CACHE_DIR_NAME, CACHE_VERSION

logger = logging.getLogger(__name__)


def get_cache_dir() -> Path:
    """Cache directory under XDG_CACHE_HOME, falling back to ~/.cache."""
    cache_home = os.getenv("XDG_CACHE_HOME")
    base = Path(cache_home) if cache_home else Path.home() / ".cache"
    cache_dir = base / CACHE_DIR_NAME
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def clear_cache() -> None:
    cache_dir = get_cache_dir()
    if any(cache_dir.iterdir()):
        shutil.rmtree(cache_dir)
        print("✅ Cache cleared successfully.", file=sys.stderr)
    else:
        print("ℹ️  Cache is already empty.", file=sys.stderr)


def cache_key(prefix: str, *parts: Any) -> str:
    """Deterministic key from a prefix and the values identifying the read."""
    key_str = f"{prefix}:{CACHE_VERSION}:" + ":".join(str(p) for p in parts)
    return hashlib.sha256(key_str.encode()).hexdigest()


def get_cached(key: str) -> Any | None:
    """Cached value, or None when missing or unreadable."""
    cache_file = get_cache_dir() / f"{key}.json"
    if not cache_file.exists():
        return None
    try:
        with cache_file.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as ex:
        logger.debug("ignoring unreadable cache entry %s: %s", cache_file, ex)
        return None


def set_cached(key: str, data: Any) -> None:
    cache_file = get_cache_dir() / f"{key}.json"
    try:
        with cache_file.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, separators=(",", ":"))
    except (OSError, TypeError) as ex:
        # A failed write only costs a refetch next time.
        logger.debug("could not cache %s: %s", cache_file, ex)


def cached(prefix: str, parts: tuple, fetch: Callable[[], Any], *, use_cache: bool = True) -> Any:
    """Return the cached value for (prefix, parts) or fetch and store it."""
    if not use_cache:
        return fetch()
    key = cache_key(prefix, *parts)
    hit = get_cached(key)
    if hit is not None:
        return hit
    value = fetch()
    set_cached(key, value)
    return value
