"""
Storage factory – switch storage backend from config (lazy env version)
======================================================================

This module centralizes selection of the storage backend (in-memory vs DB)
so the rest of the app can stay ignorant of where data lives.

- Reads environment **at call time** to avoid stale values in tests.
- Imports the DB backend **only if** the selected backend is "postgres".

Environment variables
---------------------
- AFFILIATE_STORAGE_BACKEND: "memory" (default) or "postgres"
- AFFILIATE_DB_DSN:          DSN string if backend == "postgres"
- AFFILIATE_DB_POOL_MIN / AFFILIATE_DB_POOL_MAX: pool bounds
"""

import logging
import os
from typing import Optional

from affiliate_platform.storage.base import BaseStorage
from affiliate_platform.storage.storage import Storage

log = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def get_storage(backend: Optional[str] = None, **kwargs) -> BaseStorage:
    """
    Return a storage backend based on configuration.

    Parameters
    ----------
    backend : str, optional
        "memory" (default) or "postgres". If omitted, reads AFFILIATE_STORAGE_BACKEND.
    kwargs : dict
        Extra args for the backend constructor. For postgres: dsn, min_size, max_size.

    Raises
    ------
    ValueError
        Unknown backend, or postgres selected without a DSN.
    """
    be = (backend or os.getenv("AFFILIATE_STORAGE_BACKEND", "memory")).strip().lower()
    log.debug("Selected storage backend: %r", be)

    if be == "memory":
        return Storage()

    if be == "postgres":
        dsn = kwargs.get("dsn") or os.getenv("AFFILIATE_DB_DSN", "")
        if not dsn:
            raise ValueError("DB_DSN is required for postgres backend (env AFFILIATE_DB_DSN)")
        # Local import to avoid hard dependency when not using postgres
        from affiliate_platform.storage.db_storage import DBStorage

        return DBStorage(
            dsn=dsn,
            min_size=kwargs.get("min_size") or _env_int("AFFILIATE_DB_POOL_MIN", 1),
            max_size=kwargs.get("max_size") or _env_int("AFFILIATE_DB_POOL_MAX", 10),
        )

    raise ValueError(f"Unknown storage backend: {be!r}")
