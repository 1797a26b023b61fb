"""Concrete TokenStore implementations.

DiskTokenStore keeps the session token in a small diskcache directory so it
survives between CLI invocations. InMemoryTokenStore backs ephemeral sessions
and tests.
"""

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Dict, Optional, Union

import diskcache as dc

from doggocli.domain.interfaces.token_store import TokenStore
from doggocli.domain.models.common import StorageKey

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_DIR = Path.home() / ".doggocli" / "tokens"
# The directory holds a bearer token; only the owner may enter it
TOKEN_DIR_MODE = 0o700

# Errors diskcache surfaces for an unusable directory or a corrupt database
STORAGE_ERRORS = (OSError, sqlite3.Error, dc.Timeout)


class DiskTokenStore(TokenStore):
    """File-backed key-value store built on diskcache."""

    def __init__(self, directory: Union[str, Path] = DEFAULT_TOKEN_DIR):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(mode=TOKEN_DIR_MODE, parents=True, exist_ok=True)
            self.directory.chmod(TOKEN_DIR_MODE)
            self.disk_cache: Optional[dc.Cache] = dc.Cache(str(self.directory), timeout=1)
            logger.info(f"Initialized token store at: {self.disk_cache.directory}")
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to initialize token store at {self.directory}: {e}", exc_info=True)
            self.disk_cache = None

    def is_available(self) -> bool:
        return self.disk_cache is not None

    async def get(self, key: StorageKey) -> Optional[str]:
        if not self.is_available():
            logger.debug(f"Token store unavailable, treating '{key}' as absent")
            return None
        try:
            value = await asyncio.to_thread(self.disk_cache.get, key)
        except STORAGE_ERRORS as e:
            logger.error(f"Error retrieving '{key}' from token store: {e}", exc_info=True)
            return None
        logger.debug(f"Retrieved item from token store: {key}")
        return value if isinstance(value, str) and value else None

    async def set(self, key: StorageKey, value: str) -> None:
        if not self.is_available():
            logger.debug(f"Token store unavailable, skipping set: {key}")
            return
        try:
            await asyncio.to_thread(self.disk_cache.set, key, value)
            logger.debug(f"Saved item to token store: {key}")
        except STORAGE_ERRORS as e:
            logger.error(f"Error saving '{key}' to token store: {e}", exc_info=True)

    async def remove(self, key: StorageKey) -> None:
        if not self.is_available():
            logger.debug(f"Token store unavailable, skipping remove: {key}")
            return
        try:
            await asyncio.to_thread(self.disk_cache.delete, key)
            logger.debug(f"Removed item from token store: {key}")
        except STORAGE_ERRORS as e:
            logger.error(f"Error removing '{key}' from token store: {e}", exc_info=True)

    def close(self) -> None:
        if self.disk_cache is not None:
            self.disk_cache.close()
            logger.debug("Token store closed")


class InMemoryTokenStore(TokenStore):
    """Dictionary-backed store; nothing outlives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def is_available(self) -> bool:
        return True

    async def get(self, key: StorageKey) -> Optional[str]:
        return self._items.get(key)

    async def set(self, key: StorageKey, value: str) -> None:
        self._items[key] = value

    async def remove(self, key: StorageKey) -> None:
        self._items.pop(key, None)
