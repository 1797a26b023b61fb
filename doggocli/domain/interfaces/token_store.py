"""Interface for the key-value store that persists the session token.

Implementations swallow their own storage failures: a value that cannot be
read is reported as absent, and writes that cannot be made are skipped.
Whether the backing storage is usable at all is answered by `is_available`,
so callers branch on capability instead of catching exceptions.
"""

import abc
from typing import Optional

from ..models.common import StorageKey


class TokenStore(abc.ABC):
    """Abstract Base Class for async key-value token persistence."""

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Reports whether the backing storage can currently be used."""
        pass

    @abc.abstractmethod
    async def get(self, key: StorageKey) -> Optional[str]:
        """Retrieves a value, or None if it is absent or unreadable.

        Args:
            key: The storage key to look up.

        Returns:
            The stored string, or None.
        """
        pass

    @abc.abstractmethod
    async def set(self, key: StorageKey, value: str) -> None:
        """Stores a value under the given key.

        Args:
            key: The storage key.
            value: The string to store.
        """
        pass

    @abc.abstractmethod
    async def remove(self, key: StorageKey) -> None:
        """Removes the value stored under the key, if any.

        Args:
            key: The storage key to remove.
        """
        pass

    def close(self) -> None:
        """Releases any handles held on the backing storage. No-op by default."""
        pass
