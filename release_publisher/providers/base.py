"""
Abstract base classes for providers.

This module defines the compare-and-swap contract used for writes that must
not silently overwrite concurrent changes.
"""

from abc import ABC, abstractmethod

from release_publisher.models.domain import FileSnapshot


class VersionedStore(ABC):
    """Key/value store with optimistic concurrency.

    Every read returns the value together with a version token. A write
    names the token it expects the server to still hold:

    - ``expected_token=None`` means the key must not exist yet.
    - A token that no longer matches raises ``ConflictError``.

    A missing key on read raises ``NotFoundError``, which is always distinct
    from a conflict.
    """

    @abstractmethod
    async def read(self, key: str) -> FileSnapshot:
        """Read the current value and version token of ``key``.

        Raises:
            NotFoundError: If ``key`` does not exist.
        """
        pass

    @abstractmethod
    async def compare_and_swap(
        self,
        key: str,
        value: bytes,
        expected_token: str | None,
        message: str | None = None,
    ) -> None:
        """Replace ``key`` with ``value`` if its token is ``expected_token``.

        Args:
            key: Key to write
            value: New value
            expected_token: Token from the last read, or None for a new key
            message: Optional description of the change

        Raises:
            ConflictError: If the stored token differs from ``expected_token``.
        """
        pass
