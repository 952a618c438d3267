from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class DistributedLockInterface(ABC):
    """Interface for distributed lock providers."""

    @abstractmethod
    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        """
        Acquire a distributed lock for a resource.

        Args:
            resource_key: The resource to lock (e.g., "renewal:subscription:42")
            timeout_seconds: Lock expiration time in seconds

        Returns:
            Lock token if acquired, None otherwise
        """
        pass

    @abstractmethod
    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        """
        Release a distributed lock.

        Args:
            resource_key: The locked resource
            lock_token: The token received when acquiring the lock

        Returns:
            True if released, False if token doesn't match or lock doesn't exist
        """
        pass

    @asynccontextmanager
    async def lease(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> AsyncIterator[Optional[str]]:
        """
        Hold a lock for the duration of a block.

        Yields the lock token, or None when the resource is held elsewhere.
        The lock is released on exit only if it was acquired.
        """
        token = await self.acquire_lock(resource_key, timeout_seconds)
        try:
            yield token
        finally:
            if token:
                await self.release_lock(resource_key, token)

    async def disconnect(self) -> None:
        """Release client connections. No-op for providers without any."""
        return None
