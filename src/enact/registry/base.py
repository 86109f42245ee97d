"""Capability registry interface."""

from abc import ABC, abstractmethod
from typing import Any

from enact.schema import Capability


class CapabilityRegistry(ABC):
    """
    Resolves capability identifiers to capability documents.

    Implementations may be backed by a local catalogue or a network service;
    both are awaited by the engine.
    """

    @abstractmethod
    async def lookup(self, capability_id: str) -> Capability | None:
        """
        Find a capability by id.

        Returns:
            The capability, or None when no capability has that id

        Raises:
            RegistryError: If the registry can't be queried
        """
        ...

    @abstractmethod
    async def search(self, query: str) -> list[dict[str, Any]]:
        """Search capabilities; each hit is a summary mapping."""
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None
