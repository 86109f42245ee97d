"""
Local capability registry.

Holds capabilities in memory, optionally loaded from a directory of
``*.yaml``/``*.yml``/``*.json`` capability documents. The capabilities bundled
with the package (FormatGreeting, GetStockPrice) live in ``bundled/``.
"""

import logging
from pathlib import Path
from typing import Any

from enact.errors import CapabilityParseError, RegistryError
from enact.registry.base import CapabilityRegistry
from enact.schema import Capability, load_capability

logger = logging.getLogger(__name__)

BUNDLED_DIR = Path(__file__).resolve().parent / "bundled"
CAPABILITY_SUFFIXES = {".yaml", ".yml", ".json"}


def summarize(capability: Capability) -> dict[str, Any]:
    """Search-hit summary of a capability."""
    return {
        "id": capability.id,
        "description": capability.description,
        "version": capability.version,
        "type": capability.type,
    }


class LocalCapabilityRegistry(CapabilityRegistry):
    """
    In-memory capability catalogue.

    Example:
        >>> registry = LocalCapabilityRegistry.with_bundled()
        >>> capability = await registry.lookup("FormatGreeting")
    """

    def __init__(self, capabilities: list[Capability] | None = None) -> None:
        self._capabilities: dict[str, Capability] = {}
        for capability in capabilities or ():
            self.add(capability)

    @classmethod
    def from_directory(cls, directory: Path | str) -> "LocalCapabilityRegistry":
        """
        Load every capability document in a directory.

        Raises:
            RegistryError: If the directory doesn't exist or a document is invalid
        """
        registry = cls()
        registry.load_directory(directory)
        return registry

    @classmethod
    def with_bundled(cls) -> "LocalCapabilityRegistry":
        """Registry seeded with the capabilities shipped in the package."""
        return cls.from_directory(BUNDLED_DIR)

    def load_directory(self, directory: Path | str) -> int:
        """Add every capability document in ``directory``; returns the count added."""
        directory = Path(directory)
        if not directory.is_dir():
            raise RegistryError(underlying_error=f"not a directory: {directory}")

        count = 0
        for path in sorted(directory.iterdir()):
            if path.suffix.lower() not in CAPABILITY_SUFFIXES:
                continue
            try:
                capability = load_capability(path)
            except CapabilityParseError as e:
                raise RegistryError(underlying_error=f"{path.name}: {e.message}") from e
            self.add(capability)
            count += 1

        logger.debug("Loaded %d capabilities from %s", count, directory)
        return count

    def add(self, capability: Capability) -> None:
        """Add or replace a capability, keyed by its id."""
        if not capability.id:
            msg = "Cannot register a capability without an id"
            raise ValueError(msg)
        self._capabilities[capability.id] = capability

    def list_ids(self) -> list[str]:
        """Capability ids in sorted order."""
        return sorted(self._capabilities)

    async def lookup(self, capability_id: str) -> Capability | None:
        logger.info("Fetching capability with ID: %s", capability_id)
        return self._capabilities.get(capability_id)

    async def search(self, query: str) -> list[dict[str, Any]]:
        needle = query.lower()
        return [
            summarize(capability)
            for capability in sorted(self._capabilities.values(), key=lambda c: c.id)
            if needle in capability.id.lower() or needle in capability.description.lower()
        ]

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, capability_id: str) -> bool:
        return capability_id in self._capabilities
