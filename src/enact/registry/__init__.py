"""
Capability registries for Enact.

A registry resolves a capability id to a capability document. The engine
only depends on the CapabilityRegistry interface.

Built-in registries:
    - local: In-memory catalogue (bundled capabilities, or a directory)
    - http: Remote registry service
"""

from enact.config import EnactConfig
from enact.registry.base import CapabilityRegistry
from enact.registry.http import HttpCapabilityRegistry
from enact.registry.local import BUNDLED_DIR, LocalCapabilityRegistry


def build_capability_registry(config: EnactConfig) -> CapabilityRegistry:
    """
    Build the registry selected by ``capability_registry``.

    ``registry_options.directory`` points the local registry at a directory
    of capability files instead of the bundled ones;
    ``registry_options.base_url`` sets the http registry's service root.

    Raises:
        ValueError: If the registry type is unknown
    """
    kind = str(config.get("capability_registry", "local")).lower()

    if kind == "local":
        directory = config.get("registry_options.directory")
        if directory:
            return LocalCapabilityRegistry.from_directory(directory)
        return LocalCapabilityRegistry.with_bundled()

    if kind == "http":
        return HttpCapabilityRegistry(
            base_url=config.get("registry_options.base_url", "http://localhost:8081"),
            timeout=float(config.get("registry_options.timeout", 30.0)),
        )

    msg = f"Unknown capability registry: {kind}"
    raise ValueError(msg)


__all__ = [
    "BUNDLED_DIR",
    "CapabilityRegistry",
    "HttpCapabilityRegistry",
    "LocalCapabilityRegistry",
    "build_capability_registry",
]
