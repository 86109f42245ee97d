"""
Provider registry for Enact.

Maps backend names to provider factories. New backends are added by
registering a factory, the engine never names a backend itself.

Usage:
    from enact.providers.registry import default_registry

    provider = default_registry.get_provider("docker", {"memory": "1g"})
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from enact.errors import UnsupportedEnvironmentError
from enact.providers.base import ExecutionProvider
from enact.providers.docker import DockerExecutionProvider
from enact.providers.local import LocalExecutionProvider
from enact.providers.windmill import WindmillExecutionProvider

ProviderFactory = Callable[[Mapping[str, Any]], ExecutionProvider]


class ProviderRegistry:
    """
    Registry of execution provider factories, keyed by lowercase name.

    Attributes:
        _factories: Mapping of backend names (and aliases) to factories
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._factories: dict[str, ProviderFactory] = {}

    def register(
        self,
        name: str,
        factory: ProviderFactory,
        aliases: Iterable[str] = (),
    ) -> None:
        """
        Register a provider factory under a name and optional aliases.

        Re-registering a name replaces the previous factory.

        Raises:
            ValueError: If the name is empty or the factory is None
        """
        if not name:
            msg = "Provider must have a non-empty name"
            raise ValueError(msg)
        if factory is None:
            msg = "Cannot register None as a provider factory"
            raise ValueError(msg)

        for key in (name, *aliases):
            self._factories[key.lower()] = factory

    def get_provider(
        self,
        type_name: str,
        options: Mapping[str, Any] | None = None,
    ) -> ExecutionProvider:
        """
        Create a fresh provider for a backend name (case-insensitive).

        Raises:
            UnsupportedEnvironmentError: If the name isn't registered
            EnactError: If the provider itself fails to construct
        """
        factory = self._factories.get((type_name or "").lower())
        if factory is None:
            raise UnsupportedEnvironmentError(
                provider=type_name,
                available=self.list_providers(),
            )
        return factory(dict(options or {}))

    def has(self, name: str) -> bool:
        """Check whether a backend name is registered."""
        return name.lower() in self._factories

    def unregister(self, name: str) -> bool:
        """Remove a name (not its aliases). Returns False if it wasn't registered."""
        return self._factories.pop(name.lower(), None) is not None

    def list_providers(self) -> list[str]:
        """List registered backend names and aliases in sorted order."""
        return sorted(self._factories)

    def __len__(self) -> int:
        """Return the number of registered names."""
        return len(self._factories)

    def __iter__(self) -> Iterator[str]:
        """Iterate over registered names."""
        return iter(self.list_providers())

    def __contains__(self, name: str) -> bool:
        """Check if a backend is registered using 'in' operator."""
        return self.has(name)

    def __repr__(self) -> str:
        """String representation of the registry."""
        return f"<ProviderRegistry: [{', '.join(self.list_providers())}]>"


def build_default_registry() -> ProviderRegistry:
    """Registry with the built-in local, docker and windmill backends."""
    registry = ProviderRegistry()
    registry.register("local", LocalExecutionProvider.from_options)
    registry.register("docker", DockerExecutionProvider.from_options, aliases=("containerized",))
    registry.register("windmill", WindmillExecutionProvider.from_options, aliases=("remote-workflow",))
    return registry


# Registry used by the engine unless one is injected
default_registry = build_default_registry()


def get_provider(type_name: str, options: Mapping[str, Any] | None = None) -> ExecutionProvider:
    """Create a provider from the default registry."""
    return default_registry.get_provider(type_name, options)
