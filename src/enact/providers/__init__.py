"""
Execution providers for Enact.

A provider is the backend that actually runs a task's code. Every provider
implements the same four operations (setup, execute_code, cleanup,
resolve_environment_variables), so the engine never depends on where code
runs.

Built-in providers:
    - local: In-process V8 isolate for JavaScript/TypeScript tasks
    - docker (containerized): Throwaway Docker container per task
    - windmill (remote-workflow): Windmill workflow API
"""

from enact.providers.base import ExecutionProvider, lookup_host_variable, resolve_from_host
from enact.providers.docker import DockerExecutionProvider
from enact.providers.local import LocalExecutionProvider
from enact.providers.registry import (
    ProviderRegistry,
    build_default_registry,
    default_registry,
    get_provider,
)
from enact.providers.windmill import WindmillExecutionProvider

__all__ = [
    "ExecutionProvider",
    "DockerExecutionProvider",
    "LocalExecutionProvider",
    "WindmillExecutionProvider",
    "ProviderRegistry",
    "build_default_registry",
    "default_registry",
    "get_provider",
    "lookup_host_variable",
    "resolve_from_host",
]
