"""
Base classes for execution providers.

This module defines the contract every execution backend implements:
- ExecutionProvider: Abstract base class with the four backend operations
- resolve_from_host: Shared environment-variable resolution policy

Design Principles:
    - Providers differ only in where code runs, never in contract shape
    - One provider instance serves exactly one run and is never shared
    - cleanup() must be safe to call at any time, including before setup()
      or after a failure
    - Failures are raised as EnactError subclasses, not returned as values
"""

import os
import sys
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from enact.errors import MissingRequiredEnvVarError
from enact.schema import Dependencies, EnvironmentVariable, ExecutionEnvironment, Task

HOST_ENV_CASE_INSENSITIVE = sys.platform == "win32"


def lookup_host_variable(
    name: str,
    environ: Mapping[str, str],
    case_insensitive: bool = HOST_ENV_CASE_INSENSITIVE,
) -> str | None:
    """
    Look up a variable in a host environment mapping.

    On case-insensitive hosts the name is matched against every host
    variable name ignoring case; otherwise only the exact name matches.
    """
    if not case_insensitive:
        return environ.get(name)

    wanted = name.lower()
    for key, value in environ.items():
        if key.lower() == wanted:
            return value
    return None


def resolve_from_host(
    required_vars: Sequence[EnvironmentVariable],
    environ: Mapping[str, str] | None = None,
    provider: str = "",
    case_insensitive: bool = False,
) -> dict[str, Any]:
    """
    Resolve declared variables from the host environment.

    Resolution order per variable: host value, then schema default. A
    required variable with neither raises; an optional one is omitted.

    Args:
        required_vars: Declared variables
        environ: Host environment (defaults to os.environ)
        provider: Backend name used in error messages
        case_insensitive: Match names ignoring case

    Raises:
        MissingRequiredEnvVarError: A required variable is unresolved
    """
    environ = os.environ if environ is None else environ
    resolved: dict[str, Any] = {}

    for var in required_vars:
        value: Any = lookup_host_variable(var.name, environ, case_insensitive)

        if value is None and var.schema_ is not None and var.schema_.has_default:
            value = var.schema_.default

        if value is None:
            if var.required:
                raise MissingRequiredEnvVarError(provider=provider, variable=var.name)
            continue

        resolved[var.name] = value

    return resolved


class ExecutionProvider(ABC):
    """
    Abstract base class for execution backends.

    Subclasses must implement:
    - name property: Backend identifier used in result metadata
    - setup(): Prepare whatever the backend needs for a task
    - execute_code(): Run a task and return its output bindings
    - cleanup(): Release backend resources
    - resolve_environment_variables(): Resolve declared variables

    Example:
        class EchoProvider(ExecutionProvider):
            @property
            def name(self) -> str:
                return "echo"

            async def setup(self, task, dependencies=None) -> bool:
                return True

            async def execute_code(self, task, inputs, environment) -> dict:
                return dict(inputs)

            async def cleanup(self) -> bool:
                return True

            async def resolve_environment_variables(self, required_vars) -> dict:
                return resolve_from_host(required_vars, provider=self.name)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The backend identifier (e.g. "local", "docker")."""
        ...

    @abstractmethod
    async def setup(self, task: Task, dependencies: Dependencies | None = None) -> bool:
        """
        Prepare the backend to run ``task``.

        Called once per task per run, before execute_code().

        Returns:
            True when the backend is ready
        """
        ...

    @abstractmethod
    async def execute_code(
        self,
        task: Task,
        inputs: Mapping[str, Any],
        environment: ExecutionEnvironment,
    ) -> dict[str, Any]:
        """
        Run the task's code.

        Args:
            task: The task to run
            inputs: The caller-supplied capability inputs
            environment: Resolved variables and resource hints

        Returns:
            The task's output bindings

        Raises:
            TaskError: If the task cannot be run or fails
        """
        ...

    @abstractmethod
    async def cleanup(self) -> bool:
        """
        Release backend resources.

        Must be safe to call when setup() never ran or already failed.
        """
        ...

    @abstractmethod
    async def resolve_environment_variables(
        self,
        required_vars: Sequence[EnvironmentVariable],
    ) -> dict[str, Any]:
        """
        Resolve declared environment variables to values.

        Raises:
            MissingRequiredEnvVarError: A required variable is unresolved
        """
        ...

    def __repr__(self) -> str:
        """String representation of the provider."""
        return f"<ExecutionProvider: {self.name}>"
