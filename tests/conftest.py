"""
Pytest configuration and fixtures for Enact tests.

This module provides shared fixtures used across unit and integration
tests, including a recording provider that stands in for a real backend.
"""

import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Generator

import pytest

from enact.providers.base import ExecutionProvider, resolve_from_host
from enact.providers.registry import ProviderRegistry
from enact.schema import Dependencies, EnvironmentVariable, ExecutionEnvironment, Task


class RecordingProvider(ExecutionProvider):
    """
    Provider that records every call and returns canned task results.

    Attributes:
        results: task id -> result returned by execute_code
        fail_on: task id -> exception raised by execute_code
        calls: ordered list of (operation, detail) tuples
    """

    def __init__(
        self,
        results: dict[str, dict[str, Any]] | None = None,
        fail_on: dict[str, Exception] | None = None,
        fail_setup: Exception | None = None,
        fail_cleanup: Exception | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.results = results or {}
        self.fail_on = fail_on or {}
        self.fail_setup = fail_setup
        self.fail_cleanup = fail_cleanup
        self.environ = environ or {}
        self.calls: list[tuple[str, Any]] = []
        self.seen_inputs: list[dict[str, Any]] = []
        self.seen_environments: list[ExecutionEnvironment] = []

    @property
    def name(self) -> str:
        return "recording"

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    async def setup(self, task: Task, dependencies: Dependencies | None = None) -> bool:
        self.calls.append(("setup", task.id))
        if self.fail_setup is not None:
            raise self.fail_setup
        return True

    async def execute_code(
        self,
        task: Task,
        inputs: Mapping[str, Any],
        environment: ExecutionEnvironment,
    ) -> dict[str, Any]:
        self.calls.append(("execute", task.id))
        self.seen_inputs.append(dict(inputs))
        self.seen_environments.append(environment)
        if task.id in self.fail_on:
            raise self.fail_on[task.id]
        return self.results.get(task.id, {})

    async def cleanup(self) -> bool:
        self.calls.append(("cleanup", None))
        if self.fail_cleanup is not None:
            raise self.fail_cleanup
        return True

    async def resolve_environment_variables(
        self,
        required_vars: Sequence[EnvironmentVariable],
    ) -> dict[str, Any]:
        self.calls.append(("resolve", [v.name for v in required_vars]))
        return resolve_from_host(required_vars, environ=self.environ, provider=self.name)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def recording_provider() -> RecordingProvider:
    """A fresh recording provider."""
    return RecordingProvider()


@pytest.fixture
def provider_registry(recording_provider: RecordingProvider) -> ProviderRegistry:
    """Registry whose only backend returns the shared recording provider."""
    registry = ProviderRegistry()
    registry.register("recording", lambda options: recording_provider)
    return registry


@pytest.fixture
def composite_document() -> dict[str, Any]:
    """A two-step composite capability document."""
    return {
        "enact": "1.0.0",
        "id": "PriceReport",
        "description": "Fetch a price and format a report",
        "version": "2.1.0",
        "type": "composite",
        "authors": [{"name": "Test Author"}],
        "inputs": [
            {
                "name": "ticker",
                "description": "Ticker symbol",
                "required": True,
                "schema": {"type": "string", "pattern": "^[A-Z]+$"},
            },
            {
                "name": "currency",
                "description": "Quote currency",
                "required": False,
                "schema": {"type": "string", "enum": ["USD", "EUR"], "default": "USD"},
            },
        ],
        "tasks": [
            {"id": "fetch", "type": "script", "language": "javascript", "code": "output.price = 1;"},
            {"id": "report", "type": "script", "language": "javascript", "code": "output.text = 'x';"},
        ],
        "flow": {"steps": [{"task": "fetch"}, {"task": "report"}]},
        "outputs": [
            {"name": "price", "description": "Price", "schema": {"type": "number", "minimum": 0}},
            {"name": "text", "description": "Report", "schema": {"type": "string"}},
        ],
        "env": {
            "vars": [
                {
                    "name": "QUOTE_API_KEY",
                    "description": "API key",
                    "required": False,
                    "schema": {"type": "string", "default": "demo"},
                },
            ],
            "resources": {"memory": "256m", "timeout": "30s"},
        },
    }


@pytest.fixture
def greeting_yaml() -> str:
    """Return a minimal single-task capability as YAML."""
    return """
enact: 1.0.0
id: Hello
description: Says hello
version: 0.1.0
type: atomic
inputs:
  - name: name
    description: Who to greet
    required: true
    schema:
      type: string
tasks:
  - id: hello
    type: script
    language: javascript
    code: |
      output.message = "Hello, " + inputs.name;
flow:
  steps:
    - task: hello
outputs:
  - name: message
    description: Greeting
    schema:
      type: string
"""
