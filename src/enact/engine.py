"""
Execution Engine for Enact.

The Engine is the orchestration layer that runs a capability on an
execution provider. It coordinates between:
- Validation: capability structure, inputs and outputs
- Provider registry: turns a backend name into a fresh provider
- Provider: resolves environment variables and runs each task

Execution Flow:
    1. Validate the capability structure and the caller inputs
    2. Acquire a provider (caller options override configuration)
    3. Resolve environment variables; caller overrides win
    4. For each flow step, in order:
        a. Look up the task (missing -> TaskNotFound)
        b. setup(), then execute_code(), then cleanup(); a failed task is
           cleaned up before its error propagates
    5. Format and validate declared outputs
    6. Return an ExecutionResult

Design Principles:
    - Nothing escapes: every failure becomes a failed ExecutionResult
    - No leaks: cleanup() runs after every task and again on any failure
    - The original error wins: cleanup failures on the error path are
      logged, never reported in its place
    - Steps run strictly one after another; each task receives the original
      caller inputs, not the previous task's outputs
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from enact.config import EnactConfig
from enact.errors import (
    ERROR_EXECUTION,
    CapabilityNotFoundError,
    ConfigError,
    EnactError,
    TaskNotFoundError,
)
from enact.providers.base import ExecutionProvider
from enact.providers.registry import ProviderRegistry, default_registry
from enact.registry.base import CapabilityRegistry
from enact.schema import Capability, ExecutionEnvironment, ExecutionResult, parse_capability
from enact.validation import (
    apply_input_defaults,
    format_outputs,
    validate_capability_structure,
    validate_inputs,
)

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"


class RunState(str, Enum):
    """States a single run moves through."""

    IDLE = "idle"
    VALIDATING = "validating"
    PROVIDER_ACQUIRED = "provider_acquired"
    ENVIRONMENT_RESOLVED = "environment_resolved"
    EXECUTING = "executing"
    OUTPUTS_FORMATTED = "outputs_formatted"
    DONE = "done"


StateListener = Callable[[str, RunState], None]


@dataclass
class ExecutionOptions:
    """
    Per-call overrides for a run.

    Attributes:
        environment_type: Backend name; overrides configuration when set
        environment_options: Backend options merged over configured options
        provided_env: Environment variables that override resolved values
    """

    environment_type: str | None = None
    environment_options: dict[str, Any] = field(default_factory=dict)
    provided_env: dict[str, Any] = field(default_factory=dict)


@dataclass
class _Run:
    """Mutable bookkeeping for one run."""

    capability_id: str
    version: str
    environment_type: str
    listener: StateListener | None = None
    state: RunState = RunState.IDLE
    provider: ExecutionProvider | None = None

    def transition(self, state: RunState) -> None:
        self.state = state
        logger.debug("Run %s -> %s", self.capability_id, state.value)
        if self.listener is not None:
            self.listener(self.capability_id, state)


class Engine:
    """
    Main execution engine for Enact.

    Usage:
        config = EnactConfig.from_env()
        engine = Engine(config, capabilities=LocalCapabilityRegistry.with_bundled())
        result = await engine.execute_by_id("FormatGreeting", {"name": "Ada"})
        print(result.outputs)

    Attributes:
        config: Process configuration (read-only during runs)
        capabilities: Registry used by execute_by_id
        providers: Registry of execution backends
    """

    def __init__(
        self,
        config: EnactConfig | None = None,
        capabilities: CapabilityRegistry | None = None,
        providers: ProviderRegistry | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Configuration (defaults to built-in defaults)
            capabilities: Capability registry for execute_by_id
            providers: Provider registry (defaults to the built-in backends)
            on_state_change: Called with (capability_id, state) on every transition
        """
        self.config = config or EnactConfig()
        self.capabilities = capabilities
        self.providers = providers or default_registry
        self.on_state_change = on_state_change

    def _backend_type(self, options: ExecutionOptions) -> str:
        return str(options.environment_type or self.config.get("execution_environment", "local"))

    def _backend_options(self, options: ExecutionOptions) -> dict[str, Any]:
        configured = self.config.get("environment_options", {}) or {}
        if not isinstance(configured, Mapping):
            raise ConfigError(
                message=f"environment_options must be a mapping, got {type(configured).__name__}",
            )
        return {**configured, **(options.environment_options or {})}

    async def execute(
        self,
        capability: Capability | Mapping[str, Any],
        inputs: Mapping[str, Any] | None = None,
        options: ExecutionOptions | None = None,
    ) -> ExecutionResult:
        """
        Execute a capability.

        Args:
            capability: Capability model or raw capability document
            inputs: Caller-supplied inputs
            options: Backend and environment overrides

        Returns:
            ExecutionResult; never raises for run failures
        """
        options = options or ExecutionOptions()
        environment_type = self._backend_type(options)

        if isinstance(capability, Capability):
            capability_id, version = capability.id, capability.version
        elif isinstance(capability, Mapping):
            capability_id = str(capability.get("id") or "")
            version = str(capability.get("version") or "")
        else:
            capability_id, version = "", ""

        run = _Run(
            capability_id=capability_id,
            version=version,
            environment_type=environment_type,
            listener=self.on_state_change,
        )
        logger.info("Executing capability %s on %s", capability_id or "<unnamed>", environment_type)

        try:
            outputs = await self._run(run, capability, inputs, options)
        except Exception as e:
            if run.provider is not None:
                await self._cleanup_quietly(run.provider)
            result = self._failure(run, e)
            run.transition(RunState.DONE)
            logger.info("Capability %s failed: [%s] %s", capability_id, result.error.code, result.error.message)
            return result

        run.transition(RunState.DONE)
        logger.info("Capability %s completed", capability_id)
        return ExecutionResult.ok(
            outputs=outputs,
            capability_id=run.capability_id,
            version=run.version,
            environment=run.environment_type,
        )

    async def _run(
        self,
        run: _Run,
        document: Capability | Mapping[str, Any],
        inputs: Mapping[str, Any] | None,
        options: ExecutionOptions,
    ) -> dict[str, Any]:
        # 1. Validate
        run.transition(RunState.VALIDATING)
        inputs = dict(inputs or {})
        environment_options = self._backend_options(options)
        capability = parse_capability(document)
        validate_capability_structure(capability)
        validate_inputs(capability.inputs, inputs)
        task_inputs = apply_input_defaults(capability.inputs, inputs)

        # 2. Acquire a fresh provider
        run.provider = self.providers.get_provider(run.environment_type, environment_options)
        run.transition(RunState.PROVIDER_ACQUIRED)
        provider = run.provider

        # 3. Resolve environment
        resolved = await provider.resolve_environment_variables(capability.env_vars)
        resources = None
        if capability.env is not None and capability.env.resources is not None:
            resources = capability.env.resources.model_dump(exclude_none=True)
        environment = ExecutionEnvironment(
            variables={**resolved, **options.provided_env},
            resources=resources,
        )
        run.transition(RunState.ENVIRONMENT_RESOLVED)

        # 4. Execute flow steps sequentially
        results: dict[str, Any] = {}
        for index, step in enumerate(capability.flow.steps):
            run.transition(RunState.EXECUTING)
            task = capability.get_task(step.task)
            if task is None:
                raise TaskNotFoundError(task_id=step.task)

            logger.info("Step %d: running task %s", index, task.id)
            await provider.setup(task, task.dependencies)
            try:
                results[task.id] = await provider.execute_code(task, task_inputs, environment)
            except Exception:
                await self._cleanup_quietly(provider)
                raise
            await provider.cleanup()

        # 5. Format outputs
        outputs = format_outputs(capability.outputs, results)
        run.transition(RunState.OUTPUTS_FORMATTED)
        return outputs

    async def _cleanup_quietly(self, provider: ExecutionProvider) -> None:
        try:
            await provider.cleanup()
        except Exception as e:
            logger.warning("Error during cleanup of %s provider: %s", provider.name, e)

    def _failure(self, run: _Run, error: Exception) -> ExecutionResult:
        if isinstance(error, EnactError):
            return ExecutionResult.from_error(
                error,
                capability_id=run.capability_id,
                version=run.version,
                environment=run.environment_type,
            )

        logger.exception("Unexpected error while executing %s", run.capability_id)
        return ExecutionResult.fail(
            message=str(error) or type(error).__name__,
            code=ERROR_EXECUTION,
            capability_id=run.capability_id,
            version=run.version,
            environment=run.environment_type,
            details={"error_type": type(error).__name__},
        )

    async def execute_by_id(
        self,
        capability_id: str,
        inputs: Mapping[str, Any] | None = None,
        options: ExecutionOptions | None = None,
    ) -> ExecutionResult:
        """
        Look up a capability in the registry and execute it.

        Returns:
            ExecutionResult; an unknown id yields code NOT_FOUND without
            creating any provider
        """
        options = options or ExecutionOptions()
        environment_type = self._backend_type(options)

        try:
            if self.capabilities is None:
                msg = "No capability registry configured"
                raise RuntimeError(msg)
            capability = await self.capabilities.lookup(capability_id)
        except Exception as e:
            logger.warning("Capability lookup failed for %s: %s", capability_id, e)
            return ExecutionResult.fail(
                message=e.message if isinstance(e, EnactError) else str(e),
                code=ERROR_EXECUTION,
                capability_id=capability_id,
                version=UNKNOWN_VERSION,
                environment=environment_type,
            )

        if capability is None:
            error = CapabilityNotFoundError(capability_id=capability_id)
            return ExecutionResult.fail(
                message=error.message,
                code=error.code,
                capability_id=capability_id,
                version=UNKNOWN_VERSION,
                environment=environment_type,
            )

        return await self.execute(capability, inputs, options)
