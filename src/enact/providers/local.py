"""
In-process execution provider.

Runs JavaScript (and plain-JavaScript TypeScript) task code inside an
embedded V8 isolate provided by mini-racer.

Security Note:
    Each task gets a fresh isolate. The only values visible to task code are
    the three bindings ``inputs``, ``env`` and ``output``; they cross the
    boundary as JSON, so no host object can leak in. V8 itself has no module
    loader, filesystem, network or process access, so task code cannot
    reach the host beyond what it is handed.

    The isolate bounds what code can touch, not how long it runs. A
    ``timeout_ms`` option is forwarded to V8 when configured.
"""

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from py_mini_racer import MiniRacer

from enact.errors import MissingCodeError, ScriptExecutionError, UnsupportedLanguageError
from enact.providers.base import HOST_ENV_CASE_INSENSITIVE, ExecutionProvider, resolve_from_host
from enact.schema import Dependencies, EnvironmentVariable, ExecutionEnvironment, Task

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = {"javascript", "typescript"}

_SCRIPT_PREFIX = """\
(function (inputs, env) {
  const output = {};
  try {
    (function (inputs, env, output) {
"""

_SCRIPT_SUFFIX = """
    })(inputs, env, output);
  } catch (error) {
    const message = (error && error.message !== undefined) ? error.message : String(error);
    return JSON.stringify({ success: false, error: message });
  }
  return JSON.stringify({ success: true, output: output });
})"""


def build_script(code: str, inputs: Mapping[str, Any], variables: Mapping[str, Any]) -> str:
    """Wrap task code so it runs with only the inputs/env/output bindings."""
    args = f"({json.dumps(dict(inputs), default=str)}, {json.dumps(dict(variables), default=str)})"
    return _SCRIPT_PREFIX + code + _SCRIPT_SUFFIX + args


class LocalExecutionProvider(ExecutionProvider):
    """
    Execute script tasks in-process.

    Options:
        timeout_ms (int): Abort a script after this many milliseconds
        case_insensitive_env (bool): Override host env case sensitivity
    """

    def __init__(
        self,
        timeout_ms: int | None = None,
        case_insensitive_env: bool | None = None,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.case_insensitive_env = (
            HOST_ENV_CASE_INSENSITIVE if case_insensitive_env is None else case_insensitive_env
        )

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "LocalExecutionProvider":
        """Build from backend options."""
        timeout = options.get("timeout_ms")
        return cls(
            timeout_ms=int(timeout) if timeout is not None else None,
            case_insensitive_env=options.get("case_insensitive_env"),
        )

    @property
    def name(self) -> str:
        return "local"

    async def setup(self, task: Task, dependencies: Dependencies | None = None) -> bool:
        logger.info("Setting up local execution for %s task %s", task.language, task.id)
        return True

    async def execute_code(
        self,
        task: Task,
        inputs: Mapping[str, Any],
        environment: ExecutionEnvironment,
    ) -> dict[str, Any]:
        if not task.code:
            raise MissingCodeError(task_id=task.id)

        language = (task.language or "").lower()
        if language not in SUPPORTED_LANGUAGES:
            raise UnsupportedLanguageError(
                task_id=task.id,
                language=task.language,
                provider=self.name,
            )

        source = build_script(task.code, inputs, environment.variables)
        logger.debug("Executing task %s in a fresh V8 isolate", task.id)
        return await asyncio.to_thread(self._run_script, task.id, source)

    def _run_script(self, task_id: str, source: str) -> dict[str, Any]:
        context = MiniRacer()
        try:
            raw = context.eval(source, timeout=self.timeout_ms)
        except Exception as e:
            raise ScriptExecutionError(task_id=task_id, underlying_error=str(e)) from e
        finally:
            context.close()

        try:
            result = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ScriptExecutionError(
                task_id=task_id,
                underlying_error=f"script produced non-JSON result: {e}",
            ) from e

        if not result.get("success"):
            raise ScriptExecutionError(
                task_id=task_id,
                underlying_error=f"Execution failed: {result.get('error')}",
            )
        return result.get("output") or {}

    async def cleanup(self) -> bool:
        return True

    async def resolve_environment_variables(
        self,
        required_vars: Sequence[EnvironmentVariable],
    ) -> dict[str, Any]:
        return resolve_from_host(
            required_vars,
            provider=self.name,
            case_insensitive=self.case_insensitive_env,
        )
