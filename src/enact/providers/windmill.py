"""
Remote-workflow execution provider backed by the Windmill API.

Each task is submitted as a preview job and awaited synchronously:

    POST {api_url}/w/{workspace}/jobs/run_wait_result/preview
    {"content": <script>, "language": "bun" | "python3", "args": {"inputs": ..., "env": ...}}

Task code is wrapped in a ``main(inputs, env)`` entry point that returns the
``output`` object, so capability authors write the same body for every
backend.
"""

import logging
import textwrap
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from enact.errors import (
    MissingCodeError,
    MissingCredentialError,
    RemoteExecutionError,
    UnsupportedLanguageError,
)
from enact.providers.base import ExecutionProvider, resolve_from_host
from enact.schema import Dependencies, EnvironmentVariable, ExecutionEnvironment, Task

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://app.windmill.dev/api/v1"

WINDMILL_LANGUAGES = {
    "javascript": "bun",
    "typescript": "bun",
    "python": "python3",
}


def wrap_script(language: str, code: str) -> str:
    """Wrap a task body in the ``main`` entry point Windmill expects."""
    if language == "python3":
        body = textwrap.indent(textwrap.dedent(code).strip("\n"), "    ")
        return f"def main(inputs: dict, env: dict):\n    output = {{}}\n{body}\n    return output\n"

    return (
        "export async function main(inputs: any, env: any) {\n"
        "  const output: any = {};\n"
        f"{code}\n"
        "  return output;\n"
        "}\n"
    )


class WindmillExecutionProvider(ExecutionProvider):
    """
    Execute tasks as Windmill jobs.

    Options:
        api_url (str): API base URL (default https://app.windmill.dev/api/v1)
        workspace (str): Windmill workspace (default "default")
        token (str): Access token (required)
        timeout (float): HTTP timeout in seconds (default 300)

    Raises:
        MissingCredentialError: At construction, when no token is configured
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str = DEFAULT_API_URL,
        workspace: str = "default",
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise MissingCredentialError(provider="windmill", credential="token")

        self.api_url = api_url.rstrip("/")
        self.workspace = workspace
        self.timeout = timeout
        self._token = token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "WindmillExecutionProvider":
        """Build from backend options."""
        return cls(
            token=options.get("token"),
            api_url=options.get("api_url") or DEFAULT_API_URL,
            workspace=options.get("workspace") or "default",
            timeout=float(options.get("timeout") or 300.0),
            transport=options.get("transport"),
        )

    @property
    def name(self) -> str:
        return "windmill"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def setup(self, task: Task, dependencies: Dependencies | None = None) -> bool:
        logger.info("Setting up Windmill execution for %s task %s", task.language, task.id)
        return True

    async def execute_code(
        self,
        task: Task,
        inputs: Mapping[str, Any],
        environment: ExecutionEnvironment,
    ) -> dict[str, Any]:
        if not task.code:
            raise MissingCodeError(task_id=task.id)

        language = WINDMILL_LANGUAGES.get((task.language or "").lower())
        if language is None:
            raise UnsupportedLanguageError(
                task_id=task.id,
                language=task.language,
                provider=self.name,
            )

        path = f"/w/{self.workspace}/jobs/run_wait_result/preview"
        body = {
            "content": wrap_script(language, task.code),
            "language": language,
            "args": {"inputs": dict(inputs), "env": dict(environment.variables)},
        }
        logger.info("Executing task %s in Windmill: %s", task.id, self.api_url)

        try:
            response = await self._get_client().post(path, json=body)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            raise RemoteExecutionError(
                task_id=task.id,
                status_code=e.response.status_code,
                underlying_error=e.response.text[:500] or str(e),
            ) from e
        except httpx.HTTPError as e:
            raise RemoteExecutionError(task_id=task.id, underlying_error=str(e)) from e
        except ValueError as e:
            raise RemoteExecutionError(
                task_id=task.id,
                underlying_error=f"invalid JSON response: {e}",
            ) from e

        if result is None:
            return {}
        if not isinstance(result, dict):
            raise RemoteExecutionError(
                task_id=task.id,
                underlying_error=f"job returned {type(result).__name__}, expected an object",
            )
        return result

    async def cleanup(self) -> bool:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()
        return True

    async def resolve_environment_variables(
        self,
        required_vars: Sequence[EnvironmentVariable],
    ) -> dict[str, Any]:
        return resolve_from_host(required_vars, provider=self.name)
