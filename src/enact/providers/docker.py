"""
Containerized execution provider.

Runs each task inside a throwaway Docker container driven through the docker
CLI:

    setup()        docker run -d ... <image> sleep infinity   (+ package installs)
    execute_code() docker exec -i <container> <runner>        (payload on stdin)
    cleanup()      docker rm -f <container>

Security Note:
    - docker is invoked with argument lists, never through a shell
    - Task code, inputs and env travel as one JSON document on stdin, never
      as command-line arguments
    - Containers are started with --rm and removed on cleanup, so a provider
      instance owns at most one running container at a time
"""

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from enact.errors import ContainerExecutionError, MissingCodeError, UnsupportedLanguageError
from enact.providers.base import ExecutionProvider, resolve_from_host
from enact.schema import Dependencies, EnvironmentVariable, ExecutionEnvironment, Task

logger = logging.getLogger(__name__)

WORKDIR = "/workspace"

DEFAULT_IMAGES = {
    "javascript": "node:20-alpine",
    "typescript": "node:20-alpine",
    "python": "python:3.12-slim",
}

_NODE_RUNNER = """\
let data = "";
process.stdin.on("data", (chunk) => { data += chunk; });
process.stdin.on("end", () => {
  const payload = JSON.parse(data);
  Object.assign(process.env, payload.env);
  const output = {};
  try {
    new Function("inputs", "env", "output", "require", payload.code)(
      payload.inputs, payload.env, output, require);
  } catch (error) {
    process.stderr.write(String(error && error.message !== undefined ? error.message : error));
    process.exit(1);
  }
  process.stdout.write(JSON.stringify(output));
});
"""

_PYTHON_RUNNER = """\
import json, os, sys
payload = json.load(sys.stdin)
os.environ.update({k: str(v) for k, v in payload["env"].items()})
output = {}
exec(payload["code"], {"inputs": payload["inputs"], "env": payload["env"], "output": output})
sys.stdout.write(json.dumps(output, default=str))
"""

RUNNERS = {
    "javascript": ["node", "-e", _NODE_RUNNER],
    "typescript": ["node", "-e", _NODE_RUNNER],
    "python": ["python", "-c", _PYTHON_RUNNER],
}


def install_command(language: str, dependencies: Dependencies) -> list[str] | None:
    """Command that installs a task's packages inside the container, if any."""
    if not dependencies.packages:
        return None

    if language == "python":
        specs = [
            f"{pkg.name}=={pkg.version}" if pkg.version else pkg.name
            for pkg in dependencies.packages
        ]
        return ["pip", "install", "--quiet", *specs]

    specs = [f"{pkg.name}@{pkg.version}" if pkg.version else pkg.name for pkg in dependencies.packages]
    return ["npm", "install", "--silent", "--prefix", WORKDIR, *specs]


class DockerExecutionProvider(ExecutionProvider):
    """
    Execute tasks inside Docker containers.

    Options:
        docker_path (str): docker binary (default "docker")
        network_mode (str): container network (default "bridge")
        memory (str): memory limit (default "512m")
        cpus (str): CPU limit (default "1.0")
        image (str): image override for every language

    Attributes:
        container_id: Id of the running sandbox, None when none is running
    """

    def __init__(
        self,
        docker_path: str = "docker",
        network_mode: str = "bridge",
        memory: str = "512m",
        cpus: str = "1.0",
        image: str | None = None,
    ) -> None:
        self.docker_path = docker_path
        self.network_mode = network_mode
        self.memory = memory
        self.cpus = cpus
        self.image = image
        self.container_id: str | None = None

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "DockerExecutionProvider":
        """Build from backend options."""
        return cls(
            docker_path=options.get("docker_path") or "docker",
            network_mode=options.get("network_mode") or "bridge",
            memory=options.get("memory") or "512m",
            cpus=str(options.get("cpus") or "1.0"),
            image=options.get("image"),
        )

    @property
    def name(self) -> str:
        return "docker"

    def _language(self, task: Task) -> str:
        language = (task.language or "").lower()
        if language not in RUNNERS:
            raise UnsupportedLanguageError(
                task_id=task.id,
                language=task.language,
                provider=self.name,
            )
        return language

    async def _docker(self, *args: str, stdin: bytes | None = None) -> tuple[int, str, str]:
        """Run a docker CLI command and return (return_code, stdout, stderr)."""
        try:
            process = await asyncio.create_subprocess_exec(
                self.docker_path,
                *args,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ContainerExecutionError(
                container_id=self.container_id,
                underlying_error=f"cannot run {self.docker_path}: {e}",
            ) from e

        stdout, stderr = await process.communicate(stdin)
        return (
            process.returncode or 0,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    async def setup(self, task: Task, dependencies: Dependencies | None = None) -> bool:
        language = self._language(task)
        image = self.image or DEFAULT_IMAGES[language]
        logger.info("Setting up Docker execution for %s task %s (%s)", language, task.id, image)

        if self.container_id is not None:
            await self.cleanup()

        code, stdout, stderr = await self._docker(
            "run", "-d", "--rm",
            "--network", self.network_mode,
            "--memory", self.memory,
            "--cpus", self.cpus,
            "--workdir", WORKDIR,
            image,
            "sleep", "infinity",
        )
        if code != 0:
            raise ContainerExecutionError(task_id=task.id, underlying_error=stderr.strip())

        self.container_id = stdout.strip()
        logger.debug("Started container %s", self.container_id)

        if dependencies is not None:
            command = install_command(language, dependencies)
            if command:
                code, _, stderr = await self._docker("exec", self.container_id, *command)
                if code != 0:
                    raise ContainerExecutionError(
                        task_id=task.id,
                        container_id=self.container_id,
                        underlying_error=f"dependency install failed: {stderr.strip()}",
                    )
        return True

    async def execute_code(
        self,
        task: Task,
        inputs: Mapping[str, Any],
        environment: ExecutionEnvironment,
    ) -> dict[str, Any]:
        if not task.code:
            raise MissingCodeError(task_id=task.id)
        language = self._language(task)
        if self.container_id is None:
            raise ContainerExecutionError(
                task_id=task.id,
                underlying_error="no running container, setup() must run first",
            )

        logger.info("Executing task %s in Docker container %s", task.id, self.container_id)

        payload = json.dumps(
            {"code": task.code, "inputs": dict(inputs), "env": dict(environment.variables)},
            default=str,
        ).encode("utf-8")

        code, stdout, stderr = await self._docker(
            "exec", "-i", self.container_id, *RUNNERS[language],
            stdin=payload,
        )
        if code != 0:
            raise ContainerExecutionError(
                task_id=task.id,
                container_id=self.container_id,
                underlying_error=stderr.strip() or f"exit code {code}",
            )

        try:
            result = json.loads(stdout) if stdout.strip() else {}
        except ValueError as e:
            raise ContainerExecutionError(
                task_id=task.id,
                container_id=self.container_id,
                underlying_error=f"task produced non-JSON output: {e}",
            ) from e
        if not isinstance(result, dict):
            raise ContainerExecutionError(
                task_id=task.id,
                container_id=self.container_id,
                underlying_error="task output must be a JSON object",
            )
        return result

    async def cleanup(self) -> bool:
        if self.container_id is None:
            return True

        container_id, self.container_id = self.container_id, None
        logger.info("Stopping and removing Docker container %s", container_id)
        try:
            code, _, stderr = await self._docker("rm", "-f", container_id)
        except ContainerExecutionError as e:
            logger.warning("Failed to remove container %s: %s", container_id, e.message)
            return False
        if code != 0:
            logger.warning("Failed to remove container %s: %s", container_id, stderr.strip())
            return False
        return True

    async def resolve_environment_variables(
        self,
        required_vars: Sequence[EnvironmentVariable],
    ) -> dict[str, Any]:
        return resolve_from_host(required_vars, provider=self.name)
