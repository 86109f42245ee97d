"""
Unit tests for the Windmill provider.

HTTP traffic goes through httpx.MockTransport; no network is used.
"""

import json

import httpx
import pytest

from enact.errors import (
    ERROR_MISSING_CREDENTIAL,
    ERROR_REMOTE_EXECUTION,
    MissingCredentialError,
    RemoteExecutionError,
    UnsupportedLanguageError,
)
from enact.providers.windmill import WindmillExecutionProvider, wrap_script
from enact.schema import ExecutionEnvironment, Task


def make_provider(handler, **kwargs) -> WindmillExecutionProvider:
    return WindmillExecutionProvider(
        token="secret",
        api_url="https://wm.example.com/api/v1/",
        workspace="team",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def js_task(code: str | None = "output.x = inputs.n;") -> Task:
    return Task(id="t", language="javascript", code=code)


class TestConstruction:
    """Tests for construction and options."""

    def test_missing_token(self) -> None:
        with pytest.raises(MissingCredentialError) as exc_info:
            WindmillExecutionProvider()
        assert exc_info.value.code == ERROR_MISSING_CREDENTIAL

    def test_from_options_missing_token(self) -> None:
        with pytest.raises(MissingCredentialError):
            WindmillExecutionProvider.from_options({"workspace": "team"})

    def test_from_options(self) -> None:
        provider = WindmillExecutionProvider.from_options({"token": "t", "workspace": "w"})
        assert provider.workspace == "w"
        assert provider.api_url == "https://app.windmill.dev/api/v1"
        assert provider.name == "windmill"


class TestExecuteCode:
    """Tests for job submission."""

    @pytest.mark.asyncio
    async def test_posts_preview_job(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"x": 5})

        provider = make_provider(handler)
        result = await provider.execute_code(
            js_task(),
            {"n": 5},
            ExecutionEnvironment(variables={"K": "v"}),
        )
        await provider.cleanup()

        assert result == {"x": 5}
        assert seen["url"] == "https://wm.example.com/api/v1/w/team/jobs/run_wait_result/preview"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"]["language"] == "bun"
        assert seen["body"]["args"] == {"inputs": {"n": 5}, "env": {"K": "v"}}
        assert "export async function main" in seen["body"]["content"]

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        provider = make_provider(lambda request: httpx.Response(400, text="bad script"))
        with pytest.raises(RemoteExecutionError) as exc_info:
            await provider.execute_code(js_task(), {}, ExecutionEnvironment())
        await provider.cleanup()
        assert exc_info.value.code == ERROR_REMOTE_EXECUTION
        assert exc_info.value.status_code == 400
        assert "bad script" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = make_provider(handler)
        with pytest.raises(RemoteExecutionError):
            await provider.execute_code(js_task(), {}, ExecutionEnvironment())
        await provider.cleanup()

    @pytest.mark.asyncio
    async def test_null_result_is_empty(self) -> None:
        provider = make_provider(lambda request: httpx.Response(200, content=b"null"))
        assert await provider.execute_code(js_task(), {}, ExecutionEnvironment()) == {}
        await provider.cleanup()

    @pytest.mark.asyncio
    async def test_non_object_result(self) -> None:
        provider = make_provider(lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(RemoteExecutionError):
            await provider.execute_code(js_task(), {}, ExecutionEnvironment())
        await provider.cleanup()

    @pytest.mark.asyncio
    async def test_unsupported_language(self) -> None:
        provider = make_provider(lambda request: httpx.Response(200, json={}))
        with pytest.raises(UnsupportedLanguageError):
            await provider.execute_code(Task(id="t", language="go", code="x"), {}, ExecutionEnvironment())

    @pytest.mark.asyncio
    async def test_cleanup_before_use(self) -> None:
        provider = make_provider(lambda request: httpx.Response(200, json={}))
        assert await provider.cleanup()


class TestWrapScript:
    """Tests for wrap_script."""

    def test_python_body_indented(self) -> None:
        script = wrap_script("python3", "output['a'] = inputs['b']\n")
        assert script.startswith("def main(inputs: dict, env: dict):")
        assert "    output['a'] = inputs['b']" in script
        assert script.rstrip().endswith("return output")

    def test_bun_wrapper(self) -> None:
        script = wrap_script("bun", "output.a = 1;")
        assert "output.a = 1;" in script
        assert "return output;" in script
