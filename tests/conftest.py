"""
Global test configuration: environment isolation, markers and shared fakes.
"""

from collections.abc import Callable, Iterable
import logging
import os
from typing import Any

import pytest

from darwin_orchestrator.config import FrozenConfig
from darwin_orchestrator.config.schema import (
    DEFAULT_DOCUMENT_CANDIDATES,
    DEFAULT_ENDPOINT,
    DEFAULT_TEXT_CANDIDATES,
)
from darwin_orchestrator.pipeline.adapters.base import GatewayReply


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_darwin_env(request, monkeypatch):
    """Ensure a clean DARWIN_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the environment as is.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("DARWIN_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def neutral_home_config(request, monkeypatch, tmp_path):
    """Point the home-config path at an isolated temp file.

    Prevents reading a developer's real ~/.config/darwin_orchestrator.toml.
    """
    if request.node.get_closest_marker("allow_real_home_config"):
        return
    fake_home_dir = tmp_path / "home_config_isolated"
    fake_home_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("DARWIN_CONFIG_HOME", str(fake_home_dir / "darwin_orchestrator.toml"))


@pytest.fixture
def isolated_project(tmp_path, monkeypatch):
    """Run from a temp directory so no real pyproject.toml is picked up."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with mocked transports",
        "allow_env_pollution: Keep DARWIN_* environment variables for this test",
        "allow_real_home_config: Read the real home configuration file",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Fakes ---
def make_chat_payload(
    content: Any = "ok",
    *,
    finish_reason: str | None = "stop",
    tool_arguments: Any = None,
) -> dict[str, Any]:
    """Build a chat-completions body with a single choice."""
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_arguments is not None:
        message["tool_calls"] = [
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": "respond", "arguments": tool_arguments},
            }
        ]
    return {"choices": [{"index": 0, "message": message, "finish_reason": finish_reason}]}


class ScriptedAdapter:
    """Gateway adapter that replays scripted replies per model.

    Each script entry is a `GatewayReply`, an exception instance to raise, or
    a dict used as a 200 payload. Calls are recorded as model names in order.
    """

    def __init__(
        self,
        scripts: dict[str, Iterable[Any]] | None = None,
        default: Any = None,
    ) -> None:
        self._scripts = {model: list(entries) for model, entries in (scripts or {}).items()}
        self._default = default
        self.calls: list[str] = []
        self.bodies: list[dict[str, Any]] = []

    async def post(self, body: dict[str, Any]) -> GatewayReply:
        model = body["model"]
        self.calls.append(model)
        self.bodies.append(body)
        script = self._scripts.get(model)
        entry = script.pop(0) if script else self._default
        if entry is None:
            raise AssertionError(f"No scripted reply left for {model}")
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, GatewayReply):
            return entry
        return GatewayReply(status_code=200, payload=entry)


def make_status_reply(code: int, text: str = "") -> GatewayReply:
    return GatewayReply(status_code=code, payload=None, text=text or f"status {code}")


@pytest.fixture
def frozen_config() -> FrozenConfig:
    return FrozenConfig(
        api_key="test-key",
        endpoint=DEFAULT_ENDPOINT,
        document_candidates=DEFAULT_DOCUMENT_CANDIDATES,
        text_candidates=DEFAULT_TEXT_CANDIDATES,
        document_retries=3,
        text_retries=1,
        retry_delay_seconds=2.0,
        call_timeout_seconds=120.0,
    )


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def scripted_adapter() -> Callable[..., ScriptedAdapter]:
    return ScriptedAdapter


@pytest.fixture
def chat_payload() -> Callable[..., dict[str, Any]]:
    return make_chat_payload


@pytest.fixture
def status_reply() -> Callable[..., GatewayReply]:
    return make_status_reply
