"""Pytest fixtures for TickTick tools tests."""
import copy
import json
from pathlib import Path
from types import SimpleNamespace
from typing import Generator

import httpx
import pytest

import ticktick_tools.config as config_module
from ticktick_tools.config import AuthMethod
from ticktick_tools.router import ProtocolRouter
from ticktick_tools.session import Session, SessionStore

CREDENTIALS = {
    "token": {"token": "official-token-123"},
    "oauth2": {"access_token": "oauth-access-456"},
    "session": {"username": "me@example.com", "password": "hunter2"},
}

SESSION_BASE = "https://api.ticktick.com/api/v2"
OFFICIAL_BASE = "https://api.ticktick.com"


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def get_test_credentials(method) -> dict:
    return CREDENTIALS[AuthMethod(method).value]


def make_router(handler, clock: FakeClock | None = None) -> ProtocolRouter:
    """Real ProtocolRouter over an httpx.MockTransport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ProtocolRouter(
        client,
        SessionStore(clock=clock or FakeClock()),
        credentials=get_test_credentials,
        official_base_url=OFFICIAL_BASE,
        session_base_url=SESSION_BASE,
    )


def signon_response(token: str = "session-token", **extra) -> httpx.Response:
    body = {"token": token, "inboxId": "inbox118", "userId": "42", **extra}
    return httpx.Response(200, json=body)


class StubRouter:
    """Stand-in for ProtocolRouter that answers from a (method, endpoint) table.

    A response may be an exception instance, which is raised instead.
    """

    def __init__(self, responses: dict | None = None, inbox_id: str = "inbox118"):
        self.responses = responses or {}
        self.calls = []
        self.session = Session(token="session-token", device_id="a" * 24, inbox_id=inbox_id)

    async def call(self, protocol, method, endpoint, body=None, query=None, timeout=None):
        self.calls.append(
            SimpleNamespace(
                protocol=AuthMethod(protocol),
                method=method,
                endpoint=endpoint,
                body=copy.deepcopy(body),
                query=query,
            )
        )
        response = self.responses.get((method, endpoint))
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)

    async def get_session(self) -> Session:
        return self.session

    def find(self, method: str, endpoint: str):
        """Most recent call for method and endpoint, or None."""
        for call in reversed(self.calls):
            if call.method == method and call.endpoint == endpoint:
                return call
        return None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_router() -> StubRouter:
    return StubRouter()


@pytest.fixture
def sync_state() -> dict:
    """A small account snapshot as returned by /batch/check/0."""
    return {
        "inboxId": "inbox118",
        "projectProfiles": [
            {"id": "proj1", "name": "Work", "color": "#F18181", "groupId": "grp1", "kind": "TASK"},
            {"id": "proj2", "name": "Home", "color": "#4CA1FF", "kind": "TASK"},
        ],
        "projectGroups": [{"id": "grp1", "name": "Office", "sortOrder": 0, "listType": "group"}],
        "tags": [
            {"name": "work", "label": "Work", "color": "#FFD866", "sortOrder": 0, "sortType": "project"},
        ],
        "syncTaskBean": {
            "update": [
                {
                    "id": "task1",
                    "projectId": "proj1",
                    "title": "Write report",
                    "content": "Quarterly numbers",
                    "priority": 3,
                    "status": 0,
                    "dueDate": "2024-03-20T09:00:00+0000",
                    "tags": ["work", "urgent"],
                    "reminders": ["TRIGGER:PT0S"],
                    "items": [{"id": "item1", "title": "Gather data", "status": 0}],
                    "etag": "abc123xy",
                },
                {"id": "task2", "projectId": "inbox118", "title": "Buy milk", "status": 0},
            ]
        },
    }


@pytest.fixture
def temp_config_dir(tmp_path) -> Generator[Path, None, None]:
    config_dir = tmp_path / ".ticktick"
    config_dir.mkdir()
    yield config_dir


@pytest.fixture
def mock_config(temp_config_dir: Path, monkeypatch):
    """Point the config module at a temporary config file."""
    config_module.clear_config_cache()

    config_file = temp_config_dir / "config.json"
    config_file.write_text(json.dumps({"auth_method": "session", "credentials": CREDENTIALS}))
    monkeypatch.setattr(config_module, "get_config_path", lambda: config_file)

    class ConfigHelper:
        def __init__(self):
            self.path = config_file

        def set(self, **kwargs):
            """Update config values."""
            data = json.loads(self.path.read_text()) if self.path.exists() else {}
            data.update(kwargs)
            self.path.write_text(json.dumps(data))
            config_module.clear_config_cache()

        def delete_key(self, key: str):
            data = json.loads(self.path.read_text())
            data.pop(key, None)
            self.path.write_text(json.dumps(data))
            config_module.clear_config_cache()

        def delete_file(self):
            if self.path.exists():
                self.path.unlink()
            config_module.clear_config_cache()

    yield ConfigHelper()
    config_module.clear_config_cache()


@pytest.fixture
def no_config(mock_config):
    """No config file exists."""
    mock_config.delete_file()
    return mock_config
