"""Tests for focus statistics, user info and full sync."""
import asyncio

import pytest

from conftest import StubRouter
from ticktick_tools import endpoints, focus, sync, user
from ticktick_tools.config import AuthMethod
from ticktick_tools.errors import ProtocolError, ValidationError

SESSION = AuthMethod.SESSION


class TestFocus:
    def test_heatmap_range(self):
        path = "/pomodoros/statistics/heatmap/20240301/20240331"
        router = StubRouter({("GET", path): [{"day": "20240301", "duration": 50}]})

        result = asyncio.run(
            focus.get_heatmap(router, SESSION, "2024-03-01T00:00:00Z", "2024-03-31T00:00:00Z")
        )

        assert result["from"] == "20240301"
        assert result["heatmap"] == [{"day": "20240301", "duration": 50}]

    def test_distribution_empty(self):
        router = StubRouter()
        result = asyncio.run(focus.get_distribution(router, SESSION, "2024-03-01", "2024-03-02"))
        assert result["distribution"] == {}
        assert router.calls[0].endpoint == "/pomodoros/statistics/dist/20240301/20240302"

    def test_invalid_date(self):
        with pytest.raises(ValidationError):
            asyncio.run(focus.get_heatmap(StubRouter(), SESSION, "March", "2024-03-02"))


class TestUser:
    def test_profile(self):
        router = StubRouter({("GET", endpoints.USER_PROFILE): {"username": "me@example.com"}})
        assert asyncio.run(user.get_profile(router, SESSION))["profile"]["username"] == "me@example.com"

    def test_status(self):
        router = StubRouter({("GET", endpoints.USER_STATUS): {"pro": True}})
        assert asyncio.run(user.get_status(router, SESSION))["status"] == {"pro": True}

    def test_preferences_query(self):
        router = StubRouter({("GET", endpoints.USER_PREFERENCES_SETTINGS): {"timeZone": "UTC"}})
        asyncio.run(user.get_preferences(router, SESSION))
        assert router.calls[0].query == {"includeWeb": "true"}


class TestSync:
    def test_sync_all(self, sync_state):
        router = StubRouter({("GET", endpoints.SYNC): sync_state})
        result = asyncio.run(sync.sync_all(router, SESSION))
        assert result["state"]["inboxId"] == "inbox118"

    def test_unexpected_payload(self):
        router = StubRouter({("GET", endpoints.SYNC): ["not", "a", "dict"]})
        with pytest.raises(ProtocolError):
            asyncio.run(sync.sync_all(router, SESSION))

    def test_state_tasks_tolerates_missing_bean(self):
        assert sync.state_tasks({}) == []
