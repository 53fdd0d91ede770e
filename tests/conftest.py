"""Shared fakes for the chat widget test suite."""
import itertools
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.config import Settings
from app.core.store import KeyValueStore
from app.core.threads import ThreadRegistry


class FakeRedis:
    """Dict-backed stand-in for the handful of redis commands we use."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value


def text_message(msg_id, role, text, created_at, hidden=False):
    return SimpleNamespace(
        id=msg_id,
        role=role,
        created_at=created_at,
        metadata={"hidden": "true"} if hidden else {},
        content=[SimpleNamespace(type="text", text=SimpleNamespace(value=text))],
    )


def make_page(messages, has_more=False):
    return SimpleNamespace(data=list(messages), has_more=has_more)


def make_run(status, run_id="run_1", tool_calls=None, last_error=None):
    required_action = None
    if tool_calls is not None:
        required_action = SimpleNamespace(
            submit_tool_outputs=SimpleNamespace(
                tool_calls=[
                    SimpleNamespace(
                        id=call_id,
                        type="function",
                        function=SimpleNamespace(name=name, arguments=arguments),
                    )
                    for call_id, name, arguments in tool_calls
                ]
            )
        )
    return SimpleNamespace(
        id=run_id, status=status, required_action=required_action, last_error=last_error
    )


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="test-openai-key",
        assistant_id="asst_test",
        ghl_api_token="test-ghl-token",
        ghl_calendar_id="cal_test",
        run_poll_interval_seconds=0,
        run_max_wait_seconds=30,
    )


@pytest.fixture
def redis_conn():
    return FakeRedis()


@pytest.fixture
def openai_client():
    """MagicMock shaped like AsyncOpenAI; every remote call is an AsyncMock."""
    client = MagicMock()
    counter = itertools.count(1)
    client.beta.threads.create = AsyncMock(
        side_effect=lambda **kwargs: SimpleNamespace(id=f"thread_{next(counter)}")
    )
    client.beta.threads.messages.create = AsyncMock()
    client.beta.threads.messages.list = AsyncMock(return_value=make_page([]))
    client.beta.threads.runs.create = AsyncMock(return_value=make_run("completed"))
    client.beta.threads.runs.retrieve = AsyncMock()
    client.beta.threads.runs.submit_tool_outputs = AsyncMock()
    client.beta.threads.runs.cancel = AsyncMock()
    return client


@pytest.fixture
def registry(openai_client, redis_conn):
    return ThreadRegistry(openai_client, KeyValueStore(redis_conn))
