import pytest

from app.core.history import PAGE_SIZE, HistoryProjector
from conftest import make_page, text_message


@pytest.mark.asyncio
async def test_history_excludes_hidden_and_is_chronological(openai_client, registry):
    # Provider order: newest first
    openai_client.beta.threads.messages.list.return_value = make_page(
        [
            text_message("m3", "assistant", "Hi Jane, I'm your assistant.", created_at=3),
            text_message("m2", "user", "Hello there", created_at=2),
            text_message("m1", "user", "Hi, I'm a new user named Jane.", created_at=1, hidden=True),
        ]
    )
    projector = HistoryProjector(openai_client, registry)

    history = await projector.get_history("user_1")

    assert [(m.role, m.content) for m in history] == [
        ("user", "Hello there"),
        ("assistant", "Hi Jane, I'm your assistant."),
    ]


@pytest.mark.asyncio
async def test_history_follows_pagination(openai_client, registry):
    openai_client.beta.threads.messages.list.side_effect = [
        make_page([text_message("m4", "assistant", "four", 4), text_message("m3", "user", "three", 3)], has_more=True),
        make_page([text_message("m2", "assistant", "two", 2), text_message("m1", "user", "one", 1)]),
    ]
    projector = HistoryProjector(openai_client, registry)

    history = await projector.get_history("user_1")

    assert [m.content for m in history] == ["one", "two", "three", "four"]
    second_call = openai_client.beta.threads.messages.list.call_args_list[1].kwargs
    assert second_call["after"] == "m3"
    assert second_call["limit"] == PAGE_SIZE
    assert second_call["order"] == "desc"


@pytest.mark.asyncio
async def test_empty_thread(openai_client, registry):
    projector = HistoryProjector(openai_client, registry)
    assert await projector.get_history("user_1") == []
