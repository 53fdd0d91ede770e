from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.context import build_context


@pytest.mark.asyncio
async def test_build_context_wires_components(settings, redis_conn, openai_client):
    booking = MagicMock()
    booking.aclose = AsyncMock()
    openai_client.close = AsyncMock()

    context = build_context(settings, redis_conn=redis_conn, openai_client=openai_client, booking=booking)

    assert context.runner.assistant_id == "asst_test"
    assert context.runner.threads is context.threads
    assert context.dispatcher.gateway is booking
    assert context.chat.runner is context.runner
    assert context.threads.store.redis is redis_conn

    await context.aclose()
    booking.aclose.assert_awaited_once()
    openai_client.close.assert_awaited_once()
