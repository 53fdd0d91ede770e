"""Baut alle Clients und Komponenten einmalig beim Start zusammen.

Statt globaler Singletons erhält jede Komponente ihre Abhängigkeiten über
den Konstruktor; Tests können so Fakes einsetzen."""
import logging
from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI

from app.core.assistant import AssistantRunner
from app.core.booking import BookingGateway
from app.core.chat_service import ChatService
from app.core.config import Settings
from app.core.database import get_redis_client
from app.core.history import HistoryProjector
from app.core.store import KeyValueStore
from app.core.threads import ThreadRegistry
from app.core.tools import ToolDispatcher

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    openai_client: AsyncOpenAI
    booking: BookingGateway
    threads: ThreadRegistry
    dispatcher: ToolDispatcher
    runner: AssistantRunner
    chat: ChatService

    async def aclose(self) -> None:
        await self.booking.aclose()
        await self.openai_client.close()


def build_context(
    settings: Settings,
    *,
    redis_conn=None,
    openai_client: Optional[AsyncOpenAI] = None,
    booking: Optional[BookingGateway] = None,
) -> AppContext:
    if not settings.assistant_id:
        logger.warning("ASSISTANT_ID is not set; chat requests will fail until it is configured")

    openai_client = openai_client or AsyncOpenAI(api_key=settings.openai_api_key)
    store = KeyValueStore(redis_conn if redis_conn is not None else get_redis_client(settings))
    booking = booking or BookingGateway(settings)

    threads = ThreadRegistry(openai_client, store, app_name=settings.app_name)
    dispatcher = ToolDispatcher(booking, default_timezone=settings.default_timezone)
    runner = AssistantRunner(
        openai_client,
        threads,
        dispatcher,
        settings.assistant_id,
        poll_interval=settings.run_poll_interval_seconds,
        max_wait_seconds=settings.run_max_wait_seconds,
        app_name=settings.app_name,
    )
    chat = ChatService(runner, HistoryProjector(openai_client, threads), threads)

    return AppContext(
        settings=settings,
        openai_client=openai_client,
        booking=booking,
        threads=threads,
        dispatcher=dispatcher,
        runner=runner,
        chat=chat,
    )
