"""Projiziert den Thread-Verlauf der Assistant API auf die sichtbare
Chat-Historie (ohne versteckte Nachrichten, älteste zuerst)."""
import logging
from typing import List

from app.core.assistant import is_hidden, message_text
from app.core.models import ChatMessage
from app.core.threads import ThreadRegistry

logger = logging.getLogger(__name__)

# Seitengröße beim Abruf; die API liefert maximal 100 pro Seite.
PAGE_SIZE = 100


class HistoryProjector:
    def __init__(self, client, threads: ThreadRegistry) -> None:
        self.client = client
        self.threads = threads

    async def _fetch_all(self, thread_id: str) -> list:
        # Die API sortiert standardmäßig neueste zuerst; wir blättern mit `after`.
        messages = []
        after = None
        while True:
            params = {"thread_id": thread_id, "order": "desc", "limit": PAGE_SIZE}
            if after:
                params["after"] = after
            page = await self.client.beta.threads.messages.list(**params)
            messages.extend(page.data)
            if not page.data or not getattr(page, "has_more", False):
                return messages
            after = page.data[-1].id

    async def get_history(self, session_key: str) -> List[ChatMessage]:
        """Ruft den gesamten Chat-Verlauf ab, filtert versteckte Nachrichten
        und gibt ihn in chronologischer Reihenfolge zurück."""
        thread_id = await self.threads.get_or_create_thread(session_key)
        raw_messages = await self._fetch_all(thread_id)

        history = [
            ChatMessage(role=msg.role, content=message_text(msg))
            for msg in raw_messages
            if not is_hidden(msg)
        ]
        history.reverse()
        logger.debug(f"Loaded {len(history)} visible message(s) for session {session_key}")
        return history
