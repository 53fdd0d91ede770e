"""Thread-Registry: ordnet jedem Session-Key genau einen Thread der
Assistant API zu und hält diese Zuordnung in Redis."""
import logging
from typing import Optional

from app.core.store import KeyValueStore

logger = logging.getLogger(__name__)

# Präfix für Thread-Keys im Store.
THREAD_PREFIX = "thread:"


class ThreadRegistry:
    """Schlägt Threads pro Session nach oder legt sie lazy an.

    Lookup und Anlage sind nicht gegen parallele Erstanfragen derselben
    Session abgesichert: beide Requests können einen Thread erzeugen, der
    letzte Schreibvorgang gewinnt und der andere Thread bleibt verwaist.
    Der Redis-Client ist synchron; Lookups blockieren kurz den Event-Loop."""

    def __init__(self, client, store: KeyValueStore, app_name: str = "AppointmentChatWidget"):
        self.client = client
        self.store = store
        self.app_name = app_name

    @staticmethod
    def _key(session_key: str) -> str:
        return f"{THREAD_PREFIX}{session_key}"

    async def _create_remote_thread(self, session_key: str) -> str:
        thread = await self.client.beta.threads.create(
            metadata={"session_id": session_key, "app": self.app_name}
        )
        return thread.id

    def peek_thread(self, session_key: str) -> Optional[str]:
        """Gibt die gespeicherte Thread-ID zurück, ohne einen Thread anzulegen."""
        return self.store.get(self._key(session_key))

    async def get_or_create_thread(self, session_key: str) -> str:
        thread_id = self.peek_thread(session_key)
        if thread_id is None:
            thread_id = await self._create_remote_thread(session_key)
            self.store.set(self._key(session_key), thread_id)
            logger.info(f"Created thread {thread_id} for session {session_key}")
        return thread_id

    async def reset_thread(self, session_key: str) -> str:
        """Legt immer einen neuen Thread an und überschreibt die Zuordnung
        (Verlauf löschen). Der alte Thread wird nicht entfernt."""
        previous = self.peek_thread(session_key)
        thread_id = await self._create_remote_thread(session_key)
        self.store.set(self._key(session_key), thread_id)
        logger.info(f"Reset thread for session {session_key}: {previous} -> {thread_id}")
        return thread_id
