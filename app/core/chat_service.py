"""Öffentliche Fassade für den Chat: Nachricht senden, Verlauf lesen,
Verlauf löschen und Begrüßung.

Fehler beim Senden werden zu einer festen Entschuldigung, Fehler beim
Lesen des Verlaufs zu einer leeren Liste, damit das Widget weiter
bedienbar bleibt."""
import logging
from typing import List, Optional

from app.core.assistant import AssistantRunner
from app.core.history import HistoryProjector
from app.core.models import ChatMessage
from app.core.threads import ThreadRegistry

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "Sorry, there was an error processing your message."
GREETING_TEMPLATE = "Hi, I'm a new user named {name}. Please introduce yourself briefly."


class ChatService:
    def __init__(
        self,
        runner: AssistantRunner,
        history: HistoryProjector,
        threads: ThreadRegistry,
    ) -> None:
        self.runner = runner
        self.history = history
        self.threads = threads

    async def send_message(self, session_key: str, text: str, hidden: bool = False) -> str:
        try:
            return await self.runner.run_turn(session_key, text, hidden=hidden)
        except Exception:
            logger.exception(f"Error processing message for session {session_key}")
            return APOLOGY_MESSAGE

    async def get_history(self, session_key: str) -> List[ChatMessage]:
        try:
            return await self.history.get_history(session_key)
        except Exception as e:
            logger.error(f"Failed to fetch thread history for session {session_key}: {e}")
            return []

    async def clear_history(self, session_key: str) -> str:
        """Startet einen neuen Thread; der alte bleibt bei OpenAI bestehen."""
        return await self.threads.reset_thread(session_key)

    async def greet(self, session_key: str, user_name: Optional[str] = None) -> str:
        """Sendet den Begrüßungs-Prompt versteckt und gibt die sichtbare Antwort zurück."""
        prompt = GREETING_TEMPLATE.format(name=(user_name or "").strip() or "there")
        return await self.send_message(session_key, prompt, hidden=True)
