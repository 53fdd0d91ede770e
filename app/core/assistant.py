"""Steuert die Kommunikation mit der OpenAI Assistant API inkl.
Tool-Call-Rundlauf zum Kalender für das Termin-Chat-Widget."""
import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from app.core.errors import AssistantRunFailed, RunTimeout
from app.core.threads import ThreadRegistry
from app.core.tools import ToolCall, ToolDispatcher, ToolOutput

logger = logging.getLogger(__name__)

# Antwort, wenn der Run zwar fertig ist, aber keine Assistant-Nachricht vorliegt.
NO_RESPONSE_FALLBACK = "No response from assistant"

# Statusgruppen der Assistant API
PENDING_STATUSES = frozenset({"queued", "in_progress", "cancelling"})
ACTION_STATUS = "requires_action"
COMPLETED_STATUS = "completed"


def message_text(message) -> str:
    """Verkettet alle Text-Segmente einer Thread-Nachricht."""
    return "".join(
        part.text.value for part in (message.content or []) if part.type == "text"
    )


def is_hidden(message) -> bool:
    metadata = getattr(message, "metadata", None) or {}
    return str(metadata.get("hidden", "")).lower() == "true"


class AssistantRunner:
    """Legt Nutzernachrichten in den Thread der Session, startet einen Run
    und pollt, bis er fertig ist.

    Ablauf pro Turn:
    - Thread über die Registry auflösen (wird beim ersten Mal angelegt).
    - Nachricht anhängen (versteckte Nachrichten mit Metadaten ``hidden``).
    - Run starten und im festen Takt pollen.
    - Bei ``requires_action`` alle Tool-Calls der Reihe nach ausführen und
      gesammelt zurückreichen, danach weiter pollen.
    - Bei Fehlerstatus ``AssistantRunFailed``, bei Überschreiten der
      maximalen Wartezeit ``RunTimeout``.
    """

    def __init__(
        self,
        client,
        threads: ThreadRegistry,
        dispatcher: ToolDispatcher,
        assistant_id: str,
        *,
        poll_interval: float = 1.0,
        max_wait_seconds: Optional[float] = 120.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        app_name: str = "AppointmentChatWidget",
    ) -> None:
        self.client = client
        self.threads = threads
        self.dispatcher = dispatcher
        self.assistant_id = assistant_id
        self.poll_interval = poll_interval
        self.max_wait_seconds = max_wait_seconds
        self._sleep = sleep
        self._clock = clock
        self.app_name = app_name

    async def run_turn(self, session_key: str, user_text: str, hidden: bool = False) -> str:
        """Sendet ``user_text`` an den Assistant und liefert dessen Antworttext."""
        thread_id = await self.threads.get_or_create_thread(session_key)

        logger.info(f"OpenAI Request [Session {session_key}] (hidden={hidden}): {user_text}")
        await self.client.beta.threads.messages.create(
            thread_id=thread_id,
            role="user",
            content=user_text,
            metadata={"hidden": "true"} if hidden else {},
        )

        run = await self.client.beta.threads.runs.create(
            thread_id=thread_id,
            assistant_id=self.assistant_id,
            metadata={"session_id": session_key, "app": self.app_name},
        )
        logger.info(f"Started run {run.id} on thread {thread_id}")

        started = self._clock()
        run = await self._wait_for_run(thread_id, run, started)
        while run.status == ACTION_STATUS:
            outputs = await self._handle_required_action(run)
            run = await self.client.beta.threads.runs.submit_tool_outputs(
                thread_id=thread_id,
                run_id=run.id,
                tool_outputs=[output.model_dump() for output in outputs],
            )
            run = await self._wait_for_run(thread_id, run, started)

        # failed, cancelled, expired, incomplete
        if run.status != COMPLETED_STATUS:
            last_error = getattr(run, "last_error", None)
            message = getattr(last_error, "message", None) or f"Assistant run {run.status}"
            logger.error(f"Run {run.id} ended with status {run.status}: {message}")
            raise AssistantRunFailed(message, status=run.status)

        reply = await self._latest_assistant_reply(thread_id)
        logger.info(f"OpenAI Response [Session {session_key}]: {reply}")
        return reply

    async def _wait_for_run(self, thread_id: str, run, started: float):
        """Pollt, bis der Run nicht mehr in einem Wartestatus ist.

        ``started`` ist der Beginn des gesamten Turns, damit die maximale
        Wartezeit auch über mehrere Tool-Runden hinweg gilt."""
        while run.status in PENDING_STATUSES:
            waited = self._clock() - started
            if self.max_wait_seconds is not None and waited >= self.max_wait_seconds:
                await self._cancel_quietly(thread_id, run.id)
                raise RunTimeout(run.id, waited)
            await self._sleep(self.poll_interval)
            run = await self.client.beta.threads.runs.retrieve(
                thread_id=thread_id, run_id=run.id
            )
            logger.debug(f"Run {run.id} status: {run.status}")
        return run

    async def _cancel_quietly(self, thread_id: str, run_id: str) -> None:
        try:
            await self.client.beta.threads.runs.cancel(thread_id=thread_id, run_id=run_id)
        except Exception as e:
            logger.warning(f"Could not cancel timed out run {run_id}: {e}")

    async def _handle_required_action(self, run) -> List[ToolOutput]:
        tool_calls = run.required_action.submit_tool_outputs.tool_calls
        outputs = []
        for raw_call in tool_calls:
            call = ToolCall(
                id=raw_call.id,
                function_name=raw_call.function.name,
                arguments=raw_call.function.arguments or "{}",
            )
            outputs.append(await self.dispatcher.dispatch(call))
        logger.info(f"Run {run.id}: submitting {len(outputs)} tool output(s)")
        return outputs

    async def _latest_assistant_reply(self, thread_id: str) -> str:
        messages = await self.client.beta.threads.messages.list(
            thread_id=thread_id, order="desc", limit=20
        )
        replies = [msg for msg in messages.data if msg.role == "assistant"]
        if not replies:
            return NO_RESPONSE_FALLBACK
        latest = max(replies, key=lambda msg: msg.created_at)
        return message_text(latest)
