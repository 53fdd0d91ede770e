"""Chat-Router stellt die Endpunkte des Chat-Widgets bereit
(Nachricht senden, Verlauf lesen, Verlauf löschen, Begrüßung)."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.models import (
    BotResponse,
    GreetingRequest,
    HistoryResponse,
    SuccessResponse,
    UserMessage,
)
from app.core.session import get_session_key

router = APIRouter(prefix="/messages", tags=["Chat"])
logger = logging.getLogger(__name__)


def _chat(request: Request):
    chat = getattr(request.app.state, "chat", None)
    if chat is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat service is still starting up.",
        )
    return chat


@router.post("", response_model=BotResponse)
async def send_message(
    message: UserMessage,
    request: Request,
    session_key: str = Depends(get_session_key),
):
    """Haupt-Endpunkt: leitet die Nachricht an den Assistant weiter.

    Fehler des Assistants liefert der ChatService bereits als
    Entschuldigungstext; hier landen nur unerwartete Fehler (-> 500)."""
    chat = _chat(request)
    try:
        reply = await chat.send_message(session_key, message.message, hidden=message.hidden)
    except Exception as exc:
        logger.exception(f"Error in chat API for session {session_key}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred processing your request",
        ) from exc
    return BotResponse(response=reply)


@router.get("", response_model=HistoryResponse)
async def get_history(request: Request, session_key: str = Depends(get_session_key)):
    """Sichtbarer Verlauf in chronologischer Reihenfolge."""
    history = await _chat(request).get_history(session_key)
    return HistoryResponse(history=history)


@router.delete("", response_model=SuccessResponse)
async def clear_history(request: Request, session_key: str = Depends(get_session_key)):
    """Löscht den Verlauf, indem ein neuer Thread angelegt wird."""
    try:
        await _chat(request).clear_history(session_key)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception(f"Error clearing chat history for session {session_key}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred clearing the chat history",
        ) from exc
    return SuccessResponse(success=True)


@router.post("/greeting", response_model=BotResponse)
async def greet(
    body: GreetingRequest,
    request: Request,
    session_key: str = Depends(get_session_key),
):
    """Versteckte Begrüßung beim ersten Öffnen des Widgets."""
    reply = await _chat(request).greet(session_key, body.name)
    return BotResponse(response=reply)
