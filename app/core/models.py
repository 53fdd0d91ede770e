"""API-Modelle für das Termin-Chat-Widget: Chat-Nachrichten, Verlauf und
Termin-Requests."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """Sichtbare Nachricht im Chat-Verlauf."""

    role: Literal["user", "assistant", "system"]
    content: str


class UserMessage(BaseModel):
    """Eingehende Nutzernachricht; ``hidden`` markiert Prompts, die nie im
    Verlauf erscheinen (z.B. die Begrüßung beim ersten Besuch)."""

    message: str = Field(..., min_length=1)
    hidden: bool = False


class BotResponse(BaseModel):
    response: str


class HistoryResponse(BaseModel):
    history: List[ChatMessage]


class GreetingRequest(BaseModel):
    name: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool


class BookAppointmentRequest(BaseModel):
    slot: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    timezone: Optional[str] = None


class UpdateAppointmentRequest(BaseModel):
    appointmentId: str = Field(..., min_length=1)
    newSlot: str = Field(..., min_length=1)
    timezone: Optional[str] = None


class CancelAppointmentRequest(BaseModel):
    appointmentId: str = Field(..., min_length=1)


class AppointmentResponse(BaseModel):
    appointment: Dict[str, Any]


class SlotsResponse(BaseModel):
    slots: List[str]


class AppointmentsResponse(BaseModel):
    appointments: List[Dict[str, Any]]
