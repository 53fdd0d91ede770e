"""Tool-Dispatcher: führt die Funktionsaufrufe des Assistants gegen das
Booking-Gateway aus.

Jedes Ergebnis (auch ein Fehler) wird als JSON-Payload zurückgegeben, damit
der Run immer fortgesetzt werden kann und der Assistant selbst entscheidet,
wie er dem Nutzer den Fehler mitteilt."""
import json
import logging
from datetime import datetime, timezone as dt_timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from app.core.booking import BookingGateway
from app.core.errors import BookingAPIError

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    GET_AVAILABLE_SLOTS = "get_available_slots"
    BOOK_APPOINTMENT = "book_appointment"
    GET_USER_APPOINTMENTS = "get_user_appointments"
    UPDATE_APPOINTMENT = "update_appointment"
    CANCEL_APPOINTMENT = "cancel_appointment"


class ToolCall(BaseModel):
    """Vom Run angeforderter Funktionsaufruf; ``arguments`` ist ein JSON-String."""

    id: str
    function_name: str
    arguments: str = "{}"


class ToolOutput(BaseModel):
    tool_call_id: str
    output: str

    @property
    def payload(self) -> Any:
        return json.loads(self.output)


# Argument-Modelle je Tool
class AvailableSlotsArgs(BaseModel):
    start_date: str
    end_date: str
    timezone: Optional[str] = None


class BookAppointmentArgs(BaseModel):
    slot: str
    name: str
    email: str
    phone: str
    timezone: Optional[str] = None


class UserAppointmentsArgs(BaseModel):
    email: str


class UpdateAppointmentArgs(BaseModel):
    appointment_id: str
    new_slot: str
    timezone: Optional[str] = None


class CancelAppointmentArgs(BaseModel):
    appointment_id: str


def parse_datetime(value: str) -> datetime:
    """Akzeptiert ``YYYY-MM-DD`` oder ISO-8601; ohne Zeitzone gilt UTC."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


def error_payload(message: str) -> Dict[str, str]:
    return {"error": message}


# Funktionsdefinitionen, die per `chat-widget sync-tools` am Assistant registriert werden.
TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": ToolName.GET_AVAILABLE_SLOTS.value,
            "description": "Get available appointment slots within a date range",
            "parameters": {
                "type": "object",
                "properties": {
                    "start_date": {
                        "type": "string",
                        "description": "The start date for checking available slots (YYYY-MM-DD)",
                    },
                    "end_date": {
                        "type": "string",
                        "description": "The end date for checking available slots (YYYY-MM-DD)",
                    },
                    "timezone": {
                        "type": "string",
                        "description": "The timezone for the appointment slots",
                    },
                },
                "required": ["start_date", "end_date"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": ToolName.BOOK_APPOINTMENT.value,
            "description": "Book an appointment at a specific time slot",
            "parameters": {
                "type": "object",
                "properties": {
                    "slot": {"type": "string", "description": "The ISO8601 datetime of the appointment slot"},
                    "name": {"type": "string", "description": "Customer's full name"},
                    "email": {"type": "string", "description": "Customer's email address"},
                    "phone": {"type": "string", "description": "Customer's phone number"},
                    "timezone": {"type": "string", "description": "The timezone for the appointment"},
                },
                "required": ["slot", "name", "email", "phone"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": ToolName.GET_USER_APPOINTMENTS.value,
            "description": "Get a user's upcoming appointments by email",
            "parameters": {
                "type": "object",
                "properties": {
                    "email": {
                        "type": "string",
                        "description": "Customer's email address to look up appointments",
                    },
                },
                "required": ["email"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": ToolName.UPDATE_APPOINTMENT.value,
            "description": "Reschedule an existing appointment",
            "parameters": {
                "type": "object",
                "properties": {
                    "appointment_id": {"type": "string", "description": "ID of the appointment to update"},
                    "new_slot": {"type": "string", "description": "The new ISO8601 datetime for the appointment"},
                    "timezone": {"type": "string", "description": "The timezone for the appointment"},
                },
                "required": ["appointment_id", "new_slot"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": ToolName.CANCEL_APPOINTMENT.value,
            "description": "Cancel an existing appointment",
            "parameters": {
                "type": "object",
                "properties": {
                    "appointment_id": {"type": "string", "description": "ID of the appointment to cancel"},
                },
                "required": ["appointment_id"],
            },
        },
    },
]


class ToolDispatcher:
    """Ordnet jedem ``ToolName`` ein Argument-Modell und einen Handler zu."""

    def __init__(self, gateway: BookingGateway, default_timezone: str = "America/New_York"):
        self.gateway = gateway
        self.default_timezone = default_timezone
        self._handlers: Dict[ToolName, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            ToolName.GET_AVAILABLE_SLOTS: self._get_available_slots,
            ToolName.BOOK_APPOINTMENT: self._book_appointment,
            ToolName.GET_USER_APPOINTMENTS: self._get_user_appointments,
            ToolName.UPDATE_APPOINTMENT: self._update_appointment,
            ToolName.CANCEL_APPOINTMENT: self._cancel_appointment,
        }

    @property
    def supported_tools(self) -> List[ToolName]:
        return list(self._handlers)

    async def _get_available_slots(self, raw: Dict[str, Any]) -> Any:
        args = AvailableSlotsArgs.model_validate(raw)
        slots = await self.gateway.get_available_slots(
            parse_datetime(args.start_date),
            parse_datetime(args.end_date),
            args.timezone or self.default_timezone,
        )
        return {"slots": slots}

    async def _book_appointment(self, raw: Dict[str, Any]) -> Any:
        args = BookAppointmentArgs.model_validate(raw)
        return await self.gateway.book_appointment(
            args.slot,
            args.timezone or self.default_timezone,
            args.name,
            args.email,
            args.phone,
        )

    async def _get_user_appointments(self, raw: Dict[str, Any]) -> Any:
        args = UserAppointmentsArgs.model_validate(raw)
        return {"appointments": await self.gateway.get_user_appointments(args.email)}

    async def _update_appointment(self, raw: Dict[str, Any]) -> Any:
        args = UpdateAppointmentArgs.model_validate(raw)
        return await self.gateway.update_appointment(
            args.appointment_id, args.new_slot, args.timezone or self.default_timezone
        )

    async def _cancel_appointment(self, raw: Dict[str, Any]) -> Any:
        args = CancelAppointmentArgs.model_validate(raw)
        return {"success": await self.gateway.cancel_appointment(args.appointment_id)}

    async def dispatch(self, call: ToolCall) -> ToolOutput:
        """Führt einen Tool-Call aus. Wirft nie; Fehler landen im Payload."""
        payload = await self._execute(call)
        return ToolOutput(tool_call_id=call.id, output=json.dumps(payload, default=str))

    async def _execute(self, call: ToolCall) -> Any:
        try:
            name = ToolName(call.function_name)
        except ValueError:
            logger.warning(f"Assistant requested unknown function {call.function_name!r}")
            return error_payload(f"Unknown function: {call.function_name}")

        try:
            raw = json.loads(call.arguments or "{}")
        except json.JSONDecodeError as exc:
            logger.warning(f"Invalid arguments for {name.value}: {exc}")
            return error_payload(f"Invalid arguments for {name.value}: {exc.msg}")
        if not isinstance(raw, dict):
            return error_payload(f"Invalid arguments for {name.value}: expected an object")

        logger.info(f"Dispatching tool {name.value} (call {call.id})")
        try:
            return await self._handlers[name](raw)
        except ValidationError as exc:
            missing = ", ".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
            return error_payload(f"Invalid arguments for {name.value}: {missing}")
        except BookingAPIError as exc:
            logger.error(f"Tool {name.value} failed: {exc}")
            return error_payload(str(exc))
        except ValueError as exc:
            # z.B. ungültiges Datumsformat
            return error_payload(f"Invalid arguments for {name.value}: {exc}")
        except Exception as exc:
            logger.exception(f"Unexpected error in tool {name.value}")
            return error_payload(f"{name.value} failed: {exc}")
