"""Kommandozeile für Betrieb und Einrichtung des Chat-Widgets.

Usage:
    chat-widget create-assistant            # Assistant anlegen, ID ausgeben
    chat-widget sync-tools                  # Termin-Tools am Assistant registrieren
    chat-widget check-calendar --days 7     # Verbindung zur Kalender-API testen
    chat-widget serve --port 1985           # API-Server starten
"""
import argparse
import asyncio
import logging
from datetime import datetime, timedelta, timezone

import uvicorn
from openai import AsyncOpenAI

from app.core.booking import BookingGateway
from app.core.config import Settings, settings as default_settings
from app.core.errors import BookingAPIError
from app.core.tools import TOOL_DEFINITIONS

logger = logging.getLogger(__name__)

BASE_INSTRUCTIONS = (
    "You are a helpful AI assistant. You remember previous conversations with users "
    "and provide accurate, helpful responses."
)

APPOINTMENT_INSTRUCTIONS = (
    "You can help users schedule, reschedule, and cancel appointments using the "
    "provided appointment functions. When a user asks about appointments, use these "
    "functions to help them. For scheduling, ask for their preferred date/time, name, "
    "email, and phone number. For rescheduling or cancelling, ask for their email to "
    "locate existing appointments. Always confirm the details of any booking or "
    "change with the user."
)


def merge_instructions(current: str) -> str:
    """Hängt die Termin-Anweisungen an, sofern sie noch fehlen."""
    current = (current or "").strip()
    if APPOINTMENT_INSTRUCTIONS in current:
        return current
    if not current:
        return APPOINTMENT_INSTRUCTIONS
    return f"{current}\n\n{APPOINTMENT_INSTRUCTIONS}"


async def create_assistant(client, name: str, model: str) -> str:
    assistant = await client.beta.assistants.create(
        name=name,
        instructions=merge_instructions(BASE_INSTRUCTIONS),
        model=model,
        tools=TOOL_DEFINITIONS,
    )
    return assistant.id


async def sync_tools(client, assistant_id: str) -> str:
    current = await client.beta.assistants.retrieve(assistant_id)
    updated = await client.beta.assistants.update(
        assistant_id,
        tools=TOOL_DEFINITIONS,
        instructions=merge_instructions(current.instructions),
    )
    return updated.id


async def check_calendar(gateway: BookingGateway, days: int) -> int:
    calendars = await gateway.list_calendars()
    print(f"Found {len(calendars)} calendar(s):")
    for calendar in calendars:
        print(f"  - {calendar.get('id')}: {calendar.get('name')}")

    start = datetime.now(timezone.utc)
    slots = await gateway.get_available_slots(start, start + timedelta(days=days))
    print(f"{len(slots)} free slot(s) in calendar {gateway.calendar_id} for the next {days} day(s)")
    for slot in slots[:10]:
        print(f"  • {slot}")
    return len(slots)


async def _run_openai(settings: Settings, args) -> int:
    if not settings.openai_api_key:
        print("Error: OPENAI_API_KEY not found in environment variables")
        return 1
    client = AsyncOpenAI(api_key=settings.openai_api_key)
    try:
        if args.command == "create-assistant":
            assistant_id = await create_assistant(client, args.name, args.model or settings.assistant_model)
            print(f"Assistant created with ID: {assistant_id}")
            print("Add this ID to your .env file as ASSISTANT_ID")
        else:
            if not settings.assistant_id:
                print("Error: ASSISTANT_ID is not configured")
                return 1
            assistant_id = await sync_tools(client, settings.assistant_id)
            print(f"Updated assistant successfully: {assistant_id}")
    finally:
        await client.close()
    return 0


async def _run_calendar(settings: Settings, days: int) -> int:
    gateway = BookingGateway(settings)
    try:
        await check_calendar(gateway, days)
    except BookingAPIError as e:
        print(f"Calendar API test failed: {e}")
        return 1
    finally:
        await gateway.aclose()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chat-widget", description="Appointment Chat Widget")
    parser.add_argument("--debug", action="store_true", help="Show debug log messages")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-assistant", help="Create the OpenAI assistant")
    create.add_argument("--name", default="Chat Assistant")
    create.add_argument("--model", default=None)

    sub.add_parser("sync-tools", help="Register the appointment tools on the assistant")

    check = sub.add_parser("check-calendar", help="Smoke-test the calendar API")
    check.add_argument("--days", type=int, default=7)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--reload", action="store_true")
    return parser


def main(argv=None, settings: Settings = default_settings) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "serve":
        uvicorn.run(
            "app.main:app",
            host=args.host,
            port=args.port or settings.service_port,
            reload=args.reload,
        )
        return 0
    if args.command == "check-calendar":
        return asyncio.run(_run_calendar(settings, args.days))
    return asyncio.run(_run_openai(settings, args))


if __name__ == "__main__":
    raise SystemExit(main())
