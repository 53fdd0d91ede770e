"""HTTP-Gateway zur Kalender-API (GoHighLevel / LeadConnector).

Jede Methode setzt genau einen Request ab und bildet die Antwort auf
einfache Python-Strukturen ab. Fehler (Transport oder Status >= 400)
werden als ``BookingAPIError`` geworfen; Retries finden nicht statt."""
import logging
import re
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import Settings, settings as default_settings
from app.core.errors import BookingAPIError

logger = logging.getLogger(__name__)

# Schlüssel der Tagesgruppierung in der Free-Slots-Antwort, z.B. "2025-06-01".
_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _to_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt_timezone.utc)
    return int(value.timestamp() * 1000)


def _slots_of(group: Any) -> List[str]:
    if isinstance(group, list):
        return [str(slot) for slot in group]
    if isinstance(group, dict) and isinstance(group.get("slots"), list):
        return [str(slot) for slot in group["slots"]]
    return []


def normalize_slots(payload: Any) -> List[str]:
    """Bringt die Free-Slots-Antwort in eine flache, geordnete Liste.

    Unterstützte Formen:
    - flache Liste ``["2025-06-01T10:00:00Z", ...]``
    - ``{"slots": [...]}`` bzw. ``{"_dates": {"slots": [...]}}``
    - Gruppierung nach Datum ``{"2025-06-01": {"slots": [...]}, ...}`` oder
      ``{"2025-06-01": [...]}``; Tage werden nach Datum sortiert, die
      Reihenfolge innerhalb eines Tages bleibt erhalten.
    """
    if isinstance(payload, list):
        return _slots_of(payload)
    if not isinstance(payload, dict):
        return []
    if isinstance(payload.get("slots"), list):
        return _slots_of(payload["slots"])
    if "_dates" in payload:
        return normalize_slots(payload["_dates"])

    slots: List[str] = []
    for date_key in sorted(k for k in payload if _DATE_KEY_RE.match(str(k))):
        slots.extend(_slots_of(payload[date_key]))
    return slots


class BookingGateway:
    """Dünner asynchroner Wrapper um die Kalender-Endpunkte."""

    def __init__(
        self,
        settings: Settings = default_settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.calendar_id = settings.ghl_calendar_id
        self._client = client or httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {settings.ghl_api_token}",
                "Accept": "application/json",
            },
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method, url, params=params, json=json_body, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.error(f"Calendar API {method} {url} failed: {exc}")
            raise BookingAPIError(f"Calendar API unreachable: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            logger.error(
                f"Calendar API {method} {url} returned {response.status_code}: {response.text}"
            )
            raise BookingAPIError(
                f"Calendar API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise BookingAPIError(
                "Calendar API returned invalid JSON", status_code=response.status_code
            ) from exc

    async def get_available_slots(
        self, start: datetime, end: datetime, timezone: Optional[str] = None
    ) -> List[str]:
        """Freie Slots im Intervall [start, end) als ISO-8601-Strings."""
        url = f"{self.settings.ghl_services_base_url}/calendars/{self.calendar_id}/free-slots"
        response = await self._request(
            "GET",
            url,
            params={
                "startDate": _to_millis(start),
                "endDate": _to_millis(end),
                "timezone": timezone or self.settings.default_timezone,
                "enableLookBusy": "false",
            },
            headers={"Version": self.settings.ghl_api_version},
        )
        return normalize_slots(self._json(response))

    async def book_appointment(
        self, slot: str, timezone: Optional[str], name: str, email: str, phone: str
    ) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"{self.settings.ghl_rest_base_url}/appointments/",
            json_body={
                "calendarId": self.calendar_id,
                "selectedTimezone": timezone or self.settings.default_timezone,
                "selectedSlot": slot,
                "name": name,
                "email": email,
                "phone": phone,
            },
        )
        logger.info(f"Booked appointment at {slot}")
        return self._json(response)

    async def get_user_appointments(
        self,
        email: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Termine eines Kontakts; die API filtert hier nicht nach E-Mail,
        daher wird clientseitig gefiltert."""
        start = start or datetime.now(dt_timezone.utc)
        end = end or start + timedelta(days=self.settings.appointment_lookahead_days)
        response = await self._request(
            "GET",
            f"{self.settings.ghl_rest_base_url}/appointments/",
            params={
                "startDate": _to_millis(start),
                "endDate": _to_millis(end),
                "calendarId": self.calendar_id,
                "includeAll": "true",
            },
        )
        data = self._json(response)
        appointments = (data.get("appointments") if isinstance(data, dict) else data) or []
        wanted = email.strip().lower()
        return [
            appt
            for appt in appointments
            if ((appt.get("contact") or {}).get("email") or "").lower() == wanted
        ]

    async def update_appointment(
        self, appointment_id: str, new_slot: str, timezone: Optional[str] = None
    ) -> Dict[str, Any]:
        response = await self._request(
            "PUT",
            f"{self.settings.ghl_rest_base_url}/appointments/{appointment_id}",
            json_body={
                "selectedTimezone": timezone or self.settings.default_timezone,
                "selectedSlot": new_slot,
            },
        )
        logger.info(f"Rescheduled appointment {appointment_id} to {new_slot}")
        return self._json(response)

    async def cancel_appointment(self, appointment_id: str) -> bool:
        response = await self._request(
            "DELETE", f"{self.settings.ghl_rest_base_url}/appointments/{appointment_id}"
        )
        logger.info(f"Cancelled appointment {appointment_id}")
        return response.is_success

    async def list_calendars(self) -> List[Dict[str, Any]]:
        """Listet die Kalender des Accounts (nur für den CLI-Verbindungstest)."""
        response = await self._request("GET", f"{self.settings.ghl_rest_base_url}/calendars/")
        return self._json(response).get("calendars") or []
