"""Termin-Router: direkter Zugriff auf das Booking-Gateway (ohne Assistant)."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.errors import BookingAPIError, InvalidRequest
from app.core.models import (
    AppointmentResponse,
    AppointmentsResponse,
    BookAppointmentRequest,
    CancelAppointmentRequest,
    SlotsResponse,
    SuccessResponse,
    UpdateAppointmentRequest,
)
from app.core.session import get_session_key
from app.core.tools import parse_datetime

router = APIRouter(prefix="/appointments", tags=["Appointments"])
logger = logging.getLogger(__name__)


def _gateway(request: Request):
    gateway = getattr(request.app.state, "booking", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking service is still starting up.",
        )
    return gateway


def _bad_gateway(exc: BookingAPIError, action: str) -> HTTPException:
    logger.error(f"Calendar API failed while trying to {action}: {exc}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.get("")
async def get_appointments(
    request: Request,
    action: str = "slots",
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    timezone: Optional[str] = None,
    email: Optional[str] = None,
    session_key: str = Depends(get_session_key),
):
    """``action=slots`` liefert freie Slots, ``action=userAppointments`` die
    Termine zu einer E-Mail-Adresse."""
    gateway = _gateway(request)

    if action == "slots":
        if not startDate or not endDate:
            raise InvalidRequest("startDate and endDate are required")
        try:
            start, end = parse_datetime(startDate), parse_datetime(endDate)
        except ValueError as exc:
            raise InvalidRequest("startDate and endDate must be ISO dates") from exc
        try:
            slots = await gateway.get_available_slots(
                start, end, timezone or request.app.state.settings.default_timezone
            )
        except BookingAPIError as exc:
            raise _bad_gateway(exc, "list slots") from exc
        return SlotsResponse(slots=slots)

    if action == "userAppointments":
        if not email:
            raise InvalidRequest("email is required")
        try:
            appointments = await gateway.get_user_appointments(email)
        except BookingAPIError as exc:
            raise _bad_gateway(exc, "list appointments") from exc
        return AppointmentsResponse(appointments=appointments)

    raise InvalidRequest("Invalid action")


@router.post("", response_model=AppointmentResponse)
async def book_appointment(
    body: BookAppointmentRequest,
    request: Request,
    session_key: str = Depends(get_session_key),
):
    gateway = _gateway(request)
    try:
        result = await gateway.book_appointment(
            body.slot, body.timezone, body.name, body.email, body.phone
        )
    except BookingAPIError as exc:
        raise _bad_gateway(exc, "book an appointment") from exc
    logger.info(f"Session {session_key} booked slot {body.slot}")
    return AppointmentResponse(appointment=result)


@router.put("", response_model=AppointmentResponse)
async def update_appointment(
    body: UpdateAppointmentRequest,
    request: Request,
    session_key: str = Depends(get_session_key),
):
    gateway = _gateway(request)
    try:
        result = await gateway.update_appointment(body.appointmentId, body.newSlot, body.timezone)
    except BookingAPIError as exc:
        raise _bad_gateway(exc, "update an appointment") from exc
    return AppointmentResponse(appointment=result)


@router.delete("", response_model=SuccessResponse)
async def cancel_appointment(
    body: CancelAppointmentRequest,
    request: Request,
    session_key: str = Depends(get_session_key),
):
    gateway = _gateway(request)
    try:
        success = await gateway.cancel_appointment(body.appointmentId)
    except BookingAPIError as exc:
        raise _bad_gateway(exc, "cancel an appointment") from exc
    return SuccessResponse(success=success)
