"""Tests for the FastAPI endpoints."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.core.chat_service import APOLOGY_MESSAGE
from app.core.errors import BookingAPIError
from app.core.models import ChatMessage
from app.main import app

AUTH = {"X-User-Id": "abc123"}


@pytest.fixture
def mock_chat():
    chat = MagicMock()
    chat.send_message = AsyncMock(return_value="Hello! How can I help?")
    chat.get_history = AsyncMock(
        return_value=[
            ChatMessage(role="user", content="Hi"),
            ChatMessage(role="assistant", content="Hello! How can I help?"),
        ]
    )
    chat.clear_history = AsyncMock(return_value="thread_new")
    chat.greet = AsyncMock(return_value="Hi Jane!")
    return chat


@pytest.fixture
def mock_booking():
    booking = MagicMock()
    booking.get_available_slots = AsyncMock(return_value=["2025-06-01T10:00:00Z"])
    booking.get_user_appointments = AsyncMock(return_value=[{"id": "a1"}])
    booking.book_appointment = AsyncMock(return_value={"id": "a1"})
    booking.update_appointment = AsyncMock(return_value={"id": "a1", "selectedSlot": "2025-06-02T10:00:00Z"})
    booking.cancel_appointment = AsyncMock(return_value=True)
    return booking


@pytest.fixture
def client(mock_chat, mock_booking):
    # Wire state the way the startup event does, without touching Redis.
    app.state.chat = mock_chat
    app.state.booking = mock_booking
    yield TestClient(app)
    app.state.chat = None
    app.state.booking = None


class TestMessages:
    def test_send_message(self, client, mock_chat):
        response = client.post("/messages", json={"message": "Hi"}, headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"response": "Hello! How can I help?"}
        mock_chat.send_message.assert_awaited_once_with("user_abc123", "Hi", hidden=False)

    def test_hidden_flag_is_forwarded(self, client, mock_chat):
        client.post("/messages", json={"message": "Prime", "hidden": True}, headers=AUTH)
        assert mock_chat.send_message.call_args.kwargs["hidden"] is True

    def test_requires_identity(self, client, mock_chat):
        response = client.post("/messages", json={"message": "Hi"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}
        mock_chat.send_message.assert_not_awaited()

    def test_unauthenticated_beats_validation(self, client):
        assert client.post("/messages", json={}).status_code == 401

    def test_missing_message_is_rejected(self, client, mock_chat):
        assert client.post("/messages", json={}, headers=AUTH).status_code == 422
        assert client.post("/messages", json={"message": ""}, headers=AUTH).status_code == 422
        mock_chat.send_message.assert_not_awaited()

    def test_assistant_failure_degrades_to_apology(self, client, mock_chat):
        mock_chat.send_message.return_value = APOLOGY_MESSAGE
        response = client.post("/messages", json={"message": "Hi"}, headers=AUTH)
        assert response.status_code == 200
        assert response.json()["response"] == APOLOGY_MESSAGE

    def test_unexpected_error_returns_500(self, client, mock_chat):
        mock_chat.send_message.side_effect = RuntimeError("kaboom")
        response = client.post("/messages", json={"message": "Hi"}, headers=AUTH)
        assert response.status_code == 500
        assert "kaboom" not in response.json()["detail"]

    def test_get_history(self, client, mock_chat):
        response = client.get("/messages", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["history"] == [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello! How can I help?"},
        ]
        mock_chat.get_history.assert_awaited_once_with("user_abc123")

    def test_history_requires_identity(self, client):
        assert client.get("/messages").status_code == 401

    def test_clear_history(self, client, mock_chat):
        response = client.delete("/messages", headers=AUTH)
        assert response.status_code == 200
        assert response.json() == {"success": True}
        mock_chat.clear_history.assert_awaited_once_with("user_abc123")

    def test_greeting(self, client, mock_chat):
        response = client.post("/messages/greeting", json={"name": "Jane"}, headers=AUTH)
        assert response.json() == {"response": "Hi Jane!"}
        mock_chat.greet.assert_awaited_once_with("user_abc123", "Jane")

    def test_service_not_ready(self, client):
        app.state.chat = None
        assert client.post("/messages", json={"message": "Hi"}, headers=AUTH).status_code == 503


class TestAppointments:
    def test_slots(self, client, mock_booking):
        response = client.get(
            "/appointments",
            params={"action": "slots", "startDate": "2025-06-01", "endDate": "2025-06-08", "timezone": "UTC"},
            headers=AUTH,
        )
        assert response.status_code == 200
        assert response.json() == {"slots": ["2025-06-01T10:00:00Z"]}
        assert mock_booking.get_available_slots.call_args.args[2] == "UTC"

    def test_slots_default_timezone(self, client, mock_booking):
        client.get(
            "/appointments",
            params={"startDate": "2025-06-01", "endDate": "2025-06-08"},
            headers=AUTH,
        )
        assert mock_booking.get_available_slots.call_args.args[2] == app.state.settings.default_timezone

    def test_slots_require_dates(self, client, mock_booking):
        response = client.get("/appointments", params={"action": "slots"}, headers=AUTH)
        assert response.status_code == 400
        assert response.json() == {"detail": "startDate and endDate are required"}
        mock_booking.get_available_slots.assert_not_awaited()

    def test_user_appointments(self, client, mock_booking):
        response = client.get(
            "/appointments", params={"action": "userAppointments", "email": "jane@example.com"}, headers=AUTH
        )
        assert response.json() == {"appointments": [{"id": "a1"}]}

    def test_user_appointments_require_email(self, client):
        response = client.get("/appointments", params={"action": "userAppointments"}, headers=AUTH)
        assert response.status_code == 400

    def test_invalid_action(self, client):
        response = client.get("/appointments", params={"action": "everything"}, headers=AUTH)
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid action"}

    def test_malformed_dates_are_rejected(self, client, mock_booking):
        response = client.get(
            "/appointments",
            params={"action": "slots", "startDate": "next week", "endDate": "2025-06-08"},
            headers=AUTH,
        )
        assert response.status_code == 400
        assert "ISO" in response.json()["detail"]
        mock_booking.get_available_slots.assert_not_awaited()

    def test_book(self, client, mock_booking):
        body = {"slot": "2025-06-01T10:00:00Z", "name": "Jane Doe", "email": "jane@example.com", "phone": "555-0100"}
        response = client.post("/appointments", json=body, headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"appointment": {"id": "a1"}}
        mock_booking.book_appointment.assert_awaited_once_with(
            "2025-06-01T10:00:00Z", None, "Jane Doe", "jane@example.com", "555-0100"
        )

    def test_book_missing_fields(self, client, mock_booking):
        response = client.post("/appointments", json={"slot": "2025-06-01T10:00:00Z"}, headers=AUTH)
        assert response.status_code == 422
        mock_booking.book_appointment.assert_not_awaited()

    def test_book_calendar_failure(self, client, mock_booking):
        mock_booking.book_appointment.side_effect = BookingAPIError("Calendar API error 500: down", 500)
        body = {"slot": "2025-06-01T10:00:00Z", "name": "Jane Doe", "email": "jane@example.com", "phone": "555-0100"}
        response = client.post("/appointments", json=body, headers=AUTH)
        assert response.status_code == 502

    def test_reschedule(self, client, mock_booking):
        response = client.put(
            "/appointments", json={"appointmentId": "a1", "newSlot": "2025-06-02T10:00:00Z"}, headers=AUTH
        )
        assert response.status_code == 200
        mock_booking.update_appointment.assert_awaited_once_with("a1", "2025-06-02T10:00:00Z", None)

    def test_cancel(self, client, mock_booking):
        response = client.request("DELETE", "/appointments", json={"appointmentId": "a1"}, headers=AUTH)
        assert response.json() == {"success": True}

    def test_cancel_requires_id(self, client):
        response = client.request("DELETE", "/appointments", json={}, headers=AUTH)
        assert response.status_code == 422

    def test_requires_identity(self, client):
        assert client.get("/appointments", params={"action": "slots"}).status_code == 401
        assert client.post("/appointments", json={}).status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
