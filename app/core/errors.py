"""Fehlerklassen des Termin-Chat-Widgets.

``Unauthenticated`` und ``InvalidRequest`` werden von den Exception-Handlern
in ``app.main`` zu 401 bzw. 400; Tool-Fehler werden dagegen im Dispatcher
als Payload an den Assistant zurückgegeben und nie weitergeworfen."""
from typing import Optional


class ChatWidgetError(Exception):
    """Basisklasse aller fachlichen Fehler."""


class Unauthenticated(ChatWidgetError):
    """Keine Identität vorhanden."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class InvalidRequest(ChatWidgetError):
    """Pflichtfeld fehlt oder ist ungültig; es wurde noch nichts ausgeführt."""


class RemoteServiceFailure(ChatWidgetError):
    """Assistant- oder Kalender-Dienst hat einen Fehler geliefert."""


class AssistantRunFailed(RemoteServiceFailure):
    """Ein Run ist in einem Fehlerzustand (failed, cancelled, expired, ...) geendet."""

    def __init__(self, message: str = "Assistant run failed", status: Optional[str] = None):
        self.status = status
        super().__init__(message)


class RunTimeout(RemoteServiceFailure):
    """Der Run hat innerhalb der maximalen Wartezeit keinen Endzustand erreicht."""

    def __init__(self, run_id: str, waited_seconds: float):
        self.run_id = run_id
        self.waited_seconds = waited_seconds
        super().__init__(f"Run {run_id} did not finish within {waited_seconds:.1f}s")


class BookingAPIError(RemoteServiceFailure):
    """Raised when a calendar API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
