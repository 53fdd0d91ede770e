"""Leitet aus der authentifizierten Identität einen stabilen Session-Key ab."""
from typing import Optional

from fastapi import Request

from app.core.errors import Unauthenticated

# Präfix für Session-Keys.
SESSION_PREFIX = "user_"


def resolve_session_key(user_id: Optional[str]) -> str:
    """Gibt ``user_<userId>`` zurück; ohne Identität wird ``Unauthenticated`` geworfen."""
    if not user_id or not user_id.strip():
        raise Unauthenticated()
    return f"{SESSION_PREFIX}{user_id.strip()}"


def get_current_user_id(request: Request) -> Optional[str]:
    """Liest die vom Auth-Proxy gesetzte User-ID aus dem konfigurierten Header."""
    header_name = request.app.state.settings.user_id_header
    return request.headers.get(header_name)


def get_session_key(request: Request) -> str:
    """FastAPI-Dependency: Session-Key des aktuellen Nutzers.

    ``Unauthenticated`` wird vom Handler in ``app.main`` zu 401."""
    return resolve_session_key(get_current_user_id(request))
