"""FastAPI-Einstiegspunkt für das Termin-Chat-Widget."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.context import build_context
from app.core.errors import InvalidRequest, Unauthenticated
from app.core.logging_setup import setup_logging
from app.routers import appointments as appointments_router
from app.routers import chat as chat_router

logger = logging.getLogger(__name__)

# Initialisierung der App
app = FastAPI(
    title="Appointment Chat Widget",
    version="1.0.0",
    description="Assistant-backed chat with per-user threads and calendar booking.",
)

# Settings sind schon vor dem Start verfügbar (Identitäts-Header).
app.state.settings = settings


@app.on_event("startup")
def startup_event() -> None:
    """Initialisiert alle Services beim Start der Anwendung.

    - Richtet Logging (Konsole + Datei) ein.
    - Prüft die Redis-Verbindung (Ping).
    - Erstellt OpenAI-Client, Kalender-Gateway und Chat-Service.
    """
    setup_logging()
    context = build_context(settings)
    app.state.context = context
    app.state.chat = context.chat
    app.state.booking = context.booking
    logger.info("Appointment Chat Widget is initialised.")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    context = getattr(app.state, "context", None)
    if context is not None:
        await context.aclose()


@app.exception_handler(Unauthenticated)
async def unauthenticated_handler(request: Request, exc: Unauthenticated):
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": "Unauthorized"})


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    logger.warning(f"Rejected request to {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}


# Router registrieren
app.include_router(chat_router.router)
app.include_router(appointments_router.router)
