"""FastAPI server for Twilio voice webhooks and call reservations."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import uvicorn
from fastapi import Body, Depends, FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from callbridge.config import Config, get_config, setup_logging
from callbridge.database import create_tables, get_db
from callbridge.errors import ReservationError
from callbridge.models.call import CallEvent, CallStatusEvent
from callbridge.models.reservation import ReservationCreate, ReservationRead
from callbridge.routing import CallRouter
from callbridge.services import ReservationManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan manager."""
    config = get_config()
    logger.info(f"Starting Callbridge on {config.server_host}:{config.server_port}")
    logger.info(f"Public URL: {config.server_url}")
    logger.info(f"Verified caller ID: {config.twilio_caller_id or 'NOT CONFIGURED'}")
    if not config.has_twilio_config():
        logger.warning("Twilio is not fully configured - PSTN calls may fail")

    create_tables()

    yield

    logger.info("Shutting down Callbridge")


app = FastAPI(
    title="Callbridge API",
    description="Call routing for Twilio Voice clients and scheduled call reservations",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _failure(status_code: int, message: str, error: str | None = None) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(ReservationError)
async def reservation_error_handler(_request: Request, exc: ReservationError):
    """Render reservation errors in the standard response envelope."""
    if exc.status_code >= 500:
        logger.error(f"{exc.message}: {exc.detail}")
    else:
        logger.warning(f"Rejected reservation request: {exc.message}")
    return _failure(exc.status_code, exc.message, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400 instead of FastAPI's 422."""
    logger.warning(f"Invalid request body: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Invalid request body",
            "error": jsonable_encoder(exc.errors()),
        },
    )


def get_call_router(config: Config = Depends(get_config)) -> CallRouter:
    """Dependency that builds a router from the current configuration."""
    return CallRouter(config)


def get_reservation_manager(
    db: Session = Depends(get_db),
    config: Config = Depends(get_config),
) -> ReservationManager:
    """Dependency that binds a reservation manager to the request session."""
    return ReservationManager(db, timezone=config.reservation_timezone)


async def _twilio_params(request: Request) -> dict[str, str]:
    """Collect webhook parameters; form fields win over the query string."""
    params = dict(request.query_params)
    form = await request.form()
    params.update({key: value for key, value in form.items() if isinstance(value, str)})
    return params


async def _call_event(request: Request) -> CallEvent | None:
    """Read a voice webhook event, or None when the request cannot be parsed."""
    try:
        return CallEvent.model_validate(await _twilio_params(request))
    except Exception:
        logger.exception("Failed to read voice webhook parameters")
        return None


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# Twilio voice webhooks


@app.post("/api/twilio/voice")
async def voice_response(
    request: Request, call_router: CallRouter = Depends(get_call_router)
):
    """Relay a call placed by a Voice SDK client to ``To``.

    Returns:
        TwiML XML response
    """
    event = await _call_event(request)
    twiml = call_router.apology() if event is None else call_router.handle_outbound(event)
    return Response(content=twiml, media_type="text/xml")


@app.post("/api/twilio/incoming")
async def incoming_call(
    request: Request, call_router: CallRouter = Depends(get_call_router)
):
    """Route a call arriving at the Twilio number to a client.

    Returns:
        TwiML XML response
    """
    logger.info("Incoming call request received")
    event = await _call_event(request)
    twiml = call_router.apology() if event is None else call_router.handle_inbound(event)
    return Response(content=twiml, media_type="text/xml")


@app.post("/api/twilio/status")
async def call_status(request: Request):
    """Acknowledge Twilio status callbacks.

    Status updates are only logged; they do not affect routing or reservations.
    """
    event = CallStatusEvent.model_validate(await _twilio_params(request))
    logger.info(f"Call status update for {event.call_sid}: {event.call_status}")

    if event.error_code:
        logger.error(f"Twilio error {event.error_code}: {event.error_message}")

    return Response(content="OK", media_type="text/plain")


# Reservations


@app.post("/api/reservations", status_code=201)
def create_reservation(
    payload: ReservationCreate,
    manager: ReservationManager = Depends(get_reservation_manager),
):
    """Create a new call reservation."""
    try:
        reservation = manager.create(**payload.model_dump())
    except ReservationError:
        raise
    except Exception as e:
        logger.exception("Failed to create reservation")
        return _failure(500, "Failed to create reservation", str(e))

    return {"success": True, "data": ReservationRead.serialize(reservation)}


@app.get("/api/reservations/user/{username}")
def get_user_reservations(
    username: str, manager: ReservationManager = Depends(get_reservation_manager)
):
    """Get all reservations for a username."""
    try:
        reservations = manager.list_by_user(username)
    except ReservationError:
        raise
    except Exception as e:
        logger.exception("Failed to fetch reservations")
        return _failure(500, "Failed to fetch reservations", str(e))

    return {
        "success": True,
        "data": [ReservationRead.serialize(item) for item in reservations],
    }


@app.post("/api/reservations/update-expired")
def update_expired_reservations(
    manager: ReservationManager = Depends(get_reservation_manager),
):
    """Complete reservations that are past their end time but still ongoing."""
    try:
        result = manager.sweep_expired()
    except ReservationError:
        raise
    except Exception as e:
        logger.exception("Failed to update expired reservations")
        return _failure(500, "Failed to update expired reservations", str(e))

    message = (
        f"Updated {result.count} expired reservations"
        if result.count
        else "No expired reservations found"
    )
    return {
        "success": True,
        "message": message,
        "data": {
            "count": result.count,
            "records": [ReservationRead.serialize(item) for item in result.records],
        },
    }


@app.get("/api/reservations/{reservation_id}")
def get_reservation(
    reservation_id: str, manager: ReservationManager = Depends(get_reservation_manager)
):
    """Get a specific reservation by ID."""
    try:
        reservation = manager.get(reservation_id)
    except ReservationError:
        raise
    except Exception as e:
        logger.exception("Failed to fetch reservation")
        return _failure(500, "Failed to fetch reservation", str(e))

    return {"success": True, "data": ReservationRead.serialize(reservation)}


@app.put("/api/reservations/{reservation_id}")
def update_reservation(
    reservation_id: str,
    changes: dict[str, Any] = Body(...),
    manager: ReservationManager = Depends(get_reservation_manager),
):
    """Update a reservation's status or other details."""
    try:
        reservation = manager.update(reservation_id, changes)
    except ReservationError:
        raise
    except Exception as e:
        logger.exception("Failed to update reservation")
        return _failure(500, "Failed to update reservation", str(e))

    return {"success": True, "data": ReservationRead.serialize(reservation)}


def run_server():
    """Run the FastAPI server using uvicorn.

    This is the main entry point for the server.
    """
    setup_logging()
    config = get_config()

    uvicorn.run(
        "callbridge.server:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    run_server()
