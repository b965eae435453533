"""Data models for the Callbridge service."""

from callbridge.models.call import (
    CallerIdResolution,
    CallEvent,
    CallResult,
    CallStatusEvent,
    ConnectionInstruction,
    Destination,
    RoutingDecision,
    SpokenMessage,
    TargetKind,
)
from callbridge.models.reservation import (
    CallReservation,
    ReservationCreate,
    ReservationRead,
    ReservationStatus,
    SweepResult,
)

__all__ = [
    "CallEvent",
    "CallReservation",
    "CallResult",
    "CallStatusEvent",
    "CallerIdResolution",
    "ConnectionInstruction",
    "Destination",
    "ReservationCreate",
    "ReservationRead",
    "ReservationStatus",
    "RoutingDecision",
    "SpokenMessage",
    "SweepResult",
    "TargetKind",
]
