"""Service layer for Callbridge."""

from callbridge.services.reservation_manager import (
    ReservationManager,
    parse_reservation_id,
)

__all__ = ["ReservationManager", "parse_reservation_id"]
