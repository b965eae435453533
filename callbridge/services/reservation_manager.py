"""Reservation lifecycle: creation, lookups, status changes and expiry sweeps."""

import logging
import re
from collections.abc import Callable, Mapping
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from callbridge.errors import (
    InvalidReservationIdError,
    ReservationNotFoundError,
    ReservationValidationError,
    StorageError,
)
from callbridge.models.reservation import (
    ALLOWED_TRANSITIONS,
    CallReservation,
    ReservationStatus,
    SweepResult,
)

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")

MISSING_FIELDS_MESSAGE = (
    "Missing required fields: username, reservationDate, startTime, "
    "and endTime are required"
)

# API (camelCase) name -> model attribute, for fields callers may change
UPDATABLE_FIELDS = {
    "username": "username",
    "title": "title",
    "description": "description",
    "reservationDate": "reservation_date",
    "startTime": "start_time",
    "endTime": "end_time",
    "status": "status",
    "phoneNumber": "phone_number",
    "callSid": "call_sid",
    "callDuration": "call_duration",
}
UPDATABLE_FIELDS.update({attr: attr for attr in list(UPDATABLE_FIELDS.values())})

READ_ONLY_FIELDS = {"id", "createdAt", "updatedAt", "created_at", "updated_at"}
REQUIRED_ATTRIBUTES = {"username", "reservation_date", "start_time", "end_time"}

# Largest value a portable Integer primary key can hold
MAX_RESERVATION_ID = 2**31 - 1


def parse_reservation_id(value: Any) -> int:
    """Parse a reservation id, accepting ints and decimal strings.

    Raises:
        InvalidReservationIdError: If the value is not a positive integer
        ReservationNotFoundError: If the id is beyond the storable range
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidReservationIdError("Missing ID parameter")

    if isinstance(value, int) and not isinstance(value, bool):
        parsed = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise InvalidReservationIdError("Invalid ID format - must be a number")

    if parsed <= 0:
        raise InvalidReservationIdError("Invalid ID format - must be a positive number")
    if parsed > MAX_RESERVATION_ID:
        raise ReservationNotFoundError(parsed)
    return parsed


def _validate_date(field: str, value: str) -> str:
    try:
        if not DATE_PATTERN.match(value):
            raise ValueError(value)
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ReservationValidationError(
            f"Invalid {field} '{value}' - expected YYYY-MM-DD"
        ) from None
    return value


def _validate_time(field: str, value: str) -> str:
    try:
        if not TIME_PATTERN.match(value):
            raise ValueError(value)
        datetime.strptime(value, "%H:%M")
    except ValueError:
        raise ReservationValidationError(
            f"Invalid {field} '{value}' - expected HH:MM"
        ) from None
    return value


def _validate_status(value: Any) -> ReservationStatus:
    try:
        return ReservationStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in ReservationStatus)
        raise ReservationValidationError(
            f"Invalid status '{value}' - must be one of: {allowed}"
        ) from None


class ReservationManager:
    """Owns the reservation state machine.

    Every mutation goes through this class. Status changes must follow
    ``ALLOWED_TRANSITIONS``; the expiry sweep is the only automatic transition.
    Updates are blind merges, so concurrent writers to the same reservation
    resolve as last-write-wins.
    """

    def __init__(
        self,
        session: Session,
        clock: Callable[[], datetime] | None = None,
        timezone: str = "UTC",
    ) -> None:
        """Initialize the manager.

        Args:
            session: SQLAlchemy session for this unit of work
            clock: Returns the current time; defaults to ``datetime.now``
            timezone: Zone in which reservation dates and times are expressed
        """
        self.session = session
        self.timezone = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(self.timezone))

    def now(self) -> datetime:
        """Current time in the reservation timezone."""
        current = self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=self.timezone)
        return current.astimezone(self.timezone)

    @contextmanager
    def _storage(self, message: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception(message)
            raise StorageError(message) from e

    def create(
        self,
        username: str | None,
        reservation_date: str | None,
        start_time: str | None,
        end_time: str | None,
        phone_number: str | None = None,
        title: str | None = None,
        description: str | None = None,
    ) -> CallReservation:
        """Create a reservation in the ``scheduled`` state.

        Raises:
            ReservationValidationError: If a required field is missing or malformed
            StorageError: If the database write fails
        """
        required = (username, reservation_date, start_time, end_time)
        if any(not value or not str(value).strip() for value in required):
            raise ReservationValidationError(MISSING_FIELDS_MESSAGE)

        _validate_date("reservationDate", reservation_date)
        _validate_time("startTime", start_time)
        _validate_time("endTime", end_time)

        now = self.now()
        reservation = CallReservation(
            username=username,
            reservation_date=reservation_date,
            start_time=start_time,
            end_time=end_time,
            phone_number=phone_number,
            title=title,
            description=description,
            status=ReservationStatus.SCHEDULED.value,
            created_at=now,
            updated_at=now,
        )

        with self._storage("Failed to create reservation"):
            self.session.add(reservation)
            self.session.commit()
            self.session.refresh(reservation)

        logger.info(
            f"Created reservation for {username} on {reservation_date} "
            f"at {start_time}-{end_time}"
        )
        return reservation

    def list_by_user(self, username: str) -> list[CallReservation]:
        """All reservations of a user, earliest date first."""
        with self._storage("Failed to fetch reservations"):
            return (
                self.session.query(CallReservation)
                .filter(CallReservation.username == username)
                .order_by(
                    CallReservation.reservation_date.asc(),
                    CallReservation.start_time.asc(),
                    CallReservation.id.asc(),
                )
                .all()
            )

    def get(self, reservation_id: Any) -> CallReservation:
        """Fetch one reservation.

        Raises:
            InvalidReservationIdError: If the id is not a positive integer
            ReservationNotFoundError: If no reservation has this id
            StorageError: If the database read fails
        """
        parsed_id = parse_reservation_id(reservation_id)
        logger.info(f"Fetching reservation with ID: {parsed_id}")

        with self._storage("Failed to fetch reservation"):
            reservation = self.session.get(CallReservation, parsed_id)

        if reservation is None:
            raise ReservationNotFoundError(parsed_id)
        return reservation

    def _normalize_changes(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        read_only = sorted(READ_ONLY_FIELDS.intersection(changes))
        if read_only:
            raise ReservationValidationError(
                f"Fields cannot be updated: {', '.join(read_only)}"
            )

        unknown = sorted(key for key in changes if key not in UPDATABLE_FIELDS)
        if unknown:
            raise ReservationValidationError(f"Unknown fields: {', '.join(unknown)}")

        normalized: dict[str, Any] = {}
        for key, value in changes.items():
            attr = UPDATABLE_FIELDS[key]

            if attr == "status":
                # Omitted and null both mean "leave status alone"
                if value is not None:
                    normalized[attr] = _validate_status(value)
                continue

            if attr == "call_duration":
                if value is not None and (
                    isinstance(value, bool) or not isinstance(value, int) or value < 0
                ):
                    raise ReservationValidationError(
                        "callDuration must be a non-negative integer"
                    )
                normalized[attr] = value
                continue

            if value is not None and not isinstance(value, str):
                raise ReservationValidationError(f"{key} must be a string")

            if attr in REQUIRED_ATTRIBUTES and (value is None or not value.strip()):
                raise ReservationValidationError(f"{key} cannot be empty")

            if attr == "reservation_date":
                _validate_date(key, value)
            elif attr in ("start_time", "end_time"):
                _validate_time(key, value)

            normalized[attr] = value

        return normalized

    def update(self, reservation_id: Any, changes: Mapping[str, Any]) -> CallReservation:
        """Merge ``changes`` into a reservation and refresh ``updated_at``.

        Fields that are not supplied keep their values. A change to
        ``completed`` without a duration keeps the prior duration, or 0.

        Raises:
            InvalidReservationIdError: If the id is not a positive integer
            ReservationValidationError: On unknown fields, bad values or an
                illegal status transition
            ReservationNotFoundError: If no reservation has this id
            StorageError: If the database write fails
        """
        parsed_id = parse_reservation_id(reservation_id)
        normalized = self._normalize_changes(changes)

        logger.info(
            f"Updating reservation {parsed_id} with status: "
            f"{changes.get('status')}, callDuration: {changes.get('callDuration')}"
        )

        reservation = self.get(parsed_id)

        new_status = normalized.pop("status", None)
        if new_status is not None:
            self._check_transition(reservation, new_status)
            reservation.status = new_status.value

        for attr, value in normalized.items():
            setattr(reservation, attr, value)

        if (
            reservation.status == ReservationStatus.COMPLETED.value
            and reservation.call_duration is None
        ):
            reservation.call_duration = 0

        reservation.updated_at = self.now()

        with self._storage("Failed to update reservation"):
            self.session.commit()
            self.session.refresh(reservation)

        logger.info(f"Reservation {parsed_id} updated to status: {reservation.status}")
        return reservation

    def _check_transition(
        self, reservation: CallReservation, new_status: ReservationStatus
    ) -> None:
        current = ReservationStatus(reservation.status)
        if new_status == current:
            return
        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise ReservationValidationError(
                f"Cannot change status from {current.value} to {new_status.value}"
            )

    def sweep_expired(self) -> SweepResult:
        """Complete ongoing reservations whose end time has passed.

        Each reservation is committed on its own. A row that fails to commit
        is rolled back and skipped, and the next run picks it up again.
        Running it again with nothing overdue returns an empty result.

        Raises:
            StorageError: If the lookup fails or no overdue row could be saved
        """
        now = self.now()
        today = now.strftime("%Y-%m-%d")
        current_time = now.strftime("%H:%M")

        logger.info(f"Checking for expired reservations at {today} {current_time}")

        with self._storage("Failed to update expired reservations"):
            expired = (
                self.session.query(CallReservation)
                .filter(
                    CallReservation.status == ReservationStatus.ONGOING.value,
                    or_(
                        CallReservation.reservation_date < today,
                        and_(
                            CallReservation.reservation_date == today,
                            CallReservation.end_time < current_time,
                        ),
                    ),
                )
                .order_by(CallReservation.id.asc())
                .all()
            )

        logger.info(f"Found {len(expired)} expired ongoing reservations")

        updated = []
        failures: list[SQLAlchemyError] = []
        for reservation in expired:
            reservation_id = reservation.id
            try:
                reservation.status = ReservationStatus.COMPLETED.value
                reservation.call_duration = reservation.call_duration or 0
                reservation.updated_at = now
                self.session.commit()
                self.session.refresh(reservation)
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.exception(f"Failed to complete expired reservation {reservation_id}")
                failures.append(e)
                continue
            updated.append(reservation)

        if failures and not updated:
            raise StorageError("Failed to update expired reservations") from failures[-1]
        if failures:
            logger.warning(
                f"{len(failures)} expired reservations were left for the next sweep"
            )
        if updated:
            logger.info(
                f"Updated {len(updated)} expired reservations to completed status"
            )
        return SweepResult(count=len(updated), records=updated)
