"""Data models for scheduled call reservations."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from callbridge.database import Base


class ReservationStatus(str, Enum):
    """Lifecycle status of a call reservation."""

    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Sanctioned lifecycle edges; completed and cancelled are terminal.
ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.SCHEDULED: frozenset(
        {ReservationStatus.ONGOING, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.ONGOING: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


class CallReservation(Base):
    __tablename__ = "call_reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, index=True)
    title = Column(String, nullable=True)
    description = Column(Text, nullable=True)

    # Zero-padded strings so lexicographic order is chronological
    reservation_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM

    status = Column(
        String, nullable=False, default=ReservationStatus.SCHEDULED.value, index=True
    )
    phone_number = Column(String, nullable=True)
    call_sid = Column(String, nullable=True)
    call_duration = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_call_reservations_date_start", "reservation_date", "start_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<CallReservation id={self.id} user={self.username!r} "
            f"{self.reservation_date} {self.start_time}-{self.end_time} {self.status}>"
        )


class ReservationCreate(BaseModel):
    """Payload for creating a reservation.

    Required fields are optional here so that a missing field is reported by
    the lifecycle manager with the full list of required fields.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str | None = None
    reservation_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    phone_number: str | None = None
    title: str | None = None
    description: str | None = None


class ReservationRead(BaseModel):
    """Reservation as returned by the API."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    username: str
    title: str | None = None
    description: str | None = None
    reservation_date: str
    start_time: str
    end_time: str
    status: ReservationStatus
    phone_number: str | None = None
    call_sid: str | None = None
    call_duration: int | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def serialize(cls, reservation: CallReservation) -> dict:
        """Render an ORM row as a camelCase JSON-ready dict."""
        return cls.model_validate(reservation).model_dump(mode="json", by_alias=True)


class SweepResult(BaseModel):
    """Outcome of an expiry sweep."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    count: int = Field(0, ge=0, description="Number of reservations completed")
    records: list[CallReservation] = Field(
        default_factory=list, description="Reservations moved to completed"
    )
