"""Error types raised by the reservation lifecycle."""


class ReservationError(Exception):
    """Base class for errors surfaced to reservation API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def detail(self) -> str | None:
        """Underlying cause, if any, for diagnostics."""
        return None


class ReservationValidationError(ReservationError):
    """Required input is missing or malformed. No state was changed."""

    status_code = 400


class InvalidReservationIdError(ReservationValidationError):
    """The reservation id is not a positive integer."""


class ReservationNotFoundError(ReservationError):
    """The referenced reservation does not exist."""

    status_code = 404

    def __init__(self, reservation_id: int) -> None:
        super().__init__("Reservation not found")
        self.reservation_id = reservation_id


class StorageError(ReservationError):
    """The database failed while serving a reservation operation.

    Raised ``from`` the original exception so the cause stays attached.
    """

    status_code = 500

    @property
    def detail(self) -> str | None:
        cause = self.__cause__
        return str(cause) if cause is not None else None
