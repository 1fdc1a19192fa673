"""
Error taxonomy for the reservation core

Every error carries the machine-readable kind and the HTTP status the
boundary layer answers with. Contention errors (seat conflict, capacity
exceeded, ledger busy) are retryable by the caller with a fresh request;
StorageError is never retried by the core.
"""
from typing import Any, Dict, Iterable, List, Optional


class ReservationError(Exception):
    """Base exception for reservation errors"""

    error = "ReservationError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message}


class BookingValidationError(ReservationError):
    """Raised when a booking request is malformed"""

    error = "ValidationError"


class TripUnavailableError(ReservationError):
    """Raised when the trip is missing or not open for booking"""

    error = "TripUnavailable"

    def __init__(self, trip_id: int, message: Optional[str] = None, status_code: int = 400):
        super().__init__(message or f"Trip {trip_id} is not available for booking")
        self.trip_id = trip_id
        self.status_code = status_code

    @classmethod
    def not_found(cls, trip_id: int) -> "TripUnavailableError":
        return cls(trip_id, f"Trip {trip_id} not found", status_code=404)


class CapacityExceededError(ReservationError):
    """Raised when the trip has fewer available seats than requested"""

    error = "CapacityExceeded"

    def __init__(self, trip_id: int, requested: int, available: int):
        super().__init__(
            f"Trip {trip_id} has {available} seat(s) available, {requested} requested"
        )
        self.trip_id = trip_id
        self.requested = requested
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"requested": self.requested, "available": self.available})
        return data


class SeatConflictError(ReservationError):
    """Raised when requested seats are already held on the trip"""

    error = "SeatConflict"

    def __init__(self, trip_id: int, seat_numbers: Iterable[int]):
        self.seat_numbers: List[int] = sorted(seat_numbers)
        seats = ", ".join(str(n) for n in self.seat_numbers)
        super().__init__(f"Seats {seats} are already booked on trip {trip_id}")
        self.trip_id = trip_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["seatNumbers"] = self.seat_numbers
        return data


class BookingNotFoundError(ReservationError):
    """Raised when booking doesn't exist"""

    error = "NotFound"
    status_code = 404

    def __init__(self, booking_id):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class _InvalidTransitionError(ReservationError):
    def __init__(self, booking_id: int, status, action: str):
        super().__init__(f"Booking {booking_id} is {status.value}, cannot {action}")
        self.booking_id = booking_id
        self.booking_status = status


class NotCancellableError(_InvalidTransitionError):
    """Raised when cancelling a booking that is no longer pending"""

    error = "NotCancellable"

    def __init__(self, booking_id: int, status):
        super().__init__(booking_id, status, "cancel")


class AlreadyTerminalError(_InvalidTransitionError):
    """Raised when a payment outcome arrives for a booking that already left pending"""

    error = "AlreadyTerminal"

    def __init__(self, booking_id: int, status):
        super().__init__(booking_id, status, "change payment status")


class BookingAccessDeniedError(ReservationError):
    """Raised when the actor is neither the booking owner nor an admin"""

    error = "Forbidden"
    status_code = 403

    def __init__(self, booking_id: int):
        super().__init__(f"Access denied to booking {booking_id}")
        self.booking_id = booking_id


class SeatLedgerBusyError(ReservationError):
    """Raised when the trip lock could not be taken within the store timeout"""

    error = "LedgerBusy"
    status_code = 503

    def __init__(self, message: str = "Trip is busy, retry the reservation"):
        super().__init__(message)


class StorageError(ReservationError):
    """Raised on transaction or infrastructure failure; message stays opaque to clients"""

    error = "StorageError"
    status_code = 500

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": "Internal server error"}
