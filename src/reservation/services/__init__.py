"""
Services package exports
"""
from reservation.services.errors import (
    ReservationError,
    BookingValidationError,
    TripUnavailableError,
    CapacityExceededError,
    SeatConflictError,
    BookingNotFoundError,
    NotCancellableError,
    AlreadyTerminalError,
    BookingAccessDeniedError,
    SeatLedgerBusyError,
    StorageError,
)
from reservation.services.seat_ledger import SeatLedger
from reservation.services.booking_service import (
    Actor,
    BookingService,
    BookingStats,
    BookingTimeout,
    ReleaseSummary,
)
from reservation.services.trip_service import SeatMap, TripService
from reservation.services.expiry_worker import (
    ExpiryWorker,
    SweepResult,
    expiry_worker,
    start_expiry_worker,
    stop_expiry_worker,
)

__all__ = [
    "ReservationError",
    "BookingValidationError",
    "TripUnavailableError",
    "CapacityExceededError",
    "SeatConflictError",
    "BookingNotFoundError",
    "NotCancellableError",
    "AlreadyTerminalError",
    "BookingAccessDeniedError",
    "SeatLedgerBusyError",
    "StorageError",
    "SeatLedger",
    "Actor",
    "BookingService",
    "BookingStats",
    "BookingTimeout",
    "ReleaseSummary",
    "SeatMap",
    "TripService",
    "ExpiryWorker",
    "SweepResult",
    "expiry_worker",
    "start_expiry_worker",
    "stop_expiry_worker",
]
