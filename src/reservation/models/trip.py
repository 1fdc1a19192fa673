"""
Trip model - one scheduled departure and its seat ledger counter

`available_seats` is only mutated by the seat ledger while the trip row
is locked (SELECT ... FOR UPDATE).
"""
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, Numeric
from reservation.core.clock import utcnow
from reservation.core.database import Base


class TripStatus(PyEnum):
    """Enum for trip lifecycle status"""
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = (
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= capacity",
            name="ck_trip_available_seats_bounds",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=False, index=True)
    departure_at = Column(DateTime, nullable=False, index=True)
    arrival_at = Column(DateTime, nullable=False)
    capacity = Column(Integer, nullable=False)  # copied from the bus type when scheduled
    available_seats = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)  # per seat
    status = Column(
        Enum(TripStatus, name="trip_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TripStatus.SCHEDULED,
        index=True,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return (f"<Trip(id={self.id}, route_id={self.route_id}, departure='{self.departure_at}', "
                f"available={self.available_seats}/{self.capacity}, status='{self.status.value}')>")

    @property
    def is_bookable(self) -> bool:
        return self.status == TripStatus.SCHEDULED

    @property
    def held_seat_count(self) -> int:
        return self.capacity - self.available_seats

    def has_seat(self, seat_number: int) -> bool:
        """Seat numbers run from 1 to capacity"""
        return 1 <= seat_number <= self.capacity
