"""
Route model - origin/destination pair a trip runs on
"""
from sqlalchemy import Boolean, Column, Integer, String

from reservation.core.database import Base


class Route(Base):
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, index=True)
    origin = Column(String(64), nullable=False, index=True)
    destination = Column(String(64), nullable=False, index=True)
    distance = Column(Integer, nullable=False)  # km, fare input
    estimated_duration = Column(Integer)  # minutes
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Route(id={self.id}, '{self.origin}' -> '{self.destination}', {self.distance}km)>"
