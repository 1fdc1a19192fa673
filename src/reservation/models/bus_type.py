"""
BusType model - seat capacity and fare rate shared by every bus of a type
"""
from sqlalchemy import Column, Integer, Numeric, String, Text

from reservation.core.database import Base


class BusType(Base):
    __tablename__ = "bus_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(64), nullable=False, unique=True)
    description = Column(Text)
    total_seats = Column(Integer, nullable=False)
    rate_per_km = Column(Numeric(10, 2), nullable=False)

    def __repr__(self):
        return f"<BusType(id={self.id}, name='{self.name}', seats={self.total_seats})>"
