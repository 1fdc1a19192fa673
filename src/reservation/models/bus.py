"""
Bus model
"""
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from reservation.core.database import Base


class Bus(Base):
    __tablename__ = "buses"

    id = Column(Integer, primary_key=True, index=True)
    bus_number = Column(String(32), nullable=False, unique=True)
    bus_type_id = Column(Integer, ForeignKey("bus_types.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    bus_type = relationship("BusType", lazy="joined")

    def __repr__(self):
        return f"<Bus(id={self.id}, number='{self.bus_number}', type_id={self.bus_type_id})>"
