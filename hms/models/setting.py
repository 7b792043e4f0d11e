from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.sql import func

from ..core.database import Base

class HospitalSettings(Base):
    """Hospital-wide settings, stored as a single row."""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    base_appointment_fee = Column(Integer, nullable=False, default=1000)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<HospitalSettings(base_appointment_fee={self.base_appointment_fee})>"
