"""Website model - targets being monitored."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base


class Website(Base):
    """A monitored URL and its check cadence."""

    __tablename__ = "websites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, nullable=False)
    name = Column(String, nullable=False)
    frequency_minutes = Column(Integer, nullable=False, default=5)
    enabled = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)

    logs = relationship("UptimeLog", back_populates="website", cascade="all, delete-orphan")
