"""UptimeLog model - append-only check history."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


class UptimeLog(Base):
    """One probe attempt against a website, successful or not."""

    __tablename__ = "uptime_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    website_id = Column(Integer, ForeignKey("websites.id"), nullable=False, index=True)
    checked_at = Column(DateTime, nullable=False, index=True)  # naive UTC
    status = Column(String, nullable=False)  # UP, DOWN
    response_time_ms = Column(Integer, nullable=False)
    http_status_code = Column(Integer, nullable=True)
    error_category = Column(String, nullable=True)  # e.g. timeout, HTTP 502

    website = relationship("Website", back_populates="logs")
