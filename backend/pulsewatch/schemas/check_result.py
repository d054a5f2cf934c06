"""Check result schemas."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Status(str, Enum):
    """Observed status of a target."""
    UP = "UP"
    DOWN = "DOWN"


class ErrorCategory(str, Enum):
    """Closed set of transport failure categories."""
    CONNECTION_REFUSED = "connection-refused"
    DNS_FAILURE = "dns-failure"
    TIMEOUT = "timeout"
    CONNECTION_RESET = "connection-reset"
    TLS_CERTIFICATE_EXPIRED = "tls-certificate-expired"
    UNKNOWN = "unknown"


class CheckResult(BaseModel):
    """Immutable record of one probe attempt."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: Optional[int] = None
    target_id: int
    status: Status
    response_time_ms: int
    http_status_code: Optional[int] = None
    error_category: Optional[str] = None  # ErrorCategory value or "HTTP <code>"
    checked_at: datetime
