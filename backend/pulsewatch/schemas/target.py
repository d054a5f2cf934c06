"""Target schema - the snapshot the engine schedules from."""
from pydantic import BaseModel, ConfigDict


class Target(BaseModel):
    """A monitored URL with its check cadence."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    name: str
    frequency_minutes: int = 5
    enabled: bool = True
