"""Live monitor stream records."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class MonitorState(str, Enum):
    idle = "idle"
    starting = "starting"
    streaming = "streaming"
    stopped = "stopped"


class MonitorEvent(BaseModel):
    """One decoded MONITOR line.

    ``timestamp`` is milliseconds since the epoch, truncated.
    """

    timestamp: int
    client_ip: str
    client_port: str
    db: int
    command: str
    args: List[str] = Field(default_factory=list)
    raw: str
