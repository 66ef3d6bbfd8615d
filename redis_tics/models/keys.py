"""Key browser and ad-hoc command records."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class KeyRecord(BaseModel):
    """A key with its type tag, remaining TTL (-1 = none or unknown) and optional footprint."""

    key: str
    key_type: str = "unknown"
    ttl: int = -1
    size: Optional[int] = None
    encoding: Optional[str] = None


class KeyScanResult(BaseModel):
    keys: List[KeyRecord] = Field(default_factory=list)
    cursor: str = "0"
    has_more: bool = False
    total_scanned: int = 0


class ZSetMember(BaseModel):
    member: str
    score: float


class StreamEntry(BaseModel):
    id: str
    fields: Dict[str, str] = Field(default_factory=dict)


class KeyValue(BaseModel):
    """Contents of a single key.

    ``value`` depends on ``key_type``: a string, a list of strings (list/set),
    a list of ZSetMember, a field map (hash), a list of StreamEntry, or a
    message for types the browser cannot show.
    """

    key: str
    key_type: str
    ttl: int = -1
    size: Optional[int] = None
    value: Any = None


class BulkDeleteResult(BaseModel):
    deleted_count: int = 0
    failed_count: int = 0
    execution_time_ms: int = 0
    errors: List[str] = Field(default_factory=list)


class CommandResult(BaseModel):
    success: bool
    result: str = ""
    execution_time_ms: int = 0
    error: Optional[str] = None
