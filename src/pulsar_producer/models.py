"""
Data models for message options and pulsar-publish status records.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_FRACTION = re.compile(r"(\.\d{6})\d+")


def normalize_key(key: str) -> str:
    """Fold an option key so 'orderingKey', 'ordering_key' and 'ORDERING-KEY' match."""
    return re.sub(r"[\s_-]", "", str(key)).lower()


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class MessageOptions(BaseModel):
    """Per-message metadata passed to pulsar-publish."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    key: Optional[str] = Field(None, description="Message key")
    ordering_key: Optional[str] = Field(None, description="Ordering key")
    event_time: Optional[int] = Field(None, description="Event time in ms since epoch", ge=0)
    replication_clusters: List[str] = Field(default_factory=list, description="Clusters to replicate to")
    disable_replication: bool = Field(False, description="Disable replication for this message")
    sequence_id: Optional[int] = Field(None, description="Message sequence id", ge=0)
    deliver_after: Optional[int] = Field(
        None, description="Delay delivery to Shared/KeyShared subscriptions by this many ms", ge=0
    )
    deliver_at: Optional[int] = Field(None, description="Deliver at this time in ms since epoch", ge=0)
    properties: Dict[str, str] = Field(default_factory=dict, description="Message properties")
    producer_properties: Dict[str, str] = Field(
        default_factory=dict, description="Producer properties for this call only"
    )

    @field_validator("event_time", "deliver_at", mode="before")
    @classmethod
    def convert_datetime(cls, v: Any) -> Any:
        """Accept datetimes as epoch milliseconds."""
        if isinstance(v, datetime):
            return to_epoch_ms(v)
        return v

    @field_validator("deliver_after", mode="before")
    @classmethod
    def convert_timedelta(cls, v: Any) -> Any:
        """Accept timedeltas as milliseconds."""
        if isinstance(v, timedelta):
            return int(v.total_seconds() * 1000)
        return v

    @field_validator("replication_clusters", mode="before")
    @classmethod
    def listify_clusters(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("properties", "producer_properties", mode="before")
    @classmethod
    def stringify_properties(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return {str(k): str(val) for k, val in v.items()}
        return v

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "MessageOptions":
        """
        Build options from a loosely keyed mapping.

        Keys are matched case-insensitively and without '_' or '-' separators.
        Keys that are not message options are dropped.

        Args:
            options: Mapping such as {"orderingKey": "a", "deliverAfter": 500}

        Returns:
            MessageOptions instance
        """
        if options is None:
            return cls()
        if isinstance(options, MessageOptions):
            return options

        data = {}
        for key, value in options.items():
            field = _MESSAGE_FIELDS.get(normalize_key(key))
            if field is not None:
                data[field] = value
        return cls(**data)


_MESSAGE_FIELDS = {normalize_key(name): name for name in MessageOptions.model_fields}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp as emitted by pulsar-publish.

    Go emits RFC 3339 with nanoseconds and a 'Z' suffix, both of which are
    normalized before parsing. Unparseable values return None.
    """
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(r"\1", text)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


INTERNAL_FIELDS = {"kind", "time", "level"}


class ProtocolRecord(BaseModel):
    """One decoded status line from pulsar-publish."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    kind: str = Field(..., alias="msg", description="Record discriminator")
    time: Optional[datetime] = Field(None, description="Time the record was emitted")
    level: Optional[str] = Field(None, description="Log level of the record")
    error: Optional[str] = Field(None, description="Failure reason, ends the call")
    message_id: Optional[str] = Field(None, description="Published message id on 'done'")
    success: Optional[bool] = Field(None, description="Outcome of a connection test")

    @field_validator("time", mode="before")
    @classmethod
    def validate_time(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("message_id", mode="before")
    @classmethod
    def stringify_message_id(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @property
    def fields(self) -> Dict[str, Any]:
        """Record payload without the internal msg/time/level keys."""
        return self.model_dump(exclude=INTERNAL_FIELDS, exclude_none=True)
