"""
dispatcher/schemas.py

Pydantic data models for the dispatcher.
- Store records read by the trigger rules (NotificationRequest, VisitorRecord,
  UserRecord, FlatRecord); document fields keep their camelCase names as aliases
- StoreEvent: record lifecycle event delivered by the hosting runtime
- MessageContent / DispatchMessage / DeliveryHints: outgoing push message
- MulticastResult / TokenResult: transport response for fan-out sends
- DispatchResult: outcome returned by every trigger rule
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from dispatcher.constants import DELIVERY_PRIORITY, DELIVERY_SOUND

_RECORD_CONFIG = ConfigDict(
    populate_by_name=True,
    extra="ignore",
    coerce_numbers_to_str=True,
)


# ── Store records ────────────────────────────────────────────

class NotificationRequest(BaseModel):
    """A notification document written by an upstream actor."""

    model_config = _RECORD_CONFIG

    recipient_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("userId", "recipientId", "recipient_id")
    )
    title: Optional[str] = None
    body: Optional[str] = None
    kind: Optional[str] = Field(default=None, validation_alias=AliasChoices("type", "kind"))
    extra_data: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("data", "extraData", "extra_data")
    )


class VisitorRecord(BaseModel):
    """A visitor check-in at the gate."""

    model_config = _RECORD_CONFIG

    id: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None  # "pending" | "approved" | "denied"
    flat_number: Optional[Any] = Field(  # str or number, as stored
        default=None, validation_alias=AliasChoices("flatNumber", "flat_number")
    )
    guard_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("guardId", "guard_id")
    )


class UserRecord(BaseModel):
    """A user profile; only the device token matters here."""

    model_config = _RECORD_CONFIG

    id: Optional[str] = None
    fcm_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("fcmToken", "fcm_token")
    )


class FlatRecord(BaseModel):
    """A flat and the users living in it."""

    model_config = _RECORD_CONFIG

    flat_number: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("flatNumber", "flat_number")
    )
    resident_ids: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("residentIds", "resident_ids")
    )


# ── Lifecycle events ─────────────────────────────────────────

class StoreEvent(BaseModel):
    """Record lifecycle event; `before` is only set for updates."""

    event_kind: Literal["created", "updated"]
    collection: str
    document_id: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None

    @property
    def path(self) -> str:
        return f"{self.collection}/{self.document_id}"


# ── Outgoing messages ────────────────────────────────────────

class DeliveryHints(BaseModel):
    """Platform delivery hints applied uniformly to every message."""

    priority: str = DELIVERY_PRIORITY
    channel_id: str
    sound: str = DELIVERY_SOUND
    badge: int
    default_sound: bool = True
    default_vibrate_timings: bool = True


class MessageContent(BaseModel):
    """Human text and raw data for one event, before transport shaping."""

    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)


class DispatchMessage(BaseModel):
    """Transport-ready message addressed to one token or a token set."""

    token: Optional[str] = None
    tokens: list[str] = Field(default_factory=list)
    title: str
    body: str
    data: dict[str, str]
    hints: DeliveryHints

    @model_validator(mode="after")
    def _check_single_target_kind(self) -> "DispatchMessage":
        if (self.token is None) == (not self.tokens):
            raise ValueError("exactly one of token or tokens must be set")
        return self

    @property
    def is_multicast(self) -> bool:
        return self.token is None


class TokenResult(BaseModel):
    """Per-token outcome of a multicast send."""

    token: str
    success: bool
    message_id: Optional[str] = None
    error_kind: Optional[str] = None


class MulticastResult(BaseModel):
    """Aggregated outcome of a multicast send."""

    success_count: int
    failure_count: int
    results: list[TokenResult] = Field(default_factory=list)


# ── Rule outcomes ────────────────────────────────────────────

class DispatchOutcome(str, Enum):
    SENT = "sent"
    NO_OP = "no_op"
    FAILED = "failed"


class DispatchResult(BaseModel):
    """What a trigger rule did with one event. Rules never raise."""

    rule: str
    outcome: DispatchOutcome
    reason: Optional[str] = None
    message_id: Optional[str] = None
    success_count: int = 0
    failure_count: int = 0
    token_pruned: bool = False
