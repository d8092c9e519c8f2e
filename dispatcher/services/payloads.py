"""
dispatcher/services/payloads.py

Payload construction for push messages.
- *_content: per-event title/body/data with fallback text
- build_message: shapes content into a transport-ready DispatchMessage

FCM data blocks accept string values only: every data value is converted
here, and nested payloads travel as a single JSON-encoded field.
"""

import json
from collections.abc import Mapping
from typing import Any, Optional

from config import settings
from dispatcher.constants import (
    STATUS_APPROVED,
    TYPE_SYSTEM_ALERT,
    TYPE_VISITOR_APPROVED,
    TYPE_VISITOR_ARRIVED,
    TYPE_VISITOR_DENIED,
    VISITOR_APPROVED_TITLE,
    VISITOR_ARRIVED_TITLE,
    VISITOR_DENIED_TITLE,
)
from dispatcher.schemas import (
    DeliveryHints,
    DispatchMessage,
    MessageContent,
    NotificationRequest,
    VisitorRecord,
)

_VISITOR_NAME_FALLBACK: str = "A visitor"


def _is_present(value: Any) -> bool:
    """None, empty strings, zero and False are absent; empty containers are kept."""
    if value is None or value is False:
        return False
    if isinstance(value, (str, int, float)):
        return bool(value)
    return True


def to_data_value(value: Any) -> str:
    """Convert a single data value to the string form FCM requires."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def to_data_block(data: Mapping[str, Any]) -> dict[str, str]:
    """Stringify every value of a data block, dropping None values."""
    return {
        str(key): to_data_value(value)
        for key, value in data.items()
        if value is not None
    }


def delivery_hints() -> DeliveryHints:
    return DeliveryHints(
        channel_id=settings.notification_channel_id,
        badge=settings.apns_badge,
    )


def request_content(notification_id: str, request: NotificationRequest) -> MessageContent:
    """Content for a generic notification document."""
    data: dict[str, Any] = {
        "notificationId": notification_id,
        "type": request.kind or TYPE_SYSTEM_ALERT,
    }
    if _is_present(request.extra_data):
        data["extraData"] = json.dumps(request.extra_data, default=str)

    return MessageContent(
        title=request.title or settings.app_display_name,
        body=request.body or settings.default_notification_body,
        data=data,
    )


def visitor_arrival_content(visitor_id: str, visitor: VisitorRecord) -> MessageContent:
    """Content telling flat residents a visitor is at the gate."""
    name = visitor.name or _VISITOR_NAME_FALLBACK
    return MessageContent(
        title=VISITOR_ARRIVED_TITLE,
        body=f"{name} is waiting at the gate",
        data={
            "visitorId": visitor_id,
            "visitorName": visitor.name,
            "flatNumber": visitor.flat_number,
            "type": TYPE_VISITOR_ARRIVED,
        },
    )


def visitor_decision_content(visitor_id: str, visitor: VisitorRecord) -> MessageContent:
    """Content telling the guard whether the flat approved or denied a visitor."""
    approved = visitor.status == STATUS_APPROVED
    name = visitor.name or _VISITOR_NAME_FALLBACK
    outcome = "approved" if approved else "denied"
    return MessageContent(
        title=VISITOR_APPROVED_TITLE if approved else VISITOR_DENIED_TITLE,
        body=f"{name} was {outcome} by Flat {visitor.flat_number}",
        data={
            "visitorId": visitor_id,
            "visitorName": visitor.name,
            "flatNumber": visitor.flat_number,
            "status": visitor.status,
            "type": TYPE_VISITOR_APPROVED if approved else TYPE_VISITOR_DENIED,
        },
    )


def build_message(
    content: MessageContent,
    *,
    token: Optional[str] = None,
    tokens: Optional[list[str]] = None,
) -> DispatchMessage:
    """Address content to one token or a token set and apply delivery hints."""
    data = to_data_block(content.data)
    data["click_action"] = settings.click_action

    return DispatchMessage(
        token=token,
        tokens=list(tokens or []),
        title=content.title,
        body=content.body,
        data=data,
        hints=delivery_hints(),
    )
