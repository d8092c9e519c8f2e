"""
tests/test_fcm.py

Unit tests for dispatcher/services/fcm.py.
The firebase_admin messaging calls are mocked; no network access.
"""

from unittest.mock import MagicMock, patch

import pytest
from firebase_admin import exceptions, messaging

from dispatcher.schemas import NotificationRequest
from dispatcher.services.fcm import (
    FcmTransport,
    TransportError,
    classify_error,
    to_fcm_message,
)
from dispatcher.services.payloads import build_message, request_content
from tests.fixtures import TEST_NOTIFICATION_ID


def _message(**target):
    content = request_content(TEST_NOTIFICATION_ID, NotificationRequest(recipient_id="u1"))
    return build_message(content, **target)


@pytest.mark.parametrize(
    ("exc", "kind"),
    [
        (messaging.UnregisteredError("Requested entity was not found."), "registration-token-not-registered"),
        (
            exceptions.InvalidArgumentError(
                "The registration token is not a valid FCM registration token"
            ),
            "invalid-registration-token",
        ),
        (exceptions.InvalidArgumentError("Invalid JSON payload received."), "invalid-argument"),
        (messaging.QuotaExceededError("Quota exceeded."), "quota-exceeded"),
        (messaging.SenderIdMismatchError("SenderId mismatch"), "mismatched-credential"),
        (messaging.ThirdPartyAuthError("APNs auth failed"), "third-party-auth-error"),
        (exceptions.UnavailableError("Service unavailable"), "unavailable"),
        (RuntimeError("boom"), "unknown"),
    ],
)
def test_classify_error(exc: Exception, kind: str) -> None:
    assert classify_error(exc) == kind


def test_to_fcm_message_carries_hints() -> None:
    fcm_message = to_fcm_message(_message(token="tok1"))

    assert fcm_message.token == "tok1"
    assert fcm_message.notification.title == "GateKeeper"
    assert fcm_message.data["click_action"] == "FLUTTER_NOTIFICATION_CLICK"
    assert fcm_message.android.priority == "high"
    assert fcm_message.android.notification.channel_id == "gatekeeper_notifications"
    assert fcm_message.android.notification.sound == "default"
    assert fcm_message.apns.payload.aps.badge == 1


@pytest.mark.asyncio
async def test_send_single_returns_message_id() -> None:
    with patch(
        "dispatcher.services.fcm.messaging.send",
        return_value="projects/p/messages/42",
    ) as mock_send:
        message_id = await FcmTransport().send_single(_message(token="tok1"))

    assert message_id == "projects/p/messages/42"
    mock_send.assert_called_once()


@pytest.mark.asyncio
async def test_send_single_maps_sdk_errors_to_transport_error() -> None:
    with patch(
        "dispatcher.services.fcm.messaging.send",
        side_effect=messaging.UnregisteredError("Requested entity was not found."),
    ):
        with pytest.raises(TransportError) as exc_info:
            await FcmTransport().send_single(_message(token="tok1"))

    assert exc_info.value.error_kind == "registration-token-not-registered"


@pytest.mark.asyncio
async def test_send_multicast_collects_per_token_results() -> None:
    ok = MagicMock(success=True, message_id="m1", exception=None)
    bad = MagicMock(
        success=False,
        message_id=None,
        exception=messaging.UnregisteredError("Requested entity was not found."),
    )
    batch = MagicMock(success_count=1, failure_count=1, responses=[ok, bad])

    with patch(
        "dispatcher.services.fcm.messaging.send_each_for_multicast",
        return_value=batch,
    ) as mock_send:
        result = await FcmTransport().send_multicast(_message(tokens=["tok1", "tok2"]))

    sent = mock_send.call_args.args[0]
    assert sent.tokens == ["tok1", "tok2"]
    assert (result.success_count, result.failure_count) == (1, 1)
    assert result.results[0].token == "tok1"
    assert result.results[0].success is True
    assert result.results[1].error_kind == "registration-token-not-registered"
