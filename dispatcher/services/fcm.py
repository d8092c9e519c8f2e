"""
dispatcher/services/fcm.py

Push transport for outgoing DispatchMessages.
- PushTransport: the send surface the dispatch engine consumes
- TransportError: single-target delivery failure carrying an error kind
- FcmTransport: Firebase Cloud Messaging implementation

The firebase_admin messaging calls are blocking, so they run in a worker thread.
"""

import asyncio
from typing import Optional, Protocol

import structlog
from firebase_admin import App, exceptions, messaging

from dispatcher.constants import (
    ERROR_INVALID_TOKEN,
    ERROR_MISMATCHED_CREDENTIAL,
    ERROR_QUOTA_EXCEEDED,
    ERROR_THIRD_PARTY_AUTH,
    ERROR_TOKEN_NOT_REGISTERED,
    ERROR_UNKNOWN,
)
from dispatcher.schemas import DispatchMessage, MulticastResult, TokenResult

logger = structlog.get_logger(__name__)


class TransportError(Exception):
    """A push could not be delivered; `error_kind` says why."""

    def __init__(self, error_kind: str, message: str = "") -> None:
        super().__init__(message or error_kind)
        self.error_kind = error_kind


class PushTransport(Protocol):
    async def send_single(self, message: DispatchMessage) -> str:
        ...

    async def send_multicast(self, message: DispatchMessage) -> MulticastResult:
        ...


def classify_error(exc: BaseException) -> str:
    """Map a firebase_admin exception onto a delivery error kind."""
    if isinstance(exc, messaging.UnregisteredError):
        return ERROR_TOKEN_NOT_REGISTERED
    if isinstance(exc, exceptions.InvalidArgumentError) and "registration token" in str(exc).lower():
        return ERROR_INVALID_TOKEN
    if isinstance(exc, messaging.QuotaExceededError):
        return ERROR_QUOTA_EXCEEDED
    if isinstance(exc, messaging.SenderIdMismatchError):
        return ERROR_MISMATCHED_CREDENTIAL
    if isinstance(exc, messaging.ThirdPartyAuthError):
        return ERROR_THIRD_PARTY_AUTH
    if isinstance(exc, exceptions.FirebaseError) and exc.code:
        return str(exc.code).lower().replace("_", "-")
    return ERROR_UNKNOWN


def _android_config(message: DispatchMessage) -> messaging.AndroidConfig:
    hints = message.hints
    return messaging.AndroidConfig(
        priority=hints.priority,
        notification=messaging.AndroidNotification(
            sound=hints.sound,
            channel_id=hints.channel_id,
            priority=hints.priority,
            default_sound=hints.default_sound,
            default_vibrate_timings=hints.default_vibrate_timings,
        ),
    )


def _apns_config(message: DispatchMessage) -> messaging.APNSConfig:
    return messaging.APNSConfig(
        payload=messaging.APNSPayload(
            aps=messaging.Aps(sound=message.hints.sound, badge=message.hints.badge),
        ),
    )


def to_fcm_message(message: DispatchMessage) -> messaging.Message:
    return messaging.Message(
        token=message.token,
        notification=messaging.Notification(title=message.title, body=message.body),
        data=message.data,
        android=_android_config(message),
        apns=_apns_config(message),
    )


def to_fcm_multicast(message: DispatchMessage) -> messaging.MulticastMessage:
    return messaging.MulticastMessage(
        tokens=list(message.tokens),
        notification=messaging.Notification(title=message.title, body=message.body),
        data=message.data,
        android=_android_config(message),
        apns=_apns_config(message),
    )


class FcmTransport:
    """PushTransport backed by Firebase Cloud Messaging."""

    def __init__(self, app: Optional[App] = None) -> None:
        self._app = app

    async def send_single(self, message: DispatchMessage) -> str:
        fcm_message = to_fcm_message(message)
        try:
            return await asyncio.to_thread(messaging.send, fcm_message, app=self._app)
        except exceptions.FirebaseError as exc:
            raise TransportError(classify_error(exc), str(exc)) from exc

    async def send_multicast(self, message: DispatchMessage) -> MulticastResult:
        fcm_message = to_fcm_multicast(message)
        batch = await asyncio.to_thread(
            messaging.send_each_for_multicast, fcm_message, app=self._app
        )

        results = []
        for token, response in zip(message.tokens, batch.responses):
            results.append(
                TokenResult(
                    token=token,
                    success=response.success,
                    message_id=response.message_id,
                    error_kind=(
                        classify_error(response.exception)
                        if response.exception is not None
                        else None
                    ),
                )
            )

        return MulticastResult(
            success_count=batch.success_count,
            failure_count=batch.failure_count,
            results=results,
        )
