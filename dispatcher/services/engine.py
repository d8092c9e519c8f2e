"""
dispatcher/services/engine.py

Dispatch engine: resolve recipients, build the message, send it, and react
to the transport's answer. Store and transport handles are injected so the
engine runs unchanged against Firestore/FCM or test doubles.
"""

from typing import Optional

import structlog

from dispatcher.schemas import DispatchOutcome, DispatchResult, MessageContent
from dispatcher.services.fcm import PushTransport, TransportError
from dispatcher.services.hygiene import TokenHygiene
from dispatcher.services.payloads import build_message
from dispatcher.services.recipients import RecipientResolver
from store.firestore import DocumentStore

logger = structlog.get_logger(__name__)


def no_op(rule: str, reason: str) -> DispatchResult:
    return DispatchResult(rule=rule, outcome=DispatchOutcome.NO_OP, reason=reason)


def failed(rule: str, reason: str, token_pruned: bool = False) -> DispatchResult:
    return DispatchResult(
        rule=rule,
        outcome=DispatchOutcome.FAILED,
        reason=reason,
        token_pruned=token_pruned,
    )


class DispatchEngine:
    def __init__(
        self,
        store: DocumentStore,
        transport: PushTransport,
        resolver: Optional[RecipientResolver] = None,
        hygiene: Optional[TokenHygiene] = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.resolver = resolver or RecipientResolver(store)
        self.hygiene = hygiene or TokenHygiene(store)

    async def send_to_user(
        self,
        rule: str,
        user_id: str,
        content: MessageContent,
    ) -> DispatchResult:
        """
        Deliver content to a single user's device.

        A user without a token is a no-op. A delivery failure is handed to
        token hygiene and reported as a failed result, never raised.
        """
        token = await self.resolver.resolve_single(user_id)
        if token is None:
            return no_op(rule, "recipient_unreachable")

        message = build_message(content, token=token)
        try:
            message_id = await self.transport.send_single(message)
        except TransportError as exc:
            logger.warning(
                "push_failed",
                rule=rule,
                user_id=user_id,
                error_kind=exc.error_kind,
                error=str(exc),
            )
            pruned = await self.hygiene.on_delivery_failure(user_id, exc.error_kind)
            return failed(rule, exc.error_kind, token_pruned=pruned)

        logger.info(
            "push_sent",
            rule=rule,
            user_id=user_id,
            message_id=message_id,
            type=message.data.get("type"),
        )
        return DispatchResult(
            rule=rule,
            outcome=DispatchOutcome.SENT,
            message_id=message_id,
            success_count=1,
        )

    async def send_to_flat(
        self,
        rule: str,
        flat_number: str,
        content: MessageContent,
    ) -> DispatchResult:
        """
        Fan content out to every resident device of a flat in one multicast.

        Per-token failures are counted and logged only; stale tokens are
        not pruned on this path.
        """
        tokens = await self.resolver.resolve_group(flat_number)
        if not tokens:
            return no_op(rule, "no_resident_tokens")

        message = build_message(content, tokens=tokens)
        result = await self.transport.send_multicast(message)

        failed_kinds = [r.error_kind for r in result.results if not r.success]
        logger.info(
            "multicast_sent",
            rule=rule,
            flat_number=flat_number,
            success_count=result.success_count,
            failure_count=result.failure_count,
            error_kinds=failed_kinds or None,
        )
        return DispatchResult(
            rule=rule,
            outcome=(
                DispatchOutcome.SENT if result.success_count > 0 else DispatchOutcome.FAILED
            ),
            reason=None if result.success_count > 0 else "all_tokens_failed",
            success_count=result.success_count,
            failure_count=result.failure_count,
        )
