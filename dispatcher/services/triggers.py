"""
dispatcher/services/triggers.py

The three trigger rules binding record lifecycle events to the dispatch engine.
- notify_recipient_on_request: notification created -> its recipient
- notify_residents_on_visitor_arrival: pending visitor created -> flat residents
- notify_guard_on_visitor_decision: visitor leaves pending -> the guard

Each rule checks its own eligibility and returns a DispatchResult.
No exception may escape a rule: the hosting runtime would re-deliver
the event and duplicate notifications.
"""

import functools
from collections.abc import Awaitable, Callable

import structlog

from dispatcher.constants import DECISION_STATUSES, STATUS_PENDING
from dispatcher.schemas import DispatchResult, NotificationRequest, StoreEvent, VisitorRecord
from dispatcher.services.engine import DispatchEngine, failed, no_op
from dispatcher.services.payloads import (
    request_content,
    visitor_arrival_content,
    visitor_decision_content,
)

logger = structlog.get_logger(__name__)

RuleHandler = Callable[[StoreEvent, DispatchEngine], Awaitable[DispatchResult]]

RULE_REQUEST: str = "notify_recipient_on_request"
RULE_VISITOR_ARRIVAL: str = "notify_residents_on_visitor_arrival"
RULE_VISITOR_DECISION: str = "notify_guard_on_visitor_decision"


def rule_boundary(rule: str) -> Callable[[RuleHandler], RuleHandler]:
    """Turn any exception raised inside a rule into a logged failed result."""

    def decorator(handler: RuleHandler) -> RuleHandler:
        @functools.wraps(handler)
        async def wrapper(event: StoreEvent, engine: DispatchEngine) -> DispatchResult:
            try:
                return await handler(event, engine)
            except Exception as exc:
                logger.error(
                    "rule_failed",
                    rule=rule,
                    path=event.path,
                    event_kind=event.event_kind,
                    error=str(exc),
                    exc_info=True,
                )
                return failed(rule, "unexpected_error")

        wrapper.rule_name = rule
        return wrapper

    return decorator


@rule_boundary(RULE_REQUEST)
async def notify_recipient_on_request(
    event: StoreEvent, engine: DispatchEngine
) -> DispatchResult:
    """Push a newly created notification document to its recipient."""
    if event.after is None:
        logger.info("event_without_data", rule=RULE_REQUEST, path=event.path)
        return no_op(RULE_REQUEST, "no_event_data")

    request = NotificationRequest.model_validate(event.after)
    logger.info(
        "notification_created",
        notification_id=event.document_id,
        recipient_id=request.recipient_id,
        type=request.kind,
    )

    if not request.recipient_id:
        logger.info("notification_without_recipient", notification_id=event.document_id)
        return no_op(RULE_REQUEST, "missing_recipient_id")

    content = request_content(event.document_id, request)
    return await engine.send_to_user(RULE_REQUEST, request.recipient_id, content)


@rule_boundary(RULE_VISITOR_ARRIVAL)
async def notify_residents_on_visitor_arrival(
    event: StoreEvent, engine: DispatchEngine
) -> DispatchResult:
    """Tell every resident of the visited flat that someone is at the gate."""
    if event.after is None:
        logger.info("event_without_data", rule=RULE_VISITOR_ARRIVAL, path=event.path)
        return no_op(RULE_VISITOR_ARRIVAL, "no_event_data")

    visitor = VisitorRecord.model_validate(event.after)
    if visitor.status != STATUS_PENDING:
        return no_op(RULE_VISITOR_ARRIVAL, "visitor_not_pending")

    logger.info("visitor_arrived", visitor_id=event.document_id, flat_number=visitor.flat_number)

    if not visitor.flat_number:
        logger.info("visitor_without_flat", visitor_id=event.document_id)
        return no_op(RULE_VISITOR_ARRIVAL, "missing_flat_number")

    content = visitor_arrival_content(event.document_id, visitor)
    return await engine.send_to_flat(RULE_VISITOR_ARRIVAL, visitor.flat_number, content)


@rule_boundary(RULE_VISITOR_DECISION)
async def notify_guard_on_visitor_decision(
    event: StoreEvent, engine: DispatchEngine
) -> DispatchResult:
    """
    Tell the guard a pending visitor was approved or denied.

    Only the first transition out of "pending" counts, so the guard hears
    about each visitor at most once; later writes are ignored.
    """
    if event.before is None or event.after is None:
        logger.info("event_without_data", rule=RULE_VISITOR_DECISION, path=event.path)
        return no_op(RULE_VISITOR_DECISION, "no_event_data")

    before = VisitorRecord.model_validate(event.before)
    after = VisitorRecord.model_validate(event.after)

    if before.status != STATUS_PENDING:
        return no_op(RULE_VISITOR_DECISION, "not_from_pending")
    if after.status not in DECISION_STATUSES:
        return no_op(RULE_VISITOR_DECISION, "not_a_decision")

    logger.info(
        "visitor_status_changed",
        visitor_id=event.document_id,
        before=before.status,
        after=after.status,
    )

    if not after.guard_id:
        logger.info("visitor_without_guard", visitor_id=event.document_id)
        return no_op(RULE_VISITOR_DECISION, "missing_guard_id")

    content = visitor_decision_content(event.document_id, after)
    return await engine.send_to_user(RULE_VISITOR_DECISION, after.guard_id, content)
