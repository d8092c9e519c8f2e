"""
dispatcher/services/router.py

Trigger routing: explicit registration of (event kind, document path pattern)
pairs to rule handlers. Patterns look like "visitors/{visitorId}"; a braced
segment matches any single path segment.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from dispatcher.constants import (
    EVENT_CREATED,
    EVENT_UPDATED,
    NOTIFICATIONS_COLLECTION,
    VISITORS_COLLECTION,
)
from dispatcher.schemas import DispatchResult, StoreEvent
from dispatcher.services.engine import DispatchEngine, failed
from dispatcher.services.triggers import (
    RuleHandler,
    notify_guard_on_visitor_decision,
    notify_recipient_on_request,
    notify_residents_on_visitor_arrival,
)

logger = structlog.get_logger(__name__)


def path_matches(pattern: str, path: str) -> bool:
    """Check a document path against a pattern with {wildcard} segments."""
    pattern_parts = pattern.strip("/").split("/")
    path_parts = path.strip("/").split("/")
    if len(pattern_parts) != len(path_parts):
        return False
    for expected, actual in zip(pattern_parts, path_parts):
        if not actual:
            return False
        if expected.startswith("{") and expected.endswith("}"):
            continue
        if expected != actual:
            return False
    return True


@dataclass(frozen=True)
class Route:
    event_kind: str
    pattern: str
    handler: RuleHandler
    name: str


class TriggerRouter:
    def __init__(self) -> None:
        self._routes: list[Route] = []

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    def register(
        self,
        event_kind: str,
        pattern: str,
        handler: RuleHandler,
        name: Optional[str] = None,
    ) -> None:
        if event_kind not in (EVENT_CREATED, EVENT_UPDATED):
            raise ValueError(f"unsupported event kind: {event_kind}")
        name = name or getattr(handler, "rule_name", handler.__name__)
        self._routes.append(Route(event_kind, pattern, handler, name))

    def rule(self, event_kind: str, pattern: str):
        """Decorator form of register()."""

        def decorator(handler: RuleHandler) -> RuleHandler:
            self.register(event_kind, pattern, handler)
            return handler

        return decorator

    def match(self, event: StoreEvent) -> list[Route]:
        return [
            route
            for route in self._routes
            if route.event_kind == event.event_kind and path_matches(route.pattern, event.path)
        ]

    async def route(self, event: StoreEvent, engine: DispatchEngine) -> list[DispatchResult]:
        """Run every rule bound to the event. Always returns, never raises."""
        routes = self.match(event)
        if not routes:
            logger.info("event_unrouted", path=event.path, event_kind=event.event_kind)
            return []

        results = []
        for route in routes:
            try:
                result = await route.handler(event, engine)
            except Exception as exc:
                logger.error(
                    "rule_failed",
                    rule=route.name,
                    path=event.path,
                    error=str(exc),
                    exc_info=True,
                )
                result = failed(route.name, "unexpected_error")
            logger.info(
                "rule_completed",
                rule=route.name,
                path=event.path,
                outcome=result.outcome.value,
                reason=result.reason,
            )
            results.append(result)
        return results


def build_default_router() -> TriggerRouter:
    """Bind the three standard trigger rules."""
    router = TriggerRouter()
    router.register(
        EVENT_CREATED, f"{NOTIFICATIONS_COLLECTION}/{{notificationId}}", notify_recipient_on_request
    )
    router.register(
        EVENT_CREATED, f"{VISITORS_COLLECTION}/{{visitorId}}", notify_residents_on_visitor_arrival
    )
    router.register(
        EVENT_UPDATED, f"{VISITORS_COLLECTION}/{{visitorId}}", notify_guard_on_visitor_decision
    )
    return router
