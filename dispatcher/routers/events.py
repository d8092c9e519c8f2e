"""
dispatcher/routers/events.py

POST /events endpoint.
Receives record lifecycle events from the hosting runtime and runs the
matching trigger rules. The response is always a success so the runtime
never re-delivers an event; outcomes are reported in the body.
"""

import structlog
from fastapi import APIRouter, Request

from dispatcher.schemas import StoreEvent

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/events")
async def receive_event(event: StoreEvent, request: Request) -> dict:
    """
    Route one store event to its trigger rules.

    Flow:
    1. Match the event kind and document path against registered rules
    2. Each matching rule resolves recipients, builds and sends the push
    3. Rule outcomes (sent / no_op / failed) are returned for inspection
    """
    logger.info(
        "event_received",
        event_kind=event.event_kind,
        path=event.path,
    )

    trigger_router = request.app.state.trigger_router
    engine = request.app.state.engine
    results = await trigger_router.route(event, engine)

    return {
        "status": "processed",
        "results": [result.model_dump(mode="json") for result in results],
    }


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
