"""
dispatcher/main.py

FastAPI application entry point for the push dispatcher.
Creates the Firebase app, Firestore store, FCM transport and trigger router
once per process and hands them to the request handlers via app.state.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI

from dispatcher.routers.events import router as events_router
from dispatcher.services.engine import DispatchEngine
from dispatcher.services.fcm import FcmTransport
from dispatcher.services.router import build_default_router
from store.firestore import FirestoreStore, init_firebase_app

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle: startup and shutdown."""
    firebase_app = init_firebase_app()
    app.state.engine = DispatchEngine(
        store=FirestoreStore.from_app(firebase_app),
        transport=FcmTransport(firebase_app),
    )
    app.state.trigger_router = build_default_router()
    logger.info(
        "dispatcher_starting",
        routes=[route.name for route in app.state.trigger_router.routes],
    )
    yield
    logger.info("dispatcher_shutting_down")


app = FastAPI(
    title="GateKeeper Push Dispatcher",
    description="Record lifecycle events in, targeted push notifications out",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(events_router)
