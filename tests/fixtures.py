"""
tests/fixtures.py

Shared test data, in-memory store and recording transport.
All tests must use these fixtures instead of hardcoding test values.
"""

import copy
from typing import Any, Optional

from dispatcher.schemas import DispatchMessage, MulticastResult, StoreEvent, TokenResult
from dispatcher.services.engine import DispatchEngine
from store.firestore import DELETE_FIELD

# ── Test identities ─────────────────────────────────────────

TEST_FLAT_NUMBER: str = "12B"
TEST_GUARD_ID: str = "guard_001"
TEST_GUARD_TOKEN: str = "tok_guard"
TEST_VISITOR_ID: str = "visitor_001"
TEST_NOTIFICATION_ID: str = "notif_001"


class FakeStore:
    """In-memory DocumentStore keyed by collection then document id."""

    def __init__(self, collections: Optional[dict[str, dict[str, dict]]] = None) -> None:
        self.collections: dict[str, dict[str, dict]] = copy.deepcopy(collections or {})
        self.reads: list[tuple[str, str]] = []
        self.updates: list[tuple[str, str, str, Any]] = []

    async def get_by_id(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        self.reads.append((collection, document_id))
        document = self.collections.get(collection, {}).get(document_id)
        if document is None:
            return None
        return {"id": document_id, **document}

    async def query_equals(
        self, collection: str, field: str, value: Any, limit: int
    ) -> list[dict[str, Any]]:
        matches = [
            {"id": doc_id, **document}
            for doc_id, document in self.collections.get(collection, {}).items()
            if document.get(field) == value
        ]
        return matches[:limit]

    async def update_field(
        self, collection: str, document_id: str, field: str, value: Any
    ) -> None:
        self.updates.append((collection, document_id, field, value))
        document = self.collections[collection][document_id]
        if value is DELETE_FIELD:
            document.pop(field, None)
        else:
            document[field] = value


class RecordingTransport:
    """PushTransport double that records every message it is asked to send."""

    def __init__(
        self,
        single_error: Optional[Exception] = None,
        failing_tokens: Optional[dict[str, str]] = None,
        multicast_error: Optional[Exception] = None,
    ) -> None:
        self.single_error = single_error
        self.failing_tokens = failing_tokens or {}
        self.multicast_error = multicast_error
        self.single_calls: list[DispatchMessage] = []
        self.multicast_calls: list[DispatchMessage] = []

    @property
    def call_count(self) -> int:
        return len(self.single_calls) + len(self.multicast_calls)

    async def send_single(self, message: DispatchMessage) -> str:
        self.single_calls.append(message)
        if self.single_error is not None:
            raise self.single_error
        return f"projects/test/messages/{len(self.single_calls)}"

    async def send_multicast(self, message: DispatchMessage) -> MulticastResult:
        self.multicast_calls.append(message)
        if self.multicast_error is not None:
            raise self.multicast_error
        results = [
            TokenResult(
                token=token,
                success=token not in self.failing_tokens,
                message_id=None if token in self.failing_tokens else f"msg-{token}",
                error_kind=self.failing_tokens.get(token),
            )
            for token in message.tokens
        ]
        successes = sum(1 for result in results if result.success)
        return MulticastResult(
            success_count=successes,
            failure_count=len(results) - successes,
            results=results,
        )


def build_store(
    users: Optional[dict[str, dict]] = None,
    flats: Optional[dict[str, dict]] = None,
) -> FakeStore:
    """Build a FakeStore with a guard, a two-resident flat and the given overrides."""
    default_users = {
        "u1": {"fcmToken": "tok1"},
        "u2": {},
        TEST_GUARD_ID: {"fcmToken": TEST_GUARD_TOKEN},
    }
    default_flats = {
        "flat_12b": {"flatNumber": TEST_FLAT_NUMBER, "residentIds": ["u1", "u2"]},
    }
    return FakeStore(
        {
            "users": users if users is not None else default_users,
            "flats": flats if flats is not None else default_flats,
        }
    )


def build_engine(
    store: Optional[FakeStore] = None,
    transport: Optional[RecordingTransport] = None,
) -> DispatchEngine:
    return DispatchEngine(
        store=store if store is not None else build_store(),
        transport=transport if transport is not None else RecordingTransport(),
    )


def build_visitor(
    status: str = "pending",
    name: str = "Ravi Kumar",
    flat_number: Optional[str] = TEST_FLAT_NUMBER,
    guard_id: Optional[str] = TEST_GUARD_ID,
) -> dict:
    """Build a visitor document as stored in Firestore."""
    visitor: dict[str, Any] = {"name": name, "status": status}
    if flat_number is not None:
        visitor["flatNumber"] = flat_number
    if guard_id is not None:
        visitor["guardId"] = guard_id
    return visitor


def build_event(
    collection: str,
    after: Optional[dict],
    event_kind: str = "created",
    document_id: str = TEST_VISITOR_ID,
    before: Optional[dict] = None,
) -> StoreEvent:
    return StoreEvent(
        event_kind=event_kind,
        collection=collection,
        document_id=document_id,
        before=before,
        after=after,
    )


def build_notification_event(
    user_id: Optional[str] = "u1",
    **fields: Any,
) -> StoreEvent:
    """Build a `created` event for a notification document."""
    document: dict[str, Any] = dict(fields)
    if user_id is not None:
        document["userId"] = user_id
    return build_event("notifications", document, document_id=TEST_NOTIFICATION_ID)


def build_decision_event(before_status: str, after_status: str, **overrides: Any) -> StoreEvent:
    """Build an `updated` visitor event moving between two statuses."""
    return build_event(
        "visitors",
        after=build_visitor(status=after_status, **overrides),
        before=build_visitor(status=before_status, **overrides),
        event_kind="updated",
    )
