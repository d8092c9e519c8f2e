"""
store/firestore.py

Document store access for the dispatcher.
- DocumentStore: the read/write surface the dispatcher consumes
- FirestoreStore: Cloud Firestore implementation on the firebase_admin async client
- init_firebase_app: process-wide Firebase app, initialized once

Documents are exchanged as plain dicts; callers validate them into schemas.
"""

from typing import Any, Optional, Protocol

import firebase_admin
import structlog
from firebase_admin import credentials, firestore_async
from google.cloud.firestore import DELETE_FIELD as FIRESTORE_DELETE_FIELD
from google.cloud.firestore_v1.base_query import FieldFilter

from config import settings

logger = structlog.get_logger(__name__)


class _DeleteField:
    """Sentinel asking the store to remove a field rather than null it."""

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


class DocumentStore(Protocol):
    async def get_by_id(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        ...

    async def query_equals(
        self, collection: str, field: str, value: Any, limit: int
    ) -> list[dict[str, Any]]:
        ...

    async def update_field(
        self, collection: str, document_id: str, field: str, value: Any
    ) -> None:
        ...


def init_firebase_app() -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cred = (
        credentials.Certificate(settings.firebase_credentials_path)
        if settings.firebase_credentials_path
        else credentials.ApplicationDefault()
    )
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    app = firebase_admin.initialize_app(cred, options)
    logger.info(
        "firebase_app_initialized",
        project_id=settings.firebase_project_id or None,
        service_account=bool(settings.firebase_credentials_path),
    )
    return app


class FirestoreStore:
    """DocumentStore backed by Cloud Firestore."""

    def __init__(self, client: Any) -> None:
        self._db = client

    @classmethod
    def from_app(cls, app: firebase_admin.App) -> "FirestoreStore":
        return cls(firestore_async.client(app))

    async def get_by_id(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        snapshot = await self._db.collection(collection).document(document_id).get()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict() or {}
        data.setdefault("id", snapshot.id)
        return data

    async def query_equals(
        self, collection: str, field: str, value: Any, limit: int
    ) -> list[dict[str, Any]]:
        query = (
            self._db.collection(collection)
            .where(filter=FieldFilter(field, "==", value))
            .limit(limit)
        )
        snapshots = await query.get()
        documents = []
        for snapshot in snapshots:
            data = snapshot.to_dict() or {}
            data.setdefault("id", snapshot.id)
            documents.append(data)
        return documents

    async def update_field(
        self, collection: str, document_id: str, field: str, value: Any
    ) -> None:
        if value is DELETE_FIELD:
            value = FIRESTORE_DELETE_FIELD
        await self._db.collection(collection).document(document_id).update({field: value})
