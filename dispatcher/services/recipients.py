"""
dispatcher/services/recipients.py

Recipient resolution: turns a user id or a flat number into device tokens.
Missing users, flats and tokens are expected and resolve to nothing;
they are logged, never raised.
"""

import asyncio
from typing import Any, Optional

import structlog

from dispatcher.constants import FLAT_NUMBER_FIELD, FLATS_COLLECTION, USERS_COLLECTION
from dispatcher.schemas import FlatRecord, UserRecord
from store.firestore import DocumentStore

logger = structlog.get_logger(__name__)


class RecipientResolver:
    """Read-only lookups of device tokens in the document store."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def resolve_single(self, user_id: str) -> Optional[str]:
        """Return the user's device token, or None if the user cannot be reached."""
        document = await self._store.get_by_id(USERS_COLLECTION, user_id)
        if document is None:
            logger.info("recipient_not_found", user_id=user_id)
            return None

        user = UserRecord.model_validate(document)
        if not user.fcm_token:
            logger.info("recipient_token_missing", user_id=user_id)
            return None

        return user.fcm_token

    async def resolve_group(self, flat_number: Any) -> list[str]:
        """
        Return the device tokens of every resident of a flat.

        Residents are looked up concurrently. A resident that is missing,
        has no token, or whose lookup fails is skipped without aborting the rest.
        One token is returned per resident with a token, in residentIds order.
        """
        flats = await self._store.query_equals(
            FLATS_COLLECTION, FLAT_NUMBER_FIELD, flat_number, limit=1
        )
        if not flats:
            logger.info("flat_not_found", flat_number=flat_number)
            return []

        flat = FlatRecord.model_validate(flats[0])
        if not flat.resident_ids:
            logger.info("flat_has_no_residents", flat_number=flat_number)
            return []

        lookups = await asyncio.gather(
            *(
                self._store.get_by_id(USERS_COLLECTION, resident_id)
                for resident_id in flat.resident_ids
            ),
            return_exceptions=True,
        )

        tokens: list[str] = []
        for resident_id, document in zip(flat.resident_ids, lookups):
            if isinstance(document, Exception):
                logger.warning(
                    "resident_lookup_failed",
                    flat_number=flat_number,
                    user_id=resident_id,
                    error=str(document),
                )
                continue
            if document is None:
                logger.info("resident_not_found", flat_number=flat_number, user_id=resident_id)
                continue

            token = UserRecord.model_validate(document).fcm_token
            if not token:
                logger.info("resident_token_missing", flat_number=flat_number, user_id=resident_id)
                continue
            tokens.append(token)

        logger.info(
            "flat_tokens_resolved",
            flat_number=flat_number,
            residents=len(flat.resident_ids),
            tokens=len(tokens),
        )
        return tokens
