"""
dispatcher/services/hygiene.py

Device token hygiene.
Removes a user's stored token once the transport proves it invalid or
unregistered, so later dispatches short-circuit instead of retrying it.
"""

import structlog

from dispatcher.constants import FCM_TOKEN_FIELD, PRUNABLE_ERROR_KINDS, USERS_COLLECTION
from store.firestore import DELETE_FIELD, DocumentStore

logger = structlog.get_logger(__name__)


class TokenHygiene:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def on_delivery_failure(self, user_id: str, error_kind: str) -> bool:
        """
        React to a failed single-target send.

        Returns True if the user's token was removed. Non-token errors and
        failures of the removal itself are logged and swallowed.
        """
        if error_kind not in PRUNABLE_ERROR_KINDS:
            logger.info("token_kept", user_id=user_id, error_kind=error_kind)
            return False

        try:
            # Field deletion, not null: readers must see the token as absent
            await self._store.update_field(
                USERS_COLLECTION, user_id, FCM_TOKEN_FIELD, DELETE_FIELD
            )
        except Exception as exc:
            logger.error(
                "token_prune_failed",
                user_id=user_id,
                error_kind=error_kind,
                error=str(exc),
            )
            return False

        logger.info("token_pruned", user_id=user_id, error_kind=error_kind)
        return True
