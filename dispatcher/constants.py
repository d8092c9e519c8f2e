"""
dispatcher/constants.py

Fixed vocabulary shared by the trigger rules, payload builder and adapters.
Collection names, record statuses, notification types and delivery error
kinds must be referenced from this module.
"""

# ── Store collections and fields ─────────────────────────────
USERS_COLLECTION: str = "users"
FLATS_COLLECTION: str = "flats"
VISITORS_COLLECTION: str = "visitors"
NOTIFICATIONS_COLLECTION: str = "notifications"

FCM_TOKEN_FIELD: str = "fcmToken"
FLAT_NUMBER_FIELD: str = "flatNumber"

# ── Event kinds ──────────────────────────────────────────────
EVENT_CREATED: str = "created"
EVENT_UPDATED: str = "updated"

# ── Visitor status ───────────────────────────────────────────
STATUS_PENDING: str = "pending"
STATUS_APPROVED: str = "approved"
STATUS_DENIED: str = "denied"
DECISION_STATUSES: frozenset[str] = frozenset({STATUS_APPROVED, STATUS_DENIED})

# ── Notification types (data.type) ───────────────────────────
TYPE_SYSTEM_ALERT: str = "system_alert"
TYPE_VISITOR_ARRIVED: str = "visitor_arrived"
TYPE_VISITOR_APPROVED: str = "visitor_approved"
TYPE_VISITOR_DENIED: str = "visitor_denied"

# ── Visitor notification text ────────────────────────────────
VISITOR_ARRIVED_TITLE: str = "New Visitor"
VISITOR_APPROVED_TITLE: str = "Visitor Approved"
VISITOR_DENIED_TITLE: str = "Visitor Denied"

# ── Delivery hints ───────────────────────────────────────────
DELIVERY_PRIORITY: str = "high"
DELIVERY_SOUND: str = "default"

# ── Transport error kinds ────────────────────────────────────
ERROR_INVALID_TOKEN: str = "invalid-registration-token"
ERROR_TOKEN_NOT_REGISTERED: str = "registration-token-not-registered"
ERROR_QUOTA_EXCEEDED: str = "quota-exceeded"
ERROR_MISMATCHED_CREDENTIAL: str = "mismatched-credential"
ERROR_THIRD_PARTY_AUTH: str = "third-party-auth-error"
ERROR_UNKNOWN: str = "unknown"

# Error kinds that prove a token is dead and must be pruned
PRUNABLE_ERROR_KINDS: frozenset[str] = frozenset(
    {ERROR_INVALID_TOKEN, ERROR_TOKEN_NOT_REGISTERED}
)
