"""
errors.py — AppError base class and error code registry.

Every error returned by the TripSync API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_DATE_RANGE         = "INVALID_DATE_RANGE"
    INVALID_JOIN_CODE          = "INVALID_JOIN_CODE"
    DUPLICATE_SPLIT_USER       = "DUPLICATE_SPLIT_USER"
    UNSUPPORTED_FILE_TYPE      = "UNSUPPORTED_FILE_TYPE"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    ALREADY_MEMBER             = "ALREADY_MEMBER"
    JOIN_CODE_EXHAUSTED        = "JOIN_CODE_EXHAUSTED"
    ITEM_CONFLICT              = "ITEM_CONFLICT"          # unique column already taken

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    TRIP_NOT_FOUND             = "TRIP_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"
    ACTIVITY_NOT_FOUND         = "ACTIVITY_NOT_FOUND"
    ITEM_NOT_FOUND             = "ITEM_NOT_FOUND"
    UNKNOWN_COLLECTION         = "UNKNOWN_COLLECTION"
    NOT_FOUND                  = "NOT_FOUND"              # no such route or file

    # ── Method Not Allowed (405) ───────────────────────────────────────────
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"

    # ── Payload Too Large (413) ────────────────────────────────────────────
    FILE_TOO_LARGE             = "FILE_TOO_LARGE"

    # ── Business Rule Violations (422) ────────────────────────────────────
    PAYER_NOT_MEMBER           = "PAYER_NOT_MEMBER"
    SPLIT_USER_NOT_MEMBER      = "SPLIT_USER_NOT_MEMBER"
    EMPTY_SPLIT_SET            = "EMPTY_SPLIT_SET"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"  # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── Upstream / Availability Errors ─────────────────────────────────────
    PROVIDER_ERROR             = "PROVIDER_ERROR"         # 502: identity provider failed
    AI_GENERATION_FAILED       = "AI_GENERATION_FAILED"   # 502: itinerary generation failed
    AI_UNAVAILABLE             = "AI_UNAVAILABLE"         # 503: no API key configured
    STORE_UNAVAILABLE          = "STORE_UNAVAILABLE"      # 503: item store read/write failed

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Hotel search provider failed or is not configured; fallback list returned.
    HOTELS_FALLBACK = "HOTELS_FALLBACK"
