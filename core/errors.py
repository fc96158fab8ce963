# core/errors.py

from typing import List, Optional, Union


# ============================================================
# ACCESS-CONTROL ERROR TAXONOMY
# ============================================================
class AccessControlError(Exception):
    """
    Base class for every decision the guard chain, the scope filter
    and the consistency rules can surface to a caller.

    Each subclass fixes the `kind` and the HTTP status the presentation
    layer maps it to. Diagnostics (`required`, `record_id`) never carry
    another subject's data.
    """

    kind = "access_error"
    status_code = 403
    code: Optional[str] = None
    retryable = False

    def __init__(self, detail: str, **diagnostics):
        super().__init__(detail)
        self.detail = detail
        self.diagnostics = {k: v for k, v in diagnostics.items() if v is not None}

    def to_dict(self) -> dict:
        body = {"detail": self.detail, "kind": self.kind}
        if self.code:
            body["code"] = self.code
        body.update(self.diagnostics)
        return body


class Unauthenticated(AccessControlError):
    kind = "unauthenticated"
    status_code = 401

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(detail)


class NoOrganization(AccessControlError):
    kind = "no_organization"
    status_code = 403
    code = "NO_ORGANIZATION"

    def __init__(
        self,
        detail: str = (
            "User not assigned to organization. Please contact your "
            "administrator to be added to an organization."
        ),
    ):
        super().__init__(detail)


class Forbidden(AccessControlError):
    kind = "forbidden"
    status_code = 403
    code = "INSUFFICIENT_PERMISSIONS"

    def __init__(self, required: Union[str, List[str]], detail: Optional[str] = None):
        if detail is None:
            if isinstance(required, str):
                detail = f"You do not have the required permission: {required}"
            else:
                detail = f"You do not have any of the required permissions: {', '.join(required)}"
        super().__init__(detail, required=required)
        self.required = required


class AccessDenied(AccessControlError):
    kind = "access_denied"
    status_code = 403
    code = "ACCESS_DENIED"

    def __init__(self, record_id: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(detail or "Access denied to this record", record_id=record_id)
        self.record_id = record_id


class NotFound(AccessControlError):
    kind = "not_found"
    status_code = 404

    def __init__(self, detail: str = "Resource not found", record_id: Optional[str] = None):
        super().__init__(detail, record_id=record_id)
        self.record_id = record_id


class Conflict(AccessControlError):
    kind = "conflict"
    status_code = 409
    code = "CONFLICT"


class InvalidRequest(AccessControlError):
    kind = "invalid_request"
    status_code = 400


class AuthorizationUnavailable(AccessControlError):
    """The store or the verifier could not be reached; safe to retry."""

    kind = "authorization_unavailable"
    status_code = 503
    retryable = True

    def __init__(self, detail: str = "Authorization service unavailable, please retry"):
        super().__init__(detail)


# ============================================================
# STORE ERRORS
# ============================================================
class StoreError(Exception):
    """A document store read or write failed."""

    def __init__(self, operation: str, detail: str):
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail


def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # Case 1: PostgREST / GoTrue errors expose .message
    message = getattr(error, "message", None)
    if message:
        return str(message)

    # Case 2: errors with args (common)
    if getattr(error, "args", None):
        return str(error.args[0])

    return str(error) or "Unknown Supabase error"


def is_unique_violation(error: Exception) -> bool:
    """Postgres 23505 surfaces as an APIError code or in the message text."""
    if getattr(error, "code", None) == "23505":
        return True
    text = extract_supabase_error(error).lower()
    return "duplicate" in text or "unique" in text


def handle_supabase_error(error: Exception, operation: str = "Database operation") -> Exception:
    """
    Translate a Supabase / transport error into the project's taxonomy.
    Returns the exception (doesn't raise) so caller can re-raise with `from`.

    Unique-constraint violations become Conflict; everything else
    becomes StoreError.
    """
    from core.logging_config import logger

    detail = extract_supabase_error(error)
    logger.error(f"{operation}: {detail}")

    if is_unique_violation(error):
        return Conflict(f"{operation}: record already exists")
    return StoreError(operation, detail)
