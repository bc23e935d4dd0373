"""
Shared request dependencies: audit identity and Result-to-HTTP mapping.
"""
from fastapi import Header, HTTPException, status

from boatyard.domain.audit import SYSTEM_USER, AuditContext
from boatyard.domain.result import Result

ERROR_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "POLICY_ERROR": status.HTTP_409_CONFLICT,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "CONCURRENCY_ERROR": status.HTTP_409_CONFLICT,
}


def get_audit_context(
    x_user_id: str = Header(SYSTEM_USER),
    x_user_name: str = Header(SYSTEM_USER),
) -> AuditContext:
    """Identity stamped on records, taken from the X-User-Id / X-User-Name headers."""
    return AuditContext(user_id=x_user_id, user_name=x_user_name)


def unwrap(result: Result):
    """Return the value of a successful Result or raise the matching HTTP error."""
    if result.ok:
        return result.value
    raise HTTPException(
        status_code=ERROR_STATUS.get(result.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"error": result.error, "code": result.code},
    )
