"""
Typed engine errors.

Every error carries the affected entity id and, where known, the current
status of that entity so clients can render a useful message. None of them
expose lock or transaction internals.
"""
from typing import Any, Dict, Optional


class LeaveEngineError(Exception):
    status_code = 400
    error_code = "LEAVE_ENGINE_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        entity_id: Optional[int] = None,
        current_status: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.entity_id = entity_id
        self.current_status = current_status
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "error_code": self.error_code,
            "detail": self.message,
            "entity_id": self.entity_id,
            "current_status": self.current_status,
            "retryable": self.retryable,
        }
        payload.update(self.details)
        return payload


class InvalidRange(LeaveEngineError):
    status_code = 400
    error_code = "INVALID_RANGE"


class OverlappingRequest(LeaveEngineError):
    status_code = 409
    error_code = "OVERLAPPING_REQUEST"


class InsufficientBalance(LeaveEngineError):
    """Raised by the soft check at submission and the hard check at approval."""
    status_code = 409
    error_code = "INSUFFICIENT_BALANCE"

    SUBMISSION = "submission"
    APPROVAL = "approval"

    def __init__(
        self,
        message: str,
        stage: str,
        requested: Any = None,
        available: Any = None,
        entity_id: Optional[int] = None,
        current_status: Optional[str] = None,
    ):
        self.stage = stage
        self.requested = requested
        self.available = available
        super().__init__(
            message,
            entity_id=entity_id,
            current_status=current_status,
            details={
                "stage": stage,
                "requested": float(requested) if requested is not None else None,
                "available": float(available) if available is not None else None,
            },
        )


class Unauthorized(LeaveEngineError):
    status_code = 403
    error_code = "UNAUTHORIZED"


class InvalidTransition(LeaveEngineError):
    status_code = 409
    error_code = "INVALID_TRANSITION"


class LockContention(LeaveEngineError):
    status_code = 503
    error_code = "LOCK_CONTENTION"
    retryable = True


class AuditWriteFailed(LeaveEngineError):
    status_code = 500
    error_code = "AUDIT_WRITE_FAILED"


class NotFound(LeaveEngineError):
    status_code = 404
    error_code = "NOT_FOUND"


class ValidationFailed(LeaveEngineError):
    status_code = 422
    error_code = "VALIDATION_FAILED"
