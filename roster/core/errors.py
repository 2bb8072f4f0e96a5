# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error taxonomy shared by repositories, services and the HTTP layer.
Each error carries the HTTP status and machine-readable code it maps to.
"""

from typing import Optional


class RosterError(Exception):
    """Base class for every expected failure of the roster service."""

    status_code: int = 500
    code: str = "internal"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__

    def __str__(self) -> str:
        return self.message


class PermissionDeniedError(RosterError):
    status_code = 403
    code = "permission_denied"


class NotFoundError(RosterError):
    status_code = 404
    code = "not_found"


class InvalidRequestError(RosterError):
    status_code = 400
    code = "invalid_request"


class ConflictError(RosterError):
    status_code = 409
    code = "conflict"


class InternalError(RosterError):
    status_code = 500
    code = "internal"


class InconsistentStateError(RosterError):
    """
    A partial swap could not be compensated.
    The swap request is left non-terminal and flagged for an operator.
    """

    status_code = 500
    code = "inconsistent_state"
    public_message = (
        "The swap could not be completed and needs manual review. "
        "Please contact support."
    )

    def __init__(
        self,
        swap_request_id: str,
        original_error: BaseException,
        compensation_error: Optional[BaseException] = None,
    ) -> None:
        detail = f"Swap request {swap_request_id} left inconsistent: {original_error}"
        if compensation_error is not None:
            detail += f"; compensation failed: {compensation_error}"
        super().__init__(detail)
        self.swap_request_id = swap_request_id
        self.original_error = original_error
        self.compensation_error = compensation_error
