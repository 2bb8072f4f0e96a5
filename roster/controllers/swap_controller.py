# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Swap request endpoints.
Thin HTTP layer, delegates ALL logic to SwapService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from roster.schemas.roster import (
    SWAP_STATUSES,
    SwapRequestCreate,
    SwapRequestResponse,
    SwapRespondRequest,
)
from roster.services.swap_service import SwapService
from roster.core.dependencies import get_current_user_id, get_swap_service

router = APIRouter(prefix="/api/v1", tags=["Swaps"])


@router.post("/swap-requests", status_code=201, response_model=SwapRequestResponse)
def create_swap_request(
    payload: SwapRequestCreate,
    caller_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    """Propose exchanging one of the caller's schedules with another leader's."""
    return service.create_swap_request(
        initiating_schedule_id=payload.initiating_schedule_id,
        target_schedule_id=payload.target_schedule_id,
        caller_id=caller_id,
    )


@router.get("/swap-requests", response_model=list[SwapRequestResponse])
def list_swap_requests(
    status: Optional[str] = None,
    caller_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    """Requests the caller sent or received, optionally filtered by status."""
    if status is not None and status not in SWAP_STATUSES:
        raise HTTPException(status_code=400, detail=f"status must be one of {SWAP_STATUSES}")
    return service.list_for_leader(caller_id, status=status)


@router.get("/swap-requests/incoming", response_model=list[SwapRequestResponse])
def list_incoming_swap_requests(
    caller_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    """Pending requests waiting for the caller's answer."""
    return service.list_incoming(caller_id)


@router.get(
    "/swap-requests/reconciliation",
    response_model=list[SwapRequestResponse],
    dependencies=[Depends(get_current_user_id)],
)
def list_reconciliation_required(
    service: SwapService = Depends(get_swap_service),
):
    """Swaps left half-applied that an operator has to repair."""
    return service.list_reconciliation_required()


@router.post("/swap-requests/cleanup")
def expire_orphaned_swap_requests(
    caller_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    """Expire pending requests whose schedules were deleted."""
    expired = service.expire_orphans(requested_by=caller_id)
    return {"status": "ok", "expired": expired, "count": len(expired)}


@router.get("/swap-requests/{request_id}", response_model=SwapRequestResponse)
def get_swap_request(
    request_id: str,
    caller_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    return service.get_swap_request(request_id, caller_id)


@router.post("/swap-requests/{request_id}/respond", response_model=SwapRequestResponse)
def respond_to_swap_request(
    request_id: str,
    payload: SwapRespondRequest,
    caller_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    """Accept or reject a pending request addressed to the caller."""
    return service.respond_to_swap_request(
        request_id=request_id,
        response=payload.response,
        responder_id=caller_id,
    )
