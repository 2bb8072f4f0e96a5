# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Schedule endpoints.
Thin HTTP layer, delegates ALL logic to ScheduleService.
"""

from fastapi import APIRouter, Depends

from roster.schemas.roster import (
    ParticipantStatusUpdate,
    ScheduleCreateRequest,
    ScheduleResponse,
)
from roster.services.schedule_service import ScheduleService
from roster.core.dependencies import get_current_user_id, get_schedule_service

router = APIRouter(prefix="/api/v1", tags=["Schedules"])


@router.post("/schedules", status_code=201, response_model=ScheduleResponse)
def create_schedule(
    payload: ScheduleCreateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Schedule a team for a date; its members are enrolled as pending."""
    return service.create_schedule(
        date=payload.date,
        team_id=payload.team_id,
        song_ids=payload.song_ids,
    )


@router.get("/schedules", response_model=list[ScheduleResponse])
def list_schedules(
    service: ScheduleService = Depends(get_schedule_service),
):
    """List all schedules with their team and roster."""
    return service.list_schedules()


@router.get("/schedules/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
    schedule_id: str,
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.get_schedule(schedule_id)


@router.delete("/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: str,
    caller_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Remove a schedule and its roster; team leader only."""
    return service.delete_schedule(schedule_id, caller_id)


@router.get("/schedules/{schedule_id}/swap-candidates", response_model=list[ScheduleResponse])
def list_swap_candidates(
    schedule_id: str,
    caller_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Upcoming schedules of other leaders that this schedule could be swapped with."""
    return service.list_swap_candidates(schedule_id, caller_id)


@router.patch(
    "/schedules/{schedule_id}/participants/{member_id}",
    response_model=ScheduleResponse,
)
def update_participant_status(
    schedule_id: str,
    member_id: str,
    payload: ParticipantStatusUpdate,
    caller_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """A member confirms or declines their participation."""
    return service.update_participant_status(
        schedule_id=schedule_id,
        member_id=member_id,
        status=payload.status,
        caller_id=caller_id,
    )
