# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

SWAP_STATUSES = ("pending", "accepted", "rejected", "expired")


# ── Schedule Schemas ──

class ScheduleCreateRequest(BaseModel):
    date: datetime = Field(..., description="Service date (and time)")
    team_id: str = Field(..., min_length=1, max_length=64, description="Team assigned to the date")
    song_ids: list[str] = Field(default_factory=list, description="Ordered set list")


class TeamSummary(BaseModel):
    id: str
    name: Optional[str] = None
    leader_id: Optional[str] = None


class ParticipantResponse(BaseModel):
    member_id: str
    status: str


class ScheduleResponse(BaseModel):
    id: str
    date: str
    team_id: str
    team: TeamSummary
    song_ids: list[str]
    participants: list[ParticipantResponse]
    created_at: str
    updated_at: Optional[str] = None


class ParticipantStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def normalise_status(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("confirmed", "declined"):
            raise ValueError("status must be one of ('confirmed', 'declined')")
        return v


# ── Swap Schemas ──

class SwapRequestCreate(BaseModel):
    initiating_schedule_id: str = Field(..., min_length=1, max_length=64)
    target_schedule_id: str = Field(..., min_length=1, max_length=64)


class SwapRespondRequest(BaseModel):
    response: str

    @field_validator("response")
    @classmethod
    def normalise_response(cls, v: str) -> str:
        # Allowed values are enforced by SwapService.
        return v.lower().strip()


class SwapRequestResponse(BaseModel):
    id: str
    initiating_schedule_id: str
    target_schedule_id: str
    initiating_leader_id: str
    target_leader_id: str
    status: str
    created_at: str
    responded_at: Optional[str] = None
    reconciliation_required: bool = False
