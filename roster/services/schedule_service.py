# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule management: business logic for schedules and rosters.
Coordinates repository writes with metrics, history, and validation.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from roster.core.errors import NotFoundError, PermissionDeniedError
from roster.core.logging import get_logger
from roster.metrics.prometheus import ROSTER_REGENERATIONS, SCHEDULES_CREATED
from roster.repositories.base import as_datetime
from roster.repositories.directory_repository import MembershipDirectory
from roster.repositories.history_repository import HistoryRepository
from roster.repositories.schedule_repository import ScheduleRepository

logger = get_logger(__name__)


class ScheduleService:
    """Business logic for worship schedules and participation tracking."""

    def __init__(
        self,
        schedule_repo: ScheduleRepository,
        directory: MembershipDirectory,
        history_repo: HistoryRepository,
    ) -> None:
        self._schedules = schedule_repo
        self._directory = directory
        self._history = history_repo

    # ── Commands ──

    def create_schedule(
        self,
        date: datetime,
        team_id: str,
        song_ids: list[str] | None = None,
    ) -> dict[str, Any]:
        """Schedule a team for a date and enrol its members as pending."""
        if self._directory.get_team(team_id) is None:
            raise NotFoundError(f"Team '{team_id}' not found")

        schedule = self._schedules.create(
            schedule_id=str(uuid.uuid4()),
            date=date,
            team_id=team_id,
            song_ids=song_ids or [],
        )
        SCHEDULES_CREATED.inc()
        ROSTER_REGENERATIONS.labels(reason="created").inc()
        self._history.record_event(
            "schedule.created",
            schedule["id"],
            {"team_id": team_id, "date": schedule["date"],
             "participants": len(schedule["participants"])},
        )
        logger.info("Schedule created: id=%s, team=%s, date=%s",
                    schedule["id"], team_id, schedule["date"])
        return schedule

    def delete_schedule(self, schedule_id: str, caller_id: str) -> dict[str, str]:
        """
        Delete a schedule and its roster. Only its team leader may do so.
        Pending swaps on it become orphans.
        """
        schedule = self.get_schedule(schedule_id)
        if schedule["team"]["leader_id"] != caller_id:
            raise PermissionDeniedError("Only the team leader can delete a schedule")
        if not self._schedules.delete(schedule_id):
            raise NotFoundError(f"Schedule {schedule_id} not found")
        self._history.record_event("schedule.deleted", schedule_id, {}, actor=caller_id)
        logger.info("Schedule deleted: id=%s", schedule_id)
        return {"status": "deleted", "id": schedule_id}

    def update_participant_status(
        self,
        schedule_id: str,
        member_id: str,
        status: str,
        caller_id: str,
    ) -> dict[str, Any]:
        """A member confirms or declines their own participation."""
        if caller_id != member_id:
            raise PermissionDeniedError("Members can only update their own participation")
        if not self._schedules.exists(schedule_id):
            raise NotFoundError(f"Schedule {schedule_id} not found")

        schedule = self._schedules.update_participant_status(schedule_id, member_id, status)
        self._history.record_event(
            "participant.status_changed",
            schedule_id,
            {"member_id": member_id, "status": status},
            actor=caller_id,
        )
        logger.info("Participation updated: schedule=%s, member=%s, status=%s",
                    schedule_id, member_id, status)
        return schedule

    # ── Queries ──

    def list_schedules(self) -> list[dict[str, Any]]:
        return self._schedules.get_all()

    def get_schedule(self, schedule_id: str) -> dict[str, Any]:
        schedule = self._schedules.get(schedule_id)
        if schedule is None:
            raise NotFoundError(f"Schedule {schedule_id} not found")
        return schedule

    def list_swap_candidates(
        self,
        schedule_id: str,
        caller_id: str,
        today: Optional[date] = None,
    ) -> list[dict[str, Any]]:
        """
        Schedules the caller could offer their schedule against: today or
        later, not the schedule itself, and led by someone else.
        """
        schedule = self.get_schedule(schedule_id)
        if schedule["team"]["leader_id"] != caller_id:
            raise PermissionDeniedError("Only the team leader can look for swaps")

        today = today or datetime.now(timezone.utc).date()
        candidates = [
            s for s in self._schedules.get_all()
            if s["id"] != schedule_id
            and as_datetime(s["date"]).date() >= today
            and s["team"]["leader_id"]
            and s["team"]["leader_id"] != caller_id
        ]
        return sorted(candidates, key=lambda s: as_datetime(s["date"]))
