# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Swap negotiation between two team leaders.

Lifecycle of a swap request:
    pending ─► accepted   (teams exchanged, both rosters regenerated)
    pending ─► rejected
    pending ─► expired    (a referenced schedule was deleted, or another
                           accepted swap moved one of its schedules)

On acceptance the two schedules exchange teams first and only then are
their rosters rebuilt, because regeneration enrols the members of the
team the schedule now belongs to.
"""

from typing import Any, Optional

from roster.core.config import settings
from roster.core.errors import (
    ConflictError,
    InconsistentStateError,
    InternalError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
    RosterError,
)
from roster.core.logging import get_logger
from roster.metrics.prometheus import (
    ROSTER_REGENERATIONS,
    SWAP_COMPENSATIONS,
    SWAP_FAILURES,
    SWAP_REQUESTS_CREATED,
    SWAP_REQUESTS_REFUSED,
    SWAP_RESPONSES,
    SWAPS_EXPIRED,
    SWAPS_RECONCILIATION_REQUIRED,
)
from roster.repositories.directory_repository import MembershipDirectory
from roster.repositories.history_repository import HistoryRepository
from roster.repositories.schedule_repository import ScheduleRepository
from roster.repositories.swap_repository import (
    ACCEPTED,
    REJECTED,
    SwapRequestRepository,
)
from roster.services.notification_client import NotificationClient

logger = get_logger(__name__)

VALID_RESPONSES = (ACCEPTED, REJECTED)

EVENT_REQUESTED = "swap.requested"
EVENT_RESPONDED = "swap.responded"


class SwapService:
    """Business logic for proposing and answering schedule swaps."""

    def __init__(
        self,
        schedule_repo: ScheduleRepository,
        swap_repo: SwapRequestRepository,
        directory: MembershipDirectory,
        history_repo: HistoryRepository,
        notification_client: NotificationClient,
        transactional: Optional[bool] = None,
    ) -> None:
        self._schedules = schedule_repo
        self._swaps = swap_repo
        self._directory = directory
        self._history = history_repo
        self._notifications = notification_client
        self._transactional = (
            settings.SWAP_TRANSACTIONAL if transactional is None else transactional
        )

    # ── Proposal ──

    def create_swap_request(
        self,
        initiating_schedule_id: str,
        target_schedule_id: str,
        caller_id: str,
    ) -> dict[str, Any]:
        """
        Propose exchanging the caller's schedule with another leader's.
        Checks run in order and the first failure wins:
        PermissionDenied, NotFound, InvalidRequest, Conflict.
        """
        initiating = self._schedules.get(initiating_schedule_id)
        if initiating is None or self._directory.get_leader(initiating["team_id"]) != caller_id:
            SWAP_REQUESTS_REFUSED.labels(reason="permission_denied").inc()
            raise PermissionDeniedError(
                "You are not the leader of the originating schedule, or it does not exist"
            )

        target = self._schedules.get(target_schedule_id)
        target_leader_id = (
            self._directory.get_leader(target["team_id"]) if target is not None else None
        )
        if not target_leader_id:
            SWAP_REQUESTS_REFUSED.labels(reason="not_found").inc()
            raise NotFoundError("Could not find the target schedule or its team leader")

        if target_leader_id == caller_id:
            SWAP_REQUESTS_REFUSED.labels(reason="self_swap").inc()
            raise InvalidRequestError("You cannot request a swap with yourself")

        try:
            request = self._swaps.create(
                initiating_schedule_id=initiating_schedule_id,
                target_schedule_id=target_schedule_id,
                initiating_leader_id=caller_id,
                target_leader_id=target_leader_id,
            )
        except RosterError:
            SWAP_REQUESTS_REFUSED.labels(reason="conflict").inc()
            raise

        SWAP_REQUESTS_CREATED.inc()
        self._history.record_event(
            EVENT_REQUESTED,
            request["id"],
            {"initiating_schedule_id": initiating_schedule_id,
             "target_schedule_id": target_schedule_id,
             "target_leader_id": target_leader_id},
            actor=caller_id,
        )
        logger.info(
            "Swap requested: id=%s, initiating=%s, target=%s, target_leader=%s",
            request["id"], initiating_schedule_id, target_schedule_id, target_leader_id,
        )

        context = self._context(request, initiating, target)
        self._dispatch(
            EVENT_REQUESTED,
            [target_leader_id],
            "Schedule swap request received",
            (
                f"A swap of your schedule on {context['target_schedule']['date']} "
                f"({context['target_schedule']['team_name']}) for "
                f"{context['initiating_schedule']['date']} "
                f"({context['initiating_schedule']['team_name']}) was requested. "
                f"Open the dashboard to accept or decline. {settings.SITE_URL}/dashboard"
            ),
            context,
        )
        return request

    # ── Response ──

    def respond_to_swap_request(
        self,
        request_id: str,
        response: str,
        responder_id: str,
    ) -> dict[str, Any]:
        """Accept or reject a pending request addressed to the responder."""
        if response not in VALID_RESPONSES:
            raise InvalidRequestError(f"response must be one of {VALID_RESPONSES}")

        request = self._swaps.find_pending_for_responder(request_id, responder_id)

        # Teams are captured before anything is written.
        initiating = self._schedules.get(request["initiating_schedule_id"])
        target = self._schedules.get(request["target_schedule_id"])
        if initiating is None or target is None:
            raise NotFoundError(
                f"Swap request {request_id} refers to a schedule that no longer exists"
            )

        if response == ACCEPTED:
            self._check_ownership(request, initiating, target, responder_id)
            if self._transactional:
                updated, superseded = self._accept_in_transaction(request, initiating, target)
            else:
                updated = self._accept_with_compensation(request, initiating, target)
                superseded = self._expire_superseded(request, initiating, target)
            ROSTER_REGENERATIONS.labels(reason="swap").inc(2)
            self._record_superseded(request_id, superseded)
        else:
            updated = self._swaps.set_status(request_id, REJECTED, unclaimed_only=True)

        SWAP_RESPONSES.labels(response=response).inc()
        self._history.record_event(
            f"swap.{response}",
            request_id,
            {"initiating_schedule_id": request["initiating_schedule_id"],
             "target_schedule_id": request["target_schedule_id"],
             "initiating_team_id": initiating["team_id"],
             "target_team_id": target["team_id"]},
            actor=responder_id,
        )
        logger.info("Swap %s: id=%s, responder=%s", response, request_id, responder_id)

        context = self._context(updated, initiating, target)
        context["response"] = response
        verdict = "ACCEPTED" if response == ACCEPTED else "DECLINED"
        body = (
            f"Your swap request for {context['initiating_schedule']['date']} was {verdict.lower()}. "
            f"Proposed schedule: {context['target_schedule']['date']}."
        )
        if response == ACCEPTED:
            body += " The schedules have been updated."
        self._dispatch(
            EVENT_RESPONDED,
            [request["initiating_leader_id"]],
            f"Reply to your swap request ({verdict})",
            body,
            context,
        )
        return updated

    def _check_ownership(
        self,
        request: dict[str, Any],
        initiating: dict[str, Any],
        target: dict[str, Any],
        responder_id: str,
    ) -> None:
        """Both schedules must still be led by the leaders named on the request."""
        initiating_leader = self._directory.get_leader(initiating["team_id"])
        target_leader = self._directory.get_leader(target["team_id"])
        if (initiating_leader != request["initiating_leader_id"]
                or target_leader != responder_id):
            SWAP_FAILURES.labels(stage="ownership_changed").inc()
            logger.info(
                "Swap %s refused: schedules changed hands (initiating=%s, target=%s)",
                request["id"], initiating_leader, target_leader,
                extra={"swap_request_id": request["id"]},
            )
            raise ConflictError(
                "One of the schedules changed teams since this request was made"
            )

    def _accept_in_transaction(
        self,
        request: dict[str, Any],
        initiating: dict[str, Any],
        target: dict[str, Any],
    ) -> tuple[dict[str, Any], list[str]]:
        """
        Status claim, both reassignments, both regenerations and the expiry of
        superseded requests commit together.
        """
        request_id = request["id"]
        team_a, team_b = initiating["team_id"], target["team_id"]
        try:
            with self._swaps.transaction() as conn:
                updated = self._swaps.set_status(
                    request_id, ACCEPTED, conn=conn, unclaimed_only=True
                )
                self._schedules.reassign_team(initiating["id"], team_b, conn=conn)
                self._schedules.reassign_team(target["id"], team_a, conn=conn)
                self._schedules.regenerate_participants(initiating["id"], team_b, conn=conn)
                self._schedules.regenerate_participants(target["id"], team_a, conn=conn)
                superseded = self._swaps.expire_superseded(
                    request_id, [initiating["id"], target["id"]], conn=conn
                )
        except RosterError:
            raise
        except Exception as exc:
            SWAP_FAILURES.labels(stage="transaction").inc()
            logger.error("Swap %s rolled back: %s", request_id, exc, exc_info=True)
            raise InternalError(f"The swap could not be applied: {exc}") from exc
        return updated, superseded

    def _expire_superseded(
        self,
        request: dict[str, Any],
        initiating: dict[str, Any],
        target: dict[str, Any],
    ) -> list[str]:
        # Best effort: leftovers still fail the ownership check.
        try:
            return self._swaps.expire_superseded(
                request["id"], [initiating["id"], target["id"]]
            )
        except Exception as exc:
            logger.warning("Could not expire requests superseded by swap %s: %s",
                           request["id"], exc)
            return []

    def _record_superseded(self, request_id: str, superseded: list[str]) -> None:
        for other_id in superseded:
            SWAPS_EXPIRED.inc()
            self._history.record_event(
                "swap.expired", other_id, {"reason": "superseded", "by": request_id}
            )
        if superseded:
            logger.info("Swap %s superseded %d pending requests", request_id, len(superseded))

    def _accept_with_compensation(
        self,
        request: dict[str, Any],
        initiating: dict[str, Any],
        target: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Per-step writes for storage without cross-row transactions.
        The claim keeps a concurrent accept from replaying the steps.
        """
        request_id = request["id"]
        team_a, team_b = initiating["team_id"], target["team_id"]
        self._swaps.claim(request_id)

        try:
            self._schedules.reassign_team(initiating["id"], team_b)
        except Exception as exc:
            SWAP_FAILURES.labels(stage="reassign_initiating").inc()
            self._release(request_id)
            raise InternalError(f"Could not update the originating schedule: {exc}") from exc

        try:
            self._schedules.reassign_team(target["id"], team_a)
        except Exception as exc:
            SWAP_FAILURES.labels(stage="reassign_target").inc()
            self._compensate(request_id, initiating["id"], team_a, exc)

        try:
            self._schedules.regenerate_participants(initiating["id"], team_b)
            self._schedules.regenerate_participants(target["id"], team_a)
        except Exception as exc:
            SWAP_FAILURES.labels(stage="regenerate_participants").inc()
            self._mark_inconsistent(request_id, exc)

        try:
            return self._swaps.set_status(request_id, ACCEPTED)
        except Exception as exc:
            SWAP_FAILURES.labels(stage="set_status").inc()
            self._mark_inconsistent(request_id, exc)

    def _compensate(
        self,
        request_id: str,
        initiating_schedule_id: str,
        original_team_id: str,
        error: Exception,
    ) -> None:
        """Put the originating schedule back on its team, then re-raise. One attempt only."""
        logger.error(
            "Second reassignment failed for swap %s, reverting the first: %s",
            request_id, error,
        )
        try:
            self._schedules.reassign_team(initiating_schedule_id, original_team_id)
        except Exception as compensation_error:
            SWAP_COMPENSATIONS.labels(outcome="failed").inc()
            self._mark_inconsistent(request_id, error, compensation_error)
        SWAP_COMPENSATIONS.labels(outcome="succeeded").inc()
        self._release(request_id)
        raise InternalError(
            f"Could not update the target schedule: {error}. The change was reverted."
        ) from error

    def _mark_inconsistent(
        self,
        request_id: str,
        error: Exception,
        compensation_error: Optional[Exception] = None,
    ) -> None:
        """Flag the request for an operator and raise. It is never marked terminal."""
        try:
            self._swaps.flag_for_reconciliation(request_id)
            SWAPS_RECONCILIATION_REQUIRED.inc()
        except Exception as flag_error:
            logger.critical("Could not flag swap %s for reconciliation: %s",
                            request_id, flag_error)
        self._history.record_event(
            "swap.inconsistent",
            request_id,
            {"error": str(error),
             "compensation_error": str(compensation_error) if compensation_error else None},
        )
        logger.critical(
            "Swap %s left inconsistent, manual reconciliation required: error=%s, compensation_error=%s",
            request_id, error, compensation_error,
            extra={"swap_request_id": request_id},
        )
        raise InconsistentStateError(request_id, error, compensation_error) from error

    def _release(self, request_id: str) -> None:
        try:
            self._swaps.release_claim(request_id)
        except Exception as exc:
            logger.error("Could not release claim on swap %s: %s", request_id, exc)

    # ── Queries ──

    def list_incoming(self, leader_id: str) -> list[dict[str, Any]]:
        """Pending requests awaiting this leader's answer, newest first."""
        self.expire_orphans()
        return self._swaps.list_pending_for_responder(leader_id)

    def list_for_leader(
        self, leader_id: str, status: Optional[str] = None
    ) -> list[dict[str, Any]]:
        return self._swaps.list_for_leader(leader_id, status=status)

    def get_swap_request(self, request_id: str, caller_id: str) -> dict[str, Any]:
        """Visible to either leader only; anyone else gets NotFound."""
        request = self._swaps.get(request_id)
        if request is None or caller_id not in (
            request["initiating_leader_id"], request["target_leader_id"]
        ):
            raise NotFoundError(f"Swap request {request_id} not found")
        return request

    def list_reconciliation_required(self) -> list[dict[str, Any]]:
        return self._swaps.list_reconciliation_required()

    def get_stats(self) -> dict[str, Any]:
        return {"swap_requests_by_status": self._swaps.count_by_status()}

    # ── Maintenance ──

    def expire_orphans(self, requested_by: Optional[str] = None) -> list[str]:
        """Expire pending requests whose schedules were deleted."""
        expired = self._swaps.expire_orphans()
        for request_id in expired:
            SWAPS_EXPIRED.inc()
            self._history.record_event(
                "swap.expired", request_id, {"reason": "schedule_deleted"}, actor=requested_by
            )
        if expired:
            logger.info("Expired %d orphaned swap requests", len(expired))
        return expired

    def refresh_gauges(self) -> None:
        SWAPS_RECONCILIATION_REQUIRED.set(len(self._swaps.list_reconciliation_required()))

    # ── Internal ──

    def _context(
        self,
        request: dict[str, Any],
        initiating: dict[str, Any],
        target: dict[str, Any],
    ) -> dict[str, Any]:
        return {
            "swap_request_id": request["id"],
            "status": request["status"],
            "initiating_schedule": self._describe(initiating),
            "target_schedule": self._describe(target),
        }

    @staticmethod
    def _describe(schedule: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": schedule["id"],
            "date": schedule["date"],
            "team_id": schedule["team_id"],
            "team_name": schedule["team"]["name"],
        }

    def _dispatch(
        self,
        event: str,
        recipient_ids: list[str],
        subject: str,
        body: str,
        context: dict[str, Any],
    ) -> None:
        """Best effort: the swap is already durable, so errors stop here."""
        try:
            self._notifications.send(
                event=event,
                recipient_ids=recipient_ids,
                subject=subject,
                body=body,
                context=context,
            )
        except Exception as exc:
            logger.warning("Notification dispatch failed: event=%s, error=%s", event, exc)
