# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Tests for swap negotiation: proposal checks, acceptance in both
storage modes, races, compensation and orphan cleanup.
Run:  pytest test_swap_service.py -v
"""
from datetime import datetime

import pytest

from conftest import TEAM_A_MEMBERS, TEAM_B_MEMBERS, add_member, add_team, set_leader
from roster.core.errors import (
    ConflictError,
    InconsistentStateError,
    InternalError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)


def _member_ids(schedule):
    return sorted(p["member_id"] for p in schedule["participants"])


def _fail_on_calls(original, *failing_calls):
    """Wrap a repository method so the given 1-based calls raise."""
    calls = {"n": 0}

    def wrapper(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] in failing_calls:
            raise RuntimeError(f"storage unavailable (call {calls['n']})")
        return original(*args, **kwargs)

    return wrapper


def _state(c, s1, s2):
    first = c.schedule_service.get_schedule(s1["id"])
    second = c.schedule_service.get_schedule(s2["id"])
    return first, second


@pytest.fixture
def pending(container, s1, s2):
    return container.swap_service.create_swap_request(s1["id"], s2["id"], caller_id="L1")


# ============================================
# Proposal
# ============================================
class TestCreateSwapRequest:
    def test_creates_pending_request(self, pending, s1, s2):
        assert pending["status"] == "pending"
        assert pending["initiating_schedule_id"] == s1["id"]
        assert pending["target_schedule_id"] == s2["id"]
        assert pending["initiating_leader_id"] == "L1"
        assert pending["target_leader_id"] == "L2"
        assert pending["responded_at"] is None

    def test_notifies_target_leader(self, pending, notifier):
        notifier.send.assert_called_once()
        kwargs = notifier.send.call_args.kwargs
        assert kwargs["event"] == "swap.requested"
        assert kwargs["recipient_ids"] == ["L2"]
        assert kwargs["context"]["swap_request_id"] == pending["id"]
        assert kwargs["context"]["target_schedule"]["team_name"] == "Team B"

    def test_records_history(self, container, pending):
        events = container.history_repo.get_all(entity_id=pending["id"])
        assert [e["event_type"] for e in events] == ["swap.requested"]
        assert events[0]["actor"] == "L1"

    def test_no_schedule_is_touched(self, container, pending, s1, s2):
        first, second = _state(container, s1, s2)
        assert first["team_id"] == "team-a"
        assert second["team_id"] == "team-b"

    @pytest.mark.parametrize("caller", ["alice", "L2", "stranger"])
    def test_caller_must_lead_initiating_schedule(self, container, s1, s2, caller):
        with pytest.raises(PermissionDeniedError):
            container.swap_service.create_swap_request(s1["id"], s2["id"], caller_id=caller)

    def test_missing_initiating_schedule(self, container, s2):
        with pytest.raises(PermissionDeniedError):
            container.swap_service.create_swap_request("missing", s2["id"], caller_id="L1")

    def test_missing_target_schedule(self, container, s1):
        with pytest.raises(NotFoundError):
            container.swap_service.create_swap_request(s1["id"], "missing", caller_id="L1")

    def test_target_team_without_leader(self, container, engine, s1):
        add_team(engine, "team-x", "Team X", None, ["xavier"])
        leaderless = container.schedule_service.create_schedule(datetime(2025, 8, 24), "team-x")
        with pytest.raises(NotFoundError):
            container.swap_service.create_swap_request(s1["id"], leaderless["id"], caller_id="L1")

    def test_cannot_swap_with_yourself(self, container, engine, s1):
        add_team(engine, "team-c", "Team C", "L1", ["L1", "fabio"])
        mine = container.schedule_service.create_schedule(datetime(2025, 8, 24), "team-c")
        with pytest.raises(InvalidRequestError):
            container.swap_service.create_swap_request(s1["id"], mine["id"], caller_id="L1")

    def test_same_schedule_twice(self, container, s1):
        with pytest.raises(InvalidRequestError):
            container.swap_service.create_swap_request(s1["id"], s1["id"], caller_id="L1")

    def test_duplicate_pending_request(self, container, pending, s1, s2):
        with pytest.raises(ConflictError):
            container.swap_service.create_swap_request(s1["id"], s2["id"], caller_id="L1")

    def test_reverse_direction_is_a_duplicate(self, container, pending, s1, s2):
        with pytest.raises(ConflictError):
            container.swap_service.create_swap_request(s2["id"], s1["id"], caller_id="L2")

    def test_permission_checked_before_existence(self, container, s1):
        with pytest.raises(PermissionDeniedError):
            container.swap_service.create_swap_request(s1["id"], "missing", caller_id="alice")

    def test_refused_request_sends_nothing(self, container, notifier, s1, s2):
        with pytest.raises(PermissionDeniedError):
            container.swap_service.create_swap_request(s1["id"], s2["id"], caller_id="alice")
        notifier.send.assert_not_called()

    def test_notification_failure_does_not_fail_request(self, container, notifier, s1, s2):
        notifier.send.side_effect = RuntimeError("notification service down")
        request = container.swap_service.create_swap_request(s1["id"], s2["id"], caller_id="L1")
        assert container.swap_repo.get(request["id"])["status"] == "pending"


# ============================================
# Acceptance (transactional storage)
# ============================================
class TestAcceptSwap:
    def test_teams_are_exchanged(self, container, pending, s1, s2):
        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        first, second = _state(container, s1, s2)
        assert first["team_id"] == "team-b"
        assert second["team_id"] == "team-a"
        assert first["date"] == s1["date"]
        assert second["date"] == s2["date"]

    def test_rosters_follow_new_teams(self, container, pending, s1, s2):
        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        first, second = _state(container, s1, s2)
        assert _member_ids(first) == sorted(TEAM_B_MEMBERS)
        assert _member_ids(second) == sorted(TEAM_A_MEMBERS)
        statuses = {p["status"] for p in first["participants"] + second["participants"]}
        assert statuses == {"pending"}

    def test_confirmations_are_reset(self, container, pending, s1, s2):
        container.schedule_service.update_participant_status(s2["id"], "carla", "confirmed", "carla")
        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        first, _ = _state(container, s1, s2)
        carla = [p for p in first["participants"] if p["member_id"] == "carla"][0]
        assert carla["status"] == "pending"

    def test_request_becomes_accepted(self, container, pending):
        updated = container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        assert updated["status"] == "accepted"
        assert updated["responded_at"] is not None
        assert container.swap_repo.get(pending["id"])["status"] == "accepted"

    def test_notifies_initiating_leader(self, container, notifier, pending):
        notifier.reset_mock()
        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        kwargs = notifier.send.call_args.kwargs
        assert kwargs["event"] == "swap.responded"
        assert kwargs["recipient_ids"] == ["L1"]
        assert kwargs["context"]["response"] == "accepted"
        assert "ACCEPTED" in kwargs["subject"]

    def test_records_history(self, container, pending):
        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        events = container.history_repo.get_all(entity_id=pending["id"])
        assert [e["event_type"] for e in events] == ["swap.requested", "swap.accepted"]
        assert events[-1]["details"]["initiating_team_id"] == "team-a"

    def test_membership_read_at_acceptance(self, container, engine, pending, s1, s2):
        add_member(engine, "team-b", "gabriel")
        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        first, _ = _state(container, s1, s2)
        assert "gabriel" in _member_ids(first)

    def test_notification_failure_does_not_undo_swap(self, container, notifier, pending, s1, s2):
        notifier.send.side_effect = RuntimeError("notification service down")
        updated = container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        assert updated["status"] == "accepted"
        first, _ = _state(container, s1, s2)
        assert first["team_id"] == "team-b"

    def test_failure_rolls_everything_back(self, container, monkeypatch, pending, s1, s2):
        monkeypatch.setattr(
            container.schedule_repo, "regenerate_participants",
            _fail_on_calls(container.schedule_repo.regenerate_participants, 2),
        )
        with pytest.raises(InternalError):
            container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")

        monkeypatch.undo()
        first, second = _state(container, s1, s2)
        assert first["team_id"] == "team-a"
        assert second["team_id"] == "team-b"
        assert _member_ids(first) == sorted(TEAM_A_MEMBERS)
        assert _member_ids(second) == sorted(TEAM_B_MEMBERS)
        stored = container.swap_repo.get(pending["id"])
        assert stored["status"] == "pending"
        assert stored["reconciliation_required"] is False

    def test_retry_after_rollback_succeeds(self, container, monkeypatch, pending, s1, s2):
        monkeypatch.setattr(
            container.schedule_repo, "reassign_team",
            _fail_on_calls(container.schedule_repo.reassign_team, 2),
        )
        with pytest.raises(InternalError):
            container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        monkeypatch.undo()

        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        first, second = _state(container, s1, s2)
        assert (first["team_id"], second["team_id"]) == ("team-b", "team-a")


# ============================================
# Rejection and repeated responses
# ============================================
class TestRejectSwap:
    def test_reject_leaves_schedules_alone(self, container, pending, s1, s2):
        container.schedule_service.update_participant_status(s1["id"], "alice", "confirmed", "alice")
        updated = container.swap_service.respond_to_swap_request(pending["id"], "rejected", "L2")
        assert updated["status"] == "rejected"
        first, second = _state(container, s1, s2)
        assert first["team_id"] == "team-a"
        assert second["team_id"] == "team-b"
        alice = [p for p in first["participants"] if p["member_id"] == "alice"][0]
        assert alice["status"] == "confirmed"

    def test_reject_notifies_initiating_leader(self, container, notifier, pending):
        notifier.reset_mock()
        container.swap_service.respond_to_swap_request(pending["id"], "rejected", "L2")
        kwargs = notifier.send.call_args.kwargs
        assert kwargs["recipient_ids"] == ["L1"]
        assert "DECLINED" in kwargs["subject"]

    def test_new_request_allowed_after_reject(self, container, pending, s1, s2):
        container.swap_service.respond_to_swap_request(pending["id"], "rejected", "L2")
        again = container.swap_service.create_swap_request(s1["id"], s2["id"], caller_id="L1")
        assert again["status"] == "pending"


class TestRespondChecks:
    def test_invalid_response(self, container, pending):
        with pytest.raises(InvalidRequestError):
            container.swap_service.respond_to_swap_request(pending["id"], "maybe", "L2")

    @pytest.mark.parametrize("responder", ["L1", "carla", "stranger"])
    def test_only_target_leader_may_answer(self, container, pending, responder):
        with pytest.raises(NotFoundError):
            container.swap_service.respond_to_swap_request(pending["id"], "accepted", responder)

    def test_unknown_request(self, container):
        with pytest.raises(NotFoundError):
            container.swap_service.respond_to_swap_request("missing", "accepted", "L2")

    @pytest.mark.parametrize("first, second", [
        ("accepted", "accepted"),
        ("accepted", "rejected"),
        ("rejected", "accepted"),
    ])
    def test_second_answer_is_refused(self, container, pending, s1, s2, first, second):
        container.swap_service.respond_to_swap_request(pending["id"], first, "L2")
        with pytest.raises(NotFoundError):
            container.swap_service.respond_to_swap_request(pending["id"], second, "L2")
        assert container.swap_repo.get(pending["id"])["status"] == first

    def test_deleted_schedule(self, container, pending, s2):
        container.schedule_service.delete_schedule(s2["id"], "L2")
        with pytest.raises(NotFoundError):
            container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        assert container.swap_repo.get(pending["id"])["status"] == "pending"


class TestOwnershipAtResponse:
    """Schedules must still belong to the leaders named on the request."""

    @pytest.fixture(params=["container", "compensating_container"])
    def mode(self, request):
        return request.getfixturevalue(request.param)

    @pytest.fixture
    def s3(self, container, engine):
        add_team(engine, "team-c", "Team C", "L3", ["L3", "heitor"])
        return container.schedule_service.create_schedule(datetime(2025, 8, 24), "team-c")

    def test_second_offer_of_a_swapped_schedule_is_withdrawn(self, mode, s1, s2, s3):
        first = mode.swap_service.create_swap_request(s1["id"], s2["id"], caller_id="L1")
        second = mode.swap_service.create_swap_request(s1["id"], s3["id"], caller_id="L1")

        mode.swap_service.respond_to_swap_request(first["id"], "accepted", "L2")
        with pytest.raises(NotFoundError):
            mode.swap_service.respond_to_swap_request(second["id"], "accepted", "L3")

        assert mode.schedule_service.get_schedule(s3["id"])["team_id"] == "team-c"
        assert mode.schedule_service.get_schedule(s1["id"])["team_id"] == "team-b"
        assert mode.swap_repo.get(second["id"])["status"] == "expired"
        assert mode.swap_service.list_incoming("L3") == []
        expired = mode.history_repo.get_all(event_type="swap.expired")
        assert expired[0]["entity_id"] == second["id"]
        assert expired[0]["details"] == {"reason": "superseded", "by": first["id"]}

    def test_stale_request_that_escaped_expiry_is_refused(self, mode, monkeypatch, s1, s2, s3):
        first = mode.swap_service.create_swap_request(s1["id"], s2["id"], caller_id="L1")
        second = mode.swap_service.create_swap_request(s1["id"], s3["id"], caller_id="L1")
        monkeypatch.setattr(mode.swap_repo, "expire_superseded", lambda *args, **kwargs: [])

        mode.swap_service.respond_to_swap_request(first["id"], "accepted", "L2")
        with pytest.raises(ConflictError):
            mode.swap_service.respond_to_swap_request(second["id"], "accepted", "L3")

        assert mode.schedule_service.get_schedule(s3["id"])["team_id"] == "team-c"
        assert mode.schedule_service.get_schedule(s1["id"])["team_id"] == "team-b"
        stored = mode.swap_repo.get(second["id"])
        assert stored["status"] == "pending"
        assert stored["claimed_at"] is None

    @pytest.mark.parametrize("team_id", ["team-a", "team-b"])
    def test_leader_change_refuses_acceptance(self, mode, engine, notifier, pending, s1, s2, team_id):
        set_leader(engine, team_id, "L9")
        notifier.reset_mock()

        with pytest.raises(ConflictError):
            mode.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")

        first, second = _state(mode, s1, s2)
        assert (first["team_id"], second["team_id"]) == ("team-a", "team-b")
        assert _member_ids(first) == sorted(TEAM_A_MEMBERS)
        assert mode.swap_repo.get(pending["id"])["status"] == "pending"
        notifier.send.assert_not_called()

    def test_leader_change_still_allows_rejection(self, mode, engine, pending):
        set_leader(engine, "team-a", "L9")
        updated = mode.swap_service.respond_to_swap_request(pending["id"], "rejected", "L2")
        assert updated["status"] == "rejected"


class TestConcurrentResponses:
    """A responder holding a stale read must lose to the one that already won."""

    def _stale(self, container, monkeypatch, pending):
        stale = dict(pending)
        monkeypatch.setattr(
            container.swap_repo, "find_pending_for_responder",
            lambda request_id, responder_id: stale,
        )

    @pytest.mark.parametrize("late_response", ["accepted", "rejected"])
    def test_late_answer_after_accept(self, container, monkeypatch, pending, s1, s2, late_response):
        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        self._stale(container, monkeypatch, pending)
        with pytest.raises(ConflictError):
            container.swap_service.respond_to_swap_request(pending["id"], late_response, "L2")

        first, second = _state(container, s1, s2)
        # Exchanged exactly once.
        assert (first["team_id"], second["team_id"]) == ("team-b", "team-a")
        assert container.swap_repo.get(pending["id"])["status"] == "accepted"

    def test_late_accept_after_reject(self, container, monkeypatch, pending, s1, s2):
        container.swap_service.respond_to_swap_request(pending["id"], "rejected", "L2")
        self._stale(container, monkeypatch, pending)
        with pytest.raises(ConflictError):
            container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        first, _ = _state(container, s1, s2)
        assert first["team_id"] == "team-a"
        assert container.swap_repo.get(pending["id"])["status"] == "rejected"

    def test_late_accept_in_compensating_mode(
        self, compensating_container, monkeypatch, pending, s1, s2
    ):
        c = compensating_container
        c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        self._stale(c, monkeypatch, pending)
        with pytest.raises(ConflictError):
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        first, second = _state(c, s1, s2)
        assert (first["team_id"], second["team_id"]) == ("team-b", "team-a")


# ============================================
# Acceptance (compensating storage)
# ============================================
class TestCompensatingAccept:
    def test_happy_path(self, compensating_container, pending, s1, s2):
        c = compensating_container
        updated = c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        assert updated["status"] == "accepted"
        first, second = _state(c, s1, s2)
        assert (first["team_id"], second["team_id"]) == ("team-b", "team-a")
        assert _member_ids(first) == sorted(TEAM_B_MEMBERS)
        assert _member_ids(second) == sorted(TEAM_A_MEMBERS)

    def test_claimed_request_is_a_conflict(self, compensating_container, pending, s1, s2):
        c = compensating_container
        c.swap_repo.claim(pending["id"])
        with pytest.raises(ConflictError):
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        with pytest.raises(ConflictError):
            c.swap_service.respond_to_swap_request(pending["id"], "rejected", "L2")
        first, _ = _state(c, s1, s2)
        assert first["team_id"] == "team-a"

    def test_first_reassignment_fails(self, compensating_container, monkeypatch, pending, s1, s2):
        c = compensating_container
        monkeypatch.setattr(
            c.schedule_repo, "reassign_team",
            _fail_on_calls(c.schedule_repo.reassign_team, 1),
        )
        with pytest.raises(InternalError):
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        monkeypatch.undo()

        stored = c.swap_repo.get(pending["id"])
        assert stored["status"] == "pending"
        assert stored["claimed_at"] is None
        first, second = _state(c, s1, s2)
        assert (first["team_id"], second["team_id"]) == ("team-a", "team-b")

    def test_second_reassignment_fails_and_is_reverted(
        self, compensating_container, monkeypatch, pending, s1, s2
    ):
        c = compensating_container
        monkeypatch.setattr(
            c.schedule_repo, "reassign_team",
            _fail_on_calls(c.schedule_repo.reassign_team, 2),
        )
        with pytest.raises(InternalError) as exc_info:
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        assert not isinstance(exc_info.value, InconsistentStateError)
        monkeypatch.undo()

        first, second = _state(c, s1, s2)
        assert (first["team_id"], second["team_id"]) == ("team-a", "team-b")
        assert _member_ids(first) == sorted(TEAM_A_MEMBERS)
        stored = c.swap_repo.get(pending["id"])
        assert stored["status"] == "pending"
        assert stored["claimed_at"] is None
        assert stored["reconciliation_required"] is False

        # The request can be answered again once storage recovers.
        c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        first, second = _state(c, s1, s2)
        assert (first["team_id"], second["team_id"]) == ("team-b", "team-a")

    def test_failed_revert_is_flagged(self, compensating_container, monkeypatch, pending, s1, s2):
        c = compensating_container
        monkeypatch.setattr(
            c.schedule_repo, "reassign_team",
            _fail_on_calls(c.schedule_repo.reassign_team, 2, 3),
        )
        with pytest.raises(InconsistentStateError) as exc_info:
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        monkeypatch.undo()

        err = exc_info.value
        assert err.swap_request_id == pending["id"]
        assert err.compensation_error is not None
        assert err.status_code == 500

        stored = c.swap_repo.get(pending["id"])
        assert stored["status"] == "pending"
        assert stored["reconciliation_required"] is True
        assert [r["id"] for r in c.swap_service.list_reconciliation_required()] == [pending["id"]]
        first, _ = _state(c, s1, s2)
        assert first["team_id"] == "team-b"
        assert c.history_repo.get_all(event_type="swap.inconsistent")[0]["entity_id"] == pending["id"]

    def test_flagged_request_cannot_be_replayed(
        self, compensating_container, monkeypatch, pending
    ):
        c = compensating_container
        monkeypatch.setattr(
            c.schedule_repo, "reassign_team",
            _fail_on_calls(c.schedule_repo.reassign_team, 2, 3),
        )
        with pytest.raises(InconsistentStateError):
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        monkeypatch.undo()

        with pytest.raises(ConflictError):
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")

    def test_regeneration_failure_is_flagged(
        self, compensating_container, monkeypatch, pending, s1, s2
    ):
        c = compensating_container
        monkeypatch.setattr(
            c.schedule_repo, "regenerate_participants",
            _fail_on_calls(c.schedule_repo.regenerate_participants, 1),
        )
        with pytest.raises(InconsistentStateError) as exc_info:
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        monkeypatch.undo()

        assert exc_info.value.compensation_error is None
        stored = c.swap_repo.get(pending["id"])
        assert stored["status"] == "pending"
        assert stored["reconciliation_required"] is True
        first, second = _state(c, s1, s2)
        assert (first["team_id"], second["team_id"]) == ("team-b", "team-a")

    def test_status_update_failure_is_flagged(
        self, compensating_container, monkeypatch, pending
    ):
        c = compensating_container
        monkeypatch.setattr(
            c.swap_repo, "set_status",
            _fail_on_calls(c.swap_repo.set_status, 1),
        )
        with pytest.raises(InconsistentStateError):
            c.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        monkeypatch.undo()
        assert c.swap_repo.get(pending["id"])["reconciliation_required"] is True


# ============================================
# Queries and maintenance
# ============================================
class TestSwapQueries:
    def test_list_incoming(self, container, pending):
        incoming = container.swap_service.list_incoming("L2")
        assert [r["id"] for r in incoming] == [pending["id"]]
        assert container.swap_service.list_incoming("L1") == []

    def test_list_incoming_expires_orphans(self, container, pending, s1):
        container.schedule_service.delete_schedule(s1["id"], "L1")
        assert container.swap_service.list_incoming("L2") == []
        assert container.swap_repo.get(pending["id"])["status"] == "expired"

    def test_expire_orphans_records_history(self, container, pending, s2):
        container.schedule_service.delete_schedule(s2["id"], "L2")
        assert container.swap_service.expire_orphans() == [pending["id"]]
        assert container.history_repo.get_all(event_type="swap.expired")[0]["entity_id"] == pending["id"]
        assert container.swap_service.expire_orphans() == []

    def test_answered_requests_never_expire(self, container, pending, s2):
        container.swap_service.respond_to_swap_request(pending["id"], "rejected", "L2")
        container.schedule_service.delete_schedule(s2["id"], "L2")
        assert container.swap_service.expire_orphans() == []
        assert container.swap_repo.get(pending["id"])["status"] == "rejected"

    def test_list_for_leader_filters_by_status(self, container, pending):
        assert len(container.swap_service.list_for_leader("L1")) == 1
        assert len(container.swap_service.list_for_leader("L2", status="pending")) == 1
        assert container.swap_service.list_for_leader("L2", status="accepted") == []

    @pytest.mark.parametrize("caller", ["L1", "L2"])
    def test_get_visible_to_both_leaders(self, container, pending, caller):
        assert container.swap_service.get_swap_request(pending["id"], caller)["id"] == pending["id"]

    def test_get_hidden_from_others(self, container, pending):
        with pytest.raises(NotFoundError):
            container.swap_service.get_swap_request(pending["id"], "alice")

    def test_stats(self, container, pending):
        container.swap_service.respond_to_swap_request(pending["id"], "accepted", "L2")
        assert container.swap_service.get_stats() == {
            "swap_requests_by_status": {"accepted": 1},
        }
