# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Swap request ledger.
Every status change is a conditional update guarded on status = 'pending',
so two concurrent responders can never both win.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from roster.core.errors import ConflictError, NotFoundError
from roster.core.logging import get_logger
from roster.repositories.base import BaseRepository, iso, utcnow

logger = get_logger(__name__)

SWAP_COLS = (
    "id, initiating_schedule_id, target_schedule_id, initiating_leader_id, "
    "target_leader_id, status, created_at, responded_at, claimed_at, "
    "reconciliation_required"
)

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
EXPIRED = "expired"
TERMINAL_STATUSES = (ACCEPTED, REJECTED, EXPIRED)


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        "id": str(row[0]),
        "initiating_schedule_id": str(row[1]),
        "target_schedule_id": str(row[2]),
        "initiating_leader_id": str(row[3]),
        "target_leader_id": str(row[4]),
        "status": row[5],
        "created_at": iso(row[6]),
        "responded_at": iso(row[7]),
        "claimed_at": iso(row[8]),
        "reconciliation_required": bool(row[9]),
    }


def pair_key(schedule_a: str, schedule_b: str) -> tuple[str, str]:
    """The pair is unordered: (A, B) and (B, A) share one key."""
    return (schedule_a, schedule_b) if schedule_a <= schedule_b else (schedule_b, schedule_a)


class SwapRequestRepository(BaseRepository):

    # ── Write ──────────────────────────────────────────────────────────

    def create(self, initiating_schedule_id: str, target_schedule_id: str,
               initiating_leader_id: str, target_leader_id: str) -> Dict[str, Any]:
        low, high = pair_key(initiating_schedule_id, target_schedule_id)
        request_id = str(uuid.uuid4())
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(
                    text("""
                        SELECT id FROM schedule_swaps
                        WHERE pair_low = :low AND pair_high = :high AND status = 'pending'
                    """),
                    {"low": low, "high": high},
                ).fetchone()
                if existing:
                    raise ConflictError(
                        "A pending swap request already exists between these schedules"
                    )
                conn.execute(
                    text("""
                        INSERT INTO schedule_swaps
                            (id, initiating_schedule_id, target_schedule_id,
                             initiating_leader_id, target_leader_id, pair_low, pair_high,
                             status, created_at, reconciliation_required)
                        VALUES
                            (:id, :init, :target, :init_leader, :target_leader, :low, :high,
                             'pending', :ts, :flag)
                    """),
                    {"id": request_id, "init": initiating_schedule_id,
                     "target": target_schedule_id, "init_leader": initiating_leader_id,
                     "target_leader": target_leader_id, "low": low, "high": high,
                     "ts": utcnow(), "flag": False},
                )
                return self.get(request_id, conn=conn)
        except IntegrityError as exc:
            # Lost the race against a concurrent insert for the same pair.
            logger.info("Duplicate pending swap rejected by index: %s", exc.orig)
            raise ConflictError(
                "A pending swap request already exists between these schedules"
            ) from exc

    def set_status(self, request_id: str, status: str,
                   conn: Optional[Connection] = None,
                   unclaimed_only: bool = False) -> Dict[str, Any]:
        """One-shot terminal transition. Zero affected rows means somebody else won."""
        sql = """
            UPDATE schedule_swaps SET status = :status, responded_at = :ts
            WHERE id = :id AND status = 'pending'
        """
        if unclaimed_only:
            sql += " AND claimed_at IS NULL"
        with self._begin(conn) as c:
            result = c.execute(text(sql), {"status": status, "ts": utcnow(), "id": request_id})
            if result.rowcount == 0:
                raise ConflictError(
                    f"Swap request {request_id} was already resolved or is being processed"
                )
            return self.get(request_id, conn=c)

    def claim(self, request_id: str) -> Dict[str, Any]:
        """Take the processing lease on a pending request."""
        with self._engine.begin() as conn:
            result = conn.execute(
                text("""
                    UPDATE schedule_swaps SET claimed_at = :ts
                    WHERE id = :id AND status = 'pending' AND claimed_at IS NULL
                """),
                {"ts": utcnow(), "id": request_id},
            )
            if result.rowcount == 0:
                raise ConflictError(
                    f"Swap request {request_id} was already resolved or is being processed"
                )
            return self.get(request_id, conn=conn)

    def release_claim(self, request_id: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                text("""
                    UPDATE schedule_swaps SET claimed_at = NULL
                    WHERE id = :id AND status = 'pending' AND reconciliation_required = :flag
                """),
                {"id": request_id, "flag": False},
            )

    def flag_for_reconciliation(self, request_id: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                text("UPDATE schedule_swaps SET reconciliation_required = :flag WHERE id = :id"),
                {"flag": True, "id": request_id},
            )

    def expire_orphans(self) -> List[str]:
        """Expire unclaimed pending requests whose schedules no longer exist."""
        with self._engine.begin() as conn:
            rows = conn.execute(
                text("""
                    SELECT sw.id FROM schedule_swaps sw
                    WHERE sw.status = 'pending' AND sw.claimed_at IS NULL
                      AND (NOT EXISTS (SELECT 1 FROM schedules s WHERE s.id = sw.initiating_schedule_id)
                           OR NOT EXISTS (SELECT 1 FROM schedules s WHERE s.id = sw.target_schedule_id))
                """)
            ).fetchall()
            expired: List[str] = []
            for row in rows:
                result = conn.execute(
                    text("""
                        UPDATE schedule_swaps SET status = 'expired', responded_at = :ts
                        WHERE id = :id AND status = 'pending'
                    """),
                    {"ts": utcnow(), "id": row[0]},
                )
                if result.rowcount:
                    expired.append(str(row[0]))
        return expired

    def expire_superseded(self, request_id: str, schedule_ids: List[str],
                          conn: Optional[Connection] = None) -> List[str]:
        """
        Expire the other unclaimed pending requests touching any of the given
        schedules. Their leaders were checked against teams that just changed.
        """
        params: Dict[str, Any] = {"id": request_id, "ts": utcnow()}
        placeholders = []
        for i, schedule_id in enumerate(schedule_ids):
            params[f"s{i}"] = schedule_id
            placeholders.append(f":s{i}")
        in_clause = ", ".join(placeholders)
        with self._begin(conn) as c:
            rows = c.execute(
                text(f"""
                    SELECT id FROM schedule_swaps
                    WHERE status = 'pending' AND claimed_at IS NULL AND id != :id
                      AND (initiating_schedule_id IN ({in_clause})
                           OR target_schedule_id IN ({in_clause}))
                """),
                params,
            ).fetchall()
            expired: List[str] = []
            for row in rows:
                result = c.execute(
                    text("""
                        UPDATE schedule_swaps SET status = 'expired', responded_at = :ts
                        WHERE id = :id AND status = 'pending' AND claimed_at IS NULL
                    """),
                    {"ts": params["ts"], "id": row[0]},
                )
                if result.rowcount:
                    expired.append(str(row[0]))
        return expired

    # ── Read ───────────────────────────────────────────────────────────

    def get(self, request_id: str,
            conn: Optional[Connection] = None) -> Optional[Dict[str, Any]]:
        with self._read(conn) as c:
            row = c.execute(
                text(f"SELECT {SWAP_COLS} FROM schedule_swaps WHERE id = :id"),
                {"id": request_id},
            ).fetchone()
        return _row_to_dict(row) if row else None

    def find_pending_for_responder(self, request_id: str, responder_id: str) -> Dict[str, Any]:
        """
        Missing, already resolved and addressed to someone else all look the
        same to the caller.
        """
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"""
                    SELECT {SWAP_COLS} FROM schedule_swaps
                    WHERE id = :id AND target_leader_id = :responder AND status = 'pending'
                """),
                {"id": request_id, "responder": responder_id},
            ).fetchone()
        if not row:
            raise NotFoundError(
                "Swap request not found, already answered, or not addressed to you"
            )
        return _row_to_dict(row)

    def list_pending_for_responder(self, responder_id: str) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {SWAP_COLS} FROM schedule_swaps
                    WHERE target_leader_id = :responder AND status = 'pending'
                    ORDER BY created_at DESC
                """),
                {"responder": responder_id},
            ).fetchall()
        return [_row_to_dict(r) for r in rows]

    def list_for_leader(self, leader_id: str,
                        status: Optional[str] = None) -> List[Dict[str, Any]]:
        conditions = ["(initiating_leader_id = :leader OR target_leader_id = :leader)"]
        params: Dict[str, Any] = {"leader": leader_id}
        if status:
            conditions.append("status = :status")
            params["status"] = status
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {SWAP_COLS} FROM schedule_swaps
                    WHERE {' AND '.join(conditions)}
                    ORDER BY created_at DESC
                """),
                params,
            ).fetchall()
        return [_row_to_dict(r) for r in rows]

    def list_reconciliation_required(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {SWAP_COLS} FROM schedule_swaps
                    WHERE reconciliation_required = :flag ORDER BY created_at
                """),
                {"flag": True},
            ).fetchall()
        return [_row_to_dict(r) for r in rows]

    def count_by_status(self) -> Dict[str, int]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("SELECT status, COUNT(*) FROM schedule_swaps GROUP BY status")
            ).fetchall()
        return {r[0]: r[1] for r in rows}
