# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Schedule store.
Schedules, their team assignment and their participant roster.
NO business rules here, pure data access.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from roster.core.errors import NotFoundError
from roster.core.logging import get_logger
from roster.repositories.base import BaseRepository, iso, to_db_timestamp, utcnow
from roster.repositories.directory_repository import MembershipDirectory

logger = get_logger(__name__)

SCHEDULE_SELECT = """
    SELECT s.id, s.date, s.group_id, g.name, g.leader_id,
           s.song_ids, s.created_at, s.updated_at
    FROM schedules s
    LEFT JOIN groups g ON g.id = s.group_id
"""


def _row_to_dict(row, participants: List[Dict[str, str]]) -> Dict[str, Any]:
    return {
        "id": str(row[0]),
        "date": iso(row[1]),
        "team_id": str(row[2]),
        "team": {"id": str(row[2]), "name": row[3], "leader_id": row[4]},
        "song_ids": json.loads(row[5] or "[]"),
        "participants": participants,
        "created_at": iso(row[6]),
        "updated_at": iso(row[7]),
    }


class ScheduleRepository(BaseRepository):
    def __init__(self, engine: Engine, directory: MembershipDirectory):
        super().__init__(engine)
        self._directory = directory

    # ── Read ───────────────────────────────────────────────────────────

    def get(self, schedule_id: str,
            conn: Optional[Connection] = None) -> Optional[Dict[str, Any]]:
        with self._read(conn) as c:
            row = c.execute(
                text(f"{SCHEDULE_SELECT} WHERE s.id = :id"), {"id": schedule_id}
            ).fetchone()
            if not row:
                return None
            rows = c.execute(
                text("""
                    SELECT user_id, status FROM schedule_participants
                    WHERE schedule_id = :sid ORDER BY user_id
                """),
                {"sid": schedule_id},
            ).fetchall()
        return _row_to_dict(row, [{"member_id": str(r[0]), "status": r[1]} for r in rows])

    def get_all(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(text(f"{SCHEDULE_SELECT} ORDER BY s.date, s.id")).fetchall()
            participant_rows = conn.execute(
                text("""
                    SELECT schedule_id, user_id, status FROM schedule_participants
                    ORDER BY schedule_id, user_id
                """)
            ).fetchall()
        by_schedule: Dict[str, List[Dict[str, str]]] = {}
        for p in participant_rows:
            by_schedule.setdefault(str(p[0]), []).append(
                {"member_id": str(p[1]), "status": p[2]}
            )
        return [_row_to_dict(r, by_schedule.get(str(r[0]), [])) for r in rows]

    def exists(self, schedule_id: str, conn: Optional[Connection] = None) -> bool:
        with self._read(conn) as c:
            return c.execute(
                text("SELECT 1 FROM schedules WHERE id = :id"), {"id": schedule_id}
            ).fetchone() is not None

    def count(self) -> int:
        with self._engine.connect() as conn:
            return conn.execute(text("SELECT COUNT(*) FROM schedules")).scalar() or 0

    # ── Write ──────────────────────────────────────────────────────────

    def create(self, schedule_id: str, date: datetime, team_id: str,
               song_ids: List[str], conn: Optional[Connection] = None) -> Dict[str, Any]:
        """Insert a schedule and enrol the team's current members."""
        with self._begin(conn) as c:
            c.execute(
                text("""
                    INSERT INTO schedules (id, date, group_id, song_ids, created_at, updated_at)
                    VALUES (:id, :date, :gid, :songs, :ts, NULL)
                """),
                {"id": schedule_id, "date": to_db_timestamp(date), "gid": team_id,
                 "songs": json.dumps(song_ids), "ts": utcnow()},
            )
            self.regenerate_participants(schedule_id, team_id, conn=c)
            return self.get(schedule_id, conn=c)

    def reassign_team(self, schedule_id: str, new_team_id: str,
                      conn: Optional[Connection] = None) -> Dict[str, Any]:
        """Overwrite the team; the roster is left untouched."""
        with self._begin(conn) as c:
            result = c.execute(
                text("UPDATE schedules SET group_id = :gid, updated_at = :ts WHERE id = :id"),
                {"gid": new_team_id, "ts": utcnow(), "id": schedule_id},
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Schedule {schedule_id} not found")
            return self.get(schedule_id, conn=c)

    def regenerate_participants(self, schedule_id: str, team_id: str,
                                conn: Optional[Connection] = None) -> List[str]:
        """
        Replace the roster with the team's current members, all pending.
        Prior confirmations and declines are discarded.
        """
        with self._begin(conn) as c:
            if not self.exists(schedule_id, conn=c):
                raise NotFoundError(f"Schedule {schedule_id} not found")
            c.execute(
                text("DELETE FROM schedule_participants WHERE schedule_id = :sid"),
                {"sid": schedule_id},
            )
            member_ids = self._directory.get_members(team_id, conn=c)
            if member_ids:
                c.execute(
                    text("""
                        INSERT INTO schedule_participants (schedule_id, user_id, status)
                        VALUES (:sid, :uid, 'pending')
                    """),
                    [{"sid": schedule_id, "uid": uid} for uid in member_ids],
                )
        logger.info("Participants regenerated schedule=%s team=%s members=%d",
                    schedule_id, team_id, len(member_ids))
        return member_ids

    def update_participant_status(self, schedule_id: str, member_id: str, status: str,
                                  conn: Optional[Connection] = None) -> Dict[str, Any]:
        with self._begin(conn) as c:
            result = c.execute(
                text("""
                    UPDATE schedule_participants SET status = :status
                    WHERE schedule_id = :sid AND user_id = :uid
                """),
                {"status": status, "sid": schedule_id, "uid": member_id},
            )
            if result.rowcount == 0:
                raise NotFoundError(
                    f"Member {member_id} is not on the roster of schedule {schedule_id}"
                )
            c.execute(
                text("UPDATE schedules SET updated_at = :ts WHERE id = :id"),
                {"ts": utcnow(), "id": schedule_id},
            )
            return self.get(schedule_id, conn=c)

    def delete(self, schedule_id: str, conn: Optional[Connection] = None) -> bool:
        with self._begin(conn) as c:
            c.execute(
                text("DELETE FROM schedule_participants WHERE schedule_id = :sid"),
                {"sid": schedule_id},
            )
            result = c.execute(
                text("DELETE FROM schedules WHERE id = :id"), {"id": schedule_id}
            )
        return result.rowcount > 0
