# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Membership directory.
Read-only view over the church application's groups and group members.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection

from roster.repositories.base import BaseRepository


class MembershipDirectory(BaseRepository):
    """Resolves a team to its leader and current members."""

    def get_team(self, team_id: str,
                 conn: Optional[Connection] = None) -> Optional[Dict[str, Any]]:
        with self._read(conn) as c:
            row = c.execute(
                text("SELECT id, name, leader_id FROM groups WHERE id = :id"),
                {"id": team_id},
            ).mappings().first()
        if not row:
            return None
        return {"id": str(row["id"]), "name": row["name"], "leader_id": row["leader_id"]}

    def get_leader(self, team_id: str,
                   conn: Optional[Connection] = None) -> Optional[str]:
        team = self.get_team(team_id, conn=conn)
        return team["leader_id"] if team else None

    def get_members(self, team_id: str,
                    conn: Optional[Connection] = None) -> List[str]:
        with self._read(conn) as c:
            rows = c.execute(
                text("SELECT user_id FROM group_members WHERE group_id = :gid ORDER BY user_id"),
                {"gid": team_id},
            ).fetchall()
        return [str(r[0]) for r in rows]
