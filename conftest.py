# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared fixtures: an in-memory SQLite database with the portable schema,
two teams with distinct leaders, and a mocked notification client.
"""
import os

# Settings are read once at import time.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATION_ASYNC", "false")

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy import text

from roster.core.database import create_db_engine, init_schema
from roster.core.dependencies import Container

S1_DATE = datetime(2025, 8, 10, 10, 0)
S2_DATE = datetime(2025, 8, 17, 10, 0)

TEAM_A_MEMBERS = ["L1", "alice", "bruno"]
TEAM_B_MEMBERS = ["L2", "carla", "davi", "elisa"]


def add_team(engine, team_id, name, leader_id, members):
    with engine.begin() as conn:
        conn.execute(
            text("INSERT INTO groups (id, name, leader_id) VALUES (:id, :name, :leader)"),
            {"id": team_id, "name": name, "leader": leader_id},
        )
        for member in members:
            conn.execute(
                text("INSERT INTO group_members (group_id, user_id) VALUES (:gid, :uid)"),
                {"gid": team_id, "uid": member},
            )


def add_member(engine, team_id, member_id):
    with engine.begin() as conn:
        conn.execute(
            text("INSERT INTO group_members (group_id, user_id) VALUES (:gid, :uid)"),
            {"gid": team_id, "uid": member_id},
        )


@pytest.fixture
def engine():
    eng = create_db_engine("sqlite://")
    init_schema(eng)
    add_team(eng, "team-a", "Team A", "L1", TEAM_A_MEMBERS)
    add_team(eng, "team-b", "Team B", "L2", TEAM_B_MEMBERS)
    yield eng
    eng.dispose()


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def container(engine, notifier):
    return Container(engine=engine, notification_client=notifier, transactional=True)


@pytest.fixture
def compensating_container(engine, notifier):
    return Container(engine=engine, notification_client=notifier, transactional=False)


@pytest.fixture
def s1(container):
    return container.schedule_service.create_schedule(S1_DATE, "team-a", ["song-1", "song-2"])


@pytest.fixture
def s2(container):
    return container.schedule_service.create_schedule(S2_DATE, "team-b", ["song-3"])


def set_leader(engine, team_id, leader_id):
    with engine.begin() as conn:
        conn.execute(
            text("UPDATE groups SET leader_id = :leader WHERE id = :id"),
            {"leader": leader_id, "id": team_id},
        )
