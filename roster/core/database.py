# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""SQLAlchemy engine factory and portable schema bootstrap."""
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from roster.core.config import settings
from roster.core.logging import get_logger

logger = get_logger(__name__)

# groups / group_members belong to the church application; the roster
# service only reads them.
SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS groups (
        id VARCHAR(64) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        leader_id VARCHAR(64)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS group_members (
        group_id VARCHAR(64) NOT NULL,
        user_id VARCHAR(64) NOT NULL,
        PRIMARY KEY (group_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schedules (
        id VARCHAR(64) PRIMARY KEY,
        date TIMESTAMP NOT NULL,
        group_id VARCHAR(64) NOT NULL,
        song_ids TEXT NOT NULL DEFAULT '[]',
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schedule_participants (
        schedule_id VARCHAR(64) NOT NULL,
        user_id VARCHAR(64) NOT NULL,
        status VARCHAR(16) NOT NULL DEFAULT 'pending',
        PRIMARY KEY (schedule_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schedule_swaps (
        id VARCHAR(64) PRIMARY KEY,
        initiating_schedule_id VARCHAR(64) NOT NULL,
        target_schedule_id VARCHAR(64) NOT NULL,
        initiating_leader_id VARCHAR(64) NOT NULL,
        target_leader_id VARCHAR(64) NOT NULL,
        pair_low VARCHAR(64) NOT NULL,
        pair_high VARCHAR(64) NOT NULL,
        status VARCHAR(16) NOT NULL DEFAULT 'pending',
        created_at TIMESTAMP NOT NULL,
        responded_at TIMESTAMP,
        claimed_at TIMESTAMP,
        reconciliation_required BOOLEAN NOT NULL DEFAULT FALSE
    )
    """,
    # One pending request per unordered schedule pair.
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_schedule_swaps_pending_pair
        ON schedule_swaps (pair_low, pair_high)
        WHERE status = 'pending'
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_schedule_swaps_target_leader
        ON schedule_swaps (target_leader_id, status)
    """,
)


def create_db_engine(url: Optional[str] = None) -> Engine:
    """Build the engine; in-memory SQLite shares one connection across threads."""
    database_url = url or settings.DATABASE_URL
    if database_url.startswith("sqlite"):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=settings.POOL_SIZE,
        max_overflow=settings.MAX_OVERFLOW,
        pool_recycle=settings.POOL_RECYCLE,
    )


def init_schema(engine: Engine) -> None:
    """Create tables and indexes that do not exist yet."""
    with engine.begin() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(text(statement))
    logger.info("Database schema ensured (%d statements)", len(SCHEMA_STATEMENTS))
