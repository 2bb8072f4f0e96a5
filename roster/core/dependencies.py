# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repositories and services.
The container is built once by the application factory and stored on
app.state; request handlers reach it through the functions below.
"""
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.engine import Engine

from roster.core.config import settings
from roster.core.database import create_db_engine
from roster.repositories.directory_repository import MembershipDirectory
from roster.repositories.history_repository import HistoryRepository
from roster.repositories.schedule_repository import ScheduleRepository
from roster.repositories.swap_repository import SwapRequestRepository
from roster.services.notification_client import NotificationClient
from roster.services.schedule_service import ScheduleService
from roster.services.swap_service import SwapService


class Container:
    """Owns every long-lived object of one application instance."""

    def __init__(
        self,
        engine: Optional[Engine] = None,
        notification_client: Optional[NotificationClient] = None,
        transactional: Optional[bool] = None,
    ) -> None:
        self.engine = engine or create_db_engine()
        self.directory = MembershipDirectory(self.engine)
        self.schedule_repo = ScheduleRepository(self.engine, self.directory)
        self.swap_repo = SwapRequestRepository(self.engine)
        self.history_repo = HistoryRepository()
        self.notification_client = notification_client or NotificationClient.from_settings()

        self.schedule_service = ScheduleService(
            schedule_repo=self.schedule_repo,
            directory=self.directory,
            history_repo=self.history_repo,
        )
        self.swap_service = SwapService(
            schedule_repo=self.schedule_repo,
            swap_repo=self.swap_repo,
            directory=self.directory,
            history_repo=self.history_repo,
            notification_client=self.notification_client,
            transactional=transactional,
        )

    def close(self) -> None:
        self.notification_client.close()
        self.engine.dispose()


# ── FastAPI dependency functions ──
def get_container(request: Request) -> Container:
    return request.app.state.container


def get_schedule_service(request: Request) -> ScheduleService:
    return get_container(request).schedule_service


def get_swap_service(request: Request) -> SwapService:
    return get_container(request).swap_service


def get_history_repo(request: Request) -> HistoryRepository:
    return get_container(request).history_repo


def get_current_user_id(request: Request) -> str:
    """Identity of the authenticated caller, forwarded by the API gateway."""
    user_id = request.headers.get(settings.USER_ID_HEADER, "").strip()
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail=f"Missing caller identity. Provide {settings.USER_ID_HEADER} header.",
        )
    return user_id
