"""API Dependencies - per-request record store, caller identity and service wiring.

Invariants:
    - One SqlRecordStore (one AsyncSession) per request, shared by every service
    - Business config is read from the store once per request and passed into
      workflow constructors
    - require_admin raises PermissionDeniedError (403) for authenticated members

Design Decisions:
    - Bearer header for REST; the SSE route also accepts ?token= because
      EventSource cannot set headers
"""

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from wealthlink.config import get_settings
from wealthlink.core.errors import ErrorContext, PermissionDeniedError
from wealthlink.core.records import AppConfig, UserRecord
from wealthlink.infrastructure.database import get_db
from wealthlink.infrastructure.event_bus import EventBus, get_event_bus
from wealthlink.infrastructure.repositories import SqlRecordStore
from wealthlink.services.admin_service import AdminService
from wealthlink.services.dashboard_service import DashboardService
from wealthlink.services.identity_service import IdentityService
from wealthlink.services.notification_service import NotificationService
from wealthlink.services.payment_workflow import PaymentWorkflow
from wealthlink.services.reminder_service import ReminderService
from wealthlink.services.withdrawal_workflow import WithdrawalWorkflow

_bearer = HTTPBearer(auto_error=False)


async def get_store(db: AsyncSession = Depends(get_db)) -> SqlRecordStore:
    return SqlRecordStore(db, get_settings().seed_app_config())


async def get_config(store: SqlRecordStore = Depends(get_store)) -> AppConfig:
    return await store.config.get()


def get_identity_service(
    store: SqlRecordStore = Depends(get_store),
    bus: EventBus = Depends(get_event_bus),
) -> IdentityService:
    settings = get_settings()
    return IdentityService(
        store, settings.token_secret, bus, admin_emails=settings.admin_emails,
    )


async def current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: IdentityService = Depends(get_identity_service),
) -> UserRecord:
    token = credentials.credentials if credentials else None
    return await identity.authenticate(token)


async def stream_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    token: str | None = Query(None),
    identity: IdentityService = Depends(get_identity_service),
) -> UserRecord:
    return await identity.authenticate(
        credentials.credentials if credentials else token,
    )


async def require_admin(user: UserRecord = Depends(current_user)) -> UserRecord:
    if not user.is_admin:
        raise PermissionDeniedError(ErrorContext(user_id=user.id))
    return user


def get_payment_workflow(
    store: SqlRecordStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
    bus: EventBus = Depends(get_event_bus),
) -> PaymentWorkflow:
    return PaymentWorkflow(store, config, bus)


def get_withdrawal_workflow(
    store: SqlRecordStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
    bus: EventBus = Depends(get_event_bus),
) -> WithdrawalWorkflow:
    return WithdrawalWorkflow(store, config, bus)


def get_dashboard_service(
    store: SqlRecordStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
) -> DashboardService:
    return DashboardService(store, config)


def get_notification_service(
    store: SqlRecordStore = Depends(get_store),
    bus: EventBus = Depends(get_event_bus),
) -> NotificationService:
    return NotificationService(store, bus)


def get_reminder_service(
    store: SqlRecordStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
    bus: EventBus = Depends(get_event_bus),
) -> ReminderService:
    return ReminderService(store, config, bus)


def get_admin_service(store: SqlRecordStore = Depends(get_store)) -> AdminService:
    return AdminService(store)
