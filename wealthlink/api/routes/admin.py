"""Admin Routes - decisions, payouts, listings, broadcasts and settings.

Invariants:
    - Every route requires an authenticated administrator (403 otherwise)
    - Decisions and payouts go through the same workflows members trigger,
      so locks and state checks apply identically
"""

from fastapi import APIRouter, Depends, Query, status

from wealthlink.api.dependencies import (
    get_admin_service, get_config, get_dashboard_service,
    get_notification_service, get_payment_workflow, get_reminder_service,
    get_withdrawal_workflow, require_admin,
)
from wealthlink.core.domain_types import TransactionStatus, WithdrawalStatus
from wealthlink.core.records import AppConfig
from wealthlink.schemas.admin import BroadcastCreate, SettingsUpdate
from wealthlink.schemas.payments import PaymentDecision
from wealthlink.schemas.withdrawals import WithdrawalProcess
from wealthlink.services.admin_service import AdminService
from wealthlink.services.dashboard_service import DashboardService
from wealthlink.services.notification_service import NotificationService
from wealthlink.services.payment_workflow import PaymentWorkflow
from wealthlink.services.reminder_service import ReminderService
from wealthlink.services.withdrawal_workflow import WithdrawalWorkflow

router = APIRouter(
    prefix="/api/v1/admin", tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/stats")
async def get_stats(views: DashboardService = Depends(get_dashboard_service)):
    return await views.admin_stats()


@router.get("/users")
async def list_users(views: DashboardService = Depends(get_dashboard_service)):
    return await views.all_users()


# ─── Payments ────────────────────────────────────────────────────

@router.get("/transactions")
async def list_transactions(
    status_filter: TransactionStatus | None = Query(None, alias="status"),
    views: DashboardService = Depends(get_dashboard_service),
):
    return await views.all_transactions(status_filter)


@router.post("/transactions/{transaction_id}/decision")
async def decide_payment(
    transaction_id: str,
    body: PaymentDecision,
    payments: PaymentWorkflow = Depends(get_payment_workflow),
):
    transaction = await payments.decide(transaction_id, body.approve, body.admin_note)
    return {
        "message": f"Payment {transaction.status.value}",
        "transaction": transaction.to_payload(),
    }


# ─── Withdrawals ─────────────────────────────────────────────────

@router.get("/withdrawals")
async def list_withdrawals(
    status_filter: WithdrawalStatus | None = Query(None, alias="status"),
    views: DashboardService = Depends(get_dashboard_service),
):
    return await views.all_withdrawals(status_filter)


@router.post("/withdrawals", status_code=status.HTTP_201_CREATED)
async def process_withdrawal(
    body: WithdrawalProcess,
    withdrawals: WithdrawalWorkflow = Depends(get_withdrawal_workflow),
):
    withdrawal = await withdrawals.process(
        body.user_id, body.receipt_ref, body.admin_message,
    )
    return {
        "message": "Withdrawal sent for member confirmation",
        "withdrawal": withdrawal.to_payload(),
    }


# ─── Notifications ───────────────────────────────────────────────

@router.get("/notifications")
async def list_notifications(
    limit: int | None = Query(None, ge=1, le=500),
    notifier: NotificationService = Depends(get_notification_service),
):
    return [n.to_payload() for n in await notifier.list_all(limit)]


@router.post("/notifications", status_code=status.HTTP_201_CREATED)
async def broadcast(
    body: BroadcastCreate,
    notifier: NotificationService = Depends(get_notification_service),
):
    notification = await notifier.broadcast(body.title, body.message, body.type)
    return {
        "message": "Notification sent to all users",
        "notification": notification.to_payload(),
    }


@router.post("/reminders/sweep")
async def run_reminder_sweep(
    reminders: ReminderService = Depends(get_reminder_service),
):
    return {"sent": await reminders.run_sweep()}


# ─── Settings ────────────────────────────────────────────────────

@router.get("/settings")
async def read_settings(config: AppConfig = Depends(get_config)):
    return config.to_payload()


@router.put("/settings")
async def update_settings(
    body: SettingsUpdate,
    admin: AdminService = Depends(get_admin_service),
):
    config = await admin.update_settings(body.model_dump(exclude_none=True))
    return {"message": "Settings updated successfully", "config": config.to_payload()}
