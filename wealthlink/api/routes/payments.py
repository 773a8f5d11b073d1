"""Payment Routes - member submission and transaction history."""

from fastapi import APIRouter, Depends, Query, status

from wealthlink.api.dependencies import (
    current_user, get_dashboard_service, get_payment_workflow,
)
from wealthlink.core.domain_types import TransactionStatus
from wealthlink.core.records import UserRecord
from wealthlink.schemas.payments import PaymentSubmit
from wealthlink.services.dashboard_service import DashboardService
from wealthlink.services.payment_workflow import PaymentWorkflow

router = APIRouter(prefix="/api/v1", tags=["payments"])


@router.post("/payments", status_code=status.HTTP_201_CREATED)
async def submit_payment(
    body: PaymentSubmit,
    user: UserRecord = Depends(current_user),
    payments: PaymentWorkflow = Depends(get_payment_workflow),
):
    transaction = await payments.submit(user.id, body.receipt_ref)
    return {
        "message": "Payment submitted for review",
        "transaction": transaction.to_payload(),
    }


@router.get("/transactions")
async def list_transactions(
    status_filter: TransactionStatus | None = Query(None, alias="status"),
    limit: int | None = Query(None, ge=1, le=500),
    user: UserRecord = Depends(current_user),
    views: DashboardService = Depends(get_dashboard_service),
):
    return await views.user_transactions(user.id, status_filter, limit)
