"""Withdrawal Routes - member history, payout requests and confirmation."""

from fastapi import APIRouter, Depends, Query, status

from wealthlink.api.dependencies import (
    current_user, get_dashboard_service, get_withdrawal_workflow,
)
from wealthlink.core.domain_types import WithdrawalStatus
from wealthlink.core.records import UserRecord
from wealthlink.schemas.withdrawals import WithdrawalConfirm
from wealthlink.services.dashboard_service import DashboardService
from wealthlink.services.withdrawal_workflow import WithdrawalWorkflow

router = APIRouter(prefix="/api/v1/withdrawals", tags=["withdrawals"])


@router.get("")
async def list_withdrawals(
    status_filter: WithdrawalStatus | None = Query(None, alias="status"),
    limit: int | None = Query(None, ge=1, le=500),
    user: UserRecord = Depends(current_user),
    views: DashboardService = Depends(get_dashboard_service),
):
    return await views.user_withdrawals(user.id, status_filter, limit)


@router.post("/request", status_code=status.HTTP_202_ACCEPTED)
async def request_withdrawal(
    user: UserRecord = Depends(current_user),
    withdrawals: WithdrawalWorkflow = Depends(get_withdrawal_workflow),
):
    quote = await withdrawals.request(user.id)
    return {"message": "Withdrawal request submitted", "withdrawal": quote}


@router.post("/{withdrawal_id}/confirm")
async def confirm_withdrawal(
    withdrawal_id: str,
    body: WithdrawalConfirm,
    user: UserRecord = Depends(current_user),
    withdrawals: WithdrawalWorkflow = Depends(get_withdrawal_workflow),
):
    withdrawal = await withdrawals.confirm(
        withdrawal_id, user.id, body.confirmed, body.note,
    )
    verb = "confirmed" if body.confirmed else "rejected"
    return {
        "message": f"Withdrawal {verb} successfully",
        "withdrawal": withdrawal.to_payload(),
    }
