"""Account Routes - member dashboard, profile, referrals, notifications, reminders.

Invariants:
    - Every route except /bank-details requires a valid bearer token
    - A member only ever sees their own records (plus broadcasts)
"""

from fastapi import APIRouter, Depends, Query

from wealthlink.api.dependencies import (
    current_user, get_dashboard_service, get_identity_service,
    get_notification_service, get_reminder_service,
)
from wealthlink.core.dashboard import profile_view
from wealthlink.core.identity import issue_token
from wealthlink.core.records import UserRecord
from wealthlink.schemas.auth import AuthResponse, AvatarUpdate, ProfileUpdate
from wealthlink.services.dashboard_service import DashboardService
from wealthlink.services.identity_service import IdentityService
from wealthlink.services.notification_service import NotificationService
from wealthlink.services.reminder_service import ReminderService

router = APIRouter(prefix="/api/v1", tags=["account"])


@router.get("/dashboard")
async def get_dashboard(
    user: UserRecord = Depends(current_user),
    views: DashboardService = Depends(get_dashboard_service),
):
    return await views.dashboard(user.id)


@router.get("/profile")
async def get_profile(user: UserRecord = Depends(current_user)):
    return profile_view(user)


@router.put("/profile", response_model=AuthResponse)
async def update_profile(
    body: ProfileUpdate,
    user: UserRecord = Depends(current_user),
    identity: IdentityService = Depends(get_identity_service),
):
    """Returns a fresh token: the credential is bound to the email."""
    updated = await identity.update_profile(user.id, body.model_dump(exclude_none=True))
    return AuthResponse(
        token=issue_token(updated, identity.secret), user=profile_view(updated),
    )


@router.put("/profile/avatar")
async def update_avatar(
    body: AvatarUpdate,
    user: UserRecord = Depends(current_user),
    identity: IdentityService = Depends(get_identity_service),
):
    return profile_view(await identity.update_avatar(user.id, body.avatar))


@router.get("/referrals")
async def get_referrals(
    user: UserRecord = Depends(current_user),
    views: DashboardService = Depends(get_dashboard_service),
):
    return await views.referral_stats(user.id)


@router.get("/next-payment")
async def get_next_payment(
    user: UserRecord = Depends(current_user),
    views: DashboardService = Depends(get_dashboard_service),
):
    return (await views.next_payment(user.id)).to_payload()


@router.get("/bank-details")
async def get_bank_details(views: DashboardService = Depends(get_dashboard_service)):
    return views.bank_details()


@router.get("/notifications")
async def list_notifications(
    limit: int | None = Query(None, ge=1, le=500),
    user: UserRecord = Depends(current_user),
    notifier: NotificationService = Depends(get_notification_service),
):
    return [n.to_payload() for n in await notifier.list_for_user(user.id, limit)]


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    user: UserRecord = Depends(current_user),
    notifier: NotificationService = Depends(get_notification_service),
):
    return (await notifier.mark_read(notification_id, user.id)).to_payload()


@router.post("/reminders")
async def request_reminder(
    user: UserRecord = Depends(current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    reminder = await reminders.request_reminder(user.id)
    return {"sent": reminder is not None, "reminder": reminder}
