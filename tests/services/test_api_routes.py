"""API routes - HTTP surface over the workflows, run against in-memory SQLite.

Tests cover:
    - Health and readiness probes
    - Register/login return reproducible bearer tokens; profile edits re-issue it
    - Missing or bad credentials -> 401, members on admin routes -> 403
    - Payment submit -> admin approval -> dashboard reflects the cycle
    - Full six-month cycle through member request, payout and confirmation over HTTP
    - Request validation and domain errors use the error envelope
    - SSE helpers: channel selection and message framing
"""

from decimal import Decimal

from wealthlink.api.routes.events import _sse_line, channels_for
from wealthlink.core.domain_types import ADMIN_CHANNEL, BROADCAST_CHANNEL

from tests.conftest import make_user

ADMIN_EMAIL = "admin@wealthlink.test"


def _registration(**overrides) -> dict:
    data = {
        "first_name": "Ada",
        "last_name": "Obi",
        "email": "ada@example.com",
        "phone": "08030000001",
        "bank_name": "Sterling Bank",
        "account_number": "0123456789",
        "account_name": "Ada Obi",
    }
    data.update(overrides)
    return data


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def _register(client, **overrides) -> tuple[str, dict]:
    response = await client.post("/api/v1/auth/register", json=_registration(**overrides))
    assert response.status_code == 201, response.text
    body = response.json()
    return body["token"], body["user"]


async def _register_admin(client) -> str:
    token, user = await _register(
        client, email=ADMIN_EMAIL, phone="08039990000", first_name="Admin",
    )
    assert user["is_admin"]
    return token


# --- Health -------------------------------------------------------------------

async def test_health(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_readiness(client):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "healthy"


# --- Auth ---------------------------------------------------------------------

async def test_register_and_login(client):
    token, user = await _register(client)
    assert user["email"] == "ada@example.com"
    assert user["referral_code"].startswith("ADA-")
    assert not user["is_admin"]

    response = await client.post("/api/v1/auth/login", json={"email": "ADA@example.com"})
    assert response.status_code == 200
    assert response.json()["token"] == token


async def test_login_unknown_email_is_401(client):
    response = await client.post("/api/v1/auth/login", json={"email": "nobody@example.com"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_ERROR"


async def test_duplicate_registration_is_400(client):
    await _register(client)
    response = await client.post("/api/v1/auth/register", json=_registration())
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert response.json()["error"]["field"] == "email"


async def test_missing_field_is_400_with_details(client):
    data = _registration()
    del data["email"]
    response = await client.post("/api/v1/auth/register", json=data)
    assert response.status_code == 400
    assert response.json()["error"]["details"]


async def test_protected_route_requires_token(client):
    assert (await client.get("/api/v1/dashboard")).status_code == 401
    bad = await client.get("/api/v1/dashboard", headers=_auth("someone.badbad"))
    assert bad.status_code == 401


async def test_member_cannot_use_admin_routes(client):
    token, _ = await _register(client)
    response = await client.get("/api/v1/admin/stats", headers=_auth(token))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


async def test_profile_update_reissues_token(client):
    token, _ = await _register(client)
    response = await client.put(
        "/api/v1/profile", headers=_auth(token), json={"email": "ada.obi@example.com"},
    )
    assert response.status_code == 200
    new_token = response.json()["token"]
    assert new_token != token
    assert (await client.get("/api/v1/profile", headers=_auth(token))).status_code == 401
    profile = await client.get("/api/v1/profile", headers=_auth(new_token))
    assert profile.json()["email"] == "ada.obi@example.com"


async def test_bank_details_are_public(client):
    response = await client.get("/api/v1/bank-details")
    assert response.status_code == 200
    assert response.json()["bank_name"] == "Sterling Bank"


# --- Payments -----------------------------------------------------------------

async def test_payment_submit_and_approve(client):
    member, _ = await _register(client)
    admin = await _register_admin(client)

    submitted = await client.post(
        "/api/v1/payments", headers=_auth(member), json={"receipt_ref": "receipt.png"},
    )
    assert submitted.status_code == 201
    transaction = submitted.json()["transaction"]
    assert transaction["status"] == "pending"

    pending = await client.get(
        "/api/v1/admin/transactions", params={"status": "pending"}, headers=_auth(admin),
    )
    assert [t["id"] for t in pending.json()] == [transaction["id"]]

    decided = await client.post(
        f"/api/v1/admin/transactions/{transaction['id']}/decision",
        headers=_auth(admin), json={"approve": True},
    )
    assert decided.status_code == 200
    assert decided.json()["transaction"]["status"] == "completed"

    replay = await client.post(
        f"/api/v1/admin/transactions/{transaction['id']}/decision",
        headers=_auth(admin), json={"approve": True},
    )
    assert replay.status_code == 409

    dashboard = (await client.get("/api/v1/dashboard", headers=_auth(member))).json()
    assert dashboard["months_completed"] == 1
    assert Decimal(dashboard["total_saved"]) == Decimal("12000")
    assert dashboard["payment_schedule"]["next_payment_date"] is not None


async def test_payment_requires_receipt(client):
    member, _ = await _register(client)
    response = await client.post(
        "/api/v1/payments", headers=_auth(member), json={"receipt_ref": ""},
    )
    assert response.status_code == 400


async def test_decision_on_unknown_transaction_is_404(client):
    admin = await _register_admin(client)
    response = await client.post(
        "/api/v1/admin/transactions/missing/decision",
        headers=_auth(admin), json={"approve": False},
    )
    assert response.status_code == 404


# --- Withdrawal cycle ---------------------------------------------------------

async def test_full_cycle_over_http(client):
    member, profile = await _register(client)
    admin = await _register_admin(client)

    early = await client.post(
        "/api/v1/admin/withdrawals", headers=_auth(admin),
        json={"user_id": profile["id"], "receipt_ref": "payout.png"},
    )
    assert early.status_code == 409
    too_soon = await client.post("/api/v1/withdrawals/request", headers=_auth(member))
    assert too_soon.status_code == 409

    for month in range(6):
        submitted = await client.post(
            "/api/v1/payments", headers=_auth(member),
            json={"receipt_ref": f"receipt-{month}.png"},
        )
        await client.post(
            f"/api/v1/admin/transactions/{submitted.json()['transaction']['id']}/decision",
            headers=_auth(admin), json={"approve": True},
        )

    requested = await client.post("/api/v1/withdrawals/request", headers=_auth(member))
    assert requested.status_code == 202
    assert Decimal(requested.json()["withdrawal"]["net_amount"]) == Decimal("71500")

    processed = await client.post(
        "/api/v1/admin/withdrawals", headers=_auth(admin),
        json={"user_id": profile["id"], "receipt_ref": "payout.png"},
    )
    assert processed.status_code == 201
    withdrawal = processed.json()["withdrawal"]
    assert Decimal(withdrawal["amount"]) == Decimal("72000")
    assert Decimal(withdrawal["net_amount"]) == Decimal("71500")

    mine = await client.get("/api/v1/withdrawals", headers=_auth(member))
    assert [w["id"] for w in mine.json()] == [withdrawal["id"]]

    confirmed = await client.post(
        f"/api/v1/withdrawals/{withdrawal['id']}/confirm",
        headers=_auth(member), json={"confirmed": True},
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["withdrawal"]["status"] == "completed"

    dashboard = (await client.get("/api/v1/dashboard", headers=_auth(member))).json()
    assert dashboard["cycle_number"] == 2
    assert dashboard["months_completed"] == 0
    assert dashboard["recent_transactions"] == []


async def test_member_notifications_include_broadcast(client):
    member, _ = await _register(client)
    admin = await _register_admin(client)

    sent = await client.post(
        "/api/v1/admin/notifications", headers=_auth(admin),
        json={"title": "Holiday", "message": "Office closed on Friday"},
    )
    assert sent.status_code == 201

    listed = await client.get("/api/v1/notifications", headers=_auth(member))
    assert "Holiday" in [n["title"] for n in listed.json()]


async def test_admin_settings_roundtrip(client):
    admin = await _register_admin(client)
    updated = await client.put(
        "/api/v1/admin/settings", headers=_auth(admin),
        json={"payment_reminder_days": 5, "company_bank_details": {"bank_name": "Zenith Bank"}},
    )
    assert updated.status_code == 200

    settings = (await client.get("/api/v1/admin/settings", headers=_auth(admin))).json()
    assert settings["payment_reminder_days"] == 5
    assert settings["company_bank_details"]["bank_name"] == "Zenith Bank"
    assert settings["company_bank_details"]["account_name"] == "Wealthlink"

    public = (await client.get("/api/v1/bank-details")).json()
    assert public["bank_name"] == "Zenith Bank"


# --- Event stream helpers -----------------------------------------------------

def test_channels_for_member_and_admin():
    member = make_user()
    admin = make_user(is_admin=True)
    assert channels_for(member) == (f"user:{member.id}", BROADCAST_CHANNEL)
    assert ADMIN_CHANNEL in channels_for(admin)


def test_sse_line_framing():
    line = _sse_line({"channel": "admin", "event": "users-updated", "data": [{"n": "₦"}]})
    assert line == 'event: users-updated\ndata: [{"n": "₦"}]\n\n'


async def test_event_stream_rejects_bad_token(client):
    response = await client.get("/api/v1/events", params={"token": "nope.nope"})
    assert response.status_code == 401
