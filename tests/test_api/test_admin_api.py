from __future__ import annotations

import pytest
from fastapi import status

from tests.utils import API_PREFIX, build_auth_header, operator_header, seed_business


ADMIN = f"{API_PREFIX}/admin"


async def _paid_business(client, test_db, reference: str, installer_id: int = 9) -> int:
    business_id = await seed_business(test_db, installer_id=installer_id)
    response = await client.post(
        f"{API_PREFIX}/subscription/subscribe",
        json={"plan_type": "GROWTH_MONTHLY", "reference": reference},
        headers=build_auth_header(business_id),
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    return business_id


@pytest.mark.asyncio
async def test_admin_routes_require_operator(client, test_db):
    business_id = await seed_business(test_db)

    response = await client.get(
        f"{ADMIN}/subscriptions", headers=build_auth_header(business_id)
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Operator role required"


@pytest.mark.asyncio
async def test_manual_renewal_and_listing(client, test_db):
    business_id = await seed_business(test_db, name="Buka")

    renewed = await client.post(
        f"{ADMIN}/subscriptions/renew",
        json={
            "business_id": business_id,
            "plan_type": "GROWTH_QUARTERLY",
            "duration_days": 90,
            "amount": 13500,
            "modules": ["TABLE_MANAGEMENT"],
        },
        headers=operator_header(),
    )
    assert renewed.status_code == status.HTTP_200_OK, renewed.text
    reference = renewed.json()["transaction_reference"]
    assert reference.startswith("ADMIN-")
    assert renewed.json()["payment_method"] == "ADMIN"

    listing = await client.get(f"{ADMIN}/subscriptions", headers=operator_header())
    assert [(row["business_name"], row["status"], row["plan_type"]) for row in listing.json()] == [
        ("Buka", "ACTIVE", "GROWTH_QUARTERLY")
    ]

    module = await client.get(
        f"{API_PREFIX}/subscription/modules/TABLE_MANAGEMENT",
        headers=build_auth_header(business_id),
    )
    assert module.json()["entitled"] is True

    reused = await client.post(
        f"{ADMIN}/subscriptions/renew",
        json={
            "business_id": business_id,
            "plan_type": "GROWTH_MONTHLY",
            "duration_days": 30,
            "amount": 0,
            "reference": reference,
        },
        headers=operator_header(),
    )
    assert reused.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_manual_renewal_validates_input(client, test_db):
    business_id = await seed_business(test_db)

    unknown_module = await client.post(
        f"{ADMIN}/subscriptions/renew",
        json={
            "business_id": business_id,
            "plan_type": "GROWTH_MONTHLY",
            "duration_days": 30,
            "amount": 0,
            "modules": ["TELEPORTER"],
        },
        headers=operator_header(),
    )
    assert unknown_module.status_code == status.HTTP_400_BAD_REQUEST

    missing = await client.post(
        f"{ADMIN}/subscriptions/renew",
        json={"business_id": 999, "plan_type": "GROWTH_MONTHLY", "duration_days": 30, "amount": 0},
        headers=operator_header(),
    )
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    negative = await client.post(
        f"{ADMIN}/subscriptions/renew",
        json={"business_id": business_id, "plan_type": "GROWTH_MONTHLY", "duration_days": 0, "amount": 0},
        headers=operator_header(),
    )
    assert negative.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_cancel_is_terminal(client, test_db, gateway):
    business_id = await _paid_business(client, test_db, "PSK-1")

    cancelled = await client.post(
        f"{ADMIN}/subscriptions/{business_id}/cancel", headers=operator_header()
    )
    assert cancelled.status_code == status.HTTP_200_OK
    assert cancelled.json()["status"] == "CANCELLED"

    again = await client.post(
        f"{ADMIN}/subscriptions/{business_id}/cancel", headers=operator_header()
    )
    assert again.status_code == status.HTTP_409_CONFLICT

    renew = await client.post(
        f"{API_PREFIX}/subscription/subscribe",
        json={"plan_type": "GROWTH_MONTHLY", "reference": "PSK-2"},
        headers=build_auth_header(business_id),
    )
    assert renew.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_commission_settings_round_trip(client, test_db):
    current = await client.get(f"{ADMIN}/commissions/settings", headers=operator_header())
    assert current.json() == {
        "onboarding_rate": 20,
        "renewal_rate": 10,
        "enable_renewal_commission": True,
        "min_renewal_days": 0,
        "commission_duration_days": 0,
    }

    updated = await client.put(
        f"{ADMIN}/commissions/settings",
        json={"renewal_rate": 5, "min_renewal_days": 30},
        headers=operator_header(),
    )
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["renewal_rate"] == 5
    assert updated.json()["min_renewal_days"] == 30
    assert updated.json()["onboarding_rate"] == 20


@pytest.mark.asyncio
async def test_commission_payouts(client, test_db, gateway):
    await _paid_business(client, test_db, "PSK-1", installer_id=9)
    await _paid_business(client, test_db, "PSK-2", installer_id=10)

    pending = await client.get(
        f"{ADMIN}/commissions", params={"status": "PENDING"}, headers=operator_header()
    )
    assert len(pending.json()) == 2
    assert {row["type"] for row in pending.json()} == {"ONBOARDING"}
    assert {row["amount"] for row in pending.json()} == {1000}

    by_installer = await client.get(
        f"{ADMIN}/commissions", params={"installer_id": 9}, headers=operator_header()
    )
    (first,) = by_installer.json()

    paid = await client.patch(
        f"{ADMIN}/commissions/{first['id']}/status",
        json={"status": "PAID"},
        headers=operator_header(),
    )
    assert paid.status_code == status.HTTP_200_OK
    assert paid.json()["paid_at"] is not None

    reverted = await client.patch(
        f"{ADMIN}/commissions/{first['id']}/status",
        json={"status": "PENDING"},
        headers=operator_header(),
    )
    assert reverted.status_code == status.HTTP_409_CONFLICT

    ids = [row["id"] for row in pending.json()]
    bulk = await client.post(
        f"{ADMIN}/commissions/mark-paid", json={"ids": ids}, headers=operator_header()
    )
    assert bulk.status_code == status.HTTP_200_OK
    assert {row["status"] for row in bulk.json()} == {"PAID"}

    missing = await client.patch(
        f"{ADMIN}/commissions/999/status", json={"status": "PAID"}, headers=operator_header()
    )
    assert missing.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_promo_code_crud(client, test_db):
    created = await client.post(
        f"{ADMIN}/promo-codes",
        json={"code": " easter25 ", "discount_percentage": 25, "max_uses": 3},
        headers=operator_header(),
    )
    assert created.status_code == status.HTTP_201_CREATED
    promo = created.json()
    assert promo["code"] == "EASTER25"
    assert promo["used_count"] == 0

    duplicate = await client.post(
        f"{ADMIN}/promo-codes",
        json={"code": "EASTER25", "discount_percentage": 5},
        headers=operator_header(),
    )
    assert duplicate.status_code == status.HTTP_409_CONFLICT

    updated = await client.put(
        f"{ADMIN}/promo-codes/{promo['id']}", json={"active": False}, headers=operator_header()
    )
    assert updated.json()["active"] is False

    listing = await client.get(f"{ADMIN}/promo-codes", headers=operator_header())
    assert [row["code"] for row in listing.json()] == ["EASTER25"]

    deleted = await client.delete(f"{ADMIN}/promo-codes/{promo['id']}", headers=operator_header())
    assert deleted.status_code == status.HTTP_204_NO_CONTENT

    gone = await client.delete(f"{ADMIN}/promo-codes/{promo['id']}", headers=operator_header())
    assert gone.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["active", "discount_percentage", "max_uses"])
async def test_promo_code_update_rejects_null_for_required_fields(client, test_db, field):
    created = await client.post(
        f"{ADMIN}/promo-codes",
        json={"code": "RAMADAN10", "discount_percentage": 10, "max_uses": 5},
        headers=operator_header(),
    )
    promo_id = created.json()["id"]

    response = await client.put(
        f"{ADMIN}/promo-codes/{promo_id}", json={field: None}, headers=operator_header()
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error_code"] == "ValidationError"

    listing = await client.get(f"{ADMIN}/promo-codes", headers=operator_header())
    row = listing.json()[0]
    assert row["active"] is True
    assert row["max_uses"] == 5
    assert row["discount_percentage"] == 10


@pytest.mark.asyncio
async def test_module_grant_crud_invalidates_status(client, test_db, gateway):
    business_id = await _paid_business(client, test_db, "PSK-1")
    headers = build_auth_header(business_id)
    status_url = f"{API_PREFIX}/subscription/status"

    before = await client.get(status_url, headers=headers)
    assert before.json()["active_modules"] == []

    grant = await client.post(
        f"{ADMIN}/modules",
        json={"business_id": business_id, "module": "ADVANCED_REPORTS"},
        headers=operator_header(),
    )
    assert grant.status_code == status.HTTP_201_CREATED, grant.text
    grant_id = grant.json()["id"]

    after = await client.get(status_url, headers=headers)
    assert after.json()["active_modules"] == ["ADVANCED_REPORTS"]

    duplicate = await client.post(
        f"{ADMIN}/modules",
        json={"business_id": business_id, "module": "ADVANCED_REPORTS"},
        headers=operator_header(),
    )
    assert duplicate.status_code == status.HTTP_409_CONFLICT

    unknown = await client.post(
        f"{ADMIN}/modules",
        json={"business_id": business_id, "module": "TELEPORTER"},
        headers=operator_header(),
    )
    assert unknown.status_code == status.HTTP_400_BAD_REQUEST

    listing = await client.get(f"{ADMIN}/modules", headers=operator_header())
    assert listing.json()[0]["business_name"] == "Mama Put Kitchen"
    assert listing.json()[0]["module"] == "ADVANCED_REPORTS"

    disabled = await client.put(
        f"{ADMIN}/modules/{grant_id}", json={"is_active": False}, headers=operator_header()
    )
    assert disabled.json()["is_active"] is False
    entitled = await client.get(
        f"{API_PREFIX}/subscription/modules/ADVANCED_REPORTS", headers=headers
    )
    assert entitled.json()["entitled"] is False

    deleted = await client.delete(f"{ADMIN}/modules/{grant_id}", headers=operator_header())
    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    assert (await client.get(status_url, headers=headers)).json()["modules"] == []


@pytest.mark.asyncio
async def test_subscription_history_is_append_only(client, test_db, gateway):
    business_id = await _paid_business(client, test_db, "PSK-1")
    await client.post(
        f"{API_PREFIX}/subscription/subscribe",
        json={"plan_type": "GROWTH_ANNUAL", "reference": "PSK-2"},
        headers=build_auth_header(business_id),
    )

    history = await client.get(
        f"{ADMIN}/subscriptions/{business_id}/history", headers=operator_header()
    )

    assert history.status_code == status.HTTP_200_OK
    assert [row["transaction_reference"] for row in history.json()] == ["PSK-1", "PSK-2"]
    assert [row["plan_type"] for row in history.json()] == ["GROWTH_MONTHLY", "GROWTH_ANNUAL"]

    missing = await client.get(f"{ADMIN}/subscriptions/999/history", headers=operator_header())
    assert missing.status_code == status.HTTP_404_NOT_FOUND
