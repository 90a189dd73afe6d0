import uuid
from unittest.mock import AsyncMock, patch

import pytest

from conftest import headers_for

START = "2026-12-01T10:00:00Z"
END = "2026-12-01T11:00:00Z"


async def create_booking(client, headers, provider_profile, **overrides):
    payload = {
        "provider_id": str(provider_profile.id),
        "service_id": str(provider_profile.services[0].id),
        "start_time": START,
        "end_time": END,
    }
    payload.update(overrides)
    return await client.post("/api/v1/bookings", headers=headers, json=payload)


async def transition(client, headers, booking_id, action):
    return await client.post(
        f"/api/v1/bookings/{booking_id}/transitions",
        headers=headers,
        json={"action": action},
    )


@pytest.mark.asyncio
async def test_create_booking_prices_from_service(client, auth_headers, provider_profile, mock_celery_tasks):
    response = await create_booking(client, auth_headers, provider_profile, notes="Apartment sale")
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["total_amount"] == 15000
    assert data["platform_fee"] == 1500
    assert data["total_display"] == "RON 150.00"
    assert data["notes"] == "Apartment sale"

    mock_celery_tasks.assert_called_once()
    effects = mock_celery_tasks.call_args.args[0]
    assert effects[0]["event"] == "booking.requested"
    assert effects[0]["recipient_id"] == str(provider_profile.user_id)


@pytest.mark.asyncio
async def test_create_booking_with_explicit_amount(client, auth_headers, provider_profile):
    response = await create_booking(client, auth_headers, provider_profile, service_id=None, total_amount=2500)
    assert response.status_code == 201
    assert response.json()["platform_fee"] == 250


@pytest.mark.asyncio
async def test_create_booking_rejects_amount_beyond_storage(client, auth_headers, provider_profile):
    response = await create_booking(client, auth_headers, provider_profile, service_id=None, total_amount=2**63)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_side_effects_wait_for_commit(
    client, db_session, auth_headers, provider_headers, provider_profile, mock_celery_tasks
):
    booking_id = (await create_booking(client, auth_headers, provider_profile)).json()["id"]
    mock_celery_tasks.reset_mock()

    with patch.object(db_session, "commit", AsyncMock(side_effect=RuntimeError("commit failed"))):
        with pytest.raises(RuntimeError):
            await transition(client, provider_headers, booking_id, "confirm")

    mock_celery_tasks.assert_not_called()


@pytest.mark.asyncio
async def test_create_booking_rejects_inverted_window(client, auth_headers, provider_profile):
    response = await create_booking(client, auth_headers, provider_profile, end_time="2026-12-01T09:00:00Z")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_provider_cannot_create_booking(client, provider_headers, provider_profile):
    response = await create_booking(client, provider_headers, provider_profile)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_booking_for_missing_provider(client, auth_headers, provider_profile):
    response = await create_booking(
        client, auth_headers, provider_profile, provider_id=str(uuid.uuid4()), service_id=None
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_booking_lifecycle(client, auth_headers, provider_headers, provider_profile):
    booking_id = (await create_booking(client, auth_headers, provider_profile)).json()["id"]

    response = await transition(client, provider_headers, booking_id, "confirm")
    assert response.status_code == 200
    data = response.json()
    assert data["previous_status"] == "pending"
    assert data["status"] == "confirmed"
    assert [e["kind"] for e in data["side_effects"]] == ["notify", "lock_slot"]

    response = await transition(client, auth_headers, booking_id, "complete")
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert provider_profile.completed_services == 1

    response = await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    history = response.json()["status_history"]
    assert [(h["from"], h["to"]) for h in history] == [("pending", "confirmed"), ("confirmed", "completed")]


@pytest.mark.asyncio
async def test_terminal_booking_is_left_unchanged(client, auth_headers, provider_headers, provider_profile):
    booking_id = (await create_booking(client, auth_headers, provider_profile)).json()["id"]
    await transition(client, provider_headers, booking_id, "confirm")
    await transition(client, auth_headers, booking_id, "complete")

    response = await transition(client, auth_headers, booking_id, "cancel")
    assert response.status_code == 409
    assert response.json()["code"] == "terminal_state_violation"

    response = await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    data = response.json()
    assert data["status"] == "completed"
    assert len(data["status_history"]) == 2


@pytest.mark.asyncio
async def test_client_cannot_confirm(client, auth_headers, provider_profile):
    booking_id = (await create_booking(client, auth_headers, provider_profile)).json()["id"]

    response = await transition(client, auth_headers, booking_id, "confirm")
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_transition"


@pytest.mark.asyncio
async def test_client_cancels_pending_booking(client, auth_headers, provider_profile, mock_celery_tasks):
    booking_id = (await create_booking(client, auth_headers, provider_profile)).json()["id"]

    response = await transition(client, auth_headers, booking_id, "cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    effects = mock_celery_tasks.call_args.args[0]
    assert effects[0]["event"] == "booking.cancelled"
    assert effects[0]["recipient_id"] == str(provider_profile.user_id)


@pytest.mark.asyncio
async def test_other_client_is_denied(client, auth_headers, other_client_user, provider_profile):
    booking_id = (await create_booking(client, auth_headers, provider_profile)).json()["id"]
    other_headers = headers_for(other_client_user)

    response = await transition(client, other_headers, booking_id, "cancel")
    assert response.status_code == 403

    response = await client.get(f"/api/v1/bookings/{booking_id}", headers=other_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_bookings_by_role(client, auth_headers, provider_headers, other_client_user, provider_profile):
    await create_booking(client, auth_headers, provider_profile)
    await create_booking(client, headers_for(other_client_user), provider_profile)

    response = await client.get("/api/v1/bookings", headers=auth_headers)
    assert response.json()["total"] == 1

    response = await client.get("/api/v1/bookings", headers=provider_headers)
    assert response.json()["total"] == 2

    response = await client.get("/api/v1/bookings?status=confirmed", headers=provider_headers)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_missing_identity_header(client):
    response = await client.get("/api/v1/bookings")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_user(client):
    response = await client.get("/api/v1/bookings", headers={"X-User-Id": str(uuid.uuid4())})
    assert response.status_code == 404
