import pytest

from lexlink.core.notifications.service import create_notification


@pytest.mark.asyncio
async def test_list_and_mark_notifications(client, db_session, client_user, auth_headers):
    first = await create_notification(
        db_session, client_user.id, "booking", "booking.confirmed", "Booking confirmed", "Confirmed."
    )
    await create_notification(
        db_session, client_user.id, "review", "review.requested", "How did it go?", "Leave a review."
    )

    response = await client.get("/api/v1/notifications", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["unread_count"] == 2

    response = await client.post(f"/api/v1/notifications/{first.id}/read", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["is_read"] is True

    response = await client.get("/api/v1/notifications?unread_only=true", headers=auth_headers)
    assert response.json()["total"] == 1
    assert response.json()["unread_count"] == 1

    response = await client.post("/api/v1/notifications/read-all", headers=auth_headers)
    assert response.json()["updated"] == 1

    response = await client.get("/api/v1/notifications", headers=auth_headers)
    assert response.json()["unread_count"] == 0
    assert all(n["is_read"] for n in response.json()["items"])


@pytest.mark.asyncio
async def test_cannot_read_someone_elses_notification(client, db_session, other_client_user, auth_headers):
    notification = await create_notification(
        db_session, other_client_user.id, "booking", "booking.cancelled", "Booking cancelled", "Cancelled."
    )

    response = await client.post(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers)
    assert response.status_code == 404
