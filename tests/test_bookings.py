"""
Booking and order tests.

Verifies:
1. A slot carries at most one live booking
2. Cancelling frees the slot
3. Order totals are validated and orders with bookings cannot be deleted
"""

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient

from tests.conftest import bearer


async def _slot(client: AsyncClient, teacher, slot_type, hour: int = 10) -> str:
    day = (datetime.now(timezone.utc) + timedelta(days=5)).date()
    start = datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)
    r = await client.post(
        "/slots/create",
        json={
            "date_from": start.isoformat(),
            "date_to": (start + timedelta(hours=1)).isoformat(),
            "type_id": str(slot_type.id),
            "teacher_id": str(teacher.id),
        },
        headers=bearer(teacher),
    )
    assert r.status_code == 201
    return r.json()["data"]["id"]


async def _book(client: AsyncClient, user, slot_id: str, **extra):
    return await client.post(
        "/bookings/create",
        json={"slot_id": slot_id, "title": "Guitar", "description": "Chords", **extra},
        headers=bearer(user),
    )


async def test_double_booking_rejected(
    async_client: AsyncClient, make_user, teacher, student, slot_type
):
    slot_id = await _slot(async_client, teacher, slot_type)

    r = await _book(async_client, student, slot_id)
    assert r.status_code == 201
    booking = r.json()["data"]
    assert booking["student_id"] == str(student.id)
    assert booking["slot"]["is_booked"] is True

    rival = await make_user("rival@example.com")
    r = await _book(async_client, rival, slot_id)
    assert r.status_code == 400
    assert r.json()["message"] == "This slot is already booked"

    r = await _book(async_client, student, slot_id)
    assert r.status_code == 400


async def test_cancel_frees_the_slot(
    async_client: AsyncClient, make_user, teacher, student, slot_type
):
    slot_id = await _slot(async_client, teacher, slot_type)
    booking_id = (await _book(async_client, student, slot_id)).json()["data"]["id"]

    rival = await make_user("rival@example.com")
    r = await async_client.delete(f"/bookings/cancel/{booking_id}", headers=bearer(rival))
    assert r.status_code == 403

    r = await async_client.delete(f"/bookings/cancel/{booking_id}", headers=bearer(student))
    assert r.status_code == 200
    assert (await async_client.get(f"/bookings/{booking_id}", headers=bearer(student))).status_code == 404

    r = await async_client.get(f"/slots/{slot_id}", headers=bearer(student))
    assert r.json()["data"]["is_booked"] is False
    assert (await _book(async_client, rival, slot_id)).status_code == 201


async def test_booking_visibility_and_listing(
    async_client: AsyncClient, make_user, teacher, student, slot_type
):
    first = await _slot(async_client, teacher, slot_type, hour=9)
    second = await _slot(async_client, teacher, slot_type, hour=11)
    booking_id = (await _book(async_client, student, first)).json()["data"]["id"]
    await _book(async_client, student, second)

    r = await async_client.get("/bookings/mine", headers=bearer(student))
    assert r.json()["count"] == 2

    # The teacher of the slot may look at it, an unrelated student may not
    assert (await async_client.get(f"/bookings/{booking_id}", headers=bearer(teacher))).status_code == 200
    outsider = await make_user("outsider@example.com")
    assert (await async_client.get(f"/bookings/{booking_id}", headers=bearer(outsider))).status_code == 403


async def test_booking_reads_report_slot_state(
    async_client: AsyncClient, teacher, student, slot_type
):
    """Each request uses its own session, so the slot state is loaded from the store."""
    slot_id = await _slot(async_client, teacher, slot_type)
    booking_id = (await _book(async_client, student, slot_id)).json()["data"]["id"]

    r = await async_client.get(f"/bookings/{booking_id}", headers=bearer(student))
    assert r.status_code == 200
    assert r.json()["data"]["slot"]["id"] == slot_id
    assert r.json()["data"]["slot"]["is_booked"] is True

    r = await async_client.get("/bookings/mine", headers=bearer(student))
    assert r.status_code == 200
    assert [b["slot"]["is_booked"] for b in r.json()["data"]] == [True]


async def test_booking_unknown_slot(async_client: AsyncClient, student):
    r = await _book(async_client, student, "00000000-0000-0000-0000-0000000000bb")
    assert r.status_code == 404


async def test_bookings_share_a_supplied_order(
    async_client: AsyncClient, make_user, teacher, student, slot_type, admin_headers
):
    order = await async_client.post(
        "/orders/create",
        json={"total_amount": 100, "reduction_amount": 10, "reduction_percentage": 10},
        headers=bearer(student),
    )
    assert order.status_code == 201
    order_id = order.json()["data"]["id"]
    assert order.json()["data"]["final_amount"] == 81.0

    a = await _slot(async_client, teacher, slot_type, hour=8)
    b = await _slot(async_client, teacher, slot_type, hour=13)
    assert (await _book(async_client, student, a, order_id=order_id)).status_code == 201
    assert (await _book(async_client, student, b, order_id=order_id)).status_code == 201

    r = await async_client.get(f"/orders/{order_id}", headers=bearer(student))
    assert len(r.json()["data"]["bookings"]) == 2

    # Someone else's order cannot be used or read
    rival = await make_user("rival@example.com")
    c = await _slot(async_client, teacher, slot_type, hour=16)
    assert (await _book(async_client, rival, c, order_id=order_id)).status_code == 400
    assert (await async_client.get(f"/orders/{order_id}", headers=bearer(rival))).status_code == 403

    # Deleting an order that still holds bookings is refused
    r = await async_client.delete(f"/orders/delete/{order_id}", headers=admin_headers)
    assert r.status_code == 400


async def test_order_totals_validation(async_client: AsyncClient, student, admin_headers):
    headers = bearer(student)
    r = await async_client.post(
        "/orders/create", json={"total_amount": 50, "reduction_amount": 60}, headers=headers
    )
    assert r.status_code == 400
    r = await async_client.post(
        "/orders/create", json={"total_amount": 50, "reduction_percentage": 120}, headers=headers
    )
    assert r.status_code == 400
    r = await async_client.post("/orders/create", json={"total_amount": -1}, headers=headers)
    assert r.status_code == 400

    order_id = (
        await async_client.post("/orders/create", json={"total_amount": 50}, headers=headers)
    ).json()["data"]["id"]

    # Lowering the total under the existing reduction is refused
    r = await async_client.put(
        f"/orders/update/{order_id}", json={"reduction_amount": 20}, headers=admin_headers
    )
    assert r.status_code == 200
    r = await async_client.put(
        f"/orders/update/{order_id}", json={"total_amount": 10}, headers=admin_headers
    )
    assert r.status_code == 400

    # Only admins edit orders
    r = await async_client.put(
        f"/orders/update/{order_id}", json={"total_amount": 70}, headers=headers
    )
    assert r.status_code == 403

    r = await async_client.delete(f"/orders/delete/{order_id}", headers=admin_headers)
    assert r.status_code == 200


async def test_order_list_is_scoped_to_student(
    async_client: AsyncClient, make_user, student, admin_headers
):
    rival = await make_user("rival@example.com")
    await async_client.post("/orders/create", json={"total_amount": 10}, headers=bearer(student))
    await async_client.post("/orders/create", json={"total_amount": 20}, headers=bearer(rival))

    state = {"first": 0, "rows": 10, "sorts": [{"field": "totalAmount", "order": 1}]}
    r = await async_client.post("/orders/list", json=state, headers=bearer(student))
    assert r.json()["count"] == 1
    assert r.json()["data"][0]["total_amount"] == 10.0

    r = await async_client.post("/orders/list", json=state, headers=admin_headers)
    assert r.json()["count"] == 2
    assert [o["total_amount"] for o in r.json()["data"]] == [10.0, 20.0]
