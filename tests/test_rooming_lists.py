from tests.conftest import API, booking_payload, rooming_list_payload


def create_rooming_list(client, **overrides):
    response = client.post(f"{API}/rooming-lists", json=rooming_list_payload(**overrides))
    assert response.status_code == 201
    return response.json()["data"]


def test_create_defaults_status_to_active(client):
    created = create_rooming_list(client)

    assert created["status"] == "Active"
    assert created["agreement_type"] == "leisure"
    assert created["cutOffDate"] == "2024-02-01"


def test_unknown_agreement_type_is_rejected_without_insert(client):
    response = client.post(f"{API}/rooming-lists", json=rooming_list_payload(agreement_type="vip"))

    assert response.status_code == 400
    assert "agreement_type" in response.json()["error"]
    assert client.get(f"{API}/rooming-lists").json()["count"] == 0


def test_unknown_status_is_rejected(client):
    response = client.post(f"{API}/rooming-lists", json=rooming_list_payload(status="Pending"))

    assert response.status_code == 400
    assert "status" in response.json()["error"]


def test_missing_required_fields(client):
    response = client.post(f"{API}/rooming-lists", json={"eventId": 1, "hotelId": 2})

    assert response.status_code == 400
    error = response.json()["error"]
    for field in ("rfpName", "cutOffDate", "agreement_type"):
        assert field in error


def test_status_only_update_keeps_other_fields(client):
    created = create_rooming_list(client)

    response = client.put(f"{API}/rooming-lists/{created['roomingListId']}", json={"status": "Closed"})

    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["status"] == "Closed"
    assert updated["rfpName"] == created["rfpName"]
    assert updated["cutOffDate"] == created["cutOffDate"]
    assert updated["agreement_type"] == created["agreement_type"]


def test_update_rejects_bad_enum_before_touching_row(client):
    created = create_rooming_list(client)

    response = client.put(f"{API}/rooming-lists/{created['roomingListId']}", json={"agreement_type": "vip"})

    assert response.status_code == 400
    fetched = client.get(f"{API}/rooming-lists/{created['roomingListId']}").json()["data"]
    assert fetched["agreement_type"] == "leisure"


def test_update_missing_rooming_list(client):
    response = client.put(f"{API}/rooming-lists/404", json={"status": "Closed"})

    assert response.status_code == 404
    assert response.json() == {"error": "Rooming list not found"}


def test_list_counts_linked_bookings(client):
    rooming_list = create_rooming_list(client)
    for guest in ("A", "B"):
        booking = client.post(f"{API}/bookings", json=booking_payload(guestName=guest)).json()["data"]
        client.post(f"{API}/bookings/{booking['bookingId']}/rooming-lists/{rooming_list['roomingListId']}")
    create_rooming_list(client, rfpName="Empty")

    body = client.get(f"{API}/rooming-lists").json()

    counts = {row["rfpName"]: row["bookingCount"] for row in body["data"]}
    assert body["count"] == 2
    assert counts == {"Spring Summit": 2, "Empty": 0}


def test_bookings_for_rooming_list(client):
    rooming_list = create_rooming_list(client)
    booking = client.post(f"{API}/bookings", json=booking_payload()).json()["data"]
    client.post(f"{API}/bookings/{booking['bookingId']}/rooming-lists/{rooming_list['roomingListId']}")

    body = client.get(f"{API}/rooming-lists/{rooming_list['roomingListId']}/bookings").json()

    assert body["status"] == "success"
    assert body["count"] == 1
    assert body["roomingListId"] == rooming_list["roomingListId"]
    assert body["data"][0]["bookingId"] == booking["bookingId"]


def test_delete_cascades_to_links(client):
    rooming_list = create_rooming_list(client)
    booking = client.post(f"{API}/bookings", json=booking_payload()).json()["data"]
    client.post(f"{API}/bookings/{booking['bookingId']}/rooming-lists/{rooming_list['roomingListId']}")
    list_id = rooming_list["roomingListId"]

    deleted = client.delete(f"{API}/rooming-lists/{list_id}")

    assert deleted.status_code == 200
    assert deleted.json()["data"]["roomingListId"] == list_id
    assert client.get(f"{API}/rooming-lists/{list_id}/bookings").json()["data"] == []
    assert client.get(f"{API}/rooming-lists/{list_id}").status_code == 404
    assert client.get(f"{API}/data/status").json()["data"]["roomingListBookings"] == 0
    # The booking itself survives
    assert client.get(f"{API}/bookings/{booking['bookingId']}").status_code == 200
