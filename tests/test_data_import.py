from tests.conftest import API, booking_payload

BOOKINGS = [
    {"bookingId": 1, "hotelId": 5, "eventId": 10, "guestName": "Ann", "guestPhoneNumber": "555",
     "checkInDate": "2024-01-05", "checkOutDate": "2024-01-07"},
    {"bookingId": 2, "hotelId": 5, "eventId": 10, "guestName": "Ben", "guestPhoneNumber": None,
     "checkInDate": "2024-01-06", "checkOutDate": "2024-01-08"},
]
ROOMING_LISTS = [
    {"roomingListId": 100, "eventId": 10, "hotelId": 5, "rfpName": "X",
     "cutOffDate": "2024-01-01", "agreement_type": "leisure"},
]
LINKS = [{"roomingListId": 100, "bookingId": 1}]


def counts(client):
    return client.get(f"{API}/data/status").json()["data"]


def test_import_end_to_end(client, write_sources):
    write_sources(BOOKINGS, ROOMING_LISTS, LINKS)

    response = client.post(f"{API}/data/insert")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Data inserted successfully from JSON files"
    assert body["data"] == {"events": 1, "bookings": 2, "roomingLists": 1, "roomingListBookings": 1}
    assert counts(client) == {"events": 1, "bookings": 2, "roomingLists": 1, "roomingListBookings": 1}

    linked = client.get(f"{API}/rooming-lists/100/bookings").json()
    assert [b["bookingId"] for b in linked["data"]] == [1]

    rooming_list = client.get(f"{API}/rooming-lists/100").json()["data"]
    assert rooming_list["status"] == "Active"
    assert rooming_list["eventName"] == "Event 10"


def test_import_derives_one_event_per_distinct_id(client, write_sources):
    bookings = [
        {**BOOKINGS[0], "bookingId": 1, "eventId": 7},
        {**BOOKINGS[0], "bookingId": 2, "eventId": 3},
        {**BOOKINGS[0], "bookingId": 3, "eventId": 7},
    ]
    write_sources(bookings, [], [])

    response = client.post(f"{API}/data/insert")

    assert response.status_code == 200
    events = client.get(f"{API}/events").json()["data"]
    assert sorted((e["eventId"], e["eventName"]) for e in events) == [(3, "Event 3"), (7, "Event 7")]


def test_import_replaces_existing_rows(client, write_sources):
    client.post(f"{API}/events", json={"eventName": "Old"})
    client.post(f"{API}/bookings", json=booking_payload(guestName="Old guest"))
    write_sources(BOOKINGS, ROOMING_LISTS, LINKS)

    client.post(f"{API}/data/insert")

    guests = [b["guestName"] for b in client.get(f"{API}/bookings").json()["data"]]
    assert guests == ["Ann", "Ben"]
    assert [e["eventName"] for e in client.get(f"{API}/events").json()["data"]] == ["Event 10"]


def test_import_with_unknown_booking_rolls_back_everything(client, write_sources):
    write_sources(BOOKINGS, ROOMING_LISTS, [{"roomingListId": 100, "bookingId": 99}])

    response = client.post(f"{API}/data/insert")

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to insert data from JSON files"
    assert counts(client) == {"events": 0, "bookings": 0, "roomingLists": 0, "roomingListBookings": 0}


def test_failed_import_leaves_previous_data_in_place(client, write_sources):
    write_sources(BOOKINGS, ROOMING_LISTS, LINKS)
    client.post(f"{API}/data/insert")
    before = counts(client)

    write_sources(BOOKINGS, ROOMING_LISTS, LINKS + LINKS)
    response = client.post(f"{API}/data/insert")

    assert response.status_code == 500
    assert counts(client) == before
    assert client.get(f"{API}/bookings/2").json()["data"]["guestName"] == "Ben"


def test_missing_source_file_fails_before_clearing(client, write_sources):
    client.post(f"{API}/bookings", json=booking_payload())
    write_sources(BOOKINGS, ROOMING_LISTS)

    response = client.post(f"{API}/data/insert")

    assert response.status_code == 500
    assert response.json()["error"] == "rooming-list-bookings.json file not found"
    assert counts(client)["bookings"] == 1


def test_malformed_record_fails_before_clearing(client, write_sources):
    client.post(f"{API}/bookings", json=booking_payload())
    bad_lists = [{**ROOMING_LISTS[0], "agreement_type": "vip"}]
    write_sources(BOOKINGS, bad_lists, LINKS)

    response = client.post(f"{API}/data/insert")

    assert response.status_code == 500
    assert response.json()["error"] == "rooming-lists.json record 0 is invalid"
    assert counts(client)["bookings"] == 1


def test_non_array_source_is_rejected(client, write_sources):
    data_dir = write_sources(BOOKINGS, ROOMING_LISTS, LINKS)
    (data_dir / "bookings.json").write_text('{"bookingId": 1}', encoding="utf-8")

    response = client.post(f"{API}/data/insert")

    assert response.status_code == 500
    assert response.json()["error"] == "bookings.json must contain a JSON array"


def test_generated_ids_continue_after_imported_ones(client, write_sources):
    write_sources(BOOKINGS, ROOMING_LISTS, LINKS)
    client.post(f"{API}/data/insert")

    response = client.post(f"{API}/bookings", json=booking_payload())

    assert response.status_code == 201
    assert response.json()["data"]["bookingId"] == 3


def test_clear_empties_all_tables(client, write_sources):
    write_sources(BOOKINGS, ROOMING_LISTS, LINKS)
    client.post(f"{API}/data/insert")

    response = client.delete(f"{API}/data/clear")

    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "All data cleared successfully"}
    assert counts(client) == {"events": 0, "bookings": 0, "roomingLists": 0, "roomingListBookings": 0}
