from datetime import timedelta

from frontdesk.shifts import local_now


def _package(client, property_id, **overrides):
    payload = {
        "recipient_name": "Ana Lopez",
        "apartment_number": "101",
        "carrier": "UPS",
        "tracking_number": "1Z999AA10123456784",
        "received_by_agent": "Jordan",
        "received_shift": "1st",
    }
    payload.update(overrides)
    res = client.post(f"/api/properties/{property_id}/packages", json=payload)
    assert res.status_code == 201, res.text
    return res.json()


def _days_ago(days):
    return (local_now() - timedelta(days=days)).replace(microsecond=0).isoformat()


def test_create_defaults_to_pending_and_now(client, login, property_id):
    login("agent")
    pkg = _package(client, property_id)
    assert pkg["status"] == "pending"
    assert pkg["received_date"][:10] == local_now().date().isoformat()
    assert pkg["keep_extended"] is False


def test_list_filters_search_and_sort(client, login, property_id):
    login("agent")
    _package(client, property_id, recipient_name="Zed Young", apartment_number="300", tracking_number="TRACK-A")
    _package(client, property_id, recipient_name="Ana Lopez", apartment_number="101", tracking_number="TRACK-B")
    done = _package(client, property_id, recipient_name="Cal Moss", apartment_number="205", tracking_number="TRACK-C")
    client.patch(f"/api/packages/{done['id']}", json={"status": "picked_up", "picked_up_by_agent": "Jordan"})

    pending = client.get(f"/api/properties/{property_id}/packages", params={"status": "pending"}).json()
    assert {p["recipient_name"] for p in pending} == {"Zed Young", "Ana Lopez"}

    searched = client.get(f"/api/properties/{property_id}/packages", params={"search": "zed"}).json()
    assert [p["apartment_number"] for p in searched] == ["300"]
    by_tracking = client.get(f"/api/properties/{property_id}/packages", params={"search": "track-c"}).json()
    assert [p["recipient_name"] for p in by_tracking] == ["Cal Moss"]

    by_apt = client.get(f"/api/properties/{property_id}/packages", params={"sort_by": "apartment_number"}).json()
    assert [p["apartment_number"] for p in by_apt] == ["101", "205", "300"]

    page = client.get(
        f"/api/properties/{property_id}/packages",
        params={"sort_by": "apartment_number", "limit": 1, "offset": 1},
    ).json()
    assert [p["apartment_number"] for p in page] == ["205"]

    assert client.get(f"/api/properties/{property_id}/packages", params={"sort_by": "size"}).status_code == 400
    assert client.get(f"/api/properties/{property_id}/packages", params={"status": "lost"}).status_code == 400


def test_status_change_stamps_dates(client, login, property_id):
    login("agent")
    pkg = _package(client, property_id)

    picked = client.patch(f"/api/packages/{pkg['id']}", json={"status": "picked_up", "picked_up_by_agent": "Jordan"})
    assert picked.status_code == 200
    assert picked.json()["picked_up_date"] is not None
    assert picked.json()["picked_up_by_agent"] == "Jordan"

    other = _package(client, property_id)
    returned = client.patch(
        f"/api/packages/{other['id']}",
        json={"status": "returned_to_sender", "returned_date": "2026-03-01T10:00:00"},
    ).json()
    assert returned["returned_date"] == "2026-03-01T10:00:00"

    assert client.patch("/api/packages/missing", json={"notes": "x"}).status_code == 404


def test_alerts_flag_old_pending_packages(client, login, property_id):
    login("agent")
    overdue = _package(client, property_id, recipient_name="Old", received_date=_days_ago(8))
    warning = _package(client, property_id, recipient_name="Middle", received_date=_days_ago(4))
    _package(client, property_id, recipient_name="Fresh", received_date=_days_ago(1))
    _package(client, property_id, recipient_name="Held", received_date=_days_ago(10), keep_extended=True)
    gone = _package(client, property_id, recipient_name="Gone", received_date=_days_ago(12))
    client.patch(f"/api/packages/{gone['id']}", json={"status": "picked_up"})

    alerts = client.get(f"/api/properties/{property_id}/packages/alerts")
    assert alerts.status_code == 200
    body = alerts.json()
    assert [(a["package"]["id"], a["level"]) for a in body] == [
        (overdue["id"], "overdue"),
        (warning["id"], "warning"),
    ]
    assert body[0]["days_old"] == 8
    assert body[1]["days_old"] == 4


def test_count_by_shift_and_date(client, login, property_id):
    login("agent")
    _package(client, property_id, received_date="2026-03-02T09:00:00", received_shift="1st")
    _package(client, property_id, received_date="2026-03-02T10:30:00", received_shift="1st")
    _package(client, property_id, received_date="2026-03-02T16:00:00", received_shift="2nd")
    _package(client, property_id, received_date="2026-03-03T09:00:00", received_shift="1st")

    res = client.get(f"/api/properties/{property_id}/packages/count", params={"shift": "1st", "date": "2026-03-02"})
    assert res.status_code == 200
    assert res.json() == {"count": 2}
    evening = client.get(f"/api/properties/{property_id}/packages/count", params={"shift": "2nd", "date": "2026-03-02"})
    assert evening.json() == {"count": 1}


def test_delete_and_unknown_property(client, login, property_id):
    login("agent")
    pkg = _package(client, property_id)
    assert client.delete(f"/api/packages/{pkg['id']}").status_code == 200
    assert client.delete(f"/api/packages/{pkg['id']}").status_code == 404
    assert client.get("/api/properties/missing/packages").status_code == 404


def test_null_for_required_package_fields_is_rejected(client, login, property_id):
    login("agent")
    pkg = _package(client, property_id)

    for field in ("recipient_name", "apartment_number", "status", "keep_extended"):
        res = client.patch(f"/api/packages/{pkg['id']}", json={field: None})
        assert res.status_code == 400, field
        assert res.json()["detail"] == "Invalid request data"

    cleared = client.patch(f"/api/packages/{pkg['id']}", json={"carrier": None, "notes": None})
    assert cleared.status_code == 200
    assert cleared.json()["carrier"] is None
    assert cleared.json()["recipient_name"] == "Ana Lopez"
