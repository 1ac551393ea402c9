from frontdesk.residents import auto_map_columns, parse_csv, preview_import, validate_rows

CSV_TEXT = (
    "\ufeffUnit,Resident Name,Email Address,Phone,Move In,Lease End\n"
    "101,Ana Lopez,ana@example.com,555-0100,2025-01-15,2026-01-14\n"
    "102,Ben Ode,,,,\n"
    ",,,,,\n"
)


def test_auto_map_columns_by_substring():
    mapping = auto_map_columns(["Unit", "Resident Name", "Email Address", "Tel", "Move In", "Lease End"])
    assert mapping == {
        "apartment_number": "Unit",
        "resident_name": "Resident Name",
        "email": "Email Address",
        "phone": "Tel",
        "move_in_date": "Move In",
        "lease_end_date": "Lease End",
    }


def test_auto_map_later_header_overrides_earlier():
    mapping = auto_map_columns(["Apartment", "Apt"])
    assert mapping["apartment_number"] == "Apt"


def test_parse_csv_strips_bom_and_blank_rows():
    headers, rows = parse_csv(CSV_TEXT)
    assert headers[0] == "Unit"
    assert len(rows) == 2
    assert rows[1]["Resident Name"] == "Ben Ode"


def test_validate_rows_reports_each_problem():
    rows = [
        {"Unit": "", "Name": "Ana", "Email": "not-an-email", "Move": "01/02/2025"},
        {"Unit": "7", "Name": "", "Email": "", "Move": ""},
    ]
    mapping = {"apartment_number": "Unit", "resident_name": "Name", "email": "Email", "move_in_date": "Move"}
    errors = validate_rows(rows, mapping)
    assert {"row": 1, "field": "Apartment Number", "message": "Apartment number is required"} in errors
    assert {"row": 1, "field": "Email", "message": "Invalid email format"} in errors
    assert {"row": 1, "field": "Move-in Date", "message": "Date must be in YYYY-MM-DD format"} in errors
    assert {"row": 2, "field": "Resident Name", "message": "Resident name is required"} in errors
    assert len(errors) == 4


def test_validate_rows_requires_mapped_key_columns():
    errors = validate_rows([{"Email": "a@b.co"}], {"email": "Email"})
    assert [e["field"] for e in errors] == ["Apartment Number", "Resident Name"]
    assert all(e["row"] == 0 for e in errors)


def test_preview_rejects_mapping_to_missing_column():
    try:
        preview_import("Unit,Name\n1,A\n", {"apartment_number": "Unit", "resident_name": "Full Name"})
    except ValueError as exc:
        assert "Full Name" in str(exc)
    else:
        raise AssertionError("expected ValueError")


def test_preview_endpoint_returns_mapping_and_errors(client, login, property_id):
    login("admin")
    res = client.post(
        "/api/residents/import/preview",
        json={"property_id": property_id, "csv_text": "Apt,Name,Email\n5,Cara,bad-email\n"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["headers"] == ["Apt", "Name", "Email"]
    assert body["column_mapping"] == {"apartment_number": "Apt", "resident_name": "Name", "email": "Email"}
    assert body["row_count"] == 1
    assert body["errors"] == [{"row": 1, "field": "Email", "message": "Invalid email format"}]
    assert body["preview"][0]["Name"] == "Cara"


def test_csv_import_only_when_clean(client, login, property_id):
    login("admin")
    rejected = client.post(
        "/api/residents/import/csv",
        json={"property_id": property_id, "csv_text": "Apt,Name\n,Nobody\n"},
    )
    assert rejected.status_code == 400
    assert rejected.json()["detail"]["errors"][0]["field"] == "Apartment Number"
    assert client.get(f"/api/residents/{property_id}").json() == []

    imported = client.post("/api/residents/import/csv", json={"property_id": property_id, "csv_text": CSV_TEXT})
    assert imported.status_code == 200
    body = imported.json()
    assert body["success"] is True
    assert body["imported"] == 2

    listed = client.get(f"/api/residents/{property_id}").json()
    assert [(r["apartment_number"], r["resident_name"]) for r in listed] == [("101", "Ana Lopez"), ("102", "Ben Ode")]
    assert listed[0]["move_in_date"] == "2025-01-15"
    assert listed[1]["email"] is None


def test_bulk_import_rejects_empty_list(client, login, property_id):
    login("admin")
    empty = client.post("/api/residents/import", json={"residents": []})
    assert empty.status_code == 400

    res = client.post(
        "/api/residents/import",
        json={
            "residents": [
                {"property_id": property_id, "apartment_number": "201", "resident_name": "Dee"},
                {"property_id": property_id, "apartment_number": "201", "resident_name": "Eli"},
            ]
        },
    )
    assert res.status_code == 200
    assert res.json()["imported"] == 2


def test_import_is_manager_only(client, login, property_id):
    login("agent")
    res = client.post("/api/residents/import/csv", json={"property_id": property_id, "csv_text": CSV_TEXT})
    assert res.status_code == 403


def test_resident_crud_and_lookup(client, login, property_id):
    login("agent")
    created = client.post(
        "/api/residents",
        json={"property_id": property_id, "apartment_number": "305", "resident_name": "Fay", "email": "fay@example.com"},
    )
    assert created.status_code == 201
    resident_id = created.json()["id"]

    found = client.get(f"/api/residents/{property_id}/lookup", params={"apartment_number": "305"})
    assert [r["resident_name"] for r in found.json()] == ["Fay"]

    patched = client.patch(f"/api/residents/{resident_id}", json={"phone": "555-0199"})
    assert patched.status_code == 200
    assert patched.json()["phone"] == "555-0199"

    assert client.delete(f"/api/residents/{resident_id}").status_code == 200
    assert client.delete(f"/api/residents/{resident_id}").status_code == 404

    bad = client.post(
        "/api/residents",
        json={"property_id": property_id, "apartment_number": "1", "resident_name": "X", "email": "nope"},
    )
    assert bad.status_code == 400


def test_resident_update_validates_email_and_required_fields(client, login, property_id):
    login("agent")
    created = client.post(
        "/api/residents",
        json={"property_id": property_id, "apartment_number": "410", "resident_name": "Gil", "email": "gil@example.com"},
    )
    resident_id = created.json()["id"]

    bad_email = client.patch(f"/api/residents/{resident_id}", json={"email": "not-an-email"})
    assert bad_email.status_code == 400
    assert client.patch(f"/api/residents/{resident_id}", json={"resident_name": None}).status_code == 400
    assert client.patch(f"/api/residents/{resident_id}", json={"apartment_number": None}).status_code == 400

    found = client.get(f"/api/residents/{property_id}/lookup", params={"apartment_number": "410"}).json()
    assert found[0]["email"] == "gil@example.com"

    cleared = client.patch(f"/api/residents/{resident_id}", json={"email": None})
    assert cleared.status_code == 200
    assert cleared.json()["email"] is None
