# tests/test_requests_api.py

"""
HTTP tests for the client-facing request endpoints.
"""

from fastapi.testclient import TestClient

from models.enums import RequestKind


# ---------------------------------------------------------
# POST /requests/visit
# ---------------------------------------------------------
def test_create_visit_request(client: TestClient, login, client_user, store, notifier, tomorrow_slot):
    login(client_user)

    response = client.post(
        "/requests/visit",
        json={
            "requestedSlots": [tomorrow_slot],
            "property": {"id": "P1", "name": "Residencial Aurora"},
            "unit": {"id": "U1", "identifier": "101"},
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    row = store.get_request(RequestKind.visits, data["id"])
    assert row["property_id"] == "P1"
    assert row["unit_id"] == "U1"
    assert notifier.names == ["visit_requested"]


def test_create_visit_request_requires_session(client: TestClient, tomorrow_slot):
    response = client.post(
        "/requests/visit",
        json={"requestedSlots": [tomorrow_slot], "propertyId": "P1", "unitId": "U1"},
    )
    assert response.status_code == 401


def test_visit_slot_outside_window(client: TestClient, login, client_user, store, tz):
    from datetime import datetime

    login(client_user)
    today = datetime.now(tz).replace(hour=23, minute=0, second=0, microsecond=0).isoformat()

    response = client.post(
        "/requests/visit",
        json={"requestedSlots": [today], "propertyId": "P1", "unitId": "U1"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"
    assert store.rows(RequestKind.visits) == []


def test_duplicate_visit_request(client: TestClient, login, client_user, pending_visit, tomorrow_slot):
    login(client_user)
    response = client.post(
        "/requests/visit",
        json={"requestedSlots": [tomorrow_slot], "propertyId": "P1", "unitId": "U2"},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE"


def test_malformed_body_is_bad_request(client: TestClient, login, client_user):
    login(client_user)
    response = client.post("/requests/visit", json={"requestedSlots": "amanhã"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Corpo da requisição inválido"


# ---------------------------------------------------------
# POST /requests/reservation
# ---------------------------------------------------------
def test_create_reservation_request(client: TestClient, login, client_user, store):
    login(client_user)

    response = client.post(
        "/requests/reservation",
        json={"propertyId": "P1", "unitId": "U1", "clientMsg": "Gostaria de reservar"},
    )

    assert response.status_code == 200
    row = store.get_request(RequestKind.reservations, response.json()["id"])
    assert row["transaction_docs"] == {"identityDoc": ["rg.pdf"]}
    assert row["client_msg"] == "Gostaria de reservar"


def test_reservation_for_reserved_unit(client: TestClient, login, client_user, store):
    login(client_user)
    store.units["U1"]["is_available"] = False

    response = client.post("/requests/reservation", json={"propertyId": "P1", "unitId": "U1"})

    assert response.status_code == 409
    assert response.json() == {
        "detail": "A unidade selecionada já não está mais disponível.",
        "code": "UNIT_UNAVAILABLE",
    }


# ---------------------------------------------------------
# GET /user/requests
# ---------------------------------------------------------
def test_list_my_requests_only_returns_own_rows(client: TestClient, login, client_user, store, pending_reservation):
    store.add_request(RequestKind.reservations, client_id="client-2", property_id="P1", unit_id="U2")
    login(client_user)

    response = client.get("/user/requests?type=reservations")

    assert response.status_code == 200
    data = response.json()
    assert [r["id"] for r in data["requests"]] == ["R1"]
    assert data["requests"][0]["clientId"] == "client-1"
    assert data["nextCursor"] is None


def test_list_my_requests_pages_with_cursor(client: TestClient, login, client_user, store):
    for i in range(12):
        store.add_request(
            RequestKind.visits,
            id=f"V{i:02d}",
            client_id="client-1",
            property_id="P1",
            status="denied",
            created_at=f"2025-03-01T10:{i:02d}:00+00:00",
        )
    login(client_user)

    first = client.get("/user/requests?type=visits").json()
    assert len(first["requests"]) == 10
    assert first["requests"][0]["id"] == "V11"
    assert first["nextCursor"] == 10

    second = client.get(f"/user/requests?type=visits&cursor={first['nextCursor']}").json()
    assert [r["id"] for r in second["requests"]] == ["V01", "V00"]
    assert second["nextCursor"] is None


def test_list_my_requests_rejects_unknown_type(client: TestClient, login, client_user):
    login(client_user)
    response = client.get("/user/requests?type=sales")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid type parameter. Use 'visits' or 'reservations'."


# ---------------------------------------------------------
# DELETE /user/requests/{id}
# ---------------------------------------------------------
def test_withdraw_pending_request(client: TestClient, login, client_user, store, pending_reservation):
    login(client_user)
    response = client.delete("/user/requests/R1?type=reservations")
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert store.rows(RequestKind.reservations) == []


def test_withdraw_someone_elses_request(client: TestClient, login, store, pending_reservation):
    from dependencies.auth import CurrentUser

    login(CurrentUser(id="client-2", role="client"))
    response = client.delete("/user/requests/R1?type=reservations")
    assert response.status_code == 403
    assert response.json()["detail"] == "Forbidden"


def test_withdraw_approved_request(client: TestClient, login, client_user, store):
    store.add_request(RequestKind.visits, id="VA", client_id="client-1", property_id="P1", status="approved")
    login(client_user)

    response = client.delete("/user/requests/VA?type=visits")

    assert response.status_code == 409
    assert response.json()["detail"] == "Only pending requests can be canceled"


def test_withdraw_missing_request(client: TestClient, login, client_user):
    login(client_user)
    response = client.delete("/user/requests/nope?type=visits")
    assert response.status_code == 404


# ---------------------------------------------------------
# GET /properties/{pid}/units/{uid}/approved-visits
# ---------------------------------------------------------
def test_approved_visit_slots_are_public(client: TestClient, store):
    store.add_request(
        RequestKind.visits,
        client_id="client-2",
        property_id="P1",
        unit_id="U1",
        status="approved",
        scheduled_slot="2025-03-14T13:00:00+00:00",
    )
    store.add_request(RequestKind.visits, client_id="client-1", property_id="P1", unit_id="U1")

    response = client.get("/properties/P1/units/U1/approved-visits")

    assert response.status_code == 200
    assert response.json() == {"scheduledSlots": ["2025-03-14T13:00:00+00:00"]}


# ---------------------------------------------------------
# Failures the caller must not see the details of
# ---------------------------------------------------------
def test_store_failure_is_internal_error(app, store, login, client_user, monkeypatch):
    from core.errors import StoreError

    def broken(*args, **kwargs):
        raise StoreError("count live reservation requests", "connection refused")

    monkeypatch.setattr(store, "count_live_reservations", broken)
    login(client_user)

    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.post("/requests/reservation", json={"propertyId": "P1", "unitId": "U1"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
