import threading
from decimal import Decimal

import pytest
from sqlalchemy.exc import DataError

from vendorsettle.db.database import SessionLocal
from vendorsettle.models.settlement import DailySalesRecord, SettlementLine, VendorSettlement
from vendorsettle.services.session_registry import settlement_sessions


@pytest.fixture
def open_session(client, worker_headers, vendor):
    response = client.post("/settlements/sessions", json={"date": "2026-10-19"}, headers=worker_headers)
    assert response.status_code == 201, response.text
    return response.json()


def _url(session, suffix=""):
    return f"/settlements/sessions/{session['session_id']}{suffix}"


def _prepare_locked_day(client, headers, session, vendor, item_id, taken=20, returned=2):
    assert client.post(_url(session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=headers).status_code == 200
    taken_url = _url(session, f"/vendors/{vendor['id']}/items/{item_id}/taken")
    assert client.put(taken_url, json={"quantity": taken}, headers=headers).status_code == 200
    assert client.post(_url(session, "/lock"), headers=headers).status_code == 200
    returned_url = _url(session, f"/vendors/{vendor['id']}/items/{item_id}/returned")
    response = client.put(returned_url, json={"quantity": returned}, headers=headers)
    assert response.status_code == 200
    return response.json()


def test_new_session_snapshots_active_catalog(open_session):
    assert open_session["phase"] == "open"
    assert open_session["morning_locked"] is False
    assert open_session["date"] == "2026-10-19"
    assert open_session["vendors"] == []
    assert Decimal(open_session["totals"]["total_revenue"]) == 0


def test_full_day_is_recorded_once(client, worker_headers, owner_headers, open_session, vendor, catalog):
    popsicle_id = catalog["popsicle"]["id"]
    locked = _prepare_locked_day(client, worker_headers, open_session, vendor, popsicle_id)

    assert locked["phase"] == "locked"
    amina = locked["vendors"][0]
    line = next(item for item in amina["items"] if item["item_id"] == popsicle_id)
    assert line["quantity_sold"] == 18
    assert Decimal(amina["totals"]["total_revenue"]) == Decimal("63.00")
    assert Decimal(amina["totals"]["commission"]) == Decimal("5.355")
    assert Decimal(locked["totals"]["total_net_profit"]) == Decimal("21.645")

    submitted = client.post(_url(open_session, "/submit"), headers=worker_headers)
    assert submitted.status_code == 200, submitted.text
    body = submitted.json()
    assert body["already_recorded"] is False
    record = body["record"]
    assert record["sale_date"] == "2026-10-19"
    assert Decimal(record["total_revenue"]) == Decimal("63")
    assert Decimal(record["total_cost"]) == Decimal("36")
    assert Decimal(record["gross_profit"]) == Decimal("27")
    assert Decimal(record["total_vendor_commission"]) == Decimal("5.355")
    assert Decimal(record["total_net_profit"]) == Decimal("21.645")
    assert [v["vendor_name"] for v in record["vendors"]] == ["Amina"]
    assert [item["item_name"] for item in record["vendors"][0]["items"]] == ["Mango Popsicle"]

    fresh = body["session"]
    assert fresh["phase"] == "open"
    assert fresh["vendors"] == []
    assert fresh["session_key"] != record["session_key"]
    assert fresh["date"] == "2026-10-19"

    resubmit = client.post(_url(open_session, "/submit"), headers=worker_headers)
    assert resubmit.status_code == 400
    assert resubmit.json()["detail"] == "no vendor selected"

    with SessionLocal() as db:
        assert db.query(DailySalesRecord).count() == 1
        assert db.query(VendorSettlement).count() == 1
        assert db.query(SettlementLine).count() == 1

    refreshed_vendor = client.get(f"/vendors/{vendor['id']}", headers=owner_headers).json()
    assert Decimal(refreshed_vendor["total_sales"]) == Decimal("63")


def test_idempotency_key_replays_existing_record(client, worker_headers, open_session, vendor, catalog):
    popsicle_id = catalog["popsicle"]["id"]
    _prepare_locked_day(client, worker_headers, open_session, vendor, popsicle_id)
    headers = {**worker_headers, "Idempotency-Key": "tablet-7-2026-10-19"}

    first = client.post(_url(open_session, "/submit"), headers=headers).json()
    assert first["already_recorded"] is False
    assert first["record"]["session_key"] == "tablet-7-2026-10-19"

    replay = client.post(_url(open_session, "/submit"), headers=headers).json()
    assert replay["already_recorded"] is True
    assert replay["record"]["id"] == first["record"]["id"]

    with SessionLocal() as db:
        assert db.query(DailySalesRecord).count() == 1


def test_submit_requires_lock(client, worker_headers, open_session, vendor, catalog):
    client.post(_url(open_session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=worker_headers)
    client.put(
        _url(open_session, f"/vendors/{vendor['id']}/items/{catalog['popsicle']['id']}/taken"),
        json={"quantity": 3},
        headers=worker_headers,
    )
    response = client.post(_url(open_session, "/submit"), headers=worker_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "morning stock not locked"


def test_lock_without_taken_stock_fails(client, worker_headers, open_session, vendor):
    response = client.post(_url(open_session, "/lock"), headers=worker_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "no items taken"

    client.post(_url(open_session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=worker_headers)
    response = client.post(_url(open_session, "/lock"), headers=worker_headers)
    assert response.status_code == 400
    assert client.get(_url(open_session), headers=worker_headers).json()["phase"] == "open"


def test_locked_session_refuses_morning_edits(client, worker_headers, owner_headers, open_session, vendor, catalog, make_vendor):
    popsicle_id = catalog["popsicle"]["id"]
    _prepare_locked_day(client, worker_headers, open_session, vendor, popsicle_id, taken=5, returned=0)
    other = make_vendor("Baraka", "7")

    taken = client.put(
        _url(open_session, f"/vendors/{vendor['id']}/items/{popsicle_id}/taken"),
        json={"quantity": 50},
        headers=worker_headers,
    )
    assert taken.status_code == 409
    assert client.post(_url(open_session, "/vendors"), json={"vendor_id": other["id"]}, headers=worker_headers).status_code == 409
    assert client.delete(_url(open_session, f"/vendors/{vendor['id']}"), headers=worker_headers).status_code == 409
    assert client.post(_url(open_session, "/lock"), headers=worker_headers).status_code == 409
    ad_hoc = client.post(_url(open_session, "/vendors/ad-hoc"), json={"name": "Late", "commission_rate": "5"}, headers=worker_headers)
    assert ad_hoc.status_code == 409

    state = client.get(_url(open_session), headers=worker_headers).json()
    line = next(item for item in state["vendors"][0]["items"] if item["item_id"] == popsicle_id)
    assert line["quantity_taken"] == 5
    assert [v["vendor_id"] for v in state["vendors"]] == [vendor["id"]]


def test_returned_before_lock_conflicts(client, worker_headers, open_session, vendor, catalog):
    client.post(_url(open_session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=worker_headers)
    response = client.put(
        _url(open_session, f"/vendors/{vendor['id']}/items/{catalog['popsicle']['id']}/returned"),
        json={"quantity": 1},
        headers=worker_headers,
    )
    assert response.status_code == 409


def test_negative_and_excess_quantities(client, worker_headers, open_session, vendor, catalog):
    popsicle_id = catalog["popsicle"]["id"]
    client.post(_url(open_session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=worker_headers)
    taken_url = _url(open_session, f"/vendors/{vendor['id']}/items/{popsicle_id}/taken")
    state = client.put(taken_url, json={"quantity": -4}, headers=worker_headers).json()
    line = next(item for item in state["vendors"][0]["items"] if item["item_id"] == popsicle_id)
    assert line["quantity_taken"] == 0

    client.put(taken_url, json={"quantity": 3}, headers=worker_headers)
    client.post(_url(open_session, "/lock"), headers=worker_headers)
    state = client.put(
        _url(open_session, f"/vendors/{vendor['id']}/items/{popsicle_id}/returned"),
        json={"quantity": 8},
        headers=worker_headers,
    ).json()
    line = next(item for item in state["vendors"][0]["items"] if item["item_id"] == popsicle_id)
    assert line["quantity_returned"] == 8
    assert line["quantity_sold"] == 0


def test_deselect_and_unknown_entities(client, worker_headers, open_session, vendor, catalog):
    client.post(_url(open_session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=worker_headers)
    state = client.delete(_url(open_session, f"/vendors/{vendor['id']}"), headers=worker_headers).json()
    assert state["vendors"] == []
    assert client.delete(_url(open_session, f"/vendors/{vendor['id']}"), headers=worker_headers).status_code == 404

    missing_vendor = client.put(
        _url(open_session, f"/vendors/{vendor['id']}/items/{catalog['popsicle']['id']}/taken"),
        json={"quantity": 1},
        headers=worker_headers,
    )
    assert missing_vendor.status_code == 404
    assert client.post(_url(open_session, "/vendors"), json={"vendor_id": 9999}, headers=worker_headers).status_code == 404


def test_inactive_vendor_cannot_be_selected(client, owner_headers, worker_headers, open_session, vendor):
    client.delete(f"/vendors/{vendor['id']}", headers=owner_headers)
    response = client.post(_url(open_session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=worker_headers)
    assert response.status_code == 400


def test_ad_hoc_vendor_is_created_and_selected(client, worker_headers, owner_headers, open_session):
    response = client.post(
        _url(open_session, "/vendors/ad-hoc"),
        json={"name": "  Zawadi ", "commission_rate": 6},
        headers=worker_headers,
    )
    assert response.status_code == 201, response.text
    assert [v["vendor_name"] for v in response.json()["vendors"]] == ["Zawadi"]
    assert [v["name"] for v in client.get("/vendors", headers=owner_headers).json()] == ["Amina", "Zawadi"]

    bad = client.post(
        _url(open_session, "/vendors/ad-hoc"),
        json={"name": "Juma", "commission_rate": "150"},
        headers=worker_headers,
    )
    assert bad.status_code == 422


def test_sessions_belong_to_their_creator(client, owner_headers, other_owner_headers, open_session):
    assert client.get(_url(open_session), headers=owner_headers).status_code == 403
    assert client.get(_url(open_session), headers=other_owner_headers).status_code == 403
    assert client.get("/settlements/sessions/not-a-session", headers=owner_headers).status_code == 404


def test_abandon_session(client, worker_headers, open_session):
    response = client.delete(_url(open_session), headers=worker_headers)
    assert response.status_code == 200
    assert client.get(_url(open_session), headers=worker_headers).status_code == 404


def test_oversized_quantity_is_rejected_before_it_reaches_the_session(client, worker_headers, open_session, vendor, catalog):
    popsicle_id = catalog["popsicle"]["id"]
    client.post(_url(open_session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=worker_headers)
    taken_url = _url(open_session, f"/vendors/{vendor['id']}/items/{popsicle_id}/taken")
    client.put(taken_url, json={"quantity": 4}, headers=worker_headers)

    assert client.put(taken_url, json={"quantity": 10**20}, headers=worker_headers).status_code == 422
    assert client.put(taken_url, json={"quantity": 2.5}, headers=worker_headers).status_code == 422

    state = client.get(_url(open_session), headers=worker_headers).json()
    line = next(item for item in state["vendors"][0]["items"] if item["item_id"] == popsicle_id)
    assert line["quantity_taken"] == 4


def test_unstorable_amounts_leave_the_session_locked(client, worker_headers, open_session, vendor, catalog, monkeypatch):
    popsicle_id = catalog["popsicle"]["id"]
    _prepare_locked_day(client, worker_headers, open_session, vendor, popsicle_id)

    def overflowing_store(*args, **kwargs):
        raise DataError("INSERT INTO daily_sales_records", {}, Exception("numeric field overflow"))

    monkeypatch.setattr("vendorsettle.api.routes.settlements.store_settlement_record", overflowing_store)
    response = client.post(_url(open_session, "/submit"), headers=worker_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Settlement amounts exceed the storable range"

    state = client.get(_url(open_session), headers=worker_headers).json()
    assert state["phase"] == "locked"
    with SessionLocal() as db:
        assert db.query(DailySalesRecord).count() == 0

    monkeypatch.undo()
    retry = client.post(_url(open_session, "/submit"), headers=worker_headers)
    assert retry.status_code == 200, retry.text
    assert retry.json()["record"]["session_key"] == state["session_key"]


def test_requests_on_one_session_are_serialized(client, worker_headers, open_session, vendor, catalog):
    popsicle_id = catalog["popsicle"]["id"]
    client.post(_url(open_session, "/vendors"), json={"vendor_id": vendor["id"]}, headers=worker_headers)
    taken_url = _url(open_session, f"/vendors/{vendor['id']}/items/{popsicle_id}/taken")
    entry = settlement_sessions.get(open_session["session_id"])
    responses = []

    def put_taken():
        responses.append(client.put(taken_url, json={"quantity": 7}, headers=worker_headers))

    with entry.lock:
        worker = threading.Thread(target=put_taken)
        worker.start()
        worker.join(0.3)
        assert worker.is_alive()
        assert entry.session.settlements[vendor["id"]].line(popsicle_id).quantity_taken == 0

    worker.join(5)
    assert not worker.is_alive()
    assert responses[0].status_code == 200
    assert entry.session.settlements[vendor["id"]].line(popsicle_id).quantity_taken == 7
