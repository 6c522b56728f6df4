from decimal import Decimal

import pytest


@pytest.fixture
def recorded_day(client, worker_headers, vendor, catalog):
    session = client.post("/settlements/sessions", json={"date": "2026-10-19"}, headers=worker_headers).json()
    base = f"/settlements/sessions/{session['session_id']}"
    item_url = f"{base}/vendors/{vendor['id']}/items/{catalog['popsicle']['id']}"

    client.post(f"{base}/vendors", json={"vendor_id": vendor["id"]}, headers=worker_headers)
    client.put(f"{item_url}/taken", json={"quantity": 20}, headers=worker_headers)
    client.post(f"{base}/lock", headers=worker_headers)
    client.put(f"{item_url}/returned", json={"quantity": 2}, headers=worker_headers)
    response = client.post(f"{base}/submit", headers=worker_headers)
    assert response.status_code == 200, response.text
    return response.json()["record"]


def test_sales_history(client, owner_headers, recorded_day):
    history = client.get("/sales", headers=owner_headers).json()
    assert [record["id"] for record in history] == [recorded_day["id"]]
    assert history[0]["vendors"][0]["items"][0]["quantity_sold"] == 18

    later = client.get("/sales", params={"date_from": "2026-10-20"}, headers=owner_headers).json()
    assert later == []
    window = client.get(
        "/sales",
        params={"date_from": "2026-10-01", "date_to": "2026-10-31"},
        headers=owner_headers,
    ).json()
    assert len(window) == 1


def test_daily_report_and_single_record(client, owner_headers, recorded_day):
    daily = client.get("/sales/daily/2026-10-19", headers=owner_headers).json()
    assert [record["session_key"] for record in daily] == [recorded_day["session_key"]]
    assert client.get("/sales/daily/2026-10-18", headers=owner_headers).json() == []

    single = client.get(f"/sales/{recorded_day['id']}", headers=owner_headers)
    assert Decimal(single.json()["total_net_profit"]) == Decimal("21.645")
    assert client.get("/sales/9999", headers=owner_headers).status_code == 404


def test_vendor_sales_history(client, owner_headers, vendor, recorded_day):
    sales = client.get(f"/vendors/{vendor['id']}/sales", headers=owner_headers).json()
    assert len(sales) == 1
    assert Decimal(sales[0]["vendor_commission"]) == Decimal("5.355")
    assert sales[0]["record_id"] == recorded_day["id"]
    empty = client.get(f"/vendors/{vendor['id']}/sales", params={"date_to": "2026-10-01"}, headers=owner_headers)
    assert empty.json() == []


def test_sales_are_hidden_from_workers_and_other_businesses(client, worker_headers, other_owner_headers, recorded_day):
    assert client.get("/sales", headers=worker_headers).status_code == 403
    assert client.get("/sales", headers=other_owner_headers).json() == []
    assert client.get(f"/sales/{recorded_day['id']}", headers=other_owner_headers).status_code == 403


def test_dashboard(client, owner_headers, recorded_day, make_item):
    make_item("Strawberry Cup", "2.00", "1.00", stock=3)
    stats = client.get("/reports/dashboard", headers=owner_headers).json()
    assert Decimal(stats["total_revenue"]) == Decimal("63")
    assert Decimal(stats["total_profit"]) == Decimal("21.645")
    assert stats["total_vendors"] == 1
    assert stats["total_products"] == 3
    assert stats["low_stock_items"] == 1


def test_monthly_report(client, owner_headers, recorded_day):
    report = client.get("/reports/monthly", params={"month": "2026-10"}, headers=owner_headers).json()
    assert report["period_from"] == "2026-10-01"
    assert report["period_to"] == "2026-10-31"
    assert report["total_settlements"] == 1
    assert Decimal(report["total_revenue"]) == Decimal("63")
    assert Decimal(report["total_vendor_commission"]) == Decimal("5.355")
    assert Decimal(report["net_profit"]) == Decimal("21.645")

    [category] = report["categories"]
    assert category["category"] == "Ice Cream"
    assert Decimal(category["total_revenue"]) == Decimal("63")
    assert Decimal(category["gross_profit"]) == Decimal("27")
    assert category["quantity_sold"] == 18

    [vendor_row] = report["vendors"]
    assert vendor_row["vendor_name"] == "Amina"
    assert vendor_row["settlements"] == 1

    quiet = client.get("/reports/monthly", params={"month": "2026-09"}, headers=owner_headers).json()
    assert quiet["total_settlements"] == 0
    assert quiet["categories"] == []


def test_monthly_report_rejects_bad_month(client, owner_headers):
    assert client.get("/reports/monthly", params={"month": "2026-13"}, headers=owner_headers).status_code == 400
    assert client.get("/reports/monthly", params={"month": "October"}, headers=owner_headers).status_code == 422
