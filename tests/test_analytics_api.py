import pytest

from app.core.config import settings
from app.models.transaction import TransactionInDB
from app.utils import exporter

MARCH = "start_date=2025-03-01&end_date=2025-03-31"


@pytest.fixture
def march(store, user):
    rows = [
        ("income", 3000, "Salary", "2025-03-01T09:00:00"),
        ("expense", 500, "Housing", "2025-03-02T10:00:00"),
        ("expense", 125, "Food & Dining", "2025-03-03T12:00:00"),
        ("expense", 125, "Food & Dining", "2025-03-03T19:00:00"),
        ("expense", 80, "Travel", "2025-02-20T12:00:00"),
    ]
    for type_, amount, category, date in rows:
        transaction = TransactionInDB(user_id=user["user_id"], type=type_, amount=amount, category=category, date=date)
        store.put_transaction(transaction.model_dump(mode="json"))


def get_data(client, headers, path):
    response = client.get(path, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]


def test_overview_for_custom_range(client, auth_headers, march):
    overview = get_data(client, auth_headers, f"/api/analytics/overview?{MARCH}")
    assert overview == {
        "total_income": 3000.0,
        "total_expenses": 750.0,
        "net_savings": 2250.0,
        "savings_rate": 75.0,
        "transaction_count": 4,
    }


def test_category_breakdown_and_top_categories(client, auth_headers, march):
    breakdown = get_data(client, auth_headers, f"/api/analytics/category-breakdown?{MARCH}")
    assert [(row["category"], row["total"], row["percentage"]) for row in breakdown] == [
        ("Housing", 500.0, 66.67),
        ("Food & Dining", 250.0, 33.33),
    ]
    assert breakdown[0]["icon"] == "🏠"

    top = get_data(client, auth_headers, f"/api/analytics/top-categories?limit=1&{MARCH}")
    assert [row["category"] for row in top] == ["Housing"]


def test_daily_trend_groups_by_day(client, auth_headers, march):
    trend = get_data(client, auth_headers, f"/api/analytics/daily-trend?{MARCH}")
    assert [(day["date"], day["expenses"]) for day in trend] == [
        ("2025-03-01", 0.0), ("2025-03-02", 500.0), ("2025-03-03", 250.0),
    ]


def test_comparison_with_previous_period(client, auth_headers, march):
    data = get_data(client, auth_headers, f"/api/analytics/comparison?{MARCH}")
    assert data["current"]["total_expenses"] == 750.0
    assert data["previous"]["total_expenses"] == 80.0


def test_monthly_comparison_returns_requested_months(client, auth_headers):
    months = get_data(client, auth_headers, "/api/analytics/monthly-comparison?months=3")
    assert len(months) == 3
    assert all(m["income"] == 0 and m["expenses"] == 0 for m in months)


@pytest.mark.parametrize("query", [
    "start_date=2025-03-10&end_date=2025-03-01",
    "period=custom&start_date=2025-03-01",
    "start_date=yesterday&end_date=2025-03-01",
])
def test_invalid_custom_range(client, auth_headers, query):
    response = client.get(f"/api/analytics/overview?{query}", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_analytics_dashboard_and_report_carry_range(client, auth_headers, march):
    dashboard = get_data(client, auth_headers, f"/api/analytics/dashboard?{MARCH}")
    assert dashboard["date_range"] == {
        "start_date": "2025-03-01T00:00:00.000",
        "end_date": "2025-03-31T23:59:59.999",
        "label": "Custom Range",
    }
    assert dashboard["overview"]["net_savings"] == 2250.0

    report = get_data(client, auth_headers, "/api/analytics/report?period=last-year")
    assert report["date_range"]["label"] == "Last Year"


def test_home_dashboard(client, auth_headers, march, store, user):
    store.put_budget({
        "user_id": user["user_id"], "budget_id": "b1", "name": "", "category": "Housing", "amount": 550,
        "spent": 0, "period": "monthly", "start_date": "2025-03-01T00:00:00.000",
        "end_date": "2025-04-01T00:00:00.000", "alert_threshold": 80, "is_active": True, "notes": "",
        "created_at": "2025-03-01T00:00:00.000",
    })
    data = get_data(client, auth_headers, f"/api/dashboard/?{MARCH}")

    assert data["period"]["label"] == "Custom Range"
    assert len(data["recent_transactions"]) == 4
    assert data["recent_transactions"][0]["date"].startswith("2025-03-03T19")
    assert data["top_categories"][0]["category"] == "Housing"
    assert data["budget_summary"]["total_spent"] == 500.0
    assert data["budget_summary"]["at_risk"] == 1
    assert data["unread_notifications"] == 0


def test_summary_card(client, auth_headers, march):
    card = get_data(client, auth_headers, f"/api/dashboard/summary-card?{MARCH}")
    assert card["total_expenses"] == 750.0
    assert card["changes"]["expenses"]["amount"] == 670.0


# Export

def test_transactions_csv_export(client, auth_headers, march):
    response = client.get(f"/api/export/transactions.csv?{MARCH}", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"].startswith('attachment; filename="transactions_')
    lines = response.text.strip().splitlines()
    assert lines[0] == ",".join(exporter.TRANSACTION_FIELDS)
    assert len(lines) == 5


def test_report_pdf_download(client, auth_headers, march):
    response = client.get(f"/api/export/report.pdf?{MARCH}", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_report_pdf_archive(client, auth_headers, march, monkeypatch):
    monkeypatch.setattr(exporter, "upload_report", lambda user_id, pdf, report_id: f"https://bucket/{report_id}.pdf")
    data = get_data(client, auth_headers, "/api/export/report.pdf?archive=true")
    assert data["url"] == f"https://bucket/{data['report_id']}.pdf"


def test_report_pdf_archive_failure(client, auth_headers, monkeypatch):
    monkeypatch.setattr(exporter, "upload_report", lambda user_id, pdf, report_id: None)
    response = client.get("/api/export/report.pdf?archive=true", headers=auth_headers)
    assert response.status_code == 502
    assert response.json() == {"success": False, "message": "Report could not be archived"}


def test_data_json_export(client, auth_headers, march):
    data = get_data(client, auth_headers, "/api/export/data.json")
    assert data["user"]["email"] == "alex@example.com"
    assert data["summary"]["transaction_count"] == 5
    assert all("user_id" not in t for t in data["transactions"])


# AI, health and settings

def test_ai_advice_offline(client, auth_headers, march, monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    response = client.post(f"/api/ai/advice?{MARCH}", json={"question": "Where can I save?"}, headers=auth_headers)
    data = response.json()["data"]
    assert data["mode"] == "offline"
    assert "Question: Where can I save?" in data["advice"]
    assert data["overview"]["total_expenses"] == 750.0


def test_health(client):
    response = client.get("/api/health")
    assert response.json()["status"] == "healthy"


def test_status_reports_degraded_store(client, store):
    assert client.get("/api/status").json()["overall_status"] == "healthy"
    store.failing = True
    body = client.get("/api/status").json()
    assert body["overall_status"] == "degraded"
    assert body["services"]["dynamodb"]["connected"] is False
    assert body["services"]["websocket"] == {"connections": 0}


def test_settings_endpoints(client, auth_headers):
    scheduler = get_data(client, auth_headers, "/api/settings/scheduler")
    assert scheduler["running"] is False
    thresholds = get_data(client, auth_headers, "/api/settings/analytics")
    assert thresholds["budget_warning_threshold"] == settings.BUDGET_WARNING_THRESHOLD

    run = client.post("/api/settings/scheduler/run", headers=auth_headers).json()["data"]
    assert run == {"processed": 0, "deactivated": 0, "errors": [], "notifications": 0}
