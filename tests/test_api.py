"""
Tests for the HTTP routes: authentication, role checks, run/preview,
history, overview, projection, schedules, cron trigger and health.
"""

import pytest
from datetime import date
from decimal import Decimal

from assetops.core.config import settings
from assetops.models import DepreciationRecord


def money(value):
    return Decimal(str(value))


@pytest.fixture
def bu(business_unit):
    return business_unit.id


class TestAuth:

    def test_requires_token(self, client, bu):
        response = client.get(f"/api/v1/business-units/{bu}/depreciation/overview")
        assert response.status_code == 401

    def test_rejects_garbage_token(self, client, bu):
        response = client.get(
            f"/api/v1/business-units/{bu}/depreciation/overview",
            headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_rejects_other_business_unit(self, client, bu, auth_headers):
        response = client.get(
            f"/api/v1/business-units/{bu}/depreciation/overview",
            headers=auth_headers(business_unit_id=bu + 1)
        )
        assert response.status_code == 403


class TestRuns:

    def test_preview_writes_nothing(self, client, bu, make_asset, auth_headers, db_session):
        make_asset()
        response = client.post(
            f"/api/v1/business-units/{bu}/depreciation/preview",
            json={"calculation_date": "2024-01-31"},
            headers=auth_headers(role="VIEWER")
        )
        assert response.status_code == 200
        body = response.json()
        assert body["dry_run"] is True
        assert money(body["total_depreciation_amount"]) == Decimal("1000")
        assert body["details"][0]["status"] == "SUCCESS"
        assert db_session.query(DepreciationRecord).count() == 0

    def test_run_posts_records(self, client, bu, make_asset, auth_headers, db_session):
        make_asset()
        make_asset(monthly_depreciation=Decimal("0"))
        response = client.post(
            f"/api/v1/business-units/{bu}/depreciation/run",
            json={"calculation_date": "2024-01-31", "cadence": "MONTHLY"},
            headers=auth_headers(role="ACCTG")
        )
        assert response.status_code == 200
        body = response.json()
        assert body["successful_calculations"] == 1
        assert body["assets_without_setup"] == 1
        assert body["summary"]["by_category"][0]["category_name"] == "Equipment"
        assert db_session.query(DepreciationRecord).count() == 1

    def test_run_forbidden_for_viewer(self, client, bu, make_asset, auth_headers, db_session):
        make_asset()
        response = client.post(
            f"/api/v1/business-units/{bu}/depreciation/run",
            json={},
            headers=auth_headers(role="VIEWER")
        )
        assert response.status_code == 403
        assert db_session.query(DepreciationRecord).count() == 0

    def test_rejects_unknown_cadence(self, client, bu, auth_headers):
        response = client.post(
            f"/api/v1/business-units/{bu}/depreciation/preview",
            json={"cadence": "WEEKLY"},
            headers=auth_headers()
        )
        assert response.status_code == 422


class TestReads:

    def test_history_filters_by_period(self, client, bu, make_asset, auth_headers):
        make_asset()
        for day in ("2024-01-31", "2024-02-29"):
            client.post(
                f"/api/v1/business-units/{bu}/depreciation/run",
                json={"calculation_date": day},
                headers=auth_headers()
            )

        response = client.get(
            f"/api/v1/business-units/{bu}/depreciation/history",
            params={"period": "2024-02"},
            headers=auth_headers()
        )
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["records"][0]["depreciation_date"] == "2024-02-29"
        assert money(body["records"][0]["accumulated_depreciation"]) == Decimal("2000")

        everything = client.get(f"/api/v1/business-units/{bu}/depreciation/history", headers=auth_headers())
        assert everything.json()["total"] == 2

    def test_history_rejects_bad_period(self, client, bu, auth_headers):
        response = client.get(
            f"/api/v1/business-units/{bu}/depreciation/history",
            params={"period": "February"},
            headers=auth_headers()
        )
        assert response.status_code == 400

    def test_overview(self, client, bu, make_asset, auth_headers):
        make_asset()
        make_asset(current_book_value="60000.00")
        response = client.get(
            f"/api/v1/business-units/{bu}/depreciation/overview",
            params={"as_of": "2024-06-01"},
            headers=auth_headers()
        )
        assert response.status_code == 200
        body = response.json()
        assert body["total_assets"] == 2
        assert money(body["total_book_value"]) == Decimal("180000")
        assert money(body["total_accumulated_depreciation"]) == Decimal("60000")
        assert money(body["posted_this_month"]) == Decimal("0")

    def test_audit_logs(self, client, bu, make_asset, auth_headers):
        make_asset()
        client.post(
            f"/api/v1/business-units/{bu}/depreciation/run",
            json={"calculation_date": "2024-01-31"},
            headers=auth_headers()
        )

        response = client.get(
            f"/api/v1/business-units/{bu}/depreciation/audit-logs",
            params={"action": "DEPRECIATION_RUN"},
            headers=auth_headers()
        )
        assert response.status_code == 200
        logs = response.json()
        assert len(logs) == 1
        assert logs[0]["actor_id"] == "user-1"
        assert logs[0]["status"] == "success"

        viewer = client.get(
            f"/api/v1/business-units/{bu}/depreciation/audit-logs",
            headers=auth_headers(role="VIEWER")
        )
        assert viewer.status_code == 403

    def test_projection(self, client, bu, make_asset, auth_headers):
        asset = make_asset(purchase_price="2500.00")
        response = client.get(
            f"/api/v1/business-units/{bu}/assets/{asset.id}/depreciation-projection",
            params={"periods": 12},
            headers=auth_headers()
        )
        assert response.status_code == 200
        postings = response.json()["postings"]
        assert len(postings) == 3
        assert money(postings[-1]["amount"]) == Decimal("500")
        assert money(postings[-1]["book_value_end"]) == Decimal("0")

    def test_projection_unknown_asset(self, client, bu, auth_headers):
        response = client.get(
            f"/api/v1/business-units/{bu}/assets/9999/depreciation-projection",
            headers=auth_headers()
        )
        assert response.status_code == 404


class TestScheduleRoutes:

    def test_lifecycle(self, client, bu, make_asset, auth_headers):
        make_asset()
        manager = auth_headers(role="MANAGER")

        created = client.post(
            f"/api/v1/business-units/{bu}/depreciation/schedules",
            json={"name": "Month end", "execution_day": 31},
            headers=manager
        )
        assert created.status_code == 201
        schedule_id = created.json()["id"]

        detail = client.get(f"/api/v1/business-units/{bu}/depreciation/schedules/{schedule_id}", headers=manager)
        assert detail.status_code == 200
        assert detail.json()["affected_assets_count"] == 1

        paused = client.patch(
            f"/api/v1/business-units/{bu}/depreciation/schedules/{schedule_id}/status",
            json={"is_active": False},
            headers=manager
        )
        assert paused.json()["is_active"] is False

        renamed = client.put(
            f"/api/v1/business-units/{bu}/depreciation/schedules/{schedule_id}",
            json={"name": "Quarter end", "schedule_type": "QUARTERLY"},
            headers=manager
        )
        assert renamed.json()["schedule_type"] == "QUARTERLY"

        listed = client.get(f"/api/v1/business-units/{bu}/depreciation/schedules", headers=manager)
        assert [s["name"] for s in listed.json()] == ["Quarter end"]

        deleted = client.delete(f"/api/v1/business-units/{bu}/depreciation/schedules/{schedule_id}", headers=manager)
        assert deleted.status_code == 200
        missing = client.get(f"/api/v1/business-units/{bu}/depreciation/schedules/{schedule_id}", headers=manager)
        assert missing.status_code == 404

    def test_viewer_cannot_create(self, client, bu, auth_headers):
        response = client.post(
            f"/api/v1/business-units/{bu}/depreciation/schedules",
            json={"name": "Nope"},
            headers=auth_headers(role="VIEWER")
        )
        assert response.status_code == 403

    def test_rejects_bad_execution_day(self, client, bu, auth_headers):
        response = client.post(
            f"/api/v1/business-units/{bu}/depreciation/schedules",
            json={"name": "Bad", "execution_day": 32},
            headers=auth_headers()
        )
        assert response.status_code == 422

    def test_execute_now(self, client, bu, make_asset, auth_headers):
        make_asset()
        schedule_id = client.post(
            f"/api/v1/business-units/{bu}/depreciation/schedules",
            json={"name": "Month end"},
            headers=auth_headers()
        ).json()["id"]

        response = client.post(
            f"/api/v1/business-units/{bu}/depreciation/schedules/{schedule_id}/execute",
            params={"calculation_date": "2024-01-31"},
            headers=auth_headers(role="ADMIN")
        )
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert money(response.json()["total_depreciation_amount"]) == Decimal("1000")

        executions = client.get(
            f"/api/v1/business-units/{bu}/depreciation/schedules/{schedule_id}/executions",
            headers=auth_headers()
        )
        assert len(executions.json()) == 1


class TestTrigger:

    def test_requires_cron_secret_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        assert client.post("/api/v1/depreciation/schedules/trigger").status_code == 401
        wrong = client.post(
            "/api/v1/depreciation/schedules/trigger",
            headers={"Authorization": "Bearer nope"}
        )
        assert wrong.status_code == 401

    def test_runs_due_schedules(self, client, bu, make_asset, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        make_asset()
        client.post(
            f"/api/v1/business-units/{bu}/depreciation/schedules",
            json={"name": "Month end", "execution_day": 31},
            headers=auth_headers()
        )

        response = client.post(
            "/api/v1/depreciation/schedules/trigger",
            params={"on_date": "2024-01-31"},
            headers={"Authorization": "Bearer s3cret"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [r["status"] for r in body["results"]] == ["success"]


class TestHealth:

    def test_liveness(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_depreciation_health(self, client, make_asset):
        make_asset()
        body = client.get("/api/v1/health/depreciation").json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["scheduler"]["assets_ready"] == 1
        assert body["scheduler"]["active_schedules"] == 0
