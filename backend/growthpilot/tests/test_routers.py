"""HTTP tests for the metrics, reports and commission endpoints."""

import uuid

from growthpilot.security import create_access_token
from growthpilot.services.overview_service import today_in_timezone


def _today():
    return today_in_timezone("Europe/Istanbul")


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestAuth:
    def test_requires_token(self, client):
        assert client.get("/metrics/overview").status_code == 401

    def test_rejects_garbage_token(self, client):
        response = client.get("/metrics/overview", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_rejects_unknown_user(self, client):
        token = create_access_token(str(uuid.uuid4()))
        response = client.get("/metrics/overview", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "User not found"

    def test_rejects_non_uuid_subject(self, client):
        token = create_access_token("not-a-uuid")
        response = client.get("/metrics/overview", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_accepts_cookie(self, client, seed):
        user = seed.user()
        client.cookies.set("access_token", create_access_token(str(user.user_id)))
        assert client.get("/metrics/overview").status_code == 200


class TestOverviewEndpoint:
    def test_returns_camel_case_overview(self, client, auth_headers, seed):
        user = seed.user()
        acme = seed.client(user, "Acme", percentage=10)
        ad = seed.ad(seed.campaign(acme, "ACTIVE"))
        seed.metric(ad, _today(), spend=1000)

        response = client.get("/metrics/overview", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json() == {
            "totalClients": 1,
            "totalSpendToday": 1000.0,
            "totalSpendThisMonth": 1000.0,
            "totalRevenueThisMonth": 100.0,
            "activeCampaigns": 1,
        }

    def test_foreign_client_gets_zeros(self, client, auth_headers, seed):
        user, other = seed.user(), seed.user()
        theirs = seed.client(other, "Theirs", percentage=10)
        seed.metric(seed.ad(seed.campaign(theirs)), _today(), spend=999)

        response = client.get(
            "/metrics/overview",
            params={"client_id": str(theirs.client_id)},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        assert response.json()["totalSpendToday"] == 0
        assert response.json()["totalClients"] == 0

    def test_unparseable_client_id_gets_zeros(self, client, auth_headers, seed):
        user = seed.user()
        acme = seed.client(user, "Acme", percentage=10)
        seed.metric(seed.ad(seed.campaign(acme)), _today(), spend=300)

        response = client.get("/metrics/overview", params={"client_id": "abc"}, headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json() == {
            "totalClients": 0,
            "totalSpendToday": 0.0,
            "totalSpendThisMonth": 0.0,
            "totalRevenueThisMonth": 0.0,
            "activeCampaigns": 0,
        }

    def test_repeated_request_is_served_from_cache(self, client, auth_headers, seed, overview_cache):
        user = seed.user()
        campaign = seed.campaign(seed.client(user, "Acme", percentage=10))
        seed.metric(seed.ad(campaign), _today(), spend=100)

        first = client.get("/metrics/overview", headers=auth_headers(user)).json()
        seed.metric(seed.ad(campaign), _today(), spend=500)
        cached = client.get("/metrics/overview", headers=auth_headers(user)).json()
        overview_cache.invalidate_user(user.user_id)
        fresh = client.get("/metrics/overview", headers=auth_headers(user)).json()

        assert first["totalSpendToday"] == 100.0
        assert cached == first
        assert fresh["totalSpendToday"] == 600.0


class TestTrendsEndpoint:
    def test_default_window(self, client, auth_headers, seed):
        user = seed.user()
        acme = seed.client(user, "Acme", percentage=10)
        seed.metric(seed.ad(seed.campaign(acme)), _today(), spend=50)

        response = client.get("/metrics/trends", headers=auth_headers(user))

        points = response.json()
        assert response.status_code == 200
        assert len(points) == 31
        assert points[-1] == {"date": _today().isoformat(), "spend": 50.0, "revenue": 5.0}

    def test_custom_days(self, client, auth_headers, seed):
        user = seed.user()
        seed.client(user)
        response = client.get("/metrics/trends", params={"days": 7}, headers=auth_headers(user))
        assert len(response.json()) == 8

    def test_unparseable_client_id_gets_empty_series(self, client, auth_headers, seed):
        user = seed.user()
        seed.client(user)
        response = client.get("/metrics/trends", params={"client_id": "not-a-uuid"}, headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json() == []

    def test_days_must_be_positive(self, client, auth_headers, seed):
        user = seed.user()
        response = client.get("/metrics/trends", params={"days": 0}, headers=auth_headers(user))
        assert response.status_code == 422


class TestWhatsAppReport:
    def test_builds_text(self, client, auth_headers, seed):
        user = seed.user()
        payload = {
            "clientName": "Acme",
            "reportType": "weekly",
            "periodStart": "2024-02-01",
            "periodEnd": "2024-02-07",
            "metrics": {"totalSpend": 1500, "roas": 2.5, "clicks": 320},
            "selectedMetrics": ["totalSpend", "clicks"],
        }

        response = client.post("/reports/whatsapp", json=payload, headers=auth_headers(user))

        assert response.status_code == 200
        text = response.json()["text"]
        assert text.startswith("📊 *Haftalık Performans Raporu*")
        assert "01.02.2024 - 07.02.2024" in text
        assert "₺1.500,00" in text
        assert "320" in text
        assert "ROAS" not in text

    def test_rejects_inverted_period(self, client, auth_headers, seed):
        user = seed.user()
        payload = {
            "clientName": "Acme",
            "periodStart": "2024-02-07",
            "periodEnd": "2024-02-01",
            "metrics": {},
        }
        response = client.post("/reports/whatsapp", json=payload, headers=auth_headers(user))
        assert response.status_code == 422


class TestCommissionPreview:
    def test_sales_basis(self, client, auth_headers, seed):
        user = seed.user()
        payload = {
            "revenue": {"sales_revenue": 50000, "total_revenue": 75000},
            "model": {"commission_percentage": 15, "calculation_basis": "sales_revenue"},
        }

        response = client.post("/commission/preview", json=payload, headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json() == {"commission": 7500.0}

    def test_invalid_model_is_422(self, client, auth_headers, seed):
        user = seed.user()
        payload = {
            "revenue": {"sales_revenue": 100, "total_revenue": 100},
            "model": {"commission_percentage": 120, "calculation_basis": "net"},
        }
        response = client.post("/commission/preview", json=payload, headers=auth_headers(user))
        assert response.status_code == 422
