"""
Tests for the operator dashboard API.
"""

from datetime import timedelta

import httpx
import pytest
import pytest_asyncio

from conftest import at, seed
from festival_tracker.api.endpoints import get_stats_engine
from festival_tracker.core.exceptions import StorageError
from festival_tracker.db.models import utc_today
from festival_tracker.main import create_app
from festival_tracker.services.stats_engine import StatsEngine


@pytest_asyncio.fixture
async def app(session_maker, gate, hasher, cache):
    return create_app(
        session_maker=session_maker,
        request_gate=gate,
        identity_hasher=hasher,
        aggregate_cache=cache
    )


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestAuthorization:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,path", [
        ("GET", "/admin/stats/daily"),
        ("GET", "/admin/stats/ids"),
        ("GET", "/admin/stats/quick"),
        ("POST", "/admin/stats/refresh"),
        ("GET", "/admin/settings"),
    ])
    async def test_missing_token_is_forbidden(self, client, operator_headers, method, path):
        response = await client.request(method, path)
        assert response.status_code == 403
        assert response.json()["detail"] == "You do not have permission to access this page."

    @pytest.mark.asyncio
    async def test_wrong_token_is_forbidden(self, client, operator_headers):
        response = await client.get("/admin/stats/quick", headers={"X-Admin-Token": "guess"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unconfigured_token_denies_everyone(self, client, monkeypatch):
        from festival_tracker.core.setting import settings
        monkeypatch.setattr(settings, "ADMIN_TOKEN", None)

        response = await client.get("/admin/stats/quick", headers={"X-Admin-Token": ""})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_forbidden_settings_write_changes_nothing(self, client, operator_headers):
        response = await client.put(
            "/admin/settings",
            json={"redirect_enabled": True, "redirect_url": "https://evil.example.com"}
        )
        assert response.status_code == 403

        settings = await client.get("/admin/settings", headers=operator_headers)
        assert settings.json() == {"redirect_enabled": False, "redirect_url": ""}


class TestStatistics:

    @pytest.mark.asyncio
    async def test_daily_default_window(self, client, session, operator_headers):
        today = utc_today()
        await seed(session, [("AAA111", at(today, 0, 5)), ("BBB222", at(today, 0, 10))])

        response = await client.get("/admin/stats/daily", headers=operator_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["period_end"] == today.isoformat()
        assert body["period_start"] == (today - timedelta(days=6)).isoformat()
        assert len(body["days"]) == 7
        assert body["days"][-1] == {
            "date": today.isoformat(),
            "total_calls": 2,
            "unique_ids_count": 2
        }
        assert body["has_next_window"] is False

    @pytest.mark.asyncio
    async def test_daily_explicit_window(self, client, session, operator_headers):
        start = utc_today() - timedelta(days=30)
        await seed(session, [("AAA111", at(start + timedelta(days=1)))])

        response = await client.get(
            "/admin/stats/daily",
            params={"start_date": start.isoformat()},
            headers=operator_headers
        )

        body = response.json()
        assert body["period_start"] == start.isoformat()
        assert body["days"][1]["total_calls"] == 1
        assert body["next_start"] == (start + timedelta(days=7)).isoformat()
        assert body["previous_start"] == (start - timedelta(days=7)).isoformat()

    @pytest.mark.asyncio
    async def test_daily_invalid_start_date_uses_default(self, client, operator_headers):
        response = await client.get(
            "/admin/stats/daily",
            params={"start_date": "not-a-date"},
            headers=operator_headers
        )

        assert response.status_code == 200
        assert response.json()["period_end"] == utc_today().isoformat()

    @pytest.mark.asyncio
    async def test_per_id_top_and_all(self, client, session, operator_headers):
        today = utc_today()
        events = []
        for index in range(7):
            events += [(f"ID{index:04d}", at(today, hour)) for hour in range(7 - index)]
        await seed(session, events)

        top = (await client.get("/admin/stats/ids", headers=operator_headers)).json()
        assert top["total_unique_ids"] == 7
        assert top["remaining"] == 2
        assert top["rows"][0] == {"festival_id": "ID0000", "total_accesses": 7, "unique_days_used": 1}
        assert len(top["rows"]) == 5

        full = (await client.get(
            "/admin/stats/ids", params={"show_all": "true"}, headers=operator_headers
        )).json()
        assert len(full["rows"]) == 7
        assert full["remaining"] == 0

    @pytest.mark.asyncio
    async def test_quick_stats_include_redirect_settings(self, client, session, operator_headers):
        today = utc_today()
        await seed(session, [("AAA111", at(today)), ("AAA111", at(today - timedelta(days=2)))])
        await client.put(
            "/admin/settings",
            json={"redirect_enabled": True, "redirect_url": "https://example.com/festival"},
            headers=operator_headers
        )

        response = await client.get("/admin/stats/quick", headers=operator_headers)

        assert response.json() == {
            "total_calls": 2,
            "unique_ids": 1,
            "today_calls": 1,
            "redirect_enabled": True,
            "redirect_url": "https://example.com/festival"
        }

    @pytest.mark.asyncio
    async def test_refresh_drops_cached_aggregates(self, client, session, operator_headers):
        today = utc_today()
        await seed(session, [("AAA111", at(today))])
        first = (await client.get("/admin/stats/quick", headers=operator_headers)).json()

        await seed(session, [("BBB222", at(today))])
        cached = (await client.get("/admin/stats/quick", headers=operator_headers)).json()
        assert cached["total_calls"] == first["total_calls"] == 1

        response = await client.post("/admin/stats/refresh", headers=operator_headers)
        assert response.json() == {"status": "refreshed"}

        fresh = (await client.get("/admin/stats/quick", headers=operator_headers)).json()
        assert fresh["total_calls"] == 2
        assert fresh["unique_ids"] == 2

    @pytest.mark.asyncio
    async def test_refresh_goes_through_stats_engine(self, app, client, cache, operator_headers):
        refreshed = []

        class RecordingEngine(StatsEngine):
            def refresh(self):
                refreshed.append(True)
                super().refresh()

        cache.put("total_calls", 99, ttl=3600)
        app.dependency_overrides[get_stats_engine] = lambda: RecordingEngine(None, cache)

        response = await client.post("/admin/stats/refresh", headers=operator_headers)

        assert response.status_code == 200
        assert refreshed == [True]
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_storage_failure_returns_503(self, app, client, cache, operator_headers):
        class FailingStore:
            async def count_all(self):
                raise StorageError("database is locked")

            async def count_distinct_ids(self):
                raise StorageError("database is locked")

            async def count_on_day(self, day):
                raise StorageError("database is locked")

        app.dependency_overrides[get_stats_engine] = lambda: StatsEngine(FailingStore(), cache)

        response = await client.get("/admin/stats/quick", headers=operator_headers)

        assert response.status_code == 503
        assert response.json()["detail"] == "Statistics unavailable"
        assert len(cache) == 0


class TestSettings:

    @pytest.mark.asyncio
    async def test_update_and_read_back(self, client, operator_headers):
        response = await client.put(
            "/admin/settings",
            json={"redirect_enabled": True, "redirect_url": " https://example.com/festival "},
            headers=operator_headers
        )

        assert response.status_code == 200
        assert response.json() == {"redirect_enabled": True, "redirect_url": "https://example.com/festival"}
        read = await client.get("/admin/settings", headers=operator_headers)
        assert read.json() == response.json()

    @pytest.mark.asyncio
    async def test_invalid_url_keeps_previous_settings(self, client, operator_headers):
        await client.put(
            "/admin/settings",
            json={"redirect_enabled": True, "redirect_url": "https://example.com/festival"},
            headers=operator_headers
        )

        response = await client.put(
            "/admin/settings",
            json={"redirect_enabled": False, "redirect_url": "javascript:alert(1)"},
            headers=operator_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Please enter a valid URL for the redirect destination"
        read = await client.get("/admin/settings", headers=operator_headers)
        assert read.json() == {"redirect_enabled": True, "redirect_url": "https://example.com/festival"}

    @pytest.mark.asyncio
    async def test_disable_with_empty_url(self, client, operator_headers):
        response = await client.put(
            "/admin/settings",
            json={"redirect_enabled": False, "redirect_url": ""},
            headers=operator_headers
        )
        assert response.status_code == 200
        assert response.json() == {"redirect_enabled": False, "redirect_url": ""}
