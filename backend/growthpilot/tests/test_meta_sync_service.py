"""Tests for the metrics sync run with a fake insights client."""

from datetime import date

import pytest

from growthpilot import models
from growthpilot.models import NotificationTypeEnum
from growthpilot.services import meta_sync_service as svc
from growthpilot.utils.cache import TTLCache


class _FakeInsightsClient:
    def __init__(self, responses):
        self._responses = responses
        self.requested = []

    def get_ad_insights(self, meta_ad_id, since, until):
        self.requested.append((meta_ad_id, since, until))
        response = self._responses.get(meta_ad_id, [])
        if isinstance(response, Exception):
            raise response
        return response


def _day(day, spend, purchases="0"):
    return {
        "date_start": day,
        "date_stop": day,
        "spend": spend,
        "impressions": "1000",
        "clicks": "10",
        "actions": [{"action_type": "purchase", "value": purchases}],
    }


SINCE = date(2024, 3, 1)
UNTIL = date(2024, 3, 2)


def test_syncs_every_owned_ad(test_db_session, seed):
    user = seed.user()
    campaign = seed.campaign(seed.client(user))
    first = seed.ad(campaign, "ad-1")
    second = seed.ad(campaign, "ad-2")
    client = _FakeInsightsClient(
        {
            "ad-1": [_day("2024-03-01", "10.00", "1"), _day("2024-03-02", "20.00")],
            "ad-2": [_day("2024-03-02", "5.50")],
        }
    )

    result = svc.sync_ad_metrics(test_db_session, user.user_id, client, SINCE, UNTIL)

    assert result.ads_processed == 2
    assert result.rows_written == 3
    assert result.errors == []
    assert result.success
    assert client.requested == [("ad-1", SINCE, UNTIL), ("ad-2", SINCE, UNTIL)]

    rows = test_db_session.query(models.MetaMetric).filter_by(ad_id=first.ad_id).order_by(models.MetaMetric.date).all()
    assert [float(r.spend) for r in rows] == [10.0, 20.0]
    assert rows[0].purchases == 1
    assert test_db_session.query(models.MetaMetric).filter_by(ad_id=second.ad_id).count() == 1


def test_resync_overwrites_instead_of_duplicating(test_db_session, seed):
    user = seed.user()
    ad = seed.ad(seed.campaign(seed.client(user)), "ad-1")

    svc.sync_ad_metrics(test_db_session, user.user_id, _FakeInsightsClient({"ad-1": [_day("2024-03-01", "10")]}), SINCE, UNTIL)
    svc.sync_ad_metrics(test_db_session, user.user_id, _FakeInsightsClient({"ad-1": [_day("2024-03-01", "12")]}), SINCE, UNTIL)

    rows = test_db_session.query(models.MetaMetric).filter_by(ad_id=ad.ad_id).all()
    assert len(rows) == 1
    assert float(rows[0].spend) == 12.0


def test_only_the_users_ads_are_synced(test_db_session, seed):
    user, other = seed.user(), seed.user()
    seed.ad(seed.campaign(seed.client(user)), "mine")
    seed.ad(seed.campaign(seed.client(other)), "theirs")
    client = _FakeInsightsClient({})

    result = svc.sync_ad_metrics(test_db_session, user.user_id, client, SINCE, UNTIL)

    assert result.ads_processed == 1
    assert [r[0] for r in client.requested] == ["mine"]


def test_client_filter(test_db_session, seed):
    user = seed.user()
    acme = seed.client(user, "Acme")
    seed.ad(seed.campaign(acme), "acme-ad")
    seed.ad(seed.campaign(seed.client(user, "Globex")), "globex-ad")
    client = _FakeInsightsClient({})

    svc.sync_ad_metrics(test_db_session, user.user_id, client, SINCE, UNTIL, client_id=acme.client_id)

    assert [r[0] for r in client.requested] == ["acme-ad"]


def test_failures_are_collected_and_notified_once(test_db_session, seed):
    user = seed.user()
    campaign = seed.campaign(seed.client(user))
    seed.ad(campaign, "ad-1")
    seed.ad(campaign, "ad-2")
    seed.ad(campaign, "ad-3")
    client = _FakeInsightsClient(
        {
            "ad-1": svc.InsightsFetchError("rate limited"),
            "ad-2": [_day("2024-03-01", "-5")],
            "ad-3": [_day("2024-03-01", "7")],
        }
    )

    result = svc.sync_ad_metrics(test_db_session, user.user_id, client, SINCE, UNTIL)

    assert result.ads_processed == 3
    assert result.rows_written == 1
    assert len(result.errors) == 2
    assert result.errors[0].startswith("ad-1: rate limited")
    assert result.errors[1].startswith("ad-2:")
    assert not result.success

    notifications = test_db_session.query(models.Notification).filter_by(user_id=user.user_id).all()
    assert len(notifications) == 1
    assert notifications[0].type == NotificationTypeEnum.sync_error


def test_missing_day_is_a_parse_error(test_db_session, seed):
    user = seed.user()
    seed.ad(seed.campaign(seed.client(user)), "ad-1")
    client = _FakeInsightsClient({"ad-1": [{"spend": "1"}]})

    result = svc.sync_ad_metrics(test_db_session, user.user_id, client, SINCE, UNTIL)

    assert result.rows_written == 0
    assert "missing day" in result.errors[0]


def test_user_without_ads(test_db_session, seed):
    user = seed.user()
    result = svc.sync_ad_metrics(test_db_session, user.user_id, _FakeInsightsClient({}), SINCE, UNTIL)
    assert result == svc.MetricsSyncResult()


def test_rejects_inverted_range(test_db_session, seed):
    user = seed.user()
    with pytest.raises(ValueError):
        svc.sync_ad_metrics(test_db_session, user.user_id, _FakeInsightsClient({}), UNTIL, SINCE)


def test_latest_day_is_checked_against_alert_thresholds(test_db_session, seed):
    user = seed.user()
    campaign = seed.campaign(seed.client(user))
    seed.ad(campaign, "ad-1", budget=100)
    low_roas_day = dict(
        _day("2024-03-02", "200.00", "1"),
        action_values=[{"action_type": "purchase", "value": "100.00"}],
    )
    client = _FakeInsightsClient({"ad-1": [_day("2024-03-01", "50.00"), low_roas_day]})

    result = svc.sync_ad_metrics(
        test_db_session,
        user.user_id,
        client,
        SINCE,
        UNTIL,
        roas_threshold=1.5,
        budget_multiplier=1.2,
    )

    assert result.success
    types = sorted(n.type.value for n in test_db_session.query(models.Notification).filter_by(user_id=user.user_id))
    assert types == ["budget_alert", "roas_alert"]


def test_no_alerts_without_roas_or_budget(test_db_session, seed):
    user = seed.user()
    seed.ad(seed.campaign(seed.client(user)), "ad-1")
    client = _FakeInsightsClient({"ad-1": [_day("2024-03-01", "500.00")]})

    svc.sync_ad_metrics(test_db_session, user.user_id, client, SINCE, UNTIL)

    assert test_db_session.query(models.Notification).count() == 0


def test_written_rows_drop_the_users_cached_overview(test_db_session, seed):
    user, other = seed.user(), seed.user()
    seed.ad(seed.campaign(seed.client(user)), "ad-1")
    cache = TTLCache()
    cache.set((str(user.user_id), "all", "overview", "2024-03-02"), "stale")
    cache.set((str(other.user_id), "all", "overview", "2024-03-02"), "kept")

    svc.sync_ad_metrics(
        test_db_session,
        user.user_id,
        _FakeInsightsClient({"ad-1": [_day("2024-03-02", "10")]}),
        SINCE,
        UNTIL,
        overview_cache=cache,
    )

    assert cache.get((str(user.user_id), "all", "overview", "2024-03-02")) is None
    assert cache.get((str(other.user_id), "all", "overview", "2024-03-02")) == "kept"


def test_run_without_writes_keeps_cache(test_db_session, seed):
    user = seed.user()
    seed.ad(seed.campaign(seed.client(user)), "ad-1")
    cache = TTLCache()
    cache.set((str(user.user_id), "all", "overview", "2024-03-02"), "cached")

    svc.sync_ad_metrics(test_db_session, user.user_id, _FakeInsightsClient({}), SINCE, UNTIL, overview_cache=cache)

    assert cache.get((str(user.user_id), "all", "overview", "2024-03-02")) == "cached"
