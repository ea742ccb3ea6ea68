"""Tests for the campaign sync stub.

WHAT: Status preconditions, sync window, idempotent upserts, counts
WHY: Repeated or concurrent syncs must never duplicate campaigns or metric days
"""

import random
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from adlens.exceptions import NotFoundError, StateConflictError
from adlens.models import Campaign, CampaignMetrics, ConnectionStatusEnum
from adlens.services.sync_service import (
    determine_sync_window,
    generate_daily_metrics,
    sync_campaign_data,
)


def _counts(db):
    return db.query(Campaign).count(), db.query(CampaignMetrics).count()


def test_unknown_connection_is_not_found(test_db_session):
    with pytest.raises(NotFoundError):
        sync_campaign_data(test_db_session, 12345)


@pytest.mark.parametrize(
    "status",
    [ConnectionStatusEnum.pending, ConnectionStatusEnum.disconnected, ConnectionStatusEnum.error],
)
def test_only_connected_connections_sync(test_db_session, make_user, make_connection, status):
    connection = make_connection(make_user(), status=status)

    with pytest.raises(StateConflictError) as exc_info:
        sync_campaign_data(test_db_session, connection.id)

    assert str(exc_info.value) == f"Cannot sync: connection status is {status.value}"
    assert _counts(test_db_session) == (0, 0)


def test_first_sync_inserts_default_window(test_db_session, make_user, make_connection):
    connection = make_connection(make_user())

    result = sync_campaign_data(test_db_session, connection.id, rng=random.Random(1))

    # 3 campaigns x 31 days (today - 30 .. today)
    assert result.success is True
    assert result.campaigns_synced == 3
    assert result.metrics_synced == 93
    assert _counts(test_db_session) == (3, 93)

    test_db_session.refresh(connection)
    assert connection.last_sync_at is not None
    assert connection.updated_at >= connection.last_sync_at


def test_forced_resync_is_idempotent(test_db_session, make_user, make_connection):
    connection = make_connection(make_user())
    sync_campaign_data(test_db_session, connection.id, force_sync=True, rng=random.Random(1))
    after_first = _counts(test_db_session)

    second = sync_campaign_data(test_db_session, connection.id, force_sync=True, rng=random.Random(2))

    assert second.campaigns_synced == 0
    assert second.metrics_synced == 0
    assert _counts(test_db_session) == after_first


def test_incremental_sync_only_adds_new_days(test_db_session, make_user, make_connection):
    connection = make_connection(make_user())
    sync_campaign_data(test_db_session, connection.id, rng=random.Random(1))

    # Pretend the last sync happened two days ago and drop the newer rows
    today = datetime.utcnow().date()
    test_db_session.query(CampaignMetrics).filter(
        CampaignMetrics.date > today - timedelta(days=2)
    ).delete(synchronize_session=False)
    test_db_session.refresh(connection)
    connection.last_sync_at = datetime.utcnow() - timedelta(days=2)
    test_db_session.commit()

    result = sync_campaign_data(test_db_session, connection.id, rng=random.Random(3))

    assert result.campaigns_synced == 0
    assert result.metrics_synced == 3 * 2


def test_campaign_ids_are_stable_per_account(test_db_session, make_user, make_connection):
    connection = make_connection(make_user())
    sync_campaign_data(test_db_session, connection.id, rng=random.Random(1))

    external_ids = sorted(c.platform_campaign_id for c in test_db_session.query(Campaign))

    assert external_ids == [f"{connection.account_id}-cmp-{n:03d}" for n in (1, 2, 3)]


def test_window_uses_last_sync_unless_forced():
    class FakeConnection:
        last_sync_at = datetime(2024, 3, 10, 17, 45)

    today = date(2024, 3, 12)

    assert determine_sync_window(FakeConnection(), force_sync=False, today=today) == (
        date(2024, 3, 10), today,
    )
    assert determine_sync_window(FakeConnection(), force_sync=True, today=today) == (
        today - timedelta(days=30), today,
    )

    FakeConnection.last_sync_at = None
    assert determine_sync_window(FakeConnection(), force_sync=False, today=today)[0] == today - timedelta(days=30)


def test_generated_metrics_are_internally_consistent():
    from adlens.models import AdObjectiveEnum, AdPlatformEnum

    rng = random.Random(7)
    for _ in range(20):
        values = generate_daily_metrics(AdPlatformEnum.google_ads, AdObjectiveEnum.conversion, rng)

        assert values["ctr"] == pytest.approx(values["clicks"] / values["impressions"] * 100, abs=1e-4)
        assert values["cpm"] == (values["spend"] * 1000 / values["impressions"]).quantize(Decimal("0.0001"))
        assert values["roas"] == pytest.approx(float(values["conversion_value"] / values["spend"]), abs=1e-4)
        assert values["spend"] == values["spend"].quantize(Decimal("0.01"))
