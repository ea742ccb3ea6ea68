"""Tests for user creation and the connection lifecycle handlers."""

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from adlens.exceptions import NotFoundError
from adlens.models import AdAccountConnection, AdPlatformEnum, ConnectionStatusEnum
from adlens.schemas import ConnectionCreate, UserCreate
from adlens.services.connection_service import (
    connect_ad_account,
    get_user_connections,
    update_connection_status,
)
from adlens.services.user_service import create_user


def _payload(user_id, **kwargs):
    data = {
        "user_id": user_id,
        "platform": AdPlatformEnum.shopee_ads,
        "account_id": "shop-1",
        "account_name": "Shopee Store",
        "access_token": "secret",
    }
    data.update(kwargs)
    return ConnectionCreate(**data)


def test_create_user(test_db_session):
    user = create_user(test_db_session, UserCreate(email="jane@example.com", name="Jane"))

    assert user.id is not None
    assert user.company_name is None
    assert user.created_at is not None


def test_duplicate_email_surfaces_integrity_error(test_db_session):
    create_user(test_db_session, UserCreate(email="jane@example.com", name="Jane"))

    with pytest.raises(IntegrityError):
        create_user(test_db_session, UserCreate(email="jane@example.com", name="Other Jane"))


def test_connect_defaults_to_pending(test_db_session, make_user):
    user = make_user()

    connection = connect_ad_account(test_db_session, _payload(user.id))

    assert connection.status == ConnectionStatusEnum.pending
    assert connection.last_sync_at is None
    assert connection.user_id == user.id
    assert connection.refresh_token is None


def test_connect_unknown_user_is_not_found(test_db_session):
    with pytest.raises(NotFoundError):
        connect_ad_account(test_db_session, _payload(9999))

    assert test_db_session.query(AdAccountConnection).count() == 0


def test_list_connections_only_returns_own(test_db_session, make_user, make_connection):
    user = make_user()
    other = make_user()
    first = make_connection(user)
    second = make_connection(user, platform=AdPlatformEnum.lazada_ads)
    make_connection(other)

    result = get_user_connections(test_db_session, user.id)

    assert [c.id for c in result] == [first.id, second.id]
    assert get_user_connections(test_db_session, 9999) == []


def test_update_status_and_last_sync(test_db_session, make_user, make_connection):
    connection = make_connection(make_user(), status=ConnectionStatusEnum.pending)
    before = connection.updated_at
    account_name = connection.account_name
    synced_at = datetime(2024, 6, 1, 8, 30)

    updated = update_connection_status(
        test_db_session, connection.id, ConnectionStatusEnum.connected, last_sync_at=synced_at
    )

    assert updated.status == ConnectionStatusEnum.connected
    assert updated.last_sync_at == synced_at
    assert updated.updated_at >= before
    assert updated.account_name == account_name


def test_update_status_without_last_sync_keeps_it(test_db_session, make_user, make_connection):
    synced_at = datetime(2024, 6, 1, 8, 30)
    connection = make_connection(make_user(), last_sync_at=synced_at)

    updated = update_connection_status(test_db_session, connection.id, ConnectionStatusEnum.error)

    assert updated.status == ConnectionStatusEnum.error
    assert updated.last_sync_at == synced_at


def test_update_unknown_connection_is_not_found_without_side_effects(
    test_db_session, make_user, make_connection
):
    connection = make_connection(make_user(), status=ConnectionStatusEnum.pending)

    with pytest.raises(NotFoundError) as exc_info:
        update_connection_status(test_db_session, 99999, ConnectionStatusEnum.connected)

    assert "99999" in str(exc_info.value)
    test_db_session.refresh(connection)
    assert connection.status == ConnectionStatusEnum.pending
