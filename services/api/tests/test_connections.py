"""Tests for the connection request lifecycle."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.errors import (
    AlreadyConnected,
    ConnectionNotFound,
    ConnectionNotPending,
    ConnectionPending,
    NotAuthorized,
    SelfConnectionNotAllowed,
    UserNotFound,
)
from app.models import Connection, ConnectionStatus, RelationStatus, User, pair_key
from app.services.connections import ConnectionService


async def _count_rows(db_session) -> int:
    result = await db_session.execute(select(func.count(Connection.id)))
    return result.scalar_one()


async def test_request_creates_pending_row(db_session, make_user):
    alice, bob = await make_user("Alice"), await make_user("Bob")

    connection = await ConnectionService(db_session).request_connection(alice.id, bob.id)

    assert connection.id is not None
    assert connection.user_id == alice.id
    assert connection.connected_user_id == bob.id
    assert connection.status == ConnectionStatus.PENDING
    assert connection.created_at is not None


async def test_cannot_connect_to_self(db_session, make_user):
    alice = await make_user()

    with pytest.raises(SelfConnectionNotAllowed):
        await ConnectionService(db_session).request_connection(alice.id, alice.id)


async def test_request_to_unknown_user(db_session, make_user):
    alice = await make_user()

    with pytest.raises(UserNotFound):
        await ConnectionService(db_session).request_connection(alice.id, 9999)


async def test_reverse_request_is_blocked_while_pending(db_session, make_user):
    a, b = await make_user(), await make_user()
    service = ConnectionService(db_session)
    await service.request_connection(a.id, b.id)

    with pytest.raises(ConnectionPending):
        await service.request_connection(b.id, a.id)
    with pytest.raises(ConnectionPending):
        await service.request_connection(a.id, b.id)

    assert await _count_rows(db_session) == 1


async def test_request_after_accept_reports_already_connected(db_session, make_user):
    a, b = await make_user(), await make_user()
    service = ConnectionService(db_session)
    connection = await service.request_connection(a.id, b.id)
    await service.accept_connection(b.id, connection.id)

    with pytest.raises(AlreadyConnected):
        await service.request_connection(b.id, a.id)


async def test_accept_twice_fails_not_pending(db_session, make_user):
    a, b = await make_user(), await make_user()
    service = ConnectionService(db_session)
    connection = await service.request_connection(a.id, b.id)

    accepted = await service.accept_connection(b.id, connection.id)
    assert accepted.status == ConnectionStatus.ACCEPTED

    with pytest.raises(ConnectionNotPending):
        await service.accept_connection(b.id, connection.id)


async def test_only_receiver_may_respond(db_session, make_user):
    a, b, c = await make_user(), await make_user(), await make_user()
    service = ConnectionService(db_session)
    connection = await service.request_connection(a.id, b.id)

    with pytest.raises(NotAuthorized):
        await service.accept_connection(a.id, connection.id)
    with pytest.raises(NotAuthorized):
        await service.reject_connection(c.id, connection.id)


async def test_respond_to_missing_connection(db_session, make_user):
    a = await make_user()

    with pytest.raises(ConnectionNotFound):
        await ConnectionService(db_session).accept_connection(a.id, 12345)


async def test_rejected_request_can_be_sent_again(db_session, make_user):
    a, b = await make_user(), await make_user()
    service = ConnectionService(db_session)
    first = await service.request_connection(a.id, b.id)

    rejected = await service.reject_connection(b.id, first.id)
    assert rejected.status == ConnectionStatus.REJECTED

    again = await service.request_connection(a.id, b.id)
    assert again.id != first.id
    assert again.status == ConnectionStatus.PENDING
    assert await _count_rows(db_session) == 2


async def test_rejected_request_does_not_block_reverse_direction(db_session, make_user):
    a, b = await make_user(), await make_user()
    service = ConnectionService(db_session)
    first = await service.request_connection(a.id, b.id)
    await service.reject_connection(b.id, first.id)

    reverse = await service.request_connection(b.id, a.id)
    assert reverse.user_id == b.id
    assert reverse.status == ConnectionStatus.PENDING


async def test_reject_after_accept_fails(db_session, make_user):
    a, b = await make_user(), await make_user()
    service = ConnectionService(db_session)
    connection = await service.request_connection(a.id, b.id)
    await service.accept_connection(b.id, connection.id)

    with pytest.raises(ConnectionNotPending):
        await service.reject_connection(b.id, connection.id)


async def test_accept_scenario_status_is_symmetric(db_session, make_user):
    u3, u4 = await make_user("Three"), await make_user("Four")
    service = ConnectionService(db_session)

    connection = await service.request_connection(u3.id, u4.id)
    assert connection.status == ConnectionStatus.PENDING

    connection = await service.accept_connection(u4.id, connection.id)
    assert connection.status == ConnectionStatus.ACCEPTED

    assert await service.get_status(u3.id, u4.id) == RelationStatus.CONNECTED
    assert await service.get_status(u4.id, u3.id) == RelationStatus.CONNECTED


async def test_status_values(db_session, make_user):
    a, b, c = await make_user(), await make_user(), await make_user()
    service = ConnectionService(db_session)

    assert await service.get_status(a.id, a.id) == RelationStatus.SELF
    assert await service.get_status(a.id, b.id) == RelationStatus.NONE

    connection = await service.request_connection(a.id, b.id)
    assert await service.get_status(a.id, b.id) == RelationStatus.PENDING_SENT
    assert await service.get_status(b.id, a.id) == RelationStatus.PENDING_RECEIVED

    await service.reject_connection(b.id, connection.id)
    assert await service.get_status(a.id, b.id) == RelationStatus.NONE
    assert await service.get_status(a.id, c.id) == RelationStatus.NONE


async def test_pending_requests_received_newest_first(db_session, make_user):
    me = await make_user("Me")
    first, second = await make_user("First"), await make_user("Second")
    third, outsider = await make_user("Third"), await make_user("Outsider")
    service = ConnectionService(db_session)

    await service.request_connection(first.id, me.id)
    await service.request_connection(second.id, me.id)
    accepted = await service.request_connection(third.id, me.id)
    await service.accept_connection(me.id, accepted.id)
    # Sent by me, so not "received"
    await service.request_connection(me.id, outsider.id)

    pending = await service.list_pending_received(me.id)

    assert [p.requester.name for p in pending] == ["Second", "First"]
    assert all(p.connection.connected_user_id == me.id for p in pending)
    assert all(p.connection.status == ConnectionStatus.PENDING for p in pending)


async def test_accepted_connections_from_both_sides(db_session, make_user):
    me = await make_user("Me")
    outgoing, incoming = await make_user("Outgoing"), await make_user("Incoming")
    pending_only = await make_user("Pending")
    service = ConnectionService(db_session)

    c1 = await service.request_connection(me.id, outgoing.id)
    await service.accept_connection(outgoing.id, c1.id)
    c2 = await service.request_connection(incoming.id, me.id)
    await service.accept_connection(me.id, c2.id)
    await service.request_connection(pending_only.id, me.id)

    accepted = await service.list_accepted(me.id)

    assert [a.other.name for a in accepted] == ["Incoming", "Outgoing"]
    assert await service.count_accepted(me.id) == 2


async def test_accepted_connection_with_missing_user_is_skipped(db_session, make_user):
    me, friend = await make_user("Me"), await make_user("Friend")
    service = ConnectionService(db_session)
    c1 = await service.request_connection(me.id, friend.id)
    await service.accept_connection(friend.id, c1.id)

    # A row pointing at a user that no longer exists
    db_session.add(
        Connection(
            user_id=me.id,
            connected_user_id=4242,
            status=ConnectionStatus.ACCEPTED,
            active_pair=f"{me.id}:4242",
        )
    )
    await db_session.flush()

    accepted = await service.list_accepted(me.id)

    assert [a.other.name for a in accepted] == ["Friend"]


async def test_store_allows_one_live_row_per_pair(db_session, make_user):
    alice, bob = await make_user(), await make_user()

    # Rejected rows carry no pair key and may pile up
    for _ in range(2):
        db_session.add(
            Connection(
                user_id=alice.id,
                connected_user_id=bob.id,
                status=ConnectionStatus.REJECTED,
                active_pair=None,
            )
        )
    await db_session.flush()

    db_session.add(
        Connection(
            user_id=alice.id,
            connected_user_id=bob.id,
            status=ConnectionStatus.PENDING,
            active_pair=pair_key(alice.id, bob.id),
        )
    )
    await db_session.flush()

    db_session.add(
        Connection(
            user_id=bob.id,
            connected_user_id=alice.id,
            status=ConnectionStatus.PENDING,
            active_pair=pair_key(bob.id, alice.id),
        )
    )
    with pytest.raises(IntegrityError):
        await db_session.flush()


@pytest.mark.parametrize(
    "winner_status, error",
    [
        (ConnectionStatus.PENDING, ConnectionPending),
        (ConnectionStatus.ACCEPTED, AlreadyConnected),
    ],
)
async def test_request_that_loses_insert_race_reports_winner(
    session_factory, monkeypatch, winner_status, error
):
    async with session_factory() as session:
        alice = User(name="Alice", email="alice@acme.io", password_hash="x")
        bob = User(name="Bob", email="bob@acme.io", password_hash="x")
        session.add_all([alice, bob])
        await session.flush()
        # Bob's row lands after Alice's lookup but before her insert
        session.add(
            Connection(
                user_id=bob.id,
                connected_user_id=alice.id,
                status=winner_status,
                active_pair=pair_key(alice.id, bob.id),
            )
        )
        await session.commit()

    real_live_row = ConnectionService._live_row
    lookups = []

    async def live_row_stale_once(self, user_a, user_b):
        lookups.append((user_a, user_b))
        if len(lookups) == 1:
            return None
        return await real_live_row(self, user_a, user_b)

    monkeypatch.setattr(ConnectionService, "_live_row", live_row_stale_once)

    async with session_factory() as session:
        with pytest.raises(error):
            await ConnectionService(session).request_connection(alice.id, bob.id)

    assert len(lookups) == 2
    async with session_factory() as session:
        assert await _count_rows(session) == 1
        row = (await session.execute(select(Connection))).scalar_one()
        assert row.user_id == bob.id
