from datetime import timedelta

import pytest

from backend.app.services.errors import (
    AlreadyJoined,
    GiveawayEnded,
    GiveawayFull,
    GiveawayNotFound,
    GiveawayNotStarted,
    InvalidHandle,
)
from backend.app.services.participant_service import (
    count_participants,
    join_giveaway,
    list_participants,
    normalize_handle,
)

from tests.factories import T0, T1, add_giveaway


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("alice", "alice"),
        ("@alice", "alice"),
        ("  @ Alice_01 ", "Alice_01"),
        ("a" * 32, "a" * 32),
    ],
)
def test_normalize_handle(raw, expected):
    assert normalize_handle(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "@", " @ ", "bad name", "dash-name", "a" * 33])
def test_normalize_handle_rejects(raw):
    with pytest.raises(InvalidHandle):
        normalize_handle(raw)


@pytest.mark.asyncio
async def test_join_lifecycle(session):
    giveaway = await add_giveaway(session, max_participants=2)
    gid = giveaway.id

    with pytest.raises(GiveawayNotStarted):
        await join_giveaway(
            session, giveaway_id=gid, telegram_username="early", now=T0 - timedelta(minutes=1)
        )

    await join_giveaway(session, giveaway_id=gid, telegram_username="alice", now=T0)
    await join_giveaway(
        session, giveaway_id=gid, telegram_username="@bob", now=T0 + timedelta(hours=1)
    )
    await session.commit()
    assert await count_participants(session, gid) == 2

    with pytest.raises(GiveawayFull):
        await join_giveaway(
            session, giveaway_id=gid, telegram_username="carol", now=T0 + timedelta(hours=2)
        )
    with pytest.raises(GiveawayEnded):
        await join_giveaway(
            session, giveaway_id=gid, telegram_username="dave", now=T1 + timedelta(seconds=1)
        )
    assert await count_participants(session, gid) == 2


@pytest.mark.asyncio
async def test_join_stores_handle_without_at(session):
    giveaway = await add_giveaway(session)
    participant = await join_giveaway(
        session,
        giveaway_id=giveaway.id,
        telegram_username=" @Alice ",
        email=" alice@example.com ",
        now=T0,
    )
    assert participant.telegram_username == "Alice"
    assert participant.handle_key == "alice"
    assert participant.email == "alice@example.com"


@pytest.mark.asyncio
async def test_duplicate_handle_is_case_insensitive(session):
    giveaway = await add_giveaway(session)
    gid = giveaway.id
    await join_giveaway(session, giveaway_id=gid, telegram_username="@Foo", now=T0)
    await session.commit()

    with pytest.raises(AlreadyJoined):
        await join_giveaway(session, giveaway_id=gid, telegram_username="foo", now=T0)
    await session.rollback()

    assert await count_participants(session, gid) == 1


@pytest.mark.asyncio
async def test_same_handle_may_join_different_giveaways(session):
    first = await add_giveaway(session)
    second = await add_giveaway(session, title="Winter drop")
    await join_giveaway(session, giveaway_id=first.id, telegram_username="alice", now=T0)
    await join_giveaway(session, giveaway_id=second.id, telegram_username="alice", now=T0)
    await session.commit()
    assert await count_participants(session, first.id) == 1
    assert await count_participants(session, second.id) == 1


@pytest.mark.asyncio
async def test_disabled_giveaway_refuses_joins(session):
    giveaway = await add_giveaway(session, is_active=False)
    with pytest.raises(GiveawayNotStarted):
        await join_giveaway(
            session, giveaway_id=giveaway.id, telegram_username="alice", now=T0
        )


@pytest.mark.asyncio
async def test_unknown_giveaway(session):
    with pytest.raises(GiveawayNotFound):
        await join_giveaway(session, giveaway_id=999, telegram_username="alice", now=T0)


@pytest.mark.asyncio
async def test_invalid_handle_is_checked_first(session):
    with pytest.raises(InvalidHandle):
        await join_giveaway(session, giveaway_id=999, telegram_username="@", now=T0)


@pytest.mark.asyncio
async def test_list_participants_newest_first(session):
    giveaway = await add_giveaway(session)
    for minutes, name in enumerate(["alice", "bob", "carol"]):
        await join_giveaway(
            session,
            giveaway_id=giveaway.id,
            telegram_username=name,
            now=T0 + timedelta(minutes=minutes),
        )
    await session.commit()
    participants = await list_participants(session, giveaway.id)
    assert [p.telegram_username for p in participants] == ["carol", "bob", "alice"]
