import pytest

from backend.app.services.admin_service import (
    authenticate_admin,
    check_login_ban,
    clear_login_attempts,
    create_admin,
    record_login_failure,
)
from backend.app.services.audit_service import log_action, recent_actions
from backend.app.services.errors import ServiceError


@pytest.mark.asyncio
async def test_create_and_authenticate(session):
    await create_admin(session, username=" Boss ", password="correct-horse")
    await session.commit()

    admin = await authenticate_admin(
        session, username="boss", password="correct-horse", ip="10.0.0.1"
    )
    assert admin is not None
    assert admin.last_login_ip == "10.0.0.1"
    assert await authenticate_admin(session, username="boss", password="nope-nope") is None
    assert await authenticate_admin(session, username="ghost", password="correct-horse") is None


@pytest.mark.asyncio
async def test_create_admin_validation(session):
    with pytest.raises(ServiceError):
        await create_admin(session, username="boss", password="short")
    await create_admin(session, username="boss", password="long-enough")
    await session.commit()
    with pytest.raises(ServiceError):
        await create_admin(session, username="BOSS", password="long-enough")
    await session.rollback()


@pytest.mark.asyncio
async def test_repeated_failures_ban_the_pair(session):
    for _ in range(2):
        throttle = await record_login_failure(
            session, username="boss", ip="1.2.3.4", max_attempts=3, ban_minutes=15
        )
        assert not throttle.banned
    throttle = await record_login_failure(
        session, username="boss", ip="1.2.3.4", max_attempts=3, ban_minutes=15
    )
    assert throttle.banned
    await session.commit()

    assert (await check_login_ban(session, username="boss", ip="1.2.3.4")).banned
    assert not (await check_login_ban(session, username="boss", ip="5.6.7.8")).banned

    await clear_login_attempts(session, username="boss", ip="1.2.3.4")
    await session.commit()
    assert not (await check_login_ban(session, username="boss", ip="1.2.3.4")).banned


@pytest.mark.asyncio
async def test_audit_log(session):
    await log_action(session, actor="boss", action="giveaway_draw", payload={"giveaway_id": 1})
    await session.commit()
    [entry] = await recent_actions(session)
    assert entry.action == "giveaway_draw"
    assert entry.payload == {"giveaway_id": 1}
