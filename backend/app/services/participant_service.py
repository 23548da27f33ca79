import logging
import re
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.time import utcnow
from backend.app.models.enums import GiveawayStatus
from backend.app.models.giveaway import Giveaway
from backend.app.models.participant import Participant
from backend.app.services.eligibility import evaluate
from backend.app.services.errors import (
    AlreadyJoined,
    GiveawayEnded,
    GiveawayFull,
    GiveawayNotFound,
    GiveawayNotStarted,
    InvalidHandle,
)

logger = logging.getLogger(__name__)

HANDLE_RE = re.compile(r"^[A-Za-z0-9_]{1,32}$")


def normalize_handle(raw: str | None) -> str:
    handle = (raw or "").strip()
    if handle.startswith("@"):
        handle = handle[1:].strip()
    if not handle:
        raise InvalidHandle()
    if not HANDLE_RE.match(handle):
        raise InvalidHandle("Telegram username may only contain letters, digits and _.")
    return handle


def handle_key(handle: str) -> str:
    return handle.lower()


async def count_participants(session: AsyncSession, giveaway_id: int) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Participant)
        .where(Participant.giveaway_id == giveaway_id)
    )
    return result.scalar_one()


async def count_participants_by_giveaway(
    session: AsyncSession, giveaway_ids: Sequence[int]
) -> dict[int, int]:
    if not giveaway_ids:
        return {}
    result = await session.execute(
        select(Participant.giveaway_id, func.count())
        .where(Participant.giveaway_id.in_(giveaway_ids))
        .group_by(Participant.giveaway_id)
    )
    return {giveaway_id: count for giveaway_id, count in result.all()}


async def list_participants(session: AsyncSession, giveaway_id: int) -> list[Participant]:
    result = await session.execute(
        select(Participant)
        .where(Participant.giveaway_id == giveaway_id)
        .order_by(Participant.created_at.desc(), Participant.id.desc())
    )
    return list(result.scalars().all())


async def join_giveaway(
    session: AsyncSession,
    *,
    giveaway_id: int,
    telegram_username: str,
    email: str | None = None,
    now: datetime | None = None,
) -> Participant:
    handle = normalize_handle(telegram_username)
    now = now or utcnow()

    giveaway = await session.get(Giveaway, giveaway_id)
    if not giveaway:
        raise GiveawayNotFound()
    # The page the user saw may be stale; check against current data.
    eligibility = evaluate(giveaway, now, await count_participants(session, giveaway_id))
    if eligibility.status == GiveawayStatus.ended:
        raise GiveawayEnded()
    if eligibility.status == GiveawayStatus.upcoming:
        raise GiveawayNotStarted()
    if eligibility.is_full:
        raise GiveawayFull()

    participant = Participant(
        giveaway_id=giveaway_id,
        telegram_username=handle,
        handle_key=handle_key(handle),
        email=(email or "").strip() or None,
        created_at=now,
    )
    session.add(participant)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise AlreadyJoined() from exc
    logger.info("@%s joined giveaway %s", handle, giveaway_id)
    return participant
