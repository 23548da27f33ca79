import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.time import ensure_utc, utcnow
from backend.app.models.giveaway import Giveaway
from backend.app.services.eligibility import Eligibility, evaluate
from backend.app.services.errors import GiveawayNotFound, InvalidGiveaway
from backend.app.services.participant_service import count_participants_by_giveaway

logger = logging.getLogger(__name__)


@dataclass
class GiveawayOverview:
    giveaway: Giveaway
    eligibility: Eligibility


def parse_form_datetime(value: str | None) -> datetime | None:
    """Parse an HTML ``datetime-local`` / ISO value; naive input is UTC."""
    if value is None or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidGiveaway(f"Invalid date: {value}") from exc
    return ensure_utc(parsed)


def _validate(
    *,
    title: str,
    description: str,
    prize: str,
    start_date: datetime,
    end_date: datetime | None,
    max_participants: int,
    winner_count: int,
) -> None:
    if not title.strip() or not description.strip() or not prize.strip():
        raise InvalidGiveaway("Title, description and prize are required.")
    if end_date is None:
        raise InvalidGiveaway("End date is required.")
    if ensure_utc(end_date) <= ensure_utc(start_date):
        raise InvalidGiveaway("End date must be after the start date.")
    if max_participants < 1:
        raise InvalidGiveaway("Maximum participants must be at least 1.")
    if winner_count < 1:
        raise InvalidGiveaway("Winner count must be at least 1.")


async def get_giveaway(session: AsyncSession, giveaway_id: int) -> Giveaway:
    giveaway = await session.get(Giveaway, giveaway_id)
    if not giveaway:
        raise GiveawayNotFound()
    return giveaway


async def list_giveaways(session: AsyncSession, *, only_active: bool = False) -> list[Giveaway]:
    query = select(Giveaway).order_by(Giveaway.created_at.desc(), Giveaway.id.desc())
    if only_active:
        query = query.where(Giveaway.is_active.is_(True))
    result = await session.execute(query)
    return list(result.scalars().all())


async def list_overviews(
    session: AsyncSession, *, only_active: bool = False, now: datetime | None = None
) -> list[GiveawayOverview]:
    now = now or utcnow()
    giveaways = await list_giveaways(session, only_active=only_active)
    counts = await count_participants_by_giveaway(session, [g.id for g in giveaways])
    return [
        GiveawayOverview(giveaway=g, eligibility=evaluate(g, now, counts.get(g.id, 0)))
        for g in giveaways
    ]


async def list_public_giveaways(
    session: AsyncSession, *, now: datetime | None = None
) -> list[GiveawayOverview]:
    return await list_overviews(session, only_active=True, now=now)


async def create_giveaway(
    session: AsyncSession,
    *,
    title: str,
    description: str,
    prize: str,
    end_date: datetime | None,
    start_date: datetime | None = None,
    max_participants: int = 1000,
    winner_count: int = 1,
    is_active: bool = True,
) -> Giveaway:
    now = utcnow()
    start_date = start_date or now
    _validate(
        title=title,
        description=description,
        prize=prize,
        start_date=start_date,
        end_date=end_date,
        max_participants=max_participants,
        winner_count=winner_count,
    )
    giveaway = Giveaway(
        title=title.strip(),
        description=description.strip(),
        prize=prize.strip(),
        max_participants=max_participants,
        start_date=ensure_utc(start_date),
        end_date=ensure_utc(end_date),
        winner_count=winner_count,
        is_active=is_active,
        created_at=now,
    )
    session.add(giveaway)
    await session.flush()
    logger.info("Giveaway %s created: %s", giveaway.id, giveaway.title)
    return giveaway


async def update_giveaway(
    session: AsyncSession,
    *,
    giveaway_id: int,
    title: str,
    description: str,
    prize: str,
    end_date: datetime | None,
    start_date: datetime | None = None,
    max_participants: int,
    winner_count: int,
    is_active: bool,
) -> Giveaway:
    giveaway = await get_giveaway(session, giveaway_id)
    start_date = start_date or giveaway.start_date
    _validate(
        title=title,
        description=description,
        prize=prize,
        start_date=start_date,
        end_date=end_date,
        max_participants=max_participants,
        winner_count=winner_count,
    )
    giveaway.title = title.strip()
    giveaway.description = description.strip()
    giveaway.prize = prize.strip()
    giveaway.start_date = ensure_utc(start_date)
    giveaway.end_date = ensure_utc(end_date)
    giveaway.max_participants = max_participants
    giveaway.winner_count = winner_count
    giveaway.is_active = is_active
    return giveaway


async def toggle_giveaway(session: AsyncSession, *, giveaway_id: int) -> Giveaway:
    giveaway = await get_giveaway(session, giveaway_id)
    giveaway.is_active = not giveaway.is_active
    return giveaway


async def delete_giveaway(session: AsyncSession, *, giveaway_id: int) -> None:
    giveaway = await get_giveaway(session, giveaway_id)
    await session.delete(giveaway)
    logger.info("Giveaway %s deleted", giveaway_id)


def participation_link(giveaway_id: int) -> str:
    return f"{settings.site_url.rstrip('/')}/giveaway/{giveaway_id}"
