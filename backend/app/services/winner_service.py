import logging
import random
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.time import utcnow
from backend.app.models.participant import Participant
from backend.app.models.winner import Winner
from backend.app.services.errors import NoParticipants
from backend.app.services.giveaway_service import get_giveaway
from backend.app.services.participant_service import list_participants
from backend.app.services.winner_selector import select_winners

logger = logging.getLogger(__name__)


async def list_winners(session: AsyncSession, giveaway_id: int) -> list[Winner]:
    result = await session.execute(
        select(Winner).where(Winner.giveaway_id == giveaway_id).order_by(Winner.position)
    )
    return list(result.scalars().all())


async def clear_winners(session: AsyncSession, *, giveaway_id: int) -> None:
    await session.execute(delete(Winner).where(Winner.giveaway_id == giveaway_id))


async def insert_winners(
    session: AsyncSession,
    *,
    giveaway_id: int,
    participants: Sequence[Participant],
    selected_at: datetime,
) -> list[Winner]:
    winners = [
        Winner(
            giveaway_id=giveaway_id,
            participant_id=participant.id,
            participant=participant,
            position=position,
            selected_at=selected_at,
        )
        for position, participant in enumerate(participants, start=1)
    ]
    session.add_all(winners)
    await session.flush()
    return winners


async def draw_winners(
    session: AsyncSession,
    *,
    giveaway_id: int,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[Winner]:
    """Replace the giveaway's winners with a fresh random draw.

    Runs in two phases on the caller's session: existing winners are
    deleted, then the new ones inserted. Nothing is committed here. Active
    giveaways may be drawn early.
    """
    giveaway = await get_giveaway(session, giveaway_id)
    participants = await list_participants(session, giveaway_id)
    if not participants:
        raise NoParticipants()

    selected = select_winners(participants, giveaway.winner_count, rng)
    await clear_winners(session, giveaway_id=giveaway_id)
    winners = await insert_winners(
        session,
        giveaway_id=giveaway_id,
        participants=selected,
        selected_at=now or utcnow(),
    )
    logger.info(
        "Drew %s winner(s) from %s participant(s) for giveaway %s",
        len(winners),
        len(participants),
        giveaway_id,
    )
    return winners
