"""Temporal status and join-admissibility of a giveaway.

Everything here is pure: callers pass the giveaway, the instant to evaluate
at and the participant count they already fetched.
"""

from dataclasses import dataclass
from datetime import datetime

from backend.app.core.time import ensure_utc
from backend.app.models.enums import GiveawayStatus
from backend.app.models.giveaway import Giveaway


@dataclass(frozen=True)
class Eligibility:
    status: GiveawayStatus
    is_full: bool
    participant_count: int
    max_participants: int

    @property
    def can_join(self) -> bool:
        return self.status == GiveawayStatus.active and not self.is_full

    @property
    def spots_left(self) -> int:
        return max(0, self.max_participants - self.participant_count)


def giveaway_status(giveaway: Giveaway, now: datetime) -> GiveawayStatus:
    now = ensure_utc(now)
    start = ensure_utc(giveaway.start_date)
    end = ensure_utc(giveaway.end_date)
    if now > end:
        return GiveawayStatus.ended
    if start <= now <= end and giveaway.is_active:
        return GiveawayStatus.active
    return GiveawayStatus.upcoming


def is_full(giveaway: Giveaway, participant_count: int) -> bool:
    return participant_count >= giveaway.max_participants


def evaluate(giveaway: Giveaway, now: datetime, participant_count: int) -> Eligibility:
    return Eligibility(
        status=giveaway_status(giveaway, now),
        is_full=is_full(giveaway, participant_count),
        participant_count=participant_count,
        max_participants=giveaway.max_participants,
    )
