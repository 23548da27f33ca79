import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def shuffled(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly shuffled copy of ``items`` (Fisher-Yates)."""
    rng = rng or random.SystemRandom()
    pool = list(items)
    for i in range(len(pool) - 1, 0, -1):
        j = rng.randint(0, i)
        pool[i], pool[j] = pool[j], pool[i]
    return pool


def select_winners(
    participants: Sequence[T], winner_count: int, rng: random.Random | None = None
) -> list[T]:
    """Draw ``min(winner_count, len(participants))`` entries without replacement.

    The returned order is the draw order: index 0 is first place.
    ``winner_count`` is expected to be positive; giveaways refuse anything
    else when they are saved.
    """
    return shuffled(participants, rng)[: max(0, winner_count)]
