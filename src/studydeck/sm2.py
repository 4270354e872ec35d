"""SM-2 spaced repetition algorithm."""
import logging
from datetime import datetime, timedelta

from studydeck.errors import InvalidRating
from studydeck.models import INITIAL_EASINESS, Schedule, as_utc

logger = logging.getLogger(__name__)

MIN_EASINESS = 1.3
MIN_QUALITY = 0
MAX_QUALITY = 5
SUCCESS_THRESHOLD = 3

# Coarse two-outcome ratings used by the swipe UI.
NEEDS_WORK = 2
MASTERED = 5
SWIPE_QUALITY = {"left": NEEDS_WORK, "right": MASTERED}


def validate_quality(quality) -> int:
    """Return ``quality`` unchanged if it is an integer 0-5, else raise InvalidRating."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidRating(quality)
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidRating(quality)
    return quality


def next_easiness(easiness_factor: float, quality: int) -> float:
    """Apply the SM-2 easiness update, floored at 1.3."""
    ef = max(MIN_EASINESS, easiness_factor)
    new_ef = ef + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    return max(MIN_EASINESS, new_ef)


def initial_schedule(now: datetime) -> Schedule:
    """Scheduling state of a card that has never been reviewed: due immediately."""
    return Schedule(
        repetitions=0,
        easiness_factor=INITIAL_EASINESS,
        interval_days=0,
        next_review=as_utc(now),
        last_reviewed=None,
    )


def schedule_next(state: Schedule, quality: int, now: datetime) -> Schedule:
    """Calculate the next scheduling state for a review rated ``quality``.

    Args:
        state: Current scheduling state of the card.
        quality: Rating 0-5 (0=complete blackout, 5=perfect). Anything below
            3 is a lapse and restarts the spacing curve.
        now: Time of the review. Naive values are taken as UTC.

    Returns:
        A new Schedule. ``state`` is not modified.

    Raises:
        InvalidRating: if quality is not an integer from 0 to 5.
    """
    validate_quality(quality)
    now = as_utc(now)
    new_ef = next_easiness(state.easiness_factor, quality)

    if quality >= SUCCESS_THRESHOLD:
        new_repetitions = state.repetitions + 1
        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = 6
        else:
            new_interval = round(state.interval_days * new_ef)
        # A reviewed card is never due again in under a day.
        new_interval = max(1, new_interval)
    else:
        new_repetitions = 0
        new_interval = 1

    logger.debug(
        "SM-2 q=%d: reps %d->%d, ef %.4f->%.4f, interval %s->%s",
        quality, state.repetitions, new_repetitions,
        state.easiness_factor, new_ef, state.interval_days, new_interval,
    )
    return Schedule(
        repetitions=new_repetitions,
        easiness_factor=new_ef,
        interval_days=new_interval,
        next_review=now + timedelta(days=new_interval),
        last_reviewed=now,
    )
