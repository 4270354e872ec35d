"""Review session state machine.

A session owns a fixed queue of cards taken at start. Each ``rate`` call
schedules the current card, hands it to ``persist`` and only then advances;
if scheduling or persisting fails the session is left exactly as it was.
A failing ``on_finish`` callback is logged and does not undo the finish.
"""
import logging
from collections import Counter
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from studydeck.errors import InvalidSessionState
from studydeck.models import Card, SessionSummary, as_utc, utc_now
from studydeck.sm2 import MASTERED, NEEDS_WORK, SWIPE_QUALITY, schedule_next, validate_quality

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    ACTIVE = "active"
    COMPLETE = "complete"
    ABANDONED = "abandoned"


class ReviewSession:
    def __init__(
        self,
        cards: Iterable[Card],
        persist: Optional[Callable[[Card, int], object]] = None,
        on_finish: Optional[Callable[[SessionSummary], object]] = None,
        deck_id: Optional[int] = None,
        started_at: Optional[datetime] = None,
    ):
        self.queue: tuple[Card, ...] = tuple(cards)
        self.current_index = 0
        self.mastered_count = 0
        self.needs_work_count = 0
        self.ratings: Counter = Counter()
        self.reviewed: list[Card] = []
        self.deck_id = deck_id
        self.started_at = as_utc(started_at) or utc_now()
        self.finished_at: Optional[datetime] = None
        self._persist = persist
        self._on_finish = on_finish
        if self.queue:
            self.state = SessionState.ACTIVE
        else:
            # Nothing due is a valid, already finished session.
            self.state = SessionState.COMPLETE
            self.finished_at = self.started_at
        logger.info("Started review session with %d card(s)", len(self.queue))

    @property
    def total(self) -> int:
        return len(self.queue)

    @property
    def position(self) -> int:
        """1-based position of the current card, for display."""
        return min(self.current_index + 1, self.total)

    @property
    def remaining(self) -> int:
        if self.state is SessionState.ABANDONED:
            return 0
        return self.total - self.current_index

    @property
    def is_finished(self) -> bool:
        return self.state is not SessionState.ACTIVE

    @property
    def current_card(self) -> Optional[Card]:
        if self.state is not SessionState.ACTIVE:
            return None
        return self.queue[self.current_index]

    def _require_active(self, action: str) -> None:
        if self.state is not SessionState.ACTIVE:
            raise InvalidSessionState(f"Cannot {action} a {self.state.value} session")

    def rate(self, quality: int, now: Optional[datetime] = None) -> Card:
        """Rate the current card, persist its new schedule and advance.

        Qualities 0-2 count as "needs work", 5 as "mastered"; 3 and 4 count
        toward neither but still advance the session.
        """
        self._require_active("rate")
        validate_quality(quality)
        now = as_utc(now) or utc_now()
        card = self.queue[self.current_index]
        updated = card.with_schedule(schedule_next(card.schedule, quality, now))
        if self._persist is not None:
            self._persist(updated, quality)

        if quality <= NEEDS_WORK:
            self.needs_work_count += 1
        elif quality >= MASTERED:
            self.mastered_count += 1
        self.ratings[quality] += 1
        self.reviewed.append(updated)
        self.current_index += 1
        logger.debug("Card %d rated %d (%d/%d)", card.id, quality, self.current_index, self.total)

        if self.current_index == self.total:
            self._finish(SessionState.COMPLETE, now)
        return updated

    def swipe(self, direction: str, now: Optional[datetime] = None) -> Card:
        """Rate the current card from a left/right swipe."""
        try:
            quality = SWIPE_QUALITY[direction]
        except KeyError:
            raise ValueError(f"Unknown swipe direction: {direction!r}") from None
        return self.rate(quality, now=now)

    def abandon(self, now: Optional[datetime] = None) -> SessionSummary:
        """Stop early. Cards not yet rated keep their schedule untouched."""
        self._require_active("abandon")
        self._finish(SessionState.ABANDONED, as_utc(now) or utc_now())
        return self.summary()

    def _finish(self, state: SessionState, now: datetime) -> None:
        self.state = state
        self.finished_at = now
        logger.info(
            "Review session %s: %d reviewed, %d mastered, %d need work",
            state.value, len(self.reviewed), self.mastered_count, self.needs_work_count,
        )
        if self._on_finish is None:
            return
        # The last card is already persisted, so the transition stands even
        # when the summary cannot be recorded.
        try:
            self._on_finish(self.summary())
        except Exception:
            logger.exception("Could not record summary of %s review session", state.value)

    def summary(self) -> SessionSummary:
        return SessionSummary(
            status=self.state.value,
            reviewed_count=len(self.reviewed),
            mastered_count=self.mastered_count,
            needs_work_count=self.needs_work_count,
            total=self.total,
            ratings=dict(self.ratings),
            deck_id=self.deck_id,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )
