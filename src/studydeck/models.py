"""Data classes for decks, cards and review sessions."""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

INITIAL_EASINESS = 2.5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a timestamp in UTC with full microsecond precision."""
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="microseconds")


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(value))


@dataclass(frozen=True)
class Schedule:
    """The scheduling state of a card, owned by the SM-2 scheduler."""
    repetitions: int = 0
    easiness_factor: float = INITIAL_EASINESS
    interval_days: float = 0
    next_review: Optional[datetime] = None
    last_reviewed: Optional[datetime] = None


@dataclass
class Deck:
    id: int
    title: str
    subject: str = "General"
    card_ids: list[int] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row, card_ids: list[int]) -> "Deck":
        return cls(
            id=row["id"],
            title=row["title"],
            subject=row["subject"],
            card_ids=list(card_ids),
            created_at=from_iso(row["created_at"]),
        )


@dataclass
class Card:
    id: int
    deck_id: int
    front: str
    back: str
    hint: Optional[str] = None
    difficulty: Optional[str] = None  # informational only
    repetitions: int = 0
    easiness_factor: float = INITIAL_EASINESS
    interval_days: float = 0
    next_review: Optional[datetime] = None
    last_reviewed: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def schedule(self) -> Schedule:
        return Schedule(
            repetitions=self.repetitions,
            easiness_factor=self.easiness_factor,
            interval_days=self.interval_days,
            next_review=self.next_review,
            last_reviewed=self.last_reviewed,
        )

    @property
    def is_new(self) -> bool:
        return self.last_reviewed is None

    def with_schedule(self, schedule: Schedule) -> "Card":
        """Return a copy of this card carrying the given scheduling state."""
        return replace(
            self,
            repetitions=schedule.repetitions,
            easiness_factor=schedule.easiness_factor,
            interval_days=schedule.interval_days,
            next_review=schedule.next_review,
            last_reviewed=schedule.last_reviewed,
        )

    def is_due(self, now: datetime) -> bool:
        return self.next_review is None or as_utc(self.next_review) <= as_utc(now)

    @classmethod
    def from_row(cls, row) -> "Card":
        return cls(
            id=row["id"],
            deck_id=row["deck_id"],
            front=row["front"],
            back=row["back"],
            hint=row["hint"],
            difficulty=row["difficulty"],
            repetitions=row["repetitions"],
            easiness_factor=row["easiness_factor"],
            interval_days=row["interval_days"],
            next_review=from_iso(row["next_review"]),
            last_reviewed=from_iso(row["last_reviewed"]),
            created_at=from_iso(row["created_at"]),
        )


@dataclass
class SessionSummary:
    status: str
    reviewed_count: int = 0
    mastered_count: int = 0
    needs_work_count: int = 0
    total: int = 0
    ratings: dict[int, int] = field(default_factory=dict)
    deck_id: Optional[int] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "status": self.status,
            "reviewed_count": self.reviewed_count,
            "mastered_count": self.mastered_count,
            "needs_work_count": self.needs_work_count,
        }
