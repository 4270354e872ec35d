"""Due-card selection and persistence of SM-2 review results."""
import logging
from datetime import datetime
from typing import Iterable, Optional

from studydeck.db import get_connection
from studydeck.decks import get_all_cards, get_card, get_cards_for_deck
from studydeck.errors import CardNotFound
from studydeck.models import Card, as_utc, to_iso, utc_now
from studydeck.sm2 import schedule_next, validate_quality

logger = logging.getLogger(__name__)


def _due_order(card: Card):
    # Cards without a timestamp sort first, then by time, then by id.
    return (card.next_review is not None, as_utc(card.next_review) or 0, card.id)


def select_due(cards: Iterable[Card], now: datetime, deck_id: Optional[int] = None) -> list[Card]:
    """Return the cards due at ``now``, oldest due date first, ties broken by id."""
    now = as_utc(now)
    due = [
        c for c in cards
        if (deck_id is None or c.deck_id == deck_id) and c.is_due(now)
    ]
    return sorted(due, key=_due_order)


def get_due_cards(db_path: str, now: Optional[datetime] = None,
                  deck_id: Optional[int] = None, limit: Optional[int] = None) -> list[Card]:
    """Fetch the due-set from the store, optionally restricted to one deck."""
    now = now or utc_now()
    if deck_id is None:
        cards = get_all_cards(db_path)
    else:
        cards = get_cards_for_deck(db_path, deck_id)
    due = select_due(cards, now, deck_id=deck_id)
    if limit is not None:
        due = due[:limit]
    return due


def count_due(cards: Iterable[Card], now: datetime) -> int:
    return sum(1 for c in cards if c.is_due(now))


def save_reviewed_card(db_path: str, card: Card, quality: int) -> Card:
    """Persist a card's new scheduling state and log the review, atomically."""
    conn = get_connection(db_path)
    try:
        with conn:
            cursor = conn.execute(
                """UPDATE cards SET repetitions=?, easiness_factor=?, interval_days=?,
                next_review=?, last_reviewed=? WHERE id=?""",
                (
                    card.repetitions, card.easiness_factor, card.interval_days,
                    to_iso(card.next_review), to_iso(card.last_reviewed), card.id,
                ),
            )
            if cursor.rowcount == 0:
                raise CardNotFound(card.id)
            conn.execute(
                "INSERT INTO card_reviews (card_id, quality, reviewed_at) VALUES (?, ?, ?)",
                (card.id, quality, to_iso(card.last_reviewed or utc_now())),
            )
    finally:
        conn.close()
    logger.debug("Saved card %d: next review %s", card.id, card.next_review)
    return card


def record_flashcard_result(db_path: str, card_id: int, quality: int,
                            now: Optional[datetime] = None) -> Card:
    """Rate a single card outside of a review session."""
    validate_quality(quality)
    card = get_card(db_path, card_id)
    updated = card.with_schedule(schedule_next(card.schedule, quality, now or utc_now()))
    return save_reviewed_card(db_path, updated, quality)
