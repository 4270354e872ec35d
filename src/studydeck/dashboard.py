"""Deck and card statistics."""
from datetime import datetime
from typing import Optional

from studydeck.db import get_connection
from studydeck.decks import get_all_cards, get_cards_for_deck, get_deck, list_decks
from studydeck.flashcards import count_due
from studydeck.models import utc_now
from studydeck.sm2 import SUCCESS_THRESHOLD
from studydeck.study import get_last_session

# A card counts as learned once it has survived this many successful reviews in a row.
LEARNED_REPETITIONS = 3


def get_mastery_label(rate: float | None) -> str:
    if rate is None:
        return "NEW"
    if rate >= 90:
        return "MASTERED"
    elif rate >= 70:
        return "STRONG"
    return "NEEDS WORK"


def get_mastery_color(rate: float | None) -> str:
    if rate is None:
        return "dim"
    if rate >= 90:
        return "green"
    elif rate >= 70:
        return "yellow"
    return "red"


def get_retention_rate(db_path: str, deck_id: Optional[int] = None) -> float:
    """Percentage of logged reviews rated as a success (quality >= 3)."""
    conn = get_connection(db_path)
    if deck_id is None:
        row = conn.execute(
            "SELECT COUNT(*) as t, SUM(CASE WHEN quality >= ? THEN 1 ELSE 0 END) as c FROM card_reviews",
            (SUCCESS_THRESHOLD,),
        ).fetchone()
    else:
        row = conn.execute(
            """SELECT COUNT(*) as t, SUM(CASE WHEN r.quality >= ? THEN 1 ELSE 0 END) as c
            FROM card_reviews r JOIN cards c ON r.card_id = c.id
            WHERE c.deck_id = ?""",
            (SUCCESS_THRESHOLD, deck_id),
        ).fetchone()
    conn.close()
    if not row["t"]:
        return 0.0
    return round((row["c"] / row["t"]) * 100, 1)


def get_deck_stats(db_path: str, deck_id: int, now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    deck = get_deck(db_path, deck_id)
    cards = get_cards_for_deck(db_path, deck_id)
    last = get_last_session(db_path, deck_id)
    average_ef = sum(c.easiness_factor for c in cards) / len(cards) if cards else 0.0
    return {
        "deck_id": deck.id,
        "title": deck.title,
        "subject": deck.subject,
        "total_cards": len(cards),
        "due_cards": count_due(cards, now),
        "new_cards": sum(1 for c in cards if c.is_new),
        "learned_cards": sum(1 for c in cards if c.repetitions >= LEARNED_REPETITIONS),
        "average_easiness": round(average_ef, 2),
        "last_session": last.as_dict() if last else None,
    }


def get_overall_stats(db_path: str, now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    decks = list_decks(db_path)
    cards = get_all_cards(db_path)
    due_by_deck = {d.id: 0 for d in decks}
    for card in cards:
        if card.is_due(now):
            due_by_deck[card.deck_id] += 1
    conn = get_connection(db_path)
    reviews = conn.execute("SELECT COUNT(*) FROM card_reviews").fetchone()[0]
    conn.close()
    last = get_last_session(db_path)
    return {
        "total_decks": len(decks),
        "total_cards": len(cards),
        "due_cards": sum(due_by_deck.values()),
        "due_by_deck": due_by_deck,
        "reviews_logged": reviews,
        "last_session": last.as_dict() if last else None,
    }
