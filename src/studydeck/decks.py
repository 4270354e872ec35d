"""Deck and card storage.

Decks never store their member card ids; ``Deck.card_ids`` is always derived
from ``cards.deck_id`` so the two sides of the relationship cannot disagree.
Scheduling fields are written only through ``flashcards.save_reviewed_card``.
"""
import logging
import sqlite3
from datetime import datetime
from typing import Iterable, Optional

from studydeck.db import get_connection
from studydeck.errors import CardNotFound, DeckNotFound
from studydeck.models import Card, Deck, to_iso, utc_now
from studydeck.sm2 import initial_schedule

logger = logging.getLogger(__name__)

CARD_CONTENT_FIELDS = ("front", "back", "hint", "difficulty")


def _card_ids(conn: sqlite3.Connection, deck_id: int) -> list[int]:
    rows = conn.execute(
        "SELECT id FROM cards WHERE deck_id = ? ORDER BY id", (deck_id,)
    ).fetchall()
    return [r["id"] for r in rows]


def _require_deck(conn: sqlite3.Connection, deck_id: int) -> sqlite3.Row:
    row = conn.execute("SELECT * FROM decks WHERE id = ?", (deck_id,)).fetchone()
    if row is None:
        raise DeckNotFound(deck_id)
    return row


def _insert_card(conn: sqlite3.Connection, deck_id: int, data: dict, now: datetime) -> int:
    front = (data.get("front") or "").strip()
    back = (data.get("back") or "").strip()
    if not front or not back:
        raise ValueError("A card needs both a front and a back")
    schedule = initial_schedule(now)
    cursor = conn.execute(
        """INSERT INTO cards
        (deck_id, front, back, hint, difficulty, repetitions, easiness_factor,
         interval_days, next_review, last_reviewed, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            deck_id, front, back, data.get("hint") or None, data.get("difficulty") or None,
            schedule.repetitions, schedule.easiness_factor, schedule.interval_days,
            to_iso(schedule.next_review), None, to_iso(now),
        ),
    )
    return cursor.lastrowid


# --- Decks ---

def create_deck(db_path: str, title: str, subject: str = "General", now: Optional[datetime] = None) -> Deck:
    title = title.strip()
    if not title:
        raise ValueError("Deck title must not be empty")
    now = now or utc_now()
    conn = get_connection(db_path)
    cursor = conn.execute(
        "INSERT INTO decks (title, subject, created_at) VALUES (?, ?, ?)",
        (title, subject or "General", to_iso(now)),
    )
    conn.commit()
    deck_id = cursor.lastrowid
    conn.close()
    logger.info("Created deck %d (%s)", deck_id, title)
    return get_deck(db_path, deck_id)


def get_deck(db_path: str, deck_id: int) -> Deck:
    conn = get_connection(db_path)
    try:
        row = _require_deck(conn, deck_id)
        return Deck.from_row(row, _card_ids(conn, deck_id))
    finally:
        conn.close()


def list_decks(db_path: str) -> list[Deck]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM decks ORDER BY id").fetchall()
    decks = [Deck.from_row(r, _card_ids(conn, r["id"])) for r in rows]
    conn.close()
    return decks


def update_deck(db_path: str, deck_id: int, title: Optional[str] = None, subject: Optional[str] = None) -> Deck:
    deck = get_deck(db_path, deck_id)
    title = deck.title if title is None else title.strip()
    if not title:
        raise ValueError("Deck title must not be empty")
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE decks SET title = ?, subject = ? WHERE id = ?",
        (title, deck.subject if subject is None else subject, deck_id),
    )
    conn.commit()
    conn.close()
    return get_deck(db_path, deck_id)


def delete_deck(db_path: str, deck_id: int, reassign_to: Optional[int] = None) -> None:
    """Delete a deck. Its cards are deleted too unless ``reassign_to`` names another deck."""
    if reassign_to == deck_id:
        raise ValueError("Cannot reassign cards to the deck being deleted")
    conn = get_connection(db_path)
    try:
        with conn:
            _require_deck(conn, deck_id)
            if reassign_to is not None:
                _require_deck(conn, reassign_to)
                conn.execute(
                    "UPDATE cards SET deck_id = ? WHERE deck_id = ?", (reassign_to, deck_id)
                )
            conn.execute("DELETE FROM decks WHERE id = ?", (deck_id,))
    finally:
        conn.close()
    logger.info("Deleted deck %d (cards %s)", deck_id,
                f"moved to {reassign_to}" if reassign_to is not None else "deleted")


# --- Cards ---

def create_card(db_path: str, deck_id: int, front: str, back: str,
                hint: Optional[str] = None, difficulty: Optional[str] = None,
                now: Optional[datetime] = None) -> Card:
    """Create a card that is due immediately."""
    return create_cards(
        db_path, deck_id,
        [{"front": front, "back": back, "hint": hint, "difficulty": difficulty}],
        now=now,
    )[0]


def create_cards(db_path: str, deck_id: int, cards: Iterable[dict], now: Optional[datetime] = None) -> list[Card]:
    """Bulk-create cards in one transaction; either all are stored or none."""
    now = now or utc_now()
    conn = get_connection(db_path)
    try:
        with conn:
            _require_deck(conn, deck_id)
            ids = [_insert_card(conn, deck_id, data, now) for data in cards]
    finally:
        conn.close()
    logger.debug("Created %d card(s) in deck %d", len(ids), deck_id)
    return get_cards(db_path, ids)


def create_deck_with_cards(db_path: str, title: str, subject: str, cards: Iterable[dict],
                           now: Optional[datetime] = None) -> tuple[Deck, list[Card]]:
    """Create a deck and its initial cards in a single transaction."""
    title = title.strip()
    if not title:
        raise ValueError("Deck title must not be empty")
    now = now or utc_now()
    conn = get_connection(db_path)
    try:
        with conn:
            cursor = conn.execute(
                "INSERT INTO decks (title, subject, created_at) VALUES (?, ?, ?)",
                (title, subject or "General", to_iso(now)),
            )
            deck_id = cursor.lastrowid
            ids = [_insert_card(conn, deck_id, data, now) for data in cards]
    finally:
        conn.close()
    logger.info("Created deck %d (%s) with %d cards", deck_id, title, len(ids))
    return get_deck(db_path, deck_id), get_cards(db_path, ids)


def get_card(db_path: str, card_id: int) -> Card:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM cards WHERE id = ?", (card_id,)).fetchone()
    conn.close()
    if row is None:
        raise CardNotFound(card_id)
    return Card.from_row(row)


def get_cards(db_path: str, card_ids: Iterable[int]) -> list[Card]:
    """Fetch cards by id, in the order given. Raises CardNotFound for a missing id."""
    card_ids = list(card_ids)
    if not card_ids:
        return []
    conn = get_connection(db_path)
    placeholders = ",".join("?" * len(card_ids))
    rows = conn.execute(
        f"SELECT * FROM cards WHERE id IN ({placeholders})", card_ids
    ).fetchall()
    conn.close()
    by_id = {r["id"]: Card.from_row(r) for r in rows}
    for card_id in card_ids:
        if card_id not in by_id:
            raise CardNotFound(card_id)
    return [by_id[i] for i in card_ids]


def get_all_cards(db_path: str) -> list[Card]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM cards ORDER BY id").fetchall()
    conn.close()
    return [Card.from_row(r) for r in rows]


def get_cards_for_deck(db_path: str, deck_id: int) -> list[Card]:
    conn = get_connection(db_path)
    try:
        _require_deck(conn, deck_id)
        rows = conn.execute(
            "SELECT * FROM cards WHERE deck_id = ? ORDER BY id", (deck_id,)
        ).fetchall()
    finally:
        conn.close()
    return [Card.from_row(r) for r in rows]


def update_card(db_path: str, card_id: int, **changes) -> Card:
    """Edit a card's content. Scheduling fields cannot be changed here."""
    unknown = set(changes) - set(CARD_CONTENT_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update card field(s): {', '.join(sorted(unknown))}")
    for key in ("front", "back"):
        if key in changes and not (changes[key] or "").strip():
            raise ValueError(f"Card {key} must not be empty")
    for key in ("hint", "difficulty"):
        if key in changes:
            changes[key] = changes[key] or None
    card = get_card(db_path, card_id)
    if not changes:
        return card
    assignments = ", ".join(f"{key} = ?" for key in changes)
    conn = get_connection(db_path)
    conn.execute(
        f"UPDATE cards SET {assignments} WHERE id = ?",
        (*changes.values(), card_id),
    )
    conn.commit()
    conn.close()
    return get_card(db_path, card.id)


def move_card(db_path: str, card_id: int, deck_id: int) -> Card:
    conn = get_connection(db_path)
    try:
        with conn:
            _require_deck(conn, deck_id)
            cursor = conn.execute("UPDATE cards SET deck_id = ? WHERE id = ?", (deck_id, card_id))
            if cursor.rowcount == 0:
                raise CardNotFound(card_id)
    finally:
        conn.close()
    return get_card(db_path, card_id)


def delete_card(db_path: str, card_id: int) -> None:
    conn = get_connection(db_path)
    deleted = conn.execute("DELETE FROM cards WHERE id = ?", (card_id,)).rowcount
    conn.commit()
    conn.close()
    if deleted == 0:
        raise CardNotFound(card_id)
    logger.debug("Deleted card %d", card_id)
