# tests/test_flashcards.py
from datetime import timedelta

import pytest

from studydeck.db import get_connection
from studydeck.decks import create_card, create_deck, get_card
from studydeck.errors import CardNotFound, DeckNotFound, InvalidRating
from studydeck.flashcards import get_due_cards, record_flashcard_result, save_reviewed_card, select_due
from studydeck.models import Card


def make_card(card_id, next_review, deck_id=1):
    return Card(id=card_id, deck_id=deck_id, front=f"Q{card_id}", back="A", next_review=next_review)


def test_select_due_orders_by_date_then_id(t0):
    cards = [
        make_card(3, t0),
        make_card(1, t0),
        make_card(2, t0 - timedelta(days=2)),
        make_card(4, t0 + timedelta(days=1)),
    ]
    due = select_due(cards, t0)
    assert [c.id for c in due] == [2, 1, 3]


def test_select_due_filters_by_deck(t0):
    cards = [make_card(1, t0, deck_id=1), make_card(2, t0, deck_id=2)]
    assert [c.id for c in select_due(cards, t0, deck_id=2)] == [2]


def test_select_due_empty_is_not_an_error(t0):
    assert select_due([], t0) == []
    assert select_due([make_card(1, t0 + timedelta(hours=1))], t0) == []


def test_select_due_is_stable(t0):
    cards = [make_card(i, t0 - timedelta(hours=i % 3)) for i in range(1, 10)]
    assert select_due(cards, t0) == select_due(list(reversed(cards)), t0)


def test_get_due_cards_returns_new_cards(db, t0):
    """Never-reviewed cards are due from the moment they are created."""
    deck = create_deck(db, "Chemistry")
    for i in range(3):
        create_card(db, deck.id, f"Q{i}", f"A{i}", now=t0)
    assert len(get_due_cards(db, now=t0)) == 3


def test_get_due_cards_empty_db(db, t0):
    assert get_due_cards(db, now=t0) == []


def test_get_due_cards_order_and_idempotence(db, t0):
    deck = create_deck(db, "Chemistry")
    later = create_card(db, deck.id, "Q1", "A1", now=t0 + timedelta(minutes=5))
    earlier = create_card(db, deck.id, "Q2", "A2", now=t0)
    same = create_card(db, deck.id, "Q3", "A3", now=t0)
    now = t0 + timedelta(hours=1)
    first = get_due_cards(db, now=now)
    assert [c.id for c in first] == [earlier.id, same.id, later.id]
    assert get_due_cards(db, now=now) == first


def test_get_due_cards_for_deck(db, t0):
    chem = create_deck(db, "Chemistry")
    bio = create_deck(db, "Biology")
    create_card(db, chem.id, "Q1", "A1", now=t0)
    b = create_card(db, bio.id, "Q2", "A2", now=t0)
    assert [c.id for c in get_due_cards(db, now=t0, deck_id=bio.id)] == [b.id]


def test_get_due_cards_missing_deck(db, t0):
    with pytest.raises(DeckNotFound):
        get_due_cards(db, now=t0, deck_id=999)


def test_get_due_cards_respects_limit(db, t0):
    deck = create_deck(db, "Chemistry")
    for i in range(5):
        create_card(db, deck.id, f"Q{i}", f"A{i}", now=t0)
    assert len(get_due_cards(db, now=t0, limit=3)) == 3


def test_reviewed_card_is_not_due_until_next_day(db, t0):
    deck = create_deck(db, "Chemistry")
    card = create_card(db, deck.id, "Q", "A", now=t0)
    record_flashcard_result(db, card.id, 5, now=t0)
    assert get_due_cards(db, now=t0 + timedelta(hours=23)) == []
    assert len(get_due_cards(db, now=t0 + timedelta(days=1))) == 1


def test_record_flashcard_result_updates_sm2(db, t0):
    deck = create_deck(db, "Chemistry")
    card = create_card(db, deck.id, "Q", "A", now=t0)
    record_flashcard_result(db, card.id, 4, now=t0)
    updated = get_card(db, card.id)
    assert updated.repetitions == 1
    assert updated.interval_days == 1
    conn = get_connection(db)
    result = conn.execute("SELECT * FROM card_reviews WHERE card_id = ?", (card.id,)).fetchone()
    assert result["quality"] == 4
    conn.close()


def test_record_flashcard_result_invalid_rating_changes_nothing(db, t0):
    deck = create_deck(db, "Chemistry")
    card = create_card(db, deck.id, "Q", "A", now=t0)
    with pytest.raises(InvalidRating):
        record_flashcard_result(db, card.id, 7, now=t0)
    assert get_card(db, card.id) == card


def test_record_flashcard_result_missing_card(db):
    with pytest.raises(CardNotFound):
        record_flashcard_result(db, 123, 5)


def test_save_reviewed_card_missing_card(db, t0):
    with pytest.raises(CardNotFound):
        save_reviewed_card(db, make_card(77, t0), 5)
    conn = get_connection(db)
    assert conn.execute("SELECT COUNT(*) FROM card_reviews").fetchone()[0] == 0
    conn.close()


def test_naive_now_is_treated_as_utc(db, t0):
    deck = create_deck(db, "Chemistry")
    card = create_card(db, deck.id, "Q", "A", now=t0)
    naive = t0.replace(tzinfo=None)
    assert [c.id for c in get_due_cards(db, now=naive)] == [card.id]
    assert get_due_cards(db, now=naive - timedelta(seconds=1)) == []


def test_naive_review_time_is_stored_as_utc(db, t0):
    deck = create_deck(db, "Chemistry")
    card = create_card(db, deck.id, "Q", "A", now=t0.replace(tzinfo=None))
    assert card.next_review == t0
    record_flashcard_result(db, card.id, 5, now=t0.replace(tzinfo=None))
    stored = get_card(db, card.id)
    assert stored.last_reviewed == t0
    assert stored.next_review == t0 + timedelta(days=1)
    # aware comparisons keep working afterwards
    assert get_due_cards(db, now=t0 + timedelta(days=1)) == [stored]


def test_select_due_with_mixed_naive_and_aware(t0):
    cards = [make_card(1, t0), make_card(2, t0.replace(tzinfo=None) - timedelta(hours=1))]
    assert [c.id for c in select_due(cards, t0.replace(tzinfo=None))] == [2, 1]
