# tests/test_importer.py
import json

import pytest

from studydeck.decks import get_cards_for_deck, get_deck, list_decks
from studydeck.importer import import_flashcards, read_flashcard_file, validate_flashcards

GENERATED = {
    "title": "Acids and Bases",
    "subject": "Chemistry",
    "flashcards": [
        {"front": "pH of water?", "back": "7", "difficulty": "easy"},
        {"front": "Strong acid example?", "back": "HCl", "hint": "Stomach", "difficulty": "medium"},
    ],
}


def test_read_json_object(tmp_path):
    f = tmp_path / "cards.json"
    f.write_text(json.dumps(GENERATED))
    data = read_flashcard_file(str(f))
    assert data["title"] == "Acids and Bases"
    assert len(data["flashcards"]) == 2


def test_read_json_list(tmp_path):
    f = tmp_path / "cards.json"
    f.write_text(json.dumps(GENERATED["flashcards"]))
    data = read_flashcard_file(str(f))
    assert data["title"] is None
    assert len(data["flashcards"]) == 2


def test_read_yaml(tmp_path):
    f = tmp_path / "cards.yaml"
    f.write_text("subject: History\nflashcards:\n  - front: Year WW2 ended?\n    back: '1945'\n")
    data = read_flashcard_file(str(f))
    assert data["subject"] == "History"
    assert data["flashcards"][0]["back"] == "1945"


def test_read_unsupported_type(tmp_path):
    f = tmp_path / "cards.txt"
    f.write_text("front,back")
    with pytest.raises(ValueError):
        read_flashcard_file(str(f))


def test_read_without_flashcards(tmp_path):
    f = tmp_path / "cards.json"
    f.write_text('{"title": "Empty"}')
    with pytest.raises(ValueError):
        read_flashcard_file(str(f))


def test_validate_flashcards_rejects_missing_back():
    with pytest.raises(ValueError):
        validate_flashcards([{"front": "Q"}])


def test_import_flashcards(tmp_path, db, t0):
    f = tmp_path / "acids.json"
    f.write_text(json.dumps(GENERATED))
    result = import_flashcards(db, str(f), now=t0)
    assert result["count"] == 2
    assert result["subject"] == "Chemistry"
    deck = get_deck(db, result["deck_id"])
    assert deck.title == "Acids and Bases"
    cards = get_cards_for_deck(db, deck.id)
    assert deck.card_ids == [c.id for c in cards]
    assert cards[1].hint == "Stomach"
    assert all(c.next_review == t0 and c.repetitions == 0 for c in cards)


def test_import_defaults_title_to_file_stem(tmp_path, db):
    f = tmp_path / "organic.json"
    f.write_text(json.dumps(GENERATED["flashcards"]))
    result = import_flashcards(db, str(f))
    assert result["title"] == "organic"
    assert result["subject"] == "General"


def test_import_invalid_file_creates_nothing(tmp_path, db):
    f = tmp_path / "bad.json"
    f.write_text(json.dumps([{"front": "Q", "back": "A"}, {"front": "", "back": "A"}]))
    with pytest.raises(ValueError):
        import_flashcards(db, str(f))
    assert list_decks(db) == []


def test_read_malformed_yaml(tmp_path):
    f = tmp_path / "cards.yaml"
    f.write_text("flashcards: [\n  - front: a\n")
    with pytest.raises(ValueError):
        read_flashcard_file(str(f))


def test_import_coerces_scalar_title_and_subject(tmp_path, db):
    f = tmp_path / "numbers.json"
    f.write_text(json.dumps({
        "title": 123,
        "subject": 2026,
        "flashcards": [{"front": "2+2?", "back": 4, "difficulty": 1}],
    }))
    result = import_flashcards(db, str(f))
    assert result["title"] == "123"
    assert result["subject"] == "2026"
    card = get_cards_for_deck(db, result["deck_id"])[0]
    assert card.back == "4"
    assert card.difficulty == "1"


@pytest.mark.parametrize("bad", [
    {"title": ["a", "b"], "flashcards": [{"front": "Q", "back": "A"}]},
    {"subject": {"name": "x"}, "flashcards": [{"front": "Q", "back": "A"}]},
    {"flashcards": [{"front": "Q", "back": "A", "hint": ["h1", "h2"]}]},
])
def test_import_rejects_structured_text_fields(tmp_path, db, bad):
    f = tmp_path / "bad.json"
    f.write_text(json.dumps(bad))
    with pytest.raises(ValueError):
        import_flashcards(db, str(f))
    assert list_decks(db) == []
