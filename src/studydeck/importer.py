"""Import generated flashcard files as new decks."""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from studydeck.decks import create_deck_with_cards

logger = logging.getLogger(__name__)


def read_flashcard_file(file_path: str) -> dict:
    """Load a flashcard file into ``{"title", "subject", "flashcards"}``.

    The file may hold a bare list of cards or an object with a
    ``flashcards`` list plus optional ``title`` and ``subject``.
    """
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        data = json.loads(path.read_text())
    elif suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ValueError(f"{path.name} is not valid YAML: {e}") from e
    else:
        raise ValueError(f"Unsupported flashcard file type: {suffix or path.name}")

    if isinstance(data, list):
        data = {"flashcards": data}
    if not isinstance(data, dict) or not isinstance(data.get("flashcards"), list):
        raise ValueError(f"{path.name} does not contain a list of flashcards")
    return {
        "title": text_field(data.get("title"), "title"),
        "subject": text_field(data.get("subject"), "subject"),
        "flashcards": data["flashcards"],
    }


def text_field(value, name: str) -> str | None:
    """Coerce a scalar field to stripped text; blank becomes None."""
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise ValueError(f"Field '{name}' must be text, got {type(value).__name__}")
    return str(value).strip() or None


def validate_flashcards(cards: list) -> list[dict]:
    cleaned = []
    for i, card in enumerate(cards, 1):
        if not isinstance(card, dict):
            raise ValueError(f"Flashcard {i} is not an object")
        front = text_field(card.get("front"), f"flashcards[{i}].front")
        back = text_field(card.get("back"), f"flashcards[{i}].back")
        if not front or not back:
            raise ValueError(f"Flashcard {i} is missing a front or back")
        cleaned.append({
            "front": front,
            "back": back,
            "hint": text_field(card.get("hint"), f"flashcards[{i}].hint"),
            "difficulty": text_field(card.get("difficulty"), f"flashcards[{i}].difficulty"),
        })
    return cleaned


def import_flashcards(db_path: str, file_path: str, title: Optional[str] = None,
                      subject: Optional[str] = None, now: Optional[datetime] = None) -> dict:
    """Create a deck holding every card in ``file_path``. Nothing is stored if any card is invalid."""
    data = read_flashcard_file(file_path)
    cards = validate_flashcards(data["flashcards"])
    title = title or data["title"] or Path(file_path).stem
    subject = subject or data["subject"] or "General"
    deck, created = create_deck_with_cards(db_path, title, subject, cards, now=now)
    logger.info("Imported %d cards from %s into deck %d", len(created), file_path, deck.id)
    return {"deck_id": deck.id, "title": deck.title, "subject": deck.subject, "count": len(created)}
