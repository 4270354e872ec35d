"""Errors raised by the scheduling core and the card store."""


class StudyDeckError(Exception):
    """Base class for all studydeck errors."""


class InvalidRating(StudyDeckError, ValueError):
    """A review quality outside the 0-5 SM-2 scale."""

    def __init__(self, quality):
        self.quality = quality
        super().__init__(f"Quality must be an integer from 0 to 5, got {quality!r}")


class InvalidSessionState(StudyDeckError):
    """An operation was attempted on a finished review session."""


class CardNotFound(StudyDeckError, LookupError):
    def __init__(self, card_id: int):
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found")


class DeckNotFound(StudyDeckError, LookupError):
    def __init__(self, deck_id: int):
        self.deck_id = deck_id
        super().__init__(f"Deck {deck_id} not found")
