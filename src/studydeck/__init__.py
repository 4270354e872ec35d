"""Spaced-repetition flashcards with SM-2 scheduling."""
__version__ = "0.1.0"
