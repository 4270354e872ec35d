"""Study session orchestration, session history and user settings."""
import logging
from datetime import datetime
from functools import partial
from typing import Optional

from studydeck.db import get_connection
from studydeck.flashcards import get_due_cards, save_reviewed_card
from studydeck.models import SessionSummary, from_iso, to_iso, utc_now
from studydeck.session import ReviewSession

logger = logging.getLogger(__name__)


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_session_limit(db_path: str) -> int | None:
    value = get_setting(db_path, "session_limit")
    if not value:
        return None
    limit = int(value)
    if limit <= 0:
        raise ValueError(f"session_limit must be positive, got {limit}")
    return limit


def record_session_summary(db_path: str, summary: SessionSummary) -> int:
    conn = get_connection(db_path)
    cursor = conn.execute(
        """INSERT INTO review_sessions
        (deck_id, status, reviewed_count, mastered_count, needs_work_count, started_at, finished_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            summary.deck_id, summary.status, summary.reviewed_count, summary.mastered_count,
            summary.needs_work_count, to_iso(summary.started_at),
            to_iso(summary.finished_at or utc_now()),
        ),
    )
    conn.commit()
    session_id = cursor.lastrowid
    conn.close()
    return session_id


def start_session(db_path: str, deck_id: Optional[int] = None,
                  now: Optional[datetime] = None, limit: Optional[int] = None) -> ReviewSession:
    """Build a review session over the cards due at ``now``.

    Every rating is written through to the store as it happens, and the
    session's summary is recorded once it completes or is abandoned.
    """
    now = now or utc_now()
    if limit is None:
        limit = get_session_limit(db_path)
    cards = get_due_cards(db_path, now=now, deck_id=deck_id, limit=limit)
    return ReviewSession(
        cards,
        persist=partial(save_reviewed_card, db_path),
        on_finish=partial(record_session_summary, db_path),
        deck_id=deck_id,
        started_at=now,
    )


def _row_to_summary(row) -> SessionSummary:
    return SessionSummary(
        status=row["status"],
        reviewed_count=row["reviewed_count"],
        mastered_count=row["mastered_count"],
        needs_work_count=row["needs_work_count"],
        deck_id=row["deck_id"],
        started_at=from_iso(row["started_at"]),
        finished_at=from_iso(row["finished_at"]),
    )


def get_last_session(db_path: str, deck_id: Optional[int] = None) -> SessionSummary | None:
    """Most recent recorded session, overall or for one deck."""
    conn = get_connection(db_path)
    if deck_id is None:
        row = conn.execute("SELECT * FROM review_sessions ORDER BY id DESC LIMIT 1").fetchone()
    else:
        row = conn.execute(
            "SELECT * FROM review_sessions WHERE deck_id = ? ORDER BY id DESC LIMIT 1",
            (deck_id,),
        ).fetchone()
    conn.close()
    return _row_to_summary(row) if row else None


def get_session_history(db_path: str, limit: int = 10) -> list[SessionSummary]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM review_sessions ORDER BY id DESC LIMIT ?", (limit,)
    ).fetchall()
    conn.close()
    return [_row_to_summary(r) for r in rows]
