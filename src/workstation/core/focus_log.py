"""Local log of completed focus sessions."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from workstation.core.settings import KeyValueStore
from workstation.core.timer import CompletionCallback, SessionResult

logger = logging.getLogger(__name__)

FOCUS_SESSIONS_KEY = "focus_sessions"


@dataclass(frozen=True)
class FocusSession:
    """One completed focus session."""

    id: str
    task_id: Optional[str]
    duration_minutes: int
    created_at: str  # ISO-8601, UTC

    def created_on(self) -> date:
        return datetime.fromisoformat(self.created_at).date()


class FocusLog:
    """Appends completed focus sessions to a key-value store.

    Entries are kept as one JSON list under ``focus_sessions``.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def save_session(
        self, duration_minutes: int, task_id: Optional[str] = None
    ) -> Optional[FocusSession]:
        """Record a session of *duration_minutes*; returns None if the duration is not positive."""
        if duration_minutes <= 0:
            return None
        entry = FocusSession(
            id=uuid.uuid4().hex,
            task_id=task_id,
            duration_minutes=duration_minutes,
            created_at=datetime.now(timezone.utc).isoformat(),
        )

        def append(text: Optional[str]) -> str:
            # Unreadable entries are carried over untouched.
            raw = _parse_list(text)
            raw.append(asdict(entry))
            return json.dumps(raw)

        self._store.update(FOCUS_SESSIONS_KEY, append)
        logger.info("Logged %s-minute focus session", duration_minutes)
        return entry

    def sessions(self) -> list[FocusSession]:
        """Return every readable logged session, oldest first.

        Malformed entries are skipped one by one.
        """
        entries = []
        for position, item in enumerate(_parse_list(self._store.get(FOCUS_SESSIONS_KEY))):
            entry = _entry_from(item)
            if entry is None:
                logger.warning("Skipping malformed focus session at position %s", position)
                continue
            entries.append(entry)
        return entries

    def total_minutes(self) -> int:
        return sum(s.duration_minutes for s in self.sessions())

    def focus_minutes_on(self, day: date) -> int:
        """Return the minutes focused on *day* (UTC)."""
        return sum(s.duration_minutes for s in self.sessions() if s.created_on() == day)

    def completion_handler(self, task_id: Optional[str] = None) -> CompletionCallback:
        """Return a timer callback that logs finished work sessions."""

        def handle(result: SessionResult) -> None:
            if result.session_was_work:
                self.save_session(result.duration_minutes, task_id=task_id)

        return handle


def _parse_list(text: Optional[str]) -> list[Any]:
    if text is None:
        return []
    try:
        raw = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Stored focus sessions are not valid JSON; ignoring them")
        return []
    if not isinstance(raw, list):
        logger.warning("Stored focus sessions are not a list; ignoring them")
        return []
    return raw


def _entry_from(item: Any) -> Optional[FocusSession]:
    """Build a session from one stored item, or None if any field is invalid."""
    if not isinstance(item, dict):
        return None
    try:
        entry = FocusSession(**item)
    except TypeError:
        return None
    duration = entry.duration_minutes
    if (
        not isinstance(entry.id, str)
        or not (entry.task_id is None or isinstance(entry.task_id, str))
        or not isinstance(duration, int)
        or isinstance(duration, bool)
        or duration <= 0
        or not isinstance(entry.created_at, str)
    ):
        return None
    try:
        entry.created_on()
    except ValueError:
        return None
    return entry
