"""Timer core: a drift-corrected Pomodoro countdown with session transitions."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from workstation.core.effects import Effects, SilentEffects
from workstation.core.settings import (
    KeyValueStore,
    Settings,
    load_settings,
    save_settings,
)

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Session Finished!"
_WORK_DONE_MESSAGE = "Time for a break!"
_BREAK_DONE_MESSAGE = "Time to get back to focus!"


class SessionMode(Enum):
    """The kind of session currently counting down."""

    WORK = "work"
    BREAK = "break"
    LONG_BREAK = "longBreak"


@dataclass(frozen=True)
class SessionResult:
    """Payload handed to the completion callback after a natural completion."""

    session_was_work: bool
    mode: SessionMode
    duration_minutes: int


CompletionCallback = Callable[[SessionResult], None]


class PomodoroTimer:
    """A Pomodoro state machine that counts down against a wall-clock deadline.

    Remaining time is re-derived from the deadline on every tick rather than
    decremented, so late or missed ticks never accumulate error.  The owner
    is expected to call :meth:`tick` about once per second while running.
    Contains no threads and no loop of its own.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        effects: Optional[Effects] = None,
        on_session_complete: Optional[CompletionCallback] = None,
    ) -> None:
        self._store = store
        self._effects: Effects = effects if effects is not None else SilentEffects()
        self._on_session_complete = on_session_complete

        self._settings: Settings = Settings()
        self._mode: SessionMode = SessionMode.WORK
        self._running: bool = False
        self._deadline: Optional[float] = None
        self._completed_work_sessions: int = 0
        self._load_settings()
        self._remaining: int = self.get_duration()

    # -- public interface ----------------------------------------------------

    def start(self) -> None:
        """Start counting down from the current remaining time.

        No-op when already running.
        """
        if self._running:
            return
        self._prime_sound()
        self._begin_running()

    def pause(self) -> None:
        """Freeze the countdown at its current remaining time.

        No-op when not running.
        """
        # A countdown that already ran out completes rather than pausing at 0.
        self.tick()
        if not self._running:
            return
        self._running = False
        self._deadline = None
        logger.debug("Paused %s with %ss remaining", self._mode.value, self._remaining)

    def reset(self) -> None:
        """Stop and restore the full duration of the current mode."""
        self._running = False
        self._deadline = None
        self._remaining = self.get_duration()

    def skip(self) -> None:
        """Move to the next session without alarm, notification, or callback."""
        self._complete(skipped=True)

    def switch_mode(self, target: SessionMode | str) -> None:
        """Select *target* and load its full duration.

        Ignored while running so an in-progress countdown is never lost.
        """
        mode = SessionMode(target)
        if self._running:
            logger.debug("Ignoring switch to %s while running", mode.value)
            return
        self._mode = mode
        self._remaining = self.get_duration()

    def update_settings(self, **patch: object) -> Settings:
        """Merge *patch* into the settings, stop the timer, and persist.

        Raises ``TypeError``/``ValueError`` for an invalid patch; nothing
        changes in that case.
        """
        merged = self._settings.merged(**patch)
        if self._running and self._deadline is not None:
            # Stop without completing; an overdue session stays at 0 until started.
            self._remaining = self._remaining_until(self._deadline)
            self._running = False
            self._deadline = None
        previous, self._settings = self._settings, merged
        if merged.duration_changed(previous):
            self._remaining = self.get_duration()
        self._persist_settings()
        return merged

    def tick(self) -> bool:
        """Re-derive the remaining time; complete the session when it hits 0.

        Returns True when a session transition happened.  Ticks that arrive
        while stopped are ignored.
        """
        if not self._running or self._deadline is None:
            return False
        self._remaining = self._remaining_until(self._deadline)
        if self._remaining > 0:
            return False
        self._complete(skipped=False)
        return True

    # -- accessors -----------------------------------------------------------

    def get_mode(self) -> SessionMode:
        return self._mode

    def get_remaining(self) -> int:
        """Return the remaining seconds as of the last tick."""
        return self._remaining

    def is_running(self) -> bool:
        return self._running

    def get_completed_work_sessions(self) -> int:
        return self._completed_work_sessions

    def get_settings(self) -> Settings:
        return self._settings

    def get_deadline(self) -> Optional[float]:
        """Return the wall-clock deadline, or None while stopped."""
        return self._deadline

    def get_duration(self, mode: Optional[SessionMode] = None) -> int:
        """Return the configured duration of *mode* (default: current) in seconds."""
        mode = mode if mode is not None else self._mode
        if mode is SessionMode.BREAK:
            minutes = self._settings.break_minutes
        elif mode is SessionMode.LONG_BREAK:
            minutes = self._settings.long_break_minutes
        else:
            minutes = self._settings.work_minutes
        return minutes * 60

    def get_progress(self) -> float:
        """Return the elapsed share of the current session, 0 to 100."""
        total = self.get_duration()
        if total <= 0:
            return 0.0
        return max(0.0, (total - self._remaining) / total * 100)

    # -- private helpers -----------------------------------------------------

    def _begin_running(self) -> None:
        """Set a fresh deadline and enter the running state."""
        self._deadline = time.time() + self._remaining
        self._running = True
        logger.debug("Running %s until %.3f", self._mode.value, self._deadline)

    def _remaining_until(self, deadline: float) -> int:
        return max(0, math.ceil(deadline - time.time()))

    def _complete(self, skipped: bool) -> None:
        session_was_work = self._mode is SessionMode.WORK
        finished_mode = self._mode

        if not skipped:
            self._play_sound(self._settings.volume)
            if self._settings.notification_on_finish:
                body = _WORK_DONE_MESSAGE if session_was_work else _BREAK_DONE_MESSAGE
                self._notify(NOTIFICATION_TITLE, body)
            if self._on_session_complete is not None:
                self._on_session_complete(
                    SessionResult(
                        session_was_work=session_was_work,
                        mode=finished_mode,
                        duration_minutes=self.get_duration(finished_mode) // 60,
                    )
                )

        if session_was_work:
            self._completed_work_sessions += 1
            if self._completed_work_sessions % self._settings.long_break_interval == 0:
                next_mode = SessionMode.LONG_BREAK
            else:
                next_mode = SessionMode.BREAK
        else:
            next_mode = SessionMode.WORK

        self._mode = next_mode
        self._remaining = self.get_duration()
        self._running = False
        self._deadline = None
        logger.info(
            "%s %s; next is %s",
            "Skipped" if skipped else "Completed",
            finished_mode.value,
            next_mode.value,
        )

        auto_start = (session_was_work and self._settings.auto_start_breaks) or (
            not session_was_work and self._settings.auto_start_pomodoros
        )
        if auto_start:
            self._begin_running()

    def _prime_sound(self) -> None:
        # Silent play up front so the later alarm is allowed to sound.
        self._play_sound(0.0)

    def _play_sound(self, volume: float) -> None:
        try:
            self._effects.play_sound(self._settings.alarm_sound, volume)
        except Exception:
            logger.warning("Could not play %s", self._settings.alarm_sound, exc_info=True)

    def _notify(self, title: str, body: str) -> None:
        try:
            self._effects.notify(title, body)
        except Exception:
            logger.warning("Could not show notification %r", title, exc_info=True)

    def _load_settings(self) -> None:
        if self._store is not None:
            try:
                self._settings = load_settings(self._store)
            except (OSError, ValueError):
                logger.warning("Could not read settings; using defaults", exc_info=True)

    def _persist_settings(self) -> None:
        if self._store is None:
            return
        save_settings(self._store, self._settings)
