"""Terminal rendering of the timer and the interactive run loop."""

from __future__ import annotations

import time
from typing import Callable, Optional

import click

from workstation.core.timer import PomodoroTimer, SessionMode

_MODE_LABELS = {
    SessionMode.WORK: "Focus",
    SessionMode.BREAK: "Short Break",
    SessionMode.LONG_BREAK: "Long Break",
}

_MODE_COLORS = {
    SessionMode.WORK: "yellow",
    SessionMode.BREAK: "green",
    SessionMode.LONG_BREAK: "blue",
}

_INTERRUPT_CHOICES = {"r": "resume", "s": "skip", "x": "reset", "q": "quit"}


def format_time(seconds: int, with_hours: bool = False) -> str:
    """Format *seconds* as ``MM:SS``, or ``HH:MM:SS`` when *with_hours* is set."""
    seconds = max(0, int(seconds))
    if with_hours:
        return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def mode_label(mode: SessionMode) -> str:
    return _MODE_LABELS[mode]


class TimerView:
    """Draws a :class:`PomodoroTimer` and forwards the user's intents to it.

    The view owns the tick loop: it sleeps for *interval* seconds between
    ticks, so a late wake-up only delays the redraw, never the countdown.
    """

    def __init__(
        self,
        timer: PomodoroTimer,
        sleep: Callable[[float], None] = time.sleep,
        interval: float = 1.0,
    ) -> None:
        self._timer = timer
        self._sleep = sleep
        self._interval = interval
        self._focus_completed = 0

    def render(self) -> str:
        """Return the one-line status of the timer."""
        mode = self._timer.get_mode()
        state = "" if self._timer.is_running() else "  (paused)"
        return (
            f"{mode_label(mode):<11}  {format_time(self._timer.get_remaining())}"
            f"  {self._timer.get_progress():3.0f}%{state}"
        )

    def run(self, max_work_sessions: Optional[int] = None) -> None:
        """Run sessions until the user quits or *max_work_sessions* focus sessions finish."""
        self._focus_completed = 0
        self._timer.start()
        while True:
            try:
                self._draw()
                self._sleep(self._interval)
                if self._tick():
                    self._draw()
                    click.echo()
                    if self._done(max_work_sessions):
                        return
                    if not self._timer.is_running() and not self._confirm_next():
                        return
            except KeyboardInterrupt:
                if not self._handle_interrupt():
                    return
                if self._done(max_work_sessions):
                    return

    def get_focus_completed(self) -> int:
        """Return the focus sessions that ran to completion in the last run."""
        return self._focus_completed

    # -- private helpers -----------------------------------------------------

    def _draw(self) -> None:
        mode = self._timer.get_mode()
        click.secho(f"\r{self.render()}", fg=_MODE_COLORS[mode], nl=False)

    def _tick(self) -> bool:
        """Tick the timer, counting focus sessions that ran to completion."""
        was_work = self._timer.get_mode() is SessionMode.WORK
        if not self._timer.tick():
            return False
        if was_work:
            self._focus_completed += 1
        return True

    def _done(self, max_work_sessions: Optional[int]) -> bool:
        # Skipped sessions are not focus sessions and never count.
        if max_work_sessions is None:
            return False
        return self._focus_completed >= max_work_sessions

    def _confirm_next(self) -> bool:
        label = mode_label(self._timer.get_mode())
        if not click.confirm(f"Start {label}?", default=True):
            return False
        self._timer.start()
        return True

    def _handle_interrupt(self) -> bool:
        """Pause and ask what to do next; returns False when the user quits."""
        self._tick()
        self._timer.pause()
        click.echo(f"\nPaused at {format_time(self._timer.get_remaining())}")
        choice = click.prompt(
            ", ".join(f"[{key}] {name}" for key, name in _INTERRUPT_CHOICES.items()),
            type=click.Choice(list(_INTERRUPT_CHOICES)),
            default="r",
            show_choices=False,
        )
        if choice == "q":
            return False
        if choice == "s":
            self._timer.skip()
        elif choice == "x":
            self._timer.reset()
        self._timer.start()
        return True
