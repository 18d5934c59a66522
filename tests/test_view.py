"""Tests for the terminal Timer View."""

from typing import Callable, Iterator
from unittest.mock import MagicMock, patch

import pytest

from workstation.cli.view import TimerView, format_time, mode_label
from workstation.core.settings import MemoryStore, Settings
from workstation.core.timer import PomodoroTimer, SessionMode


@pytest.fixture()
def clock() -> Iterator[MagicMock]:
    with patch("workstation.core.timer.time") as mock_time:
        mock_time.time.return_value = 1_000_000.0
        yield mock_time


def _sleeper(clock: MagicMock) -> Callable[[float], None]:
    """A sleep that advances the patched clock instead of blocking."""

    def sleep(seconds: float) -> None:
        clock.time.return_value += seconds

    return sleep


def _timer(**settings: object) -> PomodoroTimer:
    store = MemoryStore({"pomodoro_settings": Settings().merged(**settings).to_json()})
    return PomodoroTimer(store=store)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatting:
    def test_minutes_and_seconds(self) -> None:
        assert format_time(454) == "07:34"

    def test_zero(self) -> None:
        assert format_time(0) == "00:00"

    def test_long_durations_keep_counting_minutes(self) -> None:
        assert format_time(2 * 3600 + 5) == "120:05"

    def test_with_hours(self) -> None:
        assert format_time(3 * 3600 + 25 * 60 + 9, with_hours=True) == "03:25:09"

    def test_mode_labels(self) -> None:
        assert mode_label(SessionMode.WORK) == "Focus"
        assert mode_label(SessionMode.BREAK) == "Short Break"
        assert mode_label(SessionMode.LONG_BREAK) == "Long Break"


class TestRender:
    def test_render_stopped_timer(self) -> None:
        line = TimerView(PomodoroTimer()).render()
        assert line.startswith("Focus")
        assert "25:00" in line
        assert "0%" in line
        assert "(paused)" in line

    def test_render_running_timer(self, clock: MagicMock) -> None:
        timer = PomodoroTimer()
        timer.start()
        clock.time.return_value += 750
        timer.tick()
        line = TimerView(timer).render()
        assert "12:30" in line
        assert "50%" in line
        assert "(paused)" not in line


# ---------------------------------------------------------------------------
# run()
# ---------------------------------------------------------------------------


class TestRun:
    """run() ticks the timer and forwards user choices."""

    def test_stops_after_requested_sessions(self, clock: MagicMock) -> None:
        timer = _timer(work_minutes=1, auto_start_breaks=True, auto_start_pomodoros=True)
        TimerView(timer, sleep=_sleeper(clock)).run(max_work_sessions=2)
        assert timer.get_completed_work_sessions() == 2
        assert timer.get_mode() is SessionMode.BREAK

    def test_declining_next_session_ends_the_run(self, clock: MagicMock) -> None:
        timer = _timer(work_minutes=1)
        with patch("workstation.cli.view.click.confirm", return_value=False) as confirm:
            TimerView(timer, sleep=_sleeper(clock)).run()
        confirm.assert_called_once_with("Start Short Break?", default=True)
        assert timer.get_mode() is SessionMode.BREAK
        assert timer.is_running() is False

    def test_accepting_next_session_starts_it(self, clock: MagicMock) -> None:
        timer = _timer(work_minutes=1, break_minutes=1)
        with patch("workstation.cli.view.click.confirm", side_effect=[True, False]):
            TimerView(timer, sleep=_sleeper(clock)).run()
        assert timer.get_mode() is SessionMode.WORK
        assert timer.get_completed_work_sessions() == 1

    def test_interrupt_then_quit_pauses(self, clock: MagicMock) -> None:
        timer = PomodoroTimer()
        sleep = MagicMock(side_effect=KeyboardInterrupt)
        with patch("workstation.cli.view.click.prompt", return_value="q"):
            TimerView(timer, sleep=sleep).run()
        assert timer.is_running() is False
        assert timer.get_remaining() == 25 * 60

    def test_interrupt_then_skip_does_not_count_toward_limit(self, clock: MagicMock) -> None:
        timer = PomodoroTimer()
        view = TimerView(timer, sleep=MagicMock(side_effect=KeyboardInterrupt))
        with patch("workstation.cli.view.click.prompt", side_effect=["s", "q"]) as prompt:
            view.run(max_work_sessions=1)
        # The run kept going after the skip and only ended on quit.
        assert prompt.call_count == 2
        assert timer.get_mode() is SessionMode.BREAK
        assert view.get_focus_completed() == 0

    def test_interrupt_then_reset_restarts_session(self, clock: MagicMock) -> None:
        timer = PomodoroTimer()
        calls = []

        def sleep(seconds: float) -> None:
            calls.append(seconds)
            clock.time.return_value += seconds
            if len(calls) in (5, 7):
                raise KeyboardInterrupt

        with patch("workstation.cli.view.click.prompt", side_effect=["x", "q"]):
            TimerView(timer, sleep=sleep).run()
        # Reset after 5s restored the full session; 2s ran before quitting.
        assert timer.is_running() is False
        assert timer.get_remaining() == 25 * 60 - 2
