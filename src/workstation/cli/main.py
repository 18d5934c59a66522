"""CLI entry point for workstation.

Uses Click to expose the ``workstation`` command group.  Each command builds
the pieces it needs on top of the local store in the config directory.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import asdict, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, TypeVar

import click

import workstation
from workstation.cli.view import TimerView, format_time, mode_label
from workstation.core.effects import TerminalEffects
from workstation.core.focus_log import FocusLog
from workstation.core.settings import ALARM_SOUNDS, JsonFileStore, Settings
from workstation.core.timer import PomodoroTimer, SessionMode

T = TypeVar("T")

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "workstation"
_STORE_FILE = "store.json"

_SETTING_LABELS = {
    "work_minutes": "Focus (minutes)",
    "break_minutes": "Short break (minutes)",
    "long_break_minutes": "Long break (minutes)",
    "long_break_interval": "Long break interval",
    "auto_start_breaks": "Auto start breaks",
    "auto_start_pomodoros": "Auto start pomodoros",
    "notification_on_finish": "Notify on finish",
    "alarm_sound": "Alarm sound",
    "volume": "Volume",
}


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting invalid input errors to a CLI error.

    On ``ValueError`` or ``TypeError`` the message is printed to stderr and
    the process exits with code 1.
    """
    try:
        return action()
    except (ValueError, TypeError) as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _store(ctx: click.Context) -> JsonFileStore:
    return JsonFileStore(ctx.obj["config_dir"] / _STORE_FILE)


def _describe(settings: Settings) -> list[str]:
    lines = []
    for f in fields(settings):
        value = getattr(settings, f.name)
        if f.name == "alarm_sound":
            value = f"{ALARM_SOUNDS[value]} ({value})"
        elif isinstance(value, bool):
            value = "on" if value else "off"
        lines.append(f"{_SETTING_LABELS[f.name]}: {value}")
    return lines


@click.group()
@click.version_option(version=workstation.__version__, prog_name="workstation")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="WORKSTATION_CONFIG_DIR",
    default=_DEFAULT_CONFIG_DIR,
    show_default=True,
    help="Directory holding settings and the focus log.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path, verbose: bool) -> None:
    """workstation: a Pomodoro focus timer."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@cli.command()
@click.option(
    "--mode",
    type=click.Choice([m.value for m in SessionMode]),
    default=SessionMode.WORK.value,
    show_default=True,
    help="Session to begin with.",
)
@click.option("--sessions", type=click.IntRange(min=1), help="Stop after N focus sessions.")
@click.option("--task", "task_id", help="Task to credit finished focus sessions to.")
@click.option("--notify/--no-notify", default=True, help="Show finish notifications.")
@click.pass_context
def run(
    ctx: click.Context, mode: str, sessions: Optional[int], task_id: Optional[str], notify: bool
) -> None:
    """Run the timer in the foreground. Press Ctrl-C for options."""
    store = _store(ctx)
    focus_log = FocusLog(store)
    timer = PomodoroTimer(
        store=store,
        effects=TerminalEffects(notifications_permitted=notify),
        on_session_complete=focus_log.completion_handler(task_id),
    )
    timer.switch_mode(mode)
    view = TimerView(timer)
    view.run(max_work_sessions=sessions)
    click.echo(f"Focus sessions completed: {view.get_focus_completed()}")


@cli.group()
def settings() -> None:
    """Show or change timer settings."""


@settings.command("show")
@click.pass_context
def settings_show(ctx: click.Context) -> None:
    """Print the current settings."""
    timer = PomodoroTimer(store=_store(ctx))
    for line in _describe(timer.get_settings()):
        click.echo(line)


@settings.command("set")
@click.option("--work", "work_minutes", type=int, help="Focus length in minutes.")
@click.option("--break", "break_minutes", type=int, help="Short break length in minutes.")
@click.option("--long-break", "long_break_minutes", type=int, help="Long break length in minutes.")
@click.option("--interval", "long_break_interval", type=int, help="Focus sessions per long break.")
@click.option("--auto-start-breaks/--no-auto-start-breaks", default=None)
@click.option("--auto-start-pomodoros/--no-auto-start-pomodoros", default=None)
@click.option("--notify/--no-notify", "notification_on_finish", default=None)
@click.option("--sound", "alarm_sound", type=click.Choice(list(ALARM_SOUNDS)))
@click.option("--volume", type=float, help="Alarm volume between 0.0 and 1.0.")
@click.pass_context
def settings_set(ctx: click.Context, **options: object) -> None:
    """Change one or more settings."""
    patch = {name: value for name, value in options.items() if value is not None}
    if not patch:
        raise click.UsageError("Nothing to change; pass at least one option.")
    timer = PomodoroTimer(store=_store(ctx))
    updated = _run(lambda: timer.update_settings(**patch))
    for line in _describe(updated):
        click.echo(line)


@settings.command("reset")
@click.pass_context
def settings_reset(ctx: click.Context) -> None:
    """Restore the default settings."""
    timer = PomodoroTimer(store=_store(ctx))
    timer.update_settings(**asdict(Settings()))
    click.echo("Settings restored to defaults")


@cli.command()
@click.option("--today", is_flag=True, help="Only list today's sessions.")
@click.pass_context
def log(ctx: click.Context, today: bool) -> None:
    """List logged focus sessions."""
    focus_log = FocusLog(_store(ctx))
    entries = focus_log.sessions()
    day = datetime.now(timezone.utc).date()
    if today:
        entries = [e for e in entries if e.created_on() == day]
    if not entries:
        click.echo("No focus sessions logged")
        return
    for entry in entries:
        task = f"  task {entry.task_id}" if entry.task_id else ""
        click.echo(f"{entry.created_at}  {entry.duration_minutes} min{task}")
    click.echo(f"Today: {format_time(focus_log.focus_minutes_on(day) * 60, with_hours=True)}")
    click.echo(f"Total: {format_time(focus_log.total_minutes() * 60, with_hours=True)}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the length of each session under the current settings."""
    timer = PomodoroTimer(store=_store(ctx))
    for mode in SessionMode:
        click.echo(f"{mode_label(mode)}: {format_time(timer.get_duration(mode))}")
