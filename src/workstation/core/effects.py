"""Side-effect capabilities the timer uses to alert the user."""

from __future__ import annotations

from typing import Protocol

import click


class Effects(Protocol):
    """Notification and sound output.

    Implementations may raise; callers treat every failure as non-fatal.
    """

    def notify(self, title: str, body: str) -> None: ...

    def play_sound(self, sound_id: str, volume: float) -> None: ...


class SilentEffects:
    """Effects for headless targets: every call is a no-op."""

    def notify(self, title: str, body: str) -> None:
        pass

    def play_sound(self, sound_id: str, volume: float) -> None:
        pass


class TerminalEffects:
    """Alerts rendered in the controlling terminal.

    Notification permission is decided once, when the instance is created,
    and is never requested again.
    """

    def __init__(self, notifications_permitted: bool = True) -> None:
        self._notifications_permitted = notifications_permitted

    @property
    def notifications_permitted(self) -> bool:
        return self._notifications_permitted

    def notify(self, title: str, body: str) -> None:
        if not self._notifications_permitted:
            return
        click.echo()
        click.secho(title, bold=True)
        click.echo(body)

    def play_sound(self, sound_id: str, volume: float) -> None:
        # A terminal has one sound; zero volume stays silent.
        if volume > 0:
            click.echo("\a", nl=False)
