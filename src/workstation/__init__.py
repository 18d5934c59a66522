"""workstation: a Pomodoro focus timer with a local focus log."""

__version__ = "0.1.0"
