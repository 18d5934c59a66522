"""Timer settings: the record, its validation, and key-value persistence."""

from __future__ import annotations

import fcntl
import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

SETTINGS_KEY = "pomodoro_settings"

ALARM_SOUNDS: dict[str, str] = {
    "alarm-bell.mp3": "Classic Bell",
    "alarm-bird.mp3": "Bird Song",
    "alarm-digital.mp3": "Digital",
}

_DURATION_FIELDS = frozenset({"work_minutes", "break_minutes", "long_break_minutes"})
_POSITIVE_INT_FIELDS = _DURATION_FIELDS | {"long_break_interval"}
_BOOL_FIELDS = frozenset(
    {"auto_start_breaks", "auto_start_pomodoros", "notification_on_finish"}
)


@dataclass(frozen=True)
class Settings:
    """User-configurable timer options."""

    work_minutes: int = 25
    break_minutes: int = 5
    long_break_minutes: int = 15
    long_break_interval: int = 4
    auto_start_breaks: bool = False
    auto_start_pomodoros: bool = False
    notification_on_finish: bool = True
    alarm_sound: str = "alarm-bell.mp3"
    volume: float = 1.0

    def merged(self, **patch: Any) -> Settings:
        """Return a copy with *patch* applied.

        Every patched field is validated first; an unknown field or a bad
        value raises before anything is applied.
        """
        for name, value in patch.items():
            _validate(name, value)
        if "volume" in patch:
            patch["volume"] = float(patch["volume"])
        return replace(self, **patch)

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, text: str) -> Settings:
        """Parse *text* leniently.

        Missing, unknown, or invalid fields fall back to their defaults one
        by one; a blob that is not a JSON object yields the defaults.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Stored settings are not valid JSON; using defaults")
            return cls()
        if not isinstance(data, dict):
            logger.warning("Stored settings are not an object; using defaults")
            return cls()

        accepted: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            try:
                _validate(f.name, value)
            except (TypeError, ValueError) as exc:
                logger.warning("Ignoring stored setting %s: %s", f.name, exc)
                continue
            accepted[f.name] = float(value) if f.name == "volume" else value
        return cls(**accepted)

    def duration_changed(self, other: Settings) -> bool:
        """Return True if any session duration differs from *other*."""
        return any(getattr(self, name) != getattr(other, name) for name in _DURATION_FIELDS)


def _validate(name: str, value: Any) -> None:
    """Raise ``TypeError``/``ValueError`` if *value* is not valid for *name*."""
    if name in _POSITIVE_INT_FIELDS:
        # bool is an int subclass; reject it explicitly
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
        if value < 1:
            raise ValueError(f"{name} must be at least 1, got {value}")
    elif name in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise TypeError(f"{name} must be a boolean, got {type(value).__name__}")
    elif name == "alarm_sound":
        if value not in ALARM_SOUNDS:
            raise ValueError(
                f"alarm_sound must be one of {', '.join(ALARM_SOUNDS)}, got {value!r}"
            )
    elif name == "volume":
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise TypeError(f"volume must be a number, got {type(value).__name__}")
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"volume must be between 0.0 and 1.0, got {value}")
    else:
        raise ValueError(f"unknown setting: {name}")


# -- persistence ---------------------------------------------------------------


class KeyValueStore(Protocol):
    """Durable string storage keyed by fixed identifiers."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def update(self, key: str, fn: Callable[[str | None], str]) -> str:
        """Replace the value of *key* with ``fn(old)`` as one atomic step."""
        ...


class MemoryStore:
    """In-process store; nothing survives the process."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data) if data else {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def update(self, key: str, fn: Callable[[str | None], str]) -> str:
        value = self._data[key] = fn(self._data.get(key))
        return value


class JsonFileStore:
    """Stores every key in a single JSON object file, guarded by ``fcntl`` locks."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        return _string_or_none(self._read().get(key))

    def set(self, key: str, value: str) -> None:
        self.update(key, lambda _old: value)

    def update(self, key: str, fn: Callable[[str | None], str]) -> str:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Open without truncating so the read-modify-write happens under the lock.
        with open(self._path, "a+b") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            f.seek(0)
            data = _parse_object(f.read(), self._path)
            value = data[key] = fn(_string_or_none(data.get(key)))
            f.seek(0)
            f.truncate()
            f.write(json.dumps(data).encode("utf-8"))
        return value

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        with open(self._path, "rb") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            return _parse_object(f.read(), self._path)


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _parse_object(raw: bytes, path: Path) -> dict[str, Any]:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Store file %s is not valid UTF-8; starting empty", path)
        return {}
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Store file %s is corrupt; starting empty", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Store file %s does not hold an object; starting empty", path)
        return {}
    return data


def load_settings(store: KeyValueStore) -> Settings:
    """Load settings from *store*, falling back to defaults field by field."""
    text = store.get(SETTINGS_KEY)
    if text is None:
        return Settings()
    return Settings.from_json(text)


def save_settings(store: KeyValueStore, settings: Settings) -> None:
    """Write the full settings record to *store*."""
    store.set(SETTINGS_KEY, settings.to_json())
