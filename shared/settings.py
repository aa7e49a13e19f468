from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
import threading
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from .models import FocusMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeSettings:
    sample_rate: float = 44100.0
    buffer_size: int = 65536
    channels: int = 4
    grid_width: float = 64.0
    grid_height: float = 64.0
    width: float = 1024.0
    time_per_division_ms: float = 1.45
    volume_per_division: float = 0.1
    mode: str = "stream"
    trigger_threshold: float = 0.1

    @property
    def samples_per_division(self) -> float:
        return self.time_per_division_ms / 1000.0 * self.sample_rate


class SettingsPersistence(Protocol):
    """Backend that stores settings between runs."""

    def load(self) -> Mapping[str, Any]:
        ...

    def save(self, values: Mapping[str, Any]) -> None:
        ...


class InMemoryPersistence:
    """Persistence that only lives as long as the process; used headless and in tests."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(initial or {})

    def load(self) -> Mapping[str, Any]:
        return dict(self._values)

    def save(self, values: Mapping[str, Any]) -> None:
        self._values = dict(values)


class QSettingsPersistence:
    """Persistence through Qt's QSettings (imported lazily)."""

    def __init__(self, *, organization: str = "TraceScope", application: str = "TraceScope") -> None:
        from PySide6.QtCore import QSettings

        self._qsettings = QSettings(organization, application)

    def load(self) -> Mapping[str, Any]:
        values: Dict[str, Any] = {}
        for key in self._qsettings.allKeys():
            values[str(key)] = self._qsettings.value(key)
        return values

    def save(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self._qsettings.setValue(key, value)


def _coerce(values: Mapping[str, Any], base: Optional[ScopeSettings] = None) -> ScopeSettings:
    """Overlay stored or requested values on `base`, keeping its value for any that are invalid."""
    base = base if base is not None else ScopeSettings()
    kwargs: Dict[str, Any] = {}
    for f in fields(ScopeSettings):
        if f.name not in values:
            continue
        raw = values[f.name]
        current = getattr(base, f.name)
        try:
            value = type(current)(raw)
            if f.name == "mode":
                value = FocusMode.parse(value).value
        except (TypeError, ValueError, OverflowError):
            logger.warning("Ignoring invalid value for %s: %r", f.name, raw)
            continue
        kwargs[f.name] = value
    return replace(base, **kwargs)


class ScopeSettingsStore:
    """Thread-safe settings container with change notifications."""

    def __init__(
        self,
        initial: Optional[ScopeSettings] = None,
        *,
        persistence: Optional[SettingsPersistence] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Callable[[ScopeSettings], None]] = {}
        self._next_token = 0
        self._persistence = persistence if persistence is not None else InMemoryPersistence()
        self._settings = initial if initial is not None else _coerce(self._persistence.load())

    def get(self) -> ScopeSettings:
        with self._lock:
            return self._settings

    def update(self, **kwargs) -> ScopeSettings:
        """Apply `kwargs` on top of the current settings, persist, then notify.

        Unknown names raise TypeError; values that cannot be converted are
        logged and leave that setting unchanged.
        """
        unknown = set(kwargs) - {f.name for f in fields(ScopeSettings)}
        if unknown:
            raise TypeError(f"unknown scope settings: {sorted(unknown)}")
        with self._lock:
            new_settings = _coerce(kwargs, self._settings)
            self._settings = new_settings
            callbacks = list(self._subscribers.values())
            self._persistence.save({f.name: getattr(new_settings, f.name) for f in fields(new_settings)})
        for callback in callbacks:
            try:
                callback(new_settings)
            except Exception as exc:
                logger.debug("Scope settings subscriber callback failed: %s", exc)
                continue
        return new_settings

    def subscribe(self, callback: Callable[[ScopeSettings], None], *, replay: bool = True) -> Callable[[], None]:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback
            snapshot = self._settings
        if replay:
            callback(snapshot)

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe


__all__ = [
    "InMemoryPersistence",
    "QSettingsPersistence",
    "ScopeSettings",
    "ScopeSettingsStore",
    "SettingsPersistence",
]
