# phonejail/settings_store.py
import logging
from typing import Any, Callable, Dict, List

from sqlalchemy.orm import Session, sessionmaker

from phonejail.entities import SettingRecord
from phonejail.personality import Personality

logger = logging.getLogger("phonejail")

STRICT_MODE_ENABLED = "strict_mode_enabled"
DEFAULT_UNBLOCK_DURATION = "default_unblock_duration"
SELECTED_PERSONALITY = "selected_personality"
NOTIFICATIONS_ENABLED = "notifications_enabled"

DEFAULTS: Dict[str, Any] = {
    STRICT_MODE_ENABLED: False,
    DEFAULT_UNBLOCK_DURATION: 3600.0,
    SELECTED_PERSONALITY: "Strict",
    NOTIFICATIONS_ENABLED: True,
}

SettingsListener = Callable[[str, Any], None]


class SettingsStore:
    """
    Scalar user settings persisted by key.

    Values are cached after ``load()``; writes go to the database first and
    then to listeners as ``(key, value)``.
    """

    def __init__(self, session_factory: sessionmaker):
        self.SessionFactory = session_factory
        self._values: Dict[str, Any] = dict(DEFAULTS)
        self._listeners: List[SettingsListener] = []

    def subscribe(self, callback: SettingsListener) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: SettingsListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def load(self) -> Dict[str, Any]:
        session: Session = self.SessionFactory()
        try:
            for row in session.query(SettingRecord).all():
                if row.key in DEFAULTS:
                    self._values[row.key] = (row.value or {}).get("value", DEFAULTS[row.key])
        finally:
            session.close()
        return dict(self._values)

    def get(self, key: str) -> Any:
        if key not in DEFAULTS:
            raise KeyError(f"Unknown setting: {key}")
        return self._values[key]

    def set(self, key: str, value: Any) -> None:
        if key not in DEFAULTS:
            raise KeyError(f"Unknown setting: {key}")
        if key == SELECTED_PERSONALITY:
            value = Personality.parse(value).value

        session: Session = self.SessionFactory()
        try:
            row = session.get(SettingRecord, key)
            if row is None:
                row = SettingRecord(key=key, value={"value": value})
                session.add(row)
            else:
                row.value = {"value": value}
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        changed = self._values.get(key) != value
        self._values[key] = value
        if changed:
            logger.debug("Setting %s changed to %r", key, value)
            for callback in list(self._listeners):
                callback(key, value)

    # -----------------------
    # Typed accessors
    # -----------------------

    @property
    def strict_mode_enabled(self) -> bool:
        return bool(self._values[STRICT_MODE_ENABLED])

    @strict_mode_enabled.setter
    def strict_mode_enabled(self, value: bool) -> None:
        self.set(STRICT_MODE_ENABLED, bool(value))

    @property
    def default_unblock_duration(self) -> float:
        return float(self._values[DEFAULT_UNBLOCK_DURATION])

    @default_unblock_duration.setter
    def default_unblock_duration(self, seconds: float) -> None:
        self.set(DEFAULT_UNBLOCK_DURATION, float(seconds))

    @property
    def selected_personality(self) -> str:
        return str(self._values[SELECTED_PERSONALITY])

    @selected_personality.setter
    def selected_personality(self, value: str) -> None:
        self.set(SELECTED_PERSONALITY, value)

    @property
    def notifications_enabled(self) -> bool:
        return bool(self._values[NOTIFICATIONS_ENABLED])

    @notifications_enabled.setter
    def notifications_enabled(self, value: bool) -> None:
        self.set(NOTIFICATIONS_ENABLED, bool(value))

    def toggle_strict_mode(self) -> bool:
        self.strict_mode_enabled = not self.strict_mode_enabled
        return self.strict_mode_enabled

    def reset_to_defaults(self) -> None:
        for key, value in DEFAULTS.items():
            self.set(key, value)
