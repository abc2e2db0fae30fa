# phonejail/access_gate.py
"""
Access-Control Gate.

The lock is a pure function of three inputs:

    is_locked == strict_mode_enabled and has_active_schema and not temporary_access_granted

The gate recomputes it after every mutation it hears about (settings change,
registry change, grant, tick, revoke) and pushes a ``GateSnapshot`` to its
listeners whenever anything observable changed.

Temporary access runs one countdown task per gate, ticking once per
``tick_interval`` seconds. When the remaining time reaches zero the grant is
cleared and the lock recomputed in the same step, so the gate re-locks on its
own.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Callable, List, Optional, Union

from phonejail.base_utils import format_countdown
from phonejail.schema_registry import SchemaRegistry
from phonejail.settings_store import STRICT_MODE_ENABLED, SettingsStore

logger = logging.getLogger("phonejail")

Duration = Union[int, float, timedelta]


class GateState(str, Enum):
    UNLOCKED = "unlocked"
    LOCKED = "locked"
    TEMPORARILY_UNLOCKED = "temporarily_unlocked"


@dataclass(frozen=True)
class GateSnapshot:
    state: GateState
    is_locked: bool
    strict_mode_enabled: bool
    has_active_schema: bool
    temporary_access_granted: bool
    access_time_remaining: float


GateListener = Callable[[GateSnapshot], None]


def compute_lock(strict_mode_enabled: bool, has_active_schema: bool, temporary_access_granted: bool) -> bool:
    return strict_mode_enabled and has_active_schema and not temporary_access_granted


def _seconds(duration: Duration) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


class AccessControlGate:

    def __init__(self, *, tick_interval: float = 1.0, autostart_timer: bool = True):
        self.is_locked: bool = False
        self.temporary_access_granted: bool = False
        self.access_time_remaining: float = 0.0

        self._tick_interval = tick_interval
        self._autostart_timer = autostart_timer
        self._countdown: Optional[asyncio.Task] = None

        self._settings: Optional[SettingsStore] = None
        self._registry: Optional[SchemaRegistry] = None
        self._listeners: List[GateListener] = []
        self._last_snapshot: Optional[GateSnapshot] = None

    # -----------------------
    # Wiring
    # -----------------------

    def configure(self, settings: SettingsStore, registry: SchemaRegistry) -> None:
        logger.info("AccessControlGate: configuring with settings and registry")
        self._detach()
        self._settings = settings
        self._registry = registry
        settings.subscribe(self._on_setting_changed)
        registry.subscribe(self.recompute)
        self.recompute()

    def subscribe(self, callback: GateListener) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: GateListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def close(self) -> None:
        """Cancel the countdown and detach from settings/registry."""
        self._cancel_countdown()
        self._detach()
        self._listeners.clear()

    def _detach(self) -> None:
        if self._settings is not None:
            self._settings.unsubscribe(self._on_setting_changed)
        if self._registry is not None:
            self._registry.unsubscribe(self.recompute)
        self._settings = None
        self._registry = None

    def _on_setting_changed(self, key: str, _value) -> None:
        if key == STRICT_MODE_ENABLED:
            self.recompute()

    # -----------------------
    # Inputs
    # -----------------------

    @property
    def is_configured(self) -> bool:
        return self._settings is not None and self._registry is not None

    @property
    def strict_mode_enabled(self) -> bool:
        return self._settings.strict_mode_enabled if self._settings is not None else False

    @property
    def has_active_schema(self) -> bool:
        return self._registry.has_active_schema if self._registry is not None else False

    # -----------------------
    # State machine
    # -----------------------

    def recompute(self) -> bool:
        """Bring ``is_locked`` in line with the current inputs. Returns it."""
        if not self.is_configured:
            # nothing enforceable exists yet
            should_lock = False
        else:
            should_lock = compute_lock(
                self.strict_mode_enabled,
                self.has_active_schema,
                self.temporary_access_granted,
            )

        if self.is_locked != should_lock:
            self.is_locked = should_lock
            logger.info("AccessControlGate: lock status changed to %s", should_lock)

        self._notify()
        return self.is_locked

    def grant_temporary_access(self, duration: Duration) -> None:
        """
        Unlock immediately for ``duration`` and (re)start the countdown.

        With ``autostart_timer`` the countdown is a task on the running event
        loop, so this must be called from inside one.
        """
        seconds = _seconds(duration)
        if seconds <= 0:
            raise ValueError(f"Temporary access needs a positive duration, got {seconds}")

        # no running loop raises here, before any state changes
        loop = asyncio.get_running_loop() if self._autostart_timer else None

        self.temporary_access_granted = True
        self.access_time_remaining = seconds
        self.is_locked = False
        self._start_countdown(loop)

        logger.info("Temporary access granted for %d minutes", int(seconds // 60))
        self._notify()

    def tick(self) -> None:
        if not self.temporary_access_granted:
            return

        self.access_time_remaining = max(0.0, self.access_time_remaining - 1)
        if self.access_time_remaining <= 0:
            self._clear_temporary_access()
            logger.info("Temporary access expired")
            self.recompute()
            return

        self._notify()

    def extend_access(self, additional: Duration) -> bool:
        """Add time to an active grant. Without one this does nothing and returns False."""
        seconds = _seconds(additional)
        if seconds < 0:
            raise ValueError(f"Cannot extend access by a negative duration: {seconds}")
        if not self.temporary_access_granted:
            return False

        self.access_time_remaining += seconds
        logger.info("Access extended by %d minutes", int(seconds // 60))
        self._notify()
        return True

    def revoke_access(self) -> None:
        self._clear_temporary_access()
        self.recompute()
        logger.info("Access revoked")

    def _clear_temporary_access(self) -> None:
        self.temporary_access_granted = False
        self.access_time_remaining = 0.0
        self._cancel_countdown()

    # -----------------------
    # Countdown
    # -----------------------

    def _start_countdown(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        self._cancel_countdown()
        if loop is None:
            return
        self._countdown = loop.create_task(self._run_countdown())

    async def _run_countdown(self) -> None:
        # a re-grant during expiry replaces this task with a fresh one
        while self.temporary_access_granted and self._countdown is asyncio.current_task():
            await asyncio.sleep(self._tick_interval)
            self.tick()

    def _cancel_countdown(self) -> None:
        task, self._countdown = self._countdown, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # expiry clears the grant from inside the countdown itself; that task
        # is about to return on its own
        if task is not current:
            task.cancel()

    @property
    def has_running_countdown(self) -> bool:
        return self._countdown is not None and not self._countdown.done()

    # -----------------------
    # Views
    # -----------------------

    @property
    def state(self) -> GateState:
        if self.temporary_access_granted:
            return GateState.TEMPORARILY_UNLOCKED
        if self.is_locked:
            return GateState.LOCKED
        return GateState.UNLOCKED

    def snapshot(self) -> GateSnapshot:
        return GateSnapshot(
            state=self.state,
            is_locked=self.is_locked,
            strict_mode_enabled=self.strict_mode_enabled,
            has_active_schema=self.has_active_schema,
            temporary_access_granted=self.temporary_access_granted,
            access_time_remaining=self.access_time_remaining,
        )

    @property
    def access_time_remaining_formatted(self) -> str:
        return format_countdown(self.access_time_remaining)

    @property
    def should_show_access_banner(self) -> bool:
        return self.temporary_access_granted and self.access_time_remaining > 0

    @property
    def status_message(self) -> str:
        if self.temporary_access_granted:
            return f"Temporary access granted • {self.access_time_remaining_formatted} remaining"
        if self.is_locked:
            return "Schema access is locked due to strict mode"
        return "Schema access is available"

    def _notify(self) -> None:
        snapshot = self.snapshot()
        if snapshot == self._last_snapshot:
            return
        self._last_snapshot = snapshot
        for callback in list(self._listeners):
            callback(snapshot)
