# phonejail/app_host.py
"""
Application host.

Builds one of each component and wires them together:

    SettingsStore ─┐
                   ├─> AccessControlGate <── JailkeeperNegotiator (grants)
    SchemaRegistry ┘          ^
          ^                   │ snapshots to UI listeners
          │
    SchemaLifecycleManager ── EnforcementAdapter (external)

Everything runs on the event loop that calls ``start()``; ``close()`` cancels
the gate countdown and unhooks the listeners installed here.
"""
import logging
from typing import Any, Dict

from sqlalchemy.orm import sessionmaker

from phonejail.access_gate import AccessControlGate
from phonejail.app_config import (
    JAILKEEPER_CODEWORD,
    JAILKEEPER_MODEL,
    PERSONALITY_CONFIG_PATH,
    create_session_factory,
)
from phonejail.content_selection_store import ContentSelectionStore
from phonejail.enforcement import EnforcementAdapter
from phonejail.history_cache import HistoryCache
from phonejail.lifecycle import SchemaLifecycleManager
from phonejail.llm_client import BaseCompletionClient, create_completion_client
from phonejail.negotiation import JailkeeperNegotiator
from phonejail.personality import Personality, load_personality_policies
from phonejail.schema_registry import SchemaRegistry
from phonejail.settings_store import DEFAULTS, SELECTED_PERSONALITY, SettingsStore

logger = logging.getLogger("phonejail")


class PhoneJailApp:

    def __init__(
        self,
        session_factory: sessionmaker,
        adapter: EnforcementAdapter,
        completion: BaseCompletionClient,
        *,
        codeword: str = JAILKEEPER_CODEWORD,
        personality_config_path: str | None = PERSONALITY_CONFIG_PATH,
        tick_interval: float = 1.0,
        autostart_timer: bool = True,
        history_max_tokens: int = 8000,
    ):
        self.settings = SettingsStore(session_factory)
        self.registry = SchemaRegistry(session_factory)
        self.content_store = ContentSelectionStore(session_factory)
        self.gate = AccessControlGate(tick_interval=tick_interval, autostart_timer=autostart_timer)
        self.lifecycle = SchemaLifecycleManager(self.registry, adapter, self.content_store)
        self.negotiator = JailkeeperNegotiator(
            self.gate,
            completion,
            history=HistoryCache(max_tokens=history_max_tokens),
            codeword=codeword,
            policies=load_personality_policies(personality_config_path),
        )
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        self.settings.load()
        self.negotiator.update_personality(self._stored_personality())
        self.settings.subscribe(self._on_setting_changed)

        self.lifecycle.reconcile_on_startup()
        self.gate.configure(self.settings, self.registry)
        self._started = True
        logger.info(
            "PhoneJail started: strict_mode=%s active_schemas=%d locked=%s",
            self.settings.strict_mode_enabled,
            len(self.registry.active_schemas()),
            self.gate.is_locked,
        )

    async def close(self) -> None:
        self.settings.unsubscribe(self._on_setting_changed)
        self.gate.close()
        self._started = False
        logger.info("PhoneJail stopped")

    def _stored_personality(self) -> Personality:
        stored = self.settings.selected_personality
        try:
            return Personality.parse(stored)
        except ValueError:
            fallback = Personality.parse(DEFAULTS[SELECTED_PERSONALITY])
            logger.warning("Stored personality %r is unknown, using %s", stored, fallback.value)
            return fallback

    def _on_setting_changed(self, key: str, value: Any) -> None:
        if key == SELECTED_PERSONALITY:
            self.negotiator.update_personality(value)

    @property
    def schemas_locked(self) -> bool:
        """True while schema and settings edits must go through the Jailkeeper first."""
        return self.gate.is_locked

    def status(self) -> Dict[str, Any]:
        snapshot = self.gate.snapshot()
        return {
            "state": snapshot.state.value,
            "is_locked": snapshot.is_locked,
            "strict_mode_enabled": snapshot.strict_mode_enabled,
            "active_schemas": [s.name for s in self.registry.active_schemas()],
            "access_time_remaining": self.gate.access_time_remaining_formatted,
            "personality": self.negotiator.personality.value,
            "jailkeeper_mode": self.negotiator.mode.value,
        }


def build_app(
    adapter: EnforcementAdapter,
    *,
    database_url: str | None = None,
    model_name: str = JAILKEEPER_MODEL,
    completion: BaseCompletionClient | None = None,
    **kwargs,
) -> PhoneJailApp:
    """Production wiring: database from DATABASE_URL, completion client picked from the model name."""
    session_factory = create_session_factory(database_url)
    if completion is None:
        completion = create_completion_client(model_name)
    return PhoneJailApp(session_factory, adapter, completion, **kwargs)
