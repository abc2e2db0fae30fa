"""
Pytest Configuration and Fixtures

Every test gets its own in-memory SQLite database. Collaborators that would
talk to the outside world (enforcement backend, completion service) are
replaced with in-process fakes that record what they were asked to do.
"""
import asyncio
from datetime import time
from typing import List, Optional, Sequence

import pytest

from phonejail.access_gate import AccessControlGate
from phonejail.app_config import create_session_factory
from phonejail.content_selection_store import ContentSelectionStore
from phonejail.enforcement import EnforcementAdapter
from phonejail.models import WEEKDAYS, BlockingCondition, ContentSelection, Schema, SchemaStatus
from phonejail.results import CompletionErrorKind, EnforcementError, Err, Ok
from phonejail.schema_registry import SchemaRegistry
from phonejail.settings_store import SettingsStore


class FakeEnforcementAdapter(EnforcementAdapter):
    """Records calls; fails on demand. Set ``hold`` to keep activations pending."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.shielded: set[str] = set()
        self.activate_error: Optional[EnforcementError] = None
        self.deactivate_error: Optional[EnforcementError] = None
        self.hold: Optional[asyncio.Event] = None

    async def activate(self, schema_id: str, content: ContentSelection, conditions: Sequence[BlockingCondition]):
        self.calls.append(("activate", schema_id, content, list(conditions)))
        if self.hold is not None:
            await self.hold.wait()
        if self.activate_error is not None:
            return Err(self.activate_error)
        self.shielded.add(schema_id)
        return Ok(None)

    async def deactivate(self, schema_id: str):
        self.calls.append(("deactivate", schema_id))
        if self.deactivate_error is not None:
            return Err(self.deactivate_error)
        self.shielded.discard(schema_id)
        return Ok(None)

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]


class ScriptedCompletionService:
    """
    Completion service that answers from a script.
    Strings are returned as Ok(text); CompletionErrorKind values as Err(kind).
    Set ``hold`` to an asyncio.Event to keep calls pending until it is set.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: List[str] = []
        self.sampling: List[tuple] = []
        self.hold: Optional[asyncio.Event] = None

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def complete(self, prompt: str, temperature: float = 0.7, max_tokens: int = 150):
        self.prompts.append(prompt)
        self.sampling.append((temperature, max_tokens))
        if self.hold is not None:
            await self.hold.wait()
        item = self.responses.pop(0)
        if isinstance(item, CompletionErrorKind):
            return Err(item)
        return Ok(item)


@pytest.fixture
def session_factory():
    return create_session_factory("sqlite://")


@pytest.fixture
def settings(session_factory):
    store = SettingsStore(session_factory)
    store.load()
    return store


@pytest.fixture
def registry(session_factory):
    reg = SchemaRegistry(session_factory)
    reg.load()
    return reg


@pytest.fixture
def content_store(session_factory):
    return ContentSelectionStore(session_factory)


@pytest.fixture
def adapter():
    return FakeEnforcementAdapter()


@pytest.fixture
def completion():
    return ScriptedCompletionService()


@pytest.fixture
def gate(settings, registry):
    """Gate wired to settings and registry, ticked by hand."""
    g = AccessControlGate(autostart_timer=False)
    g.configure(settings, registry)
    yield g
    g.close()


@pytest.fixture
def work_hours_schema():
    return Schema(
        name="Work Hours",
        selected_content=ContentSelection(apps=frozenset({"app.social"}), websites=frozenset({"news.example"})),
        blocking_conditions=[BlockingCondition.schedule(time(9, 0), time(17, 0), WEEKDAYS)],
    )


@pytest.fixture
def active_schema(work_hours_schema):
    return work_hours_schema.model_copy(update={"status": SchemaStatus.ACTIVE})
