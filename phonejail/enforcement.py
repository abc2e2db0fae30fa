# phonejail/enforcement.py
"""
Contract for the OS-level blocking backend.

The backend itself (shielding apps, web domains and categories, and
monitoring schedules/usage) lives outside this package. It is expected to
keep its own state across process restarts.
"""
from abc import ABC, abstractmethod
from typing import Sequence

from phonejail.models import BlockingCondition, ContentSelection
from phonejail.results import EnforcementError, Result


class EnforcementAdapter(ABC):

    @abstractmethod
    async def activate(
        self,
        schema_id: str,
        content: ContentSelection,
        conditions: Sequence[BlockingCondition],
    ) -> Result[None, EnforcementError]:
        """Start shielding ``content`` under ``conditions`` for the given schema."""

    @abstractmethod
    async def deactivate(self, schema_id: str) -> Result[None, EnforcementError]:
        """Stop shielding and monitoring for the schema. Must be idempotent."""
