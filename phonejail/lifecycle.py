# phonejail/lifecycle.py
import logging
from typing import List, Set

from phonejail.base_utils import BaseUtils
from phonejail.content_selection_store import ContentSelectionStore
from phonejail.enforcement import EnforcementAdapter
from phonejail.models import BlockingCondition, ContentSelection, Schema, SchemaStatus, SchemaType, starter_schemas
from phonejail.results import EnforcementError, Ok, Result, SchemaNotFoundError, SchemaStateError
from phonejail.schema_draft import SchemaDraft
from phonejail.schema_registry import SchemaRegistry

logger = logging.getLogger("phonejail")


class SchemaLifecycleManager(BaseUtils):
    """
    The only writer of schema status.

    - activate/deactivate go through the enforcement adapter first and touch
      the registry only when it succeeded; failures leave the status as it was.
    - delete always deactivates first and keeps the schema if that fails.
    - Enforcement failures are returned as Err, never retried here.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        adapter: EnforcementAdapter,
        content_store: ContentSelectionStore,
    ):
        self.registry = registry
        self.adapter = adapter
        self.content_store = content_store
        self._activating: Set[str] = set()

    # -----------------------
    # Startup
    # -----------------------

    def reconcile_on_startup(self) -> List[Schema]:
        """
        Reload the registry and trust the persisted statuses.
        The enforcement backend keeps its own state across restarts, so nothing is re-activated.
        """
        self.registry.load()
        active = self.registry.active_schemas()
        logger.info("Startup reconciliation: %d schemas, %d active", len(self.registry), len(active))
        return active

    # -----------------------
    # Creation
    # -----------------------

    def create_schema(self, draft: SchemaDraft) -> Schema:
        schema = draft.build()
        self.registry.add(schema)
        if not schema.selected_content.is_empty:
            self.content_store.set_selection(schema.id, schema.selected_content)
        logger.info("Created schema %s (%s)", schema.name, schema.id)
        return schema

    def create_from_template(self, schema_type: SchemaType) -> Schema:
        template = next((s for s in starter_schemas() if s.type == schema_type), None)
        if template is None:
            raise ValueError(f"No starter template for schema type {schema_type.value!r}")

        schema = Schema(
            name=template.name,
            type=template.type,
            selected_content=template.selected_content,
            # fresh condition ids; the template is shared
            blocking_conditions=[
                BlockingCondition(**c.model_dump(exclude={"id"})) for c in template.blocking_conditions
            ],
        )
        self.registry.add(schema)
        logger.info("Created schema from template: %s", template.name)
        return schema

    # -----------------------
    # Status transitions
    # -----------------------

    def _content_for(self, schema: Schema) -> ContentSelection:
        stored = self.content_store.get_selection(schema.id)
        if stored is not None and not stored.is_empty:
            return stored
        return schema.selected_content

    async def activate(self, schema_id: str) -> Result[Schema, EnforcementError]:
        schema = self.registry.get(schema_id)
        if schema.is_active:
            raise SchemaStateError(f"Schema {schema.id} is already {schema.status.value}")
        if schema.id in self._activating:
            raise SchemaStateError(f"Schema {schema.id} is already being activated")

        self._activating.add(schema.id)
        try:
            result = await self.adapter.activate(schema.id, self._content_for(schema), list(schema.blocking_conditions))
        finally:
            self._activating.discard(schema.id)
        if not result.is_ok:
            logger.error("Failed to activate schema %s: %s %s", schema.name, result.error.kind.value, result.error.message)
            return result

        current = self.registry.find(schema.id)
        if current is None:
            # removed while the adapter was working; do not leave it shielded
            await self.adapter.deactivate(schema.id)
            raise SchemaNotFoundError(schema.id)

        updated = self.registry.update(current.with_status(SchemaStatus.ACTIVE))
        self.color_print(f"Schema activated: {updated.name}", "green")
        return Ok(updated)

    async def deactivate(self, schema_id: str) -> Result[Schema, EnforcementError]:
        schema = self.registry.get(schema_id)

        result = await self.adapter.deactivate(schema.id)
        if not result.is_ok:
            logger.error("Failed to deactivate schema %s: %s %s", schema.name, result.error.kind.value, result.error.message)
            return result

        current = self.registry.find(schema.id)
        if current is None:
            return Ok(schema.with_status(SchemaStatus.INACTIVE))
        if current.status == SchemaStatus.INACTIVE:
            return Ok(current)

        updated = self.registry.update(current.with_status(SchemaStatus.INACTIVE))
        logger.info("Schema deactivated: %s", updated.name)
        return Ok(updated)

    async def delete(self, schema_id: str) -> Result[Schema, EnforcementError]:
        result = await self.deactivate(schema_id)
        if not result.is_ok:
            logger.error("Keeping schema %s: it could not be deactivated", schema_id)
            return result

        removed = self.registry.remove(schema_id)
        self.content_store.remove_selection(schema_id)
        logger.info("Schema deleted: %s", removed.name)
        return Ok(removed)

    async def handle_authorization_revoked(self) -> List[Result[Schema, EnforcementError]]:
        """The enforcement backend lost its authorization: stand every active schema down."""
        active = self.registry.active_schemas()
        logger.warning("Enforcement authorization revoked; deactivating %d schemas", len(active))

        results = []
        for schema in active:
            results.append(await self.deactivate(schema.id))
        return results

    def set_content_selection(self, schema_id: str, selection: ContentSelection) -> Schema:
        """Replace what a schema blocks. Takes effect on its next activation."""
        schema = self.registry.get(schema_id)
        self.content_store.set_selection(schema.id, selection)
        return self.registry.update(schema.model_copy(update={"selected_content": selection}))

