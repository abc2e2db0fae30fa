# phonejail/schema_registry.py
import logging
from collections import OrderedDict
from typing import Callable, List, Optional

from pydantic import ValidationError as PayloadError
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from phonejail.entities import SchemaRecord
from phonejail.models import Schema
from phonejail.results import SchemaNotFoundError

logger = logging.getLogger("phonejail")

RegistryListener = Callable[[], None]


class SchemaRegistry:
    """
    Ordered, persisted collection of schemas.

    - In-memory view keyed by id, in creation order.
    - Every mutation is written through to the database before listeners run.
    - Listeners take no arguments; they read whatever they need back from
      the registry (the access gate recomputes from ``has_active_schema``).
    """

    def __init__(self, session_factory: sessionmaker):
        self.SessionFactory = session_factory
        self._schemas: "OrderedDict[str, Schema]" = OrderedDict()
        self._listeners: List[RegistryListener] = []

    # -----------------------
    # Listeners
    # -----------------------

    def subscribe(self, callback: RegistryListener) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: RegistryListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    # -----------------------
    # Reads
    # -----------------------

    def load(self) -> List[Schema]:
        session: Session = self.SessionFactory()
        try:
            rows = session.query(SchemaRecord).order_by(SchemaRecord.position.asc()).all()
            loaded: "OrderedDict[str, Schema]" = OrderedDict()
            for row in rows:
                try:
                    schema = Schema.model_validate(row.payload)
                except PayloadError as e:
                    logger.error("Skipping unreadable schema record id=%s: %s", row.id, e)
                    continue
                loaded[schema.id] = schema
        finally:
            session.close()

        self._schemas = loaded
        logger.info("Loaded %d schemas", len(self._schemas))
        self._notify()
        return self.all()

    def all(self) -> List[Schema]:
        return list(self._schemas.values())

    def get(self, schema_id: str) -> Schema:
        schema = self._schemas.get(str(schema_id))
        if schema is None:
            raise SchemaNotFoundError(schema_id)
        return schema

    def find(self, schema_id: str) -> Optional[Schema]:
        return self._schemas.get(str(schema_id))

    def __contains__(self, schema_id: object) -> bool:
        return str(schema_id) in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def active_schemas(self) -> List[Schema]:
        return [s for s in self._schemas.values() if s.is_active]

    def inactive_schemas(self) -> List[Schema]:
        return [s for s in self._schemas.values() if not s.is_active]

    @property
    def has_active_schema(self) -> bool:
        return any(s.is_active for s in self._schemas.values())

    # -----------------------
    # Writes
    # -----------------------

    def add(self, schema: Schema) -> Schema:
        if schema.id in self._schemas:
            raise ValueError(f"Schema already registered: {schema.id}")
        self._write(schema)
        self._schemas[schema.id] = schema
        self._notify()
        return schema

    def update(self, schema: Schema) -> Schema:
        if schema.id not in self._schemas:
            raise SchemaNotFoundError(schema.id)
        schema = schema.touched()
        self._write(schema)
        self._schemas[schema.id] = schema
        self._notify()
        return schema

    def remove(self, schema_id: str) -> Schema:
        schema = self.get(schema_id)
        session: Session = self.SessionFactory()
        try:
            row = session.get(SchemaRecord, schema.id)
            if row is not None:
                session.delete(row)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        del self._schemas[schema.id]
        self._notify()
        return schema

    def _write(self, schema: Schema) -> None:
        session: Session = self.SessionFactory()
        try:
            row = session.get(SchemaRecord, schema.id)
            if row is None:
                last = session.query(func.max(SchemaRecord.position)).scalar()
                row = SchemaRecord(id=schema.id, position=(last + 1) if last is not None else 0)
                session.add(row)
            row.name = schema.name
            row.status = schema.status.value
            row.payload = schema.model_dump(mode="json")
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
