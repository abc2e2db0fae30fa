# phonejail/content_selection_store.py
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from phonejail.entities import ContentSelectionRecord
from phonejail.models import ContentSelection


class ContentSelectionStore:
    """
    Per-schema content selections kept apart from the schema records.

    Constructed once by the app host and handed to whoever needs it.
    """

    def __init__(self, session_factory: sessionmaker):
        self.SessionFactory = session_factory

    def set_selection(self, schema_id: str, selection: ContentSelection) -> None:
        session: Session = self.SessionFactory()
        try:
            row = session.get(ContentSelectionRecord, str(schema_id))
            if row is None:
                row = ContentSelectionRecord(schema_id=str(schema_id))
                session.add(row)
            row.apps = sorted(selection.apps)
            row.websites = sorted(selection.websites)
            row.categories = sorted(selection.categories)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_selection(self, schema_id: str) -> Optional[ContentSelection]:
        session: Session = self.SessionFactory()
        try:
            row = session.get(ContentSelectionRecord, str(schema_id))
            if row is None:
                return None
            return ContentSelection(
                apps=frozenset(row.apps or []),
                websites=frozenset(row.websites or []),
                categories=frozenset(row.categories or []),
            )
        finally:
            session.close()

    def remove_selection(self, schema_id: str) -> None:
        session: Session = self.SessionFactory()
        try:
            row = session.get(ContentSelectionRecord, str(schema_id))
            if row is not None:
                session.delete(row)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def has_selection(self, schema_id: str) -> bool:
        selection = self.get_selection(schema_id)
        return selection is not None and not selection.is_empty

    def get_app_count(self, schema_id: str) -> int:
        selection = self.get_selection(schema_id)
        return len(selection.apps) if selection else 0

    def get_website_count(self, schema_id: str) -> int:
        selection = self.get_selection(schema_id)
        return len(selection.websites) if selection else 0

    def get_category_count(self, schema_id: str) -> int:
        selection = self.get_selection(schema_id)
        return len(selection.categories) if selection else 0
