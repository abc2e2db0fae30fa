# phonejail/entities.py
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Index, JSON
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from typing import TypeAlias
UUID: TypeAlias = str
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SchemaRecord(Base):
    __tablename__ = "schema"

    id: Mapped[UUID] = mapped_column(String(36), primary_key=True)

    # registry order is the order the user created schemas in
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="inactive")

    # opaque encoding of the full Schema model
    payload: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("ix_schema_position", "position"),
        Index("ix_schema_status", "status"),
    )


class SettingRecord(Base):
    __tablename__ = "setting"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    # scalar wrapped as {"value": ...} so bools/floats/strings share one column
    value: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class ContentSelectionRecord(Base):
    __tablename__ = "content_selection"

    schema_id: Mapped[UUID] = mapped_column(String(36), primary_key=True)

    apps: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    websites: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    categories: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )
