"""SQLAlchemy declarative base with table name conventions."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, declared_attr

JSON_COMPATIBLE = JSON().with_variant(JSONB, "postgresql")


class Base(DeclarativeBase):
    """Declarative base that lowercases class names into table names."""
    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[misc]
        return cls.__name__.lower()
