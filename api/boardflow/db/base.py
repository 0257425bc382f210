"""Import all models here for Alembic autogenerate."""

from boardflow.db.base_class import Base
from boardflow.models import automation, board  # noqa: F401

__all__ = ["Base"]
