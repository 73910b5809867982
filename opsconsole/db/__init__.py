"""Catalog database layer with async SQLAlchemy."""

from opsconsole.db.connection import get_session, init_db
from opsconsole.db.models import Base, ProductModel, VariantModel

__all__ = [
    "Base",
    "ProductModel",
    "VariantModel",
    "get_session",
    "init_db",
]
