# bomservice/db/__init__.py

from .base import Base
from .session import Database, get_db
from . import models  # noqa: F401  # ensure models are imported so Base.metadata is populated

__all__ = [
    "Base",
    "Database",
    "get_db",
    "models",
]
