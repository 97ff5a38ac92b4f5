"""
Momentum - Core Package
=======================

Core business logic, models, and schemas.
"""

from momentum.core.config import settings
from momentum.core.database import Base, get_db

__all__ = ["Base", "get_db", "settings"]
