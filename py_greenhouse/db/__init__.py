"""
Database utilities and models.

This package provides:
- SQLAlchemy model for expansion jobs
- Database connection management
"""

from .connection import Database, db
from .models import Base, ExpansionJob

__all__ = ['Database', 'db', 'Base', 'ExpansionJob']
