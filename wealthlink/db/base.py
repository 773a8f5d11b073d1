"""Declarative Base for the five Wealthlink tables.

Kept apart from the models so alembic/env.py can import the metadata
without pulling in the session manager.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
