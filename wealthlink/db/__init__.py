"""Persistence base - the declarative Base shared by wealthlink.models and alembic."""
