"""Schemas - pydantic request models for the HTTP boundary."""
