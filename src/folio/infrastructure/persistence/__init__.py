"""Persistence: SQLAlchemy models, repositories and the composition executor."""
