# backend/app/db/base.py

"""
Declarative Base shared by app.models and the Alembic environment.

This file must NOT import app.models, otherwise importing the models from
alembic/env.py or app.main becomes circular.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass
