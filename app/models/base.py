"""SQLAlchemy declarative Base shared by the ORM models and Alembic metadata."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
