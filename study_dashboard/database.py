"""Database configuration for the key-value storage table."""

from sqlmodel import SQLModel, create_engine

from study_dashboard.config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# echo follows DEBUG; off by default to avoid noisy logs
engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG, connect_args=connect_args)


def create_db_and_tables(bind=None) -> None:
    """Create database tables based on SQLModel metadata."""
    # Register the table on the metadata before creating it
    from study_dashboard import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
