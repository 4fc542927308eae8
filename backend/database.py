"""
Database Configuration Module

This module handles the database configuration and connection setup for the clinic pharmacy backend.
It uses SQLAlchemy for ORM (Object-Relational Mapping) with PostgreSQL as the production database.

The module includes:
- Database connection setup
- Session management
- Base model class definition
"""

from datetime import datetime

import pytz
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings

# SQLite needs check_same_thread disabled because FastAPI runs sync endpoints in a threadpool
connect_args = (
    {"check_same_thread": False}
    if settings.DATABASE_URL.startswith("sqlite")
    else {}
)

# Create SQLAlchemy engine
# The engine is the entry point to the SQLAlchemy ORM
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

# Create SessionLocal class
# SessionLocal is a factory for creating new Session objects
# autocommit=False means we need to explicitly commit transactions
# autoflush=False means staged changes are only written on flush/commit
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class
# Base is the declarative base class that our ORM models will inherit from
Base = declarative_base()


def clinic_now() -> datetime:
    """Current time in the clinic's timezone."""
    return datetime.now(pytz.timezone(settings.CLINIC_TIMEZONE))


# Dependency to get database session
def get_db():
    """
    Dependency function that provides a database session.

    This function creates a new database session for each request and ensures
    that the session is properly closed after the request is completed.

    Yields:
        Session: A SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
