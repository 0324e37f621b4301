"""
Database connection and session management.
Provides SQLAlchemy engine, session factory, and base class for models.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from fastapi import Request

# Create base class for declarative models
Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for a connection string.

    SQLite connections are shared across the threadpool, so the same-thread
    check is disabled for them.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory bound to an engine."""
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db(request: Request):
    """
    Database dependency - Creates and yields a database session.

    The session is automatically closed after the request is processed,
    even if an exception occurs during request handling.

    Yields:
        SQLAlchemy Session: Database session
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
