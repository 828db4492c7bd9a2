"""
Database - engine and session management.

One engine per URL; sessions are opened per store operation and closed in
`finally`, so every single-card update is its own transaction.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lexquest.config import get_database_url
from lexquest.db.models import Base

logger = logging.getLogger(__name__)

_engines: dict[str, Engine] = {}


def create_db_engine(url: str) -> Engine:
    """
    Build an engine for a URL.

    In-memory SQLite shares one connection (StaticPool) so every session sees
    the same database; file SQLite gets its directory created.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        database = parsed.database
        if not database or database == ":memory:":
            return create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False,
            )
        directory = os.path.dirname(database)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)

    return create_engine(
        url,
        pool_size=5,           # Keep 5 connections open
        max_overflow=10,       # Allow up to 10 extra connections
        pool_pre_ping=True,    # Verify connections before use
        echo=False
    )


def get_engine(url: Optional[str] = None) -> Engine:
    """
    Get the (cached) engine for `url`, defaulting to the configured database.
    """
    url = url or get_database_url()
    engine = _engines.get(url)
    if engine is None:
        engine = create_db_engine(url)
        _engines[url] = engine
    return engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    return sessionmaker(bind=engine or get_engine(), expire_on_commit=False)


def init_db(engine: Optional[Engine] = None):
    """
    Create tables that don't exist yet.

    Safe to call multiple times.
    """
    Base.metadata.create_all(engine or get_engine())


def reset_db(engine: Optional[Engine] = None):
    """
    DANGEROUS: Delete all data and recreate tables.

    Only use this for testing or when you want to start fresh.
    All review history and the ledger will be lost!
    """
    engine = engine or get_engine()
    Base.metadata.drop_all(engine)
    logger.warning("[DB] All tables dropped")
    init_db(engine)
