"""
Relational persistence for the store interfaces (SQLAlchemy).

Quick start:
    from lexquest import db

    engine = db.get_engine()
    db.init_db(engine)
    stores = db.create_stores(db.get_session_factory(engine))
"""

from lexquest.db.database import (
    create_db_engine,
    get_engine,
    get_session_factory,
    init_db,
    reset_db,
)
from lexquest.db.repositories import (
    SqlBookStore,
    SqlCardStore,
    SqlLedgerStore,
    SqlPresetStore,
    SqlReviewLogStore,
    SqlSettingsStore,
    Stores,
    create_stores,
)


__all__ = [
    "create_db_engine",
    "get_engine",
    "get_session_factory",
    "init_db",
    "reset_db",
    "SqlBookStore",
    "SqlCardStore",
    "SqlLedgerStore",
    "SqlPresetStore",
    "SqlReviewLogStore",
    "SqlSettingsStore",
    "Stores",
    "create_stores",
]
