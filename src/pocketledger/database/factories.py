"""Build the database the CLI and services run against."""

import logging
import os
from pathlib import Path
from typing import Optional

from pocketledger.database.sqlalchemy_db import SQLAlchemyDatabase

logger = logging.getLogger(__name__)

DB_PATH_ENV = "POCKETLEDGER_DB_PATH"
DEFAULT_DB_PATH = Path.home() / ".pocketledger" / "pocketledger.db"


def resolve_database_path(database_path: Optional[str] = None) -> Path:
    """Explicit path, else $POCKETLEDGER_DB_PATH, else ~/.pocketledger/pocketledger.db."""
    path = database_path or os.environ.get(DB_PATH_ENV)
    return Path(path).expanduser() if path else DEFAULT_DB_PATH


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite-backed database, creating its directory if needed."""
    path = resolve_database_path(database_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Using SQLite database at %s", path)
    return SQLAlchemyDatabase(f"sqlite:///{path}")
