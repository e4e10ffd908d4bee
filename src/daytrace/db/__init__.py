"""Daytrace database layer."""

from daytrace.db.connection import Database
from daytrace.db.migrations import MIGRATIONS, run_migrations
from daytrace.db.repository import SnapshotRepository
from daytrace.db.schema import initialize

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "SnapshotRepository",
]
