"""
valstats Infrastructure - Storage and concurrency primitives.

- database: SQLAlchemy-backed match and profile store
- locks: per-key locking for profile and match updates
"""

from valstats.infra.database import DatabaseManager, get_db
from valstats.infra.locks import KeyedLock

__all__ = ["DatabaseManager", "KeyedLock", "get_db"]
