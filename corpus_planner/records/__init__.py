"""
Records module for reading users' financial records.

This module provides the read-only interface the engine consumes, plus an
in-memory implementation.
"""

from .base import (
    FinancialRecordsProvider,
    MissingUserContextError,
    RecordsError,
    RecordsNotFoundError,
    require_user_id,
)
from .memory import InMemoryRecordsProvider

__all__ = [
    "FinancialRecordsProvider",
    "RecordsError",
    "MissingUserContextError",
    "RecordsNotFoundError",
    "InMemoryRecordsProvider",
    "require_user_id",
]
