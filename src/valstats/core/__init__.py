"""
valstats Core - Foundation modules for match processing.

This module contains the fundamental components:
- constants: Team identifiers, round structure
- config: Application configuration management
- errors: Exception hierarchy
- telemetry: Validated match telemetry input model
- utils: General utility functions
"""

from valstats.core.constants import (
    OVERTIME_PERIOD_ROUNDS,
    REGULATION_ROUNDS,
    Pick,
    TeamSide,
    TeamSlot,
)
from valstats.core.errors import (
    ConsistencyError,
    DataIntegrityError,
    StoreConflictError,
    ValidationError,
    ValstatsError,
)

__all__ = [
    "OVERTIME_PERIOD_ROUNDS",
    "REGULATION_ROUNDS",
    "Pick",
    "TeamSide",
    "TeamSlot",
    "ConsistencyError",
    "DataIntegrityError",
    "StoreConflictError",
    "ValidationError",
    "ValstatsError",
]
