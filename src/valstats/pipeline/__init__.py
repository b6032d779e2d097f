"""
valstats Pipeline - Match add/remove orchestration.
"""

from valstats.pipeline.orchestrator import MatchManager, OperationResult, ProfileStore

__all__ = ["MatchManager", "OperationResult", "ProfileStore"]
