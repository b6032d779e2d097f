"""
valstats Stats - Long-lived player aggregates.

- sections: StatsSection / PlayerProfile value types
- ledger: reversible apply/reverse of match records
"""

from valstats.stats.ledger import AggregateStatsLedger, apply_match, reverse_match
from valstats.stats.sections import PlayerProfile, StatsSection, Tally

__all__ = [
    "AggregateStatsLedger",
    "apply_match",
    "reverse_match",
    "PlayerProfile",
    "StatsSection",
    "Tally",
]
