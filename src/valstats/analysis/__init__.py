"""
valstats Analysis - Match-level summaries.

- models: MatchStatRecord and the match summary documents
- summarizer: telemetry -> MatchSummary / MatchOverview
"""

from valstats.analysis.models import MatchOverview, MatchStatRecord, MatchSummary, StoredMatch
from valstats.analysis.summarizer import (
    MatchStatSummarizer,
    summarize_match,
    summarize_overview,
)

__all__ = [
    "MatchOverview",
    "MatchStatRecord",
    "MatchSummary",
    "MatchStatSummarizer",
    "StoredMatch",
    "summarize_match",
    "summarize_overview",
]
