"""
valstats - Match statistics for a 5v5 tactical shooter

Turns raw match telemetry into per-player match statistics and keeps
long-lived career and per-season player profiles in step as matches are
added and removed.

Usage:
    from valstats import summarize_match

    summary = summarize_match(raw_telemetry, team1_attacking=True)
    for record in summary.records:
        print(f"{record.name}: {record.acs} ACS, {record.kast}% KAST")
"""

__version__ = "0.1.0"
__author__ = "valstats Contributors"


def __getattr__(name):
    """Lazy import so the CLI and storage stack load only when used."""
    # Analysis
    if name == "summarize_match":
        from valstats.analysis.summarizer import summarize_match
        return summarize_match
    elif name == "summarize_overview":
        from valstats.analysis.summarizer import summarize_overview
        return summarize_overview
    elif name == "MatchStatSummarizer":
        from valstats.analysis.summarizer import MatchStatSummarizer
        return MatchStatSummarizer
    elif name == "parse_telemetry":
        from valstats.core.telemetry import parse_telemetry
        return parse_telemetry
    # Aggregates
    elif name == "AggregateStatsLedger":
        from valstats.stats.ledger import AggregateStatsLedger
        return AggregateStatsLedger
    # Storage and pipeline
    elif name == "DatabaseManager":
        from valstats.infra.database import DatabaseManager
        return DatabaseManager
    elif name == "MatchManager":
        from valstats.pipeline.orchestrator import MatchManager
        return MatchManager
    raise AttributeError(f"module 'valstats' has no attribute '{name}'")


__all__ = [
    # Version
    "__version__",
    # Analysis
    "summarize_match",
    "summarize_overview",
    "MatchStatSummarizer",
    "parse_telemetry",
    # Aggregates
    "AggregateStatsLedger",
    # Storage and pipeline
    "DatabaseManager",
    "MatchManager",
]
