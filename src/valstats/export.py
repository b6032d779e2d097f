"""
Export Functionality for valstats

Writes match summaries to disk:
- JSON: the complete summary document with export metadata
- CSV: one row per player, built through a pandas DataFrame
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from valstats.analysis.models import MatchStatRecord, MatchSummary
from valstats.stats.sections import PlayerProfile

logger = logging.getLogger(__name__)

# Leading CSV columns; the remaining record fields follow in declaration order
_LEADING_COLUMNS = ["match_id", "team", "name", "agent"]


# ============================================================================
# DataFrame Conversion
# ============================================================================


def records_to_dataframe(records: list[MatchStatRecord], match_id: str | None = None) -> pd.DataFrame:
    """One row per player record."""
    rows = [record.to_dict() for record in records]
    df = pd.DataFrame(rows)
    if df.empty:
        return df

    if match_id is not None:
        df.insert(0, "match_id", match_id)
    leading = [c for c in _LEADING_COLUMNS if c in df.columns]
    return df[leading + [c for c in df.columns if c not in leading]]


def profiles_to_dataframe(profiles: list[PlayerProfile], season_id: str | None = None) -> pd.DataFrame:
    """One row per player: games, rounds and averages for the chosen scope."""
    rows: list[dict[str, Any]] = []
    for profile in profiles:
        section = profile.season(season_id) if season_id else profile.overall_stats
        if section is None:
            continue
        row: dict[str, Any] = {"puuid": profile.puuid, "name": profile.current_name}
        for key, value in section.to_dict().items():
            if key == "agents":
                row["agents"] = len(value)
            elif isinstance(value, dict):
                for sub, sub_value in value.items():
                    row[f"{key}_{sub}"] = sub_value
            else:
                row[key] = value
        rows.append(row)
    return pd.DataFrame(rows)


# ============================================================================
# File Export
# ============================================================================


def export_to_json(summary: MatchSummary, output_path: Path, indent: int = 2) -> str:
    export_data = {
        "_metadata": {
            "exported_at": datetime.now(UTC).isoformat(),
            "format": "valstats_json",
            "version": "1.0",
        },
        **summary.to_dict(),
    }
    json_str = json.dumps(export_data, indent=indent, default=str)
    output_path.write_text(json_str)
    logger.info(f"Exported JSON to: {output_path}")
    return json_str


def export_to_csv(summary: MatchSummary, output_path: Path, delimiter: str = ",") -> str:
    df = records_to_dataframe(summary.records, match_id=summary.match_id)
    csv_str = df.to_csv(index=False, sep=delimiter)
    output_path.write_text(csv_str)
    logger.info(f"Exported CSV to: {output_path}")
    return csv_str


def export_summary(
    summary: MatchSummary,
    output_path: Path | str,
    indent: int = 2,
    delimiter: str = ",",
) -> str:
    """
    Export a match summary, choosing the format from the file extension.

    Args:
        summary: Detailed match summary
        output_path: Destination (.json or .csv)

    Returns:
        The written text
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()

    if suffix == ".json":
        return export_to_json(summary, output_path, indent=indent)
    elif suffix == ".csv":
        return export_to_csv(summary, output_path, delimiter=delimiter)
    else:
        raise ValueError(f"Unsupported export format: {suffix}. Use .json or .csv")
