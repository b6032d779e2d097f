"""
valstats Match and Profile Database.

Provides persistent storage for processed matches, season match indexes and
player profiles.

Uses SQLite with SQLAlchemy ORM. Profiles and match documents are stored as
JSON blobs keyed by player id / match id; profile writes are guarded by a
version column so concurrent read-modify-write cycles cannot silently
overwrite each other.
"""

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from valstats.analysis.models import MatchSummary, StoredMatch
from valstats.stats.sections import PlayerProfile, StatsSection


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


logger = logging.getLogger(__name__)

# Database configuration
DEFAULT_DB_PATH = Path.home() / ".valstats" / "valstats.db"
Base = declarative_base()


# =============================================================================
# Database Models
# =============================================================================


class MatchRow(Base):
    """A processed match: basic overview plus detailed summary."""

    __tablename__ = "matches"

    match_id = Column(String(64), primary_key=True)
    season_id = Column(String(64), nullable=False, index=True)
    map_name = Column(String(50))
    game_start = Column(String(40))
    overview_json = Column(Text)
    summary_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utc_now)


class PlayerProfileRow(Base):
    """Aggregated player statistics, career and per season."""

    __tablename__ = "player_profiles"

    puuid = Column(String(128), primary_key=True)
    current_name = Column(String(100), nullable=False)
    overall_json = Column(Text, nullable=False)
    seasons_json = Column(Text, nullable=False)
    last_updated = Column(DateTime, default=_utc_now)
    version = Column(Integer, nullable=False, default=1)

    def to_profile(self) -> PlayerProfile:
        overall = json.loads(self.overall_json) if self.overall_json else {}
        seasons = json.loads(self.seasons_json) if self.seasons_json else {}
        last_updated = self.last_updated
        if last_updated is not None and last_updated.tzinfo is None:
            # SQLite drops tzinfo; values are always written in UTC
            last_updated = last_updated.replace(tzinfo=UTC)
        return PlayerProfile(
            puuid=self.puuid,
            current_name=self.current_name,
            overall_stats=StatsSection.from_dict(overall),
            season_stats={sid: StatsSection.from_dict(s) for sid, s in seasons.items()},
            last_updated=last_updated or _utc_now(),
            version=self.version,
        )


class SeasonRow(Base):
    """Ordered list of match ids ingested for a season."""

    __tablename__ = "seasons"

    season_id = Column(String(64), primary_key=True)
    matches_json = Column(Text, nullable=False, default="[]")
    match_count = Column(Integer, nullable=False, default=0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_id": self.season_id,
            "matches": json.loads(self.matches_json or "[]"),
            "match_count": self.match_count,
        }


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """
    Manages database connections and operations.

    Implements the profile store interface used by the match pipeline:
    get_player_profile / put_player_profile / get_match_record and the
    match and season bookkeeping around them.
    """

    def __init__(self, db_path: Path | str | None = None):
        """Initialize database connection."""
        if db_path is None:
            db_path = os.environ.get("VALSTATS_DB_PATH", DEFAULT_DB_PATH)

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        self.SessionLocal = sessionmaker(bind=self.engine)
        Base.metadata.create_all(self.engine)

        logger.info(f"Database initialized at: {self.db_path}")

    def get_session(self) -> Session:
        """Get a database session."""
        return self.SessionLocal()

    def close(self) -> None:
        self.engine.dispose()

    # =========================================================================
    # Match Operations
    # =========================================================================

    def match_exists(self, match_id: str) -> bool:
        session = self.get_session()
        try:
            return session.get(MatchRow, match_id) is not None
        finally:
            session.close()

    def save_match_record(
        self,
        season_id: str,
        summary: MatchSummary,
        overview: dict[str, Any] | None = None,
    ) -> bool:
        """
        Save a processed match.

        Returns:
            True if saved, False if a match with this id already exists
        """
        session = self.get_session()
        try:
            if session.get(MatchRow, summary.match_id) is not None:
                logger.info(f"Match already exists: {summary.match_id}")
                return False

            session.add(
                MatchRow(
                    match_id=summary.match_id,
                    season_id=season_id,
                    map_name=summary.map,
                    game_start=summary.start_time,
                    overview_json=json.dumps(overview) if overview is not None else None,
                    summary_json=json.dumps(summary.to_dict()),
                )
            )
            session.commit()
            logger.info(f"Match {summary.match_id} inserted into season {season_id}")
            return True
        except IntegrityError:
            session.rollback()
            logger.info(f"Match already exists: {summary.match_id}")
            return False
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to save match {summary.match_id}: {e}")
            raise
        finally:
            session.close()

    def get_match_record(self, match_id: str) -> StoredMatch | None:
        """Get a stored match with its per-player records."""
        session = self.get_session()
        try:
            row = session.get(MatchRow, match_id)
            if row is None:
                return None
            return StoredMatch(
                match_id=row.match_id,
                season_id=row.season_id,
                summary=MatchSummary.from_dict(json.loads(row.summary_json)),
                overview=json.loads(row.overview_json) if row.overview_json else None,
                created_at=row.created_at,
            )
        finally:
            session.close()

    def delete_match_record(self, match_id: str) -> bool:
        session = self.get_session()
        try:
            deleted = session.query(MatchRow).filter(MatchRow.match_id == match_id).delete()
            session.commit()
            if deleted:
                logger.info(f"Match {match_id} deleted")
            return bool(deleted)
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to delete match {match_id}: {e}")
            raise
        finally:
            session.close()

    def get_season_matches(self, season_id: str) -> list[dict[str, Any]]:
        """Basic overviews of a season's matches, newest first."""
        session = self.get_session()
        try:
            rows = (
                session.query(MatchRow)
                .filter(MatchRow.season_id == season_id)
                .order_by(MatchRow.game_start.desc())
                .all()
            )
            return [json.loads(r.overview_json) for r in rows if r.overview_json]
        finally:
            session.close()

    # =========================================================================
    # Season Operations
    # =========================================================================

    def update_season_with_match(self, season_id: str, match_id: str, change: str) -> None:
        """
        Add or remove a match id from a season's index.

        Args:
            change: "add" or "remove"
        """
        if change not in ("add", "remove"):
            raise ValueError("Invalid change type. Use 'add' or 'remove'.")

        session = self.get_session()
        try:
            season = session.get(SeasonRow, season_id)
            if season is None:
                season = SeasonRow(season_id=season_id, matches_json="[]", match_count=0)
                session.add(season)

            matches = json.loads(season.matches_json or "[]")
            if change == "add" and match_id not in matches:
                matches.append(match_id)
            elif change == "remove" and match_id in matches:
                matches.remove(match_id)
            season.matches_json = json.dumps(matches)
            season.match_count = len(matches)
            session.commit()
            logger.info(f"{'Added' if change == 'add' else 'Removed'} {match_id} in season {season_id}")
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to update season {season_id}: {e}")
            raise
        finally:
            session.close()

    def get_season(self, season_id: str) -> dict[str, Any] | None:
        session = self.get_session()
        try:
            season = session.get(SeasonRow, season_id)
            return season.to_dict() if season else None
        finally:
            session.close()

    # =========================================================================
    # Player Profile Operations
    # =========================================================================

    def get_player_profile(self, puuid: str) -> PlayerProfile | None:
        """Get a player's profile, or None if the player has no matches."""
        session = self.get_session()
        try:
            row = session.get(PlayerProfileRow, puuid)
            return row.to_profile() if row else None
        finally:
            session.close()

    def put_player_profile(self, profile: PlayerProfile, expected_version: int | None) -> bool:
        """
        Write a profile if nobody else changed it since it was read.

        Args:
            profile: New profile value
            expected_version: Version that was read, or None when the profile
                did not exist yet

        Returns:
            True on success, False on a version conflict
        """
        values = {
            "current_name": profile.current_name,
            "overall_json": json.dumps(profile.overall_stats.to_dict()),
            "seasons_json": json.dumps(
                {sid: s.to_dict() for sid, s in profile.season_stats.items()}
            ),
            "last_updated": profile.last_updated,
        }

        session = self.get_session()
        try:
            if expected_version is None:
                session.add(PlayerProfileRow(puuid=profile.puuid, version=1, **values))
            else:
                updated = (
                    session.query(PlayerProfileRow)
                    .filter(
                        PlayerProfileRow.puuid == profile.puuid,
                        PlayerProfileRow.version == expected_version,
                    )
                    .update({**values, "version": expected_version + 1})
                )
                if updated == 0:
                    session.rollback()
                    logger.debug(f"Version conflict writing profile {profile.puuid}")
                    return False
            session.commit()
            logger.debug(f"Player {profile.current_name} ({profile.puuid}) saved")
            return True
        except IntegrityError:
            session.rollback()
            logger.debug(f"Profile {profile.puuid} was created concurrently")
            return False
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to save profile {profile.puuid}: {e}")
            raise
        finally:
            session.close()

    def get_all_players(self) -> list[PlayerProfile]:
        session = self.get_session()
        try:
            return [row.to_profile() for row in session.query(PlayerProfileRow).all()]
        finally:
            session.close()

    def get_players_by_season(self, season_id: str) -> list[PlayerProfile]:
        return [p for p in self.get_all_players() if season_id in p.season_stats]

    def delete_player(self, puuid: str) -> bool:
        session = self.get_session()
        try:
            deleted = (
                session.query(PlayerProfileRow).filter(PlayerProfileRow.puuid == puuid).delete()
            )
            session.commit()
            return bool(deleted)
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to delete player {puuid}: {e}")
            raise
        finally:
            session.close()


# Global database instance (lazy initialization)
_db_manager: DatabaseManager | None = None


def get_db() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        from valstats.core.config import get_config

        _db_manager = DatabaseManager(get_config().storage.db_path)
    return _db_manager
