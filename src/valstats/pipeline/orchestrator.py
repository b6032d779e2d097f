"""
Match ingestion pipeline.

MatchManager is the write path: it turns raw telemetry into stored match
documents and folds (or unfolds) every player's MatchStatRecord into their
profile.

Concurrency model:
- Add/remove of the same match id are serialized by a per-match lock.
- Each profile read-modify-write holds a per-player lock and is committed
  with an optimistic version check; a conflicting write is retried.
- The players of one match are applied concurrently on a thread pool.
- Add and remove are all-or-nothing: if any player fails, the players
  already changed are put back (and a new match record is discarded)
  before the error propagates.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

from valstats.analysis.models import MatchStatRecord, MatchSummary, StoredMatch
from valstats.analysis.summarizer import MatchStatSummarizer
from valstats.core.config import ValstatsConfig, get_config
from valstats.core.errors import ConsistencyError, StoreConflictError
from valstats.core.telemetry import parse_telemetry
from valstats.core.utils import timed
from valstats.infra.locks import KeyedLock
from valstats.stats.ledger import AggregateStatsLedger
from valstats.stats.sections import PlayerProfile

logger = logging.getLogger(__name__)


class ProfileStore(Protocol):
    """Storage operations the pipeline relies on."""

    def get_player_profile(self, puuid: str) -> PlayerProfile | None: ...

    def put_player_profile(self, profile: PlayerProfile, expected_version: int | None) -> bool: ...

    def get_match_record(self, match_id: str) -> StoredMatch | None: ...

    def save_match_record(
        self, season_id: str, summary: MatchSummary, overview: dict[str, Any] | None = None
    ) -> bool: ...

    def delete_match_record(self, match_id: str) -> bool: ...

    def match_exists(self, match_id: str) -> bool: ...

    def update_season_with_match(self, season_id: str, match_id: str, change: str) -> None: ...


@dataclass
class OperationResult:
    """Outcome of an add or remove."""

    success: bool
    message: str
    match_id: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


# Returns the new profile, or None to leave the stored one untouched
ProfileChange = Callable[[PlayerProfile | None], PlayerProfile | None]


class MatchManager:
    """
    Adds and removes matches and keeps player profiles in step.

    Usage:
        manager = MatchManager(DatabaseManager(db_path))
        result = manager.add_match(raw, season_id="e9a1", team1_attacking=True)
        if not result.success:
            print(result.message)
    """

    def __init__(
        self,
        store: ProfileStore | None = None,
        config: ValstatsConfig | None = None,
        ledger: AggregateStatsLedger | None = None,
    ):
        self.config = config or get_config()
        if store is None:
            from valstats.infra.database import get_db

            store = get_db()
        self.store = store
        self.ledger = ledger or AggregateStatsLedger()
        self._player_locks = KeyedLock()
        self._match_locks = KeyedLock()

    # =========================================================================
    # Profile updates
    # =========================================================================

    def _update_profile(self, puuid: str, change: ProfileChange) -> bool:
        """
        Read-modify-write one profile under its lock with optimistic retries.

        Returns:
            True if a new profile was written, False if ``change`` declined

        Raises:
            StoreConflictError: the version check kept failing
        """
        retries = self.config.storage.max_profile_retries
        with self._player_locks.hold(puuid):
            for attempt in range(retries + 1):
                current = self.store.get_player_profile(puuid)
                updated = change(current)
                if updated is None:
                    return False
                expected = current.version if current is not None else None
                if self.store.put_player_profile(updated, expected):
                    return True
                logger.warning(
                    f"Profile {puuid} changed during update (attempt {attempt + 1}/{retries + 1})"
                )

        raise StoreConflictError(f"Could not update profile {puuid} after {retries + 1} attempts")

    def _for_each_player(
        self, records: list[MatchStatRecord], work: Callable[[MatchStatRecord], str | None]
    ) -> tuple[list[MatchStatRecord], list[str], Exception | None]:
        """
        Run ``work`` for every record on the pool.

        Returns:
            (records whose profile changed, warnings, first error or None)
        """
        changed: list[MatchStatRecord] = []
        warnings: list[str] = []
        errors: list[Exception] = []
        workers = max(1, min(self.config.pipeline.max_workers, len(records) or 1))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(work, record): record for record in records}
            for future in as_completed(futures):
                record = futures[future]
                try:
                    warning = future.result()
                except Exception as e:
                    logger.error(f"Profile update failed for {record.name} ({record.puuid}): {e}")
                    errors.append(e)
                    continue
                if warning:
                    warnings.append(warning)
                else:
                    changed.append(record)

        return changed, sorted(warnings), errors[0] if errors else None

    def _apply_one(self, record: MatchStatRecord, season_id: str) -> None:
        self._update_profile(
            record.puuid,
            lambda profile: self.ledger.apply_to_profile(profile, record, season_id),
        )
        logger.debug(f"Applied match stats for {record.name}")

    def _reverse_one(self, record: MatchStatRecord, season_id: str) -> str | None:
        changed = self._update_profile(
            record.puuid,
            lambda profile: (
                self.ledger.reverse_from_profile(profile, record, season_id)
                if profile is not None
                else None
            ),
        )
        if not changed:
            message = f"No profile for {record.name} ({record.puuid}); nothing to reverse"
            logger.warning(message)
            return message
        logger.debug(f"Reversed match stats for {record.name}")
        return None

    def _undo(
        self, records: list[MatchStatRecord], work: Callable[[MatchStatRecord], str | None]
    ) -> None:
        """Put back profiles already changed by a failed batch."""
        if not records:
            return
        logger.warning(f"Rolling back {len(records)} profile update(s)")
        _, _, error = self._for_each_player(records, work)
        if error is not None:
            logger.error(f"Rollback incomplete, profiles may be inconsistent: {error}")

    def apply_records(self, records: list[MatchStatRecord], season_id: str) -> list[str]:
        """
        Fold every record into its player's profile.

        If any player fails, the players already applied are reversed
        before the error is re-raised.
        """
        changed, warnings, error = self._for_each_player(
            records, lambda record: self._apply_one(record, season_id)
        )
        if error is not None:
            self._undo(changed, lambda record: self._reverse_one(record, season_id))
            raise error
        return warnings

    def reverse_records(self, records: list[MatchStatRecord], season_id: str) -> list[str]:
        """
        Take every record back out of its player's profile.

        If any player fails, the players already reversed get the record
        applied again before the error is re-raised.
        """
        changed, warnings, error = self._for_each_player(
            records, lambda record: self._reverse_one(record, season_id)
        )
        if error is not None:
            self._undo(changed, lambda record: self._apply_one(record, season_id))
            raise error
        return warnings

    def _check_reversible(self, records: list[MatchStatRecord], season_id: str) -> None:
        """Dry-run every reverse so a mismatch fails before anything is written."""
        for record in records:
            profile = self.store.get_player_profile(record.puuid)
            if profile is not None:
                self.ledger.reverse_from_profile(profile, record, season_id)

    # =========================================================================
    # Match operations
    # =========================================================================

    def preview_match(self, raw_telemetry: dict[str, Any], team1_attacking: bool) -> MatchSummary:
        """Summarize a match without touching storage."""
        telemetry = parse_telemetry(raw_telemetry)
        return MatchStatSummarizer(
            telemetry, team1_attacking, self.config.stats.regulation_rounds
        ).summarize()

    @timed
    def add_match(
        self, raw_telemetry: dict[str, Any] | None, season_id: str | None, team1_attacking: bool | None
    ) -> OperationResult:
        """
        Store a match and apply it to every player's profile.

        Raises:
            ValidationError / DataIntegrityError: telemetry is unusable
            StoreConflictError: a profile could not be written; no match is
                stored and no profile keeps the match
        """
        if not raw_telemetry or not season_id or team1_attacking is None:
            message = "Invalid parameters provided for add_match"
            logger.warning(message)
            return OperationResult(success=False, message=message)

        telemetry = parse_telemetry(raw_telemetry)
        match_id = telemetry.match_id
        logger.info(f"Processing match {match_id} for season {season_id}")

        with self._match_locks.hold(match_id):
            if self.store.match_exists(match_id):
                message = f"Match {match_id} already exists in the database"
                logger.warning(message)
                return OperationResult(success=False, message=message, match_id=match_id)

            summarizer = MatchStatSummarizer(
                telemetry, team1_attacking, self.config.stats.regulation_rounds
            )
            summary = summarizer.summarize()
            overview = summarizer.overview()

            if not self.store.save_match_record(season_id, summary, overview.to_dict()):
                message = f"Match {match_id} already exists in the database"
                return OperationResult(success=False, message=message, match_id=match_id)
            self.store.update_season_with_match(season_id, match_id, "add")

            logger.info(f"Applying {len(summary.records)} player records for {match_id}")
            try:
                warnings = self.apply_records(summary.records, season_id)
            except Exception:
                logger.error(f"Add of match {match_id} failed, discarding stored match")
                self.store.delete_match_record(match_id)
                self.store.update_season_with_match(season_id, match_id, "remove")
                raise

        logger.info(f"Match {match_id} successfully added")
        return OperationResult(
            success=True, message="Match successfully added", match_id=match_id, warnings=warnings
        )

    @timed
    def remove_match(self, match_id: str) -> OperationResult:
        """
        Reverse a stored match out of every profile and delete it.

        The season the match was stored under is used for the reverse. If a
        profile write fails, every player already reversed gets the match
        applied again and the match stays stored, so the remove can be retried.
        """
        if not match_id:
            return OperationResult(success=False, message="Invalid parameters provided for remove_match")

        with self._match_locks.hold(match_id):
            stored = self.store.get_match_record(match_id)
            if stored is None:
                message = f"Match {match_id} does not exist in the database"
                logger.warning(message)
                return OperationResult(success=False, message=message, match_id=match_id)

            season_id = stored.season_id
            logger.info(f"Removing match {match_id} from season {season_id}")
            try:
                self._check_reversible(stored.records, season_id)
            except ConsistencyError as e:
                logger.error(f"Refusing to remove match {match_id}: {e}")
                return OperationResult(success=False, message=str(e), match_id=match_id)

            warnings = self.reverse_records(stored.records, season_id)
            self.store.delete_match_record(match_id)
            self.store.update_season_with_match(season_id, match_id, "remove")

        logger.info(f"Match {match_id} successfully removed")
        return OperationResult(
            success=True, message="Match successfully removed", match_id=match_id, warnings=warnings
        )
