"""
Progress ledger service.
Records completions and keeps the per-user points and streak counters.
"""
import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from challenge_engine.models import (
    UserProgress, ChallengeHistoryEntry, ScheduledOccurrence, Challenge,
)
from challenge_engine.constants import (
    ResolutionStatus, MIN_TIME_SPENT_SECONDS, MAX_TIME_SPENT_SECONDS,
)
from challenge_engine.repositories.challenge_repository import ChallengeRepository
from challenge_engine.repositories.progress_repository import (
    UserProgressRepository, HistoryRepository,
)
from challenge_engine.services.date_service import DateService
from challenge_engine.exceptions import (
    ChallengeNotFoundException, InvalidArgumentException, ConcurrentUpdateException,
)

logger = logging.getLogger("challenge_engine.progress")

_registry_lock = threading.Lock()
# Entries disappear once no thread holds or waits on the user's lock
_user_locks = weakref.WeakValueDictionary()


@contextmanager
def user_lock(user_id: str):
    """Serialize ledger writes for one user within this process"""
    with _registry_lock:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = threading.RLock()
            _user_locks[user_id] = lock
    with lock:
        yield


@dataclass
class CompletionRecord:
    history_entry: ChallengeHistoryEntry
    points_earned: int
    progress: UserProgress


def parse_resolution(status: Union[str, ResolutionStatus]) -> ResolutionStatus:
    """Coerce a resolution token, raising InvalidArgumentException on anything else"""
    try:
        return ResolutionStatus(status)
    except ValueError:
        raise InvalidArgumentException("status", f"expected 'success' or 'failed', got '{status}'")


def validate_time_spent(time_spent: int) -> int:
    """Reject time spent outside the two-minute window"""
    if isinstance(time_spent, bool) or not isinstance(time_spent, int):
        raise InvalidArgumentException("time_spent", "must be a whole number of seconds")
    if not MIN_TIME_SPENT_SECONDS <= time_spent <= MAX_TIME_SPENT_SECONDS:
        raise InvalidArgumentException(
            "time_spent",
            f"must be between {MIN_TIME_SPENT_SECONDS} and {MAX_TIME_SPENT_SECONDS} seconds"
        )
    return time_spent


def apply_streak(progress: UserProgress, today: date) -> None:
    """
    Advance the day-streak for a completion made on `today`.

    - first completion ever: streak starts at 1
    - already completed today: unchanged
    - completed yesterday: +1
    - gap of two days or more: back to 1, longest kept
    """
    last = progress.last_completed_date
    current = progress.current_streak or 0
    longest = progress.longest_streak or 0

    if last is None:
        current = 1
    elif last == today:
        pass
    elif DateService.days_between(last, today) == 1:
        current += 1
    else:
        current = 1

    progress.current_streak = current
    progress.longest_streak = max(longest, current)
    progress.last_completed_date = today


class ProgressService:
    """Service for the per-user progress ledger"""

    def __init__(self, db: Session, date_service: Optional[DateService] = None):
        self.db = db
        self.date_service = date_service or DateService()
        self.challenge_repo = ChallengeRepository()
        self.progress_repo = UserProgressRepository()
        self.history_repo = HistoryRepository()

    def get_progress(self, user_id: str) -> UserProgress:
        """Get the ledger snapshot (created with zero defaults on first read)"""
        progress = self.progress_repo.get_or_create(self.db, user_id)
        self.db.commit()
        return progress

    def get_history(
        self,
        user_id: str,
        limit: int,
        on_date: Optional[date] = None
    ) -> List[ChallengeHistoryEntry]:
        """Get recent history, or every entry of one calendar day"""
        if on_date is None:
            return self.history_repo.get_recent(self.db, user_id, limit)
        day_start, day_end = self.date_service.get_day_range(on_date)
        return self.history_repo.get_in_range(self.db, user_id, day_start, day_end)

    def record_completion(
        self,
        user_id: str,
        challenge_id: int,
        time_spent: int,
        status: Union[str, ResolutionStatus],
        occurrence: Optional[ScheduledOccurrence] = None,
        commit: bool = True
    ) -> CompletionRecord:
        """
        Record one finished challenge attempt.

        Writes an immutable history entry and updates totals and streaks in a
        single per-user serialized unit of work. Validation happens before any
        write, so a rejected call leaves history and ledger untouched.

        Args:
            user_id: Owning user
            challenge_id: Completed catalog challenge
            time_spent: Seconds spent, 0-120
            status: "success" or "failed"
            occurrence: Queue occurrence being resolved, if any
            commit: False when the caller owns the surrounding unit of work

        Returns:
            CompletionRecord with the history entry, points earned and ledger
        """
        challenge = self.challenge_repo.get_by_id(self.db, challenge_id)
        if not challenge:
            raise ChallengeNotFoundException(challenge_id)
        time_spent = validate_time_spent(time_spent)
        resolution = parse_resolution(status)

        with user_lock(user_id):
            record = self._write_completion(user_id, challenge, time_spent, resolution, occurrence)
            if commit:
                self.commit_ledger(user_id)

        logger.info(
            f"User {user_id} {resolution.value} challenge {challenge_id}: "
            f"+{record.points_earned} pts, streak {record.progress.current_streak}"
        )
        return record

    def commit_ledger(self, user_id: str) -> None:
        """Commit the current unit of work, translating a lost version race"""
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"Concurrent ledger update detected for user {user_id}")
            raise ConcurrentUpdateException(user_id)

    def _write_completion(
        self,
        user_id: str,
        challenge: Challenge,
        time_spent: int,
        resolution: ResolutionStatus,
        occurrence: Optional[ScheduledOccurrence]
    ) -> CompletionRecord:
        progress = self.progress_repo.get_or_create(self.db, user_id, for_update=True)

        points = challenge.points if resolution == ResolutionStatus.SUCCESS else 0
        entry = ChallengeHistoryEntry(
            user_id=user_id,
            challenge_id=challenge.id,
            occurrence_id=occurrence.id if occurrence else None,
            completed_at=self.date_service.now(),
            time_spent=time_spent,
            points_earned=points,
            status=resolution,
            scheduled_time=occurrence.scheduled_time if occurrence else None,
            postponed_count=(occurrence.postponed_count or 0) if occurrence else 0,
        )
        self.history_repo.create(self.db, entry)

        progress.total_completed = (progress.total_completed or 0) + 1
        progress.total_points = (progress.total_points or 0) + points
        # Failed attempts still count towards the streak
        apply_streak(progress, self.date_service.today())
        self.db.flush()

        return CompletionRecord(history_entry=entry, points_earned=points, progress=progress)
