"""
Completion pipeline.
Resolves a queued occurrence: history, ledger and queue status commit together,
achievements are evaluated afterwards.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union
from sqlalchemy.orm import Session

from challenge_engine.models import Achievement, ChallengeHistoryEntry, UserProgress
from challenge_engine.constants import ResolutionStatus, TERMINAL_STATUSES
from challenge_engine.repositories.occurrence_repository import OccurrenceRepository
from challenge_engine.services.date_service import DateService
from challenge_engine.services.scheduling_service import SchedulingService
from challenge_engine.services.progress_service import (
    ProgressService, user_lock, validate_time_spent, parse_resolution,
)
from challenge_engine.services.achievement_service import AchievementService
from challenge_engine.exceptions import (
    OccurrenceNotFoundException, IllegalTransitionException,
)

logger = logging.getLogger("challenge_engine.completion")


@dataclass
class CompletionResult:
    history_entry: ChallengeHistoryEntry
    points_earned: int
    progress: UserProgress
    newly_unlocked: List[Achievement] = field(default_factory=list)


class CompletionService:
    """Service that turns a resolved occurrence into history, points and unlocks"""

    def __init__(self, db: Session, date_service: Optional[DateService] = None):
        self.db = db
        self.date_service = date_service or DateService()
        self.occurrence_repo = OccurrenceRepository()
        self.scheduling_service = SchedulingService(db, self.date_service)
        self.progress_service = ProgressService(db, self.date_service)
        self.achievement_service = AchievementService(db, self.date_service)

    def complete_occurrence(
        self,
        occurrence_id: int,
        user_id: str,
        time_spent: int,
        status: Union[str, ResolutionStatus]
    ) -> CompletionResult:
        """
        Complete a scheduled occurrence.

        Args:
            occurrence_id: Occurrence being resolved
            user_id: Owning user
            time_spent: Seconds spent, 0-120
            status: "success" or "failed"

        Returns:
            CompletionResult with history entry, points earned, ledger and new unlocks

        Raises:
            OccurrenceNotFoundException: Missing or owned by someone else
            ChallengeNotFoundException: The occurrence points at a missing challenge
            InvalidArgumentException: time_spent or status out of range
            IllegalTransitionException: Occurrence already completed or cancelled
        """
        validate_time_spent(time_spent)
        resolution = parse_resolution(status)

        with user_lock(user_id):
            occurrence = self.occurrence_repo.get_owned(self.db, occurrence_id, user_id)
            if not occurrence:
                raise OccurrenceNotFoundException(occurrence_id)
            if occurrence.status in TERMINAL_STATUSES:
                raise IllegalTransitionException(occurrence.status.value, "complete")

            try:
                record = self.progress_service.record_completion(
                    user_id,
                    occurrence.challenge_id,
                    time_spent,
                    resolution,
                    occurrence=occurrence,
                    commit=False,
                )
                self.scheduling_service.mark_completed(occurrence_id, user_id, commit=False)
            except Exception:
                self.db.rollback()
                raise
            self.progress_service.commit_ledger(user_id)

        newly_unlocked = self._unlock_achievements(user_id)

        return CompletionResult(
            history_entry=record.history_entry,
            points_earned=record.points_earned,
            progress=record.progress,
            newly_unlocked=newly_unlocked,
        )

    def _unlock_achievements(self, user_id: str) -> List[Achievement]:
        """Run the achievement check; its failures never undo a recorded completion"""
        try:
            return self.achievement_service.check_and_unlock(user_id)
        except Exception:
            logger.exception(f"Achievement check failed for user {user_id}")
            self.db.rollback()
            return []
