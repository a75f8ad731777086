"""
Scheduling queue service.
Handles selection of the next eligible occurrence and the postpone, cancel,
complete and notify transitions.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from sqlalchemy.orm import Session

from challenge_engine.models import ScheduledOccurrence
from challenge_engine.constants import (
    OccurrenceStatus, OccurrenceAction, OCCURRENCE_TRANSITIONS,
    POSTPONE_DELAY, NOTIFICATION_LEAD,
)
from challenge_engine.repositories.occurrence_repository import OccurrenceRepository
from challenge_engine.repositories.challenge_repository import ChallengeRepository
from challenge_engine.services.date_service import DateService
from challenge_engine.exceptions import (
    OccurrenceNotFoundException, ChallengeNotFoundException, IllegalTransitionException,
)

logger = logging.getLogger("challenge_engine.scheduling")


def next_status(current: OccurrenceStatus, action: OccurrenceAction) -> OccurrenceStatus:
    """
    Look up the status an action leads to.

    Raises:
        IllegalTransitionException: If the transition table has no entry
    """
    target = OCCURRENCE_TRANSITIONS.get((current, action))
    if target is None:
        raise IllegalTransitionException(current.value, action.value)
    return target


class SchedulingService:
    """Per-user queue of scheduled challenge occurrences"""

    def __init__(self, db: Session, date_service: Optional[DateService] = None):
        self.db = db
        self.occurrence_repo = OccurrenceRepository()
        self.challenge_repo = ChallengeRepository()
        self.date_service = date_service or DateService()

    def _get_owned(self, occurrence_id: int, user_id: str) -> ScheduledOccurrence:
        occurrence = self.occurrence_repo.get_owned(self.db, occurrence_id, user_id)
        if not occurrence:
            raise OccurrenceNotFoundException(occurrence_id)
        return occurrence

    def list_eligible(self, user_id: str, now: Optional[datetime] = None) -> List[ScheduledOccurrence]:
        """Get all occurrences that may be presented right now, earliest first"""
        return self.occurrence_repo.get_eligible(
            self.db, user_id, now or self.date_service.now()
        )

    def next(self, user_id: str, now: Optional[datetime] = None) -> Optional[ScheduledOccurrence]:
        """Get the head of the eligible queue, or None"""
        eligible = self.list_eligible(user_id, now)
        return eligible[0] if eligible else None

    def create(
        self,
        user_id: str,
        challenge_id: int,
        scheduled_time: datetime
    ) -> ScheduledOccurrence:
        """
        Enqueue a new pending occurrence (used by the external generator).

        Args:
            user_id: Owning user
            challenge_id: Catalog challenge to prompt
            scheduled_time: Naive UTC due time

        Returns:
            Created occurrence
        """
        if not self.challenge_repo.get_by_id(self.db, challenge_id):
            raise ChallengeNotFoundException(challenge_id)

        if scheduled_time.tzinfo is not None:
            scheduled_time = scheduled_time.astimezone(timezone.utc).replace(tzinfo=None)

        occurrence = ScheduledOccurrence(
            user_id=user_id,
            challenge_id=challenge_id,
            scheduled_time=scheduled_time,
            status=OccurrenceStatus.PENDING,
            snoozed_until=None,
            postponed_count=0,
        )
        self.occurrence_repo.create(self.db, occurrence)
        self.db.commit()
        self.db.refresh(occurrence)
        logger.info(f"Scheduled occurrence {occurrence.id} for user {user_id} at {scheduled_time}")
        return occurrence

    def postpone(self, occurrence_id: int, user_id: str) -> ScheduledOccurrence:
        """
        Snooze an occurrence for two minutes.

        The scheduled time is re-stamped to the snooze expiry so the occurrence
        moves behind everything already due.
        """
        occurrence = self._get_owned(occurrence_id, user_id)
        occurrence.status = next_status(occurrence.status, OccurrenceAction.POSTPONE)

        wake_at = self.date_service.now() + POSTPONE_DELAY
        occurrence.snoozed_until = wake_at
        occurrence.scheduled_time = wake_at
        occurrence.postponed_count = (occurrence.postponed_count or 0) + 1

        self.db.commit()
        self.db.refresh(occurrence)
        logger.info(f"Postponed occurrence {occurrence_id} until {wake_at}")
        return occurrence

    def cancel(self, occurrence_id: int, user_id: str) -> bool:
        """Permanently cancel an occurrence"""
        occurrence = self._get_owned(occurrence_id, user_id)
        occurrence.status = next_status(occurrence.status, OccurrenceAction.CANCEL)
        self.db.commit()
        logger.info(f"Cancelled occurrence {occurrence_id}")
        return True

    def mark_completed(
        self,
        occurrence_id: int,
        user_id: str,
        commit: bool = True
    ) -> ScheduledOccurrence:
        """
        Mark an occurrence completed. Repeating it on a completed occurrence is a no-op.

        Args:
            commit: False when the caller owns the surrounding unit of work
        """
        occurrence = self._get_owned(occurrence_id, user_id)
        if occurrence.status == OccurrenceStatus.COMPLETED:
            return occurrence

        occurrence.status = next_status(occurrence.status, OccurrenceAction.COMPLETE)
        occurrence.snoozed_until = None
        if commit:
            self.db.commit()
        else:
            self.db.flush()
        return occurrence

    def mark_notified(
        self,
        now: Optional[datetime] = None,
        lead: timedelta = NOTIFICATION_LEAD
    ) -> List[ScheduledOccurrence]:
        """
        Flag pending occurrences that are due within the notification lead time.

        Returns:
            Occurrences that moved to notified
        """
        horizon = (now or self.date_service.now()) + lead
        due = self.occurrence_repo.get_pending_due_before(self.db, horizon)
        for occurrence in due:
            occurrence.status = next_status(occurrence.status, OccurrenceAction.NOTIFY)
        self.db.commit()
        return due
