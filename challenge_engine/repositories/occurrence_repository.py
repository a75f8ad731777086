"""
Occurrence repository - Data access layer for ScheduledOccurrence.
Every per-user lookup filters on the owning user id.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_

from challenge_engine.models import ScheduledOccurrence
from challenge_engine.constants import OccurrenceStatus


class OccurrenceRepository:
    """Repository for ScheduledOccurrence data access"""

    @staticmethod
    def get_owned(db: Session, occurrence_id: int, user_id: str) -> Optional[ScheduledOccurrence]:
        """Get occurrence by ID if it belongs to the user"""
        return db.query(ScheduledOccurrence).filter(
            and_(
                ScheduledOccurrence.id == occurrence_id,
                ScheduledOccurrence.user_id == user_id
            )
        ).first()

    @staticmethod
    def get_eligible(db: Session, user_id: str, now: datetime) -> List[ScheduledOccurrence]:
        """
        Get occurrences the user can be shown right now.

        Pending and notified are always eligible, snoozed only once the snooze
        has elapsed. Earliest scheduled first, insertion order on ties.
        """
        return db.query(ScheduledOccurrence).filter(
            and_(
                ScheduledOccurrence.user_id == user_id,
                or_(
                    ScheduledOccurrence.status.in_(
                        [OccurrenceStatus.PENDING, OccurrenceStatus.NOTIFIED]
                    ),
                    and_(
                        ScheduledOccurrence.status == OccurrenceStatus.SNOOZED,
                        ScheduledOccurrence.snoozed_until <= now
                    )
                )
            )
        ).order_by(
            ScheduledOccurrence.scheduled_time.asc(),
            ScheduledOccurrence.id.asc()
        ).all()

    @staticmethod
    def get_pending_due_before(db: Session, until: datetime) -> List[ScheduledOccurrence]:
        """Get pending occurrences (all users) scheduled at or before a moment"""
        return db.query(ScheduledOccurrence).filter(
            and_(
                ScheduledOccurrence.status == OccurrenceStatus.PENDING,
                ScheduledOccurrence.scheduled_time <= until
            )
        ).order_by(ScheduledOccurrence.scheduled_time.asc()).all()

    @staticmethod
    def create(db: Session, occurrence: ScheduledOccurrence) -> ScheduledOccurrence:
        """Add a new occurrence to the session"""
        db.add(occurrence)
        db.flush()
        return occurrence
