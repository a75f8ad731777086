"""
Progress repository - Data access layer for the ledger and completion history.
"""
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError

from challenge_engine.models import UserProgress, ChallengeHistoryEntry, Challenge


class UserProgressRepository:
    """Repository for UserProgress data access"""

    @staticmethod
    def get_by_user(db: Session, user_id: str, for_update: bool = False) -> Optional[UserProgress]:
        """Get the ledger row for a user, optionally row-locked"""
        query = db.query(UserProgress).filter(UserProgress.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_or_create(db: Session, user_id: str, for_update: bool = False) -> UserProgress:
        """
        Get the ledger row for a user (creates with zero defaults if not exists).

        A concurrent creator winning the unique constraint is resolved by
        re-reading its row.
        """
        progress = UserProgressRepository.get_by_user(db, user_id, for_update)
        if progress:
            return progress

        progress = UserProgress(
            user_id=user_id,
            total_completed=0,
            current_streak=0,
            longest_streak=0,
            total_points=0,
            last_completed_date=None,
        )
        db.add(progress)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            progress = UserProgressRepository.get_by_user(db, user_id, for_update)
        return progress


class HistoryRepository:
    """Repository for ChallengeHistoryEntry data access"""

    @staticmethod
    def create(db: Session, entry: ChallengeHistoryEntry) -> ChallengeHistoryEntry:
        """Add a history entry to the session"""
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def get_recent(db: Session, user_id: str, limit: int) -> List[ChallengeHistoryEntry]:
        """Get the newest history entries for a user"""
        return db.query(ChallengeHistoryEntry).filter(
            ChallengeHistoryEntry.user_id == user_id
        ).order_by(
            ChallengeHistoryEntry.completed_at.desc(),
            ChallengeHistoryEntry.id.desc()
        ).limit(limit).all()

    @staticmethod
    def get_in_range(
        db: Session,
        user_id: str,
        start_time: datetime,
        end_time: datetime
    ) -> List[ChallengeHistoryEntry]:
        """Get history entries completed in [start_time, end_time)"""
        return db.query(ChallengeHistoryEntry).filter(
            and_(
                ChallengeHistoryEntry.user_id == user_id,
                ChallengeHistoryEntry.completed_at >= start_time,
                ChallengeHistoryEntry.completed_at < end_time
            )
        ).order_by(ChallengeHistoryEntry.completed_at.asc()).all()

    @staticmethod
    def get_category_counts(db: Session, user_id: str) -> Dict[str, int]:
        """Count completions per challenge category (failed attempts included)"""
        rows = db.query(
            Challenge.category, func.count(ChallengeHistoryEntry.id)
        ).join(
            Challenge, Challenge.id == ChallengeHistoryEntry.challenge_id
        ).filter(
            ChallengeHistoryEntry.user_id == user_id
        ).group_by(Challenge.category).all()

        return {
            (category.value if hasattr(category, "value") else category): count
            for category, count in rows
        }
