"""
Achievement unlock repository - Data access layer for UserAchievementUnlock.
"""
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError

from challenge_engine.models import UserAchievementUnlock


class UnlockRepository:
    """Repository for UserAchievementUnlock data access"""

    @staticmethod
    def get_for_user(db: Session, user_id: str) -> List[UserAchievementUnlock]:
        """Get every unlock a user holds"""
        return db.query(UserAchievementUnlock).filter(
            UserAchievementUnlock.user_id == user_id
        ).all()

    @staticmethod
    def get_pair(db: Session, user_id: str, achievement_id: int) -> Optional[UserAchievementUnlock]:
        """Get the unlock row for one (user, achievement) pair"""
        return db.query(UserAchievementUnlock).filter(
            and_(
                UserAchievementUnlock.user_id == user_id,
                UserAchievementUnlock.achievement_id == achievement_id
            )
        ).first()

    @staticmethod
    def get_by_id(db: Session, user_achievement_id: int) -> Optional[UserAchievementUnlock]:
        """Get an unlock by its own ID (share links)"""
        return db.query(UserAchievementUnlock).filter(
            UserAchievementUnlock.id == user_achievement_id
        ).first()

    @staticmethod
    def create_if_absent(db: Session, unlock: UserAchievementUnlock) -> Tuple[UserAchievementUnlock, bool]:
        """
        Insert an unlock unless the pair already exists.

        Commits on its own so a duplicate only rolls back this insert.

        Returns:
            Tuple of (unlock row, created)
        """
        existing = UnlockRepository.get_pair(db, unlock.user_id, unlock.achievement_id)
        if existing:
            return existing, False

        db.add(unlock)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return UnlockRepository.get_pair(db, unlock.user_id, unlock.achievement_id), False

        db.refresh(unlock)
        return unlock, True
