"""
Challenge repository - Data access layer for the read-only catalogs.
Handles challenge definitions and achievement definitions.
"""
import random
from typing import List, Optional
from sqlalchemy.orm import Session

from challenge_engine.models import Challenge, Achievement
from challenge_engine.constants import ChallengeCategory


class ChallengeRepository:
    """Repository for Challenge data access"""

    @staticmethod
    def get_by_id(db: Session, challenge_id: int) -> Optional[Challenge]:
        """Get challenge by ID"""
        return db.query(Challenge).filter(Challenge.id == challenge_id).first()

    @staticmethod
    def get_by_category(db: Session, category: ChallengeCategory) -> List[Challenge]:
        """Get all challenges in a category"""
        return db.query(Challenge).filter(
            Challenge.category == category
        ).order_by(Challenge.id).all()

    @staticmethod
    def count(db: Session) -> int:
        """Number of catalog rows"""
        return db.query(Challenge).count()

    @staticmethod
    def get_random(db: Session, rng: Optional[random.Random] = None) -> Optional[Challenge]:
        """Draw one challenge uniformly from the catalog"""
        total = ChallengeRepository.count(db)
        if total == 0:
            return None
        offset = (rng or random).randrange(total)
        return db.query(Challenge).order_by(Challenge.id).offset(offset).limit(1).first()

    @staticmethod
    def create_many(db: Session, challenges: List[Challenge]) -> None:
        """Insert catalog rows (seeding only)"""
        db.add_all(challenges)
        db.flush()


class AchievementRepository:
    """Repository for Achievement definitions"""

    @staticmethod
    def get_all(db: Session) -> List[Achievement]:
        """Get all achievement definitions in display order"""
        return db.query(Achievement).order_by(Achievement.sort_order, Achievement.id).all()

    @staticmethod
    def count(db: Session) -> int:
        """Number of achievement definitions"""
        return db.query(Achievement).count()

    @staticmethod
    def create_many(db: Session, achievements: List[Achievement]) -> None:
        """Insert achievement definitions (seeding only)"""
        db.add_all(achievements)
        db.flush()
