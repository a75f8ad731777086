"""
Achievement engine.
Evaluates progress towards every achievement definition and records unlocks.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from challenge_engine.models import Achievement, UserAchievementUnlock, UserProgress
from challenge_engine.constants import RequirementType, CORE_CATEGORIES
from challenge_engine.repositories.challenge_repository import AchievementRepository
from challenge_engine.repositories.achievement_repository import UnlockRepository
from challenge_engine.repositories.progress_repository import (
    UserProgressRepository, HistoryRepository,
)
from challenge_engine.services.date_service import DateService
from challenge_engine.exceptions import AchievementNotFoundException

logger = logging.getLogger("challenge_engine.achievements")


@dataclass
class AchievementProgress:
    achievement: Achievement
    unlocked: bool
    progress: int
    progress_percent: int
    unlocked_at: Optional[datetime] = None
    user_achievement_id: Optional[int] = None


def calculate_progress(
    achievement: Achievement,
    progress: UserProgress,
    category_counts: Dict[str, int]
) -> int:
    """Raw progress value of one achievement for a user"""
    requirement = achievement.requirement_type

    if requirement == RequirementType.CHALLENGES_COMPLETED:
        return progress.total_completed or 0
    if requirement == RequirementType.STREAK_DAYS:
        return progress.current_streak or 0
    if requirement == RequirementType.TOTAL_POINTS:
        return progress.total_points or 0
    if requirement == RequirementType.CATEGORY_CHALLENGES:
        category = (achievement.requirement_meta or {}).get("category")
        return category_counts.get(category, 0) if category else 0
    if requirement == RequirementType.ALL_CATEGORIES:
        # Gate rendered as a number: full value once every core category qualifies
        all_met = all(
            category_counts.get(category.value, 0) >= achievement.requirement_value
            for category in CORE_CATEGORIES
        )
        return achievement.requirement_value if all_met else 0

    raise ValueError(f"Unhandled requirement type: {requirement}")


def progress_percent(progress: int, requirement_value: int) -> int:
    """Progress as a 0-100 integer percentage, floored"""
    if requirement_value <= 0:
        return 100 if progress >= requirement_value else 0
    return max(0, min(100, math.floor(progress / requirement_value * 100)))


class AchievementService:
    """Service for achievement evaluation and unlocking"""

    def __init__(self, db: Session, date_service: Optional[DateService] = None):
        self.db = db
        self.date_service = date_service or DateService()
        self.achievement_repo = AchievementRepository()
        self.unlock_repo = UnlockRepository()
        self.progress_repo = UserProgressRepository()
        self.history_repo = HistoryRepository()

    def evaluate(self, user_id: str) -> List[AchievementProgress]:
        """
        Compute progress for every achievement definition.

        Args:
            user_id: User to evaluate

        Returns:
            One AchievementProgress per definition, in display order
        """
        progress = self.progress_repo.get_or_create(self.db, user_id)
        category_counts = self.history_repo.get_category_counts(self.db, user_id)
        unlocks = {
            unlock.achievement_id: unlock
            for unlock in self.unlock_repo.get_for_user(self.db, user_id)
        }

        results = []
        for achievement in self.achievement_repo.get_all(self.db):
            value = calculate_progress(achievement, progress, category_counts)
            unlock = unlocks.get(achievement.id)
            results.append(AchievementProgress(
                achievement=achievement,
                unlocked=unlock is not None,
                progress=value,
                progress_percent=progress_percent(value, achievement.requirement_value),
                unlocked_at=unlock.unlocked_at if unlock else None,
                user_achievement_id=unlock.id if unlock else None,
            ))
        return results

    def check_and_unlock(self, user_id: str) -> List[Achievement]:
        """
        Unlock every satisfied achievement the user does not hold yet.

        Safe to repeat: an already unlocked pair is skipped silently.

        Returns:
            Achievements unlocked by this call only
        """
        newly_unlocked = []
        for item in self.evaluate(user_id):
            if item.unlocked or item.progress < item.achievement.requirement_value:
                continue

            _, created = self.unlock_repo.create_if_absent(
                self.db,
                UserAchievementUnlock(
                    user_id=user_id,
                    achievement_id=item.achievement.id,
                    unlocked_at=self.date_service.now(),
                )
            )
            if created:
                logger.info(f"User {user_id} unlocked achievement '{item.achievement.name}'")
                newly_unlocked.append(item.achievement)

        return newly_unlocked

    def get_share(self, user_achievement_id: int) -> UserAchievementUnlock:
        """Read-only lookup of one unlock for share links"""
        unlock = self.unlock_repo.get_by_id(self.db, user_achievement_id)
        if not unlock:
            raise AchievementNotFoundException(user_achievement_id)
        return unlock
