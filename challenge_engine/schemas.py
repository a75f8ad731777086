from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List, Dict, Any

from challenge_engine.constants import (
    ChallengeCategory, ChallengeDifficulty, OccurrenceStatus, ResolutionStatus,
    RequirementType, AchievementTier, MIN_TIME_SPENT_SECONDS, MAX_TIME_SPENT_SECONDS,
)


class ChallengeResponse(BaseModel):
    id: int
    title: str
    description: str
    category: ChallengeCategory
    subcategory: Optional[str] = None
    difficulty: ChallengeDifficulty
    points: int
    instructions: str

    class Config:
        from_attributes = True


# Occurrence schemas
class OccurrenceCreate(BaseModel):
    challenge_id: int
    scheduled_time: datetime


class OccurrenceResponse(BaseModel):
    id: int
    user_id: str
    challenge_id: int
    scheduled_time: datetime
    status: OccurrenceStatus
    snoozed_until: Optional[datetime] = None
    postponed_count: int = 0
    created_at: Optional[datetime] = None
    challenge: Optional[ChallengeResponse] = None

    class Config:
        from_attributes = True


class CancelResponse(BaseModel):
    success: bool


class CompletionRequest(BaseModel):
    time_spent: int = Field(..., ge=MIN_TIME_SPENT_SECONDS, le=MAX_TIME_SPENT_SECONDS)  # seconds
    status: ResolutionStatus


# History / progress schemas
class HistoryEntryResponse(BaseModel):
    id: int
    user_id: str
    challenge_id: int
    occurrence_id: Optional[int] = None
    completed_at: datetime
    time_spent: int
    points_earned: int
    status: ResolutionStatus
    scheduled_time: Optional[datetime] = None
    postponed_count: int = 0
    challenge: Optional[ChallengeResponse] = None

    class Config:
        from_attributes = True


class UserProgressResponse(BaseModel):
    user_id: str
    total_completed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_points: int = 0
    last_completed_date: Optional[date] = None

    class Config:
        from_attributes = True


# Achievement schemas
class AchievementResponse(BaseModel):
    id: int
    name: str
    description: str
    icon: Optional[str] = None
    tier: AchievementTier
    requirement_type: RequirementType
    requirement_value: int
    requirement_meta: Optional[Dict[str, Any]] = None
    sort_order: int = 0

    class Config:
        from_attributes = True


class AchievementProgressResponse(BaseModel):
    achievement: AchievementResponse
    unlocked: bool
    progress: int
    progress_percent: int = Field(..., ge=0, le=100)
    unlocked_at: Optional[datetime] = None
    user_achievement_id: Optional[int] = None

    class Config:
        from_attributes = True


class AchievementShareResponse(BaseModel):
    id: int
    user_id: str
    unlocked_at: datetime
    achievement: AchievementResponse

    class Config:
        from_attributes = True


class CompletionResponse(BaseModel):
    history_entry: HistoryEntryResponse
    points_earned: int
    progress: UserProgressResponse
    newly_unlocked: List[AchievementResponse] = []

    class Config:
        from_attributes = True
