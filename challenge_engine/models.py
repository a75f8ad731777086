from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Date, JSON, ForeignKey,
    UniqueConstraint, Index, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from challenge_engine.database import Base
from challenge_engine.constants import (
    ChallengeCategory, ChallengeDifficulty, OccurrenceStatus,
    ResolutionStatus, RequirementType, AchievementTier,
)


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _token_enum(enum_cls):
    """Persist a str enum as its short value token rather than its member name"""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Challenge(Base):
    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(_token_enum(ChallengeCategory), nullable=False, index=True)
    subcategory = Column(String, nullable=True)
    difficulty = Column(_token_enum(ChallengeDifficulty), nullable=False)
    points = Column(Integer, nullable=False, default=10)  # Stored value wins, never derived from difficulty
    instructions = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow)


class ScheduledOccurrence(Base):
    __tablename__ = "scheduled_occurrences"
    __table_args__ = (
        Index("ix_scheduled_occurrences_user_status", "user_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False)
    scheduled_time = Column(DateTime, nullable=False)
    status = Column(_token_enum(OccurrenceStatus), nullable=False, default=OccurrenceStatus.PENDING)
    snoozed_until = Column(DateTime, nullable=True)  # Set only while snoozed
    postponed_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    challenge = relationship("Challenge", lazy="joined")


class ChallengeHistoryEntry(Base):
    __tablename__ = "challenge_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False)
    occurrence_id = Column(Integer, ForeignKey("scheduled_occurrences.id", ondelete="SET NULL"), nullable=True)
    completed_at = Column(DateTime, nullable=False, default=utcnow)
    time_spent = Column(Integer, nullable=False)  # seconds, 0-120
    points_earned = Column(Integer, nullable=False, default=0)
    status = Column(_token_enum(ResolutionStatus), nullable=False)

    # Copied from the occurrence when completed through the queue
    scheduled_time = Column(DateTime, nullable=True)
    postponed_count = Column(Integer, nullable=False, default=0)

    challenge = relationship("Challenge", lazy="joined")


class UserProgress(Base):
    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, unique=True, index=True)
    total_completed = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    last_completed_date = Column(Date, nullable=True)  # Calendar date in the canonical zone

    # Optimistic concurrency counter, bumped on every ledger write
    version = Column(Integer, nullable=False, default=0)

    __mapper_args__ = {"version_id_col": version}


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    icon = Column(String, nullable=True)
    tier = Column(_token_enum(AchievementTier), nullable=False, default=AchievementTier.BRONZE)
    requirement_type = Column(_token_enum(RequirementType), nullable=False)
    requirement_value = Column(Integer, nullable=False)
    requirement_meta = Column(JSON, nullable=True)  # e.g. {"category": "physical"}
    sort_order = Column(Integer, nullable=False, default=0)


class UserAchievementUnlock(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    achievement_id = Column(Integer, ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False)
    unlocked_at = Column(DateTime, nullable=False, default=utcnow)

    achievement = relationship("Achievement", lazy="joined")
