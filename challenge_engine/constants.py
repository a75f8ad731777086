"""
Application-wide constants and closed value sets.
"""
import enum
from datetime import timedelta


class ChallengeCategory(str, enum.Enum):
    PHYSICAL = "physical"
    MENTAL = "mental"
    LEARNING = "learning"
    FINANCE = "finance"
    RELATIONSHIPS = "relationships"
    EXTREME = "extreme"


class ChallengeDifficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class OccurrenceStatus(str, enum.Enum):
    PENDING = "pending"
    NOTIFIED = "notified"
    SNOOZED = "snoozed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OccurrenceAction(str, enum.Enum):
    NOTIFY = "notify"
    POSTPONE = "postpone"
    CANCEL = "cancel"
    COMPLETE = "complete"


class ResolutionStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


class RequirementType(str, enum.Enum):
    CHALLENGES_COMPLETED = "challenges_completed"
    STREAK_DAYS = "streak_days"
    TOTAL_POINTS = "total_points"
    CATEGORY_CHALLENGES = "category_challenges"
    ALL_CATEGORIES = "all_categories"


class AchievementTier(str, enum.Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


TERMINAL_STATUSES = frozenset({OccurrenceStatus.COMPLETED, OccurrenceStatus.CANCELLED})

# (current status, action) -> next status. Anything missing is illegal.
OCCURRENCE_TRANSITIONS = {
    (OccurrenceStatus.PENDING, OccurrenceAction.NOTIFY): OccurrenceStatus.NOTIFIED,
    (OccurrenceStatus.PENDING, OccurrenceAction.POSTPONE): OccurrenceStatus.SNOOZED,
    (OccurrenceStatus.PENDING, OccurrenceAction.CANCEL): OccurrenceStatus.CANCELLED,
    (OccurrenceStatus.PENDING, OccurrenceAction.COMPLETE): OccurrenceStatus.COMPLETED,
    (OccurrenceStatus.NOTIFIED, OccurrenceAction.POSTPONE): OccurrenceStatus.SNOOZED,
    (OccurrenceStatus.NOTIFIED, OccurrenceAction.CANCEL): OccurrenceStatus.CANCELLED,
    (OccurrenceStatus.NOTIFIED, OccurrenceAction.COMPLETE): OccurrenceStatus.COMPLETED,
    (OccurrenceStatus.SNOOZED, OccurrenceAction.POSTPONE): OccurrenceStatus.SNOOZED,
    (OccurrenceStatus.SNOOZED, OccurrenceAction.CANCEL): OccurrenceStatus.CANCELLED,
    (OccurrenceStatus.SNOOZED, OccurrenceAction.COMPLETE): OccurrenceStatus.COMPLETED,
}

# Categories that must all reach the threshold for "all_categories" achievements.
# "extreme" is intentionally not part of the set.
CORE_CATEGORIES = (
    ChallengeCategory.PHYSICAL,
    ChallengeCategory.MENTAL,
    ChallengeCategory.LEARNING,
    ChallengeCategory.FINANCE,
    ChallengeCategory.RELATIONSHIPS,
)

# Timing
CHALLENGE_DURATION_SECONDS = 120
MIN_TIME_SPENT_SECONDS = 0
MAX_TIME_SPENT_SECONDS = CHALLENGE_DURATION_SECONDS
POSTPONE_DELAY = timedelta(minutes=2)
NOTIFICATION_LEAD = timedelta(minutes=2)
TIMER_TICK_SECONDS = 1.0

# Failed-resolution result screen
CONSOLATION_MESSAGES = (
    "Not this time, but showing up is what counts.",
    "Two minutes is a start. Try again tomorrow!",
    "Every attempt builds the habit. Keep going.",
    "Close one! Your streak still counts today.",
    "Progress isn't always a straight line.",
)

# Configuration defaults (overridable through environment variables)
DEFAULT_DATABASE_URL = "sqlite:///./challenge_engine.db"
DEFAULT_API_KEY = "your-secret-key-change-me"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/challenge_engine"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"
DEFAULT_NOTIFY_INTERVAL_SECONDS = 30

CORS_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]

HISTORY_DEFAULT_LIMIT = 50
HISTORY_MAX_LIMIT = 500
