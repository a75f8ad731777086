"""
Custom exceptions for the challenge engine.
Every domain failure is one of three kinds: not found, invalid argument or conflict.
"""


class ChallengeEngineException(Exception):
    """Base exception for the challenge engine"""
    pass


class NotFoundException(ChallengeEngineException):
    """Raised when a resource is missing or not owned by the caller"""
    pass


class OccurrenceNotFoundException(NotFoundException):
    """Raised when a scheduled occurrence is missing or belongs to another user"""
    def __init__(self, occurrence_id: int):
        self.occurrence_id = occurrence_id
        super().__init__(f"Occurrence with ID {occurrence_id} not found")


class ChallengeNotFoundException(NotFoundException):
    """Raised when a challenge is not in the catalog"""
    def __init__(self, challenge_id: int):
        self.challenge_id = challenge_id
        super().__init__(f"Challenge with ID {challenge_id} not found")


class AchievementNotFoundException(NotFoundException):
    """Raised when a shared achievement unlock does not exist"""
    def __init__(self, user_achievement_id: int):
        self.user_achievement_id = user_achievement_id
        super().__init__(f"Unlocked achievement with ID {user_achievement_id} not found")


class InvalidArgumentException(ChallengeEngineException):
    """Raised when input data fails validation"""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")


class ConflictException(ChallengeEngineException):
    """Raised when an operation conflicts with the current state"""
    pass


class IllegalTransitionException(ConflictException):
    """Raised when a state machine is asked for a transition it does not allow"""
    def __init__(self, state: str, action: str):
        self.state = state
        self.action = action
        super().__init__(f"Cannot {action} from state '{state}'")


class ConcurrentUpdateException(ConflictException):
    """Raised when another session updated the same ledger row first"""
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Progress for user {user_id} was modified concurrently, retry")
