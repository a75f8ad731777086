"""
Challenge catalog service.
Read-only access to challenge definitions.
"""
import random
from typing import List, Optional
from sqlalchemy.orm import Session

from challenge_engine.models import Challenge
from challenge_engine.constants import ChallengeCategory
from challenge_engine.repositories.challenge_repository import ChallengeRepository
from challenge_engine.exceptions import ChallengeNotFoundException, InvalidArgumentException


class ChallengeCatalog:
    """Lookup provider for challenge definitions"""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng
        self.challenge_repo = ChallengeRepository()

    def get_by_id(self, challenge_id: int) -> Optional[Challenge]:
        """Get challenge by ID, or None"""
        return self.challenge_repo.get_by_id(self.db, challenge_id)

    def require(self, challenge_id: int) -> Challenge:
        """Get challenge by ID or raise ChallengeNotFoundException"""
        challenge = self.get_by_id(challenge_id)
        if not challenge:
            raise ChallengeNotFoundException(challenge_id)
        return challenge

    def get_by_category(self, category: str) -> List[Challenge]:
        """Get all challenges in a category"""
        try:
            parsed = ChallengeCategory(category)
        except ValueError:
            raise InvalidArgumentException("category", f"unknown category '{category}'")
        return self.challenge_repo.get_by_category(self.db, parsed)

    def get_random(self) -> Optional[Challenge]:
        """Uniform draw over the whole catalog"""
        return self.challenge_repo.get_random(self.db, self.rng)
