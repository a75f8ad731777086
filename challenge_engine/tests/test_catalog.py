"""
Tests for the challenge catalog and seeding.

Tests cover:
1. Lookups by id and category
2. Random draws
3. Seeding only into empty catalogs
"""
import random
import pytest

from challenge_engine.models import Challenge, Achievement
from challenge_engine.constants import ChallengeCategory
from challenge_engine.services.catalog_service import ChallengeCatalog
from challenge_engine.seed import seed_catalog, CHALLENGE_SEED_DATA, ACHIEVEMENT_SEED_DATA
from challenge_engine.exceptions import ChallengeNotFoundException, InvalidArgumentException
from challenge_engine.tests.conftest import create_challenge


class TestChallengeCatalog:
    """Tests for ChallengeCatalog"""

    def test_get_by_id(self, db_session, physical_challenge):
        catalog = ChallengeCatalog(db_session)

        assert catalog.get_by_id(physical_challenge.id).points == 20
        assert catalog.get_by_id(999) is None

    def test_require_missing(self, db_session):
        with pytest.raises(ChallengeNotFoundException):
            ChallengeCatalog(db_session).require(999)

    def test_get_by_category(self, db_session, physical_challenge, mental_challenge):
        result = ChallengeCatalog(db_session).get_by_category("mental")

        assert [c.id for c in result] == [mental_challenge.id]

    def test_unknown_category(self, db_session):
        with pytest.raises(InvalidArgumentException):
            ChallengeCatalog(db_session).get_by_category("cooking")

    def test_random_on_empty_catalog(self, db_session):
        assert ChallengeCatalog(db_session).get_random() is None

    def test_random_reaches_every_challenge(self, db_session):
        ids = {create_challenge(db_session, category).id for category in ChallengeCategory}
        catalog = ChallengeCatalog(db_session, rng=random.Random(42))

        drawn = {catalog.get_random().id for _ in range(200)}

        assert drawn == ids


class TestSeedCatalog:
    """Tests for seed_catalog"""

    def test_seeds_empty_catalogs(self, db_session):
        inserted = seed_catalog(db_session)

        assert inserted == {
            "challenges": len(CHALLENGE_SEED_DATA),
            "achievements": len(ACHIEVEMENT_SEED_DATA),
        }
        assert db_session.query(Challenge).count() == len(CHALLENGE_SEED_DATA)

    def test_second_run_inserts_nothing(self, db_session):
        seed_catalog(db_session)

        assert seed_catalog(db_session) == {"challenges": 0, "achievements": 0}
        assert db_session.query(Achievement).count() == len(ACHIEVEMENT_SEED_DATA)

    def test_every_category_is_seeded(self, db_session):
        seed_catalog(db_session)

        seeded = {c.category for c in db_session.query(Challenge).all()}

        assert seeded == set(ChallengeCategory)
