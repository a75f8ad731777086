"""
Tests for ProgressService.

Tests cover:
1. Streak transitions (first, same day, next day, gap)
2. Points and totals per resolution
3. Validation before any write
4. Lazy ledger creation and history lookups
5. The per-user lock registry
"""
import threading
import pytest
from datetime import date, datetime

from challenge_engine.models import UserProgress, ChallengeHistoryEntry
from challenge_engine.constants import ChallengeCategory, ResolutionStatus
from challenge_engine.services.progress_service import (
    ProgressService, apply_streak, validate_time_spent, parse_resolution,
    user_lock, _user_locks,
)
from challenge_engine.exceptions import (
    InvalidArgumentException, ChallengeNotFoundException, ConcurrentUpdateException,
)
from challenge_engine.tests.conftest import create_challenge, TestingSessionLocal


class TestApplyStreak:
    """Tests for the apply_streak function"""

    def test_first_completion_starts_streak(self):
        progress = UserProgress(current_streak=0, longest_streak=0, last_completed_date=None)

        apply_streak(progress, date(2026, 1, 30))

        assert progress.current_streak == 1
        assert progress.longest_streak == 1
        assert progress.last_completed_date == date(2026, 1, 30)

    def test_same_day_keeps_streak(self):
        progress = UserProgress(current_streak=4, longest_streak=6, last_completed_date=date(2026, 1, 30))

        apply_streak(progress, date(2026, 1, 30))

        assert progress.current_streak == 4
        assert progress.longest_streak == 6

    def test_next_day_extends_streak(self):
        progress = UserProgress(current_streak=4, longest_streak=4, last_completed_date=date(2026, 1, 29))

        apply_streak(progress, date(2026, 1, 30))

        assert progress.current_streak == 5
        assert progress.longest_streak == 5

    def test_gap_resets_streak_but_keeps_longest(self):
        progress = UserProgress(current_streak=4, longest_streak=9, last_completed_date=date(2026, 1, 28))

        apply_streak(progress, date(2026, 1, 30))

        assert progress.current_streak == 1
        assert progress.longest_streak == 9
        assert progress.last_completed_date == date(2026, 1, 30)


class TestValidation:
    """Tests for input validation helpers"""

    @pytest.mark.parametrize("value", [0, 1, 60, 120])
    def test_accepts_values_inside_window(self, value):
        assert validate_time_spent(value) == value

    @pytest.mark.parametrize("value", [-1, 121, 3600])
    def test_rejects_values_outside_window(self, value):
        with pytest.raises(InvalidArgumentException) as exc_info:
            validate_time_spent(value)
        assert exc_info.value.field == "time_spent"

    def test_rejects_non_integers(self):
        with pytest.raises(InvalidArgumentException):
            validate_time_spent(12.5)
        with pytest.raises(InvalidArgumentException):
            validate_time_spent(True)

    def test_parses_resolution_tokens(self):
        assert parse_resolution("success") == ResolutionStatus.SUCCESS
        assert parse_resolution(ResolutionStatus.FAILED) == ResolutionStatus.FAILED

    def test_rejects_unknown_resolution(self):
        with pytest.raises(InvalidArgumentException) as exc_info:
            parse_resolution("skipped")
        assert exc_info.value.field == "status"


class TestRecordCompletion:
    """Tests for record_completion"""

    def test_success_then_failed_next_day(self, db_session, date_service, clock, user_id):
        """A 20-point success followed by a failed attempt the next day"""
        physical = create_challenge(db_session, ChallengeCategory.PHYSICAL, points=20)
        mental = create_challenge(db_session, ChallengeCategory.MENTAL, points=10)
        service = ProgressService(db_session, date_service)

        first = service.record_completion(user_id, physical.id, 90, "success")

        assert first.points_earned == 20
        assert first.progress.total_completed == 1
        assert first.progress.total_points == 20
        assert first.progress.current_streak == 1
        assert first.progress.longest_streak == 1

        clock.advance(days=1)
        second = service.record_completion(user_id, mental.id, 120, "failed")

        assert second.points_earned == 0
        assert second.history_entry.status == ResolutionStatus.FAILED
        # Failed attempts count as activity
        assert second.progress.total_completed == 2
        assert second.progress.total_points == 20
        assert second.progress.current_streak == 2
        assert second.progress.longest_streak == 2
        assert second.progress.last_completed_date == date(2026, 1, 31)

    def test_points_come_from_stored_challenge(self, db_session, date_service, user_id):
        """Points are not derived from difficulty"""
        odd = create_challenge(db_session, ChallengeCategory.FINANCE, points=37)
        service = ProgressService(db_session, date_service)

        record = service.record_completion(user_id, odd.id, 30, ResolutionStatus.SUCCESS)

        assert record.points_earned == 37
        assert record.history_entry.points_earned == 37

    def test_same_day_completions_keep_streak(self, db_session, date_service, clock, physical_challenge, user_id):
        service = ProgressService(db_session, date_service)

        service.record_completion(user_id, physical_challenge.id, 60, "success")
        clock.advance(hours=5)
        record = service.record_completion(user_id, physical_challenge.id, 60, "success")

        assert record.progress.total_completed == 2
        assert record.progress.total_points == 40
        assert record.progress.current_streak == 1

    def test_gap_resets_streak(self, db_session, date_service, clock, physical_challenge, user_id):
        service = ProgressService(db_session, date_service)

        service.record_completion(user_id, physical_challenge.id, 60, "success")
        clock.advance(days=1)
        service.record_completion(user_id, physical_challenge.id, 60, "success")
        clock.advance(days=2)
        record = service.record_completion(user_id, physical_challenge.id, 60, "success")

        assert record.progress.current_streak == 1
        assert record.progress.longest_streak == 2

    def test_longest_never_below_current(self, db_session, date_service, clock, physical_challenge, user_id):
        service = ProgressService(db_session, date_service)

        for gap in [0, 1, 1, 3, 1, 0, 1, 1, 1, 5]:
            clock.advance(days=gap)
            record = service.record_completion(user_id, physical_challenge.id, 60, "success")
            assert record.progress.longest_streak >= record.progress.current_streak

        assert record.progress.longest_streak == 5

    def test_rejected_time_writes_nothing(self, db_session, date_service, physical_challenge, user_id):
        """time_spent=121 must leave history and ledger untouched"""
        service = ProgressService(db_session, date_service)
        service.record_completion(user_id, physical_challenge.id, 60, "success")

        with pytest.raises(InvalidArgumentException):
            service.record_completion(user_id, physical_challenge.id, 121, "success")

        assert db_session.query(ChallengeHistoryEntry).count() == 1
        progress = service.get_progress(user_id)
        assert progress.total_completed == 1
        assert progress.total_points == 20

    def test_rejected_status_writes_nothing(self, db_session, date_service, physical_challenge, user_id):
        service = ProgressService(db_session, date_service)

        with pytest.raises(InvalidArgumentException):
            service.record_completion(user_id, physical_challenge.id, 60, "maybe")

        assert db_session.query(ChallengeHistoryEntry).count() == 0

    def test_unknown_challenge(self, db_session, date_service, user_id):
        service = ProgressService(db_session, date_service)

        with pytest.raises(ChallengeNotFoundException):
            service.record_completion(user_id, 999, 60, "success")

    def test_users_have_separate_ledgers(self, db_session, date_service, physical_challenge):
        service = ProgressService(db_session, date_service)

        service.record_completion("alice", physical_challenge.id, 60, "success")

        assert service.get_progress("alice").total_points == 20
        assert service.get_progress("bob").total_points == 0


class TestProgressAndHistory:
    """Tests for get_progress and get_history"""

    def test_progress_created_with_zero_defaults(self, db_session, date_service, user_id):
        progress = ProgressService(db_session, date_service).get_progress(user_id)

        assert progress.user_id == user_id
        assert progress.total_completed == 0
        assert progress.current_streak == 0
        assert progress.longest_streak == 0
        assert progress.total_points == 0
        assert progress.last_completed_date is None

    def test_recent_history_newest_first(self, db_session, date_service, clock, physical_challenge, mental_challenge, user_id):
        service = ProgressService(db_session, date_service)
        service.record_completion(user_id, physical_challenge.id, 60, "success")
        clock.advance(minutes=10)
        service.record_completion(user_id, mental_challenge.id, 60, "success")

        history = service.get_history(user_id, limit=1)

        assert len(history) == 1
        assert history[0].challenge_id == mental_challenge.id

    def test_history_for_one_day(self, db_session, date_service, clock, physical_challenge, user_id):
        service = ProgressService(db_session, date_service)
        service.record_completion(user_id, physical_challenge.id, 60, "success")
        clock.advance(days=1)
        service.record_completion(user_id, physical_challenge.id, 30, "failed")

        day_one = service.get_history(user_id, limit=50, on_date=date(2026, 1, 30))
        day_two = service.get_history(user_id, limit=50, on_date=date(2026, 1, 31))

        assert [entry.time_spent for entry in day_one] == [60]
        assert [entry.time_spent for entry in day_two] == [30]
        assert day_two[0].completed_at == datetime(2026, 1, 31, 10, 0)

    def test_lost_version_race_is_conflict(self, db_session, date_service, user_id):
        """A write based on a stale ledger row is rejected"""
        service = ProgressService(db_session, date_service)
        progress = service.get_progress(user_id)
        assert progress.total_points == 0

        other = TestingSessionLocal()
        try:
            row = other.query(UserProgress).filter_by(user_id=user_id).one()
            row.total_points = 50
            other.commit()
        finally:
            other.close()

        progress.total_points = 10
        with pytest.raises(ConcurrentUpdateException):
            service.commit_ledger(user_id)


class TestUserLock:
    """Tests for the per-user lock registry"""

    def test_idle_users_do_not_accumulate(self):
        with user_lock("idle-user"):
            assert "idle-user" in _user_locks

        assert "idle-user" not in _user_locks

    def test_reentrant_in_same_thread(self):
        with user_lock("nested-user"):
            with user_lock("nested-user"):
                assert "nested-user" in _user_locks

        assert "nested-user" not in _user_locks

    def test_second_thread_waits_for_holder(self):
        order = []
        entered = threading.Event()

        def contender():
            entered.set()
            with user_lock("busy-user"):
                order.append("contender")

        with user_lock("busy-user"):
            worker = threading.Thread(target=contender)
            worker.start()
            entered.wait(timeout=5)
            worker.join(timeout=0.2)
            assert worker.is_alive()
            order.append("holder")

        worker.join(timeout=5)
        assert order == ["holder", "contender"]
