"""
Timer state machine for one active occurrence.

One controller is shared by every client surface; presenters only decide how
to label the actions the controller allows.

    initial --activate--> running --120s elapsed--> finished
    initial/running --cancel|postpone--> closed (queue updated, no history)
    finished --resolve_success|resolve_failed--> closed (completion recorded)
"""
import asyncio
import enum
import logging
import random
import time
from typing import Any, Callable, List, Optional, Sequence
from sqlalchemy.orm import Session

from challenge_engine.constants import (
    ResolutionStatus, CHALLENGE_DURATION_SECONDS, TIMER_TICK_SECONDS, CONSOLATION_MESSAGES,
)
from challenge_engine.services.date_service import DateService
from challenge_engine.services.scheduling_service import SchedulingService
from challenge_engine.services.completion_service import CompletionService
from challenge_engine.exceptions import IllegalTransitionException

logger = logging.getLogger("challenge_engine.timer")


class TimerPhase(str, enum.Enum):
    INITIAL = "initial"
    RUNNING = "running"
    FINISHED = "finished"


class TimerAction(str, enum.Enum):
    CANCEL = "cancel"
    POSTPONE = "postpone"
    RESOLVE_SUCCESS = "resolve_success"
    RESOLVE_FAILED = "resolve_failed"


class TimerOutcome(str, enum.Enum):
    CANCELLED = "cancelled"
    POSTPONED = "postponed"
    SUCCESS = "success"
    FAILED = "failed"


ALLOWED_ACTIONS = {
    TimerPhase.INITIAL: frozenset({TimerAction.CANCEL, TimerAction.POSTPONE}),
    TimerPhase.RUNNING: frozenset({TimerAction.CANCEL, TimerAction.POSTPONE}),
    TimerPhase.FINISHED: frozenset({TimerAction.RESOLVE_SUCCESS, TimerAction.RESOLVE_FAILED}),
}


class ServiceTimerGateway:
    """Connects a controller to the in-process queue and completion services"""

    def __init__(self, db: Session, user_id: str, date_service: Optional[DateService] = None):
        self.user_id = user_id
        self.scheduling_service = SchedulingService(db, date_service)
        self.completion_service = CompletionService(db, date_service)

    def cancel(self, occurrence_id: int) -> bool:
        return self.scheduling_service.cancel(occurrence_id, self.user_id)

    def postpone(self, occurrence_id: int):
        return self.scheduling_service.postpone(occurrence_id, self.user_id)

    def complete(self, occurrence_id: int, time_spent: int, status: ResolutionStatus):
        return self.completion_service.complete_occurrence(
            occurrence_id, self.user_id, time_spent, status
        )


class TimerController:
    """Countdown, running timer and forced resolution for one occurrence"""

    def __init__(
        self,
        occurrence_id: int,
        gateway: Any,
        clock: Callable[[], float] = time.monotonic,
        duration: int = CHALLENGE_DURATION_SECONDS,
        tick_seconds: float = TIMER_TICK_SECONDS,
        rng: Optional[random.Random] = None,
        messages: Sequence[str] = CONSOLATION_MESSAGES,
    ):
        self.occurrence_id = occurrence_id
        self.gateway = gateway
        self.clock = clock
        self.duration = duration
        self.tick_seconds = tick_seconds
        self.rng = rng or random.Random()
        self.messages = tuple(messages)

        self.phase = TimerPhase.INITIAL
        self.started_at: Optional[float] = None
        self.outcome: Optional[TimerOutcome] = None
        self.result: Any = None
        self.consolation_message: Optional[str] = None
        self._listeners: List[Callable[["TimerController"], None]] = []
        self._wake: Optional[asyncio.Event] = None

    @property
    def closed(self) -> bool:
        return self.outcome is not None

    def subscribe(self, listener: Callable[["TimerController"], None]) -> None:
        """Register a callback invoked after every tick and transition"""
        self._listeners.append(listener)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def elapsed(self) -> float:
        """Seconds since the timer started, capped at the challenge duration"""
        if self.started_at is None:
            return 0.0
        return min(float(self.duration), max(0.0, self.clock() - self.started_at))

    def remaining(self) -> float:
        return self.duration - self.elapsed()

    def activate(self) -> None:
        """Start the two-minute timer; the occurrence became the active one"""
        if self.closed or self.phase != TimerPhase.INITIAL:
            raise IllegalTransitionException(self.phase.value, "activate")
        self.started_at = self.clock()
        self.phase = TimerPhase.RUNNING
        logger.debug(f"Timer started for occurrence {self.occurrence_id}")
        self._emit()

    def tick(self) -> TimerPhase:
        """Advance to finished once the full duration has elapsed"""
        if (
            not self.closed
            and self.phase == TimerPhase.RUNNING
            and self.clock() - self.started_at >= self.duration
        ):
            self.phase = TimerPhase.FINISHED
            logger.debug(f"Timer finished for occurrence {self.occurrence_id}")
            self._emit()
        return self.phase

    def available_actions(self) -> frozenset:
        if self.closed:
            return frozenset()
        self.tick()
        return ALLOWED_ACTIONS[self.phase]

    def _require(self, action: TimerAction) -> None:
        if action not in self.available_actions():
            state = "closed" if self.closed else self.phase.value
            raise IllegalTransitionException(state, action.value)

    def _close(self, outcome: TimerOutcome, result: Any = None) -> None:
        self.outcome = outcome
        self.result = result
        if self._wake is not None:
            self._wake.set()
        self._emit()

    def cancel(self) -> bool:
        """Abort the occurrence for good; nothing is recorded in history"""
        self._require(TimerAction.CANCEL)
        result = self.gateway.cancel(self.occurrence_id)
        self._close(TimerOutcome.CANCELLED, result)
        return result

    def postpone(self) -> Any:
        """Abort the run and snooze the occurrence"""
        self._require(TimerAction.POSTPONE)
        result = self.gateway.postpone(self.occurrence_id)
        self._close(TimerOutcome.POSTPONED, result)
        return result

    def resolve_success(self) -> Any:
        self._require(TimerAction.RESOLVE_SUCCESS)
        return self._resolve(ResolutionStatus.SUCCESS, TimerOutcome.SUCCESS)

    def resolve_failed(self) -> Any:
        self._require(TimerAction.RESOLVE_FAILED)
        # Picked once; a retried completion keeps the same message
        if self.consolation_message is None and self.messages:
            self.consolation_message = self.rng.choice(self.messages)
        return self._resolve(ResolutionStatus.FAILED, TimerOutcome.FAILED)

    def _resolve(self, status: ResolutionStatus, outcome: TimerOutcome) -> Any:
        time_spent = int(round(self.elapsed()))
        result = self.gateway.complete(self.occurrence_id, time_spent, status)
        self._close(outcome, result)
        return result

    async def run(self) -> TimerPhase:
        """
        Drive the timer cooperatively until it finishes or a user action closes it.

        Suspends on the next tick or an explicit action, whichever comes first.
        """
        self._wake = asyncio.Event()
        if self.phase == TimerPhase.INITIAL and not self.closed:
            self.activate()

        while not self.closed and self.phase == TimerPhase.RUNNING:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.tick_seconds)
            except asyncio.TimeoutError:
                pass
            if self.closed:
                break
            self.tick()
            self._emit()

        return self.phase
