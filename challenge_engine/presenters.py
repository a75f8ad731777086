"""
Presentation adapters for the timer.
Each client surface labels the actions the controller allows; none of them
decides which actions are legal.
"""
import math
from typing import Dict, FrozenSet

from challenge_engine.services.timer_service import TimerController, TimerAction, TimerPhase


def format_remaining(seconds: float) -> str:
    """Format remaining seconds as M:SS, rounding partial seconds up"""
    whole = max(0, math.ceil(seconds))
    return f"{whole // 60}:{whole % 60:02d}"


class TimerPresenter:
    """Base adapter: renders a controller snapshot for one surface"""

    labels: Dict[TimerAction, str] = {}
    # Legal actions this surface chooses not to show, per phase
    hidden: Dict[TimerPhase, FrozenSet[TimerAction]] = {}

    def __init__(self, controller: TimerController):
        self.controller = controller

    def buttons(self) -> list:
        actions = self.controller.available_actions()
        if not actions:
            return []
        concealed = self.hidden.get(self.controller.phase, frozenset())
        return [
            {"action": action.value, "label": self.labels[action]}
            for action in TimerAction
            if action in actions and action not in concealed
        ]

    def render(self) -> dict:
        controller = self.controller
        return {
            "phase": controller.phase.value,
            "closed": controller.closed,
            "outcome": controller.outcome.value if controller.outcome else None,
            "remaining": format_remaining(controller.remaining()),
            "buttons": self.buttons(),
            "message": controller.consolation_message,
        }


class WebTimerPresenter(TimerPresenter):
    labels = {
        TimerAction.CANCEL: "Cancel",
        TimerAction.POSTPONE: "Postpone 2 min",
        TimerAction.RESOLVE_SUCCESS: "I did it!",
        TimerAction.RESOLVE_FAILED: "I didn't finish",
    }


class MobileTimerPresenter(TimerPresenter):
    """Compact phone layout with its own shorter labels; postpone is dropped while the timer runs"""

    labels = {
        TimerAction.CANCEL: "Give up",
        TimerAction.POSTPONE: "Later",
        TimerAction.RESOLVE_SUCCESS: "Done",
        TimerAction.RESOLVE_FAILED: "Not today",
    }
    # The running screen only offers giving up
    hidden = {TimerPhase.RUNNING: frozenset({TimerAction.POSTPONE})}
