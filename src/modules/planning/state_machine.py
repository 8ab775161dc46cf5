"""Pure state transition rules for the daily plan lifecycle."""

import logging

from src.core.errors import InvalidPlanTransitionError
from src.domain.plan import PlanStatus


logger = logging.getLogger(__name__)


# Allowed plan transitions. Re-planning a day is not a transition: the store's
# replace operation resets any plan back to CONFIRMED explicitly.
PLAN_TRANSITIONS: dict[PlanStatus, set[PlanStatus]] = {
    PlanStatus.DRAFT: {PlanStatus.CONFIRMED},
    PlanStatus.CONFIRMED: {PlanStatus.REVIEW_PENDING},
    PlanStatus.REVIEW_PENDING: {PlanStatus.REVIEW_PENDING, PlanStatus.REVIEWED},  # Review may be restarted
    PlanStatus.REVIEWED: set(),
}


def can_transition(*, current: PlanStatus, target: PlanStatus) -> bool:
    """Return True if ``current -> target`` is an edge of the plan state machine."""
    return target in PLAN_TRANSITIONS[current]


def ensure_transition(*, plan_id: str, current: PlanStatus, target: PlanStatus) -> None:
    """Validate a plan transition.

    Raises:
        InvalidPlanTransitionError: If the edge is not allowed
    """
    if not can_transition(current=current, target=target):
        logger.warning(
            "Rejected plan transition",
            extra={"plan_id": plan_id, "current": current.value, "target": target.value},
        )
        raise InvalidPlanTransitionError(plan_id=plan_id, current=current.value, target=target.value)
