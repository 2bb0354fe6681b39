"""
Status lifecycles for referral and mentorship requests.

Both are finite-state machines with an explicit transition table. Routes call
ensure_transition() before writing a new status; anything not listed in the
table (backward moves, moves out of a terminal state, a move to the current
state) raises InvalidTransitionError.
"""

from typing import Dict, FrozenSet, Iterable

from referralme.schemas.schemas import MentorshipStatus, ReferralStatus


class InvalidTransitionError(ValueError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, current: str, requested: str, allowed: FrozenSet[str]):
        self.current = current
        self.requested = requested
        self.allowed = allowed
        allowed_text = ", ".join(sorted(allowed)) if allowed else "none (terminal)"
        super().__init__(
            f"Cannot move from '{current}' to '{requested}'. Allowed: {allowed_text}"
        )


class StatusMachine:
    """A transition table plus its initial state."""

    def __init__(self, name: str, initial: str, transitions: Dict[str, Iterable[str]]):
        self.name = name
        self.initial = initial
        self.transitions = {state: frozenset(targets) for state, targets in transitions.items()}

    @property
    def states(self) -> FrozenSet[str]:
        return frozenset(self.transitions)

    @property
    def terminal_states(self) -> FrozenSet[str]:
        return frozenset(s for s, targets in self.transitions.items() if not targets)

    def allowed_from(self, current: str) -> FrozenSet[str]:
        if current not in self.transitions:
            raise ValueError(f"Unknown {self.name} status '{current}'")
        return self.transitions[current]

    def can_transition(self, current: str, requested: str) -> bool:
        return requested in self.allowed_from(current)

    def ensure_transition(self, current: str, requested: str) -> str:
        allowed = self.allowed_from(current)
        if requested not in allowed:
            raise InvalidTransitionError(current, requested, allowed)
        return requested


R = ReferralStatus

REFERRAL_LIFECYCLE = StatusMachine(
    name="referral",
    initial=R.pending.value,
    transitions={
        R.pending.value: [R.under_review.value, R.accepted.value, R.rejected.value],
        R.under_review.value: [R.accepted.value, R.rejected.value],
        R.accepted.value: [R.interview_scheduled.value, R.sent_to_hr.value, R.completed.value],
        R.interview_scheduled.value: [R.interview_completed.value],
        R.interview_completed.value: [R.sent_to_hr.value, R.completed.value],
        R.sent_to_hr.value: [R.completed.value],
        R.rejected.value: [],
        R.completed.value: [],
    },
)

M = MentorshipStatus

MENTORSHIP_LIFECYCLE = StatusMachine(
    name="mentorship",
    initial=M.pending.value,
    transitions={
        M.pending.value: [M.accepted.value, M.rejected.value],
        M.accepted.value: [M.scheduled.value],
        M.scheduled.value: [M.completed.value],
        M.rejected.value: [],
        M.completed.value: [],
    },
)
