from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Type

from payroll_api.common.errors import InvalidState


class PayrollStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    SIGNED = "signed"


class ResignationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class StateMachine:
    """Closed set of states plus the only transitions allowed between them."""

    def __init__(self, name: str, states: Type[Enum], transitions: Dict[Enum, Iterable[Enum]]):
        self.name = name
        self.states = states
        self.transitions: Dict[Enum, FrozenSet[Enum]] = {
            s: frozenset(transitions.get(s, ())) for s in states
        }

    def state(self, value) -> Enum:
        try:
            return self.states(value)
        except ValueError:
            raise InvalidState(f"Unknown {self.name} status '{value}'") from None

    def can(self, current, target) -> bool:
        return self.state(target) in self.transitions[self.state(current)]

    def ensure(self, current, target) -> str:
        """Validate ``current -> target`` and return the value to store."""
        cur, tgt = self.state(current), self.state(target)
        if tgt not in self.transitions[cur]:
            raise InvalidState(
                f"Cannot move {self.name} from '{cur.value}' to '{tgt.value}'"
            )
        return tgt.value

    def require(self, current, allowed: Iterable[Enum], action: str) -> None:
        cur = self.state(current)
        allowed = tuple(allowed)
        if cur not in allowed:
            raise InvalidState(
                f"Cannot {action} {self.name} in '{cur.value}' status "
                f"(allowed: {', '.join(s.value for s in allowed)})"
            )

    def is_terminal(self, current) -> bool:
        return not self.transitions[self.state(current)]


PAYROLL_LIFECYCLE = StateMachine("payroll", PayrollStatus, {
    PayrollStatus.DRAFT: {PayrollStatus.PUBLISHED},
    PayrollStatus.PUBLISHED: {PayrollStatus.SIGNED},
})

RESIGNATION_LIFECYCLE = StateMachine("resignation", ResignationStatus, {
    ResignationStatus.DRAFT: {ResignationStatus.SUBMITTED},
    ResignationStatus.SUBMITTED: {ResignationStatus.APPROVED, ResignationStatus.REJECTED},
    ResignationStatus.APPROVED: {ResignationStatus.COMPLETED},
})

# applications in these states block a new one for the same employee
OPEN_RESIGNATION_STATES = (
    ResignationStatus.DRAFT,
    ResignationStatus.SUBMITTED,
    ResignationStatus.APPROVED,
)
