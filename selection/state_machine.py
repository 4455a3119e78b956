"""
Purpose: Selection state for one request and its legal transitions.

Idle -> Highlighted(id) -> ConfirmPending(id) -> Confirmed(id)
                 ^                 |
                 +-----------------+  (back out of the confirmation)
any state -> Cancelled (terminal)

Transition functions are pure: they take a state and return the next one,
raising SelectionStateException for anything the machine does not allow.
Only SelectionController calls them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SelectionStateException(Exception):
    """Raised when an invalid selection transition is attempted."""
    pass


class SelectionPhase(str, Enum):
    IDLE = "idle"
    HIGHLIGHTED = "highlighted"
    CONFIRM_PENDING = "confirm_pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SelectionState:
    phase: SelectionPhase
    candidate_id: Optional[str] = None

    @classmethod
    def idle(cls) -> SelectionState:
        return cls(SelectionPhase.IDLE)

    @classmethod
    def highlighted(cls, candidate_id: str) -> SelectionState:
        return cls(SelectionPhase.HIGHLIGHTED, candidate_id)

    @classmethod
    def confirm_pending(cls, candidate_id: str) -> SelectionState:
        return cls(SelectionPhase.CONFIRM_PENDING, candidate_id)

    @classmethod
    def confirmed(cls, candidate_id: str) -> SelectionState:
        return cls(SelectionPhase.CONFIRMED, candidate_id)

    @classmethod
    def cancelled(cls) -> SelectionState:
        return cls(SelectionPhase.CANCELLED)

    @property
    def is_terminal(self) -> bool:
        return self.phase in (SelectionPhase.CONFIRMED, SelectionPhase.CANCELLED)


def transition_on_tap(state: SelectionState, candidate_id: str) -> SelectionState:
    """
    First tap on a candidate highlights it, a second tap on the same one
    opens the confirmation.
    """
    if state.phase in (SelectionPhase.IDLE, SelectionPhase.HIGHLIGHTED):
        if state.phase == SelectionPhase.HIGHLIGHTED and state.candidate_id == candidate_id:
            return SelectionState.confirm_pending(candidate_id)
        return SelectionState.highlighted(candidate_id)

    raise SelectionStateException(f"Cannot select candidate {candidate_id} while {state.phase.value}")


def transition_to_confirmed(state: SelectionState) -> SelectionState:
    if state.phase != SelectionPhase.CONFIRM_PENDING:
        raise SelectionStateException(f"Nothing to confirm while {state.phase.value}")
    return SelectionState.confirmed(state.candidate_id)


def transition_back_to_highlighted(state: SelectionState) -> SelectionState:
    """
    Leave the confirmation surface (user backed out, or the hand-off failed).
    """
    if state.phase != SelectionPhase.CONFIRM_PENDING:
        raise SelectionStateException(f"No confirmation open while {state.phase.value}")
    return SelectionState.highlighted(state.candidate_id)


def transition_to_cancelled(state: SelectionState) -> SelectionState:
    # cancelling is allowed from anywhere, and cancelling twice is a no-op
    return SelectionState.cancelled()
