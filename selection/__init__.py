#Expose the high-level pieces of the choose-a-driver step:
#Ranking
#Selection state machine
#SelectionController orchestrator (the "one object" a screen talks to)

from .ranking import rank_candidates
from .state_machine import SelectionPhase, SelectionState, SelectionStateException
from .controller import CancellationError, PaymentHandoffError, SelectionController

__all__ = [
    "rank_candidates",
    "SelectionPhase",
    "SelectionState",
    "SelectionStateException",
    "SelectionController",
    "PaymentHandoffError",
    "CancellationError",
]
