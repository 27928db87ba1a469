from .events import EventBus, GameEvent
from .models import (
    GamePhase,
    GameState,
    GuessResult,
    PhraseRecord,
    PhraseSelection,
    Result,
    SolveResult,
    TransitionError,
    Wedge,
    WedgeResult,
    WedgeType,
    WheelPhysicsState,
)
from .phrases import PhraseSelector
from .turn_state import TurnStateMachine

__all__ = [
    "EventBus",
    "GameEvent",
    "GamePhase",
    "GameState",
    "GuessResult",
    "PhraseRecord",
    "PhraseSelection",
    "PhraseSelector",
    "Result",
    "SolveResult",
    "TransitionError",
    "TurnStateMachine",
    "Wedge",
    "WedgeResult",
    "WedgeType",
    "WheelPhysicsState",
]
