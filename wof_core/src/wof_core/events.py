import itertools
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], None]


class GameEvent(str, Enum):
    PHASE_CHANGE = "gameState:phaseChange"
    SCORE_CHANGE = "gameState:scoreChange"
    LETTER_GUESSED = "gameState:letterGuessed"
    VOWEL_PURCHASED = "gameState:vowelPurchased"
    BANKRUPT = "gameState:bankrupt"
    LOSE_TURN = "gameState:loseTurn"
    FREE_SPIN_EARNED = "gameState:freeSpinEarned"
    FREE_SPIN_USED = "gameState:freeSpinUsed"
    ROUND_WON = "gameState:roundWon"
    SOLVE_ATTEMPTED = "gameState:solveAttempted"
    TURN_CONTINUES = "gameState:turnContinues"
    NEW_ROUND = "gameState:newRound"


class EventBus:
    """Synchronous publish/subscribe channel between the engine and its consumers.

    Handlers run in subscription order on the caller's stack. A failing handler
    is logged and skipped so one broken consumer cannot stall the game.
    """

    def __init__(self) -> None:
        self._handlers: Dict[GameEvent, List[Tuple[int, Handler]]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, kind: GameEvent, handler: Handler) -> int:
        token = next(self._tokens)
        self._handlers.setdefault(GameEvent(kind), []).append((token, handler))
        return token

    def unsubscribe(self, token: int) -> bool:
        for handlers in self._handlers.values():
            for idx, (tok, _) in enumerate(handlers):
                if tok == token:
                    del handlers[idx]
                    return True
        return False

    def emit(self, kind: GameEvent, payload: Optional[Dict[str, Any]] = None) -> None:
        kind = GameEvent(kind)
        payload = payload if payload is not None else {}
        # Copy so handlers may unsubscribe while being notified
        for _, handler in list(self._handlers.get(kind, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception("Event handler failed for %s", kind.value)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, kind: Optional[GameEvent] = None) -> int:
        if kind is not None:
            return len(self._handlers.get(GameEvent(kind), []))
        return sum(len(h) for h in self._handlers.values())
