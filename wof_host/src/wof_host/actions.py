import json
import logging
from typing import Any, Dict, Tuple

from wof_core.models import GuessResult, Result, SolveResult
from wof_core.wheel import SpinOutcome

from .session import GameSession

logger = logging.getLogger(__name__)

ACTIONS = ("state", "new_game", "next_round", "spin", "guess", "buy_vowel", "solve", "free_spin")

_ALIASES = {
    "consonant": "guess",
    "guess_consonant": "guess",
    "buy": "buy_vowel",
    "vowel": "buy_vowel",
    "use_free_spin": "free_spin",
    "new": "new_game",
    "next": "next_round",
}


def parse_message(message: str) -> Tuple[str, Dict[str, Any]]:
    """Accept either a JSON object ({"action": "guess", "letter": "T"}) or plain
    text ("guess T", "solve BREAK A LEG")."""
    text = (message or "").strip()
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = {}
        if isinstance(data, dict):
            action = str(data.get("action") or "").strip().lower()
            return _ALIASES.get(action, action), data
    head, _, rest = text.partition(" ")
    action = head.strip().lower()
    action = _ALIASES.get(action, action)
    data = {}
    if action in ("guess", "buy_vowel"):
        data["letter"] = rest.strip()
    elif action == "solve":
        data["guess"] = rest.strip()
    return action, data


def _envelope(action: str, success: bool, details: str, session: GameSession, **extra: Any) -> str:
    output = {
        "action": action,
        "success": success,
        "details": details,
        "updates": session.snapshot(),
    }
    output.update(extra)
    return json.dumps(output)


def _rejected(action: str, result: Result, session: GameSession) -> str:
    return _envelope(action, False, f"Rejected: {result.error.value}", session, error=result.error.value)


def _describe_guess(guess: GuessResult) -> str:
    if guess.is_vowel:
        return f"Bought '{guess.letter}': appears {guess.count} time(s)."
    if guess.is_correct:
        return f"'{guess.letter}' appears {guess.count} time(s). You earn {guess.points_earned}."
    return f"'{guess.letter}' is not in the puzzle. Turn ends."


def handle_action(session: GameSession, message: str) -> str:
    """Run one player action against the session and return a JSON envelope.

    Never raises for bad input: unknown actions and rejected moves come back
    with ``success: false``.
    """
    action, data = parse_message(message)
    letter = str(data.get("letter") or "")

    if action == "state":
        return _envelope(action, True, "Current game state", session)

    if action in ("new_game", "next_round"):
        selection = session.new_game() if action == "new_game" else session.next_round()
        if selection is None:
            return _envelope(action, False, "No phrases available", session)
        return _envelope(action, True, f"New round in category {selection.phrase.category}", session)

    if action == "spin":
        velocity = data.get("velocity")
        try:
            velocity = float(velocity) if velocity is not None else None
        except (TypeError, ValueError):
            return _envelope(action, False, f"Bad velocity {velocity!r}", session)
        if velocity is not None and velocity < 0:
            return _envelope(action, False, f"Bad velocity {velocity!r}", session)
        result = session.spin(velocity)
        if not result:
            return _rejected(action, result, session)
        outcome: SpinOutcome = result.value
        wedge = outcome.wedge
        return _envelope(action, True, f"Landed on {wedge.label}", session, wedge=wedge.model_dump(mode="json"))

    if action == "guess":
        result = session.guess_consonant(letter)
        if not result:
            return _rejected(action, result, session)
        return _envelope(action, True, _describe_guess(result.value), session, result=result.value.model_dump())

    if action == "buy_vowel":
        result = session.buy_vowel(letter)
        if not result:
            return _rejected(action, result, session)
        return _envelope(action, True, _describe_guess(result.value), session, result=result.value.model_dump())

    if action == "solve":
        result = session.solve(str(data.get("guess") or ""))
        if not result:
            return _rejected(action, result, session)
        solve: SolveResult = result.value
        details = "Correct! You solved the puzzle!" if solve.is_correct else "Incorrect. Turn ends."
        return _envelope(action, True, details, session, result=solve.model_dump())

    if action == "free_spin":
        result = session.use_free_spin()
        if not result:
            return _rejected(action, result, session)
        return _envelope(action, True, "Free spin used. Spin again.", session)

    logger.warning("Unknown action %r", action)
    return _envelope(action, False, f"Unknown action. Expected one of: {', '.join(ACTIONS)}", session)


def safe_handle_action(session: GameSession, message: str) -> str:
    """``handle_action`` for callers that must always get an envelope back.

    Infrastructure failures (a Redis outage and the like) are logged and
    answered with ``{"action": "error", "success": false, ...}``.
    """
    try:
        return handle_action(session, message)
    except Exception as e:
        logger.exception("wheel host failed on %r", message)
        return json.dumps({"action": "error", "success": False, "details": str(e), "updates": {}})
