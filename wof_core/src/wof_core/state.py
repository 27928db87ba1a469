import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from .constants import MAX_GAME_HISTORY, STATUS_ACTIVE, STATUS_FINISHED
from .models import GamePhase, GameRecord, GameState, GuessedLetters, WedgeResult
from .redis_client import get_redis, key_prefix
from .turn_state import mask_phrase

logger = logging.getLogger(__name__)


class GameStore:
    """Redis persistence for game snapshots, phrase history and player stats.

    The engine never talks to Redis itself; the host hands snapshots in here.
    The phrase of a game lives under a separate ``game:<id>:answer`` key so
    that ``HGETALL game:<id>`` never leaks the solution.
    """

    def __init__(self, client=None, prefix: Optional[str] = None) -> None:
        self.r = client if client is not None else get_redis()
        self.prefix = prefix if prefix is not None else key_prefix()

    def _key(self, *parts: Any) -> str:
        return ":".join([self.prefix, *(str(p) for p in parts)])

    # --- Games ---

    def start_new_game(self, state: GameState) -> int:
        game_id = int(self.r.incr(self._key("game_id_counter")))
        self.r.set(self._key("current_game_id"), game_id)
        self._write_state(game_id, state)
        logger.info("Started game %s (%s)", game_id, state.category)
        return game_id

    def current_game_id(self) -> Optional[int]:
        raw = self.r.get(self._key("current_game_id"))
        return int(raw) if raw else None

    def save_state(self, state: GameState) -> None:
        game_id = self.current_game_id()
        if game_id is None:
            self.start_new_game(state)
            return
        self._write_state(game_id, state)

    def _write_state(self, game_id: int, state: GameState) -> None:
        guessed = state.guessed_letters
        wedge = state.current_wedge_result
        self.r.hset(self._key("game", game_id), mapping={
            "puzzle": mask_phrase(state.phrase, guessed.all()),
            "category": state.category,
            "phase": state.phase.value,
            "status": STATUS_FINISHED if state.has_won else STATUS_ACTIVE,
            "score": state.score,
            "free_spin_tokens": state.free_spin_tokens,
            "has_won": int(state.has_won),
            "guessed_consonants": json.dumps(sorted(guessed.consonants)),
            "guessed_vowels": json.dumps(sorted(guessed.vowels)),
            "current_wedge_result": wedge.model_dump_json() if wedge else "",
        })
        self.r.set(self._key("game", game_id, "answer"), state.phrase)

    def load_state(self) -> Optional[GameState]:
        game_id = self.current_game_id()
        if game_id is None:
            return None
        data = self.r.hgetall(self._key("game", game_id))
        if not data:
            return None
        wedge_raw = data.get("current_wedge_result") or ""
        return GameState(
            phase=GamePhase(data.get("phase", GamePhase.IDLE.value)),
            score=int(data.get("score", 0) or 0),
            current_wedge_result=WedgeResult.model_validate_json(wedge_raw) if wedge_raw else None,
            guessed_letters=GuessedLetters(
                consonants=frozenset(_json_list(data.get("guessed_consonants"))),
                vowels=frozenset(_json_list(data.get("guessed_vowels"))),
            ),
            free_spin_tokens=int(data.get("free_spin_tokens", 0) or 0),
            has_won=data.get("has_won") == "1",
            phrase=self.r.get(self._key("game", game_id, "answer")) or "",
            category=data.get("category", ""),
        )

    def get_field(self, field: str) -> Optional[str]:
        game_id = self.current_game_id()
        if game_id is None:
            return None
        return self.r.hget(self._key("game", game_id), field)

    # --- Stats ---

    def get_high_score(self) -> int:
        return int(self.r.get(self._key("high_score")) or 0)

    def save_high_score(self, score: int) -> bool:
        """Store ``score`` if it beats the current high score; True when it did."""
        if score <= 0 or score <= self.get_high_score():
            return False
        self.r.set(self._key("high_score"), score)
        logger.info("New high score: %s", score)
        return True

    def record_game(self, record: GameRecord) -> GameRecord:
        if not record.date:
            record = record.model_copy(update={"date": datetime.now(timezone.utc).isoformat()})
        history_key = self._key("history")
        self.r.lpush(history_key, record.model_dump_json())
        self.r.ltrim(history_key, 0, MAX_GAME_HISTORY - 1)
        self.r.incr(self._key("games_played"))
        if record.score > 0:
            self.r.incrby(self._key("total_score"), record.score)
        return record

    def get_history(self) -> List[GameRecord]:
        """Most recent first."""
        return [GameRecord.model_validate_json(raw) for raw in self.r.lrange(self._key("history"), 0, -1)]

    def get_games_played(self) -> int:
        return int(self.r.get(self._key("games_played")) or 0)

    def get_total_score(self) -> int:
        return int(self.r.get(self._key("total_score")) or 0)

    def get_stats(self) -> Dict[str, int]:
        history = self.get_history()
        return {
            "high_score": self.get_high_score(),
            "games_played": self.get_games_played(),
            "total_score": self.get_total_score(),
            "average_score": round(sum(g.score for g in history) / len(history)) if history else 0,
            "rounds_won": sum(1 for g in history if g.won),
        }

    # --- Phrase session ---

    def save_used_phrases(self, indices: Iterable[int]) -> None:
        key = self._key("phrases", "used")
        pipe = self.r.pipeline()
        pipe.delete(key)
        indices = list(indices)
        if indices:
            pipe.sadd(key, *indices)
        pipe.execute()

    def load_used_phrases(self) -> Set[int]:
        return {int(i) for i in self.r.smembers(self._key("phrases", "used"))}


def _json_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed letter list %r", raw)
        return []
    return [str(v).upper() for v in value] if isinstance(value, list) else []
