"""Turn state machine for a single-player round.

Flow: IDLE -> SPINNING -> (GUESSING | IDLE) -> ... -> ROUND_OVER. Every
operation is guarded; a rejected call returns ``Result.fail`` and leaves the
round exactly as it was. Accepted calls mutate state and publish events on the
injected ``EventBus``.
"""
import logging
import re
from typing import List, Optional, Set

from .constants import CONSONANTS, VOWEL_COST, VOWELS
from .events import EventBus, GameEvent
from .models import (
    GamePhase,
    GameState,
    GuessedLetters,
    GuessResult,
    Result,
    SolveResult,
    TransitionError,
    Wedge,
    WedgeResult,
    WedgeType,
)

logger = logging.getLogger(__name__)

_LETTER = re.compile(r"[A-Z]")


def is_vowel(letter: str) -> bool:
    return (letter or "").upper() in VOWELS


def is_consonant(letter: str) -> bool:
    return (letter or "").upper() in CONSONANTS


def count_letter(letter: str, phrase: str) -> int:
    return (phrase or "").upper().count((letter or "").upper())


def normalize_phrase(phrase: str) -> str:
    """Uppercase, drop everything but A-Z and spaces, collapse runs of spaces."""
    text = re.sub(r"[^A-Z ]", "", (phrase or "").upper())
    return re.sub(r"\s+", " ", text).strip()


def is_phrase_revealed(phrase: str, guessed) -> bool:
    """True when every A-Z character of the phrase is among the guessed letters."""
    for ch in (phrase or "").upper():
        if _LETTER.fullmatch(ch) and ch not in guessed:
            return False
    return True


def mask_phrase(phrase: str, guessed) -> str:
    """Board view of the phrase: unrevealed letters become '_', everything else stays."""
    return "".join("_" if _LETTER.fullmatch(ch) and ch not in guessed else ch for ch in (phrase or ""))


class TurnStateMachine:
    def __init__(self, bus: Optional[EventBus] = None, phrase: str = "", category: str = "") -> None:
        self.bus = bus if bus is not None else EventBus()
        self._reset(phrase, category)

    @classmethod
    def from_state(cls, state: GameState, bus: Optional[EventBus] = None) -> "TurnStateMachine":
        """Rebuild a machine from a stored snapshot (no events are emitted)."""
        machine = cls(bus, state.phrase, state.category)
        machine._phase = state.phase
        machine._score = state.score
        machine._wedge = state.current_wedge_result
        machine._consonants = set(state.guessed_letters.consonants)
        machine._vowels = set(state.guessed_letters.vowels)
        machine._free_spin_tokens = state.free_spin_tokens
        machine._has_won = state.has_won
        return machine

    def _reset(self, phrase: str, category: str) -> None:
        self._phase = GamePhase.IDLE
        self._score = 0
        self._wedge: Optional[WedgeResult] = None
        self._consonants: Set[str] = set()
        self._vowels: Set[str] = set()
        self._free_spin_tokens = 0
        self._has_won = False
        self._phrase = (phrase or "").upper()
        self._category = category or ""

    # --- Accessors ---

    @property
    def state(self) -> GameState:
        return GameState(
            phase=self._phase,
            score=self._score,
            current_wedge_result=self._wedge,
            guessed_letters=self.guessed_letters,
            free_spin_tokens=self._free_spin_tokens,
            has_won=self._has_won,
            phrase=self._phrase,
            category=self._category,
        )

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def score(self) -> int:
        return self._score

    @property
    def phrase(self) -> str:
        return self._phrase

    @property
    def category(self) -> str:
        return self._category

    @property
    def free_spin_tokens(self) -> int:
        return self._free_spin_tokens

    @property
    def has_won(self) -> bool:
        return self._has_won

    @property
    def current_wedge_result(self) -> Optional[WedgeResult]:
        return self._wedge

    @property
    def guessed_letters(self) -> GuessedLetters:
        return GuessedLetters(consonants=frozenset(self._consonants), vowels=frozenset(self._vowels))

    def all_guessed_letters(self) -> List[str]:
        return sorted(self._consonants) + sorted(self._vowels)

    def is_letter_guessed(self, letter: str) -> bool:
        letter = (letter or "").upper()
        return letter in self._consonants or letter in self._vowels

    def can_spin(self) -> bool:
        return self._phase == GamePhase.IDLE and not self._has_won

    def can_guess(self) -> bool:
        return self._phase == GamePhase.GUESSING and not self._has_won

    def can_buy_vowel(self) -> bool:
        return self._phase in (GamePhase.GUESSING, GamePhase.IDLE) and self._score >= VOWEL_COST

    def can_solve(self) -> bool:
        return self._phase in (GamePhase.GUESSING, GamePhase.IDLE) and not self._has_won

    def masked_phrase(self) -> str:
        return mask_phrase(self._phrase, self._consonants | self._vowels)

    # --- Internal transitions ---

    def _set_phase(self, new_phase: GamePhase) -> None:
        previous = self._phase
        if previous == new_phase:
            return
        self._phase = new_phase
        logger.debug("Phase: %s -> %s", previous.value, new_phase.value)
        self.bus.emit(GameEvent.PHASE_CHANGE, {"previous_phase": previous, "new_phase": new_phase})

    def _set_score(self, new_score: int) -> None:
        previous = self._score
        self._score = new_score
        logger.debug("Score: %s -> %s (%+d)", previous, new_score, new_score - previous)
        self.bus.emit(
            GameEvent.SCORE_CHANGE,
            {"previous_score": previous, "new_score": new_score, "delta": new_score - previous},
        )

    def _lose_turn(self, reason: str) -> None:
        self.bus.emit(GameEvent.LOSE_TURN, {"reason": reason})
        self._set_phase(GamePhase.IDLE)
        self._wedge = None

    def _bankrupt(self) -> None:
        lost = self._score
        self.bus.emit(GameEvent.BANKRUPT, {"lost_score": lost})
        self._set_score(0)
        self._lose_turn("bankrupt")

    def _free_spin(self) -> None:
        self._free_spin_tokens += 1
        self.bus.emit(GameEvent.FREE_SPIN_EARNED, {"total_tokens": self._free_spin_tokens})
        self._set_phase(GamePhase.IDLE)

    def _check_win(self) -> bool:
        return is_phrase_revealed(self._phrase, self._consonants | self._vowels)

    def _win(self) -> None:
        self._has_won = True
        self._set_phase(GamePhase.ROUND_OVER)
        self.bus.emit(GameEvent.ROUND_WON, {"final_score": self._score, "phrase": self._phrase})
        logger.info("Round won! Final score: %s", self._score)

    # --- Game actions ---

    def start_spin(self) -> Result:
        if self._has_won:
            return Result.fail(TransitionError.ROUND_ALREADY_OVER)
        if self._phase != GamePhase.IDLE:
            return Result.fail(TransitionError.ALREADY_SPINNING)
        self._set_phase(GamePhase.SPINNING)
        return Result.ok()

    def wheel_stopped(self, result) -> None:
        """Apply the outcome of a settled spin."""
        if isinstance(result, Wedge):
            result = WedgeResult(type=result.type, value=result.value, wedge_id=result.id)
        elif not isinstance(result, WedgeResult):
            result = WedgeResult.model_validate(result)

        if self._has_won:
            logger.warning("Ignoring wheel result %s: round already over", result.type.value)
            return

        self._wedge = result
        if result.type == WedgeType.POINTS:
            self._set_phase(GamePhase.GUESSING)
        elif result.type == WedgeType.BANKRUPT:
            self._bankrupt()
        elif result.type == WedgeType.LOSE_TURN:
            self._lose_turn("loseTurn")
        elif result.type == WedgeType.FREE_SPIN:
            self._free_spin()

    def use_free_spin(self) -> Result:
        if self._free_spin_tokens <= 0:
            return Result.fail(TransitionError.NO_FREE_SPIN)
        if self._has_won:
            return Result.fail(TransitionError.ROUND_ALREADY_OVER)
        self._free_spin_tokens -= 1
        self.bus.emit(GameEvent.FREE_SPIN_USED, {"remaining_tokens": self._free_spin_tokens})
        self._set_phase(GamePhase.IDLE)
        return Result.ok()

    def guess_consonant(self, letter: str) -> Result:
        letter = (letter or "").strip().upper()

        if self._phase != GamePhase.GUESSING:
            return Result.fail(TransitionError.CANNOT_GUESS_YET)
        if not is_consonant(letter):
            return Result.fail(TransitionError.NOT_A_CONSONANT)
        if self.is_letter_guessed(letter):
            return Result.fail(TransitionError.LETTER_ALREADY_GUESSED)

        self._consonants.add(letter)
        count = count_letter(letter, self._phrase)
        wedge_value = self._wedge.value if self._wedge else 0
        guess = GuessResult(
            letter=letter,
            is_correct=count > 0,
            count=count,
            points_earned=wedge_value * count,
            is_vowel=False,
        )
        self.bus.emit(GameEvent.LETTER_GUESSED, guess.model_dump())

        if guess.is_correct:
            self._set_score(self._score + guess.points_earned)
            if self._check_win():
                self._win()
            else:
                self.bus.emit(GameEvent.TURN_CONTINUES, {})
                self._set_phase(GamePhase.IDLE)
        else:
            self._lose_turn("wrongGuess")

        return Result.ok(guess)

    def buy_vowel(self, letter: str) -> Result:
        letter = (letter or "").strip().upper()

        if self._phase not in (GamePhase.GUESSING, GamePhase.IDLE):
            return Result.fail(TransitionError.CANNOT_BUY_VOWEL)
        if not is_vowel(letter):
            return Result.fail(TransitionError.NOT_A_VOWEL)
        if self.is_letter_guessed(letter):
            return Result.fail(TransitionError.LETTER_ALREADY_GUESSED)
        if self._score < VOWEL_COST:
            return Result.fail(TransitionError.INSUFFICIENT_FUNDS)

        # Paid up front whether or not the vowel is in the phrase
        self._set_score(self._score - VOWEL_COST)
        self._vowels.add(letter)
        self.bus.emit(GameEvent.VOWEL_PURCHASED, {"letter": letter, "cost": VOWEL_COST})

        count = count_letter(letter, self._phrase)
        guess = GuessResult(letter=letter, is_correct=count > 0, count=count, points_earned=0, is_vowel=True)
        self.bus.emit(GameEvent.LETTER_GUESSED, guess.model_dump())

        if self._check_win():
            self._win()
        else:
            self.bus.emit(GameEvent.TURN_CONTINUES, {})
            self._set_phase(GamePhase.IDLE)

        return Result.ok(guess)

    def attempt_solve(self, guess: str) -> Result:
        if self._has_won:
            return Result.fail(TransitionError.ROUND_ALREADY_OVER)
        if self._phase not in (GamePhase.GUESSING, GamePhase.IDLE):
            return Result.fail(TransitionError.CANNOT_SOLVE_YET)

        guess = guess or ""
        solve = SolveResult(
            is_correct=normalize_phrase(guess) == normalize_phrase(self._phrase),
            guess=guess,
            actual_phrase=self._phrase,
        )
        self.bus.emit(GameEvent.SOLVE_ATTEMPTED, solve.model_dump())

        if solve.is_correct:
            self._win()
        else:
            self._lose_turn("wrongSolve")
        return Result.ok(solve)

    # --- Round management ---

    def new_round(self, phrase: str, category: str) -> None:
        """Start a new round; score and free spin tokens carry over."""
        score, tokens = self._score, self._free_spin_tokens
        self._reset(phrase, category)
        self._score, self._free_spin_tokens = score, tokens
        self.bus.emit(GameEvent.NEW_ROUND, {"phrase": self._phrase, "category": self._category})
        logger.info("New round: %r (%s)", self._phrase, self._category)

    def set_phrase(self, phrase: str, category: str) -> None:
        self._phrase = (phrase or "").upper()
        self._category = (category or "").upper()
        self._consonants = set()
        self._vowels = set()
        self._has_won = False
        self._wedge = None
        self._set_phase(GamePhase.IDLE)
        self.bus.emit(GameEvent.NEW_ROUND, {"phrase": self._phrase, "category": self._category})

    def reset_game(self, phrase: str = "", category: str = "") -> None:
        self._reset(phrase, category)
        self.bus.emit(GameEvent.NEW_ROUND, {"phrase": self._phrase, "category": self._category})
        logger.info("Game reset")
