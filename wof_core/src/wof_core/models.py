"""Immutable value types shared by the engine, the host and the store.

Everything handed out of a component is one of these frozen models, so callers
get snapshots rather than references to live engine state.
"""
from enum import Enum
from typing import Any, FrozenSet, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class GamePhase(str, Enum):
    IDLE = "IDLE"
    SPINNING = "SPINNING"
    GUESSING = "GUESSING"
    BUYING_VOWEL = "BUYING_VOWEL"
    SOLVING = "SOLVING"
    ROUND_OVER = "ROUND_OVER"


class WedgeType(str, Enum):
    POINTS = "points"
    BANKRUPT = "bankrupt"
    LOSE_TURN = "loseTurn"
    FREE_SPIN = "freeSpin"


class TransitionError(str, Enum):
    """Reasons a guarded operation was rejected."""

    ALREADY_SPINNING = "ALREADY_SPINNING"
    CANNOT_GUESS_YET = "CANNOT_GUESS_YET"
    CANNOT_BUY_VOWEL = "CANNOT_BUY_VOWEL"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    LETTER_ALREADY_GUESSED = "LETTER_ALREADY_GUESSED"
    NOT_A_VOWEL = "NOT_A_VOWEL"
    NOT_A_CONSONANT = "NOT_A_CONSONANT"
    CANNOT_SOLVE_YET = "CANNOT_SOLVE_YET"
    ROUND_ALREADY_OVER = "ROUND_ALREADY_OVER"
    NO_FREE_SPIN = "NO_FREE_SPIN"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Wedge(_Frozen):
    """One labeled sector of the wheel."""

    id: str
    type: WedgeType
    value: int = Field(default=0, ge=0)
    label: str = ""


class WedgeResult(_Frozen):
    type: WedgeType
    value: int = Field(default=0, ge=0)
    wedge_id: str = ""


def letter_mask(letters) -> int:
    """Pack uppercase letters into a 26-bit mask (bit 0 is 'A')."""
    mask = 0
    for ch in letters:
        mask |= 1 << (ord(ch) - ord("A"))
    return mask


class GuessedLetters(_Frozen):
    consonants: FrozenSet[str] = frozenset()
    vowels: FrozenSet[str] = frozenset()

    def all(self) -> FrozenSet[str]:
        return self.consonants | self.vowels

    def is_disjoint(self) -> bool:
        return not (letter_mask(self.consonants) & letter_mask(self.vowels))


class GameState(_Frozen):
    """Snapshot of one round as seen from outside the state machine."""

    phase: GamePhase = GamePhase.IDLE
    score: int = Field(default=0, ge=0)
    current_wedge_result: Optional[WedgeResult] = None
    guessed_letters: GuessedLetters = GuessedLetters()
    free_spin_tokens: int = Field(default=0, ge=0)
    has_won: bool = False
    phrase: str = ""
    category: str = ""


class GuessResult(_Frozen):
    letter: str
    is_correct: bool
    count: int
    points_earned: int
    is_vowel: bool


class SolveResult(_Frozen):
    is_correct: bool
    guess: str
    actual_phrase: str


class Result(_Frozen, Generic[T]):
    """Tagged outcome of a guarded operation: a value on success, an error code otherwise."""

    success: bool
    value: Optional[Any] = None
    error: Optional[TransitionError] = None

    @classmethod
    def ok(cls, value: Any = None) -> "Result":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: TransitionError) -> "Result":
        return cls(success=False, error=error)

    def __bool__(self) -> bool:
        return self.success


class PhraseRecord(_Frozen):
    phrase: str
    category: str


class PhraseSelection(_Frozen):
    phrase: PhraseRecord
    index: int


class WheelPhysicsState(_Frozen):
    angular_velocity: float = Field(default=0.0, ge=0)
    rotation: float = 0.0
    is_spinning: bool = False
    rotations_completed: float = Field(default=0.0, ge=0)
    spin_start_rotation: float = 0.0


class GameRecord(_Frozen):
    """Summary of one finished round, kept in the store's history list."""

    score: int = Field(default=0, ge=0)
    phrase: str = ""
    category: str = ""
    won: bool = False
    bankrupts: int = 0
    vowels_purchased: int = 0
    date: str = ""
