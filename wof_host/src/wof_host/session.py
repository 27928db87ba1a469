"""Composition root: one player's game, wired from the engine parts.

``GameSession`` owns the event bus, the turn state machine, the phrase
selector and the wheel, and optionally a ``GameStore``. Nothing in
``wof_core`` holds a reference to anything else; this is where they meet.
"""
import logging
import random
from typing import Any, Dict, Optional

from wof_core.constants import MAX_SPIN_SECONDS
from wof_core.events import EventBus, GameEvent
from wof_core.models import GameRecord, PhraseSelection, Result, TransitionError
from wof_core.phrases import PhraseSelector
from wof_core.state import GameStore
from wof_core.turn_state import TurnStateMachine
from wof_core.wheel import SpinDriver, SpinFrame, wedge_result

logger = logging.getLogger(__name__)


class GameSession:
    def __init__(
        self,
        store: Optional[GameStore] = None,
        selector: Optional[PhraseSelector] = None,
        driver: Optional[SpinDriver] = None,
        bus: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
        category: Optional[str] = None,
    ) -> None:
        self.rng = rng or random.Random()
        self.bus = bus or EventBus()
        self.selector = selector or PhraseSelector(rng=self.rng)
        self.driver = driver or SpinDriver(rng=self.rng)
        self.store = store
        self.category = category
        self.machine = TurnStateMachine(self.bus)
        self._bankrupts = 0
        self._vowels_purchased = 0
        self._recorded = False

        self.bus.subscribe(GameEvent.BANKRUPT, self._on_bankrupt)
        self.bus.subscribe(GameEvent.VOWEL_PURCHASED, self._on_vowel_purchased)
        self.bus.subscribe(GameEvent.ROUND_WON, self._on_round_won)

    # --- Event handlers ---

    def _on_bankrupt(self, payload: Dict[str, Any]) -> None:
        self._bankrupts += 1

    def _on_vowel_purchased(self, payload: Dict[str, Any]) -> None:
        self._vowels_purchased += 1

    def _on_round_won(self, payload: Dict[str, Any]) -> None:
        self._record_round(won=True)

    def _record_round(self, won: bool) -> None:
        if self.store is None or self._recorded or not self.machine.phrase:
            return
        self.store.record_game(GameRecord(
            score=self.machine.score,
            phrase=self.machine.phrase,
            category=self.machine.category,
            won=won,
            bankrupts=self._bankrupts,
            vowels_purchased=self._vowels_purchased,
        ))
        self.store.save_high_score(self.machine.score)
        self._recorded = True

    # --- Rounds ---

    def _pick_phrase(self) -> Optional[PhraseSelection]:
        selection = self.selector.get_random_phrase(self.category)
        if selection is None:
            logger.warning("No phrases available (category=%s)", self.category)
        return selection

    def _begin_round_bookkeeping(self) -> None:
        self._bankrupts = 0
        self._vowels_purchased = 0
        self._recorded = False
        if self.store is not None:
            self.store.start_new_game(self.machine.state)
            self.store.save_used_phrases(self.selector.used_indices)

    def new_game(self) -> Optional[PhraseSelection]:
        """Fresh game: score, tokens and phrase history all start over."""
        if not self.machine.has_won:
            self._record_round(won=False)
        self.selector.reset_session()
        selection = self._pick_phrase()
        if selection is None:
            return None
        self.machine.reset_game(selection.phrase.phrase, selection.phrase.category)
        self._begin_round_bookkeeping()
        return selection

    def next_round(self) -> Optional[PhraseSelection]:
        """Next phrase in the same game; score and free spin tokens carry over."""
        if not self.machine.has_won:
            self._record_round(won=False)
        selection = self._pick_phrase()
        if selection is None:
            return None
        self.machine.new_round(selection.phrase.phrase, selection.phrase.category)
        self._begin_round_bookkeeping()
        return selection

    def resume(self) -> bool:
        """Pick up the stored game, if there is one."""
        if self.store is None:
            return False
        state = self.store.load_state()
        if state is None or not state.phrase:
            return False
        self.machine = TurnStateMachine.from_state(state, self.bus)
        for index in self.store.load_used_phrases():
            self.selector.mark_phrase_used(index)
        self._recorded = state.has_won
        logger.info("Resumed game %s in phase %s", self.store.current_game_id(), state.phase.value)
        return True

    def _save(self) -> None:
        if self.store is not None:
            self.store.save_state(self.machine.state)

    # --- Actions ---

    def spin(self, velocity: Optional[float] = None) -> Result:
        """Spin headlessly to completion and apply the landing.

        The wheel starts from wherever the previous spin left it.
        """
        _check_velocity(velocity)
        if self.driver.is_spinning:
            return Result.fail(TransitionError.ALREADY_SPINNING)
        result = self.machine.start_spin()
        if not result:
            return result
        outcome = self.driver.run(velocity)
        self.machine.wheel_stopped(wedge_result(outcome.wedge))
        self._save()
        return Result.ok(outcome)

    def begin_spin(self, velocity: Optional[float] = None) -> Result:
        """Start a frame-driven spin; feed frames through ``advance``."""
        _check_velocity(velocity)
        if self.driver.is_spinning:
            return Result.fail(TransitionError.ALREADY_SPINNING)
        result = self.machine.start_spin()
        if not result:
            return result
        return Result.ok(self.driver.spin(velocity))

    def advance(self, delta_seconds: float) -> SpinFrame:
        frame = self.driver.update(delta_seconds)
        if frame.stopped:
            _, wedge = self.driver.landing()
            self.machine.wheel_stopped(wedge_result(wedge))
            self._save()
        return frame

    def guess_consonant(self, letter: str) -> Result:
        result = self.machine.guess_consonant(letter)
        if result:
            self._save()
        return result

    def buy_vowel(self, letter: str) -> Result:
        result = self.machine.buy_vowel(letter)
        if result:
            self._save()
        return result

    def solve(self, guess: str) -> Result:
        result = self.machine.attempt_solve(guess)
        if result:
            self._save()
        return result

    def use_free_spin(self) -> Result:
        # The token is spent between spins, never while the wheel is still turning
        if self.driver.is_spinning:
            return Result.fail(TransitionError.ALREADY_SPINNING)
        result = self.machine.use_free_spin()
        if result:
            self._save()
        return result

    def snapshot(self) -> Dict[str, Any]:
        state = self.machine.state
        wedge = state.current_wedge_result
        return {
            "puzzle": self.machine.masked_phrase(),
            "category": state.category,
            "phase": state.phase.value,
            "score": state.score,
            "free_spin_tokens": state.free_spin_tokens,
            "guessed_consonants": sorted(state.guessed_letters.consonants),
            "guessed_vowels": sorted(state.guessed_letters.vowels),
            "wedge": wedge.model_dump(mode="json") if wedge else None,
            "has_won": state.has_won,
        }


def _check_velocity(velocity: Optional[float]) -> None:
    # Reject before the state machine moves to SPINNING
    if velocity is not None and velocity < 0:
        raise ValueError(f"spin velocity must be >= 0, got {velocity}")


def build_session(
    force_new: bool = False,
    category: Optional[str] = None,
    weighted_categories: Optional[Dict[str, float]] = None,
    max_spin_seconds: float = MAX_SPIN_SECONDS,
    store: Optional[GameStore] = None,
    rng: Optional[random.Random] = None,
) -> GameSession:
    """Session backed by Redis: resume the stored game unless asked for a new one."""
    rng = rng or random.Random()
    selector = PhraseSelector(rng=rng)
    if weighted_categories:
        selector.set_category_weights(weighted_categories)
    session = GameSession(
        store=store if store is not None else GameStore(),
        selector=selector,
        driver=SpinDriver(rng=rng, max_spin_seconds=max_spin_seconds),
        rng=rng,
        category=category,
    )
    if force_new or not session.resume():
        session.new_game()
    return session
