"""Session-aware phrase selection.

A ``PhraseSelector`` hands out phrases without repeats until the database is
exhausted, then starts over. Selection is uniform unless category weights are
set, in which case candidates are drawn by cumulative weight.
"""
import csv
import logging
import random
from functools import lru_cache
from importlib import resources as _resources
from typing import Dict, List, Optional, Sequence, Set, Tuple, TypeVar

from .models import PhraseRecord, PhraseSelection

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (item, weight) pairs
WeightedItem = Tuple[T, float]


@lru_cache(maxsize=1)
def load_phrases() -> Tuple[PhraseRecord, ...]:
    """Return (phrase, category) records from packaged assets/phrases.csv.

    The CSV has rows of the form ``phrase,category`` with no header row.
    """
    text = _resources.files("wof_core.assets").joinpath("phrases.csv").read_text(encoding="utf-8")
    records: List[PhraseRecord] = []
    for row in csv.reader(text.splitlines()):
        if not row or len(row) < 2:
            continue
        phrase, category = row[0].strip(), row[1].strip()
        if phrase and category:
            records.append(PhraseRecord(phrase=phrase.upper(), category=category))
    return tuple(records)


def random_element(items: Sequence[T], rng=None) -> Optional[T]:
    if not items:
        return None
    rng = rng or random
    return items[rng.randrange(len(items))]


def _weighted_index(items: Sequence[WeightedItem], rng) -> int:
    total = sum(weight for _, weight in items)
    if total <= 0:
        return rng.randrange(len(items))

    remainder = rng.random() * total
    for idx, (_, weight) in enumerate(items):
        remainder -= weight
        if remainder <= 0:
            return idx
    # float rounding can leave a sliver past the last item
    return len(items) - 1


def weighted_random(items: Sequence[WeightedItem], rng=None) -> Optional[T]:
    """Pick one item with probability proportional to its weight.

    Falls back to a uniform pick when the weights do not sum to something positive.
    """
    if not items:
        return None
    return items[_weighted_index(items, rng or random)][0]


def weighted_random_multiple(items: Sequence[WeightedItem], count: int, rng=None) -> List[T]:
    """Draw up to ``count`` distinct items without replacement."""
    rng = rng or random
    pool = list(items)
    chosen: List[T] = []
    for _ in range(min(count, len(pool))):
        item, _ = pool.pop(_weighted_index(pool, rng))
        chosen.append(item)
    return chosen


class PhraseSelector:
    def __init__(
        self,
        phrases: Optional[Sequence[PhraseRecord]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.phrases: Tuple[PhraseRecord, ...] = tuple(load_phrases() if phrases is None else phrases)
        self.rng = rng or random.Random()
        self._used: Set[int] = set()
        self._weights: Dict[str, float] = {}
        self._weighted = False
        self.reset_category_weights()

    # --- Session ---

    def get_random_phrase(self, category: Optional[str] = None) -> Optional[PhraseSelection]:
        available = self._available(category)
        if not available and self._used:
            logger.info("Phrase pool exhausted (category=%s), starting a new session", category)
            self.reset_session()
            available = self._available(category)
        if not available:
            return None

        if self._weighted and not category:
            selection = weighted_random(
                [(s, self._weights.get(s.phrase.category, 1)) for s in available], self.rng
            )
        else:
            selection = random_element(available, self.rng)

        self._used.add(selection.index)
        return selection

    def _available(self, category: Optional[str] = None) -> List[PhraseSelection]:
        return [
            PhraseSelection(phrase=record, index=idx)
            for idx, record in enumerate(self.phrases)
            if idx not in self._used and (not category or record.category == category)
        ]

    def reset_session(self) -> None:
        self._used.clear()

    def mark_phrase_used(self, index: int) -> None:
        if 0 <= index < len(self.phrases):
            self._used.add(index)

    @property
    def used_indices(self) -> Set[int]:
        return set(self._used)

    @property
    def used_count(self) -> int:
        return len(self._used)

    @property
    def total_count(self) -> int:
        return len(self.phrases)

    def get_remaining_count(self, category: Optional[str] = None) -> int:
        return len(self._available(category))

    def is_exhausted(self) -> bool:
        return len(self._used) >= len(self.phrases)

    def get_phrase_by_index(self, index: int) -> Optional[PhraseRecord]:
        if 0 <= index < len(self.phrases):
            return self.phrases[index]
        return None

    def all_phrases(self) -> Tuple[PhraseRecord, ...]:
        return self.phrases

    def categories(self) -> List[str]:
        return sorted({record.category for record in self.phrases})

    # --- Weights ---

    def set_category_weights(self, weights: Dict[str, float]) -> None:
        self._weights = dict(weights)
        self._weighted = True

    def reset_category_weights(self) -> None:
        self._weights = {category: 1 for category in self.categories()}
        self._weighted = False

    def set_use_weighted_categories(self, enabled: bool) -> None:
        self._weighted = enabled

    @property
    def category_weights(self) -> Dict[str, float]:
        return dict(self._weights)
