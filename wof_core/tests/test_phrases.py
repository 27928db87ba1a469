import random
from collections import Counter

import pytest

from wof_core.models import PhraseRecord
from wof_core.phrases import (
    PhraseSelector,
    load_phrases,
    random_element,
    weighted_random,
    weighted_random_multiple,
)

SMALL = [
    PhraseRecord(phrase="BREAK A LEG", category="Phrases"),
    PhraseRecord(phrase="WHEN PIGS FLY", category="Phrases"),
    PhraseRecord(phrase="GARDEN HOSE", category="Things"),
    PhraseRecord(phrase="PIZZA", category="Food"),
]


def test_load_phrases_reads_packaged_csv():
    phrases = load_phrases()
    assert len(phrases) >= 30
    assert phrases[0] == PhraseRecord(phrase="BREAK A LEG", category="Phrases")
    for record in phrases:
        assert record.phrase == record.phrase.upper()
        assert record.category


def test_selector_never_repeats_within_a_session():
    selector = PhraseSelector(rng=random.Random(3))
    seen = set()
    for _ in range(selector.total_count):
        selection = selector.get_random_phrase()
        assert selection.index not in seen
        assert selector.get_phrase_by_index(selection.index) == selection.phrase
        seen.add(selection.index)
    assert selector.is_exhausted()
    assert selector.get_remaining_count() == 0


def test_selector_starts_over_when_exhausted():
    selector = PhraseSelector(SMALL, rng=random.Random(0))
    for _ in range(len(SMALL)):
        selector.get_random_phrase()
    assert selector.used_count == 4

    selection = selector.get_random_phrase()

    assert selection is not None
    assert selector.used_count == 1
    assert selector.used_indices == {selection.index}


def test_category_filter():
    selector = PhraseSelector(SMALL, rng=random.Random(0))
    picks = {selector.get_random_phrase("Phrases").index for _ in range(2)}
    assert picks == {0, 1}
    assert selector.get_remaining_count("Phrases") == 0
    assert selector.get_remaining_count() == 2
    # exhausted category resets the whole session
    assert selector.get_random_phrase("Phrases").phrase.category == "Phrases"
    assert selector.used_count == 1


def test_unknown_category_or_empty_database_gives_none():
    assert PhraseSelector(SMALL).get_random_phrase("Nope") is None
    assert PhraseSelector([]).get_random_phrase() is None


def test_mark_phrase_used_ignores_out_of_range():
    selector = PhraseSelector(SMALL)
    selector.mark_phrase_used(2)
    selector.mark_phrase_used(99)
    selector.mark_phrase_used(-1)
    assert selector.used_indices == {2}
    assert selector.get_remaining_count("Things") == 0


def test_used_indices_is_a_copy():
    selector = PhraseSelector(SMALL)
    selector.used_indices.add(1)
    assert selector.used_count == 0


def test_reset_session():
    selector = PhraseSelector(SMALL)
    selector.get_random_phrase()
    selector.reset_session()
    assert selector.used_count == 0
    assert not selector.is_exhausted()


def test_accessors():
    selector = PhraseSelector(SMALL)
    assert selector.total_count == 4
    assert selector.all_phrases() == tuple(SMALL)
    assert selector.categories() == ["Food", "Phrases", "Things"]
    assert selector.get_phrase_by_index(4) is None
    assert selector.category_weights == {"Food": 1, "Phrases": 1, "Things": 1}


def test_category_weights_bias_selection():
    counts = Counter()
    for seed in range(300):
        selector = PhraseSelector(SMALL, rng=random.Random(seed))
        selector.set_category_weights({"Food": 50, "Phrases": 0, "Things": 0})
        counts[selector.get_random_phrase().phrase.category] += 1
    assert counts["Food"] == 300


def test_weights_ignored_when_category_given():
    selector = PhraseSelector(SMALL, rng=random.Random(1))
    selector.set_category_weights({"Food": 100})
    assert selector.get_random_phrase("Things").phrase.phrase == "GARDEN HOSE"


def test_reset_category_weights_turns_weighting_off():
    selector = PhraseSelector(SMALL)
    selector.set_category_weights({"Food": 5})
    selector.reset_category_weights()
    assert selector.category_weights["Food"] == 1
    selector.set_use_weighted_categories(True)
    assert selector.category_weights == {"Food": 1, "Phrases": 1, "Things": 1}


def test_random_element():
    assert random_element([]) is None
    assert random_element(["only"]) == "only"
    rng = random.Random(4)
    assert all(random_element("abc", rng) in "abc" for _ in range(20))


def test_weighted_random():
    rng = random.Random(8)
    assert weighted_random([], rng) is None
    assert all(weighted_random([("a", 0), ("b", 1)], rng) == "b" for _ in range(50))
    # zero total weight falls back to a uniform pick
    picks = {weighted_random([("a", 0), ("b", 0)], rng) for _ in range(50)}
    assert picks == {"a", "b"}


def test_weighted_random_multiple_draws_distinct_items():
    rng = random.Random(2)
    items = [("a", 1), ("b", 2), ("c", 3)]
    picks = weighted_random_multiple(items, 3, rng)
    assert sorted(picks) == ["a", "b", "c"]
    assert len(weighted_random_multiple(items, 10, rng)) == 3
    assert weighted_random_multiple(items, 0, rng) == []
    assert weighted_random_multiple([], 2, rng) == []


@pytest.mark.parametrize("seed", range(5))
def test_weighted_random_multiple_respects_zero_weights_first(seed):
    rng = random.Random(seed)
    picks = weighted_random_multiple([("zero", 0), ("one", 1)], 1, rng)
    assert picks == ["one"]
