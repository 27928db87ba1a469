from wof_core.constants import MAX_GAME_HISTORY
from wof_core.models import GamePhase, GameRecord, GameState, GuessedLetters, WedgeResult, WedgeType
from wof_core.state import GameStore


def sample_state(**fields):
    values = dict(
        phase=GamePhase.GUESSING,
        score=750,
        current_wedge_result=WedgeResult(type=WedgeType.POINTS, value=500, wedge_id="w0"),
        guessed_letters=GuessedLetters(consonants=frozenset("DT"), vowels=frozenset("O")),
        free_spin_tokens=1,
        phrase="WRONG HOLE BUDDY",
        category="Test",
    )
    values.update(fields)
    return GameState(**values)


def test_start_new_game_assigns_increasing_ids(store):
    assert store.current_game_id() is None
    assert store.start_new_game(sample_state()) == 1
    assert store.start_new_game(sample_state()) == 2
    assert store.current_game_id() == 2


def test_state_round_trips_through_redis(store):
    state = sample_state()
    store.start_new_game(state)
    assert store.load_state() == state


def test_hash_holds_masked_puzzle_not_the_answer(store, redis_client):
    store.start_new_game(sample_state())
    data = redis_client.hgetall("test:game:1")
    assert data["puzzle"] == "__O__ _O__ __DD_"
    assert "WRONG" not in "".join(data.values())
    assert data["status"] == "active"
    assert redis_client.get("test:game:1:answer") == "WRONG HOLE BUDDY"
    assert store.get_field("phase") == "GUESSING"


def test_save_state_overwrites_current_game(store):
    store.start_new_game(sample_state())
    store.save_state(sample_state(phase=GamePhase.ROUND_OVER, has_won=True, current_wedge_result=None))
    loaded = store.load_state()
    assert loaded.has_won
    assert loaded.current_wedge_result is None
    assert store.get_field("status") == "finished"
    assert store.current_game_id() == 1


def test_save_state_without_a_game_starts_one(store):
    store.save_state(sample_state())
    assert store.current_game_id() == 1


def test_load_state_without_game(store):
    assert store.load_state() is None
    assert store.get_field("score") is None


def test_malformed_letter_list_is_discarded(store, redis_client):
    store.start_new_game(sample_state())
    redis_client.hset("test:game:1", "guessed_vowels", "not json")
    assert store.load_state().guessed_letters.vowels == frozenset()


def test_high_score_only_goes_up(store):
    assert store.get_high_score() == 0
    assert not store.save_high_score(0)
    assert store.save_high_score(900)
    assert not store.save_high_score(400)
    assert not store.save_high_score(900)
    assert store.get_high_score() == 900


def test_history_is_capped_and_newest_first(store):
    for score in range(MAX_GAME_HISTORY + 5):
        store.record_game(GameRecord(score=score, phrase="P", category="C", won=score % 2 == 0))
    history = store.get_history()
    assert len(history) == MAX_GAME_HISTORY
    assert history[0].score == MAX_GAME_HISTORY + 4
    assert all(record.date for record in history)
    assert store.get_games_played() == MAX_GAME_HISTORY + 5
    assert store.get_total_score() == sum(range(MAX_GAME_HISTORY + 5))


def test_stats(store):
    store.save_high_score(1200)
    store.record_game(GameRecord(score=1200, won=True, date="2024-01-01"))
    store.record_game(GameRecord(score=0, won=False))
    stats = store.get_stats()
    assert stats == {
        "high_score": 1200,
        "games_played": 2,
        "total_score": 1200,
        "average_score": 600,
        "rounds_won": 1,
    }
    assert store.get_history()[1].date == "2024-01-01"


def test_used_phrases_replace_previous_set(store):
    assert store.load_used_phrases() == set()
    store.save_used_phrases({1, 4, 7})
    assert store.load_used_phrases() == {1, 4, 7}
    store.save_used_phrases([2])
    assert store.load_used_phrases() == {2}
    store.save_used_phrases([])
    assert store.load_used_phrases() == set()


def test_prefixes_keep_stores_apart(redis_client):
    a = GameStore(client=redis_client, prefix="a")
    b = GameStore(client=redis_client, prefix="b")
    a.save_high_score(100)
    assert b.get_high_score() == 0


def test_loaded_letters_stay_disjoint(store):
    store.start_new_game(sample_state())
    letters = store.load_state().guessed_letters
    assert letters.is_disjoint()
    assert letters.all() == frozenset("DTO")
