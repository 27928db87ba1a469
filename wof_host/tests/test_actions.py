import json
import logging

import pytest
import redis

from wof_core.models import WedgeType
from wof_core.state import GameStore
from wof_host.actions import handle_action, parse_message, safe_handle_action


def act(session, message):
    return json.loads(handle_action(session, message))


@pytest.mark.parametrize("message,expected", [
    ("spin", ("spin", {})),
    ("  Guess t ", ("guess", {"letter": "t"})),
    ("consonant R", ("guess", {"letter": "R"})),
    ("buy E", ("buy_vowel", {"letter": "E"})),
    ("solve bob's cab", ("solve", {"guess": "bob's cab"})),
    ("next", ("next_round", {})),
    ('{"action": "use_free_spin"}', ("free_spin", {"action": "use_free_spin"})),
    ('{"action": "GUESS", "letter": "T"}', ("guess", {"action": "GUESS", "letter": "T"})),
    ("", ("", {})),
])
def test_parse_message(message, expected):
    assert parse_message(message) == expected


def test_state(session):
    out = act(session, "state")
    assert out["success"]
    assert out["action"] == "state"
    assert out["updates"]["puzzle"] == "___'_ ___"


def test_spin_then_guess(session):
    out = act(session, '{"action": "spin", "velocity": 30}')
    assert out["success"]
    assert out["wedge"]["value"] == 500
    assert out["updates"]["phase"] == "GUESSING"

    out = act(session, "guess b")
    assert out["success"]
    assert out["result"]["count"] == 3
    assert out["updates"]["score"] == 1500
    assert "You earn 1500" in out["details"]


def test_rejected_moves_report_error_code(session):
    out = act(session, "guess B")
    assert not out["success"]
    assert out["error"] == "CANNOT_GUESS_YET"

    out = act(session, "buy_vowel E")
    assert out["error"] == "INSUFFICIENT_FUNDS"

    act(session, "spin")
    assert act(session, "guess A")["error"] == "NOT_A_CONSONANT"


def test_non_string_letter_is_rejected_cleanly(session):
    act(session, "spin")
    out = act(session, '{"action": "guess", "letter": 7}')
    assert out["error"] == "NOT_A_CONSONANT"


@pytest.mark.parametrize("velocity", ['"fast"', "-3", "[1]"])
def test_bad_velocity(session, velocity):
    out = act(session, '{"action": "spin", "velocity": %s}' % velocity)
    assert not out["success"]
    assert out["details"].startswith("Bad velocity")
    assert out["updates"]["phase"] == "IDLE"


def test_solve_then_round_over(session):
    out = act(session, "solve Bob's cab")
    assert out["success"]
    assert out["result"]["is_correct"]
    assert out["updates"]["has_won"]

    out = act(session, "spin")
    assert out["error"] == "ROUND_ALREADY_OVER"

    out = act(session, "next_round")
    assert out["success"]
    assert not out["updates"]["has_won"]


def test_wrong_solve(session):
    out = act(session, "solve BOBS CAR")
    assert out["success"]
    assert not out["result"]["is_correct"]
    assert out["details"] == "Incorrect. Turn ends."


def test_free_spin(make_session):
    session = make_session(WedgeType.FREE_SPIN)
    session.new_game()
    assert act(session, "free_spin")["error"] == "NO_FREE_SPIN"
    act(session, "spin")
    out = act(session, "free_spin")
    assert out["success"]
    assert out["updates"]["free_spin_tokens"] == 0


def test_buy_vowel(session):
    act(session, "spin")
    act(session, "guess B")
    out = act(session, '{"action": "buy_vowel", "letter": "o"}')
    assert out["success"]
    assert out["result"]["is_vowel"]
    assert out["updates"]["score"] == 1250
    assert out["updates"]["guessed_vowels"] == ["O"]


def test_new_game_without_phrases(make_session):
    session = make_session(phrases=[])
    out = act(session, "new_game")
    assert not out["success"]
    assert out["details"] == "No phrases available"


def test_unknown_action(session, caplog):
    with caplog.at_level(logging.WARNING, logger="wof_host.actions"):
        out = act(session, "dance")
    assert not out["success"]
    assert out["action"] == "dance"
    assert "Unknown action" in out["details"]
    assert "dance" in caplog.text


class _DownRedis:
    """Redis client whose every command fails as if the server were gone."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise redis.ConnectionError("Connection refused")
        return _fail


def test_store_outage_becomes_error_envelope(make_session, caplog):
    session = make_session()
    session.store = GameStore(client=_DownRedis(), prefix="down")

    with caplog.at_level(logging.ERROR, logger="wof_host.actions"):
        out = json.loads(safe_handle_action(session, "new_game"))

    assert out == {"action": "error", "success": False, "details": "Connection refused", "updates": {}}
    assert "new_game" in caplog.text


def test_safe_handle_action_passes_normal_replies_through(session):
    out = json.loads(safe_handle_action(session, "state"))
    assert out["success"]
    assert out["action"] == "state"
