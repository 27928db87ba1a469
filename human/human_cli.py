#!/usr/bin/env python3
import logging
import sys
from typing import Optional

from wof_core.constants import VOWEL_COST
from wof_core.models import GamePhase
from wof_core.turn_state import is_consonant, is_vowel
from wof_host.session import GameSession, build_session


def show_state(session: GameSession) -> None:
    snap = session.snapshot()
    print("\n=== Wheel Game ===")
    print(f"Category: {snap['category']}")
    print(f"Puzzle:   {' '.join('*' if ch == ' ' else ch for ch in snap['puzzle'])}")
    print(f"Score:    {snap['score']}   Free spins: {snap['free_spin_tokens']}")
    print(f"Guessed consonants: {', '.join(snap['guessed_consonants']) or '-'}")
    print(f"Guessed vowels:     {', '.join(snap['guessed_vowels']) or '-'}")


def handle_spin(session: GameSession) -> None:
    result = session.spin()
    if not result:
        print(f"Cannot spin right now ({result.error.value}).")
        return
    wedge = result.value.wedge
    print(f"You spun: {wedge.label}")

    phase = session.machine.phase
    if phase != GamePhase.GUESSING:
        # bankrupt, lose a turn and free spin all settle straight back to IDLE
        print(f"Turn over. Score is {session.machine.score}.")
        return

    while True:
        guess = input("Enter a consonant: ").strip().upper()
        if not is_consonant(guess):
            print("Please enter a single consonant (A/E/I/O/U are vowels).")
            continue
        if session.machine.is_letter_guessed(guess):
            print("That letter was already guessed. Try another.")
            continue
        break

    res = session.guess_consonant(guess).value
    if res.is_correct:
        print(f"'{guess}' appears {res.count} time(s). You earn {res.points_earned}.")
    else:
        print(f"'{guess}' is not in the puzzle.")


def handle_buy_vowel(session: GameSession) -> None:
    if session.machine.score < VOWEL_COST:
        print(f"Insufficient funds. You have {session.machine.score}, need {VOWEL_COST}.")
        return
    while True:
        guess = input("Enter a vowel (A/E/I/O/U): ").strip().upper()
        if not is_vowel(guess):
            print("Please enter a single vowel (A/E/I/O/U).")
            continue
        if session.machine.is_letter_guessed(guess):
            print("That vowel was already bought. Try another.")
            continue
        break
    res = session.buy_vowel(guess)
    if not res:
        print(f"Cannot buy a vowel right now ({res.error.value}).")
        return
    print(f"Revealed '{guess}' {res.value.count} time(s).")


def handle_solve(session: GameSession) -> None:
    attempt = input("Enter your solution: ").strip()
    res = session.solve(attempt)
    if not res:
        print(f"Cannot solve right now ({res.error.value}).")
    elif res.value.is_correct:
        print("Correct! You solved the puzzle!")
    else:
        print(f"Incorrect. The attempt '{attempt}' does not match.")


def handle_free_spin(session: GameSession) -> None:
    res = session.use_free_spin()
    if not res:
        print("You have no free spins.")
    else:
        print(f"Free spin used. {session.machine.free_spin_tokens} left.")


def main(session: Optional[GameSession] = None) -> int:
    if session is None:
        session = build_session()
    if not session.machine.phrase:
        if session.new_game() is None:
            print("No phrases available.")
            return 1

    show_state(session)

    while True:
        print("\nChoose action: [1] Spin  [2] Buy vowel  [3] Solve  [4] Use free spin  [q] Quit")
        choice = input("> ").strip().lower()
        if choice == "q":
            return 0
        if choice not in {"1", "2", "3", "4"}:
            print("Invalid choice. Try again.")
            continue

        if choice == "1":
            handle_spin(session)
        elif choice == "2":
            handle_buy_vowel(session)
        elif choice == "3":
            handle_solve(session)
        elif choice == "4":
            handle_free_spin(session)

        show_state(session)
        if session.machine.has_won:
            print(f"Round over. Final score: {session.machine.score}")
            again = input("Play the next round? [y/N] ").strip().lower()
            if again != "y" or session.next_round() is None:
                return 0
            show_state(session)


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nStopped by user.")
        sys.exit(0)
