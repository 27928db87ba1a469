"""Tunable game rules and wheel constants."""

VOWELS = ["A", "E", "I", "O", "U"]

CONSONANTS = [
    "B", "C", "D", "F", "G", "H", "J", "K", "L", "M", "N",
    "P", "Q", "R", "S", "T", "V", "W", "X", "Y", "Z",
]

# Cost to buy a vowel (in points)
VOWEL_COST = 250

# Wheel
WHEEL_MIN_ROTATIONS = 3
FRAME_RATE = 60
MAX_SPIN_SECONDS = 15.0

# Persistence
MAX_GAME_HISTORY = 15

STATUS_ACTIVE = "active"
STATUS_FINISHED = "finished"
