"""Game rules and constants for Find the Impostor."""

from enum import Enum


class RoomStatus(str, Enum):
    """Coarse room lifecycle status as persisted on the room row."""

    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class Phase(str, Enum):
    """Current game phase (sub-phases of playing are derived, never stored)."""

    WAITING = "waiting"
    CLUE = "clue"
    VOTING = "voting"
    RESULTS = "results"
    FINISHED = "finished"


class Outcome(str, Enum):
    """Result of a round's vote."""

    CAUGHT = "caught"
    SURVIVED = "survived"
    NO_VOTES = "no_votes"


# Room defaults
MIN_PLAYERS = 3
MAX_PLAYERS = 10
IMPOSTOR_COUNT = 1
POINTS_TO_WIN = 10

# Join codes avoid easily confused characters (0/O, 1/I)
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6

MAX_CLUE_LENGTH = 80
MAX_USERNAME_LENGTH = 50

# Points per round outcome
POINTS_PER_ROUND = 1
REASON_CAUGHT = "caught the impostor"
REASON_SURVIVED = "survived the round"
