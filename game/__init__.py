"""Game engine for Find the Impostor."""

from game.engine import (
    derive_phase,
    all_votes_cast,
    draw_word,
    assign_impostors,
    start_game,
    advance_round,
    find_winner,
    has_enough_players,
    end_game,
    validate_clue_text,
    validate_vote,
    generate_room_code,
)
from game.errors import (
    GameError,
    InvalidActionError,
    NotAllowedError,
    NotFoundError,
    DuplicateSubmissionError,
    TransientStoreError,
)
from game.rules import RoomStatus, Phase, Outcome
from game.state import (
    Room,
    Participant,
    Clue,
    Vote,
    PointChange,
    RoundResult,
    RoomSnapshot,
    WordCategory,
)
from game.tally import count_votes, top_voted, resolve_votes, apply_point_changes
from game.turns import TurnSlot, TurnState, active_players, compute_turns

__all__ = [
    "derive_phase",
    "all_votes_cast",
    "draw_word",
    "assign_impostors",
    "start_game",
    "advance_round",
    "find_winner",
    "has_enough_players",
    "end_game",
    "validate_clue_text",
    "validate_vote",
    "generate_room_code",
    "GameError",
    "InvalidActionError",
    "NotAllowedError",
    "NotFoundError",
    "DuplicateSubmissionError",
    "TransientStoreError",
    "RoomStatus",
    "Phase",
    "Outcome",
    "Room",
    "Participant",
    "Clue",
    "Vote",
    "PointChange",
    "RoundResult",
    "RoomSnapshot",
    "WordCategory",
    "count_votes",
    "top_voted",
    "resolve_votes",
    "apply_point_changes",
    "TurnSlot",
    "TurnState",
    "active_players",
    "compute_turns",
]
