"""Game state types for Find the Impostor."""

from dataclasses import dataclass, field
from typing import Optional

from game.rules import (
    IMPOSTOR_COUNT,
    MAX_PLAYERS,
    MIN_PLAYERS,
    POINTS_TO_WIN,
    Outcome,
    RoomStatus,
)


@dataclass(frozen=True)
class Room:
    """One game session, identified by a short join code."""

    id: str
    code: str
    host_id: str
    status: RoomStatus = RoomStatus.WAITING
    current_round: int = 0
    min_players: int = MIN_PLAYERS
    max_players: int = MAX_PLAYERS
    impostor_count: int = IMPOSTOR_COUNT
    secret_word: Optional[str] = None
    points_to_win: int = POINTS_TO_WIN
    winner_id: Optional[str] = None  # participant id, set when finished


@dataclass(frozen=True)
class Participant:
    """A human or bot occupying a seat in a room."""

    id: str
    room_id: str
    user_id: str
    is_impostor: bool = False
    is_eliminated: bool = False
    is_ready: bool = False
    is_bot: bool = False
    bot_name: Optional[str] = None
    username: Optional[str] = None
    points: int = 0

    @property
    def is_active(self) -> bool:
        """Active for turn purposes: not eliminated and ready."""
        return not self.is_eliminated and self.is_ready

    @property
    def name(self) -> str:
        if self.is_bot:
            return self.bot_name or "Bot"
        return self.username or "Player"


@dataclass(frozen=True)
class Clue:
    """A short text hint, one per participant per round."""

    id: str
    room_id: str
    round: int
    user_id: str
    text: str


@dataclass(frozen=True)
class Vote:
    """One participant's vote in a round."""

    id: str
    room_id: str
    round: int
    voter_id: str
    target_id: str


@dataclass(frozen=True)
class PointChange:
    """Points awarded to one participant at the end of a round."""

    user_id: str
    points_gained: int
    reason: str


@dataclass(frozen=True)
class RoundResult:
    """Outcome of a round's vote plus the points it awarded."""

    room_id: str
    round: int
    outcome: Outcome
    vote_counts: dict[str, int] = field(default_factory=dict)
    voted_out_id: Optional[str] = None  # user id of the plurality candidate
    caught_impostor_id: Optional[str] = None
    point_changes: tuple[PointChange, ...] = ()

    @property
    def impostor_caught(self) -> bool:
        return self.outcome == Outcome.CAUGHT


@dataclass(frozen=True)
class WordCategory:
    """A named list of candidate secret words."""

    name: str
    words: tuple[str, ...]


@dataclass(frozen=True)
class RoomSnapshot:
    """Everything the derivations need, read in one batch.

    clues and votes hold the current round only.
    """

    room: Room
    participants: tuple[Participant, ...]
    clues: tuple[Clue, ...] = ()
    votes: tuple[Vote, ...] = ()
    result: Optional[RoundResult] = None

    def get_participant(self, participant_id: str) -> Optional[Participant]:
        """Return participant by id or None."""
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None

    def get_by_user(self, user_id: str) -> Optional[Participant]:
        """Return participant by user id or None."""
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    def get_active_players(self) -> list[Participant]:
        return [p for p in self.participants if p.is_active]
