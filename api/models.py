"""Pydantic request/response models for the API."""

from pydantic import BaseModel, Field, model_validator

from game.rules import (
    IMPOSTOR_COUNT,
    MAX_CLUE_LENGTH,
    MAX_PLAYERS,
    MAX_USERNAME_LENGTH,
    MIN_PLAYERS,
    POINTS_TO_WIN,
    Phase,
)

# Hard limits for room settings (no magic numbers in validation)
MIN_ROOM_SIZE = 3
MAX_ROOM_SIZE = 20
MAX_POINTS_TO_WIN = 100


class RoomCreateRequest(BaseModel):
    """Body for POST /rooms."""

    user_id: str = Field(..., min_length=1, description="Host user id")
    username: str | None = Field(default=None, max_length=MAX_USERNAME_LENGTH)
    min_players: int = Field(default=MIN_PLAYERS, ge=MIN_ROOM_SIZE, le=MAX_ROOM_SIZE)
    max_players: int = Field(default=MAX_PLAYERS, ge=MIN_ROOM_SIZE, le=MAX_ROOM_SIZE)
    impostor_count: int = Field(default=IMPOSTOR_COUNT, ge=1, le=MAX_ROOM_SIZE - 1)
    points_to_win: int = Field(default=POINTS_TO_WIN, ge=1, le=MAX_POINTS_TO_WIN)

    @model_validator(mode="after")
    def settings_consistent(self) -> "RoomCreateRequest":
        if self.max_players < self.min_players:
            raise ValueError(f"max_players ({self.max_players}) must be >= min_players ({self.min_players})")
        if self.impostor_count >= self.min_players:
            raise ValueError(
                f"impostor_count ({self.impostor_count}) must be less than min_players ({self.min_players})"
            )
        return self


class JoinRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    username: str | None = Field(default=None, max_length=MAX_USERNAME_LENGTH)


class UserActionRequest(BaseModel):
    """Body for actions that only need to know who is acting (ready, leave, start, ...)."""

    user_id: str = Field(..., min_length=1)


class KickRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Acting host")
    participant_id: str = Field(..., min_length=1, description="Seat to remove")


class TransferHostRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Acting host")
    new_host_user_id: str = Field(..., min_length=1)


class ClueRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    text: str = Field(..., max_length=MAX_CLUE_LENGTH)


class VoteRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1, description="User id of the suspected impostor")


class RoomCreatedResponse(BaseModel):
    room_id: str
    code: str


class WordCategoryPublic(BaseModel):
    name: str
    words: list[str]


class ParticipantPublic(BaseModel):
    """Seat as shown to clients: impostor flag hidden from others until results."""

    id: str
    user_id: str
    name: str
    is_bot: bool
    is_ready: bool
    is_eliminated: bool
    points: int
    is_impostor: bool | None = Field(default=None, description="Set for the viewer's own seat, or for everyone once revealed")


class TurnSlotPublic(BaseModel):
    participant_id: str
    user_id: str
    name: str
    turn_number: int
    has_submitted: bool
    clue: str | None = None
    is_current_turn: bool


class CluePublic(BaseModel):
    user_id: str
    player_name: str
    text: str
    round: int


class VotePublic(BaseModel):
    """One vote in the current round (who voted for whom)."""

    voter_id: str
    voter_name: str
    target_id: str
    target_name: str


class PointChangePublic(BaseModel):
    user_id: str
    player_name: str
    points_gained: int
    reason: str


class RoundResultPublic(BaseModel):
    round: int
    outcome: str
    vote_counts: dict[str, int]
    voted_out_id: str | None = None
    impostor_caught: bool
    caught_impostor_id: str | None = None
    point_changes: list[PointChangePublic] = Field(default_factory=list)


class RoomStateResponse(BaseModel):
    """Public room state for GET /rooms/{code}."""

    room_id: str
    code: str
    host_id: str
    status: str
    phase: str
    current_round: int
    min_players: int
    max_players: int
    impostor_count: int
    points_to_win: int
    secret_word: str | None = Field(default=None, description="Hidden from impostors and spectators until roles are revealed")
    is_impostor: bool | None = Field(default=None, description="Viewer's own role; None for spectators")
    participants: list[ParticipantPublic]
    turn_order: list[TurnSlotPublic] = Field(default_factory=list)
    current_turn_user_id: str | None = None
    is_my_turn: bool = False
    clues: list[CluePublic] = Field(default_factory=list)
    votes: list[VotePublic] = Field(default_factory=list)
    result: RoundResultPublic | None = None
    winner_id: str | None = Field(default=None, description="Participant id of the winner once finished")
    winner_name: str | None = None


# Phases in which every impostor flag is public
REVEAL_PHASES = (Phase.RESULTS, Phase.FINISHED)


def room_state_to_public(view) -> RoomStateResponse:
    """Build public response from a RoomView; hide the word from impostors and roles from others."""
    snapshot = view.snapshot
    room = snapshot.room
    viewer = view.viewer
    reveal = view.phase in REVEAL_PHASES
    user_to_name = {p.user_id: p.name for p in snapshot.participants}

    participants_public = []
    for p in snapshot.participants:
        show_role = reveal or (viewer is not None and p.id == viewer.id)
        participants_public.append(
            ParticipantPublic(
                id=p.id,
                user_id=p.user_id,
                name=p.name,
                is_bot=p.is_bot,
                is_ready=p.is_ready,
                is_eliminated=p.is_eliminated,
                points=p.points,
                is_impostor=p.is_impostor if show_role else None,
            )
        )

    # Spectators and impostors learn the word when roles are revealed
    show_word = reveal or (viewer is not None and not viewer.is_impostor)
    secret_word = room.secret_word if show_word else None

    turns = view.turns
    turn_order_public = [
        TurnSlotPublic(
            participant_id=slot.participant.id,
            user_id=slot.participant.user_id,
            name=slot.participant.name,
            turn_number=slot.turn_number,
            has_submitted=slot.has_submitted,
            clue=slot.clue,
            is_current_turn=slot.is_current_turn,
        )
        for slot in turns.turn_order
    ]
    clues_public = [
        CluePublic(
            user_id=c.user_id,
            player_name=user_to_name.get(c.user_id, c.user_id),
            text=c.text,
            round=c.round,
        )
        for c in turns.round_clues
    ]
    votes_public = [
        VotePublic(
            voter_id=v.voter_id,
            voter_name=user_to_name.get(v.voter_id, v.voter_id),
            target_id=v.target_id,
            target_name=user_to_name.get(v.target_id, v.target_id),
        )
        for v in snapshot.votes
        if v.round == room.current_round
    ]

    result_public = None
    result = snapshot.result
    if result is not None and result.round == room.current_round:
        result_public = RoundResultPublic(
            round=result.round,
            outcome=result.outcome.value,
            vote_counts=dict(result.vote_counts),
            voted_out_id=result.voted_out_id,
            impostor_caught=result.impostor_caught,
            caught_impostor_id=result.caught_impostor_id,
            point_changes=[
                PointChangePublic(
                    user_id=pc.user_id,
                    player_name=user_to_name.get(pc.user_id, pc.user_id),
                    points_gained=pc.points_gained,
                    reason=pc.reason,
                )
                for pc in result.point_changes
            ],
        )

    current = turns.current_turn_player
    return RoomStateResponse(
        room_id=room.id,
        code=room.code,
        host_id=room.host_id,
        status=room.status.value,
        phase=view.phase.value,
        current_round=room.current_round,
        min_players=room.min_players,
        max_players=room.max_players,
        impostor_count=room.impostor_count,
        points_to_win=room.points_to_win,
        secret_word=secret_word,
        is_impostor=viewer.is_impostor if viewer is not None else None,
        participants=participants_public,
        turn_order=turn_order_public,
        current_turn_user_id=current.user_id if current else None,
        is_my_turn=turns.is_my_turn,
        clues=clues_public,
        votes=votes_public,
        result=result_public,
        winner_id=room.winner_id,
        winner_name=view.winner.name if view.winner else None,
    )
