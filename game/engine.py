"""Game engine: pure state transitions, no I/O."""

import dataclasses
import random
from typing import Iterable, Optional, Sequence

from game.errors import InvalidActionError
from game.rules import (
    MAX_CLUE_LENGTH,
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    Phase,
    RoomStatus,
)
from game.state import Participant, Room, RoomSnapshot, WordCategory
from game.turns import active_players, compute_turns


def derive_phase(snapshot: RoomSnapshot) -> Phase:
    """
    The one place the current phase is decided.

    Only waiting/playing/finished is stored on the room; while playing, the
    sub-phase follows from the round's clues and votes: clue until every
    active participant has a clue, voting until every active participant has
    voted, then results.
    """
    room = snapshot.room
    if room.status == RoomStatus.WAITING:
        return Phase.WAITING
    if room.status == RoomStatus.FINISHED:
        return Phase.FINISHED
    turns = compute_turns(snapshot.participants, snapshot.clues, room.current_round)
    if not turns.all_clues_submitted:
        return Phase.CLUE
    if not all_votes_cast(snapshot):
        return Phase.VOTING
    return Phase.RESULTS


def all_votes_cast(snapshot: RoomSnapshot) -> bool:
    """True when every active participant has voted in the current round."""
    round_no = snapshot.room.current_round
    voters = {v.voter_id for v in snapshot.votes if v.round == round_no}
    return all(p.user_id in voters for p in snapshot.participants if p.is_active)


def draw_word(categories: Iterable[WordCategory], rng: random.Random) -> Optional[str]:
    """Flatten every category and draw one word uniformly; None for an empty corpus."""
    words = [w for c in categories for w in c.words]
    if not words:
        return None
    return rng.choice(words)


def assign_impostors(
    participants: Sequence[Participant],
    impostor_count: int,
    rng: random.Random,
) -> list[Participant]:
    """
    Shuffle the active participants and flag the first impostor_count as impostors.
    Everyone else has the flag cleared. Returns new participants in input order.
    """
    pool = [p.id for p in active_players(participants)]
    rng.shuffle(pool)
    impostor_ids = set(pool[:impostor_count])
    return [dataclasses.replace(p, is_impostor=p.id in impostor_ids) for p in participants]


def start_game(
    room: Room,
    participants: Sequence[Participant],
    categories: Iterable[WordCategory],
    rng: random.Random,
) -> tuple[Room, list[Participant]]:
    """
    Leave the waiting room: draw the first word, pick impostors, round 1.
    Returns (new_room, new_participants); does not mutate input.
    """
    if room.status != RoomStatus.WAITING:
        raise InvalidActionError("Game already started")
    ready = [p for p in participants if p.is_active]
    if len(ready) < room.min_players:
        raise InvalidActionError(f"At least {room.min_players} ready players required")
    if room.impostor_count >= len(ready):
        raise InvalidActionError("impostor_count must be less than the number of ready players")
    word = draw_word(categories, rng)
    if word is None:
        raise InvalidActionError("No words available")
    new_participants = assign_impostors(participants, room.impostor_count, rng)
    new_room = dataclasses.replace(
        room,
        status=RoomStatus.PLAYING,
        current_round=1,
        secret_word=word,
        winner_id=None,
    )
    return new_room, new_participants


def find_winner(participants: Iterable[Participant], points_to_win: int) -> Optional[Participant]:
    """Highest scorer among those at or above points_to_win; equal points go to the lowest id."""
    reached = [p for p in participants if p.points >= points_to_win]
    if not reached:
        return None
    return sorted(reached, key=lambda p: (-p.points, p.id))[0]


def has_enough_players(participants: Iterable[Participant], impostor_count: int) -> bool:
    """A round needs more active players than impostors (so everyone has someone to vote for)."""
    return len(active_players(participants)) > impostor_count


def end_game(room: Room, participants: Iterable[Participant]) -> Room:
    """
    Finish the game early (too few players left). The current leader wins if
    anyone has scored; otherwise there is no winner.
    """
    leader = find_winner(participants, 1)
    return dataclasses.replace(room, status=RoomStatus.FINISHED, winner_id=leader.id if leader else None)


def advance_round(
    room: Room,
    participants: Sequence[Participant],
    categories: Iterable[WordCategory],
    rng: random.Random,
) -> tuple[Room, list[Participant]]:
    """
    Leave the results phase. If someone reached points_to_win the room finishes
    with them as winner. With no more active players than impostors left the
    game ends early (see end_game). Otherwise a new word is drawn, the round
    number goes up and impostors are reshuffled from scratch.
    Returns (new_room, new_participants).
    """
    if room.status != RoomStatus.PLAYING:
        raise InvalidActionError("Game is not in progress")
    winner = find_winner(participants, room.points_to_win)
    if winner is not None:
        return dataclasses.replace(room, status=RoomStatus.FINISHED, winner_id=winner.id), list(participants)
    if not has_enough_players(participants, room.impostor_count):
        return end_game(room, participants), list(participants)

    # An empty corpus keeps the previous word rather than blocking the game
    word = draw_word(categories, rng) or room.secret_word
    new_participants = assign_impostors(participants, room.impostor_count, rng)
    new_room = dataclasses.replace(
        room,
        current_round=room.current_round + 1,
        secret_word=word,
    )
    return new_room, new_participants


def validate_clue_text(text: Optional[str]) -> str:
    """Return the stripped clue or raise InvalidActionError."""
    clue = (text or "").strip()
    if not clue:
        raise InvalidActionError("Clue is required and non-empty")
    if len(clue) > MAX_CLUE_LENGTH:
        raise InvalidActionError(f"Clue must be at most {MAX_CLUE_LENGTH} characters")
    return clue


def validate_vote(snapshot: RoomSnapshot, voter_id: str, target_id: str) -> None:
    """Raise InvalidActionError unless voter may vote for target this round."""
    voter = snapshot.get_by_user(voter_id)
    if voter is None or not voter.is_active:
        raise InvalidActionError("Only active players can vote")
    if target_id == voter_id:
        raise InvalidActionError("You cannot vote for yourself")
    target = snapshot.get_by_user(target_id)
    if target is None or not target.is_active:
        raise InvalidActionError("Valid target required (active player, not self)")
    round_no = snapshot.room.current_round
    if any(v.voter_id == voter_id and v.round == round_no for v in snapshot.votes):
        raise InvalidActionError("Already voted")


def generate_room_code(rng: random.Random, taken: Iterable[str] = ()) -> str:
    """Random join code not in taken."""
    taken = set(taken)
    while True:
        code = "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
        if code not in taken:
            return code
