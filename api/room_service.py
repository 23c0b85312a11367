"""Room service: every player and host action, applied against the room store.

Each action reads one snapshot, validates against it with the pure game
engine, and writes. Validation failures raise before anything is written.
Host-only actions check the acting user here rather than trusting the
client. A uniqueness violation on a clue or vote means the user's intent is
already satisfied, so it is answered with the stored row instead of an error.
"""

import logging
import random
import uuid
from dataclasses import dataclass
from typing import Optional

from game.engine import (
    advance_round,
    derive_phase,
    end_game,
    generate_room_code,
    has_enough_players,
    start_game,
    validate_clue_text,
    validate_vote,
)
from game.errors import (
    DuplicateSubmissionError,
    InvalidActionError,
    NotAllowedError,
    NotFoundError,
)
from game.rules import (
    IMPOSTOR_COUNT,
    MAX_PLAYERS,
    MIN_PLAYERS,
    POINTS_TO_WIN,
    Phase,
    RoomStatus,
)
from game.state import Clue, Participant, Room, RoomSnapshot, RoundResult, Vote
from game.tally import resolve_votes
from game.turns import TurnState, compute_turns

from bots.policy import pick_bot_name

from api.game_store import RoomStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomView:
    """What one viewer sees: snapshot plus everything derived from it."""

    snapshot: RoomSnapshot
    phase: Phase
    turns: TurnState
    viewer: Optional[Participant] = None
    winner: Optional[Participant] = None


def _require_host(room: Room, acting_user_id: str) -> None:
    if room.host_id != acting_user_id:
        raise NotAllowedError("Only the host can do that")


def _require_phase(snapshot: RoomSnapshot, *phases: Phase) -> Phase:
    phase = derive_phase(snapshot)
    if phase not in phases:
        wanted = " or ".join(p.value for p in phases)
        raise InvalidActionError(f"Only allowed in {wanted} phase (now {phase.value})")
    return phase


def _require_seat(snapshot: RoomSnapshot, user_id: str) -> Participant:
    participant = snapshot.get_by_user(user_id)
    if participant is None:
        raise NotAllowedError("You are not in this room")
    return participant


class RoomService:
    """Round/game controller over a RoomStore."""

    def __init__(self, store: RoomStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    # -- Reads ---------------------------------------------------------------

    async def get_room(self, code: str) -> Room:
        room = await self.store.get_room_by_code(code)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    async def get_snapshot(self, code: str) -> RoomSnapshot:
        room = await self.get_room(code)
        snapshot = await self.store.read_snapshot(room.id)
        if snapshot is None:
            raise NotFoundError("Room not found")
        return snapshot

    async def get_view(self, code: str, viewer_id: Optional[str] = None) -> RoomView:
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        return RoomView(
            snapshot=snapshot,
            phase=derive_phase(snapshot),
            turns=compute_turns(snapshot.participants, snapshot.clues, room.current_round, viewer_id),
            viewer=snapshot.get_by_user(viewer_id) if viewer_id else None,
            winner=snapshot.get_participant(room.winner_id) if room.winner_id else None,
        )

    # -- Lobby ---------------------------------------------------------------

    async def create_room(
        self,
        host_user_id: str,
        username: Optional[str] = None,
        min_players: int = MIN_PLAYERS,
        max_players: int = MAX_PLAYERS,
        impostor_count: int = IMPOSTOR_COUNT,
        points_to_win: int = POINTS_TO_WIN,
    ) -> Room:
        """Create a room; the host takes the first seat, already ready."""
        if impostor_count < 1:
            raise InvalidActionError("impostor_count must be at least 1")
        if min_players <= impostor_count:
            raise InvalidActionError("min_players must be greater than impostor_count")
        if max_players < min_players:
            raise InvalidActionError("max_players must be >= min_players")
        if points_to_win < 1:
            raise InvalidActionError("points_to_win must be at least 1")

        taken = [r.code for r in await self.store.list_rooms()]
        code = generate_room_code(self.rng, taken)
        room = await self.store.create_room(
            code,
            host_user_id,
            min_players=min_players,
            max_players=max_players,
            impostor_count=impostor_count,
            points_to_win=points_to_win,
        )
        await self.store.add_participant(room.id, host_user_id, username=username, is_ready=True)
        logger.info("Room %s created by %s", room.code, host_user_id)
        return room

    async def join_room(self, code: str, user_id: str, username: Optional[str] = None) -> Participant:
        """Take a seat. Joining a room you are already in returns your seat."""
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        existing = snapshot.get_by_user(user_id)
        if existing is not None:
            return existing
        if room.status != RoomStatus.WAITING:
            raise InvalidActionError("This room is already playing")
        if len(snapshot.participants) >= room.max_players:
            raise InvalidActionError("Room is full")
        try:
            participant = await self.store.add_participant(room.id, user_id, username=username)
        except DuplicateSubmissionError:
            seat = await self._seat(room.id, user_id)
            if seat is None:
                raise
            return seat
        logger.info("%s joined room %s", user_id, room.code)
        return participant

    async def _seat(self, room_id: str, user_id: str) -> Optional[Participant]:
        for p in await self.store.list_participants(room_id):
            if p.user_id == user_id:
                return p
        return None

    async def toggle_ready(self, code: str, user_id: str) -> Participant:
        snapshot = await self.get_snapshot(code)
        _require_phase(snapshot, Phase.WAITING)
        me = _require_seat(snapshot, user_id)
        return await self.store.update_participant(snapshot.room.id, me.id, is_ready=not me.is_ready)

    async def add_bot(self, code: str, acting_user_id: str) -> Participant:
        """Seat a bot (host only, waiting room only). Bots are always ready."""
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_host(room, acting_user_id)
        _require_phase(snapshot, Phase.WAITING)
        if len(snapshot.participants) >= room.max_players:
            raise InvalidActionError("Room is full")
        used = [p.bot_name for p in snapshot.participants if p.is_bot and p.bot_name]
        name = pick_bot_name(used, self.rng)
        bot = await self.store.add_participant(
            room.id,
            f"bot-{uuid.uuid4()}",
            is_bot=True,
            bot_name=name,
            is_ready=True,
        )
        logger.info("Bot %s joined room %s", name, room.code)
        return bot

    async def remove_bot(self, code: str, acting_user_id: str) -> Participant:
        """Remove the earliest-joined bot (host only, waiting room only)."""
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_host(room, acting_user_id)
        _require_phase(snapshot, Phase.WAITING)
        bots = [p for p in snapshot.participants if p.is_bot]
        if not bots:
            raise InvalidActionError("No bots to remove")
        await self.store.remove_participant(room.id, bots[0].id)
        logger.info("Bot %s left room %s", bots[0].name, room.code)
        return bots[0]

    async def kick_player(self, code: str, acting_user_id: str, participant_id: str) -> Participant:
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_host(room, acting_user_id)
        target = snapshot.get_participant(participant_id)
        if target is None:
            raise NotFoundError("Player not found")
        if target.user_id == acting_user_id:
            raise InvalidActionError("You cannot kick yourself")
        await self.store.remove_participant(room.id, target.id)
        logger.info("%s was kicked from room %s", target.name, room.code)
        await self._end_if_short_handed(room.id)
        return target

    async def transfer_host(self, code: str, acting_user_id: str, new_host_user_id: str) -> Room:
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_host(room, acting_user_id)
        target = snapshot.get_by_user(new_host_user_id)
        if target is None:
            raise NotFoundError("Player not found")
        if target.is_bot:
            raise InvalidActionError("A bot cannot be host")
        return await self.store.update_room(room.id, host_id=new_host_user_id)

    async def leave_room(self, code: str, user_id: str) -> Optional[Room]:
        """
        Give up a seat. A leaving host hands the room to the first other human
        still in the game; with no human left the room is deleted (returns None).
        """
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        me = _require_seat(snapshot, user_id)
        if room.host_id == user_id:
            others = [
                p for p in snapshot.participants
                if p.user_id != user_id and not p.is_bot and not p.is_eliminated
            ]
            if not others:
                await self.store.delete_room(room.id)
                logger.info("Room %s closed: host left and no players remain", room.code)
                return None
            room = await self.store.update_room(room.id, host_id=others[0].user_id)
        await self.store.remove_participant(room.id, me.id)
        return await self._end_if_short_handed(room.id) or room

    async def _end_if_short_handed(self, room_id: str) -> Optional[Room]:
        """
        After someone left a running game: finish it when no more active players
        than impostors remain, since nobody could finish the vote. Returns the
        finished room, or None when the game goes on.
        """
        snapshot = await self.store.read_snapshot(room_id)
        if snapshot is None or snapshot.room.status != RoomStatus.PLAYING:
            return None
        room = snapshot.room
        if has_enough_players(snapshot.participants, room.impostor_count):
            return None
        try:
            finished = await self.store.commit_round(
                end_game(room, snapshot.participants),
                snapshot.participants,
                expected_round=room.current_round,
            )
        except DuplicateSubmissionError:
            return None
        logger.info("Room %s finished early: too few players left", room.code)
        return finished

    # -- Game flow -----------------------------------------------------------

    async def start_game(self, code: str, acting_user_id: str) -> Room:
        """Host starts round 1: word, impostors and status are written together."""
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_host(room, acting_user_id)
        categories = await self.store.list_word_categories()
        new_room, participants = start_game(room, snapshot.participants, categories, self.rng)
        try:
            committed = await self.store.commit_round(new_room, participants, expected_round=room.current_round)
        except DuplicateSubmissionError:
            return await self.get_room(code)
        logger.info("Room %s started round 1", room.code)
        return committed

    async def submit_clue(self, code: str, user_id: str, text: Optional[str]) -> Clue:
        """Submit the acting user's clue. Only allowed on their turn."""
        clue_text = validate_clue_text(text)
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_phase(snapshot, Phase.CLUE)
        me = _require_seat(snapshot, user_id)
        if not me.is_active:
            raise InvalidActionError("Only active players can give clues")
        turns = compute_turns(snapshot.participants, snapshot.clues, room.current_round, user_id)
        if any(c.user_id == user_id for c in turns.round_clues):
            raise InvalidActionError("Clue already submitted")
        if not turns.is_my_turn:
            raise InvalidActionError("Not your turn")
        try:
            return await self.store.add_clue(room.id, room.current_round, user_id, clue_text)
        except DuplicateSubmissionError:
            existing = await self.store.get_clue(room.id, room.current_round, user_id)
            if existing is None:
                raise
            return existing

    async def cast_vote(self, code: str, voter_id: str, target_id: str) -> Vote:
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_phase(snapshot, Phase.VOTING)
        _require_seat(snapshot, voter_id)
        validate_vote(snapshot, voter_id, target_id)
        try:
            return await self.store.add_vote(room.id, room.current_round, voter_id, target_id)
        except DuplicateSubmissionError:
            existing = await self.store.get_vote(room.id, room.current_round, voter_id)
            if existing is None:
                raise
            return existing

    async def process_votes(self, code: str, acting_user_id: str) -> RoundResult:
        """Tally the round once (host only). Calling it again returns the stored result."""
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_host(room, acting_user_id)
        _require_phase(snapshot, Phase.RESULTS)
        if snapshot.result is not None and snapshot.result.round == room.current_round:
            return snapshot.result
        result = resolve_votes(snapshot.votes, snapshot.participants, room.id, room.current_round)
        try:
            saved = await self.store.save_round_result(result)
        except DuplicateSubmissionError:
            stored = await self.store.get_round_result(room.id)
            if stored is None or stored.round != room.current_round:
                raise
            return stored
        logger.info(
            "Room %s round %d: %s (%d point changes)",
            room.code, room.current_round, saved.outcome.value, len(saved.point_changes),
        )
        return saved

    async def next_round(self, code: str, acting_user_id: str) -> Room:
        """
        Leave the results phase (host only): finish the game if someone reached
        points_to_win, otherwise start the next round.
        """
        snapshot = await self.get_snapshot(code)
        room = snapshot.room
        _require_host(room, acting_user_id)
        _require_phase(snapshot, Phase.RESULTS)
        if snapshot.result is None or snapshot.result.round != room.current_round:
            await self.process_votes(code, acting_user_id)
            snapshot = await self.get_snapshot(code)
            room = snapshot.room

        categories = await self.store.list_word_categories()
        new_room, participants = advance_round(room, snapshot.participants, categories, self.rng)
        try:
            committed = await self.store.commit_round(new_room, participants, expected_round=room.current_round)
        except DuplicateSubmissionError:
            return await self.get_room(code)
        if committed.status == RoomStatus.FINISHED:
            winner = snapshot.get_participant(committed.winner_id) if committed.winner_id else None
            logger.info("Room %s finished; winner %s", room.code, winner.name if winner else None)
        else:
            logger.info("Room %s advanced to round %d", room.code, committed.current_round)
        return committed
