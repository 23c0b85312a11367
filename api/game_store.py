"""In-memory room store with a per-room change feed. Replace with a DB later if needed.

Every coroutine below runs to completion without awaiting in the middle, so
on a single event loop each write and each snapshot read is atomic. The
uniqueness rules a real datastore would enforce with constraints are enforced
here by raising DuplicateSubmissionError.
"""

import asyncio
import dataclasses
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from game.errors import DuplicateSubmissionError, NotFoundError, TransientStoreError
from game.state import (
    Clue,
    Participant,
    Room,
    RoomSnapshot,
    RoundResult,
    Vote,
    WordCategory,
)
from game.tally import apply_point_changes
from game.words import DEFAULT_WORD_CATEGORIES

logger = logging.getLogger(__name__)

# Bounded retry for idempotent reads
READ_ATTEMPTS = 3
READ_RETRY_BACKOFF = 0.05  # seconds, multiplied by attempt number

# Room fields owned by round transitions
ROUND_FIELDS = ("status", "current_round", "secret_word", "winner_id")


@dataclass(frozen=True)
class ChangeEvent:
    """One row change: table is rooms, participants, clues, votes or results."""

    table: str
    room_id: str
    action: str  # insert, update, delete
    row_id: Optional[str] = None


class Subscription:
    """Handle for one subscriber's view of a room's change events."""

    def __init__(self, feed: "ChangeFeed", room_id: str):
        self.room_id = room_id
        self._feed = feed
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self.closed = False

    def push(self, event: ChangeEvent) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    async def get(self) -> ChangeEvent:
        """Wait for the next event."""
        return await self._queue.get()

    def drain(self) -> list[ChangeEvent]:
        """Pop every event already queued (used to coalesce bursts)."""
        events: list[ChangeEvent] = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._feed._remove(self)


class ChangeFeed:
    """Publish/subscribe of row changes, keyed by room id."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, room_id: str) -> Subscription:
        sub = Subscription(self, room_id)
        self._subscriptions.setdefault(room_id, []).append(sub)
        return sub

    def publish(self, event: ChangeEvent) -> None:
        for sub in list(self._subscriptions.get(event.room_id, ())):
            sub.push(event)

    def subscriber_count(self, room_id: str) -> int:
        return len(self._subscriptions.get(room_id, ()))

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.room_id)
        if subs and sub in subs:
            subs.remove(sub)
            if not subs:
                del self._subscriptions[sub.room_id]


def _new_id() -> str:
    return str(uuid.uuid4())


class RoomStore:
    """Rooms, participants, clues, votes and round results for every game."""

    def __init__(
        self,
        word_categories: Iterable[WordCategory] = DEFAULT_WORD_CATEGORIES,
        feed: Optional[ChangeFeed] = None,
    ):
        self.feed = feed or ChangeFeed()
        self._word_categories = tuple(word_categories)
        self._rooms: dict[str, Room] = {}
        # room_id -> participant_id -> participant, in join order
        self._participants: dict[str, dict[str, Participant]] = {}
        # (room_id, round, user_id) -> row; the keys are the uniqueness constraints
        self._clues: dict[tuple[str, int, str], Clue] = {}
        self._votes: dict[tuple[str, int, str], Vote] = {}
        # room_id -> latest round result
        self._results: dict[str, RoundResult] = {}

    def _emit(self, table: str, room_id: str, action: str, row_id: Optional[str] = None) -> None:
        self.feed.publish(ChangeEvent(table=table, room_id=room_id, action=action, row_id=row_id))

    def _require_room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    # -- Rooms ---------------------------------------------------------------

    async def create_room(self, code: str, host_id: str, **settings: Any) -> Room:
        code = code.upper()
        if any(r.code == code for r in self._rooms.values()):
            raise DuplicateSubmissionError(f"Room code {code} already in use")
        room = Room(id=_new_id(), code=code, host_id=host_id, **settings)
        self._rooms[room.id] = room
        self._participants[room.id] = {}
        self._emit("rooms", room.id, "insert", room.id)
        return room

    async def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    async def get_room_by_code(self, code: str) -> Optional[Room]:
        code = (code or "").strip().upper()
        for room in self._rooms.values():
            if room.code == code:
                return room
        return None

    async def list_rooms(self) -> list[Room]:
        return list(self._rooms.values())

    async def update_room(self, room_id: str, **changes: Any) -> Room:
        room = dataclasses.replace(self._require_room(room_id), **changes)
        self._rooms[room_id] = room
        self._emit("rooms", room_id, "update", room_id)
        return room

    async def delete_room(self, room_id: str) -> None:
        if self._rooms.pop(room_id, None) is None:
            return
        self._participants.pop(room_id, None)
        self._results.pop(room_id, None)
        for key in [k for k in self._clues if k[0] == room_id]:
            del self._clues[key]
        for key in [k for k in self._votes if k[0] == room_id]:
            del self._votes[key]
        self._emit("rooms", room_id, "delete", room_id)

    # -- Participants --------------------------------------------------------

    async def add_participant(
        self,
        room_id: str,
        user_id: str,
        participant_id: Optional[str] = None,
        **fields: Any,
    ) -> Participant:
        self._require_room(room_id)
        seats = self._participants[room_id]
        if any(p.user_id == user_id for p in seats.values()):
            raise DuplicateSubmissionError(f"User {user_id} already in room")
        participant = Participant(id=participant_id or _new_id(), room_id=room_id, user_id=user_id, **fields)
        if participant.id in seats:
            raise DuplicateSubmissionError(f"Participant {participant.id} already exists")
        seats[participant.id] = participant
        self._emit("participants", room_id, "insert", participant.id)
        return participant

    async def list_participants(self, room_id: str) -> list[Participant]:
        return list(self._participants.get(room_id, {}).values())

    async def get_participant(self, room_id: str, participant_id: str) -> Optional[Participant]:
        return self._participants.get(room_id, {}).get(participant_id)

    async def update_participant(self, room_id: str, participant_id: str, **changes: Any) -> Participant:
        seats = self._participants.get(room_id, {})
        if participant_id not in seats:
            raise NotFoundError(f"Participant {participant_id} not found")
        participant = dataclasses.replace(seats[participant_id], **changes)
        seats[participant_id] = participant
        self._emit("participants", room_id, "update", participant_id)
        return participant

    async def remove_participant(self, room_id: str, participant_id: str) -> None:
        seats = self._participants.get(room_id, {})
        if seats.pop(participant_id, None) is not None:
            self._emit("participants", room_id, "delete", participant_id)

    # -- Clues and votes -----------------------------------------------------

    async def add_clue(self, room_id: str, round: int, user_id: str, text: str) -> Clue:
        self._require_room(room_id)
        key = (room_id, round, user_id)
        if key in self._clues:
            raise DuplicateSubmissionError(f"Clue already submitted by {user_id} in round {round}")
        clue = Clue(id=_new_id(), room_id=room_id, round=round, user_id=user_id, text=text)
        self._clues[key] = clue
        self._emit("clues", room_id, "insert", clue.id)
        return clue

    async def get_clue(self, room_id: str, round: int, user_id: str) -> Optional[Clue]:
        return self._clues.get((room_id, round, user_id))

    async def list_clues(self, room_id: str, round: int) -> list[Clue]:
        return [c for (rid, rnd, _), c in self._clues.items() if rid == room_id and rnd == round]

    async def add_vote(self, room_id: str, round: int, voter_id: str, target_id: str) -> Vote:
        self._require_room(room_id)
        key = (room_id, round, voter_id)
        if key in self._votes:
            raise DuplicateSubmissionError(f"{voter_id} already voted in round {round}")
        vote = Vote(id=_new_id(), room_id=room_id, round=round, voter_id=voter_id, target_id=target_id)
        self._votes[key] = vote
        self._emit("votes", room_id, "insert", vote.id)
        return vote

    async def get_vote(self, room_id: str, round: int, voter_id: str) -> Optional[Vote]:
        return self._votes.get((room_id, round, voter_id))

    async def list_votes(self, room_id: str, round: int) -> list[Vote]:
        return [v for (rid, rnd, _), v in self._votes.items() if rid == room_id and rnd == round]

    # -- Round transitions ---------------------------------------------------

    async def get_round_result(self, room_id: str) -> Optional[RoundResult]:
        return self._results.get(room_id)

    async def save_round_result(self, result: RoundResult) -> RoundResult:
        """Store the round's result and add its points to the participants in one write."""
        room = self._require_room(result.room_id)
        if room.current_round != result.round:
            raise DuplicateSubmissionError(f"Round {result.round} is no longer current")
        existing = self._results.get(room.id)
        if existing is not None and existing.round == result.round:
            raise DuplicateSubmissionError(f"Round {result.round} already tallied")
        seats = self._participants[room.id]
        for p in apply_point_changes(seats.values(), result.point_changes):
            seats[p.id] = p
        self._results[room.id] = result
        self._emit("results", room.id, "insert", str(result.round))
        self._emit("participants", room.id, "update")
        return result

    async def commit_round(
        self,
        room: Room,
        participants: Iterable[Participant],
        expected_round: int,
    ) -> Room:
        """
        Write a round transition in one step: the round fields of the room
        (status, round, word, winner) and the impostor flag of every
        participant. Fails with DuplicateSubmissionError if the room is no
        longer on expected_round (someone else already advanced it). The
        previous round's result is dropped once the round number moves on.
        """
        current = self._require_room(room.id)
        if current.current_round != expected_round:
            raise DuplicateSubmissionError(f"Room already left round {expected_round}")
        seats = self._participants[room.id]
        for p in participants:
            if p.id in seats:
                seats[p.id] = dataclasses.replace(seats[p.id], is_impostor=p.is_impostor)
        updated = dataclasses.replace(
            current,
            **{name: getattr(room, name) for name in ROUND_FIELDS},
        )
        self._rooms[room.id] = updated
        result = self._results.get(room.id)
        if result is not None and result.round != updated.current_round:
            del self._results[room.id]
        self._emit("participants", room.id, "update")
        self._emit("rooms", room.id, "update", room.id)
        return updated

    # -- Reads ---------------------------------------------------------------

    async def _read_snapshot_once(self, room_id: str) -> Optional[RoomSnapshot]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        return RoomSnapshot(
            room=room,
            participants=tuple(self._participants.get(room_id, {}).values()),
            clues=tuple(await self.list_clues(room_id, room.current_round)),
            votes=tuple(await self.list_votes(room_id, room.current_round)),
            result=self._results.get(room_id),
        )

    async def read_snapshot(self, room_id: str) -> Optional[RoomSnapshot]:
        """
        Room, participants, current-round clues/votes and result in one read.
        Retried on TransientStoreError (bounded); None when the room is gone.
        """
        for attempt in range(1, READ_ATTEMPTS + 1):
            try:
                return await self._read_snapshot_once(room_id)
            except TransientStoreError as e:
                if attempt == READ_ATTEMPTS:
                    raise
                logger.warning("Snapshot read for %s failed (attempt %d): %s", room_id, attempt, e)
                await asyncio.sleep(READ_RETRY_BACKOFF * attempt)
        return None

    async def list_word_categories(self) -> list[WordCategory]:
        return list(self._word_categories)
