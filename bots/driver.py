"""Bot turn manager: run bot clues and votes against the room store.

on_snapshot() is called with every fresh snapshot of a room. It decides,
without awaiting, which bots should act and marks them as triggered for the
round before scheduling the action, so a burst of change events cannot
trigger the same bot twice. The scheduled action checks the store again
before and after its human-like delay, and treats a uniqueness violation as
"already submitted".
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from game.engine import derive_phase
from game.errors import DuplicateSubmissionError, GameError
from game.rules import Phase, RoomStatus
from game.state import Clue, Participant, RoomSnapshot, Vote
from game.turns import compute_turns

from bots.policy import choose_clue, choose_vote_target
from bots.timing import BotTiming, get_bot_timing

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class BotTurnManager:
    """Drives every bot seat of one room."""

    def __init__(
        self,
        store: Any,
        rng: Optional[random.Random] = None,
        timing: Optional[BotTiming] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.store = store
        self.rng = rng or random.Random()
        self.timing = timing or get_bot_timing()
        self._sleep = sleep
        self._round: Optional[int] = None
        # (bot user id, round) keys already scheduled
        self._clue_triggered: set[tuple[str, int]] = set()
        self._vote_triggered: set[tuple[str, int]] = set()
        self._tasks: set[asyncio.Task] = set()

    # -- Triggering ----------------------------------------------------------

    def on_snapshot(self, snapshot: RoomSnapshot) -> list[asyncio.Task]:
        """Schedule whatever bot actions this snapshot calls for. Returns the new tasks."""
        room = snapshot.room
        if room.current_round != self._round:
            self._round = room.current_round
            self._clue_triggered.clear()
            self._vote_triggered.clear()

        phase = derive_phase(snapshot)
        scheduled: list[asyncio.Task] = []

        if phase == Phase.CLUE:
            turns = compute_turns(snapshot.participants, snapshot.clues, room.current_round)
            bot = turns.current_turn_player
            if bot is not None and bot.is_bot:
                key = (bot.user_id, room.current_round)
                if key not in self._clue_triggered:
                    self._clue_triggered.add(key)
                    logger.debug("Scheduling clue for bot %s in round %d", bot.name, room.current_round)
                    scheduled.append(
                        self._spawn(self._clue_turn(room.id, room.current_round, bot), self._clue_triggered, key)
                    )

        elif phase == Phase.VOTING:
            voted = {v.voter_id for v in snapshot.votes}
            for bot in snapshot.participants:
                if not bot.is_bot or not bot.is_active or bot.user_id in voted:
                    continue
                key = (bot.user_id, room.current_round)
                if key in self._vote_triggered:
                    continue
                self._vote_triggered.add(key)
                logger.debug("Scheduling vote for bot %s in round %d", bot.name, room.current_round)
                scheduled.append(
                    self._spawn(self.submit_bot_vote(room.id, room.current_round, bot), self._vote_triggered, key)
                )

        return scheduled

    def _spawn(self, coro: Awaitable[Any], triggered: set, key: tuple[str, int]) -> asyncio.Task:
        task = asyncio.ensure_future(self._guarded(coro, triggered, key))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guarded(self, coro: Awaitable[Any], triggered: set, key: tuple[str, int]) -> Any:
        try:
            return await coro
        except GameError as e:
            # Un-mark so the next snapshot can try again
            triggered.discard(key)
            logger.warning("Bot action failed: %s", e)
            return None

    async def _clue_turn(self, room_id: str, round: int, bot: Participant) -> Optional[Clue]:
        await self._sleep(self.timing.trigger_delay)
        return await self.submit_bot_clue(room_id, round, bot)

    # -- Actions -------------------------------------------------------------

    async def _still_playing(self, room_id: str, round: int, bot: Participant) -> Optional[RoomSnapshot]:
        """Fresh snapshot if the round is still current and the bot still active, else None."""
        snapshot = await self.store.read_snapshot(room_id)
        if snapshot is None:
            return None
        if snapshot.room.status != RoomStatus.PLAYING or snapshot.room.current_round != round:
            logger.debug("Dropping stale action of bot %s for round %d", bot.name, round)
            return None
        current = snapshot.get_by_user(bot.user_id)
        if current is None or not current.is_active:
            return None
        return snapshot

    async def submit_bot_clue(self, room_id: str, round: int, bot: Participant) -> Optional[Clue]:
        """Submit one clue for bot in round, at most once. Returns the clue or None if skipped."""
        if await self.store.get_clue(room_id, round, bot.user_id) is not None:
            return None
        text = choose_clue(bot.is_impostor, self.rng)
        await self._sleep(self.timing.random_clue_delay(self.rng))

        if await self._still_playing(room_id, round, bot) is None:
            return None
        if await self.store.get_clue(room_id, round, bot.user_id) is not None:
            return None
        try:
            clue = await self.store.add_clue(room_id, round, bot.user_id, text)
        except DuplicateSubmissionError:
            logger.debug("Bot %s clue for round %d already stored", bot.name, round)
            return None
        logger.debug("Bot %s gave clue %r in round %d", bot.name, text, round)
        return clue

    async def submit_bot_vote(self, room_id: str, round: int, bot: Participant) -> Optional[Vote]:
        """Cast one vote for bot in round, at most once. Returns the vote or None if skipped."""
        if await self.store.get_vote(room_id, round, bot.user_id) is not None:
            return None
        await self._sleep(self.timing.random_vote_delay(self.rng))

        snapshot = await self._still_playing(room_id, round, bot)
        if snapshot is None or derive_phase(snapshot) != Phase.VOTING:
            return None
        if any(v.voter_id == bot.user_id for v in snapshot.votes):
            return None
        me = snapshot.get_by_user(bot.user_id)
        target = choose_vote_target(me, snapshot.participants, self.rng)
        if target is None:
            logger.debug("Bot %s has nobody to vote for", bot.name)
            return None
        try:
            vote = await self.store.add_vote(room_id, round, bot.user_id, target.user_id)
        except DuplicateSubmissionError:
            logger.debug("Bot %s vote for round %d already stored", bot.name, round)
            return None
        logger.debug("Bot %s voted for %s in round %d", bot.name, target.name, round)
        return vote

    # -- Lifecycle -----------------------------------------------------------

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until no bot action is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel in-flight bot actions."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
