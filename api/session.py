"""Room session: follow one room's change feed and react to every change.

A session owns one subscription and one dispatcher task. Each burst of change
events is coalesced into a single fresh snapshot read; the phase and turn
state are recomputed from it, listeners are called, and the bot manager gets
a chance to schedule bot actions. leave() tears all of that down, so nothing
keeps running for a room nobody is watching.
"""

import asyncio
import logging
from contextlib import suppress
from typing import Callable, Optional

from game.engine import derive_phase
from game.errors import TransientStoreError
from game.rules import Phase
from game.state import RoomSnapshot
from game.turns import TurnState, compute_turns

from bots.driver import BotTurnManager

from api.game_store import RoomStore, Subscription

logger = logging.getLogger(__name__)

Listener = Callable[["RoomSession"], None]


class RoomSession:
    """Scoped subscription to one room. Use enter()/leave() or `async with`."""

    def __init__(
        self,
        store: RoomStore,
        room_id: str,
        bots: Optional[BotTurnManager] = None,
        viewer_id: Optional[str] = None,
    ):
        self.store = store
        self.room_id = room_id
        self.bots = bots
        self.viewer_id = viewer_id
        self.latest: Optional[RoomSnapshot] = None
        self.phase: Optional[Phase] = None
        self.turns: Optional[TurnState] = None
        self.closed = False
        self._listeners: list[Listener] = []
        self._subscription: Optional[Subscription] = None
        self._dispatcher: Optional[asyncio.Task] = None
        self._busy = False

    def add_listener(self, listener: Listener) -> None:
        """Call listener(session) after every refresh."""
        self._listeners.append(listener)

    @property
    def active(self) -> bool:
        return self._dispatcher is not None and not self._dispatcher.done()

    async def enter(self) -> "RoomSession":
        if self._subscription is not None:
            return self
        self._subscription = self.store.feed.subscribe(self.room_id)
        await self.refresh()
        self._dispatcher = asyncio.ensure_future(self._dispatch())
        logger.debug("Session for room %s started", self.room_id)
        return self

    async def leave(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
        if self._dispatcher is not None and not self._dispatcher.done():
            self._dispatcher.cancel()
            with suppress(asyncio.CancelledError):
                await self._dispatcher
        if self.bots is not None:
            self.bots.close()
        if not self.closed:
            self.closed = True
            logger.debug("Session for room %s closed", self.room_id)

    async def __aenter__(self) -> "RoomSession":
        return await self.enter()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.leave()

    # -- Dispatch ------------------------------------------------------------

    async def refresh(self) -> Optional[RoomSnapshot]:
        """Read a fresh snapshot and push it to listeners and bots. None once the room is gone."""
        try:
            snapshot = await self.store.read_snapshot(self.room_id)
        except TransientStoreError as e:
            logger.warning("Could not refresh room %s: %s", self.room_id, e)
            return self.latest
        if snapshot is None:
            self.latest = None
            self.phase = None
            self.turns = None
            return None

        room = snapshot.room
        self.latest = snapshot
        self.phase = derive_phase(snapshot)
        self.turns = compute_turns(snapshot.participants, snapshot.clues, room.current_round, self.viewer_id)
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Listener failed for room %s", self.room_id)
        if self.bots is not None:
            self.bots.on_snapshot(snapshot)
        return snapshot

    async def _dispatch(self) -> None:
        sub = self._subscription
        while sub is not None and not sub.closed:
            await sub.get()
            self._busy = True
            try:
                sub.drain()
                if await self.refresh() is None:
                    logger.info("Room %s is gone; closing its session", self.room_id)
                    sub.close()
                    if self.bots is not None:
                        self.bots.close()
                    self.closed = True
                    return
            finally:
                self._busy = False

    async def settle(self) -> None:
        """
        Wait until the session has nothing left to do: no queued events, no
        refresh in progress and no bot action in flight.
        """
        while True:
            await asyncio.sleep(0)
            if self.bots is not None and self.bots.pending:
                await self.bots.wait_idle()
                continue
            if not self.active:
                return
            queued = self._subscription.pending() if self._subscription is not None else 0
            if queued or self._busy:
                continue
            # One more turn of the loop to let a just-woken dispatcher start
            await asyncio.sleep(0)
            queued = self._subscription.pending() if self._subscription is not None else 0
            if not queued and not self._busy and not (self.bots and self.bots.pending):
                return
