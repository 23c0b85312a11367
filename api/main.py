"""FastAPI app: rooms, lobby, bots and the clue/vote/results game flow."""

import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Iterator, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from game.errors import (
    DuplicateSubmissionError,
    GameError,
    InvalidActionError,
    NotAllowedError,
    NotFoundError,
    TransientStoreError,
)
from game.state import Room

from bots.driver import BotTurnManager

from api.game_store import RoomStore
from api.models import (
    ClueRequest,
    JoinRequest,
    KickRequest,
    RoomCreateRequest,
    RoomCreatedResponse,
    RoomStateResponse,
    TransferHostRequest,
    UserActionRequest,
    VoteRequest,
    WordCategoryPublic,
    room_state_to_public,
)
from api.room_service import RoomService
from api.session import RoomSession

logger = logging.getLogger(__name__)

store = RoomStore()
service = RoomService(store)
# room_id -> server-side session that drives the room's bots
sessions: dict[str, RoomSession] = {}


async def _open_session(room: Room) -> RoomSession:
    session = sessions.get(room.id)
    if session is None or session.closed:
        session = RoomSession(store, room.id, bots=BotTurnManager(store))
        sessions[room.id] = session
        await session.enter()
    return session


async def _close_session(room_id: str) -> None:
    session = sessions.pop(room_id, None)
    if session is not None:
        await session.leave()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Find the Impostor API starting up")
    try:
        yield
    finally:
        for room_id in list(sessions):
            await _close_session(room_id)
        logger.info("Find the Impostor API shut down")


app = FastAPI(title="Find the Impostor API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@contextmanager
def _game_errors() -> Iterator[None]:
    """Translate game errors into HTTP errors."""
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(404, str(e)) from e
    except NotAllowedError as e:
        raise HTTPException(403, str(e)) from e
    except InvalidActionError as e:
        raise HTTPException(400, str(e)) from e
    except DuplicateSubmissionError as e:
        raise HTTPException(409, str(e)) from e
    except TransientStoreError as e:
        logger.warning("Store unavailable: %s", e)
        raise HTTPException(503, "Store temporarily unavailable, try again") from e
    except GameError as e:
        raise HTTPException(400, str(e)) from e


async def _state(code: str, viewer_id: Optional[str]) -> RoomStateResponse:
    view = await service.get_view(code, viewer_id)
    return room_state_to_public(view)


@app.get("/health", tags=["System"], summary="Health check")
def health():
    return {"status": "ok"}


@app.get("/words", response_model=list[WordCategoryPublic], tags=["System"], summary="Word categories")
async def list_words():
    """Return the categories secret words are drawn from."""
    categories = await store.list_word_categories()
    return [WordCategoryPublic(name=c.name, words=list(c.words)) for c in categories]


@app.get("/rooms", response_model=list[str], tags=["Rooms"], summary="List room codes")
async def list_rooms_route():
    return [r.code for r in await store.list_rooms()]


@app.post("/rooms", response_model=RoomCreatedResponse, tags=["Rooms"], summary="Create room")
async def create_room(body: RoomCreateRequest):
    """Create a room with the caller as host. Returns its id and join code."""
    with _game_errors():
        room = await service.create_room(
            body.user_id,
            body.username,
            min_players=body.min_players,
            max_players=body.max_players,
            impostor_count=body.impostor_count,
            points_to_win=body.points_to_win,
        )
    await _open_session(room)
    return RoomCreatedResponse(room_id=room.id, code=room.code)


@app.get("/rooms/{code}", response_model=RoomStateResponse, tags=["Rooms"], summary="Get room state")
async def get_room(code: str, viewer_id: Optional[str] = None):
    """Public room state as seen by viewer_id (omit to spectate)."""
    with _game_errors():
        return await _state(code, viewer_id)


@app.post("/rooms/{code}/join", response_model=RoomStateResponse, tags=["Lobby"], summary="Join room")
async def join_room(code: str, body: JoinRequest):
    with _game_errors():
        await service.join_room(code, body.user_id, body.username)
        return await _state(code, body.user_id)


@app.post("/rooms/{code}/ready", response_model=RoomStateResponse, tags=["Lobby"], summary="Toggle ready")
async def toggle_ready(code: str, body: UserActionRequest):
    with _game_errors():
        await service.toggle_ready(code, body.user_id)
        return await _state(code, body.user_id)


@app.post("/rooms/{code}/leave", response_model=dict, tags=["Lobby"], summary="Leave room")
async def leave_room(code: str, body: UserActionRequest):
    """Leave the room. room_closed is true when the last human left and the room was deleted."""
    with _game_errors():
        room = await service.get_room(code)
        remaining = await service.leave_room(code, body.user_id)
    if remaining is None:
        await _close_session(room.id)
    return {"left": True, "room_closed": remaining is None}


@app.post("/rooms/{code}/bots", response_model=RoomStateResponse, tags=["Lobby"], summary="Add bot")
async def add_bot(code: str, body: UserActionRequest):
    with _game_errors():
        await service.add_bot(code, body.user_id)
        return await _state(code, body.user_id)


@app.delete("/rooms/{code}/bots", response_model=RoomStateResponse, tags=["Lobby"], summary="Remove bot")
async def remove_bot(code: str, user_id: str):
    with _game_errors():
        await service.remove_bot(code, user_id)
        return await _state(code, user_id)


@app.post("/rooms/{code}/kick", response_model=RoomStateResponse, tags=["Lobby"], summary="Kick player")
async def kick_player(code: str, body: KickRequest):
    with _game_errors():
        await service.kick_player(code, body.user_id, body.participant_id)
        return await _state(code, body.user_id)


@app.post("/rooms/{code}/transfer-host", response_model=RoomStateResponse, tags=["Lobby"], summary="Transfer host")
async def transfer_host(code: str, body: TransferHostRequest):
    with _game_errors():
        await service.transfer_host(code, body.user_id, body.new_host_user_id)
        return await _state(code, body.user_id)


@app.post("/rooms/{code}/start", response_model=RoomStateResponse, tags=["Game"], summary="Start game")
async def start_game(code: str, body: UserActionRequest):
    """Host starts round 1: secret word drawn and impostors assigned."""
    with _game_errors():
        room = await service.start_game(code, body.user_id)
        await _open_session(room)
        return await _state(code, body.user_id)


@app.post("/rooms/{code}/clues", response_model=RoomStateResponse, tags=["Game"], summary="Submit clue")
async def submit_clue(code: str, body: ClueRequest):
    """Submit the caller's clue; only allowed on their turn."""
    with _game_errors():
        await service.submit_clue(code, body.user_id, body.text)
        return await _state(code, body.user_id)


@app.post("/rooms/{code}/votes", response_model=RoomStateResponse, tags=["Game"], summary="Cast vote")
async def cast_vote(code: str, body: VoteRequest):
    with _game_errors():
        await service.cast_vote(code, body.user_id, body.target_id)
        return await _state(code, body.user_id)


@app.post("/rooms/{code}/results", response_model=RoomStateResponse, tags=["Game"], summary="Process votes")
async def process_votes(code: str, body: UserActionRequest):
    """Host tallies the round. Safe to call more than once."""
    with _game_errors():
        await service.process_votes(code, body.user_id)
        return await _state(code, body.user_id)


@app.post("/rooms/{code}/next-round", response_model=RoomStateResponse, tags=["Game"], summary="Next round")
async def next_round(code: str, body: UserActionRequest):
    """Host moves on from results: next round, or game over once someone reached points_to_win."""
    with _game_errors():
        await service.next_round(code, body.user_id)
        return await _state(code, body.user_id)
