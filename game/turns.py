"""Turn sequencing: whose turn it is to give a clue.

Everything here is a pure projection of the participant list and the round's
clues. Every client computes the same order because it is sorted by
participant id, never by arrival time.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from game.state import Clue, Participant


@dataclass(frozen=True)
class TurnSlot:
    """One active participant's place in the round's turn order."""

    participant: Participant
    turn_number: int  # 1-based
    has_submitted: bool
    clue: Optional[str]
    is_current_turn: bool
    is_viewer: bool


@dataclass(frozen=True)
class TurnState:
    """Turn order and completion status for one round."""

    turn_order: tuple[TurnSlot, ...]
    current_turn_player: Optional[Participant]
    is_my_turn: bool
    all_clues_submitted: bool
    round_clues: tuple[Clue, ...]


def active_players(participants: Iterable[Participant]) -> list[Participant]:
    """Active participants (not eliminated, ready) sorted by participant id."""
    return sorted((p for p in participants if p.is_active), key=lambda p: p.id)


def round_clues(clues: Iterable[Clue], current_round: int) -> list[Clue]:
    return [c for c in clues if c.round == current_round]


def compute_turns(
    participants: Iterable[Participant],
    clues: Iterable[Clue],
    current_round: int,
    viewer_id: Optional[str] = None,
) -> TurnState:
    """
    Compute turn order for current_round. viewer_id is the requesting user's id
    (used for is_my_turn / is_viewer only).
    """
    active = active_players(participants)
    this_round = round_clues(clues, current_round)
    # First clue per author wins; the store forbids a second one anyway
    clue_by_author: dict[str, str] = {}
    for c in this_round:
        clue_by_author.setdefault(c.user_id, c.text)

    current: Optional[Participant] = None
    for p in active:
        if p.user_id not in clue_by_author:
            current = p
            break

    slots = tuple(
        TurnSlot(
            participant=p,
            turn_number=i + 1,
            has_submitted=p.user_id in clue_by_author,
            clue=clue_by_author.get(p.user_id),
            is_current_turn=current is not None and current.user_id == p.user_id,
            is_viewer=viewer_id is not None and p.user_id == viewer_id,
        )
        for i, p in enumerate(active)
    )
    return TurnState(
        turn_order=slots,
        current_turn_player=current,
        is_my_turn=current is not None and viewer_id is not None and current.user_id == viewer_id,
        all_clues_submitted=all(p.user_id in clue_by_author for p in active),
        round_clues=tuple(this_round),
    )
