"""Vote tally and round outcome: pure, no I/O."""

import dataclasses
from collections import Counter
from typing import Iterable, Optional

from game.rules import (
    POINTS_PER_ROUND,
    REASON_CAUGHT,
    REASON_SURVIVED,
    Outcome,
)
from game.state import Participant, PointChange, RoundResult, Vote


def count_votes(votes: Iterable[Vote], round: Optional[int] = None) -> dict[str, int]:
    """Map target user id -> votes received (optionally only for one round)."""
    counts = Counter(v.target_id for v in votes if round is None or v.round == round)
    return dict(counts)


def top_voted(counts: dict[str, int], participants: Iterable[Participant]) -> list[Participant]:
    """
    Participants with the maximum vote count, ordered by participant id.
    The first entry is the plurality pick; a tie goes to the lowest participant id.
    """
    by_user = {p.user_id: p for p in participants}
    candidates = {uid: c for uid, c in counts.items() if uid in by_user and c > 0}
    if not candidates:
        return []
    max_votes = max(candidates.values())
    tied = [by_user[uid] for uid, c in candidates.items() if c == max_votes]
    return sorted(tied, key=lambda p: p.id)


def resolve_votes(
    votes: Iterable[Vote],
    participants: Iterable[Participant],
    room_id: str,
    round: int,
) -> RoundResult:
    """
    Tally the round's votes and decide the outcome.

    CAUGHT: the plurality pick is an impostor; every active crewmate gets a point.
    SURVIVED: anyone else was picked; every active impostor gets a point.
    NO_VOTES: nothing countable was cast; the round voids with no points.
    Votes cast by or for players no longer in the room are ignored.
    """
    participants = list(participants)
    by_user = {p.user_id: p for p in participants}
    round_votes = [v for v in votes if v.round == round]
    counts = count_votes(v for v in round_votes if v.voter_id in by_user and v.target_id in by_user)
    top = top_voted(counts, participants)
    if not top:
        return RoundResult(room_id=room_id, round=round, outcome=Outcome.NO_VOTES, vote_counts=counts)

    voted_out = top[0]
    active = [p for p in participants if p.is_active]
    if voted_out.is_impostor:
        changes = tuple(
            PointChange(user_id=p.user_id, points_gained=POINTS_PER_ROUND, reason=REASON_CAUGHT)
            for p in active
            if not p.is_impostor
        )
        return RoundResult(
            room_id=room_id,
            round=round,
            outcome=Outcome.CAUGHT,
            vote_counts=counts,
            voted_out_id=voted_out.user_id,
            caught_impostor_id=voted_out.user_id,
            point_changes=changes,
        )

    changes = tuple(
        PointChange(user_id=p.user_id, points_gained=POINTS_PER_ROUND, reason=REASON_SURVIVED)
        for p in active
        if p.is_impostor
    )
    return RoundResult(
        room_id=room_id,
        round=round,
        outcome=Outcome.SURVIVED,
        vote_counts=counts,
        voted_out_id=voted_out.user_id,
        point_changes=changes,
    )


def apply_point_changes(
    participants: Iterable[Participant],
    changes: Iterable[PointChange],
) -> list[Participant]:
    """Return participants with points added. Does not mutate input."""
    gained = Counter()
    for change in changes:
        gained[change.user_id] += change.points_gained
    return [
        dataclasses.replace(p, points=p.points + gained[p.user_id]) if gained[p.user_id] else p
        for p in participants
    ]
