"""Unit tests for vote tally and round outcome."""

from game.rules import REASON_CAUGHT, REASON_SURVIVED, Outcome
from game.state import Participant, PointChange, Vote
from game.tally import apply_point_changes, count_votes, resolve_votes, top_voted


def _players() -> list[Participant]:
    """p1..p4, p3 is the impostor."""
    return [
        Participant(id=f"p{i}", room_id="r1", user_id=f"u{i}", is_ready=True, is_impostor=(i == 3))
        for i in range(1, 5)
    ]


def _vote(voter: str, target: str, round: int = 1) -> Vote:
    return Vote(id=f"v-{voter}-{round}", room_id="r1", round=round, voter_id=voter, target_id=target)


def test_count_votes():
    votes = [_vote("u1", "u3"), _vote("u2", "u3"), _vote("u3", "u1"), _vote("u4", "u3", round=2)]
    assert count_votes(votes) == {"u3": 3, "u1": 1}
    assert count_votes(votes, round=1) == {"u3": 2, "u1": 1}


def test_impostor_caught_crew_gains_points():
    votes = [_vote("u1", "u3"), _vote("u2", "u3"), _vote("u4", "u3"), _vote("u3", "u1")]
    result = resolve_votes(votes, _players(), "r1", 1)
    assert result.outcome == Outcome.CAUGHT
    assert result.impostor_caught
    assert result.voted_out_id == "u3"
    assert result.caught_impostor_id == "u3"
    assert result.vote_counts == {"u3": 3, "u1": 1}
    assert sorted(pc.user_id for pc in result.point_changes) == ["u1", "u2", "u4"]
    assert all(pc.points_gained == 1 and pc.reason == REASON_CAUGHT for pc in result.point_changes)


def test_wrong_pick_impostor_survives():
    votes = [_vote("u1", "u2"), _vote("u3", "u2"), _vote("u2", "u1"), _vote("u4", "u2")]
    result = resolve_votes(votes, _players(), "r1", 1)
    assert result.outcome == Outcome.SURVIVED
    assert not result.impostor_caught
    assert result.voted_out_id == "u2"
    assert result.caught_impostor_id is None
    assert result.point_changes == (PointChange(user_id="u3", points_gained=1, reason=REASON_SURVIVED),)


def test_tie_goes_to_lowest_participant_id():
    # 2/2 split between impostor u3 (p3) and crew u2 (p2): p2 sorts first
    votes = [_vote("u1", "u2"), _vote("u3", "u2"), _vote("u2", "u3"), _vote("u4", "u3")]
    result = resolve_votes(votes, _players(), "r1", 1)
    assert result.vote_counts == {"u2": 2, "u3": 2}
    assert result.voted_out_id == "u2"
    assert result.outcome == Outcome.SURVIVED


def test_tie_between_participants_uses_participant_id_not_user_id():
    players = [
        Participant(id="a", room_id="r1", user_id="zz", is_ready=True, is_impostor=True),
        Participant(id="b", room_id="r1", user_id="aa", is_ready=True),
        Participant(id="c", room_id="r1", user_id="mm", is_ready=True),
    ]
    top = top_voted({"aa": 1, "zz": 1}, players)
    assert [p.id for p in top] == ["a", "b"]


def test_no_votes_voids_round():
    result = resolve_votes([], _players(), "r1", 1)
    assert result.outcome == Outcome.NO_VOTES
    assert result.voted_out_id is None
    assert result.point_changes == ()


def test_votes_for_departed_players_ignored():
    votes = [_vote("u1", "ghost"), _vote("u2", "ghost"), _vote("u4", "u3")]
    result = resolve_votes(votes, _players(), "r1", 1)
    assert result.voted_out_id == "u3"
    assert result.outcome == Outcome.CAUGHT
    assert "ghost" not in result.vote_counts


def test_votes_from_departed_players_ignored():
    votes = [_vote("ghost", "u2"), _vote("phantom", "u2"), _vote("u1", "u3")]
    result = resolve_votes(votes, _players(), "r1", 1)
    assert result.vote_counts == {"u3": 1}
    assert result.voted_out_id == "u3"
    assert result.outcome == Outcome.CAUGHT


def test_other_round_votes_ignored():
    votes = [_vote("u1", "u2", round=1), _vote("u2", "u3", round=2)]
    result = resolve_votes(votes, _players(), "r1", 2)
    assert result.voted_out_id == "u3"


def test_inactive_players_get_no_points():
    players = _players()
    players[0] = Participant(id="p1", room_id="r1", user_id="u1", is_ready=False)
    votes = [_vote("u2", "u3"), _vote("u4", "u3")]
    result = resolve_votes(votes, players, "r1", 1)
    assert sorted(pc.user_id for pc in result.point_changes) == ["u2", "u4"]


def test_apply_point_changes():
    players = _players()
    changes = [
        PointChange(user_id="u1", points_gained=1, reason=REASON_CAUGHT),
        PointChange(user_id="u2", points_gained=1, reason=REASON_CAUGHT),
    ]
    updated = apply_point_changes(players, changes)
    assert [p.points for p in updated] == [1, 1, 0, 0]
    assert [p.points for p in players] == [0, 0, 0, 0]
