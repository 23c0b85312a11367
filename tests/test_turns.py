"""Unit tests for turn sequencing."""

from game.state import Clue, Participant
from game.turns import active_players, compute_turns


def _p(pid: str, ready: bool = True, eliminated: bool = False) -> Participant:
    return Participant(id=pid, room_id="r1", user_id=f"user-{pid}", is_ready=ready, is_eliminated=eliminated)


def _clue(pid: str, round: int = 1, text: str = "hint") -> Clue:
    return Clue(id=f"c-{pid}-{round}", room_id="r1", round=round, user_id=f"user-{pid}", text=text)


def test_turn_order_sorted_by_participant_id():
    players = [_p("p3"), _p("p1"), _p("p4"), _p("p2")]
    turns = compute_turns(players, [], current_round=1)
    assert [s.participant.id for s in turns.turn_order] == ["p1", "p2", "p3", "p4"]
    assert [s.turn_number for s in turns.turn_order] == [1, 2, 3, 4]
    assert turns.current_turn_player.id == "p1"
    assert turns.turn_order[0].is_current_turn
    assert not turns.all_clues_submitted


def test_inactive_players_are_skipped():
    players = [_p("p1"), _p("p2", ready=False), _p("p3", eliminated=True), _p("p4")]
    assert [p.id for p in active_players(players)] == ["p1", "p4"]
    turns = compute_turns(players, [], current_round=1)
    assert [s.participant.id for s in turns.turn_order] == ["p1", "p4"]


def test_current_turn_is_first_without_clue():
    players = [_p("p1"), _p("p2"), _p("p3")]
    turns = compute_turns(players, [_clue("p1")], current_round=1)
    assert turns.current_turn_player.id == "p2"
    assert turns.turn_order[0].has_submitted
    assert turns.turn_order[0].clue == "hint"
    assert not turns.turn_order[1].has_submitted


def test_clues_from_other_rounds_ignored():
    players = [_p("p1"), _p("p2")]
    turns = compute_turns(players, [_clue("p1", round=1)], current_round=2)
    assert turns.current_turn_player.id == "p1"
    assert turns.round_clues == ()


def test_all_clues_submitted_only_after_last():
    players = [_p("p1"), _p("p2"), _p("p3"), _p("p4")]
    clues = []
    for pid in ["p1", "p2", "p3"]:
        clues.append(_clue(pid))
        assert not compute_turns(players, clues, current_round=1).all_clues_submitted
    clues.append(_clue("p4"))
    turns = compute_turns(players, clues, current_round=1)
    assert turns.all_clues_submitted
    assert turns.current_turn_player is None
    assert len(turns.round_clues) == 4


def test_is_my_turn_only_for_current_viewer():
    players = [_p("p1"), _p("p2")]
    assert compute_turns(players, [], 1, viewer_id="user-p1").is_my_turn
    assert not compute_turns(players, [], 1, viewer_id="user-p2").is_my_turn
    assert not compute_turns(players, [], 1).is_my_turn
    done = compute_turns(players, [_clue("p1"), _clue("p2")], 1, viewer_id="user-p1")
    assert not done.is_my_turn


def test_viewer_flag_marks_own_slot():
    players = [_p("p1"), _p("p2")]
    turns = compute_turns(players, [], 1, viewer_id="user-p2")
    assert [s.is_viewer for s in turns.turn_order] == [False, True]


def test_recompute_is_stable():
    players = [_p("b"), _p("a"), _p("c")]
    clues = [_clue("a")]
    first = compute_turns(players, clues, 1)
    second = compute_turns(list(reversed(players)), list(clues), 1)
    assert [s.participant.id for s in first.turn_order] == [s.participant.id for s in second.turn_order]
    assert first.current_turn_player == second.current_turn_player


def test_no_active_players():
    turns = compute_turns([_p("p1", ready=False)], [], 1)
    assert turns.turn_order == ()
    assert turns.current_turn_player is None
    assert turns.all_clues_submitted
