import os, sys
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))
from matchcore.exceptions import InvalidInput, InvalidState
from matchcore.scoring import tennis
from matchcore.scoring.display import game_status, point_to_string
from matchcore.scoring.primitives import Outcome
from matchcore.scoring.state import ResolvedConfig, TiebreakMode


def _point(state, winner):
    return tennis.apply(state, {"type": "point", "winner": winner}).state


def _score_game(state, winner):
    for _ in range(4):
        state = _point(state, winner)
    return state


def _score_games(state, winner, count):
    for _ in range(count):
        state = _score_game(state, winner)
    return state


def _to_six_all(state):
    for _ in range(6):
        state = _score_game(state, 1)
        state = _score_game(state, 2)
    return state


def _new(**overrides):
    return tennis.init_state(ResolvedConfig(**overrides))


def test_best_of_three_straight_sets():
    state = _new(sets_to_win=2)
    state = _score_games(state, 2, 4)
    state = _score_games(state, 1, 6)
    assert state.sets == [(6, 4)]
    state = _score_games(state, 2, 2)
    state = _score_games(state, 1, 5)

    for _ in range(3):
        state = _point(state, 1)
    result = tennis.apply(state, {"type": "point", "winner": 1})
    assert result.outcome is Outcome.MATCH_OVER
    assert result.winner == 1
    assert result.state.is_match_complete
    assert result.state.sets == [(6, 4), (6, 2)]
    assert tennis.winner(result.state) == 1


def test_complete_match_rejects_further_points():
    state = _score_games(_new(sets_to_win=1), 1, 6)
    assert state.is_match_complete
    with pytest.raises(InvalidState):
        tennis.apply(state, {"type": "point", "winner": 2})


def test_set_tiebreak_recorded_as_seven_six():
    state = _to_six_all(_new(sets_to_win=2))
    assert state.is_tiebreak
    assert state.tiebreak_mode is TiebreakMode.SET
    assert state.tiebreak_target == 7
    assert state.current_set_games == (6, 6)

    for _ in range(6):
        state = _point(state, 1)
        state = _point(state, 2)
    assert state.tiebreak_points == (6, 6)
    state = _point(state, 1)
    assert state.is_tiebreak
    assert state.tiebreak_points == (7, 6)
    state = _point(state, 1)

    assert not state.is_tiebreak
    assert state.sets == [(7, 6)]
    assert state.current_set_games == (0, 0)
    # Thirteen games were played, so the receiver opens the next set.
    assert state.first_server_of_set == 2
    assert state.serving_participant == 2


def test_tiebreak_server_rotation():
    state = _to_six_all(_new(sets_to_win=2))
    first = state.serving_participant
    assert first == state.first_server_of_set

    state = _point(state, 1)
    assert state.serving_participant != first
    after_first = state.serving_participant
    state = _point(state, 1)
    assert state.serving_participant == after_first
    state = _point(state, 1)
    assert state.serving_participant == first


def test_regular_server_alternates_every_game():
    state = _new(sets_to_win=2)
    assert state.serving_participant == 1
    state = _score_game(state, 2)
    assert state.serving_participant == 2
    state = _score_game(state, 2)
    assert state.serving_participant == 1


def test_final_set_tiebreak_target_in_deciding_set():
    state = _new(sets_to_win=2, final_set_tiebreak_target=10)
    state = _score_games(state, 1, 6)
    state = _score_games(state, 2, 6)
    state = _to_six_all(state)
    assert state.is_tiebreak
    assert state.tiebreak_mode is TiebreakMode.SET
    assert state.tiebreak_target == 10


def test_match_tiebreak_replaces_deciding_set():
    state = _new(sets_to_win=2, use_match_tiebreak=True)
    state = _score_games(state, 1, 6)
    state = _score_games(state, 2, 6)
    assert state.is_tiebreak
    assert state.tiebreak_mode is TiebreakMode.MATCH
    assert state.tiebreak_target == 10
    assert state.serving_participant == state.first_server_of_set

    for _ in range(9):
        state = _point(state, 2)
    assert not state.is_match_complete
    result = tennis.apply(state, {"type": "point", "winner": 2})
    assert result.match_over
    assert result.state.sets == [(6, 0), (0, 6), (0, 10)]
    assert tennis.winner(result.state) == 2


def test_match_tiebreak_after_set_tiebreak():
    state = _new(sets_to_win=2, use_match_tiebreak=True)
    state = _score_games(state, 1, 6)
    state = _to_six_all(state)
    for _ in range(7):
        state = _point(state, 2)
    assert state.sets == [(6, 0), (6, 7)]
    assert state.tiebreak_mode is TiebreakMode.MATCH


def test_ace_and_double_fault_stats():
    state = _new()
    result = tennis.apply(state, {"type": "ace"})
    assert result.state.current_game_points == (1, 0)
    assert result.state.aces == (1, 0)

    state = tennis.apply(result.state, {"type": "double_fault"}).state
    assert state.current_game_points == (1, 1)
    assert state.double_faults == (1, 0)


def test_single_fault_only_flags_point():
    state = _new()
    state = tennis.apply(state, {"type": "fault"}).state
    assert state.fault_pending
    assert state.history == []
    assert state.current_game_points == (0, 0)

    state = tennis.apply(state, {"type": "fault"}).state
    assert not state.fault_pending
    assert state.current_game_points == (0, 1)
    assert state.double_faults == (1, 0)
    assert len(state.history) == 1


def test_point_clears_pending_fault():
    state = tennis.apply(_new(), {"type": "fault"}).state
    state = _point(state, 1)
    assert not state.fault_pending

    restored = tennis.undo(state).state
    assert restored.fault_pending


def test_undo_untouched_match_is_noop():
    state = _new()
    result = tennis.undo(state)
    assert result.state is state
    assert not result.undid_completion


def test_undo_restores_previous_point():
    state = _score_game(_new(), 1)
    state = _point(state, 2)
    before = state.model_copy(deep=True)
    state = _point(state, 2)
    restored = tennis.undo(state).state
    assert restored.current_game_points == before.current_game_points
    assert restored.serving_participant == before.serving_participant
    assert len(restored.history) == len(before.history)


def test_undo_reverts_tiebreak_entry():
    state = _new()
    for _ in range(5):
        state = _score_game(state, 1)
        state = _score_game(state, 2)
    state = _score_game(state, 1)
    for _ in range(3):
        state = _point(state, 2)
    serving = state.serving_participant
    state = _point(state, 2)
    assert state.is_tiebreak

    restored = tennis.undo(state).state
    assert not restored.is_tiebreak
    assert restored.tiebreak_mode is None
    assert restored.current_set_games == (6, 5)
    assert restored.current_game_points == (0, 3)
    assert restored.serving_participant == serving


def test_undo_of_match_point_reports_completion():
    state = _score_games(_new(sets_to_win=1), 1, 5)
    for _ in range(4):
        state = _point(state, 1)
    assert state.is_match_complete

    result = tennis.undo(state)
    assert result.undid_completion
    assert not result.state.is_match_complete
    assert result.state.current_set_games == (5, 0)
    assert result.state.current_game_points == (3, 0)


def test_undo_without_history_after_progress_fails():
    state = _new().model_copy(update={"current_set_games": (1, 0)})
    with pytest.raises(InvalidState):
        tennis.undo(state)


def test_set_server_does_not_push_history():
    state = _point(_new(), 1)
    updated = tennis.apply(state, {"type": "set_server", "participant": 2}).state
    assert updated.serving_participant == 2
    assert len(updated.history) == len(state.history)


def test_invalid_events_rejected():
    state = _new()
    with pytest.raises(InvalidInput):
        tennis.apply(state, {"type": "point", "winner": 3})
    with pytest.raises(InvalidInput):
        tennis.apply(state, {"type": "smash"})
    with pytest.raises(InvalidInput):
        tennis.set_server(state, 0)


def test_boolean_and_string_sides_rejected():
    state = _new()
    with pytest.raises(InvalidInput):
        tennis.apply(state, {"type": "point", "winner": True})
    with pytest.raises(InvalidInput):
        tennis.apply(state, {"type": "point", "winner": "1"})
    with pytest.raises(InvalidInput):
        tennis.set_server(state, True)
    with pytest.raises(InvalidInput):
        tennis.init_state(ResolvedConfig(), True)


def test_state_round_trips_through_json():
    state = _to_six_all(_new(use_match_tiebreak=True))
    state = _point(state, 1)
    restored = tennis.load_state(tennis.dump_state(state))
    assert restored.model_dump() == state.model_dump()
    assert tennis.undo(restored).state.model_dump() == tennis.undo(state).state.model_dump()


def test_config_from_settings_defaults():
    config = tennis.config_for(
        {"tennis": {"isAdScoring": False, "setsToWin": 3}}, participant_type="doubles"
    )
    assert config.use_match_tiebreak is True
    assert (config.set_tiebreak_target, config.final_set_tiebreak_target) == (7, 7)
    assert config.match_tiebreak_target == 10

    explicit = tennis.config_for(
        {"tennis": {"isAdScoring": True, "setsToWin": 2, "useMatchTiebreak": False}},
        participant_type="doubles",
    )
    assert explicit.use_match_tiebreak is False


def test_missing_tennis_settings_rejected():
    with pytest.raises(InvalidState):
        tennis.config_for({}, participant_type="individual")


def test_display_helpers():
    assert point_to_string(2, 1, False, True) == "30"
    assert point_to_string(4, 3, True, True) == "Ad"
    assert point_to_string(4, 3, True, False) == "40"

    state = _new()
    for _ in range(3):
        state = _point(state, 1)
        state = _point(state, 2)
    assert game_status(state) == "Deuce"
    state = _point(state, 2)
    assert game_status(state, ("Ana", "Bea")) == "Advantage Bea"

    no_ad = _new(is_ad_scoring=False)
    for _ in range(3):
        no_ad = _point(no_ad, 1)
        no_ad = _point(no_ad, 2)
    assert game_status(no_ad, ("Ana", "Bea")) == "Deciding Point (Bea chooses side)"


def test_summary_reports_sets_won():
    state = _score_games(_new(sets_to_win=2), 1, 6)
    summary = tennis.summary(state)
    assert summary["setsWon"] == [1, 0]
    assert summary["sets"] == [[6, 0]]
    assert summary["canUndo"] is True
