import os, sys
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))
from matchcore.exceptions import InvalidState
from matchcore.scoring.history import add_to_history, restore_previous
from matchcore.scoring.state import HISTORY_LIMIT, MatchState, Snapshot


def test_history_is_capped_and_drops_oldest():
    state = MatchState()
    for i in range(HISTORY_LIMIT + 1):
        state.current_game_points = (i, 0)
        state = add_to_history(state, Snapshot, HISTORY_LIMIT)
    assert len(state.history) == HISTORY_LIMIT
    assert state.history[0].current_game_points == (1, 0)
    assert state.history[-1].current_game_points == (HISTORY_LIMIT, 0)


def test_snapshot_is_a_copy():
    state = MatchState(sets=[(6, 4)])
    state = add_to_history(state, Snapshot, HISTORY_LIMIT)
    state.sets.append((1, 6))
    assert state.history[-1].sets == [(6, 4)]


def test_restore_untouched_state_is_noop():
    assert restore_previous(MatchState(), has_progress=False) is None


def test_restore_without_history_but_progress_fails():
    state = MatchState(current_set_games=(2, 1))
    with pytest.raises(InvalidState):
        restore_previous(state, has_progress=True)


def test_restore_pops_latest_snapshot():
    state = add_to_history(MatchState(), Snapshot, HISTORY_LIMIT)
    state.current_game_points = (1, 0)
    restored = restore_previous(state, has_progress=True)
    assert restored.current_game_points == (0, 0)
    assert restored.history == []
