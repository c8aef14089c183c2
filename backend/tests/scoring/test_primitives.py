import os, sys
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))
from matchcore.exceptions import InvalidInput
from matchcore.scoring.primitives import (
    Outcome,
    process_game_point,
    process_match_set,
    process_set_game,
    process_tiebreak_point,
)


def test_game_point_below_deuce_increments():
    result = process_game_point((1, 2), 1, True)
    assert not result.game_over
    assert result.points == (2, 2)


def test_game_won_from_forty():
    result = process_game_point((3, 1), 1, True)
    assert result.game_over
    assert result.winner == 1
    assert result.points == (0, 0)


@pytest.mark.parametrize("winner", [1, 2])
def test_advantage_then_game(winner):
    adv = process_game_point((3, 3), winner, True)
    assert not adv.game_over
    assert adv.points == ((4, 3) if winner == 1 else (3, 4))

    game = process_game_point(adv.points, winner, True)
    assert game.game_over
    assert game.winner == winner


def test_losing_advantage_returns_to_deuce():
    result = process_game_point((4, 3), 2, True)
    assert not result.game_over
    assert result.points == (3, 3)


def test_no_ad_deciding_point():
    result = process_game_point((3, 3), 2, False)
    assert result.game_over
    assert result.winner == 2
    assert result.points == (0, 0)


def test_no_ad_reaching_deuce_continues():
    result = process_game_point((2, 3), 1, False)
    assert not result.game_over
    assert result.points == (3, 3)


def test_invalid_winner_rejected():
    with pytest.raises(InvalidInput):
        process_game_point((0, 0), 3, True)


def test_tiebreak_needs_two_point_lead():
    assert not process_tiebreak_point((6, 6), 1, 7).tiebreak_over
    result = process_tiebreak_point((7, 6), 1, 7)
    assert result.tiebreak_over
    assert result.winner == 1
    assert result.points == (8, 6)


def test_tiebreak_reaches_target():
    result = process_tiebreak_point((9, 3), 2, 10)
    assert not result.tiebreak_over
    assert process_tiebreak_point((9, 3), 1, 10).tiebreak_over


def test_set_not_won_at_six_five():
    result = process_set_game((5, 5), 1)
    assert result.outcome is Outcome.CONTINUE
    assert result.games == (6, 5)


def test_set_won_seven_five():
    result = process_set_game((6, 5), 1)
    assert result.set_over
    assert result.winner == 1
    assert result.games == (0, 0)


def test_six_all_starts_tiebreak():
    result = process_set_game((5, 6), 1)
    assert result.start_tiebreak
    assert not result.set_over
    assert result.games == (6, 6)


def test_match_ends_when_sets_to_win_reached():
    result = process_match_set([(6, 4)], 1, (6, 2), sets_to_win=2)
    assert result.match_over
    assert result.winner == 1
    assert result.sets == [(6, 4), (6, 2)]


def test_match_continues_at_one_set_all():
    result = process_match_set([(6, 4)], 2, (3, 6), sets_to_win=2)
    assert not result.match_over
    assert result.outcome is Outcome.SET_OVER


def test_match_set_rejects_inconsistent_score():
    with pytest.raises(InvalidInput):
        process_match_set([], 1, (4, 6), sets_to_win=2)
