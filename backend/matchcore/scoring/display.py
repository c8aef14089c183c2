"""Scoreboard helpers for rendering a tennis game."""

from __future__ import annotations

from typing import Sequence

from .state import MatchState, TiebreakMode, opponent

POINT_NAMES = ["0", "15", "30", "40"]


def is_deuce(p1_points: int, p2_points: int) -> bool:
    return p1_points >= 3 and p2_points >= 3


def point_to_string(
    point: int, opponent_point: int, deuce: bool, is_ad_scoring: bool
) -> str:
    if deuce:
        if point > opponent_point and is_ad_scoring:
            return "Ad"
        return "40"
    return POINT_NAMES[min(point, 3)]


def game_status(
    state: MatchState, names: Sequence[str] = ("Player 1", "Player 2")
) -> str | None:
    """Describe the current game, or ``None`` when nothing notable applies."""

    if state.is_match_complete:
        return None
    if state.is_tiebreak:
        return "Match Tiebreak" if state.tiebreak_mode is TiebreakMode.MATCH else "Tiebreak"

    p1, p2 = state.current_game_points
    if not is_deuce(p1, p2):
        return None
    if not state.is_ad_scoring:
        receiver = opponent(state.serving_participant)
        return f"Deciding Point ({names[receiver - 1]} chooses side)"
    if p1 == p2:
        return "Deuce"
    leader = 1 if p1 > p2 else 2
    return f"Advantage {names[leader - 1]}"


def game_score(state: MatchState) -> tuple[str, str]:
    p1, p2 = state.current_game_points
    if state.is_tiebreak:
        return str(state.tiebreak_points[0]), str(state.tiebreak_points[1])
    deuce = is_deuce(p1, p2)
    return (
        point_to_string(p1, p2, deuce, state.is_ad_scoring),
        point_to_string(p2, p1, deuce, state.is_ad_scoring),
    )
