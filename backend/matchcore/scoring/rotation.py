"""Server rotation for regular games, tiebreaks and set changeovers."""

from __future__ import annotations

from .state import MatchState, Pair, opponent


def tiebreak_server(first_server: int, points_played: int) -> int:
    """Who serves the next tiebreak point.

    The starting server serves one point, then service alternates every two
    points. Derived from the points played so far so it stays correct after
    an undo.
    """

    return first_server if ((points_played + 1) // 2) % 2 == 0 else opponent(first_server)


def next_server(state: MatchState, tiebreak_point: bool = False) -> int:
    if tiebreak_point:
        return tiebreak_server(state.first_server_of_set, sum(state.tiebreak_points))
    return opponent(state.serving_participant)


def next_first_server_of_set(first_server: int, set_score: Pair) -> int:
    """An even number of games keeps the order; an odd number flips it."""

    if sum(set_score) % 2 == 0:
        return first_server
    return opponent(first_server)
