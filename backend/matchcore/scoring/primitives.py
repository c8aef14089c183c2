"""Pure tennis scoring rules.

Each function takes the counters of one stage plus the side that won the
rally and returns the new counters together with an :class:`Outcome`. No
function mutates its arguments; the state machine in :mod:`.tennis` chains
them game -> set -> match.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import InvalidInput
from .state import Pair, award, is_side, sets_won

GAME_POINTS = 4
SET_GAMES = 6
MIN_LEAD = 2


class Outcome(str, Enum):
    CONTINUE = "continue"
    GAME_OVER = "game_over"
    START_TIEBREAK = "start_tiebreak"
    SET_OVER = "set_over"
    MATCH_OVER = "match_over"


def _check_side(winner: int) -> None:
    if not is_side(winner):
        raise InvalidInput(f"winner must be 1 or 2, got {winner!r}")


@dataclass(frozen=True)
class GameResult:
    outcome: Outcome
    points: Pair
    winner: Optional[int] = None

    @property
    def game_over(self) -> bool:
        return self.outcome is Outcome.GAME_OVER


@dataclass(frozen=True)
class TiebreakResult:
    outcome: Outcome
    points: Pair
    winner: Optional[int] = None

    @property
    def tiebreak_over(self) -> bool:
        return self.outcome is Outcome.GAME_OVER


@dataclass(frozen=True)
class SetResult:
    outcome: Outcome
    games: Pair
    winner: Optional[int] = None

    @property
    def set_over(self) -> bool:
        return self.outcome is Outcome.SET_OVER

    @property
    def start_tiebreak(self) -> bool:
        return self.outcome is Outcome.START_TIEBREAK


@dataclass(frozen=True)
class MatchResult:
    outcome: Outcome
    sets: list[Pair]
    winner: Optional[int] = None

    @property
    def match_over(self) -> bool:
        return self.outcome is Outcome.MATCH_OVER


def process_game_point(points: Pair, winner: int, is_ad_scoring: bool) -> GameResult:
    """Score one point of a regular game.

    With advantage scoring the lead is never carried beyond one point: losing
    the advantage returns the game to 3-3. Without it the point played at
    3-3 decides the game.
    """

    _check_side(winner)
    new = award(points, winner)
    mine, theirs = (new[0], new[1]) if winner == 1 else (new[1], new[0])

    if mine >= GAME_POINTS and theirs < GAME_POINTS - 1:
        return GameResult(Outcome.GAME_OVER, (0, 0), winner)

    if not is_ad_scoring:
        if mine >= GAME_POINTS:
            return GameResult(Outcome.GAME_OVER, (0, 0), winner)
        return GameResult(Outcome.CONTINUE, new)

    if mine - theirs >= MIN_LEAD and mine >= GAME_POINTS:
        return GameResult(Outcome.GAME_OVER, (0, 0), winner)
    if mine == theirs and mine > GAME_POINTS - 1:
        return GameResult(Outcome.CONTINUE, (GAME_POINTS - 1, GAME_POINTS - 1))
    return GameResult(Outcome.CONTINUE, new)


def process_tiebreak_point(points: Pair, winner: int, target: int) -> TiebreakResult:
    """First to ``target`` with a two point lead wins the tiebreak."""

    _check_side(winner)
    new = award(points, winner)
    mine, theirs = (new[0], new[1]) if winner == 1 else (new[1], new[0])
    if mine >= target and mine - theirs >= MIN_LEAD:
        return TiebreakResult(Outcome.GAME_OVER, new, winner)
    return TiebreakResult(Outcome.CONTINUE, new)


def process_set_game(games: Pair, game_winner: int) -> SetResult:
    _check_side(game_winner)
    new = award(games, game_winner)
    if new == (SET_GAMES, SET_GAMES):
        return SetResult(Outcome.START_TIEBREAK, new)
    mine, theirs = (new[0], new[1]) if game_winner == 1 else (new[1], new[0])
    if mine >= SET_GAMES and mine - theirs >= MIN_LEAD:
        return SetResult(Outcome.SET_OVER, (0, 0), game_winner)
    return SetResult(Outcome.CONTINUE, new)


def process_match_set(
    prior_sets: list[Pair],
    set_winner: int,
    finished_set_score: Pair,
    *,
    sets_to_win: int,
) -> MatchResult:
    """Record a finished set and decide whether the match is over."""

    _check_side(set_winner)
    a, b = finished_set_score
    if (a > b and set_winner != 1) or (b > a and set_winner != 2) or a == b:
        raise InvalidInput(
            f"set score {a}-{b} does not match set winner {set_winner}"
        )

    sets = [*prior_sets, (a, b)]
    won = sets_won(sets)
    if won[set_winner - 1] >= sets_to_win:
        return MatchResult(Outcome.MATCH_OVER, sets, set_winner)
    return MatchResult(Outcome.SET_OVER, sets)
