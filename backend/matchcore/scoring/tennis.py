"""Tennis match state machine.

Events flow point -> game -> set -> match. Every scoring event pushes a
snapshot of the pre-event state so :func:`undo` can restore it verbatim,
including a point that completed the match.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ..exceptions import InvalidInput, InvalidState
from ..time_utils import utc_now
from .display import game_score, game_status
from .events import Ace, AdjustScore, DoubleFault, Fault, ScorePoint, SetServer, parse_event
from .history import add_to_history, restore_previous
from .primitives import (
    Outcome,
    process_game_point,
    process_match_set,
    process_set_game,
    process_tiebreak_point,
)
from .rotation import next_first_server_of_set, next_server
from .state import (
    HISTORY_LIMIT,
    MatchState,
    Pair,
    ResolvedConfig,
    Snapshot,
    TiebreakMode,
    award,
    is_side,
    opponent,
    sets_won,
)

NAME = "tennis"


@dataclass(frozen=True)
class ScoreResult:
    state: MatchState
    outcome: Outcome
    winner: Optional[int] = None

    @property
    def match_over(self) -> bool:
        return self.outcome is Outcome.MATCH_OVER


@dataclass(frozen=True)
class UndoResult:
    state: MatchState
    undid_completion: bool = False


def config_for(settings: Mapping[str, Any] | None, participant_type: str = "individual") -> ResolvedConfig:
    """Resolve the ``tennis`` block of a tournament's settings."""

    block = (settings or {}).get("tennis")
    return ResolvedConfig.from_settings(block, participant_type=participant_type)


def init_state(config: ResolvedConfig, first_server: int = 1) -> MatchState:
    if not is_side(first_server):
        raise InvalidInput(f"first server must be 1 or 2, got {first_server!r}")
    return MatchState(
        serving_participant=first_server,
        first_server_of_set=first_server,
        tiebreak_target=config.set_tiebreak_target,
        **config.model_dump(),
    )


def load_state(data: Mapping[str, Any] | None) -> MatchState:
    if not data:
        raise InvalidState("Match has not been initialised for scoring")
    try:
        return MatchState.model_validate(data)
    except ValidationError as exc:
        raise InvalidState(f"stored tennis state is invalid: {exc}") from exc


def dump_state(state: MatchState) -> Dict[str, Any]:
    return state.model_dump(mode="json")


def tally(state: MatchState) -> Pair:
    return sets_won(state.sets)


def winner(state: MatchState) -> Optional[int]:
    if not state.is_match_complete:
        return None
    won = tally(state)
    if won[0] >= state.sets_to_win:
        return 1
    if won[1] >= state.sets_to_win:
        return 2
    return None


def set_server(state: MatchState, participant: int) -> MatchState:
    """Override the serving side. Not recorded in the undo history."""

    if not is_side(participant):
        raise InvalidInput(f"participant must be 1 or 2, got {participant!r}")
    return state.model_copy(update={"serving_participant": participant}, deep=True)


def apply(state: MatchState, event: Any, *, now: datetime | None = None) -> ScoreResult:
    event = parse_event(event)
    if isinstance(event, SetServer):
        return ScoreResult(set_server(state, event.participant), Outcome.CONTINUE)
    if isinstance(event, AdjustScore):
        raise InvalidInput("score adjustment is not supported for tennis")
    if state.is_match_complete:
        raise InvalidState("Match is already complete")

    current = state.model_copy(deep=True)
    if current.match_started_at is None:
        current.match_started_at = now or utc_now()

    if isinstance(event, Fault) and not current.fault_pending:
        current.fault_pending = True
        return ScoreResult(current, Outcome.CONTINUE)

    current = add_to_history(current, Snapshot, HISTORY_LIMIT)
    current.fault_pending = False
    server = current.serving_participant

    if isinstance(event, ScorePoint):
        point_winner = event.winner
    elif isinstance(event, Ace):
        current.aces = award(current.aces, server)
        point_winner = server
    elif isinstance(event, (DoubleFault, Fault)):
        current.double_faults = award(current.double_faults, server)
        point_winner = opponent(server)
    else:  # pragma: no cover - parse_event only yields the types above
        raise InvalidInput(f"unsupported tennis event {event.type!r}")

    outcome, match_winner = _score_point(current, point_winner)
    return ScoreResult(current, outcome, match_winner)


def undo(state: MatchState) -> UndoResult:
    restored = restore_previous(state, state.has_progress())
    if restored is None:
        return UndoResult(state)
    return UndoResult(
        restored,
        undid_completion=state.is_match_complete and not restored.is_match_complete,
    )


def _score_point(state: MatchState, point_winner: int) -> tuple[Outcome, Optional[int]]:
    if state.is_tiebreak:
        result = process_tiebreak_point(
            state.tiebreak_points, point_winner, state.tiebreak_target
        )
        state.tiebreak_points = result.points
        if not result.tiebreak_over:
            state.serving_participant = next_server(state, tiebreak_point=True)
            return Outcome.CONTINUE, None
        if state.tiebreak_mode is TiebreakMode.MATCH:
            # The match tiebreak stands in for the deciding set.
            set_score = result.points
        else:
            set_score = award(state.current_set_games, point_winner)
        return _finish_set(state, point_winner, set_score)

    game = process_game_point(state.current_game_points, point_winner, state.is_ad_scoring)
    state.current_game_points = game.points
    if not game.game_over:
        return Outcome.CONTINUE, None

    set_result = process_set_game(state.current_set_games, point_winner)
    if set_result.start_tiebreak:
        state.current_set_games = set_result.games
        _enter_tiebreak(state, TiebreakMode.SET)
        return Outcome.START_TIEBREAK, None
    if set_result.set_over:
        return _finish_set(state, point_winner, award(state.current_set_games, point_winner))

    state.current_set_games = set_result.games
    state.serving_participant = next_server(state)
    return Outcome.GAME_OVER, None


def _finish_set(state: MatchState, set_winner: int, set_score: Pair) -> tuple[Outcome, Optional[int]]:
    result = process_match_set(
        state.sets, set_winner, set_score, sets_to_win=state.sets_to_win
    )
    state.sets = result.sets
    state.current_set_games = (0, 0)
    state.current_game_points = (0, 0)
    state.is_tiebreak = False
    state.tiebreak_points = (0, 0)
    state.tiebreak_mode = None

    if result.match_over:
        state.is_match_complete = True
        return Outcome.MATCH_OVER, set_winner

    state.first_server_of_set = next_first_server_of_set(state.first_server_of_set, set_score)
    state.serving_participant = state.first_server_of_set
    if state.use_match_tiebreak and state.is_deciding_set():
        _enter_tiebreak(state, TiebreakMode.MATCH)
    return Outcome.SET_OVER, None


def _enter_tiebreak(state: MatchState, mode: TiebreakMode) -> None:
    state.is_tiebreak = True
    state.tiebreak_points = (0, 0)
    state.tiebreak_mode = mode
    if mode is TiebreakMode.MATCH:
        state.tiebreak_target = state.match_tiebreak_target
        return
    if state.is_deciding_set():
        state.tiebreak_target = state.final_set_tiebreak_target
    else:
        state.tiebreak_target = state.set_tiebreak_target
    state.serving_participant = next_server(state)


def summary(state: MatchState) -> Dict[str, Any]:
    won = tally(state)
    return {
        "sets": [list(s) for s in state.sets],
        "setsWon": list(won),
        "games": list(state.current_set_games),
        "points": list(state.current_game_points),
        "gameScore": list(game_score(state)),
        "status": game_status(state),
        "isTiebreak": state.is_tiebreak,
        "tiebreakMode": state.tiebreak_mode.value if state.tiebreak_mode else None,
        "tiebreakPoints": list(state.tiebreak_points),
        "servingParticipant": state.serving_participant,
        "isMatchComplete": state.is_match_complete,
        "aces": list(state.aces),
        "doubleFaults": list(state.double_faults),
        "faultPending": state.fault_pending,
        "canUndo": bool(state.history),
    }
