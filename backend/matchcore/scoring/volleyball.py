"""Volleyball rally scoring engine.

Every rally scores a point and the side that wins a rally it did not serve
takes over service. Sets go to ``points_per_set`` (``points_per_deciding_set``
in the deciding set) with a minimum lead.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import InvalidInput, InvalidState
from ..time_utils import utc_now
from .events import AdjustScore, ScorePoint, SetServer, parse_event
from .history import add_to_history, restore_previous
from .primitives import Outcome, process_match_set
from .state import Pair, Side, award, is_side, sets_won
from .tennis import ScoreResult, UndoResult

NAME = "volleyball"
HISTORY_LIMIT = 20


class VolleyballConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    sets_to_win: int = Field(3, ge=1)
    points_per_set: int = Field(25, ge=1)
    points_per_deciding_set: int = Field(15, ge=1)
    min_lead_to_win: int = Field(2, ge=1)


class VolleyballSnapshot(BaseModel):
    sets: list[Pair] = Field(default_factory=list)
    current_set_points: Pair = (0, 0)
    serving_participant: Side = 1
    current_set_number: int = 1
    is_match_complete: bool = False


class VolleyballState(VolleyballSnapshot):
    sets_to_win: int = 3
    points_per_set: int = 25
    points_per_deciding_set: int = 15
    min_lead_to_win: int = 2
    match_started_at: datetime | None = None
    history: list[VolleyballSnapshot] = Field(default_factory=list)

    def is_deciding_set(self) -> bool:
        return sets_won(self.sets) == (self.sets_to_win - 1, self.sets_to_win - 1)

    def has_progress(self) -> bool:
        return bool(self.sets or any(self.current_set_points) or self.is_match_complete)


def config_for(settings: Mapping[str, Any] | None, participant_type: str = "individual") -> VolleyballConfig:
    block = (settings or {}).get("volleyball")
    if not block:
        raise InvalidState(
            "Tournament does not have volleyball configuration. "
            "Please update the tournament settings"
        )
    try:
        return VolleyballConfig(
            sets_to_win=block.get("setsToWin", 3),
            points_per_set=block.get("pointsPerSet", 25),
            points_per_deciding_set=block.get("pointsPerDecidingSet", 15),
            min_lead_to_win=block.get("minLeadToWin", 2),
        )
    except ValidationError as exc:
        raise InvalidInput(f"invalid volleyball settings: {exc}") from exc


def init_state(config: VolleyballConfig, first_server: int = 1) -> VolleyballState:
    if not is_side(first_server):
        raise InvalidInput(f"first server must be 1 or 2, got {first_server!r}")
    return VolleyballState(serving_participant=first_server, **config.model_dump())


def load_state(data: Mapping[str, Any] | None) -> VolleyballState:
    if not data:
        raise InvalidState("Match has not been initialised for scoring")
    try:
        return VolleyballState.model_validate(data)
    except ValidationError as exc:
        raise InvalidState(f"stored volleyball state is invalid: {exc}") from exc


def dump_state(state: VolleyballState) -> Dict[str, Any]:
    return state.model_dump(mode="json")


def tally(state: VolleyballState) -> Pair:
    return sets_won(state.sets)


def winner(state: VolleyballState) -> Optional[int]:
    if not state.is_match_complete:
        return None
    won = tally(state)
    return 1 if won[0] > won[1] else 2


def set_server(state: VolleyballState, participant: int) -> VolleyballState:
    if not is_side(participant):
        raise InvalidInput(f"participant must be 1 or 2, got {participant!r}")
    return state.model_copy(update={"serving_participant": participant}, deep=True)


def adjust_score(state: VolleyballState, participant: int, adjustment: int) -> VolleyballState:
    """Correct the current set score. Points never drop below zero."""

    if state.is_match_complete:
        raise InvalidState("Cannot adjust score of completed match")
    if not is_side(participant):
        raise InvalidInput(f"participant must be 1 or 2, got {participant!r}")
    points = list(state.current_set_points)
    points[participant - 1] = max(0, points[participant - 1] + adjustment)
    return state.model_copy(update={"current_set_points": (points[0], points[1])}, deep=True)


def _set_winner(state: VolleyballState, points: Pair) -> Optional[int]:
    target = state.points_per_deciding_set if state.is_deciding_set() else state.points_per_set
    p1, p2 = points
    if p1 >= target and p1 - p2 >= state.min_lead_to_win:
        return 1
    if p2 >= target and p2 - p1 >= state.min_lead_to_win:
        return 2
    return None


def apply(state: VolleyballState, event: Any, *, now: datetime | None = None) -> ScoreResult:
    event = parse_event(event)
    if isinstance(event, SetServer):
        return ScoreResult(set_server(state, event.participant), Outcome.CONTINUE)
    if isinstance(event, AdjustScore):
        return ScoreResult(
            adjust_score(state, event.participant, event.adjustment), Outcome.CONTINUE
        )
    if not isinstance(event, ScorePoint):
        raise InvalidInput("invalid volleyball event")
    if state.is_match_complete:
        raise InvalidState("Match is already complete")

    current = add_to_history(state.model_copy(deep=True), VolleyballSnapshot, HISTORY_LIMIT)
    if current.match_started_at is None:
        current.match_started_at = now or utc_now()

    points = award(current.current_set_points, event.winner)
    current.current_set_points = points
    # Side out: the rally winner serves next.
    current.serving_participant = event.winner

    set_winner = _set_winner(current, points)
    if set_winner is None:
        return ScoreResult(current, Outcome.CONTINUE)

    result = process_match_set(
        current.sets, set_winner, points, sets_to_win=current.sets_to_win
    )
    current.sets = result.sets
    current.current_set_points = (0, 0)
    current.current_set_number += 1
    if result.match_over:
        current.is_match_complete = True
        return ScoreResult(current, Outcome.MATCH_OVER, set_winner)
    return ScoreResult(current, Outcome.SET_OVER)


def undo(state: VolleyballState) -> UndoResult:
    restored = restore_previous(state, state.has_progress())
    if restored is None:
        return UndoResult(state)
    return UndoResult(
        restored,
        undid_completion=state.is_match_complete and not restored.is_match_complete,
    )


def summary(state: VolleyballState) -> Dict[str, Any]:
    return {
        "sets": [list(s) for s in state.sets],
        "setsWon": list(tally(state)),
        "points": list(state.current_set_points),
        "currentSet": state.current_set_number,
        "servingParticipant": state.serving_participant,
        "isMatchComplete": state.is_match_complete,
        "canUndo": bool(state.history),
    }
