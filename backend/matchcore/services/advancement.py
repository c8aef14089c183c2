"""Completion and advancement of matches.

The functions here never touch storage. They describe what has to change
(participant stats, next-match slots, statuses) as :class:`SideEffects` that
the host applies in the same transaction as the state write. Every set of
completion effects has an exact reversal used when the completing point is
undone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import ModuleType
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import InvalidState
from ..scoring.events import SetServer, parse_event
from ..scoring.primitives import Outcome
from ..scoring.state import Pair
from .brackets import BYE, GRAND_FINAL, PENDING

LIVE = "live"
COMPLETED = "completed"
SCHEDULED = "scheduled"
OPEN_STATUSES = {PENDING, SCHEDULED, LIVE}


class MatchRecord(BaseModel):
    """The slice of a stored match the coordinator reasons about."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tournament_id: str
    participant1_id: Optional[str] = None
    participant2_id: Optional[str] = None
    participant1_score: int = 0
    participant2_score: int = 0
    status: str = PENDING
    winner_id: Optional[str] = None
    bracket_type: Optional[str] = None
    next_match_id: Optional[str] = None
    next_match_slot: Optional[int] = None
    loser_next_match_id: Optional[str] = None
    loser_next_match_slot: Optional[int] = None
    court: Optional[str] = None

    def participant(self, side: int) -> Optional[str]:
        return self.participant1_id if side == 1 else self.participant2_id

    def side_of(self, participant_id: Optional[str]) -> Optional[int]:
        if participant_id is None:
            return None
        if participant_id == self.participant1_id:
            return 1
        if participant_id == self.participant2_id:
            return 2
        return None


class StatDelta(BaseModel):
    participant_id: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    points_for: int = 0
    points_against: int = 0

    def reversed(self) -> "StatDelta":
        return StatDelta(
            participant_id=self.participant_id,
            wins=-self.wins,
            losses=-self.losses,
            draws=-self.draws,
            points_for=-self.points_for,
            points_against=-self.points_against,
        )


class SlotChange(BaseModel):
    """Write ``participant_id`` into a slot, or clear it.

    A clear only applies while the slot still holds ``participant_id``.
    """

    match_id: str
    slot: int
    participant_id: str
    clear: bool = False


class StatusChange(BaseModel):
    """Move ``match_id`` to ``status`` if it is currently ``expected``."""

    match_id: str
    status: str
    expected: str


class MatchPatch(BaseModel):
    status: Optional[str] = None
    participant1_score: Optional[int] = None
    participant2_score: Optional[int] = None
    winner_id: Optional[str] = None
    clear_winner: bool = False
    completed: Optional[bool] = None


class SideEffects(BaseModel):
    match: Optional[MatchPatch] = None
    stats: list[StatDelta] = Field(default_factory=list)
    slots: list[SlotChange] = Field(default_factory=list)
    status_changes: list[StatusChange] = Field(default_factory=list)
    check_tournament_completion: bool = False
    reopen_tournament: bool = False

    @property
    def empty(self) -> bool:
        return not (
            self.match
            or self.stats
            or self.slots
            or self.status_changes
            or self.check_tournament_completion
            or self.reopen_tournament
        )


@dataclass(frozen=True)
class ScoreUpdate:
    state: Any
    effects: SideEffects
    outcome: Outcome = Outcome.CONTINUE
    undid_completion: bool = False


def _require_participants(record: MatchRecord) -> tuple[str, str]:
    if not record.participant1_id or not record.participant2_id:
        raise InvalidState("Match does not have both participants assigned")
    return record.participant1_id, record.participant2_id


def _skips_reset(record: MatchRecord, winner_side: Optional[int]) -> bool:
    # The reset is only played when the losers-bracket champion takes the
    # grand final; the winners-bracket champion always enters it in slot 1.
    return record.bracket_type == GRAND_FINAL and winner_side == 1


def _advancement(
    record: MatchRecord, winner_id: str, loser_id: str, *, clear: bool
) -> tuple[list[SlotChange], list[StatusChange]]:
    winner_side = record.side_of(winner_id)
    if _skips_reset(record, winner_side) and record.next_match_id:
        if clear:
            change = StatusChange(match_id=record.next_match_id, status=PENDING, expected=BYE)
        else:
            change = StatusChange(match_id=record.next_match_id, status=BYE, expected=PENDING)
        return [], [change]

    slots: list[SlotChange] = []
    if record.next_match_id and record.next_match_slot:
        slots.append(
            SlotChange(
                match_id=record.next_match_id,
                slot=record.next_match_slot,
                participant_id=winner_id,
                clear=clear,
            )
        )
    if record.loser_next_match_id and record.loser_next_match_slot:
        slots.append(
            SlotChange(
                match_id=record.loser_next_match_id,
                slot=record.loser_next_match_slot,
                participant_id=loser_id,
                clear=clear,
            )
        )
    return slots, []


def _stat_deltas(record: MatchRecord, winner_side: Optional[int], score: Pair) -> list[StatDelta]:
    p1, p2 = _require_participants(record)
    p1_delta = StatDelta(participant_id=p1, points_for=score[0], points_against=score[1])
    p2_delta = StatDelta(participant_id=p2, points_for=score[1], points_against=score[0])
    if winner_side is None:
        p1_delta.draws = p2_delta.draws = 1
    elif winner_side == 1:
        p1_delta.wins, p2_delta.losses = 1, 1
    else:
        p2_delta.wins, p1_delta.losses = 1, 1
    return [p1_delta, p2_delta]


def winner_side_for(score: Pair) -> Optional[int]:
    if score[0] > score[1]:
        return 1
    if score[1] > score[0]:
        return 2
    return None


def completion_effects(
    record: MatchRecord,
    winner_side: Optional[int],
    score: Pair,
    *,
    allow_draw: bool = False,
) -> SideEffects:
    """Effects of completing ``record`` with ``score`` (sets or points won).

    ``winner_side`` of ``None`` is a draw, which only round robin allows.
    """

    p1, p2 = _require_participants(record)
    if winner_side is None and not allow_draw:
        raise InvalidState("Elimination matches cannot end in a tie")

    effects = SideEffects(
        match=MatchPatch(
            status=COMPLETED,
            participant1_score=score[0],
            participant2_score=score[1],
            winner_id=record.participant(winner_side) if winner_side else None,
            completed=True,
        ),
        stats=_stat_deltas(record, winner_side, score),
        check_tournament_completion=True,
    )
    if winner_side is not None:
        winner_id, loser_id = (p1, p2) if winner_side == 1 else (p2, p1)
        effects.slots, effects.status_changes = _advancement(
            record, winner_id, loser_id, clear=False
        )
    return effects


def reversal_effects(record: MatchRecord, score: Pair | None = None) -> SideEffects:
    """Exact inverse of :func:`completion_effects` for a completed match.

    ``score`` is the score summary to leave on the reopened match.
    """

    if record.status != COMPLETED:
        raise InvalidState("Only completed matches can be reopened")
    p1, p2 = _require_participants(record)
    completed_score = (record.participant1_score, record.participant2_score)
    winner_side = record.side_of(record.winner_id)
    if record.winner_id and winner_side is None:
        raise InvalidState("Match winner is not one of its participants")

    current = score if score is not None else (0, 0)
    effects = SideEffects(
        match=MatchPatch(
            status=LIVE,
            participant1_score=current[0],
            participant2_score=current[1],
            clear_winner=True,
            completed=False,
        ),
        stats=[delta.reversed() for delta in _stat_deltas(record, winner_side, completed_score)],
        reopen_tournament=True,
    )
    if winner_side is not None:
        winner_id, loser_id = (p1, p2) if winner_side == 1 else (p2, p1)
        effects.slots, effects.status_changes = _advancement(
            record, winner_id, loser_id, clear=True
        )
    return effects


def apply_score_event(
    record: MatchRecord,
    state: Any,
    event: Any,
    *,
    engine: ModuleType,
    now: datetime | None = None,
) -> ScoreUpdate:
    """Run ``event`` through the sport ``engine`` and describe its effects."""

    event = parse_event(event)
    if not isinstance(event, SetServer):
        _require_participants(record)
        if record.status != LIVE:
            raise InvalidState("Match is not live")

    result = engine.apply(state, event, now=now)
    score = engine.tally(result.state)
    if result.match_over:
        effects = completion_effects(record, result.winner, score)
    else:
        effects = SideEffects(
            match=MatchPatch(participant1_score=score[0], participant2_score=score[1])
        )
    return ScoreUpdate(result.state, effects, result.outcome)


def undo_score_event(record: MatchRecord, state: Any, *, engine: ModuleType) -> ScoreUpdate:
    """Undo the last action on a live or completed match.

    A match completed by hand while its scoring state was still open is
    reopened first; the point stack is left as it was.
    """

    if record.status not in (LIVE, COMPLETED):
        raise InvalidState("Only live or completed matches can be undone")
    if record.status == COMPLETED and not state.is_match_complete:
        effects = reversal_effects(record, engine.tally(state))
        return ScoreUpdate(state, effects, undid_completion=True)

    result = engine.undo(state)
    if result.state is state:
        return ScoreUpdate(state, SideEffects())

    score = engine.tally(result.state)
    if result.undid_completion:
        effects = reversal_effects(record, score)
    else:
        effects = SideEffects(
            match=MatchPatch(participant1_score=score[0], participant2_score=score[1])
        )
    return ScoreUpdate(result.state, effects, undid_completion=result.undid_completion)


def is_tournament_complete(statuses: Iterable[str]) -> bool:
    """No match is left pending, scheduled or live."""

    return not any(status in OPEN_STATUSES for status in statuses)
