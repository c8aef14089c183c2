"""Host-side match operations backed by the database.

Each operation loads the match and its tournament, runs the pure engine or
coordinator, then writes the new state and every side effect through the
same session. Callers commit; nothing here commits on its own.
"""

from __future__ import annotations

import json
import logging
import uuid
from types import ModuleType
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import SCORING_LOG_ENABLED
from ..exceptions import InvalidInput, InvalidState, NotFound
from ..models import Match, Participant, ScoringLog, Tournament
from ..scoring import ENGINES
from ..scoring.events import parse_event
from ..time_utils import utc_now
from .advancement import (
    COMPLETED,
    LIVE,
    SCHEDULED,
    MatchRecord,
    ScoreUpdate,
    SideEffects,
    apply_score_event,
    completion_effects,
    is_tournament_complete,
    reversal_effects,
    undo_score_event,
    winner_side_for,
)
from .brackets import BYE, PENDING, ROUND_ROBIN

logger = logging.getLogger(__name__)

ACTIVE = "active"


def engine_for(tournament: Tournament) -> ModuleType:
    engine = ENGINES.get((tournament.sport or "").lower())
    if engine is None:
        raise InvalidInput(f"unsupported sport: {tournament.sport!r}")
    return engine


async def _get_match(session: AsyncSession, match_id: str) -> Match:
    match = await session.get(Match, match_id)
    if match is None:
        raise NotFound("Match")
    return match


async def _get_tournament(session: AsyncSession, tournament_id: str) -> Tournament:
    tournament = await session.get(Tournament, tournament_id)
    if tournament is None:
        raise NotFound("Tournament")
    return tournament


async def _load(session: AsyncSession, match_id: str) -> tuple[Match, Tournament]:
    match = await _get_match(session, match_id)
    tournament = await _get_tournament(session, match.tournament_id)
    return match, tournament


def _require_active(tournament: Tournament) -> None:
    if tournament.status != ACTIVE:
        raise InvalidState("Tournament must be started before matches can begin")


async def ensure_court_available(session: AsyncSession, match: Match) -> None:
    """Only one match per court may be live within a tournament."""

    if not match.court:
        return
    stmt = select(Match.id).where(
        Match.tournament_id == match.tournament_id,
        Match.court == match.court,
        Match.status == LIVE,
        Match.id != match.id,
    )
    busy = (await session.execute(stmt)).scalars().first()
    if busy:
        raise InvalidState(f"Court {match.court!r} already has a live match")


async def _log_action(
    session: AsyncSession,
    match: Match,
    sport: str,
    action: str,
    *,
    details: Optional[dict] = None,
    before: Any = None,
    after: Any = None,
) -> None:
    if not SCORING_LOG_ENABLED:
        return
    session.add(
        ScoringLog(
            id=uuid.uuid4().hex,
            tournament_id=match.tournament_id,
            match_id=match.id,
            sport=sport,
            action=action,
            details=details,
            state_before=json.dumps(before) if before is not None else None,
            state_after=json.dumps(after) if after is not None else None,
        )
    )


async def start_match(
    session: AsyncSession, match_id: str, *, court: Optional[str] = None
) -> Match:
    match, tournament = await _load(session, match_id)
    _require_active(tournament)
    if match.status not in (PENDING, SCHEDULED):
        raise InvalidState(f"Cannot start a match with status {match.status!r}")
    if not match.participant1_id or not match.participant2_id:
        raise InvalidState("Both participants must be assigned before starting the match")

    if court is not None:
        match.court = court.strip() or None
    await ensure_court_available(session, match)

    match.status = LIVE
    match.started_at = utc_now()
    await session.flush()
    logger.info("Match %s started on court %s", match.id, match.court or "-")
    return match


async def init_match(session: AsyncSession, match_id: str, first_server: int = 1) -> Match:
    match, tournament = await _load(session, match_id)
    _require_active(tournament)
    if not match.participant1_id or not match.participant2_id:
        raise InvalidState("Both participants must be assigned before initializing the match")
    if match.status == COMPLETED:
        raise InvalidState("Match is already complete")

    engine = engine_for(tournament)
    config = engine.config_for(tournament.settings, tournament.participant_type)
    state = engine.init_state(config, first_server)
    match.state = engine.dump_state(state)
    match.participant1_score = 0
    match.participant2_score = 0
    await _log_action(
        session,
        match,
        engine.NAME,
        "init_match",
        details={"firstServer": first_server},
        after=match.state,
    )
    await session.flush()
    return match


async def apply_event(
    session: AsyncSession, match_id: str, payload: Any
) -> tuple[Match, ScoreUpdate]:
    match, tournament = await _load(session, match_id)
    engine = engine_for(tournament)
    event = parse_event(payload)
    state = engine.load_state(match.state)

    update = apply_score_event(MatchRecord.model_validate(match), state, event, engine=engine)
    before = match.state
    match.state = engine.dump_state(update.state)
    await apply_side_effects(session, match, tournament, update.effects)
    await _log_action(
        session,
        match,
        engine.NAME,
        event.type,
        details=event.model_dump(),
        before=before,
        after=match.state,
    )
    await session.flush()
    return match, update


async def set_server(session: AsyncSession, match_id: str, participant: int) -> Match:
    match, tournament = await _load(session, match_id)
    engine = engine_for(tournament)
    state = engine.load_state(match.state)
    before = match.state
    match.state = engine.dump_state(engine.set_server(state, participant))
    logger.info("Server for match %s set to participant %s", match.id, participant)
    await _log_action(
        session,
        match,
        engine.NAME,
        "set_server",
        details={"servingParticipant": participant},
        before=before,
        after=match.state,
    )
    await session.flush()
    return match


async def undo_event(session: AsyncSession, match_id: str) -> tuple[Match, ScoreUpdate]:
    match, tournament = await _load(session, match_id)
    engine = engine_for(tournament)
    record = MatchRecord.model_validate(match)
    if not match.state and match.status == COMPLETED:
        # Completed by hand without ever being scored.
        await ensure_court_available(session, match)
        effects = reversal_effects(record)
        await apply_side_effects(session, match, tournament, effects)
        logger.info("Completion of match %s undone", match.id)
        await session.flush()
        return match, ScoreUpdate(None, effects, undid_completion=True)

    state = engine.load_state(match.state)
    update = undo_score_event(record, state, engine=engine)
    if update.undid_completion:
        # Reopening the match makes it live again on its court.
        await ensure_court_available(session, match)

    before = match.state
    match.state = engine.dump_state(update.state)
    await apply_side_effects(session, match, tournament, update.effects)
    if update.undid_completion:
        logger.info("Completion of match %s undone", match.id)
    await _log_action(session, match, engine.NAME, "undo", before=before, after=match.state)
    await session.flush()
    return match, update


async def complete_match(
    session: AsyncSession,
    match_id: str,
    *,
    winner_id: Optional[str] = None,
    participant1_score: Optional[int] = None,
    participant2_score: Optional[int] = None,
) -> Match:
    """Complete a live match by hand, e.g. for play scored off the engine."""

    match, tournament = await _load(session, match_id)
    if match.status != LIVE:
        raise InvalidState("Match is not live")
    record = MatchRecord.model_validate(match)
    score = (
        match.participant1_score if participant1_score is None else participant1_score,
        match.participant2_score if participant2_score is None else participant2_score,
    )
    if min(score) < 0:
        raise InvalidInput("scores must be >= 0")

    if winner_id is not None:
        winner_side = record.side_of(winner_id)
        if winner_side is None:
            raise InvalidInput("winner must be one of the match participants")
    else:
        winner_side = winner_side_for(score)

    effects = completion_effects(
        record,
        winner_side,
        score,
        allow_draw=tournament.format == ROUND_ROBIN,
    )
    await apply_side_effects(session, match, tournament, effects)
    await session.flush()
    return match


async def _apply_stats(session: AsyncSession, effects: SideEffects) -> None:
    for delta in effects.stats:
        participant = await session.get(Participant, delta.participant_id)
        if participant is None:
            raise NotFound("Participant")
        for name in ("wins", "losses", "draws", "points_for", "points_against"):
            current = getattr(participant, name) or 0
            setattr(participant, name, max(0, current + getattr(delta, name)))


async def _place(session: AsyncSession, match_id: str, slot: int, participant_id: str) -> None:
    target = await session.get(Match, match_id)
    if target is None:
        raise NotFound("Match")
    setattr(target, f"participant{slot}_id", participant_id)
    if target.status == BYE and target.next_match_id and target.next_match_slot:
        # Walkover: the only entrant this match will ever get moves on.
        target.winner_id = participant_id
        target.completed_at = utc_now()
        await _place(session, target.next_match_id, target.next_match_slot, participant_id)


async def _remove(session: AsyncSession, match_id: str, slot: int, participant_id: str) -> None:
    target = await session.get(Match, match_id)
    if target is None:
        raise NotFound("Match")
    field = f"participant{slot}_id"
    if getattr(target, field) != participant_id:
        logger.warning(
            "Slot %s of match %s no longer holds %s; leaving it unchanged",
            slot,
            target.id,
            participant_id,
        )
        return
    setattr(target, field, None)
    if target.status == BYE and target.winner_id == participant_id:
        target.winner_id = None
        target.completed_at = None
        if target.next_match_id and target.next_match_slot:
            await _remove(session, target.next_match_id, target.next_match_slot, participant_id)


async def _apply_slots(session: AsyncSession, effects: SideEffects) -> None:
    for change in effects.slots:
        if change.clear:
            await _remove(session, change.match_id, change.slot, change.participant_id)
        else:
            await _place(session, change.match_id, change.slot, change.participant_id)

    for status_change in effects.status_changes:
        target = await session.get(Match, status_change.match_id)
        if target is not None and target.status == status_change.expected:
            target.status = status_change.status


async def _update_tournament_status(
    session: AsyncSession, tournament: Tournament, effects: SideEffects
) -> None:
    if effects.reopen_tournament and tournament.status == COMPLETED:
        tournament.status = ACTIVE
        tournament.ended_at = None
        logger.info("Tournament %s reopened", tournament.id)

    if effects.check_tournament_completion and tournament.status == ACTIVE:
        await session.flush()
        stmt = select(Match.status).where(Match.tournament_id == tournament.id)
        statuses = (await session.execute(stmt)).scalars().all()
        if is_tournament_complete(statuses):
            tournament.status = COMPLETED
            tournament.ended_at = utc_now()
            logger.info("Tournament %s completed", tournament.id)


async def apply_side_effects(
    session: AsyncSession, match: Match, tournament: Tournament, effects: SideEffects
) -> None:
    """Write coordinator effects through ``session``."""

    patch = effects.match
    if patch is not None:
        if patch.status is not None:
            match.status = patch.status
        if patch.participant1_score is not None:
            match.participant1_score = patch.participant1_score
        if patch.participant2_score is not None:
            match.participant2_score = patch.participant2_score
        if patch.winner_id is not None:
            match.winner_id = patch.winner_id
        if patch.clear_winner:
            match.winner_id = None
        if patch.completed is True:
            match.completed_at = utc_now()
        elif patch.completed is False:
            match.completed_at = None
        if patch.status == COMPLETED:
            logger.info("Match %s completed, winner %s", match.id, match.winner_id or "draw")

    await _apply_stats(session, effects)
    await _apply_slots(session, effects)
    await _update_tournament_status(session, tournament, effects)
