from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import NotFound
from ..models import Match, Tournament
from ..schemas import (
    MatchCompleteIn,
    MatchInitIn,
    MatchOut,
    MatchStartIn,
    ScoreEventOut,
    ServerIn,
)
from ..services import matches as match_service

router = APIRouter(prefix="/matches", tags=["matches"])


async def match_out(session: AsyncSession, match: Match) -> MatchOut:
    summary = None
    if match.state:
        tournament = await session.get(Tournament, match.tournament_id)
        engine = match_service.engine_for(tournament)
        summary = engine.summary(engine.load_state(match.state))
    return MatchOut(
        id=match.id,
        tournamentId=match.tournament_id,
        round=match.round,
        matchNumber=match.match_number,
        bracketType=match.bracket_type,
        bracketPosition=match.bracket_position,
        participant1Id=match.participant1_id,
        participant2Id=match.participant2_id,
        participant1Score=match.participant1_score or 0,
        participant2Score=match.participant2_score or 0,
        status=match.status,
        winnerId=match.winner_id,
        nextMatchId=match.next_match_id,
        nextMatchSlot=match.next_match_slot,
        loserNextMatchId=match.loser_next_match_id,
        loserNextMatchSlot=match.loser_next_match_slot,
        court=match.court,
        startedAt=match.started_at,
        completedAt=match.completed_at,
        summary=summary,
    )


@router.get("/{match_id}", response_model=MatchOut)
async def get_match(match_id: str, session: AsyncSession = Depends(get_session)):
    match = await session.get(Match, match_id)
    if match is None:
        raise NotFound("Match")
    return await match_out(session, match)


@router.post("/{match_id}/start", response_model=MatchOut)
async def start_match(
    match_id: str,
    body: MatchStartIn | None = None,
    session: AsyncSession = Depends(get_session),
):
    match = await match_service.start_match(
        session, match_id, court=body.court if body else None
    )
    await session.commit()
    return await match_out(session, match)


@router.post("/{match_id}/init", response_model=MatchOut)
async def init_match(
    match_id: str,
    body: MatchInitIn | None = None,
    session: AsyncSession = Depends(get_session),
):
    first_server = body.firstServer if body else 1
    match = await match_service.init_match(session, match_id, first_server)
    await session.commit()
    return await match_out(session, match)


@router.post("/{match_id}/events", response_model=ScoreEventOut)
async def post_event(
    match_id: str,
    event: Dict[str, Any] = Body(...),
    session: AsyncSession = Depends(get_session),
):
    match, update = await match_service.apply_event(session, match_id, event)
    await session.commit()
    return ScoreEventOut(match=await match_out(session, match), outcome=update.outcome.value)


@router.post("/{match_id}/undo", response_model=ScoreEventOut)
async def undo(match_id: str, session: AsyncSession = Depends(get_session)):
    match, update = await match_service.undo_event(session, match_id)
    await session.commit()
    return ScoreEventOut(
        match=await match_out(session, match),
        outcome=update.outcome.value,
        undidCompletion=update.undid_completion,
    )


@router.post("/{match_id}/server", response_model=MatchOut)
async def set_server(
    match_id: str, body: ServerIn, session: AsyncSession = Depends(get_session)
):
    match = await match_service.set_server(session, match_id, body.participant)
    await session.commit()
    return await match_out(session, match)


@router.post("/{match_id}/complete", response_model=MatchOut)
async def complete_match(
    match_id: str,
    body: MatchCompleteIn | None = None,
    session: AsyncSession = Depends(get_session),
):
    body = body or MatchCompleteIn()
    match = await match_service.complete_match(
        session,
        match_id,
        winner_id=body.winnerId,
        participant1_score=body.participant1Score,
        participant2_score=body.participant2Score,
    )
    await session.commit()
    return await match_out(session, match)
