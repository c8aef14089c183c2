from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..models import Participant, Tournament
from ..schemas import (
    BracketMatchOut,
    BracketPreviewOut,
    MatchOut,
    ParticipantCreate,
    ParticipantOut,
    StandingOut,
    TournamentCreate,
    TournamentOut,
)
from ..services import tournaments as tournament_service
from ..services.brackets import generate_bracket, normalize_format, rounds_for_format
from .matches import match_out

router = APIRouter(tags=["tournaments"])


def _tournament_out(t: Tournament) -> TournamentOut:
    return TournamentOut(
        id=t.id,
        name=t.name,
        sport=t.sport,
        format=t.format,
        participantType=t.participant_type,
        status=t.status,
        settings=t.settings,
        startedAt=t.started_at,
        endedAt=t.ended_at,
    )


def _participant_out(p: Participant) -> ParticipantOut:
    return ParticipantOut(
        id=p.id,
        displayName=p.display_name,
        seed=p.seed,
        wins=p.wins or 0,
        losses=p.losses or 0,
        draws=p.draws or 0,
        pointsFor=p.points_for or 0,
        pointsAgainst=p.points_against or 0,
    )


@router.post("/tournaments", response_model=TournamentOut)
async def create_tournament(
    body: TournamentCreate, session: AsyncSession = Depends(get_session)
):
    t = await tournament_service.create_tournament(
        session,
        name=body.name,
        sport=body.sport,
        format=body.format,
        participant_type=body.participantType,
        settings=body.settings,
        scoring_config=body.scoringConfig,
    )
    await session.commit()
    return _tournament_out(t)


@router.get("/tournaments/{tournament_id}", response_model=TournamentOut)
async def get_tournament(tournament_id: str, session: AsyncSession = Depends(get_session)):
    t = await tournament_service.get_tournament(session, tournament_id)
    return _tournament_out(t)


@router.post("/tournaments/{tournament_id}/participants", response_model=ParticipantOut)
async def add_participant(
    tournament_id: str,
    body: ParticipantCreate,
    session: AsyncSession = Depends(get_session),
):
    p = await tournament_service.add_participant(
        session, tournament_id, body.displayName, seed=body.seed
    )
    await session.commit()
    return _participant_out(p)


@router.get("/tournaments/{tournament_id}/participants", response_model=List[ParticipantOut])
async def list_participants(
    tournament_id: str, session: AsyncSession = Depends(get_session)
):
    await tournament_service.get_tournament(session, tournament_id)
    rows = await tournament_service.list_participants(session, tournament_id)
    return [_participant_out(p) for p in rows]


@router.post("/tournaments/{tournament_id}/start", response_model=List[MatchOut])
async def start_tournament(
    tournament_id: str, session: AsyncSession = Depends(get_session)
):
    created = await tournament_service.start_tournament(session, tournament_id)
    await session.commit()
    return [await match_out(session, m) for m in created]


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchOut])
async def list_matches(tournament_id: str, session: AsyncSession = Depends(get_session)):
    rows = await tournament_service.list_matches(session, tournament_id)
    return [await match_out(session, m) for m in rows]


@router.get("/tournaments/{tournament_id}/standings", response_model=List[StandingOut])
async def standings(tournament_id: str, session: AsyncSession = Depends(get_session)):
    rows = await tournament_service.get_standings(session, tournament_id)
    return [
        StandingOut(
            participantId=row["participant_id"],
            displayName=row["display_name"],
            matchesPlayed=row["matches_played"],
            wins=row["wins"],
            losses=row["losses"],
            draws=row["draws"],
            pointsFor=row["points_for"],
            pointsAgainst=row["points_against"],
            pointDifferential=row["point_differential"],
            points=row["points"],
        )
        for row in rows
    ]


@router.get("/brackets/preview", response_model=BracketPreviewOut)
async def preview_bracket(
    format: str,
    participants: Optional[List[str]] = Query(None),
):
    """Generate a bracket without storing it."""

    fmt = normalize_format(format)
    ids = participants or []
    drafts = generate_bracket(fmt, ids)
    return BracketPreviewOut(
        format=fmt,
        rounds=rounds_for_format(fmt, len(ids)),
        matches=[
            BracketMatchOut(
                index=d.index,
                round=d.round,
                matchNumber=d.match_number,
                bracketPosition=d.bracket_position,
                bracketType=d.bracket_type,
                participant1=d.participant1,
                participant2=d.participant2,
                status=d.status,
                nextMatch=d.next_match,
                nextSlot=d.next_slot,
                loserNextMatch=d.loser_next_match,
                loserNextSlot=d.loser_next_slot,
            )
            for d in drafts
        ],
    )
