"""Tournament start and standings."""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import InvalidInput, InvalidState, NotFound
from ..models import Match, Participant, Tournament
from ..scoring import ENGINES
from ..time_utils import coerce_utc, utc_now
from .brackets import advance_byes, generate_bracket, normalize_format, resolve_links
from .matches import engine_for

logger = logging.getLogger(__name__)

STARTABLE_STATUSES = {"draft", "registration"}
PARTICIPANT_TYPES = {"individual", "doubles", "team"}


@dataclass(frozen=True)
class ScoringConfig:
    win: int = 3
    draw: int = 1
    loss: int = 0

    @classmethod
    def from_settings(cls, data: Mapping[str, Any] | None) -> "ScoringConfig":
        data = data or {}
        return cls(
            win=int(data.get("win", cls.win)),
            draw=int(data.get("draw", cls.draw)),
            loss=int(data.get("loss", cls.loss)),
        )


async def create_tournament(
    session: AsyncSession,
    *,
    name: str,
    sport: str,
    format: str,
    participant_type: str = "individual",
    settings: Optional[dict] = None,
    scoring_config: Optional[dict] = None,
) -> Tournament:
    sport_id = (sport or "").strip().lower()
    if sport_id not in ENGINES:
        raise InvalidInput(f"unsupported sport: {sport!r}")
    if participant_type not in PARTICIPANT_TYPES:
        raise InvalidInput(f"unsupported participant type: {participant_type!r}")
    tournament = Tournament(
        id=uuid.uuid4().hex,
        name=name,
        sport=sport_id,
        format=normalize_format(format),
        participant_type=participant_type,
        status="draft",
        settings=settings,
        scoring_config=scoring_config,
    )
    session.add(tournament)
    await session.flush()
    return tournament


async def add_participant(
    session: AsyncSession,
    tournament_id: str,
    display_name: str,
    *,
    seed: Optional[int] = None,
) -> Participant:
    tournament = await get_tournament(session, tournament_id)
    if tournament.status not in STARTABLE_STATUSES:
        raise InvalidState("Participants can only be added before the tournament starts")
    participant = Participant(
        id=uuid.uuid4().hex,
        tournament_id=tournament.id,
        display_name=display_name,
        seed=seed,
        created_at=utc_now(),
    )
    session.add(participant)
    await session.flush()
    return participant


async def get_tournament(session: AsyncSession, tournament_id: str) -> Tournament:
    tournament = await session.get(Tournament, tournament_id)
    if tournament is None:
        raise NotFound("Tournament")
    return tournament


def _seed_key(participant: Participant) -> tuple:
    # Seeded participants first, then registration order.
    seeded = participant.seed is not None and participant.seed > 0
    created = coerce_utc(participant.created_at)
    return (
        0 if seeded else 1,
        participant.seed if seeded else 0,
        created.timestamp() if created else 0.0,
    )


async def list_participants(session: AsyncSession, tournament_id: str) -> list[Participant]:
    stmt = select(Participant).where(Participant.tournament_id == tournament_id)
    return list((await session.execute(stmt)).scalars().all())


async def list_matches(session: AsyncSession, tournament_id: str) -> list[Match]:
    await get_tournament(session, tournament_id)
    stmt = (
        select(Match)
        .where(Match.tournament_id == tournament_id)
        .order_by(Match.match_number)
    )
    return list((await session.execute(stmt)).scalars().all())


async def start_tournament(session: AsyncSession, tournament_id: str) -> list[Match]:
    """Generate and store the bracket, then move the tournament to active."""

    tournament = await get_tournament(session, tournament_id)
    if tournament.status not in STARTABLE_STATUSES:
        raise InvalidState("Tournament has already started or is cancelled")
    engine = engine_for(tournament)
    # Fail before any match is written when the scoring settings are unusable.
    engine.config_for(tournament.settings, tournament.participant_type)

    participants = sorted(await list_participants(session, tournament.id), key=_seed_key)
    if len(participants) < 2:
        raise InvalidState("Need at least 2 participants to start tournament")

    drafts = generate_bracket(tournament.format, [p.id for p in participants])
    records = advance_byes(resolve_links(drafts))
    now = utc_now()

    # Insert every match before linking so foreign keys always resolve.
    matches: list[Match] = []
    for record in records:
        data = asdict(record)
        data.pop("next_match_id")
        data.pop("loser_next_match_id")
        match = Match(tournament_id=tournament.id, **data)
        if record.winner_id:
            match.completed_at = now
        session.add(match)
        matches.append(match)
    await session.flush()

    for match, record in zip(matches, records):
        match.next_match_id = record.next_match_id
        match.loser_next_match_id = record.loser_next_match_id

    tournament.status = "active"
    tournament.started_at = now
    await session.flush()
    logger.info(
        "Tournament %s started with %d participants and %d matches",
        tournament.id,
        len(participants),
        len(matches),
    )
    return matches


def _default_stats() -> dict[str, int]:
    return {
        "matches_played": 0,
        "wins": 0,
        "losses": 0,
        "draws": 0,
        "points_for": 0,
        "points_against": 0,
        "points": 0,
    }


def compute_standings(
    participants: Sequence[Participant], config: ScoringConfig | None = None
) -> list[dict[str, Any]]:
    """Rank participants by points, point differential, then points for."""

    config = config or ScoringConfig()
    rows: list[dict[str, Any]] = []
    for participant in participants:
        stats = _default_stats()
        stats["wins"] = participant.wins or 0
        stats["losses"] = participant.losses or 0
        stats["draws"] = participant.draws or 0
        stats["points_for"] = participant.points_for or 0
        stats["points_against"] = participant.points_against or 0
        stats["matches_played"] = stats["wins"] + stats["losses"] + stats["draws"]
        stats["points"] = (
            stats["wins"] * config.win
            + stats["draws"] * config.draw
            + stats["losses"] * config.loss
        )
        rows.append(
            {
                "participant_id": participant.id,
                "display_name": participant.display_name,
                **stats,
                "point_differential": stats["points_for"] - stats["points_against"],
            }
        )

    rows.sort(
        key=lambda row: (row["points"], row["point_differential"], row["points_for"]),
        reverse=True,
    )
    return rows


async def get_standings(session: AsyncSession, tournament_id: str) -> list[dict[str, Any]]:
    tournament = await get_tournament(session, tournament_id)
    participants = await list_participants(session, tournament.id)
    return compute_standings(participants, ScoringConfig.from_settings(tournament.scoring_config))
