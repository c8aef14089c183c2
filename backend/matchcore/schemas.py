from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator


class TournamentCreate(BaseModel):
    """Schema for creating a tournament."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    sport: str
    format: str
    participantType: str = "individual"
    settings: Optional[Dict[str, Any]] = None
    scoringConfig: Optional[Dict[str, int]] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class TournamentOut(BaseModel):
    """Returned representation of a tournament."""

    id: str
    name: str
    sport: str
    format: str
    participantType: str
    status: str
    settings: Optional[Dict[str, Any]] = None
    startedAt: Optional[datetime] = None
    endedAt: Optional[datetime] = None


class ParticipantCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    displayName: str = Field(..., min_length=1, max_length=100)
    seed: Optional[int] = Field(None, ge=1)


class ParticipantOut(BaseModel):
    id: str
    displayName: str
    seed: Optional[int] = None
    wins: int = 0
    losses: int = 0
    draws: int = 0
    pointsFor: int = 0
    pointsAgainst: int = 0


class MatchOut(BaseModel):
    id: str
    tournamentId: str
    round: int
    matchNumber: int
    bracketType: Optional[str] = None
    bracketPosition: Optional[int] = None
    participant1Id: Optional[str] = None
    participant2Id: Optional[str] = None
    participant1Score: int = 0
    participant2Score: int = 0
    status: str
    winnerId: Optional[str] = None
    nextMatchId: Optional[str] = None
    nextMatchSlot: Optional[int] = None
    loserNextMatchId: Optional[str] = None
    loserNextMatchSlot: Optional[int] = None
    court: Optional[str] = None
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    summary: Optional[Dict[str, Any]] = None


class MatchStartIn(BaseModel):
    court: Optional[str] = None


class MatchInitIn(BaseModel):
    firstServer: StrictInt = Field(1, ge=1, le=2)


class ServerIn(BaseModel):
    participant: StrictInt = Field(..., ge=1, le=2)


class MatchCompleteIn(BaseModel):
    winnerId: Optional[str] = None
    participant1Score: Optional[int] = Field(None, ge=0)
    participant2Score: Optional[int] = Field(None, ge=0)


class ScoreEventOut(BaseModel):
    match: MatchOut
    outcome: str
    undidCompletion: bool = False


class StandingOut(BaseModel):
    participantId: str
    displayName: str
    matchesPlayed: int
    wins: int
    losses: int
    draws: int
    pointsFor: int
    pointsAgainst: int
    pointDifferential: int
    points: int


class BracketMatchOut(BaseModel):
    index: int
    round: int
    matchNumber: int
    bracketPosition: int
    bracketType: Optional[str] = None
    participant1: Optional[str] = None
    participant2: Optional[str] = None
    status: str
    nextMatch: Optional[int] = None
    nextSlot: Optional[int] = None
    loserNextMatch: Optional[int] = None
    loserNextSlot: Optional[int] = None


class BracketPreviewOut(BaseModel):
    format: str
    rounds: int
    matches: List[BracketMatchOut]
