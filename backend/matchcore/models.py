from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from .db import Base

JSONType = JSON().with_variant(JSONB, "postgresql")


class Tournament(Base):
    __tablename__ = "tournament"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    sport = Column(String, nullable=False)  # "tennis" | "volleyball"
    format = Column(String, nullable=False)  # "single_elimination" | ...
    participant_type = Column(String, nullable=False, default="individual")
    # "draft" | "registration" | "active" | "completed" | "cancelled"
    status = Column(String, nullable=False, default="draft")
    settings = Column(JSONType, nullable=True)  # {"tennis": {...}} / {"volleyball": {...}}
    scoring_config = Column(JSONType, nullable=True)  # {"win": 3, "draw": 1, "loss": 0}
    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Participant(Base):
    __tablename__ = "participant"
    id = Column(String, primary_key=True)
    tournament_id = Column(String, ForeignKey("tournament.id"), nullable=False, index=True)
    display_name = Column(String, nullable=False)
    seed = Column(Integer, nullable=True)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    draws = Column(Integer, nullable=False, default=0)
    points_for = Column(Integer, nullable=False, default=0)
    points_against = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Match(Base):
    __tablename__ = "match"
    __table_args__ = (
        Index("ix_match_tournament_round", "tournament_id", "round"),
        Index("ix_match_tournament_court_status", "tournament_id", "court", "status"),
    )
    id = Column(String, primary_key=True)
    tournament_id = Column(String, ForeignKey("tournament.id"), nullable=False)
    round = Column(Integer, nullable=False)
    match_number = Column(Integer, nullable=False)
    bracket_type = Column(String, nullable=True)
    bracket_position = Column(Integer, nullable=True)
    participant1_id = Column(String, ForeignKey("participant.id"), nullable=True)
    participant2_id = Column(String, ForeignKey("participant.id"), nullable=True)
    participant1_score = Column(Integer, nullable=False, default=0)
    participant2_score = Column(Integer, nullable=False, default=0)
    # "pending" | "scheduled" | "live" | "completed" | "bye"
    status = Column(String, nullable=False, default="pending")
    winner_id = Column(String, ForeignKey("participant.id"), nullable=True)
    next_match_id = Column(String, ForeignKey("match.id"), nullable=True)
    next_match_slot = Column(Integer, nullable=True)
    loser_next_match_id = Column(String, ForeignKey("match.id"), nullable=True)
    loser_next_match_slot = Column(Integer, nullable=True)
    court = Column(String, nullable=True)
    state = Column(JSONType, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class ScoringLog(Base):
    __tablename__ = "scoring_log"
    id = Column(String, primary_key=True)
    tournament_id = Column(String, ForeignKey("tournament.id"), nullable=False, index=True)
    match_id = Column(String, ForeignKey("match.id"), nullable=False, index=True)
    sport = Column(String, nullable=False)
    action = Column(String, nullable=False)
    details = Column(JSONType, nullable=True)
    state_before = Column(Text, nullable=True)
    state_after = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
