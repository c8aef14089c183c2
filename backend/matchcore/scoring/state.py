"""Tennis match state, history snapshots and the resolved scoring config.

Every field of :class:`MatchState` survives ``model_dump(mode="json")`` /
``model_validate`` unchanged, which is what undo and resumed scoring rely on
when the host stores the state as JSON.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import InvalidInput, InvalidState

DEFAULT_SET_TIEBREAK_TARGET = 7
DEFAULT_FINAL_SET_TIEBREAK_TARGET = 7
DEFAULT_MATCH_TIEBREAK_TARGET = 10
HISTORY_LIMIT = 50

Side = Literal[1, 2]
Pair = tuple[int, int]


def is_side(value: Any) -> bool:
    """``True`` only for the ints 1 and 2; ``bool`` does not count."""

    return isinstance(value, int) and not isinstance(value, bool) and value in (1, 2)


def opponent(side: int) -> int:
    return 2 if side == 1 else 1


def award(pair: Pair, side: int) -> Pair:
    """Return ``pair`` with one more unit credited to ``side``."""

    first, second = pair
    return (first + 1, second) if side == 1 else (first, second + 1)


def sets_won(sets: list[Pair]) -> Pair:
    """Count completed sets won by each side."""

    return (
        sum(1 for a, b in sets if a > b),
        sum(1 for a, b in sets if b > a),
    )


class TiebreakMode(str, Enum):
    SET = "set"
    MATCH = "match"


class ResolvedConfig(BaseModel):
    """Scoring rules resolved once by the host from tournament settings."""

    model_config = ConfigDict(frozen=True)

    is_ad_scoring: bool = True
    sets_to_win: int = Field(2, ge=1)
    set_tiebreak_target: int = Field(DEFAULT_SET_TIEBREAK_TARGET, ge=1)
    final_set_tiebreak_target: int = Field(DEFAULT_FINAL_SET_TIEBREAK_TARGET, ge=1)
    use_match_tiebreak: bool = False
    match_tiebreak_target: int = Field(DEFAULT_MATCH_TIEBREAK_TARGET, ge=1)

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, Any] | None,
        *,
        participant_type: str = "individual",
    ) -> "ResolvedConfig":
        """Build the config from a tournament's ``tennis`` settings block.

        ``isAdScoring`` and ``setsToWin`` are required. ``useMatchTiebreak``
        falls back to ``True`` for doubles tournaments when it is not set.
        """

        if not settings:
            raise InvalidState(
                "Tournament does not have tennis configuration. "
                "Please update the tournament settings"
            )
        if "isAdScoring" not in settings or "setsToWin" not in settings:
            raise InvalidInput("tennis settings require isAdScoring and setsToWin")

        use_match_tiebreak = settings.get("useMatchTiebreak")
        if use_match_tiebreak is None:
            use_match_tiebreak = participant_type == "doubles"

        try:
            return cls(
                is_ad_scoring=settings["isAdScoring"],
                sets_to_win=settings["setsToWin"],
                set_tiebreak_target=settings.get(
                    "setTiebreakTarget", DEFAULT_SET_TIEBREAK_TARGET
                ),
                final_set_tiebreak_target=settings.get(
                    "finalSetTiebreakTarget", DEFAULT_FINAL_SET_TIEBREAK_TARGET
                ),
                use_match_tiebreak=use_match_tiebreak,
                match_tiebreak_target=settings.get(
                    "matchTiebreakTarget", DEFAULT_MATCH_TIEBREAK_TARGET
                ),
            )
        except ValidationError as exc:
            raise InvalidInput(f"invalid tennis settings: {exc}") from exc


class Snapshot(BaseModel):
    """The part of the state captured before every scoring event."""

    sets: list[Pair] = Field(default_factory=list)
    current_set_games: Pair = (0, 0)
    current_game_points: Pair = (0, 0)
    serving_participant: Side = 1
    first_server_of_set: Side = 1
    is_tiebreak: bool = False
    tiebreak_points: Pair = (0, 0)
    tiebreak_target: int = DEFAULT_SET_TIEBREAK_TARGET
    tiebreak_mode: TiebreakMode | None = None
    is_match_complete: bool = False
    # Stat counters travel with the snapshot so undo restores them too.
    aces: Pair = (0, 0)
    double_faults: Pair = (0, 0)
    fault_pending: bool = False


class MatchState(Snapshot):
    is_ad_scoring: bool = True
    sets_to_win: int = 2
    set_tiebreak_target: int = DEFAULT_SET_TIEBREAK_TARGET
    final_set_tiebreak_target: int = DEFAULT_FINAL_SET_TIEBREAK_TARGET
    use_match_tiebreak: bool = False
    match_tiebreak_target: int = DEFAULT_MATCH_TIEBREAK_TARGET
    match_started_at: datetime | None = None
    history: list[Snapshot] = Field(default_factory=list)

    def is_deciding_set(self) -> bool:
        """Both sides are one set away from winning the match."""

        won = sets_won(self.sets)
        return won == (self.sets_to_win - 1, self.sets_to_win - 1)

    def has_progress(self) -> bool:
        return bool(
            self.sets
            or any(self.current_set_games)
            or any(self.current_game_points)
            or any(self.tiebreak_points)
            or self.is_match_complete
        )
