"""Bracket generation for elimination and round-robin tournaments.

Generation happens in two phases. The generators build :class:`DraftMatch`
nodes that link to each other by list index; :func:`resolve_links` then
assigns identifiers and produces :class:`PersistableMatch` records that the
host writes in a single batch.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional, Sequence

from ..exceptions import InvalidInput

SINGLE_ELIMINATION = "single_elimination"
DOUBLE_ELIMINATION = "double_elimination"
ROUND_ROBIN = "round_robin"
SUPPORTED_FORMATS = {SINGLE_ELIMINATION, DOUBLE_ELIMINATION, ROUND_ROBIN}

WINNERS = "winners"
LOSERS = "losers"
GRAND_FINAL = "grand_final"
GRAND_FINAL_RESET = "grand_final_reset"

PENDING = "pending"
BYE = "bye"


def normalize_format(fmt: str) -> str:
    """Normalize and validate a tournament format identifier."""

    value = (fmt or "").strip().lower()
    if value not in SUPPORTED_FORMATS:
        raise InvalidInput(f"unsupported tournament format: {fmt!r}")
    return value


def _unique_participant_ids(participant_ids: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for pid in participant_ids:
        if not pid:
            raise InvalidInput("participant ids must be non-empty")
        if pid in seen:
            raise InvalidInput("duplicate participant ids provided")
        seen[pid] = None
    return list(seen.keys())


def next_power_of_two(value: int) -> int:
    if value < 1:
        return 1
    power = 1
    while power < value:
        power <<= 1
    return power


def generate_seed_order(size: int) -> list[int]:
    """Placement order so that seed 1 can only meet seed ``size`` in the final."""

    if size < 1 or size & (size - 1):
        raise InvalidInput(f"bracket size must be a power of two, got {size}")
    if size <= 2:
        return list(range(1, size + 1))
    order: list[int] = []
    for seed in generate_seed_order(size // 2):
        order.extend((seed, size + 1 - seed))
    return order


@dataclass
class BracketConfig:
    first_match_number: int = 1


@dataclass
class DraftMatch:
    index: int
    round: int
    match_number: int
    bracket_position: int
    bracket_type: Optional[str] = None
    participant1: Optional[str] = None
    participant2: Optional[str] = None
    status: str = PENDING
    next_match: Optional[int] = None
    next_slot: Optional[int] = None
    loser_next_match: Optional[int] = None
    loser_next_slot: Optional[int] = None


@dataclass(frozen=True)
class PersistableMatch:
    id: str
    round: int
    match_number: int
    bracket_position: int
    bracket_type: Optional[str] = None
    participant1_id: Optional[str] = None
    participant2_id: Optional[str] = None
    participant1_score: int = 0
    participant2_score: int = 0
    status: str = PENDING
    winner_id: Optional[str] = None
    next_match_id: Optional[str] = None
    next_match_slot: Optional[int] = None
    loser_next_match_id: Optional[str] = None
    loser_next_match_slot: Optional[int] = None


@dataclass
class _Builder:
    config: BracketConfig
    matches: list[DraftMatch] = field(default_factory=list)

    def add(self, round_: int, position: int, bracket_type: Optional[str], **kwargs) -> int:
        index = len(self.matches)
        self.matches.append(
            DraftMatch(
                index=index,
                round=round_,
                match_number=self.config.first_match_number + index,
                bracket_position=position,
                bracket_type=bracket_type,
                **kwargs,
            )
        )
        return index

    def link(self, source: int, target: int, slot: int) -> None:
        self.matches[source].next_match = target
        self.matches[source].next_slot = slot

    def link_loser(self, source: int, target: int, slot: int) -> None:
        self.matches[source].loser_next_match = target
        self.matches[source].loser_next_slot = slot


def _winners_bracket(builder: _Builder, participants: list[str]) -> list[list[int]]:
    """Build the seeded winners bracket and return match indices per round."""

    size = next_power_of_two(len(participants))
    slots = [
        participants[seed - 1] if seed <= len(participants) else None
        for seed in generate_seed_order(size)
    ]

    first_round: list[int] = []
    for position, offset in enumerate(range(0, size, 2), start=1):
        p1, p2 = slots[offset], slots[offset + 1]
        first_round.append(
            builder.add(
                1,
                position,
                WINNERS,
                participant1=p1,
                participant2=p2,
                status=BYE if p1 is None or p2 is None else PENDING,
            )
        )

    rounds = [first_round]
    while len(rounds[-1]) > 1:
        previous = rounds[-1]
        current: list[int] = []
        for i in range(len(previous) // 2):
            target = builder.add(len(rounds) + 1, i + 1, WINNERS)
            builder.link(previous[2 * i], target, 1)
            builder.link(previous[2 * i + 1], target, 2)
            current.append(target)
        rounds.append(current)
    return rounds


def _check_participants(participant_ids: Sequence[str]) -> list[str]:
    participants = _unique_participant_ids(participant_ids)
    if not participants:
        raise InvalidInput("at least one participant is required")
    return participants


def generate_single_elimination(
    participant_ids: Sequence[str], config: BracketConfig | None = None
) -> list[DraftMatch]:
    participants = _check_participants(participant_ids)
    if len(participants) == 1:
        return []
    builder = _Builder(config or BracketConfig())
    _winners_bracket(builder, participants)
    return builder.matches


def generate_double_elimination(
    participant_ids: Sequence[str], config: BracketConfig | None = None
) -> list[DraftMatch]:
    """Winners bracket, losers bracket, grand final and grand final reset.

    The losers bracket alternates drop-down rounds, where losers of the next
    winners round join, with rounds played among losers-bracket survivors.
    """

    participants = _check_participants(participant_ids)
    if len(participants) == 1:
        return []
    builder = _Builder(config or BracketConfig())
    winners = _winners_bracket(builder, participants)
    winners_rounds = len(winners)
    winners_final = winners[-1][0]

    losers_final: Optional[int] = None
    if winners_rounds > 1:
        losers_round = 1
        previous: list[int] = []
        first_round = winners[0]
        for i in range(0, len(first_round), 2):
            target = builder.add(losers_round, i // 2 + 1, LOSERS)
            builder.link_loser(first_round[i], target, 1)
            builder.link_loser(first_round[i + 1], target, 2)
            previous.append(target)

        winners_index = 1
        while len(previous) > 1 or winners_index < winners_rounds:
            if winners_index < winners_rounds:
                losers_round += 1
                dropping = winners[winners_index]
                current: list[int] = []
                for i, survivor in enumerate(previous):
                    target = builder.add(losers_round, i + 1, LOSERS)
                    builder.link(survivor, target, 1)
                    builder.link_loser(dropping[i], target, 2)
                    current.append(target)
                previous = current
                winners_index += 1

            if len(previous) > 1:
                losers_round += 1
                current = []
                for i in range(len(previous) // 2):
                    target = builder.add(losers_round, i + 1, LOSERS)
                    builder.link(previous[2 * i], target, 1)
                    builder.link(previous[2 * i + 1], target, 2)
                    current.append(target)
                previous = current
        losers_final = previous[0]

    grand_final = builder.add(winners_rounds + 1, 1, GRAND_FINAL)
    builder.link(winners_final, grand_final, 1)
    if losers_final is None:
        # Two players: the loser of the only winners match goes straight through.
        builder.link_loser(winners_final, grand_final, 2)
    else:
        builder.link(losers_final, grand_final, 2)

    reset = builder.add(winners_rounds + 2, 1, GRAND_FINAL_RESET)
    builder.link(grand_final, reset, 1)
    builder.link_loser(grand_final, reset, 2)
    _mark_walkovers(builder.matches)
    return builder.matches


def _mark_walkovers(matches: list[DraftMatch]) -> None:
    """Turn matches that can never receive two entrants into byes.

    A winners-bracket bye has no loser, so the losers match it drops into gets
    at most one entrant. That entrant walks through once known; a match with
    no entrants at all is skipped.
    """

    entrants = [
        (m.participant1 is not None) + (m.participant2 is not None) for m in matches
    ]
    # Links always point to a later index.
    for match in matches:
        count = entrants[match.index]
        if count < 2:
            match.status = BYE
        if count and match.next_match is not None:
            entrants[match.next_match] += 1
        if count == 2 and match.loser_next_match is not None:
            entrants[match.loser_next_match] += 1


def generate_round_robin(
    participant_ids: Sequence[str], config: BracketConfig | None = None
) -> list[DraftMatch]:
    """Circle method: the first entry stays fixed while the rest rotate."""

    participants = _check_participants(participant_ids)
    builder = _Builder(config or BracketConfig())
    if len(participants) == 1:
        return []

    roster: list[Optional[str]] = list(participants)
    if len(roster) % 2 == 1:
        roster.append(None)

    for round_index in range(len(roster) - 1):
        for idx in range(len(roster) // 2):
            a = roster[idx]
            b = roster[-(idx + 1)]
            if not a or not b:
                continue
            builder.add(round_index + 1, idx + 1, None, participant1=a, participant2=b)

        anchor = roster[0]
        middle = roster[1:]
        middle = [middle[-1], *middle[:-1]]
        roster = [anchor, *middle]

    return builder.matches


_GENERATORS: dict[str, Callable[..., list[DraftMatch]]] = {
    SINGLE_ELIMINATION: generate_single_elimination,
    DOUBLE_ELIMINATION: generate_double_elimination,
    ROUND_ROBIN: generate_round_robin,
}


def generate_bracket(
    fmt: str, participant_ids: Sequence[str], config: BracketConfig | None = None
) -> list[DraftMatch]:
    """Generate the full match graph for ``fmt`` from seeded participants."""

    return _GENERATORS[normalize_format(fmt)](participant_ids, config)


def rounds_for_format(fmt: str, participant_count: int) -> int:
    fmt = normalize_format(fmt)
    if participant_count <= 1:
        return 0
    if fmt == ROUND_ROBIN:
        return participant_count - 1 if participant_count % 2 == 0 else participant_count
    winners_rounds = math.ceil(math.log2(participant_count))
    if fmt == SINGLE_ELIMINATION:
        return winners_rounds
    return winners_rounds + (winners_rounds * 2 - 2) + 2


def _new_id() -> str:
    return uuid.uuid4().hex


def resolve_links(
    drafts: Sequence[DraftMatch], id_factory: Callable[[], str] = _new_id
) -> list[PersistableMatch]:
    """Assign identifiers and rewrite index links into identifier links."""

    ids = [id_factory() for _ in drafts]

    def _target(index: Optional[int]) -> Optional[str]:
        if index is None:
            return None
        if not 0 <= index < len(ids):
            raise InvalidInput(f"bracket link points outside the bracket: {index}")
        return ids[index]

    return [
        PersistableMatch(
            id=ids[draft.index],
            round=draft.round,
            match_number=draft.match_number,
            bracket_position=draft.bracket_position,
            bracket_type=draft.bracket_type,
            participant1_id=draft.participant1,
            participant2_id=draft.participant2,
            status=draft.status,
            next_match_id=_target(draft.next_match),
            next_match_slot=draft.next_slot,
            loser_next_match_id=_target(draft.loser_next_match),
            loser_next_match_slot=draft.loser_next_slot,
        )
        for draft in drafts
    ]


def advance_byes(matches: Sequence[PersistableMatch]) -> list[PersistableMatch]:
    """Record bye winners and place them in their next-match slot."""

    by_id = {match.id: match for match in matches}
    for match in matches:
        if match.status != BYE:
            continue
        winner = match.participant1_id or match.participant2_id
        if not winner or not match.next_match_id:
            continue
        by_id[match.id] = replace(by_id[match.id], winner_id=winner)
        target = by_id[match.next_match_id]
        slot_field = "participant1_id" if match.next_match_slot == 1 else "participant2_id"
        by_id[target.id] = replace(target, **{slot_field: winner})
    return [by_id[match.id] for match in matches]
