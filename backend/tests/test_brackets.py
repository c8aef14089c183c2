import os
import sys
from collections import Counter
from itertools import combinations

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from matchcore.exceptions import InvalidInput
from matchcore.services.brackets import (
    BYE,
    GRAND_FINAL,
    GRAND_FINAL_RESET,
    LOSERS,
    WINNERS,
    BracketConfig,
    advance_byes,
    generate_bracket,
    generate_double_elimination,
    generate_round_robin,
    generate_seed_order,
    generate_single_elimination,
    resolve_links,
    rounds_for_format,
)


def _ids(n):
    return [f"p{i}" for i in range(1, n + 1)]


def test_seed_order_for_eight():
    assert generate_seed_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]
    assert generate_seed_order(2) == [1, 2]
    assert generate_seed_order(1) == [1]


@pytest.mark.parametrize("count", [2, 3, 5, 8, 13])
def test_single_elimination_match_count(count):
    matches = generate_single_elimination(_ids(count))
    played = [m for m in matches if m.status != BYE]
    assert len(played) == count - 1


def test_single_elimination_five_players_has_three_byes():
    matches = generate_single_elimination(_ids(5))
    first_round = [m for m in matches if m.round == 1]
    assert len(first_round) == 4
    byes = [m for m in first_round if m.status == BYE]
    assert len(byes) == 3
    # Top seeds receive the byes.
    assert {m.participant1 for m in byes} == {"p1", "p2", "p3"}
    assert max(m.round for m in matches) == 3


def test_single_elimination_linkage():
    matches = generate_single_elimination(_ids(8))
    final = matches[-1]
    assert final.round == 3
    assert final.next_match is None
    feeders = [m for m in matches if m.next_match == final.index]
    assert sorted(m.next_slot for m in feeders) == [1, 2]
    for match in matches[:-1]:
        assert matches[match.next_match].round == match.round + 1
    assert all(m.bracket_type == WINNERS for m in matches)


def test_double_elimination_structure_for_eight():
    matches = generate_double_elimination(_ids(8))
    counts = Counter(m.bracket_type for m in matches)
    assert counts[WINNERS] == 7
    assert counts[LOSERS] == 6
    assert counts[GRAND_FINAL] == 1
    assert counts[GRAND_FINAL_RESET] == 1
    assert max(m.round for m in matches if m.bracket_type == LOSERS) == 4

    grand_final = next(m for m in matches if m.bracket_type == GRAND_FINAL)
    reset = next(m for m in matches if m.bracket_type == GRAND_FINAL_RESET)
    assert grand_final.round == 4
    assert reset.round == 5
    assert grand_final.next_match == reset.index
    assert grand_final.loser_next_match == reset.index

    feeders = {m.bracket_type: m.next_slot for m in matches if m.next_match == grand_final.index}
    assert feeders == {WINNERS: 1, LOSERS: 2}


def test_double_elimination_every_winners_loser_drops():
    matches = generate_double_elimination(_ids(8))
    for match in matches:
        if match.bracket_type == WINNERS:
            target = matches[match.loser_next_match]
            assert target.bracket_type == LOSERS
    slots = Counter(
        (m.loser_next_match, m.loser_next_slot)
        for m in matches
        if m.bracket_type == WINNERS
    )
    assert all(count == 1 for count in slots.values())


def test_double_elimination_two_players():
    matches = generate_double_elimination(_ids(2))
    assert [m.bracket_type for m in matches] == [WINNERS, GRAND_FINAL, GRAND_FINAL_RESET]
    first = matches[0]
    assert (first.next_match, first.next_slot) == (1, 1)
    assert (first.loser_next_match, first.loser_next_slot) == (1, 2)


def test_double_elimination_byes_become_losers_walkovers():
    matches = generate_double_elimination(_ids(5))
    first_losers = [m for m in matches if m.bracket_type == LOSERS and m.round == 1]
    assert len(first_losers) == 2
    assert all(m.status == BYE for m in first_losers)
    assert all(m.participant1 is None and m.participant2 is None for m in first_losers)
    # The second drop-down match only ever receives a winners-round-2 loser.
    second_round = [m.status for m in matches if m.bracket_type == LOSERS and m.round == 2]
    assert second_round == ["pending", BYE]
    later_losers = [m for m in matches if m.bracket_type == LOSERS and m.round > 2]
    assert all(m.status == "pending" for m in later_losers)
    reset = next(m for m in matches if m.bracket_type == GRAND_FINAL_RESET)
    assert reset.status == "pending"


def test_round_robin_four_players():
    matches = generate_round_robin(_ids(4))
    assert len(matches) == 6
    assert {m.round for m in matches} == {1, 2, 3}
    pairs = {frozenset((m.participant1, m.participant2)) for m in matches}
    assert pairs == {frozenset(p) for p in combinations(_ids(4), 2)}


def test_round_robin_odd_count_drops_byes():
    matches = generate_round_robin(_ids(5))
    assert len(matches) == 10
    assert {m.round for m in matches} == {1, 2, 3, 4, 5}
    assert all(m.status == "pending" for m in matches)
    per_round = Counter(m.round for m in matches)
    assert set(per_round.values()) == {2}


def test_rounds_for_format():
    assert rounds_for_format("single_elimination", 5) == 3
    assert rounds_for_format("double_elimination", 8) == 3 + 4 + 2
    assert rounds_for_format("round_robin", 4) == 3
    assert rounds_for_format("round_robin", 5) == 5
    assert rounds_for_format("round_robin", 1) == 0


def test_invalid_inputs():
    with pytest.raises(InvalidInput):
        generate_bracket("single_elimination", [])
    with pytest.raises(InvalidInput):
        generate_bracket("swiss", _ids(4))
    with pytest.raises(InvalidInput):
        generate_bracket("round_robin", ["a", "a"])
    assert generate_bracket("single_elimination", ["solo"]) == []


def test_match_numbers_follow_config():
    matches = generate_bracket("single_elimination", _ids(4), BracketConfig(first_match_number=10))
    assert [m.match_number for m in matches] == [10, 11, 12]


def test_resolve_links_and_byes():
    drafts = generate_single_elimination(_ids(3))
    counter = iter(range(100))
    resolved = resolve_links(drafts, id_factory=lambda: f"m{next(counter)}")
    assert [m.id for m in resolved] == ["m0", "m1", "m2"]
    assert resolved[0].next_match_id == "m2"
    assert resolved[1].next_match_id == "m2"

    advanced = advance_byes(resolved)
    bye = next(m for m in advanced if m.status == BYE)
    assert bye.winner_id == "p1"
    final = advanced[2]
    assert final.participant1_id == "p1"
    assert final.participant2_id is None
