"""
Single elimination bracket generation from group qualifiers.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple, Union

from core.errors import InsufficientEntrants
from core.grouping import tag_overlap
from core.models import KNOCKOUT_STAGE, Entrant, Match, MatchStatus, Qualifier

logger = logging.getLogger(__name__)

BYE_POINTS = 1

Pairing = Tuple[Qualifier, Optional[Qualifier]]


def get_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name of a knockout round from its position in the bracket."""
    players_in_round = 2 ** (total_rounds - round_number + 1)
    if players_in_round == 2:
        return "Final"
    elif players_in_round == 4:
        return "Semifinal"
    elif players_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {players_in_round}"


def calculate_total_rounds(num_players: int) -> int:
    """Number of knockout rounds needed for the given number of qualifiers."""
    if num_players <= 1:
        return 0
    return math.ceil(math.log2(num_players))


def _as_qualifiers(qualified: Sequence[Union[Qualifier, Entrant]]) -> List[Qualifier]:
    return [q if isinstance(q, Qualifier) else Qualifier(q) for q in qualified]


def _world_cup_pairings(qualified: List[Qualifier]) -> Tuple[List[Pairing], Optional[Qualifier]]:
    """
    1st of each group meets 2nd of the next group (cyclic), so no two
    players from the same group meet in round one when it can be avoided.
    """
    by_group = {}
    for q in qualified:
        by_group.setdefault(q.group_id, []).append(q)

    full_groups = []
    lone = []
    for group_id in sorted(by_group):
        members = sorted(by_group[group_id], key=lambda q: q.place or 0)
        if len(members) >= 2:
            full_groups.append((members[0], members[1]))
            lone.extend(members[2:])
        else:
            lone.extend(members)

    bye = None
    if len(qualified) % 2 == 1 and lone:
        bye = lone.pop(0)

    pairs = []
    if len(full_groups) >= 2:
        for index, (first, _) in enumerate(full_groups):
            second = full_groups[(index + 1) % len(full_groups)][1]
            pairs.append((first, second))
        spill = lone
    elif full_groups:
        first, second = full_groups[0]
        spill = [first] + lone + [second]
    else:
        spill = lone

    for i in range(0, len(spill) - 1, 2):
        pairs.append((spill[i], spill[i + 1]))
    if len(spill) % 2 == 1:
        bye = spill[-1]
    return pairs, bye


def _tag_bucket_pairings(qualified: List[Qualifier]) -> Tuple[List[Pairing], Optional[Qualifier]]:
    """Fallback without group data: pair players with identical tags by rank, spill the rest."""
    total = len(qualified)
    buckets = {}
    for q in qualified:
        buckets.setdefault(','.join(sorted(q.entrant.tag_set)), []).append(q)

    pairs = []
    spill = []
    for bucket in buckets.values():
        ordered = sorted(bucket, key=lambda q: q.entrant.rank_key(total))
        for i in range(0, len(ordered) - 1, 2):
            pairs.append((ordered[i], ordered[i + 1]))
        if len(ordered) % 2 == 1:
            spill.append(ordered[-1])

    for i in range(0, len(spill) - 1, 2):
        pairs.append((spill[i], spill[i + 1]))
    bye = spill[-1] if len(spill) % 2 == 1 else None
    return pairs, bye


def _pairing_match(first: Qualifier, second: Optional[Qualifier], round_number: int) -> Match:
    match = Match(
        round=round_number,
        stage=KNOCKOUT_STAGE,
        player1=first.entrant,
        player2=second.entrant if second else None,
        player1_group_id=first.group_id,
        player1_group_place=first.place,
        player2_group_id=second.group_id if second else None,
        player2_group_place=second.place if second else None,
    )
    if second is None:
        # A bye advances straight away
        match = match.replace(complete=True, winner_id=first.entrant.id, player1_points=BYE_POINTS)
    return match


def first_round_matches(qualified: Sequence[Union[Qualifier, Entrant]], round_number: int = 1) -> List[Match]:
    """
    Pair qualifiers for the first knockout round.

    Uses group placement when every qualifier carries it, otherwise pairs by
    shared availability tags. Pairs sharing more tags come first; the bye,
    if any, comes last and is already completed.
    """
    qualified = _as_qualifiers(qualified)
    if not qualified:
        return []
    if len(qualified) == 1:
        return [_pairing_match(qualified[0], None, round_number)]

    if all(q.group_id is not None for q in qualified):
        pairs, bye = _world_cup_pairings(qualified)
    else:
        pairs, bye = _tag_bucket_pairings(qualified)

    pairs.sort(key=lambda pair: -tag_overlap(pair[0].entrant, pair[1].entrant))
    matches = [_pairing_match(first, second, round_number) for first, second in pairs]
    if bye is not None:
        matches.append(_pairing_match(bye, None, round_number))
    return matches


def build_knockout_bracket(qualified: Sequence[Union[Qualifier, Entrant]]) -> List[Match]:
    """
    Build every knockout match up front, wired by forward links.

    Round r has ceil(players / 2) matches, and match i of round r feeds
    match i // 2 of round r + 1. Only round one gets players now; later
    rounds are filled by advancement.

    Raises InsufficientEntrants with fewer than two qualifiers.
    """
    qualified = _as_qualifiers(qualified)
    if len(qualified) < 2:
        raise InsufficientEntrants("Need at least 2 qualified players to start knockout stage")

    total_rounds = calculate_total_rounds(len(qualified))
    rounds = []
    players_remaining = len(qualified)
    for round_number in range(1, total_rounds + 1):
        matches_in_round = math.ceil(players_remaining / 2)
        rounds.append([
            Match(id=f'ko-r{round_number}-m{index + 1}', round=round_number, stage=KNOCKOUT_STAGE)
            for index in range(matches_in_round)
        ])
        players_remaining = matches_in_round

    for round_index in range(total_rounds - 1):
        next_round = rounds[round_index + 1]
        for index, match in enumerate(rounds[round_index]):
            match.future_match_id = next_round[index // 2].id

    pairings = first_round_matches(qualified)
    rounds[0] = [
        pairing.replace(id=slot.id, future_match_id=slot.future_match_id)
        for slot, pairing in zip(rounds[0], pairings)
    ]

    bracket = [match for round_matches in rounds for match in round_matches]
    logger.info("Generated %d knockout matches across %d rounds", len(bracket), total_rounds)
    return bracket


def get_knockout_bracket_display(bracket: List[Match]) -> Dict:
    """
    Get knockout data formatted for display, keyed by round name.
    """
    knockout = [m for m in bracket if m.is_knockout]
    total_rounds = max((m.round for m in knockout), default=0)

    rounds = {}
    for round_number in range(1, total_rounds + 1):
        name = get_round_name(round_number, total_rounds)
        rounds[name] = [m.to_dict() for m in knockout if m.round == round_number]

    final = next((m for m in knockout if m.round == total_rounds), None)
    champion = final.winner if final is not None else None
    byes = sum(1 for m in knockout if m.round == 1 and m.status is MatchStatus.BYE)

    return {
        'rounds': rounds,
        'total_rounds': total_rounds,
        'byes': byes,
        'champion': champion.to_dict() if champion else None,
    }
