"""
Final placements and seed adjustments.

Placements are grouped into rank tiers: everyone knocked out in the same
round shares a tier. Each tier maps to a seed delta (for players who
already have a seed) or a base seed (for players who do not). Both tables
are given literally up to tier 7 and grow by 2 per tier after that.
"""
import logging
from typing import Dict, List, Optional

from core.models import Entrant, RankingEntry
from core.standings import compute_all_standings, standing_sort_key

logger = logging.getLogger(__name__)

SEED_DELTAS = {1: -5, 2: -2, 3: 0, 4: 2, 5: 4, 6: 6, 7: 8}
BASE_SEEDS = {1: 1, 2: 2, 3: 3, 4: 5, 5: 7, 6: 10, 7: 12}
TABLE_STEP = 2

GROUP_THIRD_RANK = 6
MIN_SEED = 1

CHAMPION_POINTS = 100
RUNNER_UP_POINTS = 75
SEMIFINAL_POINTS = 50
UNDETERMINED_POINTS = 10


def _lookup(table: Dict[int, int], rank: int) -> int:
    if rank < 1:
        raise ValueError(f"Rank must be at least 1, got {rank}")
    if rank in table:
        return table[rank]
    last = max(table)
    return table[last] + TABLE_STEP * (rank - last)


def seed_delta(rank: int) -> int:
    return _lookup(SEED_DELTAS, rank)


def base_seed(rank: int) -> int:
    return _lookup(BASE_SEEDS, rank)


def adjusted_seed(entrant: Entrant, rank: int) -> int:
    """New seed for a player: adjust an existing seed (never below 1), or assign the base seed for the tier."""
    if entrant.seed is not None:
        return max(MIN_SEED, entrant.seed + seed_delta(rank))
    return base_seed(rank)


def knockout_points(eliminated_round: int, final_round: int) -> int:
    rounds_from_final = final_round - eliminated_round
    if rounds_from_final == 0:
        return RUNNER_UP_POINTS
    if rounds_from_final == 1:
        return SEMIFINAL_POINTS
    return max(25 - rounds_from_final * 5, 5)


def _seed_order(entrant: Entrant):
    return (entrant.seed is None, entrant.seed or 0)


def finalize_rankings(bracket, tournament_entrants: List[Entrant]) -> List[RankingEntry]:
    """
    Rank every tournament player and compute their adjusted seeds.

    Without a knockout stage players are ordered by group points, then wins.
    With one, the champion ranks 1 and the final loser 2; losers of earlier
    rounds share one tier per round (semifinal losers 3, then 4, 5, ...).
    Qualifiers still in contention fill a trailing tier. Players who did not
    qualify rank 6 (3rd in group) and 7 (4th in group). Within a tier,
    lower existing seeds come first, then group points and wins.
    """
    current = {entrant.id: entrant for entrant in tournament_entrants}
    standings = compute_all_standings(bracket)

    group_rows = {}
    for rows in standings.values():
        for place, row in enumerate(rows, start=1):
            group_rows[row.entrant.id] = (row, place)

    def resolve(entrant):
        return current.get(entrant.id, entrant)

    placements = {}  # entrant id -> (entrant, rank, points)
    knockout = [m for m in bracket if m.is_knockout]

    if not knockout:
        ordered = sorted((row for rows in standings.values() for row in rows), key=standing_sort_key)
        for position, row in enumerate(ordered, start=1):
            placements[row.entrant.id] = (resolve(row.entrant), position, row.points)
    else:
        final_round = max(m.round for m in knockout)
        final = next(m for m in knockout if m.round == final_round)
        if final.winner is not None:
            placements[final.winner.id] = (resolve(final.winner), 1, CHAMPION_POINTS)

        for match in sorted(knockout, key=lambda m: -m.round):
            loser = match.loser
            if loser is None or loser.id in placements:
                continue
            tier = 2 + (final_round - match.round)
            placements[loser.id] = (resolve(loser), tier, knockout_points(match.round, final_round))

        trailing_tier = max((rank for _, rank, _ in placements.values()), default=1) + 1
        for match in knockout:
            for player in match.players:
                if player.id not in placements:
                    placements[player.id] = (resolve(player), trailing_tier, UNDETERMINED_POINTS)

        for entrant_id, (row, place) in group_rows.items():
            if entrant_id in placements:
                continue
            # Qualified players the bracket never reached still belong in the trailing tier
            if place <= 2:
                placements[entrant_id] = (resolve(row.entrant), trailing_tier, UNDETERMINED_POINTS)
            else:
                placements[entrant_id] = (resolve(row.entrant), GROUP_THIRD_RANK + place - 3, row.points)

    last_rank = max((rank for _, rank, _ in placements.values()), default=0)
    for entrant in tournament_entrants:
        if entrant.id not in placements:
            placements[entrant.id] = (entrant, last_rank + 1, 0)

    def tier_order(item):
        entrant, rank, points = item
        row = group_rows.get(entrant.id)
        group_points = row[0].points if row else 0
        group_wins = row[0].wins if row else 0
        return (rank,) + _seed_order(entrant) + (-group_points, -group_wins)

    if knockout:
        ordered_items = sorted(placements.values(), key=tier_order)
    else:
        ordered_items = sorted(placements.values(), key=lambda item: item[1])

    rankings = [RankingEntry(entrant, rank, points, adjusted_seed(entrant, rank))
                for entrant, rank, points in ordered_items]
    logger.info("Calculated final rankings for %d players", len(rankings))
    return rankings


def global_seed_order(rankings: List[RankingEntry]) -> List[RankingEntry]:
    """Order used for the new global seeding: adjusted seed, then rank."""
    return sorted(rankings, key=lambda entry: (entry.adjusted_seed, entry.rank))


def seed_updates(rankings: List[RankingEntry], all_entrants: Optional[List[Entrant]] = None,
                 merge_non_participants: bool = False) -> Dict[str, int]:
    """
    New seed per player id.

    By default only tournament players change, each taking their adjusted
    seed. With merge_non_participants every known player is renumbered:
    tournament players 1..n in global seed order, then seeded non-players
    by their old seed, then unseeded non-players.
    """
    if not merge_non_participants:
        return {entry.entrant.id: entry.adjusted_seed for entry in rankings}

    updates = {}
    for entry in global_seed_order(rankings):
        updates[entry.entrant.id] = len(updates) + 1

    others = [e for e in (all_entrants or []) if e.id not in updates]
    seeded = sorted((e for e in others if e.seed is not None), key=lambda e: e.seed)
    unseeded = [e for e in others if e.seed is None]
    for entrant in seeded + unseeded:
        updates[entrant.id] = len(updates) + 1
    return updates
