"""
Group standings and knockout qualification.

Standings are never stored; they are recomputed from the bracket each time.
"""
from typing import Dict, List

from core.models import GROUP_STAGE, Match, Qualifier, Standing

WIN_POINTS = 3
QUALIFIERS_PER_GROUP = 2


def standing_sort_key(standing: Standing):
    return (-standing.points, -standing.wins)


def compute_standings(matches: List[Match], group_id: str) -> List[Standing]:
    """
    Calculate standings for one group from its matches.

    Every player referenced by a match of the group gets a row, even with no
    completed match. A completed match with a winner and a second player gives
    the winner a win and 3 points and the loser a loss.

    Returns rows ordered by points, then wins (first appearance breaks ties).
    """
    rows = {}

    for match in matches:
        if match.stage != GROUP_STAGE or match.group_id != group_id:
            continue

        for player in match.players:
            if player.id not in rows:
                rows[player.id] = Standing(player)

        if not (match.complete and match.winner_id and match.player2):
            continue

        winner = match.winner
        if winner is None:
            continue
        loser = match.player2 if winner.id == match.player1.id else match.player1

        rows[winner.id].wins += 1
        rows[winner.id].points += WIN_POINTS
        rows[winner.id].played += 1
        rows[loser.id].losses += 1
        rows[loser.id].played += 1

    return sorted(rows.values(), key=standing_sort_key)


def group_ids(bracket: List[Match]) -> List[str]:
    ids = []
    for match in bracket:
        if match.stage == GROUP_STAGE and match.group_id and match.group_id not in ids:
            ids.append(match.group_id)
    return ids


def compute_all_standings(bracket: List[Match]) -> Dict[str, List[Standing]]:
    return {group_id: compute_standings(bracket, group_id) for group_id in group_ids(bracket)}


def qualified_entrants(all_group_standings: Dict[str, List[Standing]]) -> List[Qualifier]:
    """Top two of every group; the only player of a one-player group qualifies alone."""
    qualified = []
    for group_id, standings in all_group_standings.items():
        ordered = sorted(standings, key=standing_sort_key)
        for place, standing in enumerate(ordered[:QUALIFIERS_PER_GROUP], start=1):
            qualified.append(Qualifier(standing.entrant, group_id, place))
    return qualified
