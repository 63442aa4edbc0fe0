"""
Round robin fixtures for the group stage.
"""
import logging
from itertools import combinations
from typing import Dict, List, Optional

from core.errors import InsufficientEntrants, MatchLocked, TournamentError
from core.grouping import average_overlap
from core.models import GROUP_STAGE, Entrant, Group, Match

logger = logging.getLogger(__name__)


def _group_match(group_id: str, number: int, player1: Entrant, player2: Entrant) -> Match:
    return Match(
        id=f'{group_id}-m{number}',
        round=1,
        stage=GROUP_STAGE,
        group_id=group_id,
        player1=player1,
        player2=player2,
    )


def generate_group_matches(groups: List[Group]) -> List[Match]:
    """Every pairing inside every group; six matches for a group of four."""
    matches = []
    for group in groups:
        for number, (player1, player2) in enumerate(combinations(group.entrants, 2), start=1):
            matches.append(_group_match(group.id, number, player1, player2))
    return matches


def group_members(bracket: List[Match]) -> Dict[str, List[Entrant]]:
    """Members of each group in order of first appearance in the bracket."""
    members = {}
    for match in bracket:
        if match.stage != GROUP_STAGE or not match.group_id:
            continue
        group = members.setdefault(match.group_id, [])
        for player in match.players:
            if all(existing.id != player.id for existing in group):
                group.append(player)
    return members


def _pick_group(members: Dict[str, List[Entrant]], entrant: Entrant) -> str:
    # Smallest group first, then the one the newcomer overlaps with most
    order = list(members)
    return min(order, key=lambda gid: (len(members[gid]), -average_overlap(entrant, members[gid]), order.index(gid)))


def add_late_entrant(bracket: List[Match], entrant: Entrant, group_id: Optional[str] = None) -> List[Match]:
    """
    Add a player after the group stage has been generated.

    The newcomer gets a match against every current member of the chosen
    group. Only allowed while no knockout match exists.
    """
    if any(match.is_knockout for match in bracket):
        raise MatchLocked("Players cannot be added after the knockout stage has started")

    members = group_members(bracket)
    if not members:
        raise InsufficientEntrants("There are no groups to add the player to")
    if any(any(p.id == entrant.id for p in group) for group in members.values()):
        raise TournamentError(f"{entrant.name} is already in this tournament")
    if group_id is None:
        group_id = _pick_group(members, entrant)
    elif group_id not in members:
        raise TournamentError(f"Group '{group_id}' does not exist")

    used_ids = {match.id for match in bracket}
    number = sum(1 for match in bracket if match.group_id == group_id)
    new_matches = []
    for opponent in members[group_id]:
        number += 1
        while f'{group_id}-m{number}' in used_ids:
            number += 1
        new_matches.append(_group_match(group_id, number, opponent, entrant))

    logger.info("Added %s to %s with %d new matches", entrant.name, group_id, len(new_matches))
    return list(bracket) + new_matches
