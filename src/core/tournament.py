"""
Tournament-level operations over a whole bracket.

Each function takes the current bracket and returns a new one; the caller
is responsible for reading and writing it back as a single unit.
"""
import logging
from typing import List, Optional, Tuple

from core.advancement import advance
from core.elimination import build_knockout_bracket
from core.errors import InvalidResult, MatchLocked, MatchNotFound
from core.grouping import form_groups
from core.models import Entrant, Group, Match, MatchStatus
from core.round_robin import generate_group_matches
from core.standings import compute_all_standings, qualified_entrants

logger = logging.getLogger(__name__)


def create_tournament(entrants: List[Entrant]) -> Tuple[List[Group], List[Match]]:
    """Form groups and generate the group stage in one step."""
    groups = form_groups(entrants)
    return groups, generate_group_matches(groups)


def group_stage_matches(bracket: List[Match]) -> List[Match]:
    return [m for m in bracket if not m.is_knockout]


def knockout_matches(bracket: List[Match]) -> List[Match]:
    return [m for m in bracket if m.is_knockout]


def knockout_started(bracket: List[Match]) -> bool:
    return any(m.is_knockout for m in bracket)


def get_match(bracket: List[Match], match_id: str) -> Match:
    match = next((m for m in bracket if m.id == match_id), None)
    if match is None:
        raise MatchNotFound(match_id)
    return match


def final_match(bracket: List[Match]) -> Optional[Match]:
    knockout = knockout_matches(bracket)
    if not knockout:
        return None
    last_round = max(m.round for m in knockout)
    return next(m for m in knockout if m.round == last_round)


def is_finals_complete(bracket: List[Match]) -> bool:
    final = final_match(bracket)
    return final is not None and final.complete and final.winner_id is not None


def tournament_phase(bracket: List[Match], finalized: bool = False) -> str:
    """One of: 'setup', 'group', 'knockout', 'complete'."""
    if not bracket:
        return 'setup'
    if finalized or is_finals_complete(bracket):
        return 'complete'
    if knockout_started(bracket):
        return 'knockout'
    return 'group'


def can_update_match(bracket: List[Match], match: Match, finalized: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Check whether a result may still be entered for a match.

    Returns (allowed, reason). A knockout match is locked once a completed
    match in a later round already contains one of its players.
    """
    if finalized:
        return False, "The tournament has been finalized"

    if not match.is_knockout:
        if knockout_started(bracket):
            return False, "Group stage editing is disabled because the knockout stage has started"
        return True, None

    players = set(match.entrant_ids())
    for later in knockout_matches(bracket):
        if later.round > match.round and later.complete and players & set(later.entrant_ids()):
            return False, ("Cannot update this match because future matches have already been "
                           "completed with players from this match")
    return True, None


def record_result(bracket: List[Match], match_id: str, winner_id: str, points1: int = 0, points2: int = 0,
                  finalized: bool = False, allow_correction: bool = False) -> List[Match]:
    """
    Record (or correct) the result of a match and propagate it.

    With allow_correction, a knockout result that later rounds already used
    may still be changed; those later matches are reset by advancement.
    """
    match = get_match(bracket, match_id)

    allowed, reason = can_update_match(bracket, match, finalized)
    if not allowed and not (allow_correction and match.is_knockout and not finalized):
        raise MatchLocked(reason)

    if match.status is MatchStatus.AWAITING:
        raise InvalidResult("This match is still waiting for a player")
    if not match.has_entrant(winner_id):
        raise InvalidResult(f"Winner '{winner_id}' is not playing in this match")

    previous_winner = match.winner_id if match.complete else None
    updated = match.replace(
        winner_id=winner_id,
        player1_points=points1,
        player2_points=points2,
        complete=True,
    )
    new_bracket = [updated if m.id == match_id else m for m in bracket]

    if previous_winner and previous_winner != winner_id:
        logger.info("Corrected winner of match %s from %s to %s", match_id, previous_winner, winner_id)
    else:
        logger.info("Recorded result for match %s, winner %s", match_id, winner_id)

    if match.is_knockout:
        new_bracket = advance(new_bracket)
    return new_bracket


def start_knockout(bracket: List[Match]) -> List[Match]:
    """
    Qualify players from group standings and append the knockout stage.

    Raises MatchLocked if the knockout stage already exists and
    InsufficientEntrants if fewer than two players qualify.
    """
    if knockout_started(bracket):
        raise MatchLocked("The knockout stage has already been generated")

    qualified = qualified_entrants(compute_all_standings(bracket))
    knockout = build_knockout_bracket(qualified)
    return advance(list(bracket) + knockout)
