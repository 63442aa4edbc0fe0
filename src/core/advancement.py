"""
Knockout advancement: move winners along forward links until nothing changes.

Each pass runs three steps over the whole bracket:

1. reconcile_corrections - a downstream slot holding someone who is no longer
   the winner of any of its feeders gets the current winner instead (or is
   emptied), and the downstream result is reset.
2. forward_fill - winners of completed matches are placed into the match
   they link to.
3. repair_duplicates - a player listed twice in one knockout round is kept
   only in the first match and cleared from the later ones.

Every step returns the bracket object it was given when it has nothing to do,
so ``advance(b) is b`` tells the caller nothing happened.
"""
import logging
from typing import Dict, List

from core.elimination import BYE_POINTS
from core.errors import StructuralViolation
from core.models import Match

logger = logging.getLogger(__name__)


def _apply(bracket: List[Match], updated: Dict[str, Match]) -> List[Match]:
    if not updated:
        return bracket
    return [updated.get(match.id, match) for match in bracket]


def knockout_feeders(bracket: List[Match]) -> Dict[str, List[Match]]:
    """Map each knockout match id to the matches whose winners advance into it."""
    feeders = {}
    for match in bracket:
        if match.is_knockout and match.future_match_id:
            feeders.setdefault(match.future_match_id, []).append(match)
    return feeders


def reconcile_corrections(bracket: List[Match]) -> List[Match]:
    feeders = knockout_feeders(bracket)
    updated = {}

    for match in bracket:
        if not match.is_knockout or match.id not in feeders:
            continue

        winners = [feeder.winner for feeder in feeders[match.id]]
        valid_ids = {winner.id for winner in winners if winner}
        slots = [match.player1, match.player2]
        stale = [i for i, player in enumerate(slots) if player is not None and player.id not in valid_ids]
        if not stale:
            continue

        present = {player.id for player in slots if player is not None and player.id in valid_ids}
        replacements = [winner for winner in winners if winner and winner.id not in present]
        for index in stale:
            old = slots[index]
            slots[index] = replacements.pop(0) if replacements else None
            logger.info("Match %s: replaced %s with %s after a corrected result",
                        match.id, old.name, slots[index].name if slots[index] else 'nobody')

        updated[match.id] = match.replace(player1=slots[0], player2=slots[1]).reset_result()

    return _apply(bracket, updated)


def forward_fill(bracket: List[Match]) -> List[Match]:
    feeders = knockout_feeders(bracket)
    updated = {}

    for match in bracket:
        if not match.is_knockout or match.id not in feeders:
            continue
        if match.player1 is not None and match.player2 is not None:
            continue

        completed = [f for f in feeders[match.id] if f.complete and f.winner_id]
        if not completed:
            continue

        # Rebuild from scratch so no stale partial state survives
        refilled = match.replace(player1=None, player2=None).reset_result()
        for feeder in completed:
            winner = feeder.winner
            if winner is None or refilled.has_entrant(winner.id):
                continue
            if refilled.player1 is None:
                refilled = refilled.replace(player1=winner)
            elif refilled.player2 is None:
                refilled = refilled.replace(player2=winner)
            else:
                logger.debug("Match %s is full, cannot assign %s", match.id, winner.name)

        # Odd round sizes leave some matches with a single feeder: a bye
        if len(feeders[match.id]) == 1 and refilled.player1 is not None and refilled.player2 is None:
            refilled = refilled.replace(complete=True, winner_id=refilled.player1.id, player1_points=BYE_POINTS)

        if refilled != match:
            logger.debug("Match %s now %s vs %s", match.id,
                         refilled.player1.name if refilled.player1 else None,
                         refilled.player2.name if refilled.player2 else None)
            updated[match.id] = refilled

    return _apply(bracket, updated)


def find_structural_violations(bracket: List[Match]) -> List[StructuralViolation]:
    """Duplicate placements within knockout rounds, in bracket order."""
    seen = {}
    violations = []
    for match in bracket:
        if not match.is_knockout:
            continue
        for player in match.players:
            key = (match.round, player.id)
            if key in seen:
                violations.append(StructuralViolation(player.id, match.round, seen[key], match.id))
            else:
                seen[key] = match.id
    return violations


def validate_bracket(bracket: List[Match]) -> None:
    violations = find_structural_violations(bracket)
    if violations:
        raise violations[0]


def repair_duplicates(bracket: List[Match]) -> List[Match]:
    seen = {}
    repaired = []
    changed = False

    for match in bracket:
        if match.is_knockout:
            slots = [match.player1, match.player2]
            cleared = False
            for index, player in enumerate(slots):
                if player is None:
                    continue
                key = (match.round, player.id)
                if key in seen:
                    logger.warning("Repairing bracket: %s", StructuralViolation(player.id, match.round, seen[key], match.id))
                    slots[index] = None
                    cleared = True
                else:
                    seen[key] = match.id
            if cleared:
                match = match.replace(player1=slots[0], player2=slots[1]).reset_result()
                changed = True
        repaired.append(match)

    return repaired if changed else bracket


def advance(bracket: List[Match]) -> List[Match]:
    """
    Propagate knockout results until a fixed point is reached.

    Returns the input list itself when no propagation is possible, so
    calling it twice in a row is a no-op the second time.
    """
    knockout_count = sum(1 for match in bracket if match.is_knockout)
    if not knockout_count:
        return bracket

    # Every pass fills or clears at least one slot, so this is never reached on a sane bracket
    max_passes = 2 * knockout_count + 2
    current = bracket
    for _ in range(max_passes):
        updated = repair_duplicates(forward_fill(reconcile_corrections(current)))
        if updated is current:
            return current
        current = updated

    logger.warning("Advancement stopped after %d passes without settling", max_passes)
    return current
