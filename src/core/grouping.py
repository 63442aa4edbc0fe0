"""
Group formation: seed-aware groups of up to four that share availability.
"""
import logging
from collections import Counter
from typing import List

from core.errors import InsufficientEntrants
from core.models import Entrant, Group

logger = logging.getLogger(__name__)

MAX_GROUP_SIZE = 4
MIN_ENTRANTS = 2
FULL_GROUP_TAG_LIMIT = 3
SMALL_GROUP_TAG_LIMIT = 2


def tag_overlap(a: Entrant, b: Entrant) -> int:
    """Number of availability tags two entrants share."""
    return len(a.tag_set & b.tag_set)


def average_overlap(candidate: Entrant, members: List[Entrant]) -> float:
    if not members:
        return 0.0
    return sum(tag_overlap(candidate, member) for member in members) / len(members)


def representative_tags(members: List[Entrant], limit: int) -> List[str]:
    """
    Tags that best describe a group.

    The tags every member shares when there are any, otherwise the `limit`
    most frequent tags (ties keep first-seen order).
    """
    if not members:
        return []
    common = [tag for tag in members[0].tags if all(tag in m.tag_set for m in members)]
    if common:
        return common
    counts = Counter()
    for member in members:
        counts.update(member.tags)
    return [tag for tag, _ in counts.most_common(limit)]


def _tag_limit(size):
    return FULL_GROUP_TAG_LIMIT if size >= MAX_GROUP_SIZE else SMALL_GROUP_TAG_LIMIT


def _make_group(number: int, members: List[Entrant]) -> Group:
    return Group(f'group-{number}', members, representative_tags(members, _tag_limit(len(members))))


def _best_candidate_index(members: List[Entrant], remaining: List[Entrant]) -> int:
    best_index = 0
    best_overlap = None
    for index, candidate in enumerate(remaining):
        overlap = average_overlap(candidate, members)
        # Strictly greater, so the earliest candidate wins ties
        if best_overlap is None or overlap > best_overlap:
            best_overlap = overlap
            best_index = index
    return best_index


def _place_single_leftover(groups: List[Group], entrant: Entrant) -> None:
    smallest_index = min(range(len(groups)), key=lambda i: groups[i].size)
    smallest = groups[smallest_index]
    if smallest.size < MAX_GROUP_SIZE:
        members = smallest.entrants + [entrant]
        groups[smallest_index] = Group(smallest.id, members, representative_tags(members, _tag_limit(len(members))))
        logger.debug("Added leftover %s to %s", entrant.name, smallest.id)
        return

    # Every group is full: the last entrant drawn into the final group pairs up with the leftover
    last = groups[-1]
    moved = last.entrants[-1]
    kept = last.entrants[:-1]
    groups[-1] = Group(last.id, kept, representative_tags(kept, _tag_limit(len(kept))))
    groups.append(_make_group(len(groups) + 1, [moved, entrant]))
    logger.debug("Moved %s out of %s to partner leftover %s", moved.name, last.id, entrant.name)


def form_groups(entrants: List[Entrant]) -> List[Group]:
    """
    Partition entrants into groups of at most four.

    Entrants are taken in rank order (seed, unseeded last, input order kept
    among equals). Each group starts with the best ranked remaining entrant
    and is filled with whoever has the highest average tag overlap with the
    members chosen so far.

    Raises InsufficientEntrants for fewer than two entrants.
    """
    if len(entrants) < MIN_ENTRANTS:
        raise InsufficientEntrants(f"Need at least {MIN_ENTRANTS} players to form groups")

    total = len(entrants)
    remaining = sorted(entrants, key=lambda e: e.rank_key(total))
    groups = []

    while len(remaining) >= MAX_GROUP_SIZE:
        members = [remaining.pop(0)]
        for _ in range(MAX_GROUP_SIZE - 1):
            members.append(remaining.pop(_best_candidate_index(members, remaining)))
        groups.append(_make_group(len(groups) + 1, members))

    if len(remaining) >= MIN_ENTRANTS:
        groups.append(_make_group(len(groups) + 1, remaining))
    elif remaining:
        _place_single_leftover(groups, remaining[0])

    logger.info("Formed %d groups from %d players", len(groups), total)
    return groups
