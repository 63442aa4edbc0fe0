"""
Data models for entrants, matches, groups, standings and rankings.
"""
import copy
import enum
from typing import Dict, List, NamedTuple, Optional


GROUP_STAGE = 'group'
KNOCKOUT_STAGE = 'knockout'


class Entrant:
    def __init__(self, id, name, tags=None, seed=None):
        self.id = id
        self.name = name
        # Duplicates collapse, first-seen order is kept for display
        self.tags = list(dict.fromkeys(tags or []))
        self.seed = seed

    @property
    def tag_set(self):
        return frozenset(self.tags)

    def rank_key(self, total_entrants):
        """Seed if present, otherwise a rank below every seeded entrant."""
        return self.seed if self.seed is not None else total_entrants + 1

    def with_seed(self, seed):
        return Entrant(self.id, self.name, self.tags, seed)

    def to_dict(self):
        data = {'id': self.id, 'name': self.name, 'tags': list(self.tags)}
        if self.seed is not None:
            data['seed'] = self.seed
        return data

    @classmethod
    def from_dict(cls, data):
        # Older player records use the officeDays key for tags
        tags = data.get('tags', data.get('officeDays', []))
        return cls(id=data['id'], name=data.get('name', data['id']), tags=tags, seed=data.get('seed'))

    def __eq__(self, other):
        if not isinstance(other, Entrant):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Entrant(id={self.id}, name={self.name}, tags={self.tags}, seed={self.seed})"


class MatchStatus(enum.Enum):
    AWAITING = 'awaiting'
    PENDING = 'pending'
    BYE = 'bye'
    COMPLETED = 'completed'


class Match:
    """A single fixture in either stage.

    Engine code never mutates a Match in place; use ``replace`` to derive an
    updated copy so callers can detect changes by identity.
    """

    def __init__(self, round, stage, id=None, player1=None, player2=None,
                 player1_points=0, player2_points=0, winner_id=None, complete=False,
                 group_id=None, future_match_id=None,
                 player1_group_id=None, player2_group_id=None,
                 player1_group_place=None, player2_group_place=None):
        self.id = id
        self.round = round
        self.stage = stage
        self.player1 = player1
        self.player2 = player2
        self.player1_points = player1_points
        self.player2_points = player2_points
        self.winner_id = winner_id
        self.complete = complete
        self.group_id = group_id
        self.future_match_id = future_match_id
        self.player1_group_id = player1_group_id
        self.player2_group_id = player2_group_id
        self.player1_group_place = player1_group_place
        self.player2_group_place = player2_group_place

    @property
    def status(self) -> MatchStatus:
        if self.complete and self.winner_id:
            return MatchStatus.COMPLETED if self.player2 else MatchStatus.BYE
        if self.player1 and self.player2:
            return MatchStatus.PENDING
        return MatchStatus.AWAITING

    @property
    def is_knockout(self):
        return self.stage == KNOCKOUT_STAGE

    @property
    def players(self) -> List[Entrant]:
        return [p for p in (self.player1, self.player2) if p is not None]

    def entrant_ids(self) -> List[str]:
        return [p.id for p in self.players]

    def has_entrant(self, entrant_id):
        return entrant_id in self.entrant_ids()

    @property
    def winner(self) -> Optional[Entrant]:
        if not self.complete or not self.winner_id:
            return None
        return next((p for p in self.players if p.id == self.winner_id), None)

    @property
    def loser(self) -> Optional[Entrant]:
        if self.status is not MatchStatus.COMPLETED:
            return None
        return next((p for p in self.players if p.id != self.winner_id), None)

    def replace(self, **changes):
        updated = copy.copy(self)
        for key, value in changes.items():
            if not hasattr(updated, key):
                raise AttributeError(f"Match has no field '{key}'")
            setattr(updated, key, value)
        return updated

    def reset_result(self):
        return self.replace(complete=False, winner_id=None, player1_points=0, player2_points=0)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'round': self.round,
            'stage': self.stage,
            'player1': self.player1.to_dict() if self.player1 else None,
            'player2': self.player2.to_dict() if self.player2 else None,
            'player1_points': self.player1_points,
            'player2_points': self.player2_points,
            'winner_id': self.winner_id,
            'complete': self.complete,
            'group_id': self.group_id,
            'future_match_id': self.future_match_id,
            'player1_group_id': self.player1_group_id,
            'player2_group_id': self.player2_group_id,
            'player1_group_place': self.player1_group_place,
            'player2_group_place': self.player2_group_place,
        }

    @classmethod
    def from_dict(cls, data):
        player1 = data.get('player1')
        player2 = data.get('player2')
        return cls(
            id=data.get('id'),
            round=data.get('round', 1),
            stage=data.get('stage', GROUP_STAGE),
            player1=Entrant.from_dict(player1) if player1 else None,
            player2=Entrant.from_dict(player2) if player2 else None,
            player1_points=data.get('player1_points') or 0,
            player2_points=data.get('player2_points') or 0,
            winner_id=data.get('winner_id'),
            complete=bool(data.get('complete', False)),
            group_id=data.get('group_id'),
            future_match_id=data.get('future_match_id'),
            player1_group_id=data.get('player1_group_id'),
            player2_group_id=data.get('player2_group_id'),
            player1_group_place=data.get('player1_group_place'),
            player2_group_place=data.get('player2_group_place'),
        )

    def __eq__(self, other):
        if not isinstance(other, Match):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def __repr__(self):
        p1 = self.player1.name if self.player1 else None
        p2 = self.player2.name if self.player2 else None
        return (f"Match(id={self.id}, stage={self.stage}, round={self.round}, "
                f"players=({p1}, {p2}), winner={self.winner_id}, complete={self.complete})")


class Group:
    def __init__(self, id, entrants, tags=None):
        self.id = id
        self.entrants = list(entrants)
        self.tags = list(tags or [])

    @property
    def size(self):
        return len(self.entrants)

    def __repr__(self):
        return f"Group(id={self.id}, entrants={[e.name for e in self.entrants]}, tags={self.tags})"


class Standing:
    def __init__(self, entrant, wins=0, losses=0, points=0, played=0):
        self.entrant = entrant
        self.wins = wins
        self.losses = losses
        self.points = points
        self.played = played

    def to_dict(self):
        return {
            'player': self.entrant.to_dict(),
            'wins': self.wins,
            'losses': self.losses,
            'points': self.points,
            'played': self.played,
        }

    def __repr__(self):
        return f"Standing({self.entrant.name}: {self.wins}W-{self.losses}L, {self.points}pts)"


class Qualifier(NamedTuple):
    entrant: Entrant
    group_id: Optional[str] = None
    place: Optional[int] = None


class RankingEntry:
    def __init__(self, entrant, rank, points, adjusted_seed):
        self.entrant = entrant
        self.rank = rank
        self.points = points
        self.adjusted_seed = adjusted_seed

    def to_dict(self):
        return {
            'player': self.entrant.to_dict(),
            'rank': self.rank,
            'points': self.points,
            'adjusted_seed': self.adjusted_seed,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            entrant=Entrant.from_dict(data['player']),
            rank=data['rank'],
            points=data.get('points', 0),
            adjusted_seed=data.get('adjusted_seed', data['rank']),
        )

    def __repr__(self):
        return f"RankingEntry(rank={self.rank}, player={self.entrant.name}, adjusted_seed={self.adjusted_seed})"
