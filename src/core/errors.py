"""
Exceptions raised by tournament engine operations.

Every error carries a message that can be shown to an organizer as-is.
"""


class TournamentError(Exception):
    """Base class for rejected tournament operations."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InsufficientEntrants(TournamentError):
    """Too few entrants to form groups or build a knockout bracket."""


class MatchNotFound(TournamentError):
    def __init__(self, match_id):
        super().__init__(f"Match '{match_id}' not found")
        self.match_id = match_id


class MatchLocked(TournamentError):
    """The match can no longer be edited."""


class InvalidResult(TournamentError):
    """The submitted result does not fit the match."""


class StructuralViolation(TournamentError):
    """An entrant occupies more than one match in the same knockout round."""

    def __init__(self, entrant_id, round, kept_match_id, cleared_match_id):
        super().__init__(
            f"Entrant '{entrant_id}' appears twice in knockout round {round}: "
            f"kept in match '{kept_match_id}', cleared from match '{cleared_match_id}'"
        )
        self.entrant_id = entrant_id
        self.round = round
        self.kept_match_id = kept_match_id
        self.cleared_match_id = cleared_match_id


class TournamentNotFound(TournamentError):
    def __init__(self, tournament_id):
        super().__init__(f"Tournament '{tournament_id}' not found")
        self.tournament_id = tournament_id
