"""
Shared pytest fixtures for tournament engine tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Entrant, Qualifier


def make_entrants(count, tags=('Mon',), seeded=True):
    """Players p1..pN, seeded 1..N unless seeded is False."""
    return [
        Entrant(id=f"p{i}", name=f"Player {i}", tags=list(tags), seed=i if seeded else None)
        for i in range(1, count + 1)
    ]


def play(bracket, match_id, winner_id, points=(2, 1), **kwargs):
    from core.tournament import record_result
    return record_result(bracket, match_id, winner_id, points[0], points[1], **kwargs)


@pytest.fixture
def four_seeded():
    """Four seeded players who all share one office day (scenario A)."""
    return make_entrants(4)


@pytest.fixture
def mixed_days_players():
    """Eight players with varied office days, half of them seeded."""
    return [
        Entrant(id="alice", name="Alice", tags=["Mon", "Tue"], seed=1),
        Entrant(id="bob", name="Bob", tags=["Wed", "Thu"], seed=2),
        Entrant(id="carol", name="Carol", tags=["Mon", "Tue", "Wed"]),
        Entrant(id="dave", name="Dave", tags=["Thu", "Fri"], seed=3),
        Entrant(id="erin", name="Erin", tags=["Mon"]),
        Entrant(id="frank", name="Frank", tags=["Wed", "Thu"], seed=4),
        Entrant(id="grace", name="Grace", tags=["Tue"]),
        Entrant(id="heidi", name="Heidi", tags=["Fri"]),
    ]


@pytest.fixture
def four_qualifiers():
    """Two groups, two qualifiers each."""
    a1, a2, b1, b2 = make_entrants(4)
    return [
        Qualifier(a1, 'group-1', 1),
        Qualifier(a2, 'group-1', 2),
        Qualifier(b1, 'group-2', 1),
        Qualifier(b2, 'group-2', 2),
    ]


@pytest.fixture
def data_dir(tmp_path):
    """Empty data directory for storage tests."""
    path = tmp_path / "data"
    path.mkdir()
    return str(path)
