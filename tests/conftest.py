"""
Shared pytest fixtures for the knockout relay tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockout.models import TournamentState
from knockout.registration import register
from knockout.bracket import start_tournament
from knockout.relay import TournamentRelay


SIXTEEN_NAMES = "A,B,C,D,E,F,G,H,I,J,K,L,M,N,O,P"


@pytest.fixture
def empty_state():
    return TournamentState.empty()


@pytest.fixture
def full_roster():
    """Sixteen registered players with ids 1-16, registration still open."""
    return register(TournamentState.empty(), SIXTEEN_NAMES)


@pytest.fixture
def started_state(full_roster):
    """A freshly built bracket for sixteen real players."""
    return start_tournament(full_roster)


@pytest.fixture
def relay():
    return TournamentRelay()


@pytest.fixture
def client(monkeypatch):
    """Flask test client backed by a fresh relay."""
    import app as app_module
    monkeypatch.setattr(app_module, 'relay', TournamentRelay())
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client
