"""
Pytest configuration and shared fixtures.
"""
import random

import pytest

from sweeper import engine
from sweeper.relay import LocalTransport, RelayService
from sweeper.session import GameSession
from sweeper.sync import SyncClient
from sweeper.types import DIFFICULTIES, Board, Difficulty, DifficultyConfig


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def beginner_config() -> DifficultyConfig:
    return DIFFICULTIES[Difficulty.BEGINNER]


@pytest.fixture
def wall_config() -> DifficultyConfig:
    """5x5 board with room for a full column of mines."""
    return DifficultyConfig(rows=5, cols=5, mines=5)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


# ============================================================================
# Board Fixtures
# ============================================================================

@pytest.fixture
def wall_board(wall_config: DifficultyConfig) -> Board:
    """Mines fill column 2; columns 0-1 are reachable from (0, 0)."""
    return engine.lay_mines(wall_config, [(row, 2) for row in range(5)])


@pytest.fixture
def session(rng: random.Random) -> GameSession:
    return GameSession(Difficulty.BEGINNER, rng=rng)


@pytest.fixture
def playing_session(session: GameSession) -> GameSession:
    """Beginner session after the first reveal at the centre."""
    session.reveal(4, 4)
    return session


# ============================================================================
# Relay Fixtures
# ============================================================================

@pytest.fixture
def relay() -> RelayService:
    return RelayService()


@pytest.fixture
def make_client(relay: RelayService):
    """Factory for clients connected to the shared in-process relay."""
    def factory(client_id: str, seed: int = 0) -> SyncClient:
        transport = LocalTransport(relay, participant_id=client_id)
        session = GameSession(rng=random.Random(seed))
        return SyncClient(transport, session=session, client_id=client_id)
    return factory
