import pytest
from helpers import T0, TOKEN, make_vault

from staking_vault.ledger import InMemoryToken
from staking_vault.scenario import ManualClock


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def token(clock):
    return InMemoryToken(TOKEN, symbol="STK", clock=clock)


@pytest.fixture
def vault(clock, token):
    return make_vault(clock, token)


@pytest.fixture
def rewarding_vault(clock, token):
    """Vault emitting 10 reward units per second, paid in the staked token."""
    return make_vault(clock, token, emission_per_second=10)
