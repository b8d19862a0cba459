import pytest
from helpers import (
    ALICE,
    BOB,
    CAROL,
    COOLDOWN,
    HELPER,
    REWARDS_FUNDING,
    REWARDS_VAULT,
    SLASH_ADMIN,
    STARTING_BALANCE,
    T0,
    TREASURY,
    VAULT,
    make_vault,
)

from staking_vault.constants import MAX_UINT256
from staking_vault.errors import InvalidArgumentError, StateConflictError, UnauthorizedError
from staking_vault.ledger import InMemoryToken
from staking_vault.models import RewardsAccrued, RewardsClaimed, Staked
from staking_vault.rewards import EmissionAccrualEngine
from staking_vault.scenario import ManualClock


def test_peeking_does_not_commit(rewarding_vault, clock) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)

    assert rewarding_vault.get_total_rewards_balance(ALICE) == 100
    assert rewarding_vault.get_total_rewards_balance(ALICE) == 100
    assert rewarding_vault.state.rewards_to_claim == {}
    assert rewarding_vault.accrual.index == 0


def test_claim_everything(rewarding_vault, clock, token) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)

    assert rewarding_vault.claim_rewards(ALICE, CAROL, MAX_UINT256) == 100

    assert token.balance_of(CAROL) == STARTING_BALANCE + 100
    assert token.balance_of(REWARDS_VAULT) == REWARDS_FUNDING - 100
    assert rewarding_vault.get_total_rewards_balance(ALICE) == 0
    assert rewarding_vault.events[-2:] == [
        RewardsAccrued(staker=ALICE, amount=100),
        RewardsClaimed(sender=ALICE, recipient=CAROL, amount=100),
    ]


def test_partial_claim_keeps_the_rest(rewarding_vault, clock) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)

    assert rewarding_vault.claim_rewards(ALICE, ALICE, 30) == 30
    assert rewarding_vault.state.rewards_to_claim == {ALICE: 70}
    assert rewarding_vault.get_total_rewards_balance(ALICE) == 70

    clock.advance(1)
    assert rewarding_vault.get_total_rewards_balance(ALICE) == 80


def test_claim_without_rewards(vault) -> None:
    vault.stake(ALICE, ALICE, 100)
    with pytest.raises(InvalidArgumentError, match="no rewards"):
        vault.claim_rewards(ALICE, ALICE, MAX_UINT256)
    with pytest.raises(InvalidArgumentError):
        vault.claim_rewards(ALICE, ALICE, 0)


def test_rewards_split_by_share_balance(rewarding_vault, clock) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    rewarding_vault.stake(BOB, BOB, 300)
    clock.advance(10)

    assert rewarding_vault.get_total_rewards_balance(ALICE) == 25
    assert rewarding_vault.get_total_rewards_balance(BOB) == 75


def test_late_staker_earns_only_from_joining(rewarding_vault, clock) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)
    rewarding_vault.stake(BOB, BOB, 100)
    clock.advance(10)

    assert rewarding_vault.get_total_rewards_balance(ALICE) == 150
    assert rewarding_vault.get_total_rewards_balance(BOB) == 50


def test_transfer_settles_rewards_first(rewarding_vault, clock) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)

    rewarding_vault.transfer(ALICE, BOB, 50)
    assert rewarding_vault.state.rewards_to_claim == {ALICE: 100}

    clock.advance(10)
    assert rewarding_vault.get_total_rewards_balance(ALICE) == 150
    assert rewarding_vault.get_total_rewards_balance(BOB) == 50


def test_claim_on_behalf_needs_claim_helper(rewarding_vault, clock, token) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)

    with pytest.raises(UnauthorizedError):
        rewarding_vault.claim_rewards_on_behalf(BOB, ALICE, BOB, MAX_UINT256)
    assert rewarding_vault.claim_rewards_on_behalf(HELPER, ALICE, ALICE, MAX_UINT256) == 100
    assert token.balance_of(ALICE) == STARTING_BALANCE


def test_claim_and_stake_on_behalf(rewarding_vault, clock, token) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)

    with pytest.raises(UnauthorizedError):
        rewarding_vault.claim_rewards_and_stake_on_behalf(ALICE, ALICE, ALICE, MAX_UINT256)

    assert rewarding_vault.claim_rewards_and_stake_on_behalf(HELPER, ALICE, ALICE, MAX_UINT256) == 100

    assert rewarding_vault.shares.balance_of(ALICE) == 200
    # (100 * (T0 + 10) + 100 * T0) / 200
    assert rewarding_vault.get_cooldown_timestamp(ALICE) == T0 + 5
    assert token.balance_of(VAULT) == 200
    assert rewarding_vault.get_total_rewards_balance(ALICE) == 0
    assert rewarding_vault.events[-1] == Staked(sender=VAULT, recipient=ALICE, assets=100, shares=100)


def test_claim_and_stake_with_nothing_to_claim(vault) -> None:
    vault.stake(ALICE, ALICE, 100)
    assert vault.claim_rewards_and_stake(ALICE, ALICE, MAX_UINT256) == 0
    assert vault.shares.balance_of(ALICE) == 100


def test_claim_and_stake_needs_matching_reward_token(clock, token) -> None:
    vault = make_vault(clock, token, reward_token=InMemoryToken("reward", clock=clock), emission_per_second=10)
    vault.stake(ALICE, ALICE, 100)
    clock.advance(10)

    with pytest.raises(StateConflictError):
        vault.claim_rewards_and_stake(ALICE, ALICE, MAX_UINT256)
    assert vault.claim_rewards(ALICE, ALICE, MAX_UINT256) == 100
    assert vault.reward_token.balance_of(ALICE) == 100


def test_claim_and_stake_rolls_back_while_slashing_pending(rewarding_vault, clock, token) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)
    rewarding_vault.slash(SLASH_ADMIN, TREASURY, 10)
    events_before = list(rewarding_vault.events)

    with pytest.raises(StateConflictError, match="slashing"):
        rewarding_vault.claim_rewards_and_stake(ALICE, ALICE, MAX_UINT256)

    assert rewarding_vault.events == events_before
    assert token.balance_of(REWARDS_VAULT) == REWARDS_FUNDING
    assert rewarding_vault.state.rewards_to_claim == {}
    assert rewarding_vault.get_total_rewards_balance(ALICE) == 100


def test_claim_and_redeem(rewarding_vault, clock, token) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(COOLDOWN + 1)

    assert rewarding_vault.claim_rewards_and_redeem(ALICE, ALICE, MAX_UINT256, MAX_UINT256) == (1010, 100)

    assert token.balance_of(ALICE) == STARTING_BALANCE + 1010
    assert rewarding_vault.shares.balance_of(ALICE) == 0
    assert rewarding_vault.get_cooldown_timestamp(ALICE) == 0


def test_claim_and_redeem_is_all_or_nothing(rewarding_vault, clock, token) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(50)

    with pytest.raises(StateConflictError, match="insufficient cooldown"):
        rewarding_vault.claim_rewards_and_redeem(ALICE, ALICE, MAX_UINT256, MAX_UINT256)

    assert token.balance_of(REWARDS_VAULT) == REWARDS_FUNDING
    assert rewarding_vault.get_total_rewards_balance(ALICE) == 500
    assert not any(isinstance(e, RewardsClaimed) for e in rewarding_vault.events)


def test_claim_and_redeem_on_behalf(rewarding_vault, clock, token) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(COOLDOWN + 1)

    with pytest.raises(UnauthorizedError):
        rewarding_vault.claim_rewards_and_redeem_on_behalf(BOB, ALICE, BOB, 1, 1)
    assert rewarding_vault.claim_rewards_and_redeem_on_behalf(HELPER, ALICE, CAROL, 10, 40) == (10, 40)
    assert token.balance_of(CAROL) == STARTING_BALANCE + 50
    assert rewarding_vault.shares.balance_of(ALICE) == 60


def test_emission_stops_at_distribution_end() -> None:
    clock = ManualClock(T0)
    engine = EmissionAccrualEngine(clock, emission_per_second=10, distribution_end=T0 + 5)
    assert engine.update_user(ALICE, 100, 100, commit=True) == 0

    clock.advance(10)
    assert engine.update_user(ALICE, 100, 100, commit=False) == 50
    assert engine.update_user(ALICE, 100, 100, commit=True) == 50
    clock.advance(10)
    assert engine.update_user(ALICE, 100, 100, commit=True) == 0


def test_reconfigured_emission_applies_from_now() -> None:
    clock = ManualClock(T0)
    engine = EmissionAccrualEngine(clock, emission_per_second=10)
    engine.update_user(ALICE, 100, 100, commit=True)

    clock.advance(10)
    engine.configure(20, 100)
    clock.advance(10)
    assert engine.update_user(ALICE, 100, 100, commit=True) == 300
