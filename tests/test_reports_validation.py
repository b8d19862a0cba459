import pytest
from helpers import ALICE, BOB, CAROL, COOLDOWN, SLASH_ADMIN, STARTING_BALANCE, T0, TREASURY, VAULT

from staking_vault.console import print_rate_change, print_slashing_history, print_vault_report
from staking_vault.constants import EXCHANGE_RATE_UNIT
from staking_vault.models import CooldownStatus, OnchainStakerState, OnchainVaultState, SlashingRecord
from staking_vault.reports import account_snapshot, compute_summary, known_stakers, summarize_onchain
from staking_vault.validation import validate_onchain_state, validate_vault_invariants


def _staked(vault, clock):
    vault.stake(ALICE, ALICE, 100)
    clock.advance(60)
    vault.stake(BOB, BOB, 300)
    clock.advance(COOLDOWN - 60 + 1)
    return [account_snapshot(vault, s) for s in known_stakers(vault)]


def _onchain_state(**overrides) -> OnchainVaultState:
    fields = {
        "address": "0xstaked",
        "block_number": 19_000_000,
        "block_timestamp": T0,
        "exchange_rate": 2 * EXCHANGE_RATE_UNIT,
        "cooldown_seconds": 100,
        "unstake_window": 50,
        "max_slashable_percentage": 30_00,
        "in_post_slashing_period": False,
        "total_shares": 1_000,
        "total_assets": 500,
        "vault_asset_balance": 500,
        "admins": {"slashing admin": "0xslasher"},
        "stakers": [
            OnchainStakerState(staker="0xa", shares=200, cooldown_timestamp=T0 - 10, unclaimed_rewards=7),
            OnchainStakerState(staker="0xb", shares=100, cooldown_timestamp=0, unclaimed_rewards=0),
        ],
    }
    fields.update(overrides)
    return OnchainVaultState(**fields)


def test_summary_counts_cooldown_states(vault, clock) -> None:
    accounts = _staked(vault, clock)

    assert [a.staker for a in accounts] == [ALICE, BOB]
    assert accounts[0].cooldown_status is CooldownStatus.REDEEMABLE
    assert accounts[1].cooldown_status is CooldownStatus.COOLING

    summary = compute_summary(vault, accounts)
    assert summary.timestamp == T0 + COOLDOWN + 1
    assert summary.total_shares == 400
    assert summary.total_assets == 400
    assert summary.vault_asset_balance == 400
    assert summary.max_slashable_assets == 200
    assert summary.stakers_total == 2
    assert summary.stakers_redeemable == 1
    assert summary.stakers_cooling == 1
    assert summary.stakers_idle == 0
    assert not summary.in_post_slashing_period


def test_account_snapshot_reflects_slash(vault) -> None:
    vault.stake(ALICE, ALICE, 100)
    vault.slash(SLASH_ADMIN, TREASURY, 10)

    snap = account_snapshot(vault, ALICE)
    assert snap.shares == 100
    assert snap.redeemable_assets == 89
    assert compute_summary(vault, [snap]).in_post_slashing_period


def test_known_stakers_skips_the_vault_itself(rewarding_vault, clock) -> None:
    rewarding_vault.stake(ALICE, ALICE, 100)
    clock.advance(10)
    rewarding_vault.claim_rewards_and_stake(ALICE, ALICE, 50)
    assert known_stakers(rewarding_vault) == [ALICE]


def test_healthy_vault_passes_validation(vault, clock) -> None:
    accounts = _staked(vault, clock)
    assert validate_vault_invariants(vault, accounts) == []


def test_insolvency_is_reported(vault, clock, token) -> None:
    accounts = _staked(vault, clock)
    token.transfer(VAULT, TREASURY, 50)

    issues = validate_vault_invariants(vault, accounts, warn_only=True)
    assert len(issues) == 1
    assert "insolvent" in issues[0]
    with pytest.raises(ValueError, match="insolvent"):
        validate_vault_invariants(vault, accounts)


def test_inconsistent_bookkeeping_is_reported(vault, clock) -> None:
    accounts = _staked(vault, clock)
    vault.state.cooldowns[ALICE] = clock() + 1_000
    vault.state.cooldowns[CAROL] = T0

    issues = validate_vault_invariants(vault, accounts[:1] + [account_snapshot(vault, CAROL)], warn_only=True)

    assert any("in the future" in i for i in issues)
    assert any("share balances sum to 100" in i for i in issues)
    assert len(issues) == 2


def test_stake_too_small_for_a_share_passes_validation(vault, token) -> None:
    vault.stake(ALICE, ALICE, 100)
    vault.slash(SLASH_ADMIN, TREASURY, 1)
    vault.settle_slashing(SLASH_ADMIN)
    vault.return_funds(ALICE, 500)
    assert vault.get_exchange_rate() < EXCHANGE_RATE_UNIT

    assert vault.stake(BOB, BOB, 1) == 0
    assert vault.get_cooldown_timestamp(BOB) == T0
    assert token.balance_of(BOB) == STARTING_BALANCE - 1

    accounts = [account_snapshot(vault, s) for s in known_stakers(vault)]
    assert [a.staker for a in accounts] == [ALICE, BOB]
    assert validate_vault_invariants(vault, accounts) == []


def test_summarize_onchain() -> None:
    summary, accounts = summarize_onchain(_onchain_state())

    assert [a.redeemable_assets for a in accounts] == [100, 50]
    assert [a.cooldown_status for a in accounts] == [CooldownStatus.COOLING, CooldownStatus.IDLE]
    assert summary.max_slashable_assets == 150
    assert summary.unclaimed_rewards == 7
    assert summary.stakers_cooling == 1
    assert summary.stakers_idle == 1


def test_validate_onchain_state() -> None:
    assert validate_onchain_state(_onchain_state()) == []

    issues = validate_onchain_state(_onchain_state(vault_asset_balance=400, total_shares=100))
    assert len(issues) == 2
    assert "holds 400" in issues[0]
    assert "exceed total supply" in issues[1]

    with pytest.raises(ValueError, match="exchange rate"):
        validate_onchain_state(_onchain_state(exchange_rate=0), warn_only=False)


def test_console_output(vault, clock, capsys) -> None:
    accounts = _staked(vault, clock)
    before = compute_summary(vault, accounts)
    print_vault_report(before, accounts, title="TEST VAULT", symbol="STK")
    vault.slash(SLASH_ADMIN, TREASURY, 40)
    print_rate_change(before, compute_summary(vault, accounts), symbol="STK")
    print_slashing_history(
        [
            SlashingRecord(kind="slashed", block_number=10, tx_hash="0xaa", amount=40, destination=TREASURY),
            SlashingRecord(kind="settled", block_number=12, tx_hash="0xbb", amount=0),
        ]
    )

    out = capsys.readouterr().out
    assert "TEST VAULT" in out
    assert f"Staker: {ALICE}" in out
    assert "Redeemable" in out
    assert "post-slashing period" in out
    assert "#10" in out
    assert "slashing settled" in out


def test_empty_slashing_history(capsys) -> None:
    print_slashing_history([])
    assert "No slashing events" in capsys.readouterr().out
