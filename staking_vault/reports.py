"""Vault summaries and per-account snapshots."""

from collections.abc import Iterable

from staking_vault.constants import EXCHANGE_RATE_UNIT
from staking_vault.cooldown import classify_cooldown
from staking_vault.formatters import percent_mul
from staking_vault.models import AccountSnapshot, CooldownStatus, OnchainVaultState, VaultSummary
from staking_vault.vault import StakingVault


def known_stakers(vault: StakingVault) -> list[str]:
    """Every address the vault holds shares, a cooldown or stored rewards for."""
    stakers = set(vault.state.cooldowns) | set(vault.state.rewards_to_claim)
    holders = getattr(vault.shares, "holders", None)
    if holders is not None:
        stakers.update(holders())
    stakers.discard(vault.address)
    return sorted(stakers)


def account_snapshot(vault: StakingVault, staker: str) -> AccountSnapshot:
    shares = vault.shares.balance_of(staker)
    return AccountSnapshot(
        staker=staker,
        shares=shares,
        redeemable_assets=vault.preview_redeem(shares),
        cooldown_timestamp=vault.get_cooldown_timestamp(staker),
        cooldown_status=vault.cooldown_status(staker),
        unclaimed_rewards=vault.get_total_rewards_balance(staker),
    )


def _status_counts(statuses: Iterable[CooldownStatus]) -> dict[CooldownStatus, int]:
    counts = {status: 0 for status in CooldownStatus}
    for status in statuses:
        counts[status] += 1
    return counts


def compute_summary(vault: StakingVault, accounts: list[AccountSnapshot]) -> VaultSummary:
    """Compute aggregated metrics across the given accounts."""
    counts = _status_counts(a.cooldown_status for a in accounts)
    return VaultSummary(
        timestamp=vault.clock(),
        exchange_rate=vault.get_exchange_rate(),
        total_shares=vault.shares.total_supply(),
        total_assets=vault.total_assets(),
        vault_asset_balance=vault.asset.balance_of(vault.address),
        cooldown_seconds=vault.get_cooldown_seconds(),
        unstake_window=vault.get_unstake_window(),
        max_slashable_percentage=vault.get_max_slashable_percentage(),
        max_slashable_assets=vault.slashing.max_slashable_assets(),
        in_post_slashing_period=vault.in_post_slashing_period,
        stakers_total=len(accounts),
        stakers_idle=counts[CooldownStatus.IDLE],
        stakers_cooling=counts[CooldownStatus.COOLING],
        stakers_redeemable=counts[CooldownStatus.REDEEMABLE],
        stakers_expired=counts[CooldownStatus.EXPIRED],
        unclaimed_rewards=sum(a.unclaimed_rewards for a in accounts),
    )


def summarize_onchain(state: OnchainVaultState) -> tuple[VaultSummary, list[AccountSnapshot]]:
    """Same report shape for a deployed staked token."""
    accounts = []
    for s in state.stakers:
        accounts.append(
            AccountSnapshot(
                staker=s.staker,
                shares=s.shares,
                redeemable_assets=0 if state.exchange_rate == 0 else s.shares * EXCHANGE_RATE_UNIT // state.exchange_rate,
                cooldown_timestamp=s.cooldown_timestamp,
                cooldown_status=classify_cooldown(
                    s.cooldown_timestamp, state.block_timestamp, state.cooldown_seconds, state.unstake_window
                ),
                unclaimed_rewards=s.unclaimed_rewards,
            )
        )
    counts = _status_counts(a.cooldown_status for a in accounts)
    summary = VaultSummary(
        timestamp=state.block_timestamp,
        exchange_rate=state.exchange_rate,
        total_shares=state.total_shares,
        total_assets=state.total_assets,
        vault_asset_balance=state.vault_asset_balance,
        cooldown_seconds=state.cooldown_seconds,
        unstake_window=state.unstake_window,
        max_slashable_percentage=state.max_slashable_percentage,
        max_slashable_assets=percent_mul(state.total_assets, state.max_slashable_percentage),
        in_post_slashing_period=state.in_post_slashing_period,
        stakers_total=len(accounts),
        stakers_idle=counts[CooldownStatus.IDLE],
        stakers_cooling=counts[CooldownStatus.COOLING],
        stakers_redeemable=counts[CooldownStatus.REDEEMABLE],
        stakers_expired=counts[CooldownStatus.EXPIRED],
        unclaimed_rewards=sum(a.unclaimed_rewards for a in accounts),
    )
    return summary, accounts
