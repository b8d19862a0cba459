"""Invariant checks for local and deployed vaults."""

from staking_vault.constants import PERCENTAGE_FACTOR
from staking_vault.models import AccountSnapshot, OnchainVaultState
from staking_vault.vault import StakingVault


def _report(issues: list[str], msg: str, warn_only: bool) -> None:
    issues.append(msg)
    if not warn_only:
        raise ValueError(msg)


def validate_vault_invariants(
    vault: StakingVault, accounts: list[AccountSnapshot] | None = None, *, warn_only: bool = False
) -> list[str]:
    """
    Validate the accounting invariants of a local vault.

    Returns list of validation warnings/errors. If warn_only=False, raises ValueError on the first one.
    """
    issues: list[str] = []

    # 1. Exchange rate stays positive.
    rate = vault.get_exchange_rate()
    if rate <= 0:
        _report(issues, f"exchange rate must be > 0, got {rate}", warn_only)

    # 2. Slashable fraction is strictly below 100%.
    pct = vault.get_max_slashable_percentage()
    if not 0 <= pct < PERCENTAGE_FACTOR:
        _report(issues, f"max slashable percentage out of range: {pct}", warn_only)

    # 3. Solvency: outstanding shares never redeem for more than the vault holds.
    total_assets = vault.total_assets()
    held = vault.asset.balance_of(vault.address)
    if total_assets > held:
        _report(issues, f"insolvent: shares redeem for {total_assets} but vault holds {held}", warn_only)

    now = vault.clock()
    for staker, ts in sorted(vault.state.cooldowns.items()):
        if ts > now:
            _report(issues, f"{staker}: cooldown timestamp {ts} is in the future (now={now})", warn_only)

    if accounts is not None:
        # 4. Share balances add up to the supply.
        total_shares = vault.shares.total_supply()
        summed = sum(a.shares for a in accounts)
        if summed != total_shares:
            _report(issues, f"share balances sum to {summed}, total supply is {total_shares}", warn_only)

    # A cooldown on an empty account is legal: a stake too small to mint a share still starts one.

    return issues


def validate_onchain_state(state: OnchainVaultState, *, warn_only: bool = True) -> list[str]:
    """
    Validate a deployed staked token snapshot.

    Returns list of warnings. By default, only warns (doesn't raise) since only a sample of stakers is read.
    """
    issues: list[str] = []

    if state.exchange_rate <= 0:
        _report(issues, f"{state.address}: exchange rate must be > 0, got {state.exchange_rate}", warn_only)

    if not 0 <= state.max_slashable_percentage < PERCENTAGE_FACTOR:
        _report(
            issues,
            f"{state.address}: max slashable percentage out of range: {state.max_slashable_percentage}",
            warn_only,
        )

    if state.total_assets > state.vault_asset_balance:
        _report(
            issues,
            f"{state.address}: shares redeem for {state.total_assets} "
            f"but the contract holds {state.vault_asset_balance} (block {state.block_number})",
            warn_only,
        )

    sampled = sum(s.shares for s in state.stakers)
    if sampled > state.total_shares:
        _report(issues, f"{state.address}: sampled balances {sampled} exceed total supply {state.total_shares}", warn_only)

    return issues
