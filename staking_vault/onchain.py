"""On-chain state of a deployed staked token, and seeding a local vault from it."""

import sys
from collections.abc import Iterable
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from tqdm import tqdm

from staking_vault.cache import cached
from staking_vault.constants import ROLE_LABELS, Role
from staking_vault.contracts import read_role_admins
from staking_vault.formatters import as_int
from staking_vault.ledger import InMemoryShareLedger, InMemoryToken, StaticRoleRegistry
from staking_vault.models import OnchainStakerState, OnchainVaultState, VaultConfig
from staking_vault.parsing import parse_cooldown_value
from staking_vault.rewards import EmissionAccrualEngine
from staking_vault.scenario import ManualClock
from staking_vault.vault import StakingVault

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover

# Holds the shares of every staker that was not sampled, so the local supply matches on-chain.
UNSAMPLED_HOLDER = "unsampled-stakers"


def fetch_staker_state(token: Any, staker: str, *, block_identifier: int | str) -> OnchainStakerState:
    fns = token.functions
    shares = as_int(fns.balanceOf(staker).call(block_identifier=block_identifier))
    cooldown = parse_cooldown_value(fns.stakersCooldowns(staker).call(block_identifier=block_identifier))
    try:
        rewards = as_int(fns.getTotalRewardsBalance(staker).call(block_identifier=block_identifier))
    except Exception as ex:  # pylint: disable=broad-exception-caught
        tqdm.write(f"⚠️  getTotalRewardsBalance failed for {staker}: {ex}", file=sys.stderr)
        rewards = 0
    return OnchainStakerState(staker=staker, shares=shares, cooldown_timestamp=cooldown, unclaimed_rewards=rewards)


def _read_vault_state(
    w3: "Web3", token: Any, underlying: Any, stakers: list[str], *, block_identifier: int | str
) -> dict[str, Any]:
    block = w3.eth.get_block(block_identifier)
    block_number = int(block["number"])
    fns = token.functions
    total_shares = as_int(fns.totalSupply().call(block_identifier=block_number))

    try:
        admins = read_role_admins(token, block_identifier=block_number)
    except Exception as ex:  # pylint: disable=broad-exception-caught
        print(f"⚠️  role registry read failed: {ex}", file=sys.stderr)
        admins = {}

    staker_states = []
    with tqdm(stakers, desc="🔗 Reading stakers", unit="staker", file=sys.stderr, disable=not stakers) as pbar:
        for staker in pbar:
            checksummed = w3.to_checksum_address(staker)
            staker_states.append(asdict(fetch_staker_state(token, checksummed, block_identifier=block_number)))

    state = OnchainVaultState(
        address=token.address,
        block_number=block_number,
        block_timestamp=int(block["timestamp"]),
        exchange_rate=as_int(fns.getExchangeRate().call(block_identifier=block_number)),
        cooldown_seconds=as_int(fns.getCooldownSeconds().call(block_identifier=block_number)),
        unstake_window=as_int(fns.UNSTAKE_WINDOW().call(block_identifier=block_number)),
        max_slashable_percentage=as_int(fns.getMaxSlashablePercentage().call(block_identifier=block_number)),
        in_post_slashing_period=bool(fns.inPostSlashingPeriod().call(block_identifier=block_number)),
        total_shares=total_shares,
        total_assets=as_int(fns.previewRedeem(total_shares).call(block_identifier=block_number)),
        vault_asset_balance=as_int(underlying.functions.balanceOf(token.address).call(block_identifier=block_number)),
        admins=admins,
        stakers=[],
    )
    out = asdict(state)
    out["stakers"] = staker_states
    return out


def fetch_vault_state(
    w3: "Web3",
    token: Any,
    underlying: Any,
    stakers: Iterable[str] = (),
    *,
    block_identifier: int | str = "latest",
    use_cache: bool = True,
) -> OnchainVaultState:
    """Read rate, cooldown parameters, slashing flag, supply, role holders and sampled stakers."""
    staker_list = list(stakers)
    # "latest" moves, so only pinned blocks are cached.
    use_cache = use_cache and isinstance(block_identifier, int)
    raw = cached(
        "vault_state",
        (token.address, block_identifier, ",".join(sorted(staker_list))),
        lambda: _read_vault_state(w3, token, underlying, staker_list, block_identifier=block_identifier),
        use_cache=use_cache,
    )
    stakers_raw = raw.pop("stakers")
    return OnchainVaultState(**raw, stakers=[OnchainStakerState(**s) for s in stakers_raw])


def vault_from_onchain(state: OnchainVaultState, *, symbol: str = "TKN") -> tuple[StakingVault, ManualClock]:
    """Local vault reproducing the deployed token's accounting at the snapshot block.

    Used for what-if previews; emissions are not modelled, sampled rewards are carried as stored balances.
    """
    clock = ManualClock(state.block_timestamp)
    asset = InMemoryToken("underlying", symbol=symbol, clock=clock)
    shares = InMemoryShareLedger()
    admins_by_label = {label: role for role, label in ROLE_LABELS.items()}
    roles = StaticRoleRegistry({admins_by_label[k]: v for k, v in state.admins.items() if k in admins_by_label})
    vault = StakingVault(
        VaultConfig(
            address=state.address,
            cooldown_seconds=state.cooldown_seconds,
            unstake_window=state.unstake_window,
            max_slashable_percentage=state.max_slashable_percentage,
        ),
        shares=shares,
        asset=asset,
        reward_token=asset,
        accrual=EmissionAccrualEngine(clock),
        roles=roles,
        clock=clock,
    )

    sampled = 0
    for s in state.stakers:
        shares.mint(s.staker, s.shares)
        sampled += s.shares
        vault.cooldowns.set_timestamp(s.staker, s.cooldown_timestamp)
        vault.rewards.set_stored(s.staker, s.unclaimed_rewards)
    if state.total_shares > sampled:
        shares.mint(UNSAMPLED_HOLDER, state.total_shares - sampled)

    asset.mint(state.address, state.vault_asset_balance)
    vault.rates.set_rate(state.exchange_rate)
    vault.state.in_post_slashing_period = state.in_post_slashing_period
    return vault, clock


def slash_admin_of(state: OnchainVaultState) -> str | None:
    return state.admins.get(ROLE_LABELS[Role.SLASH_ADMIN])
