"""Data models for the staking vault."""

import copy
from dataclasses import dataclass, field, fields
from enum import Enum

from staking_vault.constants import (
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_MAX_SLASHABLE_PERCENTAGE,
    DEFAULT_UNSTAKE_WINDOW,
    EXCHANGE_RATE_UNIT,
    ZERO_ADDRESS,
)


@dataclass(frozen=True)
class VaultConfig:
    """Construction-time parameters of a vault instance."""

    address: str
    rewards_vault: str = ZERO_ADDRESS
    cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
    # Fixed for the lifetime of the vault.
    unstake_window: int = DEFAULT_UNSTAKE_WINDOW
    max_slashable_percentage: int = DEFAULT_MAX_SLASHABLE_PERCENTAGE


@dataclass
class VaultState:
    """Mutable state owned by exactly one vault instance.

    Share balances and total supply live in the share ledger, not here.
    """

    exchange_rate: int = EXCHANGE_RATE_UNIT
    max_slashable_percentage: int = DEFAULT_MAX_SLASHABLE_PERCENTAGE
    cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
    in_post_slashing_period: bool = False
    cooldowns: dict[str, int] = field(default_factory=dict)
    rewards_to_claim: dict[str, int] = field(default_factory=dict)

    def snapshot(self) -> "VaultState":
        return copy.deepcopy(self)

    def restore(self, saved: "VaultState") -> None:
        """Overwrite in place so components holding a reference see the restored values."""
        for f in fields(self):
            setattr(self, f.name, copy.deepcopy(getattr(saved, f.name)))


class CooldownStatus(str, Enum):
    IDLE = "idle"
    COOLING = "cooling"
    REDEEMABLE = "redeemable"
    EXPIRED = "expired"


# Events, in the order and shape external indexers see them.


@dataclass(frozen=True)
class ExchangeRateChanged:
    rate: int


@dataclass(frozen=True)
class MaxSlashablePercentageChanged:
    percentage: int


@dataclass(frozen=True)
class CooldownSecondsChanged:
    cooldown_seconds: int


@dataclass(frozen=True)
class CooldownActivated:
    staker: str


@dataclass(frozen=True)
class Staked:
    sender: str
    recipient: str
    assets: int
    shares: int


@dataclass(frozen=True)
class Redeemed:
    sender: str
    recipient: str
    assets: int
    shares: int


@dataclass(frozen=True)
class SharesTransferred:
    sender: str
    recipient: str
    shares: int


@dataclass(frozen=True)
class RewardsAccrued:
    staker: str
    amount: int


@dataclass(frozen=True)
class RewardsClaimed:
    sender: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class Slashed:
    destination: str
    amount: int


@dataclass(frozen=True)
class FundsReturned:
    amount: int


@dataclass(frozen=True)
class SlashingSettled:
    pass


VaultEvent = (
    ExchangeRateChanged
    | MaxSlashablePercentageChanged
    | CooldownSecondsChanged
    | CooldownActivated
    | Staked
    | Redeemed
    | SharesTransferred
    | RewardsAccrued
    | RewardsClaimed
    | Slashed
    | FundsReturned
    | SlashingSettled
)


@dataclass(frozen=True)
class AccountSnapshot:
    """Point-in-time view of one staker."""

    staker: str
    shares: int
    redeemable_assets: int
    cooldown_timestamp: int
    cooldown_status: CooldownStatus
    unclaimed_rewards: int


@dataclass(frozen=True)
class VaultSummary:
    """Aggregated metrics across the vault."""

    timestamp: int
    exchange_rate: int
    total_shares: int
    total_assets: int
    vault_asset_balance: int
    cooldown_seconds: int
    unstake_window: int
    max_slashable_percentage: int
    max_slashable_assets: int
    in_post_slashing_period: bool
    stakers_total: int
    stakers_idle: int
    stakers_cooling: int
    stakers_redeemable: int
    stakers_expired: int
    unclaimed_rewards: int


@dataclass(frozen=True)
class StakedTokenContracts:
    """Addresses resolved from a deployed staked token."""

    staked_token: str
    underlying: str
    reward_token: str
    rewards_vault: str


@dataclass(frozen=True)
class OnchainStakerState:
    staker: str
    shares: int
    cooldown_timestamp: int
    unclaimed_rewards: int


@dataclass(frozen=True)
class OnchainVaultState:
    """State of a deployed staked token as read over JSON-RPC."""

    address: str
    block_number: int
    block_timestamp: int
    exchange_rate: int
    cooldown_seconds: int
    unstake_window: int
    max_slashable_percentage: int
    in_post_slashing_period: bool
    total_shares: int
    total_assets: int
    vault_asset_balance: int
    admins: dict[str, str]
    stakers: list[OnchainStakerState]


@dataclass(frozen=True)
class SlashingRecord:
    """One slashing-lifecycle log emitted by a deployed staked token."""

    kind: str  # "slashed" | "funds_returned" | "settled"
    block_number: int
    tx_hash: str
    amount: int
    destination: str | None = None


@dataclass(frozen=True)
class ScenarioStep:
    """One operation of a replayed scenario."""

    index: int
    op: str
    caller: str | None
    args: dict[str, object]
    expect_error: str | None = None


@dataclass(frozen=True)
class Scenario:
    start_time: int
    config: VaultConfig
    asset_address: str
    asset_symbol: str
    reward_token_address: str
    emission_per_second: int
    roles: dict[str, str]
    balances: dict[str, int]
    steps: list[ScenarioStep]
    # Minted in the reward token; only differs from `balances` when rewards are paid in another token.
    reward_balances: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class StepOutcome:
    step: ScenarioStep
    timestamp: int
    result: object = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error == self.step.expect_error
