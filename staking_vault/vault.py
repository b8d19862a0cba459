"""Vault orchestrator: stake / redeem / claim flows over the accounting components.

Every public operation takes the calling address first and runs as a single
transaction: authorization is checked before anything else, and any fault
rolls back vault state, emitted events and the in-memory collaborators.
Internal bookkeeping (reward commit, cooldown, share mint/burn) always happens
before the underlying asset moves.
"""

import functools
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from staking_vault.constants import EXCHANGE_RATE_UNIT, MAX_UINT256, ROLE_LABELS, Role
from staking_vault.cooldown import CooldownStateMachine
from staking_vault.errors import InvalidArgumentError, StateConflictError, UnauthorizedError
from staking_vault.exchange_rate import ExchangeRateEngine
from staking_vault.interfaces import AccrualEngine, Asset, PermitAsset, RoleRegistry, ShareLedger, Snapshottable
from staking_vault.models import (
    CooldownActivated,
    CooldownSecondsChanged,
    CooldownStatus,
    MaxSlashablePercentageChanged,
    Redeemed,
    RewardsClaimed,
    SharesTransferred,
    Staked,
    VaultConfig,
    VaultEvent,
    VaultState,
)
from staking_vault.rewards import RewardsBridge
from staking_vault.slashing import SlashingController, validate_max_slashable_percentage

logger = logging.getLogger(__name__)


def _system_clock() -> int:
    return int(time.time())


def transactional(method):
    """Run a public vault operation all-or-nothing."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.transaction():
            return method(self, *args, **kwargs)

    return wrapper


class RoleGate:
    """Capability checks against an external role registry."""

    def __init__(self, registry: RoleRegistry):
        self._registry = registry

    def holder(self, role: Role) -> str:
        return self._registry.get_admin(int(role))

    def require(self, role: Role, caller: str) -> None:
        if self.holder(role) != caller:
            raise UnauthorizedError(caller, ROLE_LABELS[role])


class StakingVault:
    def __init__(
        self,
        config: VaultConfig,
        *,
        shares: ShareLedger,
        asset: Asset,
        reward_token: Asset,
        accrual: AccrualEngine,
        roles: RoleRegistry,
        clock: Callable[[], int] = _system_clock,
    ):
        validate_max_slashable_percentage(config.max_slashable_percentage)
        if config.cooldown_seconds < 0 or config.unstake_window < 0:
            raise InvalidArgumentError("cooldown seconds and unstake window must be >= 0")

        self.config = config
        self.address = config.address
        self.shares = shares
        self.asset = asset
        self.reward_token = reward_token
        self.accrual = accrual
        self.clock = clock
        self.events: list[VaultEvent] = []
        self._in_transaction = False

        self.state = VaultState(
            max_slashable_percentage=config.max_slashable_percentage,
            cooldown_seconds=config.cooldown_seconds,
        )
        self.rates = ExchangeRateEngine(self.state, self._emit)
        self.cooldowns = CooldownStateMachine(self.state, config.unstake_window, clock, self._emit)
        self.slashing = SlashingController(self.state, self.rates, shares, asset, self.address, self._emit)
        self.rewards = RewardsBridge(self.state, accrual, shares, self._emit)
        self.gate = RoleGate(roles)

        self.rates.set_rate(EXCHANGE_RATE_UNIT)
        self._emit(MaxSlashablePercentageChanged(percentage=config.max_slashable_percentage))
        self._emit(CooldownSecondsChanged(cooldown_seconds=config.cooldown_seconds))
        # Claim-and-stake pulls freshly claimed rewards from the vault itself.
        self.asset.approve(self.address, self.address, MAX_UINT256)

    def _emit(self, event: VaultEvent) -> None:
        self.events.append(event)

    def _collaborators(self) -> list[object]:
        seen: dict[int, object] = {}
        for c in (self.shares, self.asset, self.reward_token, self.accrual):
            seen.setdefault(id(c), c)
        return list(seen.values())

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Restore state, events and snapshot-capable collaborators if the block raises."""
        if self._in_transaction:
            yield
            return
        saved_state = self.state.snapshot()
        saved_events = len(self.events)
        saved = [(c, c.snapshot()) for c in self._collaborators() if isinstance(c, Snapshottable)]
        self._in_transaction = True
        try:
            yield
        except Exception:
            self.state.restore(saved_state)
            del self.events[saved_events:]
            for collaborator, snap in saved:
                collaborator.restore(snap)
            raise
        finally:
            self._in_transaction = False

    # Views

    def get_exchange_rate(self) -> int:
        return self.rates.rate

    def preview_stake(self, assets: int) -> int:
        return self.rates.preview_stake(assets)

    def preview_redeem(self, shares: int) -> int:
        return self.rates.preview_redeem(shares)

    def total_assets(self) -> int:
        return self.slashing.total_assets()

    def get_cooldown_seconds(self) -> int:
        return self.state.cooldown_seconds

    def get_unstake_window(self) -> int:
        return self.cooldowns.unstake_window

    def get_max_slashable_percentage(self) -> int:
        return self.state.max_slashable_percentage

    @property
    def in_post_slashing_period(self) -> bool:
        return self.state.in_post_slashing_period

    def get_cooldown_timestamp(self, staker: str) -> int:
        return self.cooldowns.timestamp_of(staker)

    def cooldown_status(self, staker: str) -> CooldownStatus:
        return self.cooldowns.status(staker)

    def get_total_rewards_balance(self, staker: str) -> int:
        """Unclaimed rewards including what accrued since the last commit, without committing."""
        return self.rewards.peek_or_commit(staker, self.shares.balance_of(staker), commit=False)

    # Staking

    @transactional
    def stake(self, caller: str, to: str, amount: int) -> int:
        return self._stake(caller, to, amount)

    @transactional
    def stake_with_permit(self, caller: str, amount: int, deadline: int, v: int, r, s) -> int:
        """Stake for `caller`, authorizing the asset pull with a signed permit instead of an approval."""
        if not isinstance(self.asset, PermitAsset):
            raise InvalidArgumentError("staked asset does not support permit")
        self.asset.permit(caller, self.address, amount, deadline, v, r, s)
        return self._stake(caller, caller, amount)

    def _stake(self, sender: str, to: str, amount: int) -> int:
        if self.state.in_post_slashing_period:
            raise StateConflictError("slashing ongoing: staking is paused until settlement")
        if amount == 0:
            raise InvalidArgumentError("stake amount must be > 0")

        balance = self.shares.balance_of(to)
        self.rewards.peek_or_commit(to, balance, commit=True)

        now = self.clock()
        next_timestamp = self.cooldowns.next_cooldown_timestamp(now, amount, to, balance)
        self.cooldowns.set_timestamp(to, next_timestamp or now)

        minted = self.rates.preview_stake(amount)
        self.shares.mint(to, minted)
        self.asset.transfer_from(self.address, sender, self.address, amount)
        logger.debug("%s staked %d for %s (%d shares)", sender, amount, to, minted)
        self._emit(Staked(sender=sender, recipient=to, assets=amount, shares=minted))
        return minted

    # Cooldown

    @transactional
    def activate_cooldown(self, caller: str) -> int:
        return self._activate_cooldown(caller)

    @transactional
    def activate_cooldown_on_behalf_of(self, caller: str, staker: str) -> int:
        self.gate.require(Role.CLAIM_HELPER, caller)
        return self._activate_cooldown(staker)

    def _activate_cooldown(self, staker: str) -> int:
        if self.shares.balance_of(staker) == 0:
            raise InvalidArgumentError(f"{staker} has no shares to cool down")
        ts = self.cooldowns.activate(staker)
        self._emit(CooldownActivated(staker=staker))
        return ts

    # Redemption

    @transactional
    def redeem(self, caller: str, to: str, amount: int) -> int:
        return self._redeem(caller, to, amount)

    @transactional
    def redeem_on_behalf(self, caller: str, staker: str, to: str, amount: int) -> int:
        self.gate.require(Role.CLAIM_HELPER, caller)
        return self._redeem(staker, to, amount)

    def _redeem(self, sender: str, to: str, amount: int) -> int:
        if amount == 0:
            raise InvalidArgumentError("redeem amount must be > 0")
        self.cooldowns.require_redeemable(sender)

        balance = self.shares.balance_of(sender)
        burned = min(amount, balance)
        self.rewards.peek_or_commit(sender, balance, commit=True)

        assets = self.rates.preview_redeem(burned)
        self.shares.burn(sender, burned)
        if balance - burned == 0:
            self.cooldowns.reset(sender)
        self.asset.transfer(self.address, to, assets)
        logger.debug("%s redeemed %d shares for %d to %s", sender, burned, assets, to)
        self._emit(Redeemed(sender=sender, recipient=to, assets=assets, shares=burned))
        return assets

    # Rewards

    @transactional
    def claim_rewards(self, caller: str, to: str, amount: int) -> int:
        return self._claim_rewards(caller, to, amount)

    @transactional
    def claim_rewards_on_behalf(self, caller: str, staker: str, to: str, amount: int) -> int:
        self.gate.require(Role.CLAIM_HELPER, caller)
        return self._claim_rewards(staker, to, amount)

    def _claim_rewards(self, sender: str, to: str, amount: int) -> int:
        if amount == 0:
            raise InvalidArgumentError("claim amount must be > 0")
        unclaimed = self.rewards.peek_or_commit(sender, self.shares.balance_of(sender), commit=True)
        claimed = min(amount, unclaimed)
        if claimed == 0:
            raise InvalidArgumentError(f"{sender} has no rewards to claim")

        self.rewards.set_stored(sender, unclaimed - claimed)
        self.reward_token.transfer_from(self.address, self.config.rewards_vault, to, claimed)
        self._emit(RewardsClaimed(sender=sender, recipient=to, amount=claimed))
        return claimed

    @transactional
    def claim_rewards_and_stake(self, caller: str, to: str, amount: int) -> int:
        return self._claim_rewards_and_stake(caller, to, amount)

    @transactional
    def claim_rewards_and_stake_on_behalf(self, caller: str, staker: str, to: str, amount: int) -> int:
        self.gate.require(Role.CLAIM_HELPER, caller)
        return self._claim_rewards_and_stake(staker, to, amount)

    def _claim_rewards_and_stake(self, sender: str, to: str, amount: int) -> int:
        if self.reward_token.address != self.asset.address:
            raise StateConflictError("reward token is not the staked token")
        unclaimed = self.rewards.peek_or_commit(sender, self.shares.balance_of(sender), commit=True)
        claimed = min(amount, unclaimed)
        if claimed != 0:
            self._claim_rewards(sender, self.address, claimed)
            self._stake(self.address, to, claimed)
        return claimed

    @transactional
    def claim_rewards_and_redeem(self, caller: str, to: str, claim_amount: int, redeem_amount: int) -> tuple[int, int]:
        claimed = self._claim_rewards(caller, to, claim_amount)
        return claimed, self._redeem(caller, to, redeem_amount)

    @transactional
    def claim_rewards_and_redeem_on_behalf(
        self, caller: str, staker: str, to: str, claim_amount: int, redeem_amount: int
    ) -> tuple[int, int]:
        self.gate.require(Role.CLAIM_HELPER, caller)
        claimed = self._claim_rewards(staker, to, claim_amount)
        return claimed, self._redeem(staker, to, redeem_amount)

    # Share transfers

    @transactional
    def transfer(self, caller: str, to: str, amount: int) -> None:
        """Move shares, carrying the sender's cooldown progress to the recipient."""
        sender_balance = self.shares.balance_of(caller)
        self.rewards.peek_or_commit(caller, sender_balance, commit=True)

        if caller != to:
            recipient_balance = self.shares.balance_of(to)
            self.rewards.peek_or_commit(to, recipient_balance, commit=True)
            sender_cooldown = self.cooldowns.timestamp_of(caller)
            self.cooldowns.set_timestamp(
                to, self.cooldowns.next_cooldown_timestamp(sender_cooldown, amount, to, recipient_balance)
            )
            if sender_balance == amount and sender_cooldown != 0:
                self.cooldowns.reset(caller)

        self.shares.transfer(caller, to, amount)
        self._emit(SharesTransferred(sender=caller, recipient=to, shares=amount))

    # Slashing and administration

    @transactional
    def slash(self, caller: str, destination: str, amount: int) -> int:
        self.gate.require(Role.SLASH_ADMIN, caller)
        return self.slashing.slash(destination, amount)

    @transactional
    def return_funds(self, caller: str, amount: int) -> None:
        self.slashing.return_funds(caller, amount)

    @transactional
    def settle_slashing(self, caller: str) -> None:
        self.gate.require(Role.SLASH_ADMIN, caller)
        self.slashing.settle()

    @transactional
    def set_max_slashable_percentage(self, caller: str, percentage: int) -> None:
        self.gate.require(Role.SLASH_ADMIN, caller)
        self.slashing.set_max_slashable_percentage(percentage)

    @transactional
    def set_cooldown_seconds(self, caller: str, seconds: int) -> None:
        self.gate.require(Role.COOLDOWN_ADMIN, caller)
        self.cooldowns.set_cooldown_seconds(seconds)
