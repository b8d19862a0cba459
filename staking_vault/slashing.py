"""Slashing controller: bounded loss events, restitution and settlement."""

import logging
from collections.abc import Callable

from staking_vault.constants import PERCENTAGE_FACTOR
from staking_vault.errors import InvalidArgumentError, StateConflictError
from staking_vault.exchange_rate import ExchangeRateEngine
from staking_vault.formatters import percent_mul
from staking_vault.interfaces import Asset, ShareLedger
from staking_vault.models import (
    FundsReturned,
    MaxSlashablePercentageChanged,
    Slashed,
    SlashingSettled,
    VaultEvent,
    VaultState,
)

logger = logging.getLogger(__name__)


def validate_max_slashable_percentage(percentage: int) -> None:
    if percentage < 0 or percentage >= PERCENTAGE_FACTOR:
        raise InvalidArgumentError(
            f"max slashable percentage must be in [0, {PERCENTAGE_FACTOR}), got {percentage}"
        )


class SlashingController:
    def __init__(
        self,
        state: VaultState,
        rates: ExchangeRateEngine,
        shares: ShareLedger,
        asset: Asset,
        vault_address: str,
        emit: Callable[[VaultEvent], None],
    ):
        self._state = state
        self._rates = rates
        self._shares = shares
        self._asset = asset
        self._vault = vault_address
        self._emit = emit

    def total_assets(self) -> int:
        """Assets currently backing all outstanding shares."""
        return self._rates.preview_redeem(self._shares.total_supply())

    def max_slashable_assets(self) -> int:
        return percent_mul(self.total_assets(), self._state.max_slashable_percentage)

    def slash(self, destination: str, amount: int) -> int:
        """Move up to the slashable cap to `destination`; returns the amount actually slashed.

        The rate is lowered before the asset leaves the vault so no redemption can
        observe the pre-slash rate once the slash is recorded.
        """
        if self._state.in_post_slashing_period:
            raise StateConflictError("previous slashing not settled")
        if amount <= 0:
            raise InvalidArgumentError("slash amount must be > 0")

        total_shares = self._shares.total_supply()
        balance = self._rates.preview_redeem(total_shares)
        max_slashable = percent_mul(balance, self._state.max_slashable_percentage)
        if amount > max_slashable:
            logger.info("slash of %d capped to %d", amount, max_slashable)
            amount = max_slashable

        new_rate = self._rates.compute_rate(balance - amount, total_shares)
        self._state.in_post_slashing_period = True
        self._rates.set_rate(new_rate)
        self._asset.transfer(self._vault, destination, amount)
        logger.info("slashed %d to %s, rate now %d", amount, destination, new_rate)
        self._emit(Slashed(destination=destination, amount=amount))
        return amount

    def return_funds(self, sender: str, amount: int) -> None:
        """Pull `amount` from `sender` into the pool, raising every share's value."""
        if amount <= 0:
            raise InvalidArgumentError("returned amount must be > 0")
        total_shares = self._shares.total_supply()
        assets = self._rates.preview_redeem(total_shares)
        self._rates.set_rate(self._rates.compute_rate(assets + amount, total_shares))
        self._asset.transfer_from(self._vault, sender, self._vault, amount)
        logger.info("%s returned %d to the pool", sender, amount)
        self._emit(FundsReturned(amount=amount))

    def settle(self) -> None:
        self._state.in_post_slashing_period = False
        logger.info("slashing settled")
        self._emit(SlashingSettled())

    def set_max_slashable_percentage(self, percentage: int) -> None:
        validate_max_slashable_percentage(percentage)
        logger.info("max slashable percentage %d -> %d", self._state.max_slashable_percentage, percentage)
        self._state.max_slashable_percentage = percentage
        self._emit(MaxSlashablePercentageChanged(percentage=percentage))
