"""Exchange-rate engine.

The rate is stored with 18 fractional digits as `total_shares * UNIT / total_assets`.
Rounding always favours the pool: the rate rounds up, both previews round down.
"""

import logging
from collections.abc import Callable

from staking_vault.constants import EXCHANGE_RATE_UNIT
from staking_vault.errors import RateArithmeticError
from staking_vault.formatters import ceil_div
from staking_vault.models import ExchangeRateChanged, VaultEvent, VaultState

logger = logging.getLogger(__name__)


def compute_exchange_rate(total_assets: int, total_shares: int) -> int:
    """Rate for the given backing, rounded up.

    Raises RateArithmeticError when `total_assets` is zero (the vault cannot recover
    from that state) or when no shares are outstanding, which would yield a zero rate.
    """
    if total_assets == 0:
        raise RateArithmeticError("total assets reduced to zero: exchange rate is undefined")
    rate = ceil_div(total_shares * EXCHANGE_RATE_UNIT, total_assets)
    if rate == 0:
        raise RateArithmeticError("no shares outstanding: exchange rate would be zero")
    return rate


class ExchangeRateEngine:
    def __init__(self, state: VaultState, emit: Callable[[VaultEvent], None]):
        self._state = state
        self._emit = emit

    @property
    def rate(self) -> int:
        return self._state.exchange_rate

    def preview_stake(self, assets: int) -> int:
        """Shares minted for `assets`, rounded down."""
        return assets * self._state.exchange_rate // EXCHANGE_RATE_UNIT

    def preview_redeem(self, shares: int) -> int:
        """Assets paid out for `shares`, rounded down."""
        return EXCHANGE_RATE_UNIT * shares // self._state.exchange_rate

    @staticmethod
    def compute_rate(total_assets: int, total_shares: int) -> int:
        return compute_exchange_rate(total_assets, total_shares)

    def set_rate(self, new_rate: int) -> None:
        if new_rate <= 0:
            raise RateArithmeticError(f"exchange rate must be > 0, got {new_rate}")
        logger.debug("exchange rate %d -> %d", self._state.exchange_rate, new_rate)
        self._state.exchange_rate = new_rate
        self._emit(ExchangeRateChanged(rate=new_rate))
