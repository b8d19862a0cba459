"""Rewards bridge over the accrual engine, plus a reference emission-based engine."""

import logging
from collections.abc import Callable

from staking_vault.constants import ACCRUAL_PRECISION
from staking_vault.interfaces import AccrualEngine, ShareLedger
from staking_vault.models import RewardsAccrued, VaultEvent, VaultState

logger = logging.getLogger(__name__)


class RewardsBridge:
    """Keeps each staker's stored "rewards to claim" balance in step with the accrual engine."""

    def __init__(
        self,
        state: VaultState,
        engine: AccrualEngine,
        shares: ShareLedger,
        emit: Callable[[VaultEvent], None],
    ):
        self._state = state
        self._engine = engine
        self._shares = shares
        self._emit = emit

    def stored(self, staker: str) -> int:
        return self._state.rewards_to_claim.get(staker, 0)

    def set_stored(self, staker: str, amount: int) -> None:
        if amount == 0:
            self._state.rewards_to_claim.pop(staker, None)
        else:
            self._state.rewards_to_claim[staker] = amount

    def peek_or_commit(self, staker: str, balance: int, commit: bool) -> int:
        """Up-to-date unclaimed total for `staker` holding `balance` shares.

        With `commit` the engine snapshot advances and the total is stored;
        without it nothing changes.
        """
        accrued = self._engine.update_user(staker, balance, self._shares.total_supply(), commit=commit)
        unclaimed = self.stored(staker) + accrued
        if accrued and commit:
            self.set_stored(staker, unclaimed)
            logger.debug("accrued %d rewards for %s", accrued, staker)
            self._emit(RewardsAccrued(staker=staker, amount=accrued))
        return unclaimed


class EmissionAccrualEngine:
    """Single-asset reward distribution at a constant emission per second.

    Rewards accrue pro rata to share balance through a global index; each staker
    keeps the index value it last committed at.
    """

    def __init__(
        self,
        clock: Callable[[], int],
        *,
        emission_per_second: int = 0,
        distribution_end: int | None = None,
    ):
        self._clock = clock
        self.emission_per_second = emission_per_second
        self.distribution_end = distribution_end
        self.index = 0
        self.last_update = clock()
        self.user_index: dict[str, int] = {}

    def _next_index(self, total_staked: int) -> int:
        now = self._clock()
        end = self.distribution_end
        if (
            self.emission_per_second == 0
            or total_staked == 0
            or self.last_update == now
            or (end is not None and self.last_update >= end)
        ):
            return self.index
        current = now if end is None else min(now, end)
        elapsed = current - self.last_update
        return self.emission_per_second * elapsed * 10**ACCRUAL_PRECISION // total_staked + self.index

    def _advance(self, total_staked: int) -> int:
        self.index = self._next_index(total_staked)
        self.last_update = self._clock()
        return self.index

    def configure(self, emission_per_second: int, total_staked: int) -> None:
        """Change the emission rate; rewards up to now accrue at the old rate."""
        self._advance(total_staked)
        self.emission_per_second = emission_per_second

    def update_user(self, staker: str, balance: int, total_staked: int, *, commit: bool) -> int:
        new_index = self._advance(total_staked) if commit else self._next_index(total_staked)
        user_index = self.user_index.get(staker, 0)
        accrued = 0
        if user_index != new_index:
            accrued = balance * (new_index - user_index) // 10**ACCRUAL_PRECISION
            if commit:
                self.user_index[staker] = new_index
        return accrued

    def snapshot(self) -> tuple:
        return (self.emission_per_second, self.index, self.last_update, dict(self.user_index))

    def restore(self, saved: tuple) -> None:
        self.emission_per_second, self.index, self.last_update, user_index = saved
        self.user_index = dict(user_index)
