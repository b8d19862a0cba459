"""Per-staker cooldown state machine.

A staker's timestamp is 0 while idle; otherwise it is the instant the cooldown
started. Redemption opens strictly after `timestamp + cooldown_seconds` and stays
open for `unstake_window` seconds. A stale timestamp is kept after the window
passes until the next mutation resets or replaces it.
"""

import logging
from collections.abc import Callable

from staking_vault.errors import InvalidArgumentError, StateConflictError
from staking_vault.models import CooldownSecondsChanged, CooldownStatus, VaultEvent, VaultState

logger = logging.getLogger(__name__)


def classify_cooldown(timestamp: int, now: int, cooldown_seconds: int, unstake_window: int) -> CooldownStatus:
    if timestamp == 0:
        return CooldownStatus.IDLE
    unlock_at = timestamp + cooldown_seconds
    if now <= unlock_at:
        return CooldownStatus.COOLING
    if now - unlock_at <= unstake_window:
        return CooldownStatus.REDEEMABLE
    return CooldownStatus.EXPIRED


class CooldownStateMachine:
    def __init__(
        self,
        state: VaultState,
        unstake_window: int,
        clock: Callable[[], int],
        emit: Callable[[VaultEvent], None],
    ):
        self._state = state
        self._clock = clock
        self._emit = emit
        self.unstake_window = unstake_window

    @property
    def cooldown_seconds(self) -> int:
        return self._state.cooldown_seconds

    def timestamp_of(self, staker: str) -> int:
        return self._state.cooldowns.get(staker, 0)

    def set_timestamp(self, staker: str, timestamp: int) -> None:
        if timestamp == 0:
            self._state.cooldowns.pop(staker, None)
        else:
            self._state.cooldowns[staker] = timestamp

    def reset(self, staker: str) -> None:
        self.set_timestamp(staker, 0)

    def activate(self, staker: str) -> int:
        now = self._clock()
        self.set_timestamp(staker, now)
        return now

    def next_cooldown_timestamp(
        self, from_timestamp: int, incoming_amount: int, recipient: str, recipient_balance: int
    ) -> int:
        """Cooldown the recipient ends up with after receiving `incoming_amount`.

        An expired recipient cooldown resets to 0. An incoming cooldown that is
        further along than the recipient's leaves the recipient's untouched;
        otherwise the two are merged weighted by balance, rounded down.
        """
        to_timestamp = self.timestamp_of(recipient)
        if to_timestamp == 0:
            return 0

        now = self._clock()
        min_valid_timestamp = now - self._state.cooldown_seconds - self.unstake_window
        if min_valid_timestamp > to_timestamp:
            return 0

        if min_valid_timestamp > from_timestamp:
            from_timestamp = now
        if from_timestamp < to_timestamp:
            return to_timestamp

        total = incoming_amount + recipient_balance
        if total == 0:
            return to_timestamp
        return (incoming_amount * from_timestamp + recipient_balance * to_timestamp) // total

    def status(self, staker: str) -> CooldownStatus:
        return classify_cooldown(
            self.timestamp_of(staker), self._clock(), self._state.cooldown_seconds, self.unstake_window
        )

    def require_redeemable(self, staker: str) -> None:
        """Enforce the cooldown/window unless a slash is awaiting settlement."""
        if self._state.in_post_slashing_period:
            return
        ts = self.timestamp_of(staker)
        now = self._clock()
        unlock_at = ts + self._state.cooldown_seconds
        if now <= unlock_at:
            raise StateConflictError(f"insufficient cooldown: {staker} can redeem after {unlock_at}")
        if now - unlock_at > self.unstake_window:
            raise StateConflictError(f"unstake window finished for {staker} at {unlock_at + self.unstake_window}")

    def set_cooldown_seconds(self, seconds: int) -> None:
        if seconds < 0:
            raise InvalidArgumentError(f"cooldown seconds must be >= 0, got {seconds}")
        logger.info("cooldown seconds %d -> %d", self._state.cooldown_seconds, seconds)
        self._state.cooldown_seconds = seconds
        self._emit(CooldownSecondsChanged(cooldown_seconds=seconds))
