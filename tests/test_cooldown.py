import pytest
from helpers import COOLDOWN, T0, WINDOW

from staking_vault.cooldown import CooldownStateMachine, classify_cooldown
from staking_vault.errors import InvalidArgumentError, StateConflictError
from staking_vault.models import CooldownSecondsChanged, CooldownStatus, VaultState
from staking_vault.scenario import ManualClock


@pytest.fixture
def machine():
    clock = ManualClock(T0)
    events: list = []
    m = CooldownStateMachine(VaultState(cooldown_seconds=COOLDOWN), WINDOW, clock, events.append)
    return m, clock, events


def test_no_existing_cooldown_stays_zero(machine) -> None:
    m, _, _ = machine
    assert m.next_cooldown_timestamp(T0, 100, "bob", 300) == 0


def test_expired_cooldown_resets(machine) -> None:
    m, clock, _ = machine
    m.set_timestamp("bob", T0)
    clock.advance(COOLDOWN + WINDOW + 1)
    assert m.next_cooldown_timestamp(clock(), 100, "bob", 300) == 0


def test_older_incoming_cooldown_keeps_recipient(machine) -> None:
    m, clock, _ = machine
    m.set_timestamp("bob", T0 + 10)
    clock.advance(20)
    assert m.next_cooldown_timestamp(T0 + 5, 100, "bob", 300) == T0 + 10


def test_weighted_merge(machine) -> None:
    m, clock, _ = machine
    m.set_timestamp("bob", T0)
    clock.advance(40)
    # (100 * (T0 + 40) + 300 * T0) / 400
    assert m.next_cooldown_timestamp(clock(), 100, "bob", 300) == T0 + 10


def test_stale_incoming_cooldown_counts_as_now(machine) -> None:
    m, clock, _ = machine
    m.set_timestamp("bob", T0)
    clock.advance(40)
    assert m.next_cooldown_timestamp(1, 100, "bob", 300) == T0 + 10


def test_merge_rounds_down(machine) -> None:
    m, clock, _ = machine
    m.set_timestamp("bob", T0)
    clock.advance(40)
    # T0 + 2400 / 360 = T0 + 6.67
    assert m.next_cooldown_timestamp(clock(), 60, "bob", 300) == T0 + 6


@pytest.mark.parametrize(
    ("offset", "expected"),
    [
        (0, CooldownStatus.COOLING),
        (COOLDOWN, CooldownStatus.COOLING),
        (COOLDOWN + 1, CooldownStatus.REDEEMABLE),
        (COOLDOWN + WINDOW, CooldownStatus.REDEEMABLE),
        (COOLDOWN + WINDOW + 1, CooldownStatus.EXPIRED),
    ],
)
def test_classify_cooldown(offset, expected) -> None:
    assert classify_cooldown(T0, T0 + offset, COOLDOWN, WINDOW) is expected


def test_idle_when_no_timestamp() -> None:
    assert classify_cooldown(0, T0, COOLDOWN, WINDOW) is CooldownStatus.IDLE


def test_require_redeemable_is_lifted_after_a_slash(machine) -> None:
    m, _, _ = machine
    m.set_timestamp("bob", T0)
    with pytest.raises(StateConflictError, match="insufficient cooldown"):
        m.require_redeemable("bob")
    m._state.in_post_slashing_period = True
    m.require_redeemable("bob")


def test_set_cooldown_seconds_emits(machine) -> None:
    m, _, events = machine
    m.set_cooldown_seconds(7)
    assert m.cooldown_seconds == 7
    assert events == [CooldownSecondsChanged(cooldown_seconds=7)]


def test_negative_cooldown_seconds_rejected(machine) -> None:
    m, _, events = machine
    with pytest.raises(InvalidArgumentError):
        m.set_cooldown_seconds(-1)
    assert m.cooldown_seconds == COOLDOWN
    assert events == []
