"""Replay a scenario against an in-memory vault."""

import logging
import sys
from dataclasses import dataclass

from tqdm import tqdm

from staking_vault import errors
from staking_vault.constants import MAX_UINT256, Role
from staking_vault.ledger import InMemoryShareLedger, InMemoryToken, StaticRoleRegistry
from staking_vault.models import Scenario, ScenarioStep, StepOutcome
from staking_vault.rewards import EmissionAccrualEngine
from staking_vault.vault import StakingVault

logger = logging.getLogger(__name__)

ROLE_BY_KEY = {
    "slashing_admin": Role.SLASH_ADMIN,
    "cooldown_admin": Role.COOLDOWN_ADMIN,
    "claim_helper": Role.CLAIM_HELPER,
}


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self.now += seconds
        return self.now


@dataclass
class ScenarioRun:
    vault: StakingVault
    clock: ManualClock
    asset: InMemoryToken
    outcomes: list[StepOutcome]

    @property
    def failures(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if not o.ok]


def build_vault(scenario: Scenario) -> tuple[StakingVault, ManualClock, InMemoryToken]:
    """Wire an in-memory vault, fund the listed accounts and approve the vault for them."""
    clock = ManualClock(scenario.start_time)
    asset = InMemoryToken(scenario.asset_address, symbol=scenario.asset_symbol, clock=clock)
    if scenario.reward_token_address == scenario.asset_address:
        reward_token = asset
    else:
        reward_token = InMemoryToken(scenario.reward_token_address, symbol="RWD", clock=clock)

    shares = InMemoryShareLedger()
    accrual = EmissionAccrualEngine(clock, emission_per_second=scenario.emission_per_second)
    roles = StaticRoleRegistry({ROLE_BY_KEY[k]: v for k, v in scenario.roles.items()})
    vault = StakingVault(
        scenario.config,
        shares=shares,
        asset=asset,
        reward_token=reward_token,
        accrual=accrual,
        roles=roles,
        clock=clock,
    )

    for account, amount in scenario.balances.items():
        asset.mint(account, amount)
        asset.approve(account, vault.address, MAX_UINT256)
    for account, amount in scenario.reward_balances.items():
        reward_token.mint(account, amount)
    # The rewards vault pre-funds emissions for the whole run.
    rewards_vault = scenario.config.rewards_vault
    reward_token.approve(rewards_vault, vault.address, MAX_UINT256)
    return vault, clock, asset


def apply_step(vault: StakingVault, clock: ManualClock, asset: InMemoryToken, step: ScenarioStep) -> object:
    a = step.args
    caller = step.caller or ""
    behalf = a.get("on_behalf_of")
    to = str(a.get("to", behalf or caller))

    if step.op == "advance":
        return clock.advance(int(a["seconds"]))
    if step.op == "fund":
        account = str(a.get("account", caller))
        token = vault.reward_token if a.get("token") == "reward" else asset
        token.mint(account, int(a["amount"]))
        token.approve(account, vault.address, MAX_UINT256)
        return None
    if step.op == "stake":
        return vault.stake(caller, to, int(a["amount"]))
    if step.op == "redeem":
        if behalf:
            return vault.redeem_on_behalf(caller, str(behalf), to, int(a["amount"]))
        return vault.redeem(caller, to, int(a["amount"]))
    if step.op == "transfer":
        return vault.transfer(caller, to, int(a["amount"]))
    if step.op == "cooldown":
        if behalf:
            return vault.activate_cooldown_on_behalf_of(caller, str(behalf))
        return vault.activate_cooldown(caller)
    if step.op == "claim":
        if behalf:
            return vault.claim_rewards_on_behalf(caller, str(behalf), to, int(a["amount"]))
        return vault.claim_rewards(caller, to, int(a["amount"]))
    if step.op == "claim_and_stake":
        if behalf:
            return vault.claim_rewards_and_stake_on_behalf(caller, str(behalf), to, int(a["amount"]))
        return vault.claim_rewards_and_stake(caller, to, int(a["amount"]))
    if step.op == "claim_and_redeem":
        claim_amount, redeem_amount = int(a["claim_amount"]), int(a["redeem_amount"])
        if behalf:
            return vault.claim_rewards_and_redeem_on_behalf(caller, str(behalf), to, claim_amount, redeem_amount)
        return vault.claim_rewards_and_redeem(caller, to, claim_amount, redeem_amount)
    if step.op == "slash":
        return vault.slash(caller, str(a["destination"]), int(a["amount"]))
    if step.op == "return_funds":
        return vault.return_funds(caller, int(a["amount"]))
    if step.op == "settle":
        return vault.settle_slashing(caller)
    if step.op == "set_max_slashable":
        return vault.set_max_slashable_percentage(caller, int(a["percentage"]))
    if step.op == "set_cooldown_seconds":
        return vault.set_cooldown_seconds(caller, int(a["seconds"]))
    raise ValueError(f"unknown op {step.op!r}")


def run_scenario(scenario: Scenario, *, progress: bool = True) -> ScenarioRun:
    """Replay every step; vault faults are recorded per step and never abort the run."""
    vault, clock, asset = build_vault(scenario)
    outcomes: list[StepOutcome] = []
    with tqdm(scenario.steps, desc="🎬 Replaying scenario", unit="step", file=sys.stderr, disable=not progress) as pbar:
        for step in pbar:
            pbar.set_postfix(op=step.op)
            try:
                result = apply_step(vault, clock, asset, step)
            except errors.VaultError as ex:
                outcome = StepOutcome(step=step, timestamp=clock(), error=type(ex).__name__)
                if step.expect_error != outcome.error:
                    tqdm.write(f"⚠️  step {step.index} ({step.op}) failed: {ex}", file=sys.stderr)
                logger.debug("step %d (%s) raised %s", step.index, step.op, outcome.error)
            else:
                outcome = StepOutcome(step=step, timestamp=clock(), result=result)
                if step.expect_error is not None:
                    tqdm.write(
                        f"⚠️  step {step.index} ({step.op}) succeeded but expected {step.expect_error}",
                        file=sys.stderr,
                    )
            outcomes.append(outcome)
    return ScenarioRun(vault=vault, clock=clock, asset=asset, outcomes=outcomes)
