from staking_vault.constants import MAX_UINT256, Role
from staking_vault.ledger import InMemoryShareLedger, InMemoryToken, StaticRoleRegistry
from staking_vault.models import VaultConfig
from staking_vault.rewards import EmissionAccrualEngine
from staking_vault.scenario import ManualClock
from staking_vault.vault import StakingVault

T0 = 1_000_000
COOLDOWN = 100
WINDOW = 50

VAULT = "vault"
TOKEN = "token"
REWARDS_VAULT = "rewards-vault"
SLASH_ADMIN = "slash-admin"
COOLDOWN_ADMIN = "cooldown-admin"
HELPER = "claim-helper"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"
TREASURY = "treasury"

STARTING_BALANCE = 1_000
REWARDS_FUNDING = 10_000


def make_vault(
    clock: ManualClock,
    token: InMemoryToken,
    *,
    reward_token: InMemoryToken | None = None,
    emission_per_second: int = 0,
    max_slashable_percentage: int = 50_00,
    address: str = VAULT,
) -> StakingVault:
    reward = reward_token or token
    vault = StakingVault(
        VaultConfig(
            address=address,
            rewards_vault=REWARDS_VAULT,
            cooldown_seconds=COOLDOWN,
            unstake_window=WINDOW,
            max_slashable_percentage=max_slashable_percentage,
        ),
        shares=InMemoryShareLedger(),
        asset=token,
        reward_token=reward,
        accrual=EmissionAccrualEngine(clock, emission_per_second=emission_per_second),
        roles=StaticRoleRegistry(
            {Role.SLASH_ADMIN: SLASH_ADMIN, Role.COOLDOWN_ADMIN: COOLDOWN_ADMIN, Role.CLAIM_HELPER: HELPER}
        ),
        clock=clock,
    )
    for account in (ALICE, BOB, CAROL):
        token.mint(account, STARTING_BALANCE)
        token.approve(account, address, MAX_UINT256)
    reward.mint(REWARDS_VAULT, REWARDS_FUNDING)
    reward.approve(REWARDS_VAULT, address, MAX_UINT256)
    return vault
