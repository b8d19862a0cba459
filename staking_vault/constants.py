"""Constants and configuration for the staking vault."""

from decimal import Decimal
from enum import IntEnum

# Fixed-point unit of the exchange rate (18 fractional digits).
EXCHANGE_RATE_UNIT = 10**18

# Percentages are expressed in basis points out of this denominator (100.00%).
PERCENTAGE_FACTOR = 100_00
HALF_PERCENTAGE_FACTOR = PERCENTAGE_FACTOR // 2

# Precision of the reward accrual index.
ACCRUAL_PRECISION = 18

MAX_UINT256 = 2**256 - 1

DEFAULT_COOLDOWN_SECONDS = 864_000  # 10 days
DEFAULT_UNSTAKE_WINDOW = 172_800  # 2 days
DEFAULT_MAX_SLASHABLE_PERCENTAGE = 30_00  # 30%

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

TOKEN_DECIMALS = 18
TOKEN_UNIT = Decimal(10**TOKEN_DECIMALS)


class Role(IntEnum):
    """Administrative roles, keyed the same way the role registry stores them on-chain."""

    SLASH_ADMIN = 0
    COOLDOWN_ADMIN = 1
    CLAIM_HELPER = 2


ROLE_LABELS = {
    Role.SLASH_ADMIN: "slashing admin",
    Role.COOLDOWN_ADMIN: "cooldown admin",
    Role.CLAIM_HELPER: "claim helper",
}


def _view(name: str, outputs: list[str], inputs: list[str] | None = None) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs or [])],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


# Minimal ABI for a deployed slashable staked token - only the views we read.
STAKED_TOKEN_MIN_ABI: list[dict] = [
    _view("getExchangeRate", ["uint216"]),
    _view("getCooldownSeconds", ["uint256"]),
    _view("UNSTAKE_WINDOW", ["uint256"]),
    _view("getMaxSlashablePercentage", ["uint256"]),
    _view("inPostSlashingPeriod", ["bool"]),
    _view("totalSupply", ["uint256"]),
    _view("balanceOf", ["uint256"], ["address"]),
    _view("stakersCooldowns", ["uint256"], ["address"]),
    _view("getTotalRewardsBalance", ["uint256"], ["address"]),
    _view("previewRedeem", ["uint256"], ["uint256"]),
    _view("STAKED_TOKEN", ["address"]),
    _view("REWARD_TOKEN", ["address"]),
    _view("REWARDS_VAULT", ["address"]),
]

# Minimal ABI for the role registry the staked token consults.
ROLE_MANAGER_MIN_ABI: list[dict] = [
    _view("getAdmin", ["address"], ["uint256"]),
]

ERC20_MIN_ABI: list[dict] = [
    _view("balanceOf", ["uint256"], ["address"]),
    _view("symbol", ["string"]),
]

SLASHED_EVENT_SIGNATURE = "Slashed(address,uint256)"
FUNDS_RETURNED_EVENT_SIGNATURE = "FundsReturned(uint256)"
SLASHING_SETTLED_EVENT_SIGNATURE = "SlashingSettled()"

DEFAULT_LOG_CHUNK_SIZE = 50_000

# Cache configuration
CACHE_DIR_NAME = ".staking_vault_cache"
CACHE_VERSION = "1"  # Increment to invalidate all caches
