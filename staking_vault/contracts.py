"""Contract handles for a deployed slashable staked token."""

from typing import TYPE_CHECKING, Any

from staking_vault.constants import (
    ERC20_MIN_ABI,
    ROLE_LABELS,
    ROLE_MANAGER_MIN_ABI,
    STAKED_TOKEN_MIN_ABI,
    Role,
)
from staking_vault.models import StakedTokenContracts

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


def staked_token_contract(w3: "Web3", address: str) -> Any:
    return w3.eth.contract(address=w3.to_checksum_address(address), abi=STAKED_TOKEN_MIN_ABI + ROLE_MANAGER_MIN_ABI)


def erc20_contract(w3: "Web3", address: str) -> Any:
    return w3.eth.contract(address=w3.to_checksum_address(address), abi=ERC20_MIN_ABI)


def resolve_staked_token(w3: "Web3", address: str, *, block_identifier: int | str = "latest") -> StakedTokenContracts:
    """
    Resolve the underlying asset, reward token and rewards vault from the staked token itself.

    The staked token is the single entry point: every other address is read from its immutables.
    """
    token = staked_token_contract(w3, address)
    return StakedTokenContracts(
        staked_token=w3.to_checksum_address(address),
        underlying=token.functions.STAKED_TOKEN().call(block_identifier=block_identifier),
        reward_token=token.functions.REWARD_TOKEN().call(block_identifier=block_identifier),
        rewards_vault=token.functions.REWARDS_VAULT().call(block_identifier=block_identifier),
    )


def read_role_admins(token: Any, *, block_identifier: int | str = "latest") -> dict[str, str]:
    """Current holder of each administrative role, keyed by role label."""
    return {
        ROLE_LABELS[role]: token.functions.getAdmin(int(role)).call(block_identifier=block_identifier)
        for role in Role
    }
