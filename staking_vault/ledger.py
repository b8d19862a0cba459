"""In-memory collaborators: share ledger, ERC-20-style token with permit, role registry.

These stand in for the on-chain contracts the vault talks to when it runs
locally (scenario replay, what-if previews, tests).
"""

from collections.abc import Callable, Iterator, Mapping

from eth_account import Account
from eth_account.messages import encode_typed_data

from staking_vault.constants import MAX_UINT256, ZERO_ADDRESS, Role
from staking_vault.errors import InsufficientAllowanceError, InsufficientBalanceError, InvalidArgumentError, PermitError

PERMIT_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "Permit": [
        {"name": "owner", "type": "address"},
        {"name": "spender", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "nonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}


class InMemoryShareLedger:
    """Fungible share balances. Mint/burn/transfer are driven by the vault only."""

    def __init__(self) -> None:
        self._balances: dict[str, int] = {}
        self._supply = 0

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def total_supply(self) -> int:
        return self._supply

    def holders(self) -> Iterator[str]:
        return iter(sorted(a for a, b in self._balances.items() if b > 0))

    def mint(self, account: str, amount: int) -> None:
        if amount < 0:
            raise InvalidArgumentError("mint amount must be >= 0")
        self._balances[account] = self.balance_of(account) + amount
        self._supply += amount

    def burn(self, account: str, amount: int) -> None:
        balance = self.balance_of(account)
        if amount > balance:
            raise InsufficientBalanceError(f"burn {amount} exceeds share balance {balance} of {account}")
        self._balances[account] = balance - amount
        self._supply -= amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalanceError(f"transfer {amount} exceeds share balance {balance} of {sender}")
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def snapshot(self) -> tuple[dict[str, int], int]:
        return dict(self._balances), self._supply

    def restore(self, saved: tuple[dict[str, int], int]) -> None:
        balances, self._supply = saved
        self._balances = dict(balances)


class InMemoryToken:
    """ERC-20-style token that fails loudly and supports EIP-2612 permits."""

    def __init__(
        self,
        address: str,
        *,
        symbol: str = "TKN",
        name: str = "Token",
        version: str = "1",
        chain_id: int = 1,
        clock: Callable[[], int] | None = None,
    ):
        self.address = address
        self.symbol = symbol
        self.name = name
        self.version = version
        self.chain_id = chain_id
        self._clock = clock
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._nonces: dict[str, int] = {}
        self._supply = 0

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def total_supply(self) -> int:
        return self._supply

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def nonces(self, owner: str) -> int:
        return self._nonces.get(owner, 0)

    def mint(self, account: str, amount: int) -> None:
        self._balances[account] = self.balance_of(account) + amount
        self._supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalanceError(f"{self.symbol}: transfer {amount} exceeds balance {balance} of {sender}")
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise InsufficientAllowanceError(
                f"{self.symbol}: transfer {amount} exceeds allowance {allowed} of {spender} from {owner}"
            )
        self.transfer(owner, recipient, amount)
        if allowed != MAX_UINT256:
            self._allowances[(owner, spender)] = allowed - amount

    def permit_message(self, owner: str, spender: str, value: int, deadline: int, nonce: int | None = None) -> dict:
        """EIP-712 typed data a holder signs to grant `spender` an allowance."""
        return {
            "types": PERMIT_TYPES,
            "primaryType": "Permit",
            "domain": {
                "name": self.name,
                "version": self.version,
                "chainId": self.chain_id,
                "verifyingContract": self.address,
            },
            "message": {
                "owner": owner,
                "spender": spender,
                "value": value,
                "nonce": self.nonces(owner) if nonce is None else nonce,
                "deadline": deadline,
            },
        }

    def permit(self, owner: str, spender: str, value: int, deadline: int, v: int, r, s) -> None:
        if self._clock is not None and self._clock() > deadline:
            raise PermitError(f"permit expired at {deadline}")
        signable = encode_typed_data(full_message=self.permit_message(owner, spender, value, deadline))
        try:
            signer = Account.recover_message(signable, vrs=(v, r, s))
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise PermitError(f"invalid permit signature: {ex}") from ex
        if signer.lower() != owner.lower():
            raise PermitError(f"permit signed by {signer}, expected {owner}")
        self._nonces[owner] = self.nonces(owner) + 1
        self._allowances[(owner, spender)] = value

    def snapshot(self) -> tuple:
        return dict(self._balances), dict(self._allowances), dict(self._nonces), self._supply

    def restore(self, saved: tuple) -> None:
        balances, allowances, nonces, self._supply = saved
        self._balances = dict(balances)
        self._allowances = dict(allowances)
        self._nonces = dict(nonces)


class StaticRoleRegistry:
    """Role holders fixed at construction; rotation happens outside the vault."""

    def __init__(self, admins: Mapping[Role, str]):
        self._admins = {Role(role): address for role, address in admins.items()}

    def get_admin(self, role: int) -> str:
        return self._admins.get(Role(role), ZERO_ADDRESS)
