"""Contracts of the external collaborators the vault drives.

Implementations may raise any `CollaboratorError`; they must never silently
no-op on insufficient balance or allowance. Collaborators that also expose
`snapshot()` / `restore(saved)` take part in the vault's rollback on failure.
"""

from typing import Protocol, runtime_checkable


class ShareLedger(Protocol):
    def balance_of(self, account: str) -> int: ...

    def total_supply(self) -> int: ...

    def mint(self, account: str, amount: int) -> None: ...

    def burn(self, account: str, amount: int) -> None: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


class Asset(Protocol):
    address: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...


@runtime_checkable
class PermitAsset(Asset, Protocol):
    def permit(self, owner: str, spender: str, value: int, deadline: int, v: int, r: bytes, s: bytes) -> None: ...


class AccrualEngine(Protocol):
    def update_user(self, staker: str, balance: int, total_staked: int, *, commit: bool) -> int:
        """Return rewards accrued since the staker's last commit; persist the new index only if `commit`."""
        ...


class RoleRegistry(Protocol):
    def get_admin(self, role: int) -> str: ...


@runtime_checkable
class Snapshottable(Protocol):
    def snapshot(self) -> object: ...

    def restore(self, saved: object) -> None: ...
