"""Fault taxonomy raised by vault operations.

Every fault aborts the whole operation; the vault rolls back any state touched
before the fault surfaced. Nothing here is retried internally.
"""


class VaultError(Exception):
    """Base class for all vault faults."""


class UnauthorizedError(VaultError):
    """Caller is not the holder of the role the operation requires."""

    def __init__(self, caller: str, role_label: str):
        super().__init__(f"{caller} is not the {role_label}")
        self.caller = caller
        self.role_label = role_label


class InvalidArgumentError(VaultError, ValueError):
    """Argument is out of range (zero amount, percentage >= 100%, ...)."""


class StateConflictError(VaultError):
    """Operation is not allowed in the current vault or staker state."""


class RateArithmeticError(VaultError, ArithmeticError):
    """Exchange-rate computation would divide by zero or collapse the rate to zero."""


class CollaboratorError(VaultError):
    """Fault propagated from an external collaborator (token, ledger, permit check)."""


class InsufficientBalanceError(CollaboratorError):
    pass


class InsufficientAllowanceError(CollaboratorError):
    pass


class PermitError(CollaboratorError):
    pass
