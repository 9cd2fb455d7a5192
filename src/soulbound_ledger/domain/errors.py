"""Ledger error taxonomy.

Every error is a precondition violation: the failing call changes nothing and
is never retried by the ledger.
"""

from typing import Optional

from ..core.enums import ErrorCode


class LedgerError(Exception):
    """Base class for ledger precondition failures."""

    code: ErrorCode
    message: str

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class Unauthorized(LedgerError):
    """Caller may not mint, or may not move a unit that `from` holds."""

    code = ErrorCode.UNAUTHORIZED
    message = "EIP5516: Unauthorized"


class AddressZero(LedgerError):
    """The zero identity was supplied where an owner is required."""

    code = ErrorCode.ADDRESS_ZERO
    message = "EIP5516: Address zero error"


class InvalidId(LedgerError):
    """A non-positive token id was supplied.

    Reported with the same message as AddressZero.
    """

    code = ErrorCode.INVALID_ID
    message = "EIP5516: Address zero error"


class ArrayLengthMismatch(LedgerError):
    """Batch inputs of unequal length, or a batch containing an invalid id."""

    code = ErrorCode.ARRAY_LENGTH_MISMATCH
    message = "EIP5516: Array lengths mismatch"


class InvalidQuantity(LedgerError):
    """Any transfer quantity other than exactly one."""

    code = ErrorCode.INVALID_QUANTITY
    message = "EIP5516: Can only transfer one token"


class SelfApproval(LedgerError):
    """An owner tried to approve itself as operator."""

    code = ErrorCode.SELF_APPROVAL
    message = "ERC1155: setting approval status for self"
