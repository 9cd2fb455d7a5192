"""Enums for the soulbound ledger."""

from enum import Enum


class NotificationType(str, Enum):
    """Notification kinds emitted by the ledger."""

    TOKEN_MINTED = "token_minted"
    TRANSFER_SINGLE = "transfer_single"
    TRANSFER_MULTI = "transfer_multi"
    APPROVAL_FOR_ALL = "approval_for_all"


class ErrorCode(str, Enum):
    """Machine-readable codes for ledger precondition failures."""

    UNAUTHORIZED = "unauthorized"
    ADDRESS_ZERO = "address_zero"
    INVALID_ID = "invalid_id"
    ARRAY_LENGTH_MISMATCH = "array_length_mismatch"
    INVALID_QUANTITY = "invalid_quantity"
    SELF_APPROVAL = "self_approval"


class LedgerOperation(str, Enum):
    """Mutating ledger operations recorded by the host."""

    CLAIM_AND_MINT = "claim_and_mint"
    REWARD = "reward"
    SAFE_TRANSFER_FROM = "safe_transfer_from"
    BATCH_TRANSFER = "batch_transfer"
    SET_APPROVAL_FOR_ALL = "set_approval_for_all"
