"""
Pure precondition checks and invariants for the soulbound ledger.

This module holds the rules the ledger enforces, as pure functions over a
LedgerState with no side effects. The Ledger runs every check for a call
before it mutates anything, so a failing check leaves the state untouched.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..core.identity import Address, is_zero_address
from .errors import (
    AddressZero,
    ArrayLengthMismatch,
    InvalidId,
    InvalidQuantity,
    SelfApproval,
    Unauthorized,
)

FIRST_TOKEN_ID = 1


@dataclass
class LedgerState:
    """Mutable ledger tables."""

    balances: Dict[Tuple[Address, int], int] = field(default_factory=dict)
    # owner -> ids currently held, in credit order (dict used as ordered set)
    holdings: Dict[Address, Dict[int, None]] = field(default_factory=dict)
    minted: Set[int] = field(default_factory=set)
    approvals: Dict[Tuple[Address, Address], bool] = field(default_factory=dict)
    uri_suffixes: Dict[int, str] = field(default_factory=dict)
    next_token_id: int = FIRST_TOKEN_ID
    # ids issued through reward, used by the counter invariant
    rewarded: Set[int] = field(default_factory=set)

    def balance(self, owner: Address, token_id: int) -> int:
        """Return the stored balance, 0 if never set."""
        return self.balances.get((owner, token_id), 0)

    def is_approved(self, owner: Address, operator: Address) -> bool:
        """Return the approval entry, False by default."""
        return self.approvals.get((owner, operator), False)

    def held_ids(self, owner: Address) -> List[int]:
        """Return the ids the owner holds, in credit order."""
        return list(self.holdings.get(owner, {}))


def require_nonzero_address(address: Optional[Address]) -> None:
    """Raise AddressZero for the reserved zero identity."""
    if is_zero_address(address):
        raise AddressZero()


def require_valid_id(token_id: int) -> None:
    """Raise InvalidId for a non-positive token id."""
    if token_id <= 0:
        raise InvalidId()


def require_single_quantity(amount: int) -> None:
    """Raise InvalidQuantity unless exactly one unit is moved."""
    if amount != 1:
        raise InvalidQuantity()


def require_issuer(caller: Address, issuer: Address) -> None:
    """Raise Unauthorized unless the caller is the issuer."""
    if caller != issuer:
        raise Unauthorized()


def require_not_self_approval(owner: Address, operator: Address) -> None:
    """Raise SelfApproval when an owner names itself as operator."""
    if owner == operator:
        raise SelfApproval()


def is_authorized_sender(state: LedgerState, caller: Address, owner: Address) -> bool:
    """Whether the caller may move units on behalf of owner."""
    return caller == owner or state.is_approved(owner, caller)


def require_transferable(
    state: LedgerState, caller: Address, from_: Address, token_id: int
) -> None:
    """
    Check that caller may move from_'s unit of token_id.

    Possession is the only proof of entitlement: a unit that was never minted
    to from_, or has already left, fails the same way as a caller without
    ownership or approval.

    Raises:
        Unauthorized: If the caller is not authorized or from_ holds no unit
    """
    if not is_authorized_sender(state, caller, from_):
        raise Unauthorized()
    if state.balance(from_, token_id) != 1:
        raise Unauthorized()


def require_batch_shape(owners: Sequence[Address], ids: Sequence[int]) -> None:
    """Raise ArrayLengthMismatch when batch query sequences differ in length."""
    if len(owners) != len(ids):
        raise ArrayLengthMismatch()


def require_recipients(recipients: Sequence[Address]) -> None:
    """
    Check the destination list of a batch distribution.

    Raises:
        ArrayLengthMismatch: If there are no destinations
        AddressZero: If any destination is the zero identity
    """
    if not recipients:
        raise ArrayLengthMismatch()
    for recipient in recipients:
        require_nonzero_address(recipient)


# Invariants, used by tests after arbitrary call sequences


def invariant_balances_are_binary(state: LedgerState) -> bool:
    """Invariant: every stored balance is 0 or 1."""
    return all(value in (0, 1) for value in state.balances.values())


def invariant_holdings_match_balances(state: LedgerState) -> bool:
    """Invariant: the holdings index lists exactly the pairs with balance 1."""
    held = {
        (owner, token_id)
        for owner, ids in state.holdings.items()
        for token_id in ids
    }
    live = {key for key, value in state.balances.items() if value == 1}
    return held == live


def invariant_held_ids_were_minted(state: LedgerState) -> bool:
    """Invariant: nobody holds an id that was never minted."""
    return all(
        token_id in state.minted
        for (_, token_id), value in state.balances.items()
        if value == 1
    )


def invariant_counter_ahead_of_rewards(state: LedgerState) -> bool:
    """Invariant: the issuance counter is past every reward-issued id."""
    return all(token_id < state.next_token_id for token_id in state.rewarded)


def check_invariants(state: LedgerState) -> bool:
    """Return True when every ledger invariant holds."""
    return (
        invariant_balances_are_binary(state)
        and invariant_holdings_match_balances(state)
        and invariant_held_ids_were_minted(state)
        and invariant_counter_ahead_of_rewards(state)
    )
