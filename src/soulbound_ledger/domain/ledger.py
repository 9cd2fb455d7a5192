"""
The soulbound ledger state machine.

Per (owner, id) pair a unit is either absent (balance 0) or held (balance 1):

    absent --mint / transfer-in--> held --transfer-out--> absent

Units are bound to their holder. They move only when the holder, or an
operator the holder approved, asks for it. Every operation validates all of
its preconditions before touching state, so a failing call mutates nothing
and emits nothing.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Set, Union

from ..core.identity import Address, ZERO_ADDRESS
from .events import (
    ApprovalForAllNotification,
    MintNotification,
    Notification,
    TransferMultiNotification,
    TransferSingleNotification,
)
from .errors import ArrayLengthMismatch
from .metadata import TokenUriRegistry
from . import rules
from .rules import LedgerState


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Rollback point returned by Ledger.snapshot().

    Holds positions in the ledger's undo journal and pending notifications,
    not a copy of the state.
    """

    journal_length: int
    pending_length: int


class Ledger:
    """Soulbound multi-token ledger."""

    def __init__(self, base_uri: str, issuer: Address):
        rules.require_nonzero_address(issuer)
        self._issuer = issuer
        self._state = LedgerState()
        self._uris = TokenUriRegistry(base_uri, self._state.uri_suffixes)
        self._pending: List[Notification] = []
        # Undo actions for writes made while a snapshot is open
        self._journal: List[Callable[[], None]] = []
        self._open_snapshots = 0

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def issuer(self) -> Address:
        return self._issuer

    @property
    def base_uri(self) -> str:
        return self._uris.base_uri

    @property
    def next_token_id(self) -> int:
        """The id the next reward mint will receive."""
        return self._state.next_token_id

    @property
    def state(self) -> LedgerState:
        """Live state tables. Callers must treat them as read-only."""
        return self._state

    # ------------------------------------------------------------------
    # Minting
    # ------------------------------------------------------------------

    def claim_and_mint(self, caller: Address, recipient: Address, token_id: int) -> None:
        """
        Issuer-only mint of token_id to recipient.

        Minting an id the recipient already holds leaves its balance at 1.

        Raises:
            Unauthorized: If caller is not the issuer
            AddressZero: If recipient is the zero identity
            InvalidId: If token_id is not positive
        """
        rules.require_issuer(caller, self._issuer)
        rules.require_nonzero_address(recipient)
        rules.require_valid_id(token_id)

        self._credit(recipient, token_id)
        self._add_to(self._state.minted, token_id)

        self._emit(MintNotification(operator=caller, account=recipient, ids=[token_id]))

    def reward(self, caller: Address, data: str, to: Optional[Address] = None) -> int:
        """
        Mint the next sequential id to `to` (the caller by default).

        The minted id carries `data` as its URI suffix. The transfer
        notification names the rewarded identity as operator and the zero
        identity as source.

        Returns:
            The newly minted token id

        Raises:
            AddressZero: If the rewarded identity is the zero identity
        """
        target = caller if to is None else to
        rules.require_nonzero_address(target)

        token_id = self._state.next_token_id
        self._advance_counter()

        self._credit(target, token_id)
        self._add_to(self._state.minted, token_id)
        self._add_to(self._state.rewarded, token_id)
        self._remember(self._state.uri_suffixes, token_id)
        self._uris.register(token_id, data)

        self._emit(
            TransferSingleNotification(
                operator=target, from_=ZERO_ADDRESS, to=target, id=token_id, value=1
            )
        )
        return token_id

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance_of(self, owner: Address, token_id: int) -> int:
        """
        Return owner's balance of token_id (0 or 1).

        Raises:
            AddressZero: If owner is the zero identity
            InvalidId: If token_id is not positive
        """
        rules.require_nonzero_address(owner)
        rules.require_valid_id(token_id)
        return self._state.balance(owner, token_id)

    def balance_of_batch(self, owners: Sequence[Address], ids: Sequence[int]) -> List[int]:
        """
        Return balance_of for each (owner, id) pair, in input order.

        Raises:
            ArrayLengthMismatch: If the sequences differ in length or an id
                is not positive
            AddressZero: If an owner is the zero identity
        """
        rules.require_batch_shape(owners, ids)

        balances = []
        for owner, token_id in zip(owners, ids):
            if token_id <= 0:
                raise ArrayLengthMismatch()
            balances.append(self.balance_of(owner, token_id))
        return balances

    def tokens_from(self, owner: Address) -> List[int]:
        """
        Return the ids owner currently holds, in the order they were credited.

        Raises:
            AddressZero: If owner is the zero identity
        """
        rules.require_nonzero_address(owner)
        return self._state.held_ids(owner)

    def is_approved_for_all(self, owner: Address, operator: Address) -> bool:
        return self._state.is_approved(owner, operator)

    def is_minted(self, token_id: int) -> bool:
        """Whether token_id was ever assigned by a mint."""
        return token_id in self._state.minted

    def uri(self, token_id: int) -> str:
        """Base URI followed by the suffix recorded at mint time, if any."""
        return self._uris.uri(token_id)

    # ------------------------------------------------------------------
    # Approvals and transfers
    # ------------------------------------------------------------------

    def set_approval_for_all(self, owner: Address, operator: Address, approved: bool) -> None:
        """
        Grant or revoke operator's authority over all of owner's units.

        Raises:
            SelfApproval: If operator is owner
        """
        rules.require_not_self_approval(owner, operator)

        self._remember(self._state.approvals, (owner, operator))
        self._state.approvals[(owner, operator)] = approved

        self._emit(
            ApprovalForAllNotification(account=owner, operator=operator, approved=approved)
        )

    def safe_transfer_from(
        self,
        caller: Address,
        from_: Address,
        to: Address,
        token_id: int,
        amount: int,
        data: Union[bytes, str] = b"",
    ) -> None:
        """
        Move from_'s unit of token_id to `to`.

        `data` is passed through untouched.

        Raises:
            InvalidQuantity: If amount is not 1
            Unauthorized: If caller is neither from_ nor an approved operator,
                or from_ does not hold the unit
            AddressZero: If `to` is the zero identity
        """
        rules.require_single_quantity(amount)
        rules.require_transferable(self._state, caller, from_, token_id)
        rules.require_nonzero_address(to)

        self._debit(from_, token_id)
        self._credit(to, token_id)

        self._emit(
            TransferSingleNotification(
                operator=caller, from_=from_, to=to, id=token_id, value=1
            )
        )

    def batch_transfer(
        self,
        caller: Address,
        from_: Address,
        to: Sequence[Address],
        token_id: int,
        amount: int,
        data: Union[bytes, str] = b"",
    ) -> None:
        """
        Distribute from_'s unit of token_id to every address in `to`.

        The held unit is cloned to each destination rather than split: from_
        ends at 0 and every destination ends at 1.

        Raises:
            InvalidQuantity: If amount is not 1
            Unauthorized: If caller is neither from_ nor an approved operator,
                or from_ does not hold the unit
            ArrayLengthMismatch: If `to` is empty
            AddressZero: If any destination is the zero identity
        """
        rules.require_single_quantity(amount)
        rules.require_transferable(self._state, caller, from_, token_id)
        rules.require_recipients(to)

        self._debit(from_, token_id)
        for recipient in to:
            self._credit(recipient, token_id)

        self._emit(
            TransferMultiNotification(
                operator=caller, from_=from_, to=list(to), value=1, id=token_id
            )
        )

    # ------------------------------------------------------------------
    # Host support
    # ------------------------------------------------------------------

    def drain_notifications(self) -> List[Notification]:
        """Return and clear the notifications emitted since the last drain."""
        drained, self._pending = self._pending, []
        return drained

    def snapshot(self) -> LedgerSnapshot:
        """
        Open a rollback point.

        Until the snapshot is passed to restore() or release(), every write
        journals how to undo itself. Snapshots nest.
        """
        self._open_snapshots += 1
        return LedgerSnapshot(
            journal_length=len(self._journal), pending_length=len(self._pending)
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """Undo every write made since snapshot() and close the snapshot."""
        while len(self._journal) > snapshot.journal_length:
            self._journal.pop()()
        del self._pending[snapshot.pending_length:]
        self._close(snapshot)

    def release(self, snapshot: LedgerSnapshot) -> None:
        """Keep the writes made since snapshot() and close the snapshot."""
        self._close(snapshot)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _close(self, snapshot: LedgerSnapshot) -> None:
        self._open_snapshots = max(self._open_snapshots - 1, 0)
        if self._open_snapshots == 0:
            self._journal.clear()

    def _remember(self, table: Dict[Any, Any], key: Hashable) -> None:
        """Journal the current entry for key so restore() can put it back."""
        if not self._open_snapshots:
            return
        if key in table:
            previous = table[key]
            if isinstance(previous, dict):
                previous = dict(previous)
            self._journal.append(lambda: table.__setitem__(key, previous))
        else:
            self._journal.append(lambda: table.pop(key, None))

    def _add_to(self, members: Set[int], token_id: int) -> None:
        if token_id in members:
            return
        members.add(token_id)
        if self._open_snapshots:
            self._journal.append(lambda: members.discard(token_id))

    def _advance_counter(self) -> None:
        previous = self._state.next_token_id
        self._state.next_token_id = previous + 1
        if self._open_snapshots:
            self._journal.append(lambda: setattr(self._state, "next_token_id", previous))

    def _credit(self, owner: Address, token_id: int) -> None:
        self._remember(self._state.balances, (owner, token_id))
        self._remember(self._state.holdings, owner)
        self._state.balances[(owner, token_id)] = 1
        self._state.holdings.setdefault(owner, {})[token_id] = None

    def _debit(self, owner: Address, token_id: int) -> None:
        self._remember(self._state.balances, (owner, token_id))
        self._remember(self._state.holdings, owner)
        self._state.balances[(owner, token_id)] = 0
        self._state.holdings.get(owner, {}).pop(token_id, None)

    def _emit(self, notification: Notification) -> None:
        self._pending.append(notification)
