"""Log of committed ledger calls.

The ledger is deterministic, so re-executing the committed calls in order
against a fresh Ledger rebuilds its state exactly. The host uses this to
recover after a restart.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import LedgerOperation
from ..db.models import LedgerTransaction
from ..domain.errors import LedgerError
from ..domain.ledger import Ledger
from .event_store import EventStoreError


@dataclass(frozen=True)
class TransactionRecord:
    """A committed call as read back from the log."""

    seq: int
    operation: LedgerOperation
    caller: str
    args: Dict[str, Any]
    created_at: datetime


def to_jsonable(args: Dict[str, Any]) -> Dict[str, Any]:
    """Make call arguments JSON-safe; bytes become 0x-prefixed hex."""
    result = {}
    for key, value in args.items():
        if isinstance(value, (bytes, bytearray)):
            value = "0x" + bytes(value).hex()
        elif isinstance(value, tuple):
            value = list(value)
        result[key] = value
    return result


class TransactionLog:
    """Append-only log of committed mutating calls."""

    def __init__(self, db_session: Session, ledger_name: str = "default"):
        self.db = db_session
        self.ledger_name = ledger_name

    def record(self, operation: LedgerOperation, caller: str, args: Dict[str, Any]) -> int:
        """
        Append a committed call and return its sequence number.

        Raises:
            EventStoreError: If the call could not be stored
        """
        try:
            next_seq = self.get_latest_sequence() + 1
            self.db.add(
                LedgerTransaction(
                    ledger_name=self.ledger_name,
                    seq=next_seq,
                    operation=LedgerOperation(operation).value,
                    caller=caller,
                    args_json=to_jsonable(args),
                )
            )
            self.db.flush()
            return next_seq

        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to record transaction: {e}") from e

    def get_latest_sequence(self) -> int:
        """Latest transaction sequence number, or 0 if none."""
        try:
            result = self.db.execute(
                select(func.coalesce(func.max(LedgerTransaction.seq), 0)).where(
                    LedgerTransaction.ledger_name == self.ledger_name
                )
            ).scalar()
            return result or 0

        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to get latest transaction: {e}") from e

    def iter_transactions(self) -> Iterator[TransactionRecord]:
        """Yield committed calls in sequence order."""
        try:
            rows = self.db.execute(
                select(LedgerTransaction)
                .where(LedgerTransaction.ledger_name == self.ledger_name)
                .order_by(LedgerTransaction.seq)
            ).scalars().all()

        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to read transactions: {e}") from e

        for row in rows:
            yield TransactionRecord(
                seq=row.seq,
                operation=LedgerOperation(row.operation),
                caller=row.caller,
                args=dict(row.args_json),
                created_at=row.created_at,
            )

    def replay_into(self, ledger: Ledger) -> int:
        """
        Re-execute every committed call against ledger.

        Notifications produced by the replay are discarded; they are already
        in the event store.

        Returns:
            Number of calls replayed

        Raises:
            EventStoreError: If a recorded call no longer applies
        """
        count = 0
        for record in self.iter_transactions():
            try:
                apply_operation(ledger, record.operation, record.caller, record.args)
            except LedgerError as e:
                raise EventStoreError(
                    f"Transaction {record.seq} ({record.operation.value}) failed on replay: {e}"
                ) from e
            count += 1
        ledger.drain_notifications()
        return count


def apply_operation(
    ledger: Ledger, operation: LedgerOperation, caller: str, args: Dict[str, Any]
) -> Any:
    """Invoke a mutating ledger operation on behalf of caller."""
    operation = LedgerOperation(operation)
    if operation is LedgerOperation.SET_APPROVAL_FOR_ALL:
        # The owner is the caller; only the host knows who is calling
        return ledger.set_approval_for_all(caller, **args)
    return getattr(ledger, operation.value)(caller, **args)
