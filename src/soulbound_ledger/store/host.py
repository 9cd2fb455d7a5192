"""
Execution host for the soulbound ledger.

The host is the only way the service touches a Ledger. It serializes every
call, supplies the caller identity, and commits a mutating call only when the
ledger accepted it and its record (the call plus the notifications it
emitted) reached the database. Anything else is rolled back: the ledger state
is restored from a snapshot and the database transaction is discarded.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import SoulboundLedgerConfig, ConfigurationError
from ..core.enums import LedgerOperation
from ..core.identity import Address, is_zero_address
from ..domain.errors import LedgerError
from ..domain.events import EventEnvelope, Notification
from ..domain.ledger import Ledger
from ..utils.logging_config import get_logger, log_exception
from .event_store import EventStore, EventStoreError
from .ledger_registry import LedgerRegistry
from .transaction_log import TransactionLog, apply_operation

logger = get_logger('host')

SessionFactory = Callable[[], Session]


class LedgerHost:
    """Serializes ledger calls and records committed ones."""

    def __init__(
        self,
        ledger: Ledger,
        session_factory: SessionFactory,
        ledger_name: str = "default",
    ):
        self.ledger = ledger
        self.session_factory = session_factory
        self.ledger_name = ledger_name
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls, config: SoulboundLedgerConfig, session_factory: SessionFactory
    ) -> "LedgerHost":
        """
        Build a host from configuration and recover state from the log.

        The first build of a ledger name registers its base URI and issuer.
        Later builds use the registered values and refuse a configuration
        that disagrees with them.

        Raises:
            ConfigurationError: If no issuer address is configured, or the
                configuration disagrees with the registered ledger
            EventStoreError: If the registry or the log cannot be read
        """
        issuer = config.ledger.issuer_address
        if is_zero_address(issuer):
            raise ConfigurationError("Issuer address is not set (SBT_ISSUER_ADDRESS)")

        name = config.ledger.ledger_name
        with session_factory() as session:
            registry = LedgerRegistry(session)
            parameters = registry.get(name)
            if parameters is None:
                parameters = registry.register(name, config.ledger.base_uri, issuer)
                session.commit()
                logger.info(f"Registered ledger '{name}' (issuer {issuer})")

        issues = parameters.differences(config.ledger.base_uri, issuer)
        if issues:
            raise ConfigurationError(
                f"Configuration does not match ledger '{name}': " + "; ".join(issues)
            )

        host = cls(
            Ledger(parameters.base_uri, parameters.issuer),
            session_factory,
            ledger_name=name,
        )
        host.recover()
        return host

    def recover(self) -> int:
        """Replay the persisted transaction log into the ledger."""
        with self._lock:
            with self.session_factory() as session:
                replayed = TransactionLog(session, self.ledger_name).replay_into(self.ledger)

        logger.info(
            f"Recovered ledger '{self.ledger_name}' from {replayed} transactions "
            f"(next token id {self.ledger.next_token_id})"
        )
        return replayed

    # ------------------------------------------------------------------
    # Generic invocation
    # ------------------------------------------------------------------

    def execute(self, operation: LedgerOperation, caller: Address, **kwargs: Any) -> Any:
        """
        Run a mutating operation atomically on behalf of caller.

        Returns:
            Whatever the ledger operation returns

        Raises:
            LedgerError: If the ledger rejected the call (nothing changed)
            EventStoreError: If the call could not be recorded (nothing changed)
        """
        operation = LedgerOperation(operation)

        with self._lock:
            snapshot = self.ledger.snapshot()
            try:
                result, tx_seq, notifications = self._apply_and_record(
                    operation, caller, kwargs
                )
            except BaseException:
                self.ledger.restore(snapshot)
                raise
            self.ledger.release(snapshot)

        logger.info(
            f"Committed {operation.value} #{tx_seq} from {caller} "
            f"({len(notifications)} notifications)"
        )
        return result

    def _apply_and_record(
        self, operation: LedgerOperation, caller: Address, kwargs: Dict[str, Any]
    ) -> Tuple[Any, int, List[Notification]]:
        try:
            result = apply_operation(self.ledger, operation, caller, kwargs)
        except LedgerError as e:
            logger.warning(
                f"Rejected {operation.value} from {caller}: {e.code.value} ({e.message})"
            )
            raise

        notifications = self.ledger.drain_notifications()

        with self.session_factory() as session:
            try:
                tx_seq = TransactionLog(session, self.ledger_name).record(
                    operation, caller, kwargs
                )
                store = EventStore(session, self.ledger_name)
                for notification in notifications:
                    store.append(notification, tx_seq)
                session.commit()
            except (EventStoreError, SQLAlchemyError) as e:
                session.rollback()
                log_exception(
                    'host', e, {"operation": operation.value, "caller": caller}
                )
                if isinstance(e, EventStoreError):
                    raise
                raise EventStoreError(f"Failed to commit transaction: {e}") from e

        return result, tx_seq, notifications

    def query(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Run a read-only ledger operation under the host lock."""
        with self._lock:
            return getattr(self.ledger, operation)(*args, **kwargs)

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def claim_and_mint(self, caller: Address, recipient: Address, token_id: int) -> None:
        self.execute(
            LedgerOperation.CLAIM_AND_MINT, caller, recipient=recipient, token_id=token_id
        )

    def reward(self, caller: Address, data: str, to: Optional[Address] = None) -> int:
        return self.execute(LedgerOperation.REWARD, caller, data=data, to=to)

    def safe_transfer_from(
        self,
        caller: Address,
        from_: Address,
        to: Address,
        token_id: int,
        amount: int,
        data: str = "",
    ) -> None:
        self.execute(
            LedgerOperation.SAFE_TRANSFER_FROM,
            caller,
            from_=from_,
            to=to,
            token_id=token_id,
            amount=amount,
            data=data,
        )

    def batch_transfer(
        self,
        caller: Address,
        from_: Address,
        to: Sequence[Address],
        token_id: int,
        amount: int,
        data: str = "",
    ) -> None:
        self.execute(
            LedgerOperation.BATCH_TRANSFER,
            caller,
            from_=from_,
            to=list(to),
            token_id=token_id,
            amount=amount,
            data=data,
        )

    def set_approval_for_all(self, owner: Address, operator: Address, approved: bool) -> None:
        self.execute(
            LedgerOperation.SET_APPROVAL_FOR_ALL, owner, operator=operator, approved=approved
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance_of(self, owner: Address, token_id: int) -> int:
        return self.query("balance_of", owner, token_id)

    def balance_of_batch(self, owners: Sequence[Address], ids: Sequence[int]) -> List[int]:
        return self.query("balance_of_batch", owners, ids)

    def tokens_from(self, owner: Address) -> List[int]:
        return self.query("tokens_from", owner)

    def is_approved_for_all(self, owner: Address, operator: Address) -> bool:
        return self.query("is_approved_for_all", owner, operator)

    def is_minted(self, token_id: int) -> bool:
        return self.query("is_minted", token_id)

    def uri(self, token_id: int) -> str:
        return self.query("uri", token_id)

    def events(
        self,
        since_seq: Optional[int] = None,
        limit: Optional[int] = None,
        event_types: Optional[List[str]] = None,
    ) -> List[EventEnvelope]:
        """Read the recorded notification log."""
        with self.session_factory() as session:
            return EventStore(session, self.ledger_name).get_events(
                since_seq=since_seq, event_types=event_types, limit=limit
            )

    def summary(self) -> Dict[str, Any]:
        """Basic facts about the hosted ledger."""
        with self._lock:
            return {
                "ledger_name": self.ledger_name,
                "issuer": self.ledger.issuer,
                "base_uri": self.ledger.base_uri,
                "next_token_id": self.ledger.next_token_id,
            }
