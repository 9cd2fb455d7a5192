"""Event store implementation for append-only notification persistence and replay.

This module provides the core event store functionality including:
- Appending notifications with automatic sequence numbering
- Querying notifications by sequence range or type
- Streaming replay of the notification log
"""

from typing import Iterator, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import LedgerEvent as EventModel
from ..domain.events import EventEnvelope, Notification, parse_notification


class EventStoreError(Exception):
    """Base exception for event store operations."""

    pass


class EventStore:
    """Append-only notification store with sequence numbering and replay."""

    def __init__(self, db_session: Session, ledger_name: str = "default"):
        self.db = db_session
        self.ledger_name = ledger_name

    def append(self, event: Notification, transaction_seq: int) -> EventEnvelope:
        """
        Append a notification to the store with automatic sequence numbering.

        Args:
            event: The notification to store
            transaction_seq: Sequence number of the call that emitted it

        Returns:
            EventEnvelope with the assigned sequence number

        Raises:
            EventStoreError: If the notification could not be stored
        """
        try:
            next_seq = self.get_latest_sequence() + 1

            event_record = EventModel(
                ledger_name=self.ledger_name,
                seq=next_seq,
                transaction_seq=transaction_seq,
                type=event.event_type,
                payload_json=event.to_payload(),
                created_at=event.timestamp,
            )

            self.db.add(event_record)
            self.db.flush()  # Ensure sequence uniqueness is checked now

            return EventEnvelope(
                sequence_number=next_seq,
                transaction_seq=transaction_seq,
                stored_at=event_record.created_at,
                event=event,
            )

        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to append event: {e}") from e

    def get_events(
        self,
        since_seq: Optional[int] = None,
        until_seq: Optional[int] = None,
        event_types: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> List[EventEnvelope]:
        """
        Query notifications from the store with filtering options.

        Args:
            since_seq: Include events after this sequence number (exclusive)
            until_seq: Include events up to this sequence number (inclusive)
            event_types: Filter by specific notification types
            limit: Maximum number of events to return

        Returns:
            List of event envelopes ordered by sequence number
        """
        try:
            query = select(EventModel).where(EventModel.ledger_name == self.ledger_name)

            if since_seq is not None:
                query = query.where(EventModel.seq > since_seq)
            if until_seq is not None:
                query = query.where(EventModel.seq <= until_seq)

            if event_types:
                query = query.where(EventModel.type.in_(event_types))

            query = query.order_by(EventModel.seq)
            if limit:
                query = query.limit(limit)

            results = self.db.execute(query).scalars().all()

            return [self._to_envelope(record) for record in results]

        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to query events: {e}") from e

    def get_events_for_transaction(self, transaction_seq: int) -> List[EventEnvelope]:
        """Notifications emitted by one committed call, in emission order."""
        try:
            results = self.db.execute(
                select(EventModel)
                .where(
                    and_(
                        EventModel.ledger_name == self.ledger_name,
                        EventModel.transaction_seq == transaction_seq,
                    )
                )
                .order_by(EventModel.seq)
            ).scalars().all()

            return [self._to_envelope(record) for record in results]

        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to query transaction events: {e}") from e

    def get_latest_sequence(self) -> int:
        """
        Get the latest sequence number for this ledger.

        Returns:
            Latest sequence number, or 0 if no events exist
        """
        try:
            result = self.db.execute(
                select(func.coalesce(func.max(EventModel.seq), 0)).where(
                    EventModel.ledger_name == self.ledger_name
                )
            ).scalar()

            return result or 0

        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to get latest sequence: {e}") from e

    def replay_events(self, from_sequence: int = 0) -> Iterator[EventEnvelope]:
        """
        Replay notifications from a specific sequence number.

        Args:
            from_sequence: Starting sequence number (inclusive)

        Yields:
            Event envelopes in sequence order
        """
        try:
            # Stream events in batches to avoid memory issues
            batch_size = 1000
            current_seq = from_sequence

            while True:
                query = (
                    select(EventModel)
                    .where(
                        and_(
                            EventModel.ledger_name == self.ledger_name,
                            EventModel.seq >= current_seq,
                        )
                    )
                    .order_by(EventModel.seq)
                    .limit(batch_size)
                )

                batch = self.db.execute(query).scalars().all()

                if not batch:
                    break

                for record in batch:
                    yield self._to_envelope(record)
                    current_seq = record.seq + 1

                if len(batch) < batch_size:
                    break

        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to replay events: {e}") from e

    def _to_envelope(self, record: EventModel) -> EventEnvelope:
        """
        Deserialize a stored record into an envelope.

        Raises:
            EventStoreError: If deserialization fails
        """
        try:
            event = parse_notification(record.type, record.payload_json)
        except ValueError as e:
            raise EventStoreError(
                f"Failed to deserialize event {record.seq}: {e}"
            ) from e

        return EventEnvelope(
            sequence_number=record.seq,
            transaction_seq=record.transaction_seq,
            stored_at=record.created_at,
            event=event,
        )
