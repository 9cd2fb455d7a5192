"""Notification contracts emitted by the ledger.

Notifications describe every committed state change. They are immutable and
the host appends them to the event store in emission order.
"""

from abc import abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ConfigDict  # type: ignore

from ..core.enums import NotificationType


class BaseNotification(BaseModel):
    """Base class for all ledger notifications."""

    model_config = ConfigDict(
        frozen=True,  # Notifications are immutable
        extra="forbid",
        populate_by_name=True,
    )

    # Notification metadata
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    @abstractmethod
    def event_type(self) -> str:
        """Return the notification type identifier."""
        pass

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict using wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class MintNotification(BaseNotification):
    """The issuer claim-minted ids to an account."""

    operator: str
    account: str
    ids: List[int]

    @property
    def event_type(self) -> str:
        """Return the notification type identifier."""
        return NotificationType.TOKEN_MINTED.value


class TransferSingleNotification(BaseNotification):
    """A single unit moved between two identities.

    Reward mints use the zero identity as the source.
    """

    operator: str
    from_: str = Field(..., alias="from")
    to: str
    id: int
    value: int = 1

    @property
    def event_type(self) -> str:
        """Return the notification type identifier."""
        return NotificationType.TRANSFER_SINGLE.value


class TransferMultiNotification(BaseNotification):
    """A held unit was distributed to several identities at once."""

    operator: str
    from_: str = Field(..., alias="from")
    to: List[str] = Field(..., description="Destinations exactly as supplied")
    value: int = 1
    id: int

    @property
    def event_type(self) -> str:
        """Return the notification type identifier."""
        return NotificationType.TRANSFER_MULTI.value


class ApprovalForAllNotification(BaseNotification):
    """An owner granted or revoked blanket operator approval."""

    account: str
    operator: str
    approved: bool

    @property
    def event_type(self) -> str:
        """Return the notification type identifier."""
        return NotificationType.APPROVAL_FOR_ALL.value


# Union type for all possible notifications
Notification = Union[
    MintNotification,
    TransferSingleNotification,
    TransferMultiNotification,
    ApprovalForAllNotification,
]

NOTIFICATION_CLASSES = {
    NotificationType.TOKEN_MINTED.value: MintNotification,
    NotificationType.TRANSFER_SINGLE.value: TransferSingleNotification,
    NotificationType.TRANSFER_MULTI.value: TransferMultiNotification,
    NotificationType.APPROVAL_FOR_ALL.value: ApprovalForAllNotification,
}


def parse_notification(event_type: str, payload: Dict[str, Any]) -> Notification:
    """
    Rebuild a notification from its stored type and payload.

    Raises:
        ValueError: If the event type is unknown
    """
    notification_class = NOTIFICATION_CLASSES.get(event_type)
    if notification_class is None:
        raise ValueError(f"Unknown notification type: {event_type}")
    return notification_class.model_validate(payload)


class EventEnvelope(BaseModel):
    """Event store envelope containing a notification with metadata."""

    model_config = ConfigDict(frozen=True)

    # Event store metadata
    sequence_number: int = Field(..., description="Sequence number within the ledger")
    transaction_seq: int = Field(..., description="Sequence of the originating call")
    stored_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Notification payload
    event: Notification

    @property
    def event_type(self) -> str:
        """Return the event type for the wrapped notification."""
        return self.event.event_type
