"""SQLAlchemy models for persisted ledger calls and notifications."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    JSON,
    UniqueConstraint,
    Index,
)

from .database import Base


class LedgerTransaction(Base):
    """A committed mutating call, in commit order."""

    __tablename__ = "ledger_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ledger_name = Column(String(100), nullable=False)
    seq = Column(Integer, nullable=False)  # Sequence number per ledger
    operation = Column(String(50), nullable=False)
    caller = Column(String(255), nullable=False)
    args_json = Column(JSON, nullable=False)  # Keyword arguments of the call
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("ledger_name", "seq", name="uq_ledger_tx_seq"),
        Index("ix_ledger_tx_seq", "ledger_name", "seq"),
    )

    def __repr__(self) -> str:
        return f"<LedgerTransaction(seq={self.seq}, operation='{self.operation}')>"


class LedgerEvent(Base):
    """Append-only notification log."""

    __tablename__ = "ledger_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ledger_name = Column(String(100), nullable=False)
    seq = Column(Integer, nullable=False)  # Sequence number per ledger
    transaction_seq = Column(Integer, nullable=False)
    type = Column(String(50), nullable=False)  # Notification type identifier
    payload_json = Column(JSON, nullable=False)  # Serialized notification
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("ledger_name", "seq", name="uq_ledger_event_seq"),
        Index("ix_ledger_event_seq", "ledger_name", "seq"),
        Index("ix_ledger_event_type", "ledger_name", "type"),
    )

    def __repr__(self) -> str:
        return f"<LedgerEvent(seq={self.seq}, type='{self.type}')>"


class LedgerDefinition(Base):
    """Creation parameters of a named ledger, written once."""

    __tablename__ = "ledgers"

    name = Column(String(100), primary_key=True)
    base_uri = Column(String(2048), nullable=False)
    issuer = Column(String(255), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<LedgerDefinition(name='{self.name}', issuer='{self.issuer}')>"
