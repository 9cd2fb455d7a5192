"""Persisted creation parameters of named ledgers.

A ledger's base URI and issuer are fixed when it is created. They are stored
beside its transaction log so a restart rebuilds the ledger with the values it
was created with, whatever the configuration says now.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.identity import Address
from ..db.models import LedgerDefinition
from .event_store import EventStoreError


@dataclass(frozen=True)
class LedgerParameters:
    """Base URI and issuer a ledger was created with."""

    name: str
    base_uri: str
    issuer: Address
    created_at: Optional[datetime] = None

    def differences(self, base_uri: str, issuer: Address) -> List[str]:
        """Describe where the given values disagree with the stored ones."""
        issues = []
        if base_uri != self.base_uri:
            issues.append(
                f"base URI is '{base_uri}' but the ledger was created with '{self.base_uri}'"
            )
        if issuer != self.issuer:
            issues.append(f"issuer is {issuer} but the ledger was created with {self.issuer}")
        return issues


class LedgerRegistry:
    """Lookup and one-time registration of ledger parameters."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get(self, name: str) -> Optional[LedgerParameters]:
        """
        Stored parameters for a ledger, or None if it was never registered.

        Raises:
            EventStoreError: If the lookup fails
        """
        try:
            row = self.db.get(LedgerDefinition, name)
        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to read ledger '{name}': {e}") from e

        if row is None:
            return None
        return LedgerParameters(
            name=row.name, base_uri=row.base_uri, issuer=row.issuer, created_at=row.created_at
        )

    def register(self, name: str, base_uri: str, issuer: Address) -> LedgerParameters:
        """
        Store the parameters of a new ledger. The caller commits.

        Raises:
            EventStoreError: If the row could not be written, including when
                the name is already registered
        """
        try:
            row = LedgerDefinition(name=name, base_uri=base_uri, issuer=issuer)
            self.db.add(row)
            self.db.flush()
        except SQLAlchemyError as e:
            raise EventStoreError(f"Failed to register ledger '{name}': {e}") from e

        return LedgerParameters(
            name=row.name, base_uri=row.base_uri, issuer=row.issuer, created_at=row.created_at
        )
