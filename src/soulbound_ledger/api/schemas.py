"""Pydantic models for API request/response validation."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict  # type: ignore


class ProblemDetails(BaseModel):
    """RFC 9457 Problem Details for HTTP APIs."""

    type: str = Field(description="A URI reference that identifies the problem type")
    title: str = Field(
        description="A short, human-readable summary of the problem type"
    )
    status: int = Field(description="The HTTP status code")
    detail: Optional[str] = Field(
        None, description="A human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None, description="A URI reference that identifies the specific occurrence"
    )
    code: Optional[str] = Field(
        None, description="Ledger error code, present for rejected ledger calls"
    )


# Minting schemas
class ClaimRequest(BaseModel):
    """Schema for an issuer claim-mint."""

    recipient: str = Field(description="Identity receiving the unit", min_length=1)
    token_id: int = Field(description="Token id to mint")


class RewardRequest(BaseModel):
    """Schema for a reward mint."""

    data: str = Field(description="URI suffix recorded for the new token")
    to: Optional[str] = Field(
        None, description="Identity to reward; defaults to the caller"
    )


class RewardResponse(BaseModel):
    """Schema for a completed reward mint."""

    token_id: int = Field(description="Newly minted token id")
    uri: str = Field(description="Metadata URI of the new token")


# Transfer schemas
class TransferRequest(BaseModel):
    """Schema for a single-destination transfer."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from", description="Current holder", min_length=1)
    to: str = Field(description="Destination identity", min_length=1)
    token_id: int = Field(description="Token id to move")
    amount: int = Field(1, description="Quantity; only 1 is accepted")
    data: str = Field("", description="Opaque data passed through untouched")


class BatchTransferRequest(BaseModel):
    """Schema for a multi-destination transfer."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from", description="Current holder", min_length=1)
    to: List[str] = Field(description="Destination identities")
    token_id: int = Field(description="Token id to distribute")
    amount: int = Field(1, description="Quantity; only 1 is accepted")
    data: str = Field("", description="Opaque data passed through untouched")


# Approval schemas
class ApprovalRequest(BaseModel):
    """Schema for granting or revoking operator approval."""

    approved: bool = Field(description="Grant (true) or revoke (false)")


class ApprovalResponse(BaseModel):
    """Schema for an owner/operator approval status."""

    owner: str
    operator: str
    approved: bool


# Query schemas
class BalanceResponse(BaseModel):
    """Schema for a single balance."""

    owner: str
    token_id: int
    balance: int = Field(description="0 or 1")


class BalanceBatchRequest(BaseModel):
    """Schema for a batch balance query."""

    owners: List[str] = Field(description="Owners, paired with ids by position")
    ids: List[int] = Field(description="Token ids, paired with owners by position")


class BalanceBatchResponse(BaseModel):
    """Schema for batch balances in input order."""

    balances: List[int]


class TokensResponse(BaseModel):
    """Schema for the ids an owner holds."""

    owner: str
    token_ids: List[int] = Field(description="Held ids in the order they were credited")


class TokenResponse(BaseModel):
    """Schema for token metadata."""

    token_id: int
    uri: str
    minted: bool


# Event schemas
class EventResponse(BaseModel):
    """Schema for a recorded notification."""

    seq: int = Field(description="Sequence number within the ledger")
    transaction_seq: int = Field(description="Sequence of the originating call")
    type: str = Field(description="Notification type identifier")
    stored_at: datetime
    payload: Dict[str, Any]


class EventListResponse(BaseModel):
    """Schema for a page of recorded notifications."""

    events: List[EventResponse]
    latest_seq: int = Field(description="Sequence of the last event in this page, or since_seq")
