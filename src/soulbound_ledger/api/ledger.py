"""Ledger API endpoints.

Handlers are plain functions so FastAPI runs them in its thread pool; the
host lock serializes them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..core.identity import Address
from ..store.host import LedgerHost
from .dependencies import get_caller, get_host
from .middleware import ProblemDetailsException
from .schemas import (
    ApprovalRequest,
    ApprovalResponse,
    BalanceBatchRequest,
    BalanceBatchResponse,
    BalanceResponse,
    BatchTransferRequest,
    ClaimRequest,
    EventListResponse,
    EventResponse,
    ProblemDetails,
    RewardRequest,
    RewardResponse,
    TokenResponse,
    TokensResponse,
    TransferRequest,
)

router = APIRouter(prefix="/v1", tags=["ledger"])

REJECTED = {
    400: {"model": ProblemDetails, "description": "Ledger precondition failed"},
    401: {"model": ProblemDetails, "description": "Missing caller identity"},
    403: {"model": ProblemDetails, "description": "Caller not authorized"},
}


@router.post(
    "/mints/claim",
    status_code=status.HTTP_201_CREATED,
    responses={201: {"description": "Unit minted"}, **REJECTED},
)
def claim_and_mint(
    request: ClaimRequest,
    caller: Address = Depends(get_caller),
    host: LedgerHost = Depends(get_host),
) -> Response:
    """
    Mint a unit of an arbitrary id to a recipient.

    Only the issuer may call this. Minting an id the recipient already holds
    leaves the balance at 1.
    """
    host.claim_and_mint(caller, request.recipient, request.token_id)
    return Response(status_code=status.HTTP_201_CREATED)


@router.post(
    "/mints/reward",
    response_model=RewardResponse,
    status_code=status.HTTP_201_CREATED,
    responses={201: {"description": "Reward token minted"}, **REJECTED},
)
def reward(
    request: RewardRequest,
    caller: Address = Depends(get_caller),
    host: LedgerHost = Depends(get_host),
) -> RewardResponse:
    """
    Mint the next sequential token id to the caller, or to `to` when given.

    The data string becomes the token's URI suffix.
    """
    token_id = host.reward(caller, request.data, request.to)
    return RewardResponse(token_id=token_id, uri=host.uri(token_id))


@router.post(
    "/transfers",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={204: {"description": "Unit transferred"}, **REJECTED},
)
def safe_transfer_from(
    request: TransferRequest,
    caller: Address = Depends(get_caller),
    host: LedgerHost = Depends(get_host),
) -> Response:
    """Move the holder's unit to a single destination."""
    host.safe_transfer_from(
        caller,
        request.from_,
        request.to,
        request.token_id,
        request.amount,
        request.data,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/transfers/batch",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={204: {"description": "Unit distributed"}, **REJECTED},
)
def batch_transfer(
    request: BatchTransferRequest,
    caller: Address = Depends(get_caller),
    host: LedgerHost = Depends(get_host),
) -> Response:
    """Distribute the holder's unit to every listed destination."""
    host.batch_transfer(
        caller,
        request.from_,
        request.to,
        request.token_id,
        request.amount,
        request.data,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/accounts/{owner}/operators/{operator}",
    response_model=ApprovalResponse,
    responses={200: {"description": "Approval updated"}, **REJECTED},
)
def set_approval_for_all(
    owner: str,
    operator: str,
    request: ApprovalRequest,
    caller: Address = Depends(get_caller),
    host: LedgerHost = Depends(get_host),
) -> ApprovalResponse:
    """Grant or revoke an operator's authority over all of the owner's units."""
    if caller != owner:
        raise ProblemDetailsException(
            status_code=status.HTTP_403_FORBIDDEN,
            title="Forbidden",
            detail="Only the owner can change its operator approvals",
        )

    host.set_approval_for_all(owner, operator, request.approved)
    return ApprovalResponse(owner=owner, operator=operator, approved=request.approved)


@router.get(
    "/accounts/{owner}/operators/{operator}",
    response_model=ApprovalResponse,
)
def is_approved_for_all(
    owner: str,
    operator: str,
    host: LedgerHost = Depends(get_host),
) -> ApprovalResponse:
    """Whether operator currently holds blanket approval from owner."""
    return ApprovalResponse(
        owner=owner,
        operator=operator,
        approved=host.is_approved_for_all(owner, operator),
    )


@router.get(
    "/accounts/{owner}/balances/{token_id}",
    response_model=BalanceResponse,
    responses={400: {"model": ProblemDetails, "description": "Invalid owner or id"}},
)
def balance_of(
    owner: str,
    token_id: int,
    host: LedgerHost = Depends(get_host),
) -> BalanceResponse:
    """Owner's balance of a token id (0 or 1)."""
    return BalanceResponse(
        owner=owner, token_id=token_id, balance=host.balance_of(owner, token_id)
    )


@router.post(
    "/balances:batch",
    response_model=BalanceBatchResponse,
    responses={400: {"model": ProblemDetails, "description": "Mismatched or invalid input"}},
)
def balance_of_batch(
    request: BalanceBatchRequest,
    host: LedgerHost = Depends(get_host),
) -> BalanceBatchResponse:
    """Balances for each (owner, id) pair, in input order."""
    return BalanceBatchResponse(balances=host.balance_of_batch(request.owners, request.ids))


@router.get(
    "/accounts/{owner}/tokens",
    response_model=TokensResponse,
    responses={400: {"model": ProblemDetails, "description": "Zero owner"}},
)
def tokens_from(
    owner: str,
    host: LedgerHost = Depends(get_host),
) -> TokensResponse:
    """Ids the owner currently holds."""
    return TokensResponse(owner=owner, token_ids=host.tokens_from(owner))


@router.get("/tokens/{token_id}", response_model=TokenResponse)
def get_token(
    token_id: int,
    host: LedgerHost = Depends(get_host),
) -> TokenResponse:
    """Metadata URI and minted flag of a token id."""
    return TokenResponse(
        token_id=token_id, uri=host.uri(token_id), minted=host.is_minted(token_id)
    )


@router.get("/events", response_model=EventListResponse)
def list_events(
    since_seq: Optional[int] = Query(None, ge=0, description="Return events after this sequence"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of events"),
    host: LedgerHost = Depends(get_host),
) -> EventListResponse:
    """Recorded notifications in sequence order."""
    envelopes = host.events(since_seq=since_seq, limit=limit)

    events = [
        EventResponse(
            seq=envelope.sequence_number,
            transaction_seq=envelope.transaction_seq,
            type=envelope.event_type,
            stored_at=envelope.stored_at,
            payload=envelope.event.to_payload(),
        )
        for envelope in envelopes
    ]
    latest_seq = events[-1].seq if events else (since_seq or 0)
    return EventListResponse(events=events, latest_seq=latest_seq)
