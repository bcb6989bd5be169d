"""
Gate staff endpoints: verify a scanned code, then issue
"""

from typing import Any
from fastapi import APIRouter, Depends

from quickseats.api.deps import get_issuance_service
from quickseats.schemas.order import (
    IssueCountRequest,
    IssueCountResponse,
    IssueSeatRequest,
    IssueSeatResponse,
    VerifiedSeat,
    VerifyTicketRequest,
    VerifyTicketResponse,
)
from quickseats.services.issuance import IssuanceService

router = APIRouter()


@router.post("/tickets/verify", response_model=VerifyTicketResponse)
async def verify_ticket(
    request: VerifyTicketRequest,
    issuance: IssuanceService = Depends(get_issuance_service),
) -> Any:
    """
    Describe what a redemption code entitles its bearer to
    """
    result = await issuance.verify_ticket(
        request.order_id,
        request.ticket_type_id,
        request.type,
        seat_ids=request.seat_ids,
        ticket_count=request.ticket_count,
        ticket_type_name=request.ticket_type_name,
    )
    return VerifyTicketResponse(
        order_id=result.order_id,
        order_status=result.order_status,
        event_name=result.event_name,
        type=result.type,
        ticket_type_id=result.ticket_type_id,
        ticket_type_name=result.ticket_type_name,
        seats=[VerifiedSeat(seat_id=seat.seat_id, status=seat.status) for seat in result.seats],
        count=result.count,
        issued_count=result.issued_count,
        remaining=result.remaining,
    )


@router.post("/tickets/issue-seat", response_model=IssueSeatResponse)
async def issue_seat(
    request: IssueSeatRequest,
    issuance: IssuanceService = Depends(get_issuance_service),
) -> Any:
    """
    Mark a booked seat as issued
    """
    seat = await issuance.confirm_issue(request.order_id, request.seat_id)
    return IssueSeatResponse(order_id=request.order_id, seat_id=seat.seat_id, status=seat.status.value)


@router.post("/tickets/issue-count", response_model=IssueCountResponse)
async def issue_count(
    request: IssueCountRequest,
    issuance: IssuanceService = Depends(get_issuance_service),
) -> Any:
    """
    Redeem part of a counted-ticket line
    """
    line = await issuance.issue_counted(request.order_id, request.ticket_type_id, request.count)
    return IssueCountResponse(
        order_id=request.order_id,
        ticket_type_id=line.ticket_type_id,
        ticket_count=line.ticket_count,
        issued_count=line.issued_count,
        remaining=line.issuable,
    )
