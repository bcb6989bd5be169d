"""
Seat selection endpoints
"""

from typing import Any
from fastapi import APIRouter, Depends

from quickseats.api.deps import get_seat_hold_service
from quickseats.schemas.seat import SeatHoldRequest, SeatStatusResponse
from quickseats.services.seat_hold import SeatHoldService

router = APIRouter()


@router.post("/select", response_model=SeatStatusResponse)
async def select_seat(
    request: SeatHoldRequest,
    seat_hold: SeatHoldService = Depends(get_seat_hold_service),
) -> Any:
    """
    Hold an available seat while the customer checks out
    """
    seat = await seat_hold.select_seat(request.event_id, request.seat_id)
    return SeatStatusResponse(event_id=request.event_id, seat_id=seat.seat_id, status=seat.status)


@router.post("/unselect", response_model=SeatStatusResponse)
async def unselect_seat(
    request: SeatHoldRequest,
    seat_hold: SeatHoldService = Depends(get_seat_hold_service),
) -> Any:
    """
    Release a held seat
    """
    seat = await seat_hold.unselect_seat(request.event_id, request.seat_id)
    return SeatStatusResponse(event_id=request.event_id, seat_id=seat.seat_id, status=seat.status)
