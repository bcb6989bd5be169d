"""
Admin management endpoints

Catalog upkeep, desk sales with immediate commit, order lookup and
cancellations, and seat resets.
"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query, status

from quickseats.api.deps import (
    get_booking_service,
    get_cancellation_service,
    get_catalog_service,
    get_seat_hold_service,
)
from quickseats.models.order import OrderStatus
from quickseats.schemas.catalog import (
    ArtistCreate,
    ArtistResponse,
    StatusUpdate,
    TicketTypeCreate,
    TicketTypeResponse,
)
from quickseats.schemas.event import (
    EventCreate,
    EventResponse,
    EventStatusUpdate,
    EventSummary,
    SeatMapUpdate,
    SeatView,
)
from quickseats.schemas.order import (
    BookingRequest,
    CanceledTicketResponse,
    CancellationResponse,
    CancelSeatsRequest,
    CancelTicketsRequest,
    OrderDetailResponse,
    OrderListItem,
    OrderResponse,
)
from quickseats.schemas.seat import SeatResetRequest, SeatResetResponse
from quickseats.services.booking import BookingService
from quickseats.services.cancellation import CancellationResult, CancellationService
from quickseats.services.catalog import CatalogService
from quickseats.services.seat_hold import SeatHoldService

router = APIRouter()


def _cancellation_response(result: CancellationResult) -> CancellationResponse:
    return CancellationResponse(
        order=OrderResponse.model_validate(result.order),
        cancelled=[CanceledTicketResponse.model_validate(row) for row in result.cancelled],
        reduction=result.reduction,
    )


# ---------- catalog ----------

@router.post("/ticket-types", response_model=TicketTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket_type(
    data: TicketTypeCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Any:
    """
    Create a ticket type
    """
    return await catalog.create_ticket_type(data)


@router.get("/ticket-types", response_model=List[TicketTypeResponse])
async def list_ticket_types(catalog: CatalogService = Depends(get_catalog_service)) -> Any:
    return await catalog.list_ticket_types()


@router.patch("/ticket-types/{ticket_type_id}/status", response_model=TicketTypeResponse)
async def set_ticket_type_status(
    ticket_type_id: int,
    data: StatusUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Any:
    """
    Activate or deactivate a ticket type
    """
    return await catalog.set_ticket_type_status(ticket_type_id, data.status)


@router.post("/artists", response_model=ArtistResponse, status_code=status.HTTP_201_CREATED)
async def create_artist(
    data: ArtistCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Any:
    return await catalog.create_artist(data)


@router.get("/artists", response_model=List[ArtistResponse])
async def list_artists(catalog: CatalogService = Depends(get_catalog_service)) -> Any:
    return await catalog.list_artists()


@router.patch("/artists/{artist_id}/status", response_model=ArtistResponse)
async def set_artist_status(
    artist_id: int,
    data: StatusUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Any:
    return await catalog.set_artist_status(artist_id, data.status)


# ---------- events ----------

@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Any:
    """
    Create an event with its ticket prices and optional seat map
    """
    event = await catalog.create_event(data)
    described = await catalog.describe_events([event])
    return described[0]


@router.get("/events", response_model=List[EventSummary])
async def list_all_events(catalog: CatalogService = Depends(get_catalog_service)) -> Any:
    """
    List events including inactive ones
    """
    events = await catalog.list_events(active_only=False)
    return await catalog.describe_events(events, include_seats=False)


@router.patch("/events/{event_id}/status", response_model=EventSummary)
async def set_event_status(
    event_id: int,
    data: EventStatusUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Any:
    event = await catalog.set_event_status(event_id, data.status)
    described = await catalog.describe_events([event], include_seats=False)
    return described[0]


@router.put("/events/{event_id}/seats", response_model=List[SeatView])
async def update_event_seats(
    event_id: int,
    data: SeatMapUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Any:
    """
    Replace the seat map; seats keeping their id keep their status
    """
    seats = await catalog.update_event_seats(event_id, data.seats)
    return [SeatView.model_validate(seat) for seat in seats]


# ---------- orders ----------

@router.post("/bookings", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingRequest,
    booking: BookingService = Depends(get_booking_service),
) -> Any:
    """
    Desk sale: commit the inventory and complete the order at once
    """
    order, _ = await booking.book_immediately(request)
    return OrderResponse.model_validate(order)


@router.get("/orders", response_model=List[OrderListItem])
async def list_orders(
    event_id: Optional[int] = None,
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    booking: BookingService = Depends(get_booking_service),
) -> Any:
    return await booking.list_orders(event_id=event_id, status=order_status, skip=skip, limit=limit)


@router.get("/orders/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: int,
    booking: BookingService = Depends(get_booking_service),
) -> Any:
    """
    Order with its cancellation audit rows
    """
    order = await booking.get_order(order_id)
    return OrderDetailResponse.model_validate(order)


@router.post("/orders/{order_id}/cancel-seats", response_model=CancellationResponse)
async def cancel_seats(
    order_id: int,
    request: CancelSeatsRequest,
    cancellation: CancellationService = Depends(get_cancellation_service),
) -> Any:
    """
    Cancel some seats of a committed order
    """
    result = await cancellation.cancel_seats(order_id, request.seats)
    return _cancellation_response(result)


@router.post("/orders/{order_id}/cancel-tickets", response_model=CancellationResponse)
async def cancel_tickets(
    order_id: int,
    request: CancelTicketsRequest,
    cancellation: CancellationService = Depends(get_cancellation_service),
) -> Any:
    """
    Cancel part of a counted-ticket line
    """
    result = await cancellation.cancel_counted(
        order_id,
        request.ticket_type_id,
        request.quantity,
        request.ticket_type_name,
    )
    return _cancellation_response(result)


@router.post("/orders/{order_id}/cancel", response_model=CancellationResponse)
async def cancel_order(
    order_id: int,
    cancellation: CancellationService = Depends(get_cancellation_service),
) -> Any:
    """
    Cancel everything the order still holds
    """
    result = await cancellation.cancel_order(order_id)
    return _cancellation_response(result)


# ---------- seats ----------

@router.post("/seats/reset", response_model=SeatResetResponse)
async def reset_seats(
    request: SeatResetRequest,
    seat_hold: SeatHoldService = Depends(get_seat_hold_service),
) -> Any:
    """
    Force seats back to available whatever their status
    """
    result = await seat_hold.reset_seats(request.event_id, request.seat_ids)
    return SeatResetResponse(reset_seats=result.reset_seats, not_found_seats=result.not_found_seats)
