"""
Public event endpoints
"""

from typing import Any, List, Union
from fastapi import APIRouter, Depends

from quickseats.api.deps import get_availability_service, get_catalog_service
from quickseats.schemas.event import EventResponse, EventSummary
from quickseats.schemas.seat import (
    SeatStatusResponse,
    TicketAvailabilityResponse,
    TicketWithoutSeatResponse,
)
from quickseats.services.availability import AvailabilityService
from quickseats.services.catalog import CatalogService

router = APIRouter()


@router.get("", response_model=List[EventSummary])
async def list_events(catalog: CatalogService = Depends(get_catalog_service)) -> Any:
    """
    List all active events
    """
    events = await catalog.list_events()
    return await catalog.describe_events(events, include_seats=False)


@router.get("/trending", response_model=List[EventSummary])
async def trending_events(catalog: CatalogService = Depends(get_catalog_service)) -> Any:
    """
    Featured active events
    """
    events = await catalog.trending_events()
    return await catalog.describe_events(events, include_seats=False)


@router.get("/upcoming", response_model=List[EventSummary])
async def upcoming_events(catalog: CatalogService = Depends(get_catalog_service)) -> Any:
    """
    Next active events by start time
    """
    events = await catalog.upcoming_events()
    return await catalog.describe_events(events, include_seats=False)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: int, catalog: CatalogService = Depends(get_catalog_service)) -> Any:
    """
    Event detail with seat map and ticket prices
    """
    event = await catalog.get_event(event_id)
    described = await catalog.describe_events([event])
    return described[0]


@router.get("/{event_id}/seats/{seat_id}", response_model=SeatStatusResponse)
async def get_seat_status(
    event_id: int,
    seat_id: Union[int, str],
    availability: AvailabilityService = Depends(get_availability_service),
) -> Any:
    """
    Current status of one seat
    """
    status = await availability.get_seat_status(event_id, seat_id)
    return SeatStatusResponse(event_id=event_id, seat_id=seat_id, status=status)


@router.get(
    "/{event_id}/ticket-types/{ticket_type_id}/availability",
    response_model=TicketAvailabilityResponse,
)
async def get_ticket_availability(
    event_id: int,
    ticket_type_id: int,
    availability: AvailabilityService = Depends(get_availability_service),
) -> Any:
    """
    Remaining pool of a counted ticket type
    """
    result = await availability.count_available(event_id, ticket_type_id)
    return TicketAvailabilityResponse(
        ticket_type_id=result.ticket_type_id,
        available=result.available,
        has_ticket_count=result.has_ticket_count,
    )


@router.get("/{event_id}/tickets-without-seats", response_model=List[TicketWithoutSeatResponse])
async def list_tickets_without_seats(
    event_id: int,
    availability: AvailabilityService = Depends(get_availability_service),
) -> Any:
    """
    Counted ticket types on sale for the event
    """
    tickets = await availability.list_tickets_without_seats(event_id)
    return [
        TicketWithoutSeatResponse(
            ticket_type_id=ticket.ticket_type_id,
            ticket_type_name=ticket.ticket_type_name,
            available_count=ticket.available_count,
            price=ticket.price,
        )
        for ticket in tickets
    ]
