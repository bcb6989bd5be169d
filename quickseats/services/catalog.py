"""
Ticket type, artist and event catalog
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.core.exceptions import (
    EventNotFoundError,
    InvalidInputError,
    NotFoundError,
    TicketTypeNotFoundError,
)
from quickseats.models.catalog import Artist, CatalogStatus, TicketType
from quickseats.models.event import Event, EventStatus
from quickseats.schemas.catalog import ArtistCreate, TicketTypeCreate
from quickseats.schemas.event import EventCreate, SeatDefinition
from quickseats.schemas.inventory import SeatRecord, SeatStatus, TicketCounter
from quickseats.services.inventory import InventoryStore, decode_collection

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 8


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)


class CatalogService:
    def __init__(self, session: AsyncSession, store: Optional[InventoryStore] = None):
        self.session = session
        self.store = store

    # ---------- ticket types ----------

    async def create_ticket_type(self, data: TicketTypeCreate) -> TicketType:
        existing = await self.session.execute(select(TicketType).where(TicketType.name == data.name))
        if existing.scalar_one_or_none() is not None:
            raise InvalidInputError(f"Ticket type '{data.name}' already exists", field="name")

        ticket_type = TicketType(**data.model_dump())
        self.session.add(ticket_type)
        await self.session.commit()
        logger.info(f"Ticket type {ticket_type.id} ({ticket_type.name}) created")
        return ticket_type

    async def list_ticket_types(self, active_only: bool = False) -> List[TicketType]:
        query = select(TicketType).order_by(TicketType.id)
        if active_only:
            query = query.where(TicketType.status == CatalogStatus.ACTIVE)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def set_ticket_type_status(self, ticket_type_id: int, status: CatalogStatus) -> TicketType:
        ticket_type = await self.session.get(TicketType, ticket_type_id)
        if ticket_type is None:
            raise TicketTypeNotFoundError(ticket_type_id)
        ticket_type.status = status
        await self.session.commit()
        return ticket_type

    # ---------- artists ----------

    async def create_artist(self, data: ArtistCreate) -> Artist:
        artist = Artist(name=data.name)
        self.session.add(artist)
        await self.session.commit()
        logger.info(f"Artist {artist.id} ({artist.name}) created")
        return artist

    async def list_artists(self, active_only: bool = False) -> List[Artist]:
        query = select(Artist).order_by(Artist.id)
        if active_only:
            query = query.where(Artist.status == CatalogStatus.ACTIVE)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def set_artist_status(self, artist_id: int, status: CatalogStatus) -> Artist:
        artist = await self.session.get(Artist, artist_id)
        if artist is None:
            raise NotFoundError("Artist", artist_id)
        artist.status = status
        await self.session.commit()
        return artist

    # ---------- events ----------

    async def _ticket_types_by_id(self, ids) -> Dict[int, TicketType]:
        ids = list(set(ids))
        if not ids:
            return {}
        result = await self.session.execute(select(TicketType).where(TicketType.id.in_(ids)))
        return {t.id: t for t in result.scalars().all()}

    def _build_seats(
        self,
        definitions: List[SeatDefinition],
        types: Dict[int, TicketType],
        prices: Dict[int, object],
        previous: Optional[Dict[str, SeatRecord]] = None,
    ) -> List[SeatRecord]:
        seats = []
        for definition in definitions:
            ticket_type = types.get(definition.type_id)
            if ticket_type is None:
                raise TicketTypeNotFoundError(definition.type_id)
            price = definition.price if definition.price is not None else prices.get(definition.type_id)
            if price is None:
                raise InvalidInputError(
                    f"Seat {definition.seat_id} has no price and ticket type {definition.type_id} is not priced for this event",
                    field="seats",
                )
            status = SeatStatus.AVAILABLE
            if previous is not None:
                old = previous.get(str(definition.seat_id))
                if old is not None:
                    status = old.status
            seats.append(SeatRecord(
                seat_id=definition.seat_id,
                status=status,
                price=price,
                ticket_type_name=ticket_type.name,
                type_id=definition.type_id,
            ))
        return seats

    async def create_event(self, data: EventCreate) -> Event:
        types = await self._ticket_types_by_id(
            [t.type_id for t in data.tickets] + [s.type_id for s in data.seats]
        )
        for ticket in data.tickets:
            if ticket.type_id not in types:
                raise TicketTypeNotFoundError(ticket.type_id)

        counters = [
            TicketCounter(
                ticket_type_id=ticket.type_id,
                price=ticket.price,
                ticket_count=ticket.count,
                has_ticket_count=types[ticket.type_id].has_ticket_count,
                booked_ticket_count=0,
            )
            for ticket in data.tickets
        ]
        prices = {ticket.type_id: ticket.price for ticket in data.tickets}
        seats = self._build_seats(data.seats, types, prices)

        event = Event(
            name=data.name,
            description=data.description,
            policy=data.policy,
            organized_by=data.organized_by,
            location=data.location,
            start_date_time=_utc(data.start_date_time),
            end_date_time=_utc(data.end_date_time),
            banner_image=data.banner_image,
            featured_image=data.featured_image,
            status=EventStatus.ACTIVE,
            seats=[seat.to_storage() for seat in seats],
            ticket_details=[counter.to_storage() for counter in counters],
            artist_details=list(data.artists),
            inventory_version=0,
        )
        self.session.add(event)
        await self.session.commit()
        logger.info(f"Event {event.id} ({event.name}) created with {len(seats)} seats and {len(counters)} ticket types")
        return event

    async def update_event_seats(self, event_id: int, definitions: List[SeatDefinition]) -> List[SeatRecord]:
        """
        Replace the seat map. Seats keeping their id keep their status.
        """
        types = await self._ticket_types_by_id([s.type_id for s in definitions])
        async with self.store.mutate(event_id) as inventory:
            prices = {counter.ticket_type_id: counter.price for counter in inventory.counters}
            previous = {seat.key: seat for seat in inventory.seats}
            inventory.seats = self._build_seats(definitions, types, prices, previous)

        logger.info(f"Seat map of event {event_id} replaced with {len(inventory.seats)} seats")
        return inventory.seats

    async def get_event(self, event_id: int) -> Event:
        event = await self.session.get(Event, event_id, populate_existing=True)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def set_event_status(self, event_id: int, status: EventStatus) -> Event:
        event = await self.get_event(event_id)
        event.status = status
        await self.session.commit()
        return event

    async def list_events(self, active_only: bool = True) -> List[Event]:
        query = select(Event).order_by(Event.start_date_time)
        if active_only:
            query = query.where(Event.status == EventStatus.ACTIVE)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def trending_events(self) -> List[Event]:
        result = await self.session.execute(
            select(Event)
            .where(Event.status == EventStatus.ACTIVE)
            .order_by(Event.id)
            .limit(FEATURED_LIMIT)
        )
        return list(result.scalars().all())

    async def upcoming_events(self, now: Optional[datetime] = None) -> List[Event]:
        now = now or datetime.now(timezone.utc)
        result = await self.session.execute(
            select(Event)
            .where(Event.status == EventStatus.ACTIVE, Event.start_date_time >= now)
            .order_by(Event.start_date_time)
            .limit(FEATURED_LIMIT)
        )
        return list(result.scalars().all())

    async def describe_events(self, events: List[Event], include_seats: bool = True) -> List[dict]:
        """
        Decode each event's inventory and resolve ticket type and artist names
        """
        decoded = []
        type_ids, artist_ids = set(), set()
        for event in events:
            seats, _ = decode_collection(event.seats, SeatRecord)
            counters, _ = decode_collection(event.ticket_details, TicketCounter)
            artists = [a for a in (event.artist_details or []) if isinstance(a, int) or str(a).isdigit()]
            artists = [int(a) for a in artists]
            type_ids.update(c.ticket_type_id for c in counters)
            artist_ids.update(artists)
            decoded.append((event, seats, counters, artists))

        types = await self._ticket_types_by_id(type_ids)
        artist_rows = {}
        if artist_ids:
            result = await self.session.execute(select(Artist).where(Artist.id.in_(list(artist_ids))))
            artist_rows = {a.id: a for a in result.scalars().all()}

        described = []
        for event, seats, counters, artists in decoded:
            item = {
                column.name: getattr(event, column.name)
                for column in Event.__table__.columns
                if column.name not in ("seats", "ticket_details", "artist_details")
            }
            item["ticket_details"] = [
                {
                    "ticket_type_id": c.ticket_type_id,
                    "ticket_type_name": types[c.ticket_type_id].name if c.ticket_type_id in types else None,
                    "price": c.price,
                    "ticket_count": c.ticket_count,
                    "has_ticket_count": c.has_ticket_count,
                    "booked_ticket_count": c.booked_ticket_count,
                }
                for c in counters
            ]
            item["artists"] = [
                {"id": a, "name": artist_rows[a].name} for a in artists if a in artist_rows
            ]
            if include_seats:
                item["seats"] = [
                    {
                        "seat_id": s.seat_id,
                        "status": s.status,
                        "price": s.price,
                        "ticket_type_name": s.ticket_type_name,
                        "type_id": s.type_id,
                    }
                    for s in seats
                ]
            described.append(item)
        return described
