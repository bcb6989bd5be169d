"""
Event model

The bookable inventory of an event lives on the row itself as two JSON
collections: ``seats`` (the seat map) and ``ticket_details`` (one counter
per ticket type). ``inventory_version`` is bumped on every inventory write
so concurrent writers can detect a lost update.
"""

from sqlalchemy import Column, String, Integer, Text, DateTime, Enum, JSON
import enum

from quickseats.models.base import BaseModel


class EventStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Event(BaseModel):
    """
    Event model for concerts, shows, etc.
    """
    __tablename__ = "events"

    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    policy = Column(Text)
    organized_by = Column(String(255))
    location = Column(String(255))
    start_date_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date_time = Column(DateTime(timezone=True))
    banner_image = Column(String(500))
    featured_image = Column(String(500))
    status = Column(
        Enum(EventStatus),
        default=EventStatus.ACTIVE,
        nullable=False,
        index=True
    )

    # Inventory
    seats = Column(JSON, nullable=False, default=list)
    ticket_details = Column(JSON, nullable=False, default=list)
    artist_details = Column(JSON, nullable=False, default=list)
    inventory_version = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Event(id={self.id}, name={self.name}, version={self.inventory_version})>"
