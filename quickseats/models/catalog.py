"""
Ticket type and artist catalog models
"""

from sqlalchemy import Column, String, Boolean, Enum
import enum

from quickseats.models.base import BaseModel


class CatalogStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class TicketType(BaseModel):
    """
    A category of ticket offered by events (VIP, Balcony, General...)
    """
    __tablename__ = "ticket_types"

    name = Column(String(100), nullable=False, unique=True)
    color = Column(String(20))
    # Counted types are sold from a per-event pool rather than a seat map
    has_ticket_count = Column(Boolean, nullable=False, default=False)
    status = Column(Enum(CatalogStatus), default=CatalogStatus.ACTIVE, nullable=False)

    def __repr__(self):
        return f"<TicketType(id={self.id}, name={self.name})>"


class Artist(BaseModel):
    __tablename__ = "artists"

    name = Column(String(255), nullable=False)
    status = Column(Enum(CatalogStatus), default=CatalogStatus.ACTIVE, nullable=False)

    def __repr__(self):
        return f"<Artist(id={self.id}, name={self.name})>"
