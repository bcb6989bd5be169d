"""
Seat reservation ledger
"""

from sqlalchemy import Column, String, Integer, ForeignKey, UniqueConstraint

from quickseats.models.base import BaseModel


class SeatReservation(BaseModel):
    """
    One row per seat currently held in ``pending``.

    ``created_at`` marks the start of the hold and drives expiry.
    """
    __tablename__ = "seat_reservations"
    __table_args__ = (
        UniqueConstraint("event_id", "seat_id", name="uq_reservation_event_seat"),
    )

    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    seat_id = Column(String(64), nullable=False)

    def __repr__(self):
        return f"<SeatReservation(event_id={self.event_id}, seat_id={self.seat_id}, created_at={self.created_at})>"
