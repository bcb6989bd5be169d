"""
Order and CanceledTicket models
"""

from sqlalchemy import Column, String, Integer, ForeignKey, Enum, Numeric, Boolean, JSON
from sqlalchemy.orm import relationship
import enum

from quickseats.models.base import BaseModel


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CommitStrategy(str, enum.Enum):
    # Inventory committed when the order is created (admin desk sales)
    IMMEDIATE = "immediate"
    # Inventory committed when the payment gateway confirms
    DEFERRED = "deferred"


class CancellationType(str, enum.Enum):
    SEAT = "seat"
    NO_SEAT = "no seat"


class Order(BaseModel):
    """
    A customer's purchase for one event.

    ``seat_ids`` and ``tickets_without_seats`` are the order's own snapshot
    of what it holds; partial cancellations shrink them.
    """
    __tablename__ = "orders"

    # Customer snapshot
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    contact_number = Column(String(50))
    nic_passport = Column(String(50))
    country = Column(String(100))
    user_id = Column(Integer)

    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    seat_ids = Column(JSON, nullable=False, default=list)
    tickets_without_seats = Column(JSON, nullable=False, default=list)

    sub_total = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    commit_strategy = Column(Enum(CommitStrategy), nullable=False)
    inventory_committed = Column(Boolean, nullable=False, default=False)

    # Payment gateway correlation
    transaction_uuid = Column(String(64), unique=True, index=True)
    payment_reference = Column(String(255))

    # Redemption codes issued for this order
    fulfillment = Column(JSON, nullable=False, default=list)

    cancellations = relationship(
        "CanceledTicket",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order(id={self.id}, status={self.status}, total={self.total})>"


class CanceledTicket(BaseModel):
    """
    Append-only audit row for a cancelled seat or counted-ticket batch
    """
    __tablename__ = "canceled_tickets"

    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    type = Column(Enum(CancellationType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    seat_id = Column(String(64))
    type_id = Column(Integer)
    ticket_type_name = Column("ticketTypeName", String(100))
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False, default=0)

    order = relationship("Order", back_populates="cancellations")

    def __repr__(self):
        return f"<CanceledTicket(order_id={self.order_id}, type={self.type}, seat_id={self.seat_id}, price={self.price})>"
