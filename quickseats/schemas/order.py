"""
Order, checkout, cancellation and issuance schemas
"""

from pydantic import EmailStr, Field, field_validator
from typing import Optional, List, Union, Dict, Any
from datetime import datetime

from quickseats.schemas.base import BaseSchema, IDSchema, TimestampSchema, Money
from quickseats.models.order import OrderStatus, CommitStrategy, CancellationType
from quickseats.config import settings


class CustomerInfo(BaseSchema):
    """Customer snapshot captured on the order"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    contact_number: Optional[str] = Field(None, max_length=50)
    nic_passport: Optional[str] = Field(None, max_length=50)
    country: Optional[str] = Field(None, max_length=100)
    user_id: Optional[int] = None


class TicketRequest(BaseSchema):
    """Requested quantity of a counted ticket type"""
    ticket_type_id: int
    ticket_count: int = Field(..., gt=0)


class BookingRequest(BaseSchema):
    """Seats and counted tickets requested for one event"""
    customer: CustomerInfo
    event_id: int
    seat_ids: List[Union[int, str]] = Field(default_factory=list, max_length=settings.MAX_SEATS_PER_ORDER)
    tickets: List[TicketRequest] = Field(default_factory=list)

    @field_validator('seat_ids')
    def validate_unique_seats(cls, v):
        keys = [str(s) for s in v]
        if len(keys) != len(set(keys)):
            raise ValueError('Duplicate seat IDs not allowed')
        return v


class OrderTicketLineView(BaseSchema):
    ticket_type_id: int
    ticket_count: int
    issued_count: int = 0


class FulfillmentArtifact(BaseSchema):
    """Redemption code issued for a group of seats or a counted line"""
    code: str
    kind: str
    ticket_type_id: Optional[int] = None
    ticket_type_name: Optional[str] = None
    seat_ids: List[Union[int, str]] = []
    count: Optional[int] = None
    url: Optional[str] = None


class CanceledTicketResponse(IDSchema, TimestampSchema):
    order_id: int
    type: CancellationType
    seat_id: Optional[str] = None
    type_id: Optional[int] = None
    ticket_type_name: Optional[str] = None
    quantity: int
    price: Money


class OrderResponse(IDSchema, TimestampSchema):
    """Order response schema"""
    event_id: int
    first_name: str
    last_name: str
    email: str
    contact_number: Optional[str] = None
    country: Optional[str] = None
    seat_ids: List[Union[int, str]] = []
    tickets_without_seats: List[OrderTicketLineView] = []
    sub_total: Money
    discount: Money
    total: Money
    status: OrderStatus
    commit_strategy: CommitStrategy
    inventory_committed: bool
    transaction_uuid: Optional[str] = None
    fulfillment: List[FulfillmentArtifact] = []


class OrderDetailResponse(OrderResponse):
    cancellations: List[CanceledTicketResponse] = []


class CheckoutResponse(BaseSchema):
    """Pending order plus the signed form to post to the payment gateway"""
    order: OrderResponse
    gateway_url: str
    fields: Dict[str, str]


class SeatCancelItem(BaseSchema):
    """Seat the caller claims the order holds"""
    seat_id: Union[int, str]
    ticket_type_id: Optional[int] = None
    ticket_type_name: Optional[str] = None
    price: Money = 0


class CancelSeatsRequest(BaseSchema):
    seats: List[SeatCancelItem] = Field(..., min_length=1)


class CancelTicketsRequest(BaseSchema):
    ticket_type_id: int
    ticket_type_name: Optional[str] = None
    quantity: int


class CancellationResponse(BaseSchema):
    """What a cancellation removed and the refunded amount"""
    order: OrderResponse
    cancelled: List[CanceledTicketResponse]
    reduction: Money


class IssueSeatRequest(BaseSchema):
    order_id: int
    seat_id: Union[int, str]


class IssueCountRequest(BaseSchema):
    order_id: int
    ticket_type_id: int
    count: int


class VerifyTicketRequest(BaseSchema):
    """Contents of a scanned redemption code"""
    order_id: int
    ticket_type_id: int
    type: CancellationType
    seat_ids: List[Union[int, str]] = []
    ticket_count: Optional[int] = None
    ticket_type_name: Optional[str] = None


class VerifiedSeat(BaseSchema):
    seat_id: Union[int, str]
    status: str


class VerifyTicketResponse(BaseSchema):
    order_id: int
    order_status: OrderStatus
    event_name: str
    type: CancellationType
    ticket_type_id: int
    ticket_type_name: str
    seats: List[VerifiedSeat] = []
    count: Optional[int] = None
    issued_count: Optional[int] = None
    remaining: Optional[int] = None


class IssueCountResponse(BaseSchema):
    order_id: int
    ticket_type_id: int
    ticket_count: int
    issued_count: int
    remaining: int


class OrderListItem(IDSchema):
    event_id: int
    email: str
    total: Money
    status: OrderStatus
    commit_strategy: CommitStrategy
    created_at: datetime


class SweepReportResponse(BaseSchema):
    examined: int
    released: int
    skipped: int
    failed: int
    details: List[Dict[str, Any]] = []


class IssueSeatResponse(BaseSchema):
    order_id: int
    seat_id: Union[int, str]
    status: str
