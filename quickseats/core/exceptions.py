"""
Application exceptions

Every failure the inventory engines can report derives from
QuickSeatsException so the API layer renders them uniformly.
"""

from typing import Optional, Dict, Any


class QuickSeatsException(Exception):
    """Base exception for the QuickSeats application"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ---------- NotFound ----------

class NotFoundError(QuickSeatsException):
    """Resource not found errors"""

    def __init__(self, resource: str, identifier: Any = None, code: str = "NOT_FOUND"):
        message = f"{resource} not found"
        details = {}
        if identifier is not None:
            message = f"{resource} {identifier} not found"
            details = {"id": identifier}
        super().__init__(
            message=message,
            code=code,
            status_code=404,
            details=details
        )


class EventNotFoundError(NotFoundError):
    def __init__(self, event_id: Any):
        super().__init__("Event", event_id, code="EVENT_NOT_FOUND")


class SeatNotFoundError(NotFoundError):
    def __init__(self, seat_id: Any, event_id: Any = None):
        super().__init__("Seat", seat_id, code="SEAT_NOT_FOUND")
        if event_id is not None:
            self.message = f"Seat {seat_id} not found for event {event_id}"
            self.details["event_id"] = event_id


class TicketTypeNotFoundError(NotFoundError):
    def __init__(self, ticket_type_id: Any):
        super().__init__("Ticket type", ticket_type_id, code="TICKET_TYPE_NOT_FOUND")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: Any):
        super().__init__("Order", order_id, code="ORDER_NOT_FOUND")


# ---------- InvalidState ----------

class InvalidStateError(QuickSeatsException):
    """Entity is not in the status required for the requested transition"""

    def __init__(self, message: str, code: str = "INVALID_STATE", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code=code,
            status_code=409,
            details=details
        )


class SeatUnavailableError(InvalidStateError):
    """Seat cannot be booked in its current status"""

    def __init__(self, seat_id: Any, status: str):
        super().__init__(
            message=f"Seat {seat_id} is currently {status} and cannot be booked",
            code="SEAT_UNAVAILABLE",
            details={"seat_id": seat_id, "status": status}
        )


class OrderCancelledError(InvalidStateError):
    def __init__(self, order_id: Any):
        super().__init__(
            message=f"Order {order_id} is already cancelled",
            code="ORDER_CANCELLED",
            details={"order_id": order_id}
        )


# ---------- Capacity ----------

class CapacityError(QuickSeatsException):
    """Requested quantity exceeds what is left"""

    def __init__(self, message: str, code: str, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code=code,
            status_code=409,
            details=details
        )


class SoldOutError(CapacityError):
    def __init__(self, ticket_type_id: Any, available: int, requested: int):
        super().__init__(
            message=(
                f"Not enough tickets for ticket type {ticket_type_id}. "
                f"Available: {available}. Requested: {requested}."
            ),
            code="SOLD_OUT",
            details={
                "ticket_type_id": ticket_type_id,
                "available": available,
                "requested": requested,
            }
        )
        self.available = available
        self.requested = requested


class InsufficientQuantityError(CapacityError):
    def __init__(self, ticket_type_id: Any, held: int, requested: int):
        super().__init__(
            message=(
                f"Cannot cancel {requested} tickets of type {ticket_type_id}. "
                f"Only {held} held in this order."
            ),
            code="INSUFFICIENT_QUANTITY",
            details={"ticket_type_id": ticket_type_id, "held": held, "requested": requested}
        )


class OverIssueError(CapacityError):
    def __init__(self, ticket_type_id: Any, remaining: int, requested: int):
        super().__init__(
            message=(
                f"Cannot issue {requested} tickets. Only {remaining} remaining "
                f"for this type in this order."
            ),
            code="OVER_ISSUE",
            details={"ticket_type_id": ticket_type_id, "remaining": remaining, "requested": requested}
        )
        self.remaining = remaining


# ---------- Malformed requests ----------

class InvalidInputError(QuickSeatsException):
    """Malformed or vacuous request"""

    def __init__(self, message: str, code: str = "INVALID_INPUT", field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            code=code,
            status_code=400,
            details=details
        )


class EmptySelectionError(InvalidInputError):
    def __init__(self):
        super().__init__(
            "Select at least one seat or one ticket",
            code="EMPTY_SELECTION"
        )


class InvalidQuantityError(InvalidInputError):
    def __init__(self, field: str = "quantity"):
        super().__init__("Quantity must be greater than zero", code="INVALID_QUANTITY", field=field)


class TicketTypeNotInOrderError(InvalidInputError):
    def __init__(self, ticket_type_id: Any):
        super().__init__(
            f"Ticket type {ticket_type_id} not found in this order's non-seated tickets",
            code="TICKET_TYPE_NOT_IN_ORDER"
        )
        self.details["ticket_type_id"] = ticket_type_id


class NoValidSeatsError(InvalidInputError):
    def __init__(self, seat_ids: list):
        super().__init__(
            "None of the requested seats could be cancelled for this order",
            code="NO_VALID_SEATS"
        )
        self.details["seat_ids"] = seat_ids


# ---------- Trust boundary ----------

class SignatureMismatchError(QuickSeatsException):
    def __init__(self):
        super().__init__(
            message="Payment callback signature verification failed",
            code="SIGNATURE_MISMATCH",
            status_code=403
        )


class AlreadyProcessedError(QuickSeatsException):
    """Replay of a callback for an order already in a terminal status"""

    def __init__(self, order_id: Any, status: str):
        super().__init__(
            message=f"Order {order_id} already {status}",
            code="ALREADY_PROCESSED",
            status_code=200,
            details={"order_id": order_id, "status": status}
        )


# ---------- Storage / concurrency ----------

class StorageParseError(QuickSeatsException):
    """Persisted inventory could not be decoded; refusing to overwrite it"""

    def __init__(self, event_id: Any, field: str):
        super().__init__(
            message="Event inventory is temporarily unavailable, please retry",
            code="STORAGE_PARSE_ERROR",
            status_code=503,
            details={"event_id": event_id, "field": field, "retriable": True}
        )


class ConcurrencyError(QuickSeatsException):
    """Concurrency conflict error"""

    def __init__(self, message: str = "Resource was modified by another process"):
        super().__init__(
            message=message,
            code="CONCURRENCY_ERROR",
            status_code=409,
            details={"retriable": True}
        )


class LockAcquisitionError(QuickSeatsException):
    """Failed to acquire lock error"""

    def __init__(self, resource: str):
        super().__init__(
            message=f"Failed to acquire lock for resource: {resource}",
            code="LOCK_FAILED",
            status_code=409,
            details={"resource": resource, "retriable": True}
        )
