"""
Online checkout and payment gateway callbacks

The two callbacks never describe what went wrong to the caller; the gateway
and the browser get a generic acknowledgement and the details are logged.
"""

import logging
from typing import Any, Dict
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from quickseats.api.deps import get_booking_service
from quickseats.config import settings
from quickseats.core.exceptions import (
    AlreadyProcessedError,
    QuickSeatsException,
    SignatureMismatchError,
)
from quickseats.schemas.order import BookingRequest, CheckoutResponse, OrderResponse
from quickseats.services.booking import BookingService

logger = logging.getLogger(__name__)

router = APIRouter()

ACKNOWLEDGED = {"status": "received"}


@router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def create_checkout(
    request: BookingRequest,
    booking: BookingService = Depends(get_booking_service),
) -> Any:
    """
    Create a pending order and the signed form for the hosted payment page
    """
    order, fields = await booking.checkout(request)
    return CheckoutResponse(
        order=OrderResponse.model_validate(order),
        gateway_url=booking.gateway.url,
        fields=fields,
    )


async def _read_fields(request: Request) -> Dict[str, str]:
    form = await request.form()
    return {key: str(value) for key, value in form.items()}


async def _process_callback(booking: BookingService, fields: Dict[str, str], source: str):
    """
    Apply a gateway callback. Returns (http status, order status or None).
    """
    reference = fields.get("req_reference_number")
    try:
        order = await booking.handle_payment_callback(fields)
    except SignatureMismatchError:
        return status.HTTP_403_FORBIDDEN, None
    except AlreadyProcessedError as e:
        return status.HTTP_200_OK, e.details.get("status")
    except QuickSeatsException as e:
        logger.error(
            f"Payment {source} for order {reference} not processed: {e.code} {e.message}",
            extra={"context": {"order_id": reference, "code": e.code}},
        )
        if e.details.get("retriable"):
            return status.HTTP_503_SERVICE_UNAVAILABLE, None
        return status.HTTP_200_OK, None
    except Exception as e:
        logger.error(f"Payment {source} for order {reference} failed: {e}", exc_info=True)
        return status.HTTP_503_SERVICE_UNAVAILABLE, None

    order_status = order.status.value
    logger.info(f"Payment {source} for order {reference} processed, order is {order_status}")
    return status.HTTP_200_OK, order_status


@router.post("/notify")
async def payment_notification(
    request: Request,
    booking: BookingService = Depends(get_booking_service),
) -> Any:
    """
    Server-to-server notification from the payment gateway
    """
    fields = await _read_fields(request)
    status_code, _ = await _process_callback(booking, fields, "notification")
    return JSONResponse(status_code=status_code, content=ACKNOWLEDGED)


@router.post("/return")
async def payment_return(
    request: Request,
    booking: BookingService = Depends(get_booking_service),
) -> Any:
    """
    Browser landing after the hosted payment page.

    Processes the same signed fields as the notification (whichever arrives
    first wins) and redirects to the storefront result page.
    """
    fields = await _read_fields(request)
    status_code, order_status = await _process_callback(booking, fields, "return")
    if status_code == status.HTTP_403_FORBIDDEN:
        return JSONResponse(status_code=status_code, content=ACKNOWLEDGED)

    query = {"order_id": fields.get("req_reference_number", "")}
    if order_status:
        query["status"] = order_status
    return RedirectResponse(
        url=f"{settings.FRONTEND_RESULT_URL}?{urlencode(query)}",
        status_code=status.HTTP_303_SEE_OTHER,
    )
