"""
Post-commit fulfillment: redemption codes, QR artifacts, customer notice.

Runs after the booking is committed. Nothing here may undo or fail the
booking; problems are logged and the order keeps whatever was produced.
"""

import logging
from typing import Dict, List, Any

from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.models.order import Order
from quickseats.services.artifact_storage import LocalArtifactStorage
from quickseats.services.email_service import EmailService
from quickseats.services.ticket_service import TicketGenerator

logger = logging.getLogger(__name__)


class FulfillmentService:
    def __init__(
        self,
        session: AsyncSession,
        notifier: EmailService,
        storage: LocalArtifactStorage,
    ):
        self.session = session
        self.notifier = notifier
        self.storage = storage

    def _plan(self, order: Order, quote) -> List[Dict[str, Any]]:
        """One redemption item per seat ticket type and per counted line"""
        items = []
        for type_name, seats in quote.seat_groups.items():
            items.append({
                "kind": "seat",
                "ticket_type_id": seats[0].numeric_type_id,
                "ticket_type_name": type_name,
                "seat_ids": [seat.seat_id for seat in seats],
                "count": len(seats),
            })
        for line in quote.lines:
            items.append({
                "kind": "no seat",
                "ticket_type_id": line.ticket_type_id,
                "ticket_type_name": quote.ticket_type_names.get(line.ticket_type_id),
                "seat_ids": [],
                "count": line.ticket_count,
            })
        return items

    async def fulfill(self, order: Order, quote, event_name: str) -> List[Dict[str, Any]]:
        order_id = order.id
        try:
            items = self._plan(order, quote)
            attachments = []
            for item in items:
                image = TicketGenerator.build(order.id, item)
                filename = f"order-{order.id}-{item['code']}.png"
                item["url"] = await self.storage.put(filename, image)
                attachments.append({"content": image, "filename": filename, "type": "image/png"})

            order.fulfillment = items
            await self.session.commit()
            logger.info(f"Issued {len(items)} redemption codes for order {order.id}")
        except Exception as e:
            logger.error(f"Fulfillment failed for order {order_id}: {e}", exc_info=True)
            await self.session.rollback()
            await self.session.refresh(order)
            return []

        await self.notifier.send_booking_confirmation(
            to_email=order.email,
            customer_name=f"{order.first_name} {order.last_name}",
            order_id=order.id,
            event_name=event_name,
            total=order.total,
            items=items,
            attachments=attachments,
        )
        return items
