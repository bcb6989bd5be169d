"""
Email Service with SendGrid Integration
Delivers booking and cancellation notices to customers
"""

from typing import List, Dict, Optional, Any
import asyncio
import base64
import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Attachment, FileContent, FileName, FileType, Disposition
from jinja2 import Template

from quickseats.config import settings

logger = logging.getLogger(__name__)


BOOKING_CONFIRMATION = Template("""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6;">
    <h2>Hi {{ customer_name }},</h2>
    <p>Your order #{{ order_id }} for <strong>{{ event_name }}</strong> is confirmed.</p>
    <table cellpadding="6">
        {% for item in items %}
        <tr>
            <td>{{ item.ticket_type_name }}</td>
            <td>{% if item.seat_ids %}Seats {{ item.seat_ids | join(", ") }}{% else %}{{ item.count }} tickets{% endif %}</td>
            <td>{{ item.code }}</td>
        </tr>
        {% endfor %}
    </table>
    <p><strong>Total:</strong> {{ currency }} {{ "%.2f" | format(total) }}</p>
    <p>Present the attached QR codes at the entrance.</p>
</body>
</html>
""")

CANCELLATION_NOTICE = Template("""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6;">
    <h2>Hi {{ customer_name }},</h2>
    <p>The following tickets of order #{{ order_id }} for <strong>{{ event_name }}</strong> were cancelled.</p>
    <table cellpadding="6">
        {% for row in rows %}
        <tr>
            <td>{{ row.ticket_type_name or "Ticket" }}</td>
            <td>{% if row.seat_id %}Seat {{ row.seat_id }}{% else %}{{ row.quantity }} tickets{% endif %}</td>
            <td>{{ currency }} {{ "%.2f" | format(row.price) }}</td>
        </tr>
        {% endfor %}
    </table>
    <p><strong>Amount refunded:</strong> {{ currency }} {{ "%.2f" | format(reduction) }}</p>
    <p><strong>New order total:</strong> {{ currency }} {{ "%.2f" | format(total) }}</p>
</body>
</html>
""")


class EmailService:
    """
    Fire-and-forget customer notifications.

    Delivery failures are logged and reported as False, never raised.
    An empty SENDGRID_API_KEY disables delivery.
    """

    def __init__(self, api_key: Optional[str] = None):
        api_key = settings.SENDGRID_API_KEY if api_key is None else api_key
        self.client = SendGridAPIClient(api_key) if api_key else None
        self.from_email = (settings.MAIL_FROM_ADDRESS, settings.MAIL_FROM_NAME)

    def _deliver(self, message: Mail) -> int:
        response = self.client.send(message)
        return response.status_code

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        attachments: Optional[List[Dict[str, Any]]] = None
    ) -> bool:
        """Send an email using SendGrid"""
        if self.client is None:
            logger.info(f"Email delivery disabled, dropping '{subject}' for {to_email}")
            return False

        try:
            message = Mail(
                from_email=self.from_email,
                to_emails=to_email,
                subject=subject,
                html_content=html_content
            )

            for attachment_data in attachments or []:
                message.add_attachment(Attachment(
                    FileContent(base64.b64encode(attachment_data['content']).decode()),
                    FileName(attachment_data['filename']),
                    FileType(attachment_data['type']),
                    Disposition("attachment"),
                ))

            status_code = await asyncio.to_thread(self._deliver, message)
            logger.info(f"Email sent to {to_email}: {status_code}")
            return status_code in (200, 201, 202)

        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {str(e)}")
            return False

    async def send_booking_confirmation(
        self,
        to_email: str,
        customer_name: str,
        order_id: int,
        event_name: str,
        total,
        items: List[Dict[str, Any]],
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> bool:
        html = BOOKING_CONFIRMATION.render(
            customer_name=customer_name,
            order_id=order_id,
            event_name=event_name,
            items=items,
            total=float(total),
            currency=settings.PAYMENT_CURRENCY,
        )
        return await self.send_email(
            to_email=to_email,
            subject=f"Your tickets for {event_name}",
            html_content=html,
            attachments=attachments,
        )

    async def send_cancellation(
        self,
        to_email: str,
        customer_name: str,
        order_id: int,
        event_name: str,
        rows: List[Dict[str, Any]],
        reduction,
        total,
    ) -> bool:
        html = CANCELLATION_NOTICE.render(
            customer_name=customer_name,
            order_id=order_id,
            event_name=event_name,
            rows=rows,
            reduction=float(reduction),
            total=float(total),
            currency=settings.PAYMENT_CURRENCY,
        )
        return await self.send_email(
            to_email=to_email,
            subject=f"Cancellation of order #{order_id}",
            html_content=html,
        )
