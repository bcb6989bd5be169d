"""
Redemption codes and QR images
"""

import json
import logging
import secrets
from io import BytesIO
from typing import Any, Dict

import qrcode
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

CODE_PREFIX = "QS"


class TicketGenerator:
    """Builds the code and scannable image for one redemption item"""

    @staticmethod
    def generate_code(order_id: int) -> str:
        return f"{CODE_PREFIX}-{order_id}-{secrets.token_hex(4).upper()}"

    @staticmethod
    def redemption_payload(order_id: int, item: Dict[str, Any]) -> Dict[str, Any]:
        """What the door scanner reads back; seat items carry their seat ids"""
        return {
            "order_id": order_id,
            "code": item["code"],
            "type": item["kind"],
            "ticket_type_id": item["ticket_type_id"],
            "ticket_type_name": item["ticket_type_name"],
            "seat_ids": item["seat_ids"],
            "ticket_count": item["count"],
        }

    @staticmethod
    def render(payload: Dict[str, Any], size: int = 300, border: int = 4) -> bytes:
        """Encode a redemption payload as a square PNG"""
        try:
            qr = qrcode.QRCode(
                version=1,
                error_correction=qrcode.constants.ERROR_CORRECT_H,
                box_size=10,
                border=border,
            )
            qr.add_data(json.dumps(payload, default=str, separators=(",", ":")))
            qr.make(fit=True)

            image = qr.make_image(fill_color="black", back_color="white")
            if image.size[0] != size:
                image = image.resize((size, size), PILImage.LANCZOS)

            buffer = BytesIO()
            image.save(buffer, format="PNG")
            return buffer.getvalue()
        except Exception as e:
            logger.error(f"QR rendering failed for code {payload.get('code')}: {e}")
            raise

    @classmethod
    def build(cls, order_id: int, item: Dict[str, Any]) -> bytes:
        """Assign a fresh code to the item and return its PNG"""
        item["code"] = cls.generate_code(order_id)
        return cls.render(cls.redemption_payload(order_id, item))
