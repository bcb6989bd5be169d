"""
Hosted payment page integration

Builds the signed form the browser posts to the gateway and verifies the
signed fields the gateway posts back. The signature is an HMAC-SHA256 over
``name=value`` pairs of the fields listed in ``signed_field_names``, joined
by commas and base64 encoded.
"""

import base64
import hashlib
import hmac
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Mapping, Optional

from quickseats.config import settings
from quickseats.core.exceptions import SignatureMismatchError

logger = logging.getLogger(__name__)

SIGNED_FIELDS = (
    "access_key",
    "profile_id",
    "transaction_uuid",
    "signed_field_names",
    "unsigned_field_names",
    "signed_date_time",
    "locale",
    "transaction_type",
    "reference_number",
    "amount",
    "currency",
    "bill_to_forename",
    "bill_to_surname",
    "bill_to_email",
    "override_custom_receipt_page",
)

ACCEPT = "ACCEPT"


def _format_amount(amount: Decimal) -> str:
    return f"{Decimal(amount).quantize(Decimal('0.01'))}"


class PaymentGateway:
    """Signs outgoing payment requests and checks incoming notifications"""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        access_key: Optional[str] = None,
        profile_id: Optional[str] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.PAYMENT_SECRET_KEY
        self.access_key = access_key if access_key is not None else settings.PAYMENT_ACCESS_KEY
        self.profile_id = profile_id if profile_id is not None else settings.PAYMENT_PROFILE_ID
        self.url = settings.PAYMENT_GATEWAY_URL

    def sign(self, fields: Mapping[str, str]) -> str:
        names = fields["signed_field_names"].split(",")
        message = ",".join(f"{name}={fields.get(name, '')}" for name in names)
        digest = hmac.new(
            self.secret_key.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode("utf-8")

    def build_payment_request(
        self,
        order_id: int,
        transaction_uuid: str,
        amount: Decimal,
        first_name: str,
        last_name: str,
        email: str,
    ) -> Dict[str, str]:
        """Form fields for the hosted payment page, signature included"""
        fields = {
            "access_key": self.access_key,
            "profile_id": self.profile_id,
            "transaction_uuid": transaction_uuid,
            "signed_field_names": ",".join(SIGNED_FIELDS),
            "unsigned_field_names": "",
            "signed_date_time": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "locale": settings.PAYMENT_LOCALE,
            "transaction_type": "sale",
            "reference_number": str(order_id),
            "amount": _format_amount(amount),
            "currency": settings.PAYMENT_CURRENCY,
            "bill_to_forename": first_name,
            "bill_to_surname": last_name,
            "bill_to_email": email,
            "override_custom_receipt_page": settings.PAYMENT_RETURN_URL,
        }
        fields["signature"] = self.sign(fields)
        return fields

    def verify(self, fields: Mapping[str, str]) -> None:
        """
        Re-derive the signature over the received signed fields.

        Raises SignatureMismatchError when the fields are unsigned or the
        signature does not match.
        """
        received = fields.get("signature")
        if not received or not fields.get("signed_field_names"):
            logger.warning(
                f"Unsigned payment notification for order {fields.get('req_reference_number')}"
            )
            raise SignatureMismatchError()

        expected = self.sign(fields)
        if not hmac.compare_digest(expected, received):
            logger.warning(
                f"Payment notification signature mismatch for order {fields.get('req_reference_number')}"
            )
            raise SignatureMismatchError()
