import razorpay
import logging
import uuid
from decimal import Decimal
from typing import Any
from pydantic import ValidationError as SchemaError
from razorpay.errors import SignatureVerificationError as RazorpaySignatureError
from app.core.config import Settings
from app.core.exceptions import SignatureVerificationError, UpstreamError, ValidationError
from app.core.plans import PLANS, PlanCatalog
from app.schemas.payment import (
    OrderCreateRequest,
    OrderDescriptor,
    PaymentVerification,
    PaymentVerificationRequest,
)

logger = logging.getLogger(__name__)

RECEIPT_PREFIX = "rcpt_"
# Orders are always in rupees
CURRENCY = "INR"


def to_minor_units(amount: Any) -> int:
    """
    Convert a major-unit amount (rupees) to minor units (paise).

    The multiplication is done in decimal so 999 -> 99900 and 9.99 -> 999
    exactly. Anything that is not a positive number with at most two decimal
    places raises ValidationError.
    """
    if amount is None:
        raise ValidationError("amount is missing")
    # bool is an int subclass; true is not a price
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise ValidationError(f"amount must be a number, got {type(amount).__name__}")

    value = Decimal(str(amount))
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"amount must be positive, got {amount}")

    minor = value * 100
    if minor != minor.to_integral_value():
        raise ValidationError(f"amount {amount} has fractional minor units")
    return int(minor)


def new_receipt() -> str:
    # Razorpay caps receipts at 40 characters
    return f"{RECEIPT_PREFIX}{uuid.uuid4().hex}"


class PaymentService:
    def __init__(
        self,
        client: Any,
        catalog: PlanCatalog = PLANS,
        enforce_plan_prices: bool = True,
    ):
        self.client = client
        self.catalog = catalog
        self.enforce_plan_prices = enforce_plan_prices

    @classmethod
    def from_settings(cls, settings: Settings, catalog: PlanCatalog = PLANS) -> "PaymentService":
        settings.require_payment_keys()
        client = razorpay.Client(
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET.get_secret_value())
        )
        if not settings.ENFORCE_PLAN_PRICES:
            logger.warning("Plan price enforcement is disabled. Any positive amount will be accepted.")
        return cls(
            client,
            catalog=catalog,
            enforce_plan_prices=settings.ENFORCE_PLAN_PRICES,
        )

    def create_order(self, request: OrderCreateRequest) -> OrderDescriptor:
        """
        Create a Razorpay order for the requested amount.

        Every call creates a new provider order, so client retries produce
        distinct orders. Unpaid orders expire on the provider side.
        """
        amount = to_minor_units(request.amount)
        if self.enforce_plan_prices and not self.catalog.has_price(request.amount):
            raise ValidationError(f"amount {request.amount} does not match any plan price")

        receipt = new_receipt()
        data = {
            "amount": amount,
            "currency": CURRENCY,
            "receipt": receipt,
            "payment_capture": 1,
        }

        try:
            order = self.client.order.create(data=data)
        except Exception as e:
            logger.error(
                f"Error creating Razorpay order (receipt={receipt}, amount={amount}): "
                f"{type(e).__name__}: {e}"
            )
            raise UpstreamError(f"Razorpay order creation failed: {type(e).__name__}") from e

        # Only these three fields leave the server
        try:
            descriptor = OrderDescriptor(
                orderId=order["id"],
                amount=order["amount"],
                currency=order["currency"],
            )
        except (KeyError, TypeError, SchemaError) as e:
            logger.error(f"Unexpected Razorpay order payload for receipt {receipt}: {type(e).__name__}")
            raise UpstreamError("Malformed Razorpay order response") from e

        logger.info(
            f"Created Razorpay order {descriptor.orderId} for {descriptor.amount} "
            f"{descriptor.currency} (receipt={receipt})"
        )
        return descriptor

    def verify_payment(self, request: PaymentVerificationRequest) -> PaymentVerification:
        """
        Verifies the signature the checkout widget returns on success.
        Nothing is stored; the caller decides what a verified payment unlocks.
        """
        params = request.model_dump()
        try:
            self.client.utility.verify_payment_signature(params)
        except RazorpaySignatureError as e:
            logger.warning(
                f"Payment signature verification failed for payment "
                f"{request.razorpay_payment_id} on order {request.razorpay_order_id}"
            )
            raise SignatureVerificationError("Invalid payment signature") from e

        logger.info(f"Verified payment {request.razorpay_payment_id} for order {request.razorpay_order_id}")
        return PaymentVerification(
            paymentId=request.razorpay_payment_id,
            orderId=request.razorpay_order_id,
        )

