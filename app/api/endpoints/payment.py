from typing import List
from fastapi import APIRouter, Depends
from app.api.deps import get_catalog, get_payment_service, get_settings
from app.core.config import Settings
from app.core.plans import PlanCatalog
from app.schemas.payment import (
    CheckoutConfig,
    ErrorResponse,
    OrderCreateRequest,
    OrderDescriptor,
    PaymentVerification,
    PaymentVerificationRequest,
)
from app.schemas.plan import Plan
from app.services.payment_service import CURRENCY, PaymentService

router = APIRouter()


@router.post(
    "/create-order",
    response_model=OrderDescriptor,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def create_order(
    request: OrderCreateRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """
    Create a Razorpay order for payment.

    Accepts: amount in rupees
    Returns: orderId, amount in paise, currency

    Validation and provider failures are raised as CheckoutError subclasses
    and rendered by the handlers in app.main.
    """
    return service.create_order(request)


@router.post(
    "/verify-payment",
    response_model=PaymentVerification,
    responses={400: {"model": ErrorResponse}},
)
def verify_payment(
    request: PaymentVerificationRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """
    Verify the signature returned by the checkout widget on success.
    """
    return service.verify_payment(request)


@router.get("/plans", response_model=List[Plan])
async def list_plans(catalog: PlanCatalog = Depends(get_catalog)):
    return list(catalog)


@router.get("/checkout-config", response_model=CheckoutConfig)
async def checkout_config(config: Settings = Depends(get_settings)):
    # Public values only
    return CheckoutConfig(
        keyId=config.RAZORPAY_KEY_ID,
        currency=CURRENCY,
        merchantName=config.MERCHANT_NAME,
        scriptUrl=config.CHECKOUT_SCRIPT_URL,
    )
