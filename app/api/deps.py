from fastapi import Request
from app.core.config import Settings, settings
from app.core.plans import PLANS, PlanCatalog
from app.services.payment_service import PaymentService

# The payment service is built once in the lifespan handler (app.main) and
# shared by every request. It holds the Razorpay client, the catalog and no
# other state, so concurrent requests need no locking.

def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_catalog() -> PlanCatalog:
    return PLANS


def get_settings() -> Settings:
    return settings
