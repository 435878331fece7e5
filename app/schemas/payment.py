from typing import Literal, Optional, Union
from pydantic import BaseModel, StrictFloat, StrictInt

class OrderCreateRequest(BaseModel):
    # Major currency units (e.g. 999 for Rs. 999). Range checks happen in the service.
    amount: Optional[Union[StrictInt, StrictFloat]] = None

class OrderDescriptor(BaseModel):
    orderId: str
    amount: int  # Amount in smallest currency unit (e.g., paise)
    currency: Literal["INR"] = "INR"

class PaymentVerificationRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str

class PaymentVerification(BaseModel):
    status: Literal["verified"] = "verified"
    paymentId: str
    orderId: str

class CheckoutConfig(BaseModel):
    keyId: str
    currency: str
    merchantName: str
    scriptUrl: str

class ErrorResponse(BaseModel):
    error: str
