from typing import Optional


class CheckoutError(Exception):
    """
    Base class for checkout failures.

    `public_message` is what a client may see. The constructor message is for
    the server log and may carry more detail.
    """
    status_code: int = 500
    public_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, public_message: Optional[str] = None):
        super().__init__(message or public_message or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class ValidationError(CheckoutError):
    """Bad client input. User-correctable."""
    status_code = 400
    public_message = "Invalid amount provided"


class UpstreamError(CheckoutError):
    """The payment provider could not be reached or refused the call."""
    status_code = 500
    public_message = "Internal Server Error while creating order."


class SignatureVerificationError(CheckoutError):
    status_code = 400
    public_message = "Payment verification failed"


class ConfigurationError(CheckoutError):
    public_message = "Payment gateway not configured."


class WidgetUnavailable(CheckoutError):
    """The checkout script could not be loaded into the client."""
    public_message = "checkout unavailable"


class OrderRequestFailed(CheckoutError):
    """Client side: the order endpoint did not return an order."""
    public_message = "Failed to create order"
