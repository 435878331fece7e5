import os
from typing import List, Union
from pydantic import AnyHttpUrl, SecretStr, validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

from app.core.exceptions import ConfigurationError

load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Plan Checkout")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api/v1")

    # Public key, safe to hand to the checkout widget
    RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID", "")
    # Server only
    RAZORPAY_KEY_SECRET: SecretStr = SecretStr(os.getenv("RAZORPAY_KEY_SECRET", ""))

    ENFORCE_PLAN_PRICES: bool = True

    MERCHANT_NAME: str = os.getenv("MERCHANT_NAME", "My App Inc.")
    CHECKOUT_THEME_COLOR: str = os.getenv("CHECKOUT_THEME_COLOR", "#09090b")
    CHECKOUT_SCRIPT_URL: str = os.getenv(
        "CHECKOUT_SCRIPT_URL", "https://checkout.razorpay.com/v1/checkout.js"
    )

    BACKEND_URL: str = os.getenv("BACKEND_URL", "http://localhost:8000")
    ORDER_TIMEOUT_SECONDS: float = 10.0
    WIDGET_TIMEOUT_SECONDS: float = 900.0

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = []

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    def require_payment_keys(self) -> None:
        """
        Both Razorpay keys must be configured before the server accepts traffic.
        The error names the missing variables, never their values.
        """
        missing = []
        if not self.RAZORPAY_KEY_ID:
            missing.append("RAZORPAY_KEY_ID")
        if not self.RAZORPAY_KEY_SECRET.get_secret_value():
            missing.append("RAZORPAY_KEY_SECRET")
        if missing:
            raise ConfigurationError(f"Missing payment configuration: {', '.join(missing)}")

    class Config:
        case_sensitive = True

settings = Settings()
