import logging
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.exceptions import CheckoutError, ValidationError
from app.api.api import api_router
from app.api.endpoints import payment
from app.services.payment_service import PaymentService

# Logging Configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing Razorpay keys are fatal: the server refuses to start
    app.state.payment_service = PaymentService.from_settings(settings)
    logger.info("Razorpay client initialized.")
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# CORS Middleware
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(CheckoutError)
async def checkout_exception_handler(request: Request, exc: CheckoutError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Wrong types and malformed bodies get the same 400 as a bad amount
    logger.info(f"{request.method} {request.url.path} rejected: {len(exc.errors())} validation error(s)")
    if request.url.path.endswith("/create-order"):
        message = ValidationError.public_message
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error"},
    )

# Include Router
app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(payment.router, prefix="/api", tags=["payment"])


def run_server(host: str = settings.HOST, port: int = settings.PORT):
    logger.info(f"Starting {settings.PROJECT_NAME} on http://{host}:{port}")
    logger.info("  - POST /api/create-order")
    logger.info("  - POST /api/verify-payment")
    logger.info("  - GET  /api/plans")
    logger.info("  - GET  /api/checkout-config")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
