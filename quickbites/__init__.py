import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quickbites.core.config import Config
from quickbites.db.database import init_db
from quickbites.exceptions import (
    create_exception_handler,
    ExpiredCouponException,
    InvalidCouponException,
    InvalidWebhookException,
    PaymentProcessorException,
    RestaurantInactiveException,
    ShopFullException,
    SlotInvalidatedException,
    UsageLimitReachedException,
)
from quickbites.routers.cart import router as cart_router
from quickbites.routers.checkout import router as checkout_router
from quickbites.routers.coupons import router as coupons_router
from quickbites.routers.payments import router as payments_router
from quickbites.routers.slots import router as slots_router
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=Config.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

api_version = "v1"
swagger_docs_url = f"/api/{api_version}/docs"
redoc_docs_url = f"/api/{api_version}/redoc"
openapi_url = f"/api/{api_version}/openapi.json"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # create missing tables; slot and restaurant rows are provisioned elsewhere
    await init_db()
    yield


app = FastAPI(
    docs_url=swagger_docs_url,
    redoc_url=redoc_docs_url,
    openapi_url=openapi_url,
    title="QuickBites Capacity API",
    description="Delivery capacity admission and pricing for scheduled food pickups.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        'http://localhost',
        'http://localhost:3000',
        'http://localhost:8081',  # Expo dev client
    ],
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'],
    allow_headers=["*"],
)

# Register endpoints
app.include_router(cart_router, prefix=f'/api/{api_version}/cart', tags=["Cart"])
app.include_router(slots_router, prefix=f'/api/{api_version}/slots', tags=["Slots"])
app.include_router(coupons_router, prefix=f'/api/{api_version}/coupons', tags=["Coupons"])
app.include_router(checkout_router, prefix=f'/api/{api_version}/checkout', tags=["Checkout"])
app.include_router(payments_router, prefix=f'/api/{api_version}/payments', tags=["Payments"])

# Add a root endpoint for health check
@app.get("/")
async def root():
    return {
        "message": "QuickBites Capacity API",
        "version": "1.0.0",
        "docs": swagger_docs_url,
        "status": "running"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# Register custom exceptions

# Capacity-related exception handlers
app.add_exception_handler(ShopFullException, create_exception_handler(409, "SHOP_FULL", "We are fully booked. Please try again later."))
app.add_exception_handler(SlotInvalidatedException, create_exception_handler(409, "SLOT_INVALIDATED", "Your pickup time is no longer available."))
app.add_exception_handler(RestaurantInactiveException, create_exception_handler(409, "RESTAURANT_INACTIVE", "This restaurant is not accepting orders."))

# Coupon-related exception handlers
app.add_exception_handler(InvalidCouponException, create_exception_handler(404, "INVALID_COUPON", "Coupon not found."))
app.add_exception_handler(ExpiredCouponException, create_exception_handler(400, "EXPIRED_COUPON", "This coupon has expired."))
app.add_exception_handler(UsageLimitReachedException, create_exception_handler(400, "USAGE_LIMIT_REACHED", "You have already used this coupon."))

# Payment-related exception handlers
app.add_exception_handler(PaymentProcessorException, create_exception_handler(503, "PAYMENT_UNAVAILABLE", "Payment service is temporarily unavailable."))
app.add_exception_handler(InvalidWebhookException, create_exception_handler(400, "INVALID_WEBHOOK", "Invalid webhook payload."))
