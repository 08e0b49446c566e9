import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_quickbites")

from datetime import datetime
from itertools import count
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from quickbites import app
from quickbites.core.dependencies import get_admission_controller, get_db, get_payment_service
from quickbites.db.base import Base
from quickbites.enums import DayOfWeek, Meridiem
from quickbites.exceptions import PaymentProcessorException
from quickbites.models import DriverSlot, Restaurant
from quickbites.schemas.cart import Cart, CartItem
from quickbites.schemas.payment import PaymentIntentResponse
from quickbites.services import AdmissionController, PaymentService, WindowAggregator


# Monday 08:00 in the service timezone
NOW = datetime(2026, 10, 19, 8, 0, tzinfo=ZoneInfo("America/New_York"))

ADMIN_HEADERS = {"X-API-Key": "test-admin-key"}
USER_HEADERS = {"X-User-Id": "user-1"}


class FakePaymentService(PaymentService):
    """Records payment intents instead of calling the processor"""

    def __init__(self):
        super().__init__(secret_key="sk_test_quickbites", webhook_secret="", currency="usd")
        self.intents = []
        self.unavailable = False
        self._ids = count(1)

    async def create_payment_intent(self, amount, metadata):
        if self.unavailable:
            raise PaymentProcessorException("Payment service is temporarily unavailable. Please try again.")

        intent_id = f"pi_test_{next(self._ids)}"
        intent = PaymentIntentResponse(
            id=intent_id,
            client_secret=f"{intent_id}_secret",
            amount=amount,
            currency=self.currency,
        )
        self.intents.append((intent, metadata))
        return intent


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def aggregator():
    return WindowAggregator(min_lead_minutes=105)


@pytest.fixture
def admission(aggregator):
    return AdmissionController(aggregator, horizon_days=7, clock=lambda: NOW)


@pytest.fixture
def payments():
    return FakePaymentService()


@pytest_asyncio.fixture
async def client(session_factory, admission, payments):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_admission_controller] = lambda: admission
    app.dependency_overrides[get_payment_service] = lambda: payments

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def add_restaurant(db, restaurant_id=1, name="Burger Barn", is_active=True):
    restaurant = Restaurant(id=restaurant_id, name=name, is_active=is_active)
    db.add(restaurant)
    await db.commit()
    return restaurant


async def add_slot(
    db,
    day=DayOfWeek.TUESDAY,
    hour=11,
    minute=0,
    meridiem=Meridiem.AM,
    max_capacity=20.0,
    current_load=0.0,
    window_label=None,
):
    slot = DriverSlot(
        day_of_week=day,
        hour=hour,
        minute=minute,
        meridiem=meridiem,
        max_capacity=max_capacity,
        current_load=current_load,
        order_count=0,
        window_label=window_label,
    )
    db.add(slot)
    await db.commit()
    return slot


def make_item(item_id, name, price=10.0, quantity=1, load_unit=1.0, restaurant_id=1, **kwargs):
    return CartItem(
        id=item_id,
        name=name,
        price=price,
        quantity=quantity,
        load_unit=load_unit,
        restaurant_id=restaurant_id,
        **kwargs,
    )


def make_cart(*items):
    return Cart(items=list(items))
