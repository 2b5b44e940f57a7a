"""Pytest fixtures for ARK service and API tests.

Every test gets its own SQLite database file so savepoints and multi-session
scenarios behave like they do against PostgreSQL.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import ark.models  # noqa: F401
from ark.app import app
from ark.database.base import Base
from ark.database.session import get_db
from ark.models.dumpster import Dumpster
from ark.models.enums import (
    DumpsterCondition,
    DumpsterStatus,
    OrderStatus,
    Priority,
    QuoteStatus,
    ServicePriceType,
)
from ark.models.order import Order
from ark.models.quote import Quote
from ark.models.service import Service
from ark.models.service_category import ServiceCategory
from ark.modules.auth.dependencies import create_access_token
from ark.modules.events.handlers import EventHandlerRegistry
from ark.modules.notification.transport import (
    EmailMessage,
    EmailResult,
    EmailTransport,
    get_email_transport,
)


class RecordingTransport(EmailTransport):
    """In-memory transport that records every message it is asked to send."""

    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[EmailMessage] = []
        self.error = error

    async def send(self, message: EmailMessage) -> EmailResult:
        if self.error is not None:
            raise self.error
        self.sent.append(message)
        return EmailResult(success=True, message_id=f"msg-{len(self.sent)}")


class Factory:
    """Builds persisted rows with sensible defaults."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def quote(self, **overrides) -> Quote:
        fields = {
            "first_name": "Dana",
            "last_name": "Reyes",
            "email": "dana@example.com",
            "phone": "555-0100",
            "address": "12 Elm St",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
            "dumpster_size": "20",
            "dropoff_date": date(2026, 11, 2),
            "status": QuoteStatus.PENDING,
            "priority": Priority.NORMAL,
        }
        fields.update(overrides)
        quote = Quote(**fields)
        self.session.add(quote)
        await self.session.flush()
        return quote

    async def service(self, **overrides) -> Service:
        category = ServiceCategory(
            name=f"rentals-{uuid.uuid4().hex[:8]}",
            display_name="Dumpster Rentals",
        )
        self.session.add(category)
        await self.session.flush()
        fields = {
            "category_id": category.id,
            "sku": f"DUMP-{uuid.uuid4().hex[:6].upper()}",
            "name": "20 yard rental",
            "display_name": "20 Yard Dumpster Rental",
            "base_price": Decimal("350.00"),
            "price_type": ServicePriceType.FIXED,
            "dumpster_size": "20",
            "is_active": True,
        }
        fields.update(overrides)
        service = Service(**fields)
        self.session.add(service)
        await self.session.flush()
        return service

    async def order(self, **overrides) -> Order:
        fields = {
            "order_number": f"ORD-20261018-{uuid.uuid4().hex[:6].upper()}",
            "first_name": "Dana",
            "last_name": "Reyes",
            "email": "dana@example.com",
            "address": "12 Elm St",
            "city": "Springfield",
            "state": "IL",
            "status": OrderStatus.SCHEDULED,
            "priority": Priority.NORMAL,
            "quoted_price": Decimal("350.00"),
            "assigned_to": "Sam",
        }
        fields.update(overrides)
        order = Order(**fields)
        self.session.add(order)
        await self.session.flush()
        return order

    async def dumpster(self, name: str | None = None, **overrides) -> Dumpster:
        fields = {
            "name": name or f"D-{uuid.uuid4().hex[:4].upper()}",
            "size": "20",
            "status": DumpsterStatus.AVAILABLE,
            "condition": DumpsterCondition.GOOD,
        }
        fields.update(overrides)
        dumpster = Dumpster(**fields)
        self.session.add(dumpster)
        await self.session.flush()
        return dumpster


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ark-test.db'}")

    # Let SQLAlchemy own BEGIN so SAVEPOINT works on pysqlite
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(connection):
        connection.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def factory(db_session) -> Factory:
    return Factory(db_session)


@pytest.fixture(autouse=True)
def _clear_handlers():
    EventHandlerRegistry.clear()
    yield
    EventHandlerRegistry.clear()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    token = create_access_token(uuid.uuid4(), "dispatch@arkdumpster.com", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory, transport) -> AsyncGenerator[AsyncClient, None]:
    """httpx client against the app, one committed session per request."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_transport] = lambda: transport

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def factory_for():
    """Build a Factory bound to an arbitrary session (multi-session tests)."""
    return Factory


@pytest.fixture
def failing_transport():
    """Build a transport whose every send raises the given error."""

    def _make(error: Exception) -> RecordingTransport:
        return RecordingTransport(error=error)

    return _make
