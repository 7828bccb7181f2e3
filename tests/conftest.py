"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from washq.api.auth import create_access_token
from washq.api.main import create_app
from washq.api.routes.jobs import get_orchestrator
from washq.config import Settings
from washq.constants import CapacityMode, UserRole
from washq.core.orchestrator import JobOrchestrator
from washq.db import (
    Base,
    Customer,
    MessageTemplate,
    Service,
    Tenant,
    Vehicle,
    get_async_session,
    make_session_factory,
)
from washq.types.job import DispatchResult

# In-memory database shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeDispatcher:
    """Records outgoing messages; set `error` to make sends raise."""

    def __init__(self):
        self.sent: list[dict] = []
        self.error: Exception | None = None

    async def send(
        self,
        recipient: str,
        message: str,
        template_id: UUID | None = None,
    ) -> DispatchResult:
        if self.error is not None:
            raise self.error
        self.sent.append(
            {"recipient": recipient, "message": message, "template_id": template_id}
        )
        return DispatchResult(success=True, message_id=f"fake-{len(self.sent)}")


@dataclass
class WashSeed:
    """A tenant with one customer, one vehicle and a small service catalog."""

    tenant: Tenant
    customer: Customer
    vehicle: Vehicle
    services: list[Service]
    inactive_service: Service

    @property
    def service_ids(self) -> list[UUID]:
        return [service.id for service in self.services]


@pytest_asyncio.fixture
async def async_engine():
    """Create an in-memory database engine with the schema in place."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession]:
    """Create a database session for tests."""
    session_factory = make_session_factory(async_engine)

    async with session_factory() as session:
        yield session

        # Rollback any uncommitted changes
        await session.rollback()


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        api_secret_key="test-secret-key",
        log_level="DEBUG",
        log_format="console",
        job_create_backoff_max_ms=0,
    )


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def orchestrator(
    db_session: AsyncSession,
    dispatcher: FakeDispatcher,
    test_settings: Settings,
) -> JobOrchestrator:
    return JobOrchestrator(db_session, dispatcher=dispatcher, settings=test_settings)


@pytest.fixture
def make_seed(db_session: AsyncSession) -> Callable[..., Awaitable[WashSeed]]:
    """Factory creating a tenant with its customer, vehicle and services."""

    async def _make_seed(
        capacity_mode: CapacityMode = CapacityMode.SINGLE,
        max_concurrent_jobs: int = 1,
    ) -> WashSeed:
        tenant = Tenant(
            name="Sparkle Car Wash",
            whatsapp_number="+15550000000",
            capacity_mode=capacity_mode.value,
            max_concurrent_jobs=max_concurrent_jobs,
        )
        db_session.add(tenant)
        await db_session.flush()

        customer = Customer(
            tenant_id=tenant.id,
            name="Dana Reyes",
            phone="5551234567",
            whatsapp_number="+15551234567",
        )
        db_session.add(customer)
        await db_session.flush()

        vehicle = Vehicle(
            tenant_id=tenant.id,
            customer_id=customer.id,
            plate_number="KA01AB1234",
            brand="Toyota",
            model="Corolla",
            color="Blue",
        )
        services = [
            Service(
                tenant_id=tenant.id,
                name="Exterior Wash",
                price=Decimal("10.00"),
                min_minutes=20,
                max_minutes=30,
            ),
            Service(
                tenant_id=tenant.id,
                name="Interior Detailing",
                price=Decimal("25.50"),
                min_minutes=30,
                max_minutes=45,
            ),
        ]
        inactive_service = Service(
            tenant_id=tenant.id,
            name="Ceramic Coating",
            price=Decimal("99.00"),
            max_minutes=120,
            is_active=False,
        )
        db_session.add_all([vehicle, *services, inactive_service])
        await db_session.commit()

        return WashSeed(
            tenant=tenant,
            customer=customer,
            vehicle=vehicle,
            services=services,
            inactive_service=inactive_service,
        )

    return _make_seed


@pytest_asyncio.fixture
async def seed(make_seed) -> WashSeed:
    """A SINGLE capacity tenant."""
    return await make_seed()


@pytest_asyncio.fixture
async def message_templates(db_session: AsyncSession) -> list[MessageTemplate]:
    """Global templates for job creation and delivery."""
    templates = [
        MessageTemplate(
            name="Job Received",
            body=(
                "Hi {{customer_name}}, we received {{plate_number}}. "
                "Token {{token_number}}, ready around {{estimated_time}}."
            ),
            is_global=True,
        ),
        MessageTemplate(
            name="Job DELIVERED",
            body="{{plate_number}} has been delivered. Total: {{total_price}}",
            is_global=True,
        ),
    ]
    db_session.add_all(templates)
    await db_session.commit()
    return templates


@pytest_asyncio.fixture
async def app(
    db_session: AsyncSession,
    dispatcher: FakeDispatcher,
    test_settings: Settings,
) -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app bound to the test session."""
    app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    def _orchestrator() -> JobOrchestrator:
        return JobOrchestrator(db_session, dispatcher=dispatcher, settings=test_settings)

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_orchestrator] = _orchestrator

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(seed: WashSeed) -> dict[str, str]:
    """Create admin authentication headers for the seeded tenant."""
    token = create_access_token(tenant_id=seed.tenant.id, user_id=uuid4())
    return {
        "Authorization": f"Bearer {token}",
    }


@pytest.fixture
def employee_id() -> UUID:
    return uuid4()


@pytest.fixture
def employee_headers(seed: WashSeed, employee_id: UUID) -> dict[str, str]:
    """Create authentication headers for an employee of the seeded tenant."""
    token = create_access_token(
        tenant_id=seed.tenant.id,
        user_id=employee_id,
        role=UserRole.EMPLOYEE,
    )
    return {
        "Authorization": f"Bearer {token}",
    }
