"""Test configuration."""
import json
import os
from collections.abc import AsyncIterator, Callable, Iterator
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

from alembic import command
from alembic.config import Config
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

# --- Default environment, must be set before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./emirafrik_test.db")
os.environ.setdefault("EMI_ENV", "test")
os.environ.setdefault("AUTH_MODE", "static")
os.environ.setdefault(
    "AUTH_STATIC_TOKENS",
    json.dumps({"token-u1": "u1", "token-u2": "u2"}),
)
os.environ.setdefault("MOMO_PROVIDER_MODE", "simulated")
os.environ.setdefault("MOMO_SIMULATOR_OUTCOME", "success")

from emirafrik.db import get_db  # noqa: E402
from emirafrik.main import app  # noqa: E402
from emirafrik.models import MomoProvider, Payment, PaymentStatus  # noqa: E402
from emirafrik.utils.time import utcnow  # noqa: E402

DB_PATH = Path("./emirafrik_test.db")
ROOT = Path(__file__).resolve().parents[1]


def _run_migrations() -> None:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.attributes["sqlalchemy.url"] = os.environ["DATABASE_URL"]
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")


# --- (1) Fresh database file for the session
if DB_PATH.exists():
    DB_PATH.unlink()

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    future=True,
)


@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    # let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the test transaction
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
    expire_on_commit=False,
    join_transaction_mode="create_savepoint",
)

# --- (2) Schema comes from Alembic only
_run_migrations()


@pytest.fixture
def db_session() -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture(autouse=True)
def override_db_dependency(db_session: Session) -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def u1_headers() -> dict[str, str]:
    return {"Authorization": "Bearer token-u1"}


@pytest.fixture
def u2_headers() -> dict[str, str]:
    return {"Authorization": "Bearer token-u2"}


@pytest.fixture
def make_payment(db_session: Session) -> Callable[..., Payment]:
    """Insert a payment row directly, bypassing the provider."""

    def _factory(
        *,
        user_id: str = "u1",
        provider: MomoProvider = MomoProvider.MTN,
        amount: str = "50.00",
        currency: str = "USD",
        status: PaymentStatus = PaymentStatus.PENDING,
        age: timedelta = timedelta(0),
    ) -> Payment:
        ref = f"EMIRAFRIK_{provider.value.upper()}_{uuid4().hex[:12]}"
        created = utcnow() - age
        payment = Payment(
            id=ref,
            user_id=user_id,
            amount=Decimal(amount),
            currency=currency,
            provider=provider,
            phone="+23761112222",
            description="Medical tourism payment",
            status=status,
            checkout_uri=f"{provider.value}://pay?ref={ref}",
            external_ref=f"EXT-{uuid4().hex[:8]}",
            provider_metadata={"simulated": True},
            created_at=created,
            updated_at=created,
        )
        db_session.add(payment)
        db_session.commit()
        return payment

    return _factory
