"""Test configuration."""
import os
from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path
from typing import Any
from uuid import uuid4

from alembic import command
from alembic.config import Config
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import Session, sessionmaker

# --- Default environment
os.environ.setdefault("DATABASE_URL", "sqlite:///./guardpay_test.db")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_guardpay")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_guardpay")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("GUARDPAY_ENV", "test")
os.environ.setdefault("PROMETHEUS_ENABLED", "false")

from guardpay.config import get_settings  # noqa: E402
from guardpay.core.observer import Observer  # noqa: E402
from guardpay.db import get_db  # noqa: E402
from guardpay.main import app  # noqa: E402
from guardpay.models import ApiKey, AppRole, Booking, Payment, PaymentStatus, UserRole  # noqa: E402
from guardpay.models.base import Base  # noqa: E402
from guardpay.services.reconciliation import ReconciliationServices, build_services  # noqa: E402
from guardpay.utils.apikey import hash_key  # noqa: E402

DB_PATH = Path("./guardpay_test.db")


def _run_migrations() -> None:
    cfg = Config(str(Path(__file__).resolve().parents[1] / "alembic.ini"))
    cfg.set_main_option("script_location", str(Path(__file__).resolve().parents[1] / "alembic"))
    cfg.set_main_option("sqlalchemy.url", os.environ["DATABASE_URL"])
    command.upgrade(cfg, "head")


# --- (1) Fresh database file per session
if DB_PATH.exists():
    DB_PATH.unlink()

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    future=True,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False,
                                   future=True, expire_on_commit=False)

# --- (2) Schema comes from Alembic only
_run_migrations()


class RecordingObserver(Observer):
    """Observer that remembers every report for assertions."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def debug(self, event: str, **fields: Any) -> None:
        self.records.append(("debug", event, fields))
        super().debug(event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self.records.append(("info", event, fields))
        super().info(event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.records.append(("warning", event, fields))
        super().warning(event, **fields)

    def error(self, event: str, exc: BaseException | None = None, **fields: Any) -> None:
        self.records.append(("error", event, fields))
        super().error(event, exc=exc, **fields)

    def events(self, level: str | None = None) -> list[str]:
        return [name for lvl, name, _ in self.records if level is None or lvl == level]


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture(autouse=True)
def clean_tables() -> Iterator[None]:
    yield
    with TestingSessionLocal.begin() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(delete(table))


@pytest.fixture
def db_session() -> Iterator[Session]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def services(observer: RecordingObserver) -> Iterator[ReconciliationServices]:
    built = build_services(get_settings(), TestingSessionLocal, observer, sleep=no_sleep)
    previous = getattr(app.state, "services", None)
    app.state.services = built
    yield built
    app.state.services = previous


@pytest.fixture(autouse=True)
def override_db_dependency() -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def client(services: ReconciliationServices) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_api_key(db_session: Session) -> Callable[..., str]:
    """Create a user with ``roles`` and return a bearer token for it."""

    def _factory(*roles: AppRole, is_active: bool = True, expires_at=None) -> str:
        user_id = str(uuid4())
        token = f"gp_test.{uuid4().hex}"
        db_session.add(
            ApiKey(
                name=f"key-{uuid4().hex[:8]}",
                prefix="gp_test",
                key_hash=hash_key(token),
                user_id=user_id,
                is_active=is_active,
                expires_at=expires_at,
            )
        )
        for role in roles:
            db_session.add(UserRole(user_id=user_id, role=role))
        db_session.commit()
        return token

    return _factory


@pytest.fixture
def admin_headers(make_api_key: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_api_key(AppRole.company_admin)}"}


@pytest.fixture
def client_headers(make_api_key: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_api_key(AppRole.client)}"}


@pytest.fixture
def make_payment(db_session: Session) -> Callable[..., Payment]:
    """Create a booking and a pending payment keyed by ``preauth_id``."""

    def _factory(preauth_id: str, *, charge_id: str | None = None, amount: int = 150_000) -> Payment:
        booking = Booking(id=str(uuid4()), client_id=str(uuid4()), status="requested", currency="MXN")
        payment = Payment(
            booking_id=booking.id,
            preauth_id=preauth_id,
            charge_id=charge_id,
            status=PaymentStatus.PENDING,
            amount_preauth=amount,
        )
        db_session.add_all([booking, payment])
        db_session.commit()
        db_session.expunge_all()
        return payment

    return _factory


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    return TestingSessionLocal


@pytest.fixture
def instant_sleep() -> Callable[[float], Any]:
    return no_sleep
