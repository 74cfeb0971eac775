"""
Shared test fixtures for the waitlist API.

Provides an in-memory SQLite database, test settings with every external
service disabled, and an httpx AsyncClient bound to the FastAPI app with
``get_db`` / ``get_settings`` overridden.
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings as app_settings, get_settings
from app.core.database import Base, get_db
from app.models import WaitlistEntry  # noqa: F401
from main import app

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_settings(tmp_path):
    return app_settings.model_copy(update={
        "WAITLIST_STORAGE": "database",
        "WAITLIST_FILE": str(tmp_path / "whitelist.json"),
        "BREVO_API_KEY": "",
        "RESEND_API_KEY": "",
        "EMAIL_PROVIDER": "brevo",
        "TWILIO_SID": None,
        "TWILIO_AUTH": None,
        "TWILIO_WHATSAPP_FROM": None,
    })


@pytest_asyncio.fixture
async def client(db_session, test_settings):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_settings] = lambda: test_settings
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
