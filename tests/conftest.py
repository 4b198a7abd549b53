import base64
import os
import tempfile
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Use in-memory SQLite for testing; set before the app module is imported
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ["POSTGRES_URL"] = TEST_DATABASE_URL
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["AUTO_SEED"] = "false"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="mtq-storage-")
os.environ["STORAGE_PUBLIC_BASE_URL"] = "http://testserver/storage"
os.environ["EMAIL_BATCH_DELAY_SECONDS"] = "0"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["SMTP_HOST"] = "smtp.test.local"

ADMIN_EMAIL = "admin@test.local"
ADMIN_PASSWORD = "admin-pass"
PUBLIC_BASE_URL = "http://testserver/storage"

# 1x1 transparent PNG
SIGNATURE_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
SIGNATURE_DATA_URL = "data:image/png;base64," + base64.b64encode(SIGNATURE_PNG).decode()


class RecordingMailer:
    """Stands in for SmtpMailer; records messages instead of talking SMTP."""

    def __init__(self) -> None:
        self.sent: List = []
        self.accept = True

    async def send(self, email) -> bool:
        self.sent.append(email)
        return self.accept


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test with every table created."""
    from talent_quest.db.base import Base
    import talent_quest.db.models  # noqa: F401

    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def db(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory; open short-lived sessions with ``async with db() as s``."""
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def storage(tmp_path):
    from talent_quest.services.storage import LocalBucketStorage

    return LocalBucketStorage(tmp_path / "buckets", PUBLIC_BASE_URL)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def settings():
    from talent_quest.core.settings import get_app_settings

    return get_app_settings()


@pytest_asyncio.fixture(name="client")
async def client_fixture(db, storage, mailer) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app with database, storage and mail overridden."""
    from talent_quest.api.main import app
    from talent_quest.core.deps import get_mailer, get_storage
    from talent_quest.db.session import get_async_session

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        async with db() as session:
            yield session

    app.dependency_overrides[get_async_session] = get_session_override
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_mailer] = lambda: mailer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


async def create_user(db, email: str, password: str, role: str = "admin"):
    from talent_quest.core.security import get_password_hash
    from talent_quest.repositories.security import SecurityRepository

    async with db() as session:
        return await SecurityRepository(session).create_user(
            email=email, password_hash=get_password_hash(password), full_name="Test User", role=role
        )


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, db) -> AsyncClient:
    """Client signed in as an admin (session cookie set)."""
    await create_user(db, ADMIN_EMAIL, ADMIN_PASSWORD, role="admin")
    response = await client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


def performer_fields(index: int, **overrides) -> dict:
    """Form fields of one valid performer block."""
    fields = {
        "fullName": f"Performer {index} Dela Cruz",
        "age": "20",
        "gender": "Female",
        "school": "Maritime Academy",
        "courseYear": "BSMT 2",
        "contactNumber": "+63 912 345 6789",
        "email": f"performer{index}@example.com",
        "healthDeclaration": "true",
        "informationConsent": "true",
        "rulesAgreement": "true",
        "publicityConsent": "true",
        "studentSignature": SIGNATURE_DATA_URL,
        "parentGuardianSignature": "",
        "signatureDate": "2025-01-15",
        "schoolOfficialName": "Dr. Santos",
        "schoolOfficialPosition": "Dean",
    }
    fields.update(overrides)
    return {f"performers[{index}].{key}": value for key, value in fields.items()}


def contestant_form(count: int = 1, title: str = "Ocean Song", **entry) -> dict:
    data = {
        "performanceType": "Singing",
        "performanceTitle": title,
        "performanceDuration": "4 minutes",
        "numberOfPerformers": str(count),
    }
    data.update(entry)
    for i in range(count):
        data.update(performer_fields(i))
    return data


async def register_contestant(client: AsyncClient, count: int = 1, title: str = "Ocean Song", files=None) -> dict:
    response = await client.post("/api/v1/contestant", data=contestant_form(count, title), files=files)
    assert response.status_code == 200, response.text
    return response.json()["data"]


async def register_guest(client: AsyncClient, issue_pass: bool = True, **overrides) -> dict:
    payload = {
        "fullName": "Maria Guest",
        "age": 35,
        "gender": "Female",
        "contactNumber": "09123456789",
        "email": "maria.guest@example.com",
        "organization": "Port Authority",
        "address": "Manila",
        "issuePass": issue_pass,
    }
    payload.update(overrides)
    response = await client.post("/api/v1/guests", json=payload)
    assert response.status_code == 201, response.text
    return response.json()
