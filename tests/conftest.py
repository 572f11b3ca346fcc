import os
import tempfile

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# FORCE TESTING SETTINGS
# Must happen BEFORE importing app.* so Settings() and the engine pick
# them up.
# ------------------------------------------------------------------
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"crm_test_{os.getpid()}.db")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SUPER_ADMIN_USERNAME"] = "superadmin"
os.environ["SUPER_ADMIN_EMAIL"] = "superadmin@example.com"
os.environ["SUPER_ADMIN_PASSWORD"] = "SuperSecret123"
os.environ["SUPER_ADMIN_NAME"] = "Super Admin"
os.environ["SMTP_HOST"] = ""
os.environ["ELASTICSEARCH_URL"] = ""
os.environ["REDIS_URL"] = ""

from sqlmodel import SQLModel  # noqa: E402

from app.core.database import AsyncSessionLocal, engine, init_db  # noqa: E402
from app.core.seeding_logic import seed_all  # noqa: E402
from app.main import app  # noqa: E402

ADMIN_CREDENTIALS = {"username": "superadmin", "password": "SuperSecret123"}
DEFAULT_PASSWORD = "Password123"


@pytest_asyncio.fixture
async def reset_db():
    """Fresh schema per test, seeded with the activity registry and bootstrap admin."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await init_db()

    async with AsyncSessionLocal() as session:
        await seed_all(session)

    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(reset_db):
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client(reset_db):
    """
    httpx >= 0.27: ASGITransport instead of app=...
    Startup events do not run here; reset_db does the seeding instead.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_headers(client):
    res = await client.post("/api/auth/admin/login", json=ADMIN_CREDENTIALS)
    assert res.status_code == 200, res.text
    token = res.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def activity_ids(client, admin_headers):
    """Activity name -> id, from the seeded registry."""
    res = await client.get("/api/activity/all", headers=admin_headers)
    assert res.status_code == 200, res.text
    return {a["name"]: a["id"] for a in res.json()["data"]}


@pytest.fixture
def make_department(client, admin_headers):
    async def _make(name="Sales", subroles=("Rep", "Manager"), is_sales_team=False):
        res = await client.post(
            "/api/departments/",
            json={"department_name": name, "subroles": list(subroles), "is_sales_team": is_sales_team},
            headers=admin_headers,
        )
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _make


@pytest.fixture
def make_user(client, admin_headers):
    """Create a regular user through the API and log them in. Returns (user, headers)."""
    counter = {"n": 0}

    async def _make(department_id, subrole, is_special=False, username=None):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        res = await client.post(
            "/api/users/",
            json={
                "firstname": "Test",
                "lastname": f"User{counter['n']}",
                "username": username,
                "email": f"{username}@example.com",
                "password": DEFAULT_PASSWORD,
                "department_id": department_id,
                "subrole": subrole,
                "is_special": is_special,
            },
            headers=admin_headers,
        )
        assert res.status_code == 201, res.text
        user = res.json()["data"]

        login = await client.post(
            "/api/auth/user/login", json={"username": username, "password": DEFAULT_PASSWORD}
        )
        assert login.status_code == 200, login.text
        headers = {"Authorization": f"Bearer {login.json()['data']['access_token']}"}
        return user, headers

    return _make
