import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.database import Database
from storefront.main import create_app
from storefront.tokens import TokenService
from storefront.users import UserDirectory

TOKEN_SECRET = "test-token-secret"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        token_secret=TOKEN_SECRET,
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        database_url=f"sqlite:///{tmp_path / 'storefront_test.db'}",
        log_level="WARNING",
    )


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'unit_test.db'}")
    db.open()
    yield db
    db.close()


@pytest.fixture
def session(database):
    with database.scope() as s:
        yield s


@pytest.fixture
def tokens():
    return TokenService(TOKEN_SECRET)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def bearer(client, email, **profile):
    """Log in through /session and return the Authorization header."""
    response = client.post("/session", json={"email": email, **profile})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


def make_admin(client, email):
    response = client.post("/users", json={"email": email, "name": "Admin"})
    with client.app.state.database.scope() as s:
        UserDirectory(s).promote(response.json()["insertedId"])
    return bearer(client, email)


@pytest.fixture
def user_headers(client):
    client.post("/users", json={"email": "a@example.com", "name": "Alice"})
    return bearer(client, "a@example.com", name="Alice")


@pytest.fixture
def admin_headers(client):
    return make_admin(client, "root@example.com")


@pytest.fixture
def login(client):
    def _login(email, **profile):
        return bearer(client, email, **profile)

    return _login
