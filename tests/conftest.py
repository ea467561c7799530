import httpx
import pytest

from backoffice.api import ApiClient, BackOfficeAPI
from backoffice.models import AuthUser
from backoffice.session import FileSessionStore, SessionProvider

from fake_api import FakeStore, create_app

BASE_URL = "http://testserver/api"


@pytest.fixture
def session_file(tmp_path):
    return tmp_path / "session.json"


@pytest.fixture
def session(session_file):
    return SessionProvider(FileSessionStore(session_file))


@pytest.fixture
def logged_in(session):
    session.login(AuthUser(username="manager", role="MANAGER", token="tok-123"))
    return session


@pytest.fixture
def mock_api(logged_in):
    """Build a ``BackOfficeAPI`` whose requests are answered by ``handler``."""

    def build(handler):
        transport = httpx.MockTransport(handler)
        return BackOfficeAPI(ApiClient(BASE_URL, logged_in, transport=transport))

    return build


@pytest.fixture
def store():
    return FakeStore.seeded()


@pytest.fixture
def fake_api(store, session):
    transport = httpx.ASGITransport(app=create_app(store))
    return BackOfficeAPI(ApiClient(BASE_URL, session, transport=transport))
