import os

# Minimal values for tests
os.environ.setdefault("CSRF_SECRET", "supersecretkey123456789012345678901234567890")
os.environ.setdefault("ENVIRONMENT", "test")

from httpx import ASGITransport
from httpx import AsyncClient
import pytest

from formguard.example import app as guestbook
from formguard.identity import ClientRequest
from formguard.protection import CsrfProtection

SECRET = "supersecretkey123456789012345678901234567890"


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def csrf(clock):
    return CsrfProtection(secret=SECRET, clock=clock)


# ---- Request builder mirroring a browser form post ----
@pytest.fixture
def make_request():
    def _make(method="POST", client_host="127.0.0.1", user_agent="test-agent", form=None):
        headers = {"User-Agent": user_agent} if user_agent is not None else {}
        return ClientRequest(
            method=method,
            client_host=client_host,
            headers=headers,
            form=form if form is not None else {},
        )

    return _make


@pytest.fixture(autouse=True)
def empty_guest_book():
    guestbook.guest_book.clear()
    yield
    guestbook.guest_book.clear()


# ---- HTTP client bound to the ASGI app ----
@pytest.fixture
async def client():
    transport = ASGITransport(app=guestbook.app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


# ---- BeautifulSoup helper ----
@pytest.fixture
def soup():
    from bs4 import BeautifulSoup

    return lambda html: BeautifulSoup(html, "html.parser")
