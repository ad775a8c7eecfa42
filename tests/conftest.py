"""
Pytest configuration and shared fixtures for articlepay tests.
"""

import hashlib
import os
from urllib.parse import urlsplit

import pytest

# Set test environment before importing app
os.environ["FLASK_ENV"] = "testing"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["PAYMENT_CONFIRMER"] = "trust"
os.environ["RPC_HOST"] = "localhost"
os.environ["RPC_PORT"] = "8332"
os.environ["RPC_USER"] = "test_user"
os.environ["RPC_PASSWORD"] = "test_password"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_HOST"] = ""
os.environ.pop("REDIS_URL", None)
os.environ["RATE_LIMIT_ENABLED"] = "false"

# Import app after setting environment
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import requests
from coincurve import PrivateKey

AUTHOR_ADDRESS = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
OTHER_AUTHOR_ADDRESS = "1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN2"

TEST_ARTICLES = [
    {
        "id": "a1",
        "title": "Test Article",
        "author": "Test Author",
        "author_payment_address": AUTHOR_ADDRESS,
        "subject": "Testing",
        "word_count": 120,
        "price": 100,
        "preview": "A short preview...",
        "full_content": "# Heading\n\nThe full body of the article.\n\n- one\n- two",
    },
    {
        "id": "a2",
        "title": "Cheap Article",
        "author": "Other Author",
        "author_payment_address": OTHER_AUTHOR_ADDRESS,
        "subject": "Testing",
        "word_count": 60,
        "price": 50,
        "preview": "Another preview...",
        "full_content": "Second article body.",
    },
]


class FlaskResponseAdapter:
    """requests.Response look-alike over a Flask test response."""

    def __init__(self, resp):
        self._resp = resp
        self.status_code = resp.status_code
        self.text = resp.get_data(as_text=True)

    def json(self):
        data = self._resp.get_json(silent=True)
        if data is None:
            raise ValueError("Response body is not JSON")
        return data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FlaskHTTP:
    """Routes requests-style calls into a Flask test client."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.calls = []

    def request(self, method, url, json=None, headers=None, timeout=None, **kwargs):
        parts = urlsplit(url)
        path = parts.path + (f"?{parts.query}" if parts.query else "")
        self.calls.append((method.upper(), path))
        resp = self.test_client.open(path, method=method.upper(), json=json, headers=headers or {})
        return FlaskResponseAdapter(resp)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


@pytest.fixture
def db_url(tmp_path):
    """File-backed SQLite so worker threads share one database."""
    return f"sqlite:///{tmp_path / 'articlepay.db'}"


@pytest.fixture
def make_app(db_url):
    """Build apps against the test database; connections are closed afterwards."""
    from articlepay.database import close_all
    from articlepay.factory import create_app

    def _make(config=None, confirmer=None):
        close_all()
        overrides = {"DATABASE_URL": db_url}
        overrides.update(config or {})
        flask_app = create_app(overrides, confirmer=confirmer)
        flask_app.config.update({"TESTING": True})
        return flask_app

    yield _make
    close_all()


@pytest.fixture
def app(make_app):
    """Create and configure a test Flask application instance."""
    flask_app = make_app()
    with flask_app.app_context():
        yield flask_app


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture
def http(client):
    return FlaskHTTP(client)


@pytest.fixture
def articles(app):
    """Seed the test catalogue."""
    from articlepay.seed import seed_articles

    seed_articles(TEST_ARTICLES)
    return {a["id"]: a for a in TEST_ARTICLES}


@pytest.fixture
def signing_key():
    return PrivateKey(bytes.fromhex("11" * 32))


@pytest.fixture
def identity_key(signing_key):
    return signing_key.public_key.format(compressed=True).hex()


@pytest.fixture
def signed_headers(client, signing_key, identity_key):
    """Run the challenge handshake and return headers for one signed request."""

    def _sign(method, path, key=None, pubkey=None):
        key = key or signing_key
        pubkey = pubkey or key.public_key.format(compressed=True).hex()
        nonce = client.post("/auth/challenge").get_json()["nonce"]
        digest = hashlib.sha256(f"{nonce}:{method.upper()}:{path}".encode("utf-8")).digest()
        return {
            "X-Identity-Key": pubkey,
            "X-Auth-Nonce": nonce,
            "X-Auth-Signature": key.sign(digest, hasher=None).hex(),
        }

    return _sign


@pytest.fixture
def record_purchase(app):
    """Insert a purchase row directly."""
    from articlepay.database import session_scope
    from articlepay.models import Purchase

    def _record(txid, article_id, buyer, satoshis, verified=True):
        with session_scope() as session:
            session.add(
                Purchase(
                    txid=txid,
                    article_id=article_id,
                    wallet_address=buyer,
                    satoshis_paid=satoshis,
                    verified=verified,
                )
            )

    return _record


@pytest.fixture(autouse=True)
def reset_state():
    """Reset in-memory challenges and the installed signing agent around each test."""
    from articlepay.client.auth_fetch import install_signing_agent
    from articlepay.storage import clear_challenges

    clear_challenges()
    install_signing_agent(None)

    yield

    clear_challenges()
    install_signing_agent(None)


# Pytest configuration hooks
def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "bitcoin: script and key handling")
    config.addinivalue_line("markers", "slow: tests that take a long time to run")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add 'unit' marker to tests in unit/ directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Add 'integration' marker to tests in integration/ directory
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
