import io
import os
import tempfile

# Keep log files out of the working tree; read when cdn_gateway.config loads
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="cdn_gateway_logs_"))

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from cdn_gateway.auth.passwords import get_password_hash
from cdn_gateway.config import Settings
from cdn_gateway.main import create_app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse-battery-staple"
ADMIN_PASSWORD_HASH = get_password_hash(ADMIN_PASSWORD)


def make_image_bytes(
    size: tuple[int, int] = (400, 200), fmt: str = "PNG", mode: str = "RGB"
) -> bytes:
    """Encode a solid color test image."""
    color = (200, 30, 30, 255) if mode == "RGBA" else (200, 30, 30)
    buffer = io.BytesIO()
    Image.new(mode, size, color[: len(mode)]).save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory(prefix="cdn_gateway_test_") as temp_dir:
        yield temp_dir


@pytest.fixture
def make_settings(temp_dir):
    """Factory for settings rooted in a temporary directory."""

    def _make(**overrides) -> Settings:
        values = {
            "base_url": "https://cdn.example.com/",
            "admin": {"username": ADMIN_USERNAME, "password_hash": ADMIN_PASSWORD_HASH},
            "storage": {"type": "local", "root": os.path.join(temp_dir, "storage")},
            "logs_dir": os.path.join(temp_dir, "logs"),
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def make_client(make_settings):
    """Factory for started test clients; secure cookies need an https base."""
    clients = []

    def _make(**overrides) -> TestClient:
        app = create_app(make_settings(**overrides))
        client = TestClient(app, base_url="https://testserver")
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


def login(client: TestClient, username=ADMIN_USERNAME, password=ADMIN_PASSWORD):
    return client.post(
        "/api/auth/login", json={"username": username, "password": password}
    )


@pytest.fixture
def auth_client(client):
    response = login(client)
    assert response.status_code == 200
    return client
