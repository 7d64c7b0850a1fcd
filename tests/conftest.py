"""
Pytest configuration and fixtures for winget-publisher tests.
"""

import os
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables
os.environ.setdefault("GITHUB_TOKEN", "test-github-token")

from winget_publisher.core.config import load_config  # noqa: E402

INSTALLER_BYTES = b"fake msi payload for MyOrg.MyApp"

# /slow sends SLOW_PIECES pieces of 10 bytes, one every SLOW_INTERVAL seconds
SLOW_PIECES = 12
SLOW_INTERVAL = 0.3


@pytest.fixture
def raw_config():
    """A complete raw plugin configuration, as the host would pass it."""
    return {
        "package_id": "MyOrg.MyApp",
        "github_token": "ghp_test_token",
        "installers": [
            {
                "url": "https://example.com/releases/{{.Version}}/app-x64.msi",
                "architecture": "x64",
                "type": "msi",
                "scope": "machine",
                "switches": {"Silent": "/quiet", "SilentWithProgress": "/passive"},
                "product_code": "{12345678-1234-1234-1234-123456789012}",
            },
        ],
        "metadata": {
            "publisher": "My Organization",
            "publisher_url": "https://example.com",
            "name": "My App",
            "short_description": "A useful application",
            "license": "MIT",
            "license_url": "https://example.com/license",
            "tags": ["cli", "tools"],
            "moniker": "myapp",
        },
        "locales": [
            {"locale": "de-DE", "description": "Eine nuetzliche Anwendung"},
            {"locale": "en-US", "description": "A longer description of My App."},
        ],
        "pull_request": {"fork_owner": "", "base_branch": "master"},
    }


@pytest.fixture
def config(raw_config):
    """Parsed PublisherConfig for the raw configuration."""
    return load_config(raw_config)


def make_response(status_code: int = 200, json_data=None, text: str = ""):
    """A requests.Response stand-in."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("no JSON body")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def mock_session():
    """requests.Session double; set .request.side_effect per test."""
    return MagicMock()


class _InstallerHandler(BaseHTTPRequestHandler):
    """
    Serves:
    - /file: INSTALLER_BYTES
    - /redirect/<n>: n chained redirects ending at /file
    - /slow: a body trickled out over SLOW_PIECES * SLOW_INTERVAL seconds
    - anything else: 404
    """

    seen_user_agents: list = []

    def do_GET(self):
        self.seen_user_agents.append(self.headers.get("User-Agent", ""))
        if self.path == "/file":
            self.send_response(200)
            self.send_header("Content-Type", "application/octet-stream")
            self.send_header("Content-Length", str(len(INSTALLER_BYTES)))
            self.end_headers()
            self.wfile.write(INSTALLER_BYTES)
            return

        if self.path == "/slow":
            self.send_response(200)
            self.send_header("Content-Type", "application/octet-stream")
            self.send_header("Content-Length", str(SLOW_PIECES * 10))
            self.end_headers()
            try:
                for _ in range(SLOW_PIECES):
                    self.wfile.write(b"x" * 10)
                    self.wfile.flush()
                    time.sleep(SLOW_INTERVAL)
            except (BrokenPipeError, ConnectionResetError):
                pass
            return

        if self.path.startswith("/redirect/"):
            remaining = int(self.path.rsplit("/", 1)[1])
            target = "/file" if remaining <= 1 else f"/redirect/{remaining - 1}"
            self.send_response(302)
            self.send_header("Location", target)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return

        self.send_response(404)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format, *args):
        pass


@pytest.fixture
def installer_server():
    """Local HTTP server for installer downloads. Yields its base URL."""
    _InstallerHandler.seen_user_agents.clear()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _InstallerHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"

    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def seen_user_agents():
    return _InstallerHandler.seen_user_agents


@pytest.fixture
def local_session():
    """A real requests.Session that ignores proxy environment variables."""
    import requests

    session = requests.Session()
    session.trust_env = False
    yield session
    session.close()


@pytest.fixture
def installer_bytes():
    """Bytes served at /file by installer_server."""
    return INSTALLER_BYTES
