"""
Pytest configuration and shared fixtures for graphdrive tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

import copy
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import json
from pathlib import Path
import threading
from typing import Any

import pytest
import yaml

from graphdrive.config import DEFAULT_CONFIG
from graphdrive.logging import SilentLogger, set_global_logger

BASE_URL = "https://graph.example.com/v1.0"
UPLOAD_URL = "https://upload.example.com/session/abc123"
ACCESS_TOKEN = "test-access-token"


@pytest.fixture(autouse=True)
def silent_global_logger():
    """Reset the global logger so CLI tests don't leak verbose loggers."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def access_token() -> str:
    return ACCESS_TOKEN


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def upload_url() -> str:
    return UPLOAD_URL


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """
    Provide a complete, validated-shape configuration.

    Mirrors what load_config() returns with a token set and the test base URL.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["graph"]["base_url"] = BASE_URL
    config["auth"]["access_token"] = ACCESS_TOKEN
    return config


@pytest.fixture
def make_payload():
    """Factory for deterministic byte payloads of a given size."""

    def _make(size: int) -> bytes:
        return bytes(i % 251 for i in range(size))

    return _make


@pytest.fixture
def make_item():
    """Factory for delta ``value`` elements."""

    def _make(item_id: str, **extra: Any) -> dict[str, Any]:
        item: dict[str, Any] = {
            "id": item_id,
            "name": f"{item_id}.txt",
            "lastModifiedDateTime": "2018-04-19T16:23:12Z",
        }
        item.update(extra)
        return item

    return _make


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture to create YAML files in temp directory.

    Usage:
        def test_something(create_yaml_file):
            path = create_yaml_file("config.yaml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.dump(data), encoding="utf-8")
        return path

    return _create


@pytest.fixture
def scripted_server(monkeypatch):
    """
    Start a local HTTP server that answers requests from a script.

    Unlike requests_mock, this goes through the real HTTPAdapter, so the
    session's urllib3 retry policy is exercised.

    Usage:
        def test_something(scripted_server):
            server = scripted_server([(503, {}, {"Retry-After": "1"}), (200, {"ok": True}, {})])
            requests.get(server.url)
            assert server.hits == 1
    """
    for var in ("HTTP_PROXY", "http_proxy", "HTTPS_PROXY", "https_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(var, raising=False)

    servers: list[ThreadingHTTPServer] = []

    def _start(script: list[tuple[int, dict[str, Any], dict[str, str]]]):
        responses = list(script)

        class _Handler(BaseHTTPRequestHandler):
            def _reply(self) -> None:
                self.server.hits += 1
                self.rfile.read(int(self.headers.get("Content-Length") or 0))
                status, payload, headers = responses.pop(0)
                body = json.dumps(payload).encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                for key, value in headers.items():
                    self.send_header(key, value)
                self.end_headers()
                self.wfile.write(body)

            do_GET = _reply
            do_PUT = _reply
            do_POST = _reply

            def log_message(self, format, *args):
                pass

        server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
        server.hits = 0
        server.url = f"http://127.0.0.1:{server.server_address[1]}"
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server

    yield _start

    for server in servers:
        server.shutdown()
        server.server_close()
