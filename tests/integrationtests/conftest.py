"""
Pytest fixtures for integration tests.
"""
import socket

import pytest

from abx_client import ClientConfig
from abx_mock_server import MockABXServer


def find_free_port():
    """Find a free port to use for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def start_server():
    """Start a MockABXServer; all servers are stopped after the test."""
    servers = []

    def _start(records, **kwargs):
        server = MockABXServer(records, **kwargs)
        assert server.start()
        servers.append(server)
        return server

    yield _start

    for server in servers:
        server.stop()


@pytest.fixture
def fast_config():
    """ClientConfig with short timeouts and no process exit."""
    def _config(port, **overrides):
        settings = dict(
            host='127.0.0.1',
            port=port,
            read_timeout=0.3,
            connect_timeout=0.5,
            max_retries=2,
            retry_delay=0.05,
            exit_on_exhaustion=False,
        )
        settings.update(overrides)
        return ClientConfig(**settings)

    return _config
