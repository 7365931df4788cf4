"""Tests for the HTTP request executor against a local server."""

import socket

import pytest
import requests

from maxrps.client import HttpTarget, create_session, new_body_buffer, send_request
from maxrps.config import ClientConfig


def _unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestCreateSession:
    def test_pool_sized_to_level(self):
        session = create_session(25)
        adapter = session.get_adapter("http://example.com")
        assert adapter._pool_maxsize == 25
        session.close()

    def test_defaults_disable_compression(self):
        session = create_session(1)
        assert session.headers["Accept-Encoding"] == "identity"
        assert "Connection" not in session.headers or session.headers["Connection"] != "close"
        assert session.verify is True
        session.close()

    def test_options(self):
        session = create_session(1, ClientConfig(insecure=True, keep_alive=False, compress=True))
        assert session.verify is False
        assert session.headers["Connection"] == "close"
        assert session.headers["Accept-Encoding"] != "identity"
        session.close()


class TestSendRequest:
    def test_drains_body(self, server_url, http_server):
        session = create_session(1)
        send_request(session, server_url + "/", None, new_body_buffer())
        send_request(session, server_url + "/", None, new_body_buffer())
        assert len(http_server.seen_hosts) == 2
        session.close()

    def test_host_override(self, server_url, http_server):
        session = create_session(1)
        send_request(session, server_url + "/", "svc.example", new_body_buffer())
        assert http_server.seen_hosts == ["svc.example"]
        session.close()

    def test_error_status_counts_as_completed(self, server_url):
        session = create_session(1)
        send_request(session, server_url + "/status/500", None, new_body_buffer())
        session.close()

    def test_transport_error_raises(self):
        session = create_session(1)
        with pytest.raises(requests.RequestException):
            send_request(
                session,
                f"http://127.0.0.1:{_unused_port()}/",
                None,
                new_body_buffer(),
                timeout=(1.0, 1.0),
            )
        session.close()

    def test_truncated_body_raises_connection_error(self, truncating_url):
        session = create_session(1)
        with pytest.raises(requests.ConnectionError):
            send_request(session, truncating_url, None, new_body_buffer(), timeout=(1.0, 1.0))
        session.close()


class TestHttpTarget:
    def test_open_yields_sender(self, server_url, http_server):
        target = HttpTarget(server_url + "/", host="api.internal")
        buffer = new_body_buffer()
        with target.open(4) as sender:
            sender(buffer)
            sender(buffer)
        assert http_server.seen_hosts == ["api.internal", "api.internal"]
        assert target.url == server_url + "/"
