import contextlib
import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

os.environ.setdefault("MPLBACKEND", "Agg")

BODY_SIZE = 120_000


class _RecordingHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self):
        self.server.seen_hosts.append(self.headers.get("Host"))
        status = 500 if self.path.startswith("/status/500") else 200
        body = b"x" * BODY_SIZE
        self.send_response(status)
        self.send_header("Content-Type", "application/octet-stream")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


class _TruncatingHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Length", str(BODY_SIZE))
        self.end_headers()
        self.wfile.write(b"x" * 10)
        self.wfile.flush()
        self.close_connection = True

    def log_message(self, format, *args):
        pass


@contextlib.contextmanager
def _serve(handler):
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    server.daemon_threads = True
    server.seen_hosts = []
    thread = threading.Thread(target=server.serve_forever, name="test-http-server", daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5.0)


@pytest.fixture
def http_server():
    """Threaded HTTP server on localhost that records the Host header of each request."""
    with _serve(_RecordingHandler) as server:
        yield server


@pytest.fixture
def truncating_url():
    """Server that announces a full body but closes after ten bytes."""
    with _serve(_TruncatingHandler) as server:
        host, port = server.server_address[:2]
        yield f"http://{host}:{port}/"


@pytest.fixture
def server_url(http_server):
    host, port = http_server.server_address[:2]
    return f"http://{host}:{port}"
