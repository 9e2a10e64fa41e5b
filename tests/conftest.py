import pytest
import os
import socket
import threading
from email.utils import formatdate
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from requests.structures import CaseInsensitiveDict

from ec2_metadatafs.client.exceptions import TransportError
from ec2_metadatafs.client.types import MetadataResponse

def pytest_configure(config):
    """Configure test environment."""
    os.environ.setdefault("EC2_METADATAFS_LOG_LEVEL", "DEBUG")
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

def http_date(timestamp):
    return formatdate(timestamp, usegmt=True)

def make_response(status=200, body=b"", last_modified=None, headers=None):
    """Build a MetadataResponse the way the HTTP clients do."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    all_headers = CaseInsensitiveDict({"Content-Length": str(len(body))})
    if last_modified is not None:
        all_headers["Last-Modified"] = last_modified
    all_headers.update(headers or {})
    return MetadataResponse(status_code=status, headers=all_headers, body=body)

class FakeMetadataClient:
    """In-memory metadata client: unknown paths answer 404."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def _answer(self, method, path):
        self.calls.append((method, path))
        answer = self.responses.get(path)
        if answer is None:
            return make_response(404, b"")
        if isinstance(answer, Exception):
            raise answer
        if method == "head":
            return MetadataResponse(answer.status_code, answer.headers, b"")
        return answer

    def head(self, path):
        return self._answer("head", path)

    def get(self, path):
        return self._answer("get", path)

@pytest.fixture
def fake_client():
    return FakeMetadataClient()

@pytest.fixture
def transport_error():
    return TransportError("connection refused")

class MetadataServer:
    """
    Minimal stand-in for the metadata service.

    routes maps "/path" to (status, body). Every request is recorded as
    (method, path, headers).
    """

    def __init__(self):
        self.routes = {}
        self.requests = []
        self.token_status = 200
        self.token_value = "test-token"
        self.require_token = False
        self.lock = threading.Lock()

        server = self

        class Handler(BaseHTTPRequestHandler):
            def log_message(self, format, *args):
                pass

            def _record(self):
                with server.lock:
                    server.requests.append((self.command, self.path, dict(self.headers)))

            def _send(self, status, body):
                self.send_response(status)
                self.send_header("Content-Length", str(len(body)))
                self.send_header("Last-Modified", "Mon, 02 Jan 2006 15:04:05 GMT")
                self.end_headers()
                if self.command != "HEAD":
                    self.wfile.write(body)

            def _serve(self):
                self._record()
                if server.require_token and self.headers.get("X-aws-ec2-metadata-token") != server.token_value:
                    self._send(401, b"")
                    return
                status, body = server.routes.get(self.path, (404, b""))
                self._send(status, body)

            def do_GET(self):
                self._serve()

            def do_HEAD(self):
                self._serve()

            def do_PUT(self):
                self._record()
                if self.path.endswith("/api/token"):
                    self._send(server.token_status, server.token_value.encode())
                else:
                    self._send(405, b"")

        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.endpoint = f"http://127.0.0.1:{self.httpd.server_address[1]}/latest/"
        self.thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    def serve(self, path, body, status=200):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes["/latest/" + path.lstrip("/")] = (status, body)

    def methods(self):
        return [method for method, _, _ in self.requests]

@pytest.fixture
def metadata_server():
    server = MetadataServer()
    server.thread.start()
    yield server
    server.httpd.shutdown()
    server.httpd.server_close()

@pytest.fixture
def unused_endpoint():
    """Endpoint on a local port nothing listens on."""
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}/latest/"
