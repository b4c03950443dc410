import threading
from urllib.parse import urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict


class FakeBody:
    """Raw body that remembers whether anything read it."""
    def __init__(self, data: bytes):
        self.data = data
        self.read_called = False
        self.closed = False

    def read(self, amt=None, decode_content=True):
        self.read_called = True
        data, self.data = self.data, b""
        return data

    def stream(self, chunk_size=1024, decode_content=True):
        self.read_called = True
        data, self.data = self.data, b""
        if data:
            yield data

    def close(self):
        self.closed = True

    def release_conn(self):
        pass


class FakeAdapter(BaseAdapter):
    """Transport adapter answering every request locally and keeping what it saw."""
    def __init__(self, status_for=None, error_for=None, body=b"ok"):
        super().__init__()
        self.status_for = status_for or {}
        self.error_for = error_for or set()
        self.body = body
        self.sent = []
        self.bodies = []
        self.lock = threading.Lock()

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        path = urlsplit(request.url).path or "/"
        with self.lock:
            self.sent.append(request)
        if path in self.error_for:
            raise requests.exceptions.ConnectionError(f"refused: {request.url}")
        resp = requests.Response()
        resp.status_code = self.status_for.get(path, 200)
        resp.headers = CaseInsensitiveDict({"Content-Type": "text/plain"})
        resp.raw = FakeBody(self.body)
        with self.lock:
            self.bodies.append(resp.raw)
        resp.url = request.url
        resp.request = request
        resp.reason = "OK"
        return resp

    def close(self):
        pass


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def session_factory(adapter):
    def make():
        s = requests.Session()
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        return s
    return make
