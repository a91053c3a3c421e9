from urllib.error import URLError
from io import BytesIO
import json

import pytest

from mcmanager.http import HttpResponse, HttpError
from mcmanager.task import Watcher


def pytest_addoption(parser):
    parser.addoption("--runslow", action="store_true", default=False, help="run slow tests")

def pytest_configure(config):
    config.addinivalue_line("markers", "slow: mark test as slow to run")

def pytest_collection_modifyitems(config, items):

    if config.getoption("--runslow"):
        return
    
    skip_slow = pytest.mark.skip(reason="need --runslow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class FakeHttp:
    """Offline replacement of the HTTP functions, serving JSON documents and raw files
    from dictionaries keyed by URL. Unknown URLs fail like an unreachable host.
    """

    def __init__(self) -> None:
        self.routes = {}
        self.files = {}
        self.calls = []

    def route(self, url: str, payload, status: int = 200) -> None:
        self.routes[url] = (status, payload)

    def request(self, method: str, url: str, **kwargs) -> HttpResponse:
        self.calls.append((method, url, kwargs))
        route = self.routes.get(url)
        if route is None:
            raise HttpError(HttpResponse(None), method, url, URLError("unreachable"))
        status, payload = route
        res = HttpResponse(None)
        res.status = status
        res.data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        if status >= 300:
            raise HttpError(res, method, url, URLError(f"status {status}"))
        return res

    def open(self, url: str, *, accept=None) -> BytesIO:
        self.calls.append(("GET", url, {}))
        data = self.files.get(url)
        if data is None:
            raise HttpError(HttpResponse(None), "GET", url, URLError("unreachable"))
        return BytesIO(data)

    def called(self, url: str) -> bool:
        return any(call_url == url for _, call_url, _ in self.calls)


@pytest.fixture
def fake_http(monkeypatch):
    """Replace every HTTP access of the library by a fake, nothing reaches the network.
    """
    fake = FakeHttp()
    monkeypatch.setattr("mcmanager.metadata.http_request", fake.request)
    monkeypatch.setattr("mcmanager.auth.http_request", fake.request)
    monkeypatch.setattr("mcmanager.download.http_open", fake.open)
    return fake


@pytest.fixture
def tmp_context(tmp_path):
    """An installation context in a temporary main directory, new for each test.
    """
    from mcmanager.standard import Context
    return Context(tmp_path / "main")


class EventRecorder(Watcher):

    def __init__(self) -> None:
        self.events = []

    def handle(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def recorder():
    return EventRecorder()
