import json
import threading
from types import SimpleNamespace
from urllib.parse import urlsplit

import pytest
import requests

from config import AppConfig
from data.credentials import CredentialStore, MappingSlot
from data.demo_state import DemoModeState
from data.mock_data import DemoDataProvider
from data.service import DashboardSession

API_URL = "http://backend.test"


def make_response(status=200, payload=None, text=None):
    """Build a real requests.Response without touching the network."""
    resp = requests.Response()
    resp.status_code = status
    resp.encoding = "utf-8"
    resp.headers["Content-Type"] = "application/json"
    if text is not None:
        resp._content = text.encode("utf-8")
    elif payload is not None:
        resp._content = json.dumps(payload).encode("utf-8")
    else:
        resp._content = b""
    return resp


class FakeTransport:
    """
    Stand-in for `requests.request`.

    routes: path -> payload (served as 200 JSON), a Response, or an exception
    class/instance to raise. Unknown paths answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, method, url, headers=None, params=None, json=None, timeout=None):
        path = urlsplit(url).path
        with self._lock:
            self.calls.append(SimpleNamespace(method=method, path=path, headers=dict(headers or {}), json=json))
        result = self.routes.get(path)
        if isinstance(result, type) and issubclass(result, BaseException):
            raise result(f"simulated {result.__name__} for {path}")
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, requests.Response):
            return result
        if result is None:
            return make_response(404, {"message": "Not found"})
        return make_response(200, result)

    def paths(self):
        return [c.path for c in self.calls]


def serve_real(facade, provider, transport):
    """Route every section of `facade` to a 200 response carrying realistic data."""
    for section in facade.sections:
        transport.routes[section.endpoint.path] = provider.provide(section.endpoint.category, section.endpoint.shape)
    return transport


@pytest.fixture
def cfg(tmp_path):
    return AppConfig(
        api_url=API_URL,
        request_timeout_s=1.0,
        credential_file=str(tmp_path / "session.json"),
        force_demo_mode=False,
        auto_refresh_s=0,
        demo_seed=7,
        role="admin",
        user_id="admin-demo-001",
        log_level="DEBUG",
    )


@pytest.fixture
def provider():
    return DemoDataProvider(seed=7)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def session(cfg, provider, transport):
    return DashboardSession(
        cfg=cfg,
        credentials=CredentialStore(MappingSlot({})),
        demo_state=DemoModeState(),
        demo_data=provider,
        transport=transport,
    )
