import asyncio

import pytest
import requests

from conftest import make_response
from data.connection import (
    Endpoint,
    Failure,
    FailureKind,
    RequestError,
    Success,
    get_request_client,
)
from data.credentials import CredentialStore, MappingSlot
from data.demo_state import DemoModeState
from data.mock_data import ADMIN_SUMMARY, PayloadShape

SUMMARY = Endpoint("/api/admin/dashboard/summary", "admin.summary", PayloadShape.SUMMARY)
USERS = Endpoint("/api/admin/auth/users", "admin.users", PayloadShape.LIST, envelope="users")
CREATE = Endpoint("/api/admin/auth/create-user", "admin.users", PayloadShape.RECORD, method="POST")


def make_client(cfg, transport, provider, token=None, demo=False):
    credentials = CredentialStore(MappingSlot({}))
    if token:
        credentials.set(token)
    return get_request_client(cfg, credentials, DemoModeState(active=demo), demo_data=provider, transport=transport)


def send(client, endpoint):
    return asyncio.run(client.send(endpoint))


class TestHeaders:
    def test_attaches_bearer_when_present(self, cfg, transport, provider):
        transport.routes[SUMMARY.path] = {"users": 1}
        client = make_client(cfg, transport, provider, token="tok-1")
        send(client, SUMMARY)
        assert transport.calls[0].headers["Authorization"] == "Bearer tok-1"

    def test_no_credential_does_not_fail(self, cfg, transport, provider):
        transport.routes[SUMMARY.path] = {"users": 1}
        client = make_client(cfg, transport, provider)
        outcome = send(client, SUMMARY)
        assert isinstance(outcome, Success)
        assert "Authorization" not in transport.calls[0].headers

    def test_credential_read_fresh_per_call(self, cfg, transport, provider):
        transport.routes[SUMMARY.path] = {"users": 1}
        client = make_client(cfg, transport, provider, token="old")
        send(client, SUMMARY)
        client.credentials.set("new")
        send(client, SUMMARY)
        assert [c.headers["Authorization"] for c in transport.calls] == ["Bearer old", "Bearer new"]


class TestClassification:
    def test_success_unwraps_envelope(self, cfg, transport, provider):
        transport.routes[USERS.path] = {"success": True, "users": [{"id": 1}]}
        outcome = send(make_client(cfg, transport, provider), USERS)
        assert outcome == Success(payload=[{"id": 1}], source="api")

    def test_success_strips_status_keys(self, cfg, transport, provider):
        transport.routes[SUMMARY.path] = {"success": True, "users": 3, "faculty": 1}
        outcome = send(make_client(cfg, transport, provider), SUMMARY)
        assert outcome.payload == {"users": 3, "faculty": 1}

    def test_unauthorized_clears_credential(self, cfg, transport, provider):
        transport.routes[SUMMARY.path] = make_response(401, {"message": "Token is not valid"})
        client = make_client(cfg, transport, provider, token="expired")
        outcome = send(client, SUMMARY)
        assert isinstance(outcome, Failure)
        assert outcome.kind == FailureKind.UNAUTHORIZED
        assert client.credentials.get() is None
        assert not client.demo_state.active

    @pytest.mark.parametrize("status", [403, 404, 500, 503])
    def test_other_statuses_are_server_errors(self, cfg, transport, provider, status):
        transport.routes[SUMMARY.path] = make_response(status, {"message": "boom"})
        client = make_client(cfg, transport, provider, token="tok")
        outcome = send(client, SUMMARY)
        assert outcome.kind == FailureKind.SERVER_ERROR
        assert "boom" in outcome.detail
        assert client.credentials.get() == "tok"
        assert not client.demo_state.active

    def test_non_json_body_is_server_error(self, cfg, transport, provider):
        transport.routes[SUMMARY.path] = make_response(200, text="<html>gateway</html>")
        outcome = send(make_client(cfg, transport, provider), SUMMARY)
        assert outcome.kind == FailureKind.SERVER_ERROR

    @pytest.mark.parametrize("exc", [requests.Timeout, requests.ReadTimeout, requests.ConnectTimeout])
    def test_timeouts_do_not_engage_demo_mode(self, cfg, transport, provider, exc):
        transport.routes[SUMMARY.path] = exc
        client = make_client(cfg, transport, provider)
        outcome = send(client, SUMMARY)
        assert outcome.kind == FailureKind.TIMEOUT
        assert not client.demo_state.active


    @pytest.mark.parametrize(
        "exc",
        [
            requests.exceptions.ChunkedEncodingError,
            requests.exceptions.ContentDecodingError,
            requests.TooManyRedirects,
            requests.exceptions.InvalidURL,
        ],
    )
    def test_other_transport_errors_are_server_errors(self, cfg, transport, provider, exc):
        transport.routes[SUMMARY.path] = exc
        client = make_client(cfg, transport, provider)
        outcome = send(client, SUMMARY)
        assert outcome.kind == FailureKind.SERVER_ERROR
        assert outcome.detail == exc.__name__
        assert not client.demo_state.active


class TestDemoEscalation:
    def test_first_outage_is_answered_with_demo_data(self, cfg, transport, provider):
        transport.routes[SUMMARY.path] = requests.ConnectionError
        client = make_client(cfg, transport, provider)
        outcome = send(client, SUMMARY)
        assert outcome == Success(payload=ADMIN_SUMMARY, source="demo")
        assert client.demo_state.active

    def test_no_network_after_demo_mode(self, cfg, transport, provider):
        transport.routes[SUMMARY.path] = requests.ConnectionError
        transport.routes[USERS.path] = {"users": []}
        client = make_client(cfg, transport, provider)
        send(client, SUMMARY)
        assert len(transport.calls) == 1

        for _ in range(3):
            outcome = send(client, USERS)
            assert outcome.source == "demo"
            assert len(outcome.payload) == ADMIN_SUMMARY["users"]
        assert len(transport.calls) == 1

    def test_uncovered_category_gets_typed_empty_value(self, cfg, transport, provider):
        client = make_client(cfg, transport, provider, demo=True)
        outcome = send(client, Endpoint("/api/admin/reports", "admin.reports", PayloadShape.LIST))
        assert outcome == Success(payload=[], source="demo")


class TestSubmit:
    def test_returns_payload(self, cfg, transport, provider):
        transport.routes[CREATE.path] = {"success": True, "data": {"id": 9}}
        client = make_client(cfg, transport, provider)
        assert asyncio.run(client.submit(CREATE, {"email": "a@b.c"})) == {"id": 9}
        assert transport.calls[0].method == "POST"
        assert transport.calls[0].json == {"email": "a@b.c"}

    def test_server_error_is_raised(self, cfg, transport, provider):
        transport.routes[CREATE.path] = make_response(500, {"message": "duplicate email"})
        client = make_client(cfg, transport, provider)
        with pytest.raises(RequestError) as exc_info:
            asyncio.run(client.submit(CREATE, {"email": "a@b.c"}))
        assert exc_info.value.kind == FailureKind.SERVER_ERROR

    def test_unauthorized_is_raised_and_clears_credential(self, cfg, transport, provider):
        transport.routes[CREATE.path] = make_response(401)
        client = make_client(cfg, transport, provider, token="tok")
        with pytest.raises(RequestError) as exc_info:
            asyncio.run(client.submit(CREATE, {}))
        assert exc_info.value.kind == FailureKind.UNAUTHORIZED
        assert client.credentials.get() is None

    def test_redirect_loop_on_write_is_raised(self, cfg, transport, provider):
        transport.routes[CREATE.path] = requests.TooManyRedirects
        client = make_client(cfg, transport, provider)
        with pytest.raises(RequestError) as exc_info:
            asyncio.run(client.submit(CREATE, {}))
        assert exc_info.value.kind == FailureKind.SERVER_ERROR

    def test_unreachable_write_is_raised_not_defaulted(self, cfg, transport, provider):
        transport.routes[CREATE.path] = requests.ConnectionError
        client = make_client(cfg, transport, provider)
        with pytest.raises(RequestError) as exc_info:
            asyncio.run(client.submit(CREATE, {}))
        assert exc_info.value.kind == FailureKind.NETWORK_UNREACHABLE
        assert not client.demo_state.active

    def test_demo_mode_acknowledges_without_network(self, cfg, transport, provider):
        client = make_client(cfg, transport, provider, demo=True)
        ack = asyncio.run(client.submit(CREATE, {"email": "a@b.c"}))
        assert ack["success"] is True
        assert ack["demo"] is True
        assert ack["data"]["email"] == "a@b.c"
        assert transport.calls == []
