from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union

import requests

from config import AppConfig
from data.credentials import CredentialStore
from data.demo_state import DemoModeState
from data.mock_data import DemoDataProvider, PayloadShape

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    NETWORK_UNREACHABLE = "network_unreachable"


@dataclass(frozen=True)
class Endpoint:
    """
    One backend endpoint.
    - `category` keys the demo payload ("<role>.<section>")
    - `envelope` names the key the backend nests the payload under, if any
    """

    path: str
    category: str
    shape: PayloadShape = PayloadShape.RECORD
    method: str = "GET"
    envelope: Optional[str] = None

    def bind(self, **params: Any) -> "Endpoint":
        """Fill path placeholders; unknown placeholders are left for a later bind."""
        if not params:
            return self
        return Endpoint(
            path=self.path.format_map(_KeepMissing(params)),
            category=self.category,
            shape=self.shape,
            method=self.method,
            envelope=self.envelope,
        )

    @property
    def is_bound(self) -> bool:
        return "{" not in self.path


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


@dataclass(frozen=True)
class Success:
    payload: Any
    source: str = "api"  # "api" | "demo"

    ok = True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    detail: Optional[str] = None

    ok = False


RequestOutcome = Union[Success, Failure]


class RequestError(RuntimeError):
    """A mutating request failed; writes are never silently defaulted."""

    def __init__(self, kind: FailureKind, endpoint: Endpoint, message: Optional[str] = None):
        self.kind = kind
        self.endpoint = endpoint
        super().__init__(message or f"{endpoint.method} {endpoint.path} failed: {kind.value}")


Transport = Callable[..., requests.Response]


@dataclass
class RequestClient:
    """
    Issues one call at a time and classifies what came back.

    Reads never raise: they come back as `Success` or `Failure`. The first
    `NetworkUnreachable` of the session engages demo mode and is answered from
    the demo provider; from then on no read touches the network.
    """

    cfg: AppConfig
    credentials: CredentialStore
    demo_state: DemoModeState
    demo_data: DemoDataProvider
    transport: Transport = field(default=requests.request)

    # ---- reads -------------------------------------------------------------

    async def send(self, endpoint: Endpoint, params: Optional[dict[str, Any]] = None) -> RequestOutcome:
        if self.demo_state.active:
            logger.debug("Demo mode: %s served locally", endpoint.path)
            return self._demo(endpoint)

        outcome = await asyncio.to_thread(self._call, endpoint, params, None)
        if isinstance(outcome, Success):
            return outcome

        logger.warning("%s %s -> %s", endpoint.method, endpoint.path, outcome.kind.value)
        if outcome.kind == FailureKind.UNAUTHORIZED:
            self.credentials.invalidate()
        elif outcome.kind == FailureKind.NETWORK_UNREACHABLE:
            self.demo_state.engage(f"{endpoint.path} unreachable")
            return self._demo(endpoint)
        return outcome

    # ---- writes ------------------------------------------------------------

    async def submit(self, endpoint: Endpoint, body: Optional[dict[str, Any]] = None) -> Any:
        """
        Send a mutating request. Returns the response payload or raises
        RequestError; there is no fallback value for writes.
        """
        if self.demo_state.active:
            return self.demo_data.acknowledge(endpoint.method, endpoint.path, body)

        outcome = await asyncio.to_thread(self._call, endpoint, None, body)
        if isinstance(outcome, Success):
            return outcome.payload

        logger.warning("%s %s -> %s", endpoint.method, endpoint.path, outcome.kind.value)
        if outcome.kind == FailureKind.UNAUTHORIZED:
            self.credentials.invalidate()
        raise RequestError(outcome.kind, endpoint, outcome.detail)

    # ---- transport ---------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.credentials.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _call(
        self,
        endpoint: Endpoint,
        params: Optional[dict[str, Any]],
        body: Optional[dict[str, Any]],
    ) -> RequestOutcome:
        # Credential is read fresh for every call.
        try:
            resp = self.transport(
                endpoint.method,
                f"{self.cfg.api_url}{endpoint.path}",
                headers=self._headers(),
                params=params,
                json=body,
                timeout=self.cfg.request_timeout_s,
            )
        except requests.Timeout as e:
            return Failure(FailureKind.TIMEOUT, type(e).__name__)
        except requests.ConnectionError as e:
            return Failure(FailureKind.NETWORK_UNREACHABLE, type(e).__name__)
        except requests.RequestException as e:
            # broken body encoding, redirect loops, bad URLs
            return Failure(FailureKind.SERVER_ERROR, type(e).__name__)
        return self._classify(endpoint, resp)

    def _classify(self, endpoint: Endpoint, resp: requests.Response) -> RequestOutcome:
        if resp.status_code == 401:
            return Failure(FailureKind.UNAUTHORIZED, "HTTP 401")
        if resp.status_code >= 300:
            return Failure(FailureKind.SERVER_ERROR, f"HTTP {resp.status_code}: {_error_message(resp)}")
        if resp.status_code == 204 or not resp.content:
            return Success(payload=None)
        try:
            data = resp.json()
        except ValueError:
            return Failure(FailureKind.SERVER_ERROR, "response body is not JSON")
        return Success(payload=_unwrap(data, endpoint.envelope))

    def _demo(self, endpoint: Endpoint) -> Success:
        return Success(payload=self.demo_data.provide(endpoint.category, endpoint.shape), source="demo")


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return "Request failed"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return "Request failed"


def _unwrap(data: Any, envelope: Optional[str]) -> Any:
    """Backend responses come either bare or as {"success": ..., <envelope>: payload}."""
    if not isinstance(data, dict):
        return data
    if envelope and envelope in data:
        return data[envelope]
    if "data" in data and set(data) <= {"success", "data", "message"}:
        return data["data"]
    return {k: v for k, v in data.items() if k not in ("success", "message")}


def get_request_client(
    cfg: AppConfig,
    credentials: CredentialStore,
    demo_state: DemoModeState,
    demo_data: Optional[DemoDataProvider] = None,
    transport: Optional[Transport] = None,
) -> RequestClient:
    return RequestClient(
        cfg=cfg,
        credentials=credentials,
        demo_state=demo_state,
        demo_data=demo_data or DemoDataProvider(seed=cfg.demo_seed),
        transport=transport or requests.request,
    )
