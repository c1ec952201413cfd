"""Shared fixtures: an in-memory Odoo that answers scripted XML-RPC calls."""

from collections.abc import Callable
from typing import Any

import pytest

from odoo_dashboard.client import OdooClient
from odoo_dashboard.session import SessionManager

COMPANIES = [
    {"id": 1, "name": "SMD Consultores, S.L."},
    {"id": 2, "name": "Viper Web Tech, S.L."},
    {"id": 3, "name": "Samarluan S.L."},
]


class FakeTransport:
    """Stands in for XmlRpcTransport.

    Responses are scripted per (model, method). A response may be a value,
    an exception instance (raised) or a callable ``(args, kwargs) -> value``.
    ``authenticate`` answers with ``uid``.
    """

    def __init__(self, uid: int | bool = 2) -> None:
        self.uid = uid
        self.responses: dict[tuple[str, str], Any] = {
            ("res.company", "search_read"): COMPANIES,
        }
        self.calls: list[tuple[str, str, list[Any], dict[str, Any]]] = []
        self.auth_calls = 0
        self.closed = False

    def script(self, model: str, method: str, response: Any) -> None:
        self.responses[(model, method)] = response

    def calls_to(self, model: str, method: str) -> list[tuple[list[Any], dict[str, Any]]]:
        return [(a, k) for m, meth, a, k in self.calls if m == model and meth == method]

    async def call(self, endpoint: str, method: str, params: Any) -> Any:
        if endpoint == "common":
            self.auth_calls += 1
            return self.uid

        _db, _uid, _key, model, model_method, args, kwargs = params
        self.calls.append((model, model_method, args, kwargs))
        response = self.responses.get((model, model_method))
        if response is None:
            raise AssertionError(f"Unscripted call {model}.{model_method}")
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(args, kwargs)
            if isinstance(response, Exception):
                raise response
        return response

    async def close(self) -> None:
        self.closed = True


def domain_value(domain: list[Any], field: str, operator: str | None = None) -> Any:
    """Value of the first condition on ``field`` in a domain."""
    for condition in domain:
        if isinstance(condition, (list, tuple)) and condition[0] == field:
            if operator is None or condition[1] == operator:
                return condition[2]
    return None


def by_domain(rule: Callable[[list[Any]], Any]) -> Callable[[list[Any], dict[str, Any]], Any]:
    """Script a response from the call's domain (first positional argument)."""
    return lambda args, kwargs: rule(args[0])


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(transport: FakeTransport) -> OdooClient:
    session = SessionManager(transport, "testdb", "bot@example.com", "secret", retry_jitter=(0, 0))
    return OdooClient(session=session)
