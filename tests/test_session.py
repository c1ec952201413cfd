"""Tests for the session manager: lazy authentication and replay."""

import asyncio

import pytest

from odoo_dashboard.exceptions import (
    AuthenticationError,
    NetworkError,
    PoisonedSessionError,
    RpcFaultError,
)
from odoo_dashboard.session import SessionManager

from conftest import FakeTransport


def make_session(transport: FakeTransport) -> SessionManager:
    return SessionManager(transport, "testdb", "bot@example.com", "secret", retry_jitter=(0, 0))


class YieldingTransport(FakeTransport):
    """Suspends on every call so concurrent callers interleave."""

    async def call(self, endpoint, method, params):
        await asyncio.sleep(0)
        return await super().call(endpoint, method, params)


class TestAuthentication:
    """Test cases for SessionManager.authenticate."""

    def test_lazy_authentication(self):
        """No authentication happens before the first call."""
        transport = FakeTransport()
        transport.script("res.partner", "search_count", 4)
        session = make_session(transport)

        assert not session.is_authenticated
        assert asyncio.run(session.execute("res.partner", "search_count", [[]])) == 4
        assert session.uid == 2
        assert transport.auth_calls == 1

    def test_session_reused(self):
        """Later calls reuse the uid."""
        transport = FakeTransport()
        transport.script("res.partner", "search_count", 4)
        session = make_session(transport)

        async def run():
            await session.execute("res.partner", "search_count", [[]])
            await session.execute("res.partner", "search_count", [[]])

        asyncio.run(run())
        assert transport.auth_calls == 1

    def test_concurrent_callers_share_authentication(self):
        """Simultaneous first calls authenticate once."""
        transport = FakeTransport()
        transport.script("res.partner", "search_count", 4)
        session = make_session(transport)

        async def run():
            return await asyncio.gather(*(
                session.execute("res.partner", "search_count", [[]]) for _ in range(5)
            ))

        assert asyncio.run(run()) == [4] * 5
        assert transport.auth_calls == 1

    def test_rejected_credentials(self):
        """A False uid means the credentials were rejected."""
        session = make_session(FakeTransport(uid=False))
        with pytest.raises(AuthenticationError):
            asyncio.run(session.authenticate())
        assert not session.is_authenticated

    def test_unreachable_server(self):
        """Transport failures during authentication are authentication errors."""
        transport = FakeTransport()

        async def failing_call(endpoint, method, params):
            raise NetworkError("Connection to Odoo failed")

        transport.call = failing_call
        with pytest.raises(AuthenticationError, match="Connection to Odoo failed"):
            asyncio.run(make_session(transport).authenticate())


class TestPoisonedSessionReplay:
    """Test cases for the stale-session replay."""

    def test_replayed_once_and_succeeds(self):
        """An HTML answer is retried after re-authenticating; the caller sees no error."""
        transport = FakeTransport()
        answers = [PoisonedSessionError(), [{"id": 1}]]
        transport.script("res.partner", "search_read", lambda args, kwargs: answers.pop(0))
        session = make_session(transport)

        result = asyncio.run(session.execute("res.partner", "search_read", [[]], {"fields": ["id"]}))

        assert result == [{"id": 1}]
        assert len(transport.calls_to("res.partner", "search_read")) == 2
        assert transport.auth_calls == 2

    def test_second_failure_propagates(self):
        """A replay that is poisoned too is not retried again."""
        transport = FakeTransport()
        transport.script("res.partner", "search_read", PoisonedSessionError())
        session = make_session(transport)

        with pytest.raises(PoisonedSessionError):
            asyncio.run(session.execute("res.partner", "search_read", [[]]))
        assert len(transport.calls_to("res.partner", "search_read")) == 2

    def test_faults_are_not_retried(self):
        """Server faults propagate immediately."""
        transport = FakeTransport()
        transport.script("res.partner", "search_read", RpcFaultError(2, "AccessError"))
        session = make_session(transport)

        with pytest.raises(RpcFaultError):
            asyncio.run(session.execute("res.partner", "search_read", [[]]))
        assert len(transport.calls_to("res.partner", "search_read")) == 1
        assert transport.auth_calls == 1

    def test_stale_failure_keeps_newer_session(self):
        """Invalidating an old generation does not drop a renewed session."""
        session = make_session(FakeTransport())

        async def run():
            await session.authenticate()
            old_generation = session._generation
            await session.authenticate()
            session.invalidate(old_generation)

        asyncio.run(run())
        assert session.is_authenticated

    def test_explicit_invalidate(self):
        """invalidate() without a generation always drops the session."""
        session = make_session(FakeTransport())
        asyncio.run(session.authenticate())
        session.invalidate()
        assert not session.is_authenticated

    def test_concurrent_poisoned_calls_authenticate_once_more(self):
        """Callers poisoned under the same session share one re-authentication."""
        transport = YieldingTransport()
        transport.script(
            "res.partner",
            "search_count",
            lambda args, kwargs: PoisonedSessionError() if transport.auth_calls < 2 else 7,
        )
        session = make_session(transport)

        async def run():
            return await asyncio.gather(*(
                session.execute("res.partner", "search_count", [[]]) for _ in range(5)
            ))

        assert asyncio.run(run()) == [7] * 5
        assert transport.auth_calls == 2
        assert session.is_authenticated
