"""Tests for the OdooClient facade."""

import asyncio

import pytest

from odoo_dashboard.client import OdooClient
from odoo_dashboard.exceptions import PoisonedSessionError, ResponseDecodeError
from odoo_dashboard.session import SessionManager

from conftest import FakeTransport


class TestReadCaching:
    """Test cases for caching and deduplication of read methods."""

    def test_concurrent_identical_reads_collapse(self, client, transport):
        """Two simultaneous identical reads make one remote call."""
        transport.script("crm.lead", "search_count", 12)

        async def run():
            return await asyncio.gather(
                client.search_count("crm.lead", [("active", "=", True)]),
                client.search_count("crm.lead", [("active", "=", True)]),
            )

        assert asyncio.run(run()) == [12, 12]
        assert len(transport.calls_to("crm.lead", "search_count")) == 1

    def test_repeated_read_served_from_cache(self, client, transport):
        """A repeated read within the TTL is not sent again."""
        transport.script("crm.lead", "search_count", 12)

        async def run():
            await client.search_count("crm.lead", [])
            await client.search_count("crm.lead", [])

        asyncio.run(run())
        assert len(transport.calls_to("crm.lead", "search_count")) == 1

    def test_writes_bypass_cache(self, client, transport):
        """Non-read methods always reach Odoo."""
        transport.script("res.partner", "write", True)

        async def run():
            await client.execute("res.partner", "write", [[1], {"name": "x"}])
            await client.execute("res.partner", "write", [[1], {"name": "x"}])

        asyncio.run(run())
        assert len(transport.calls_to("res.partner", "write")) == 2
        assert len(client.cache) == 0

    def test_replay_is_transparent(self, client, transport):
        """A poisoned first answer is invisible to the caller and cached once."""
        answers = [PoisonedSessionError(), 5]
        transport.script("hr.employee", "search_count", lambda args, kwargs: answers.pop(0))

        assert asyncio.run(client.search_count("hr.employee", [])) == 5
        assert transport.auth_calls == 2
        assert len(client.cache) == 1


class TestTypedResults:
    """Test cases for result validation at the boundary."""

    def test_search_read_passes_options(self, client, transport):
        """order and limit are sent as keyword arguments."""
        transport.script("account.move", "search_read", [{"id": 1}])
        asyncio.run(client.search_read("account.move", [], ["name"], order="id desc", limit=5))

        (_, kwargs), = transport.calls_to("account.move", "search_read")
        assert kwargs == {"fields": ["name"], "order": "id desc", "limit": 5}

    def test_search_read_rejects_non_list(self, client, transport):
        transport.script("account.move", "search_read", {"id": 1})
        with pytest.raises(ResponseDecodeError):
            asyncio.run(client.search_read("account.move", [], ["name"]))

    def test_search_count_rejects_bool(self, client, transport):
        transport.script("account.move", "search_count", True)
        with pytest.raises(ResponseDecodeError):
            asyncio.run(client.search_count("account.move", []))

    def test_read_group_rows(self, client, transport):
        """read_group is non-lazy and rows expose groups, sums and counts."""
        transport.script("crm.lead", "read_group", [
            {"stage_id": [4, "Arrancado"], "expected_revenue": 1500.5, "__count": 3},
            {"stage_id": False, "expected_revenue": False, "stage_id_count": 1},
        ])
        rows = asyncio.run(client.read_group("crm.lead", [], ["expected_revenue"], ["stage_id"]))

        (args, kwargs), = transport.calls_to("crm.lead", "read_group")
        assert args == [[], ["expected_revenue"], ["stage_id"]]
        assert kwargs == {"lazy": False}
        assert rows[0].group_id("stage_id") == 4
        assert rows[0].value("expected_revenue") == 1500.5
        assert rows[0].count == 3
        assert rows[1].group_name("stage_id", "Sin etapa") == "Sin etapa"
        assert rows[1].value("expected_revenue") == 0.0
        assert rows[1].count == 1

    def test_read_group_rejects_text_aggregate(self, client, transport):
        transport.script("crm.lead", "read_group", [{"expected_revenue": "lots"}])
        with pytest.raises(ResponseDecodeError):
            asyncio.run(client.read_group("crm.lead", [], ["expected_revenue"], []))

    def test_read_total_empty(self, client, transport):
        """An empty read_group totals 0."""
        transport.script("sale.order", "read_group", [])
        assert asyncio.run(client.read_total("sale.order", [], "recurring_monthly")) == 0.0


class TestIndependentClients:
    """Test cases for state ownership."""

    def test_clients_do_not_share_cache(self, transport):
        """Two clients keep separate caches and sessions."""
        other_transport = FakeTransport()
        transport.script("crm.lead", "search_count", 1)
        other_transport.script("crm.lead", "search_count", 2)
        first = OdooClient(session=SessionManager(transport, "db", "u", "k"))
        second = OdooClient(session=SessionManager(other_transport, "db", "u", "k"))

        async def run():
            return (
                await first.search_count("crm.lead", []),
                await second.search_count("crm.lead", []),
            )

        assert asyncio.run(run()) == (1, 2)

    def test_close_closes_transport(self, client, transport):
        asyncio.run(client.close())
        assert transport.closed
