"""Tests for the MCP chat tools."""

import asyncio

import pytest

from odoo_dashboard import tools
from odoo_dashboard.exceptions import NetworkError

from conftest import by_domain


@pytest.fixture(autouse=True)
def tool_client(client, monkeypatch):
    monkeypatch.setattr(tools, "_client", client)
    return client


@pytest.fixture
def restricted(monkeypatch):
    monkeypatch.setattr(tools, "allowed_companies", lambda: ["SMD", "Viper"])


class TestCompanyAccess:
    """Test cases for the allowed-companies restriction."""

    def test_unrestricted_without_company(self):
        assert tools.check_company_access(None, []) is None

    def test_restricted_requires_company(self, restricted, transport):
        """A restricted caller must name a company; Odoo is not queried."""
        result = asyncio.run(tools.get_employee_count())
        assert result == {
            "error": "Debes especificar una empresa. Solo tienes acceso a: "
                     "SMD Consultores, S.L., Viper Web Tech, S.L."
        }
        assert transport.calls == []

    def test_restricted_denies_other_company(self, restricted):
        result = asyncio.run(tools.get_cashflow("Samarluan"))
        assert result["error"].startswith('No tienes acceso a la empresa "Samarluan".')

    def test_restricted_allows_listed_company(self, restricted, transport):
        transport.script("hr.employee", "search_count", 7)
        result = asyncio.run(tools.get_employee_count("smd"))
        assert result == {"empresa": "SMD Consultores, S.L.", "empleados_activos": 7}


class TestTools:
    """Test cases for tool results."""

    def test_financial_summary_uses_shared_classifier(self, transport):
        transport.script("account.account", "search_read", [
            {"id": 10, "code": "700001"}, {"id": 11, "code": "600001"}, {"id": 12, "code": "760001"},
        ])
        transport.script("account.move.line", "read_group", [
            {"account_id": [10, "Ventas"], "balance": -1000.0},
            {"account_id": [11, "Compras"], "balance": 500.0},
            {"account_id": [12, "Financieros"], "balance": -200.0},
        ])

        result = asyncio.run(tools.get_financial_summary("2025-01-01", "2025-01-31", "viper"))
        assert result == {
            "empresa": "Viper Web Tech, S.L.",
            "ingresos_explotacion": 1000.0,
            "gastos_explotacion": -500.0,
            "resultado_explotacion": 500.0,
            "resultado_financiero": 200.0,
            "resultado_antes_impuestos": 700.0,
        }

    def test_cashflow(self, transport):
        transport.script("account.account", "search_read", [{"id": 20}])
        transport.script("account.move.line", "read_group", [{"account_id": [20, "Banco"], "balance": 4321.123}])
        assert asyncio.run(tools.get_cashflow()) == {"empresa": "Todas", "tesoreria": 4321.12}

    def test_crm_summary(self, transport):
        transport.script("crm.lead", "search_count", by_domain(
            lambda domain: 2 if ("stage_id.is_won", "=", True) in domain else 9
        ))
        transport.script("crm.lead", "read_group", [{"expected_revenue": 5000.0}])

        assert asyncio.run(tools.get_crm_summary("2025-01-01", "2025-01-31")) == {
            "empresa": "Todas",
            "oportunidades": 9,
            "pipeline_value": 5000.0,
            "ganadas": 2,
        }

    def test_list_companies_unrestricted(self):
        result = asyncio.run(tools.list_companies())
        assert result["empresas"][1] == {"id": 2, "nombre": "Viper Web Tech, S.L."}

    def test_list_companies_restricted(self, restricted):
        assert asyncio.run(tools.list_companies()) == {"empresas": [
            {"alias": "SMD", "nombre": "SMD Consultores, S.L."},
            {"alias": "Viper", "nombre": "Viper Web Tech, S.L."},
        ]}


class TestToolErrors:
    """Test cases for error reporting to the model."""

    def test_odoo_error_returned_as_dict(self, transport):
        transport.script("hr.employee", "search_count", NetworkError("Connection to Odoo failed"))
        result = asyncio.run(tools.get_employee_count())
        assert result["error"] == "Connection to Odoo failed"
        assert "action" in result

    def test_unknown_company(self):
        result = asyncio.run(tools.get_employee_count("Nonexistent"))
        assert result["error"] == 'No se encontró la empresa "Nonexistent".'

    def test_invalid_dates(self):
        result = asyncio.run(tools.get_financial_summary("2025-02-01", "2025-01-01"))
        assert "error" in result
