"""Tests for company resolution and access checks."""

import asyncio
import logging

import pytest

from odoo_dashboard.companies import (
    ALL_COMPANIES_LABEL,
    COMPANY_ALIASES,
    CompanyResolver,
    CompanySelection,
    is_company_allowed,
    name_matches,
    search_term,
)
from odoo_dashboard.exceptions import CompanyNotFoundError


class TestSearchTerm:
    """Test cases for alias substitution."""

    def test_alias_substituted(self):
        """Known aliases map to their legal-name fragment."""
        assert search_term("MPS") == "matches padel solutions"

    def test_whitespace_and_case(self):
        """Names are trimmed and lowercased."""
        assert search_term("  Viper ") == "viper web tech"

    def test_unknown_name_passes_through(self):
        """Names without alias are used as typed (lowercase)."""
        assert search_term("Acme Corp") == "acme corp"

    def test_alias_table_read_only(self):
        """The alias table cannot be mutated at runtime."""
        with pytest.raises(TypeError):
            COMPANY_ALIASES["new"] = "value"  # type: ignore[index]


class TestNameMatches:
    """Test cases for the fuzzy match."""

    def test_term_inside_name(self):
        assert name_matches("smd consultores", "SMD Consultores, S.L.")

    def test_name_inside_term(self):
        assert name_matches("samarluan s.l. holding", "Samarluan S.L.")

    def test_empty_never_matches(self):
        assert not name_matches("", "SMD Consultores, S.L.")
        assert not name_matches("smd", "")


class TestResolveOne:
    """Test cases for CompanyResolver.resolve_one."""

    def test_case_and_whitespace_insensitive(self, client):
        """SMD, smd and ' smd ' resolve to the same company."""
        resolver = CompanyResolver(client)

        async def run():
            return [await resolver.resolve_one(n) for n in ("SMD", "smd", " smd ")]

        results = asyncio.run(run())
        assert {r.id for r in results} == {1}
        assert results[0].label == "SMD Consultores, S.L."

    def test_empty_means_all(self, client):
        """No name means no restriction."""
        resolved = asyncio.run(CompanyResolver(client).resolve_one(""))
        assert resolved.id is None
        assert resolved.label == ALL_COMPANIES_LABEL
        assert resolved.domain() == []

    def test_unknown_raises(self, client):
        """An unknown name is an error naming it."""
        with pytest.raises(CompanyNotFoundError, match="Nonexistent"):
            asyncio.run(CompanyResolver(client).resolve_one("Nonexistent"))

    def test_directory_fetched_once(self, client, transport):
        """The company directory is loaded once per client."""
        resolver = CompanyResolver(client)

        async def run():
            await resolver.resolve_one("smd")
            await resolver.resolve_one("viper")

        asyncio.run(run())
        assert len(transport.calls_to("res.company", "search_read")) == 1


class TestResolveMany:
    """Test cases for CompanyResolver.resolve_many."""

    def test_two_companies(self, client):
        """Both ids are selected with an 'in' filter and a joined label."""
        selection = asyncio.run(CompanyResolver(client).resolve_many("SMD,Viper"))
        assert selection.ids == (1, 2)
        assert selection.label == "SMD Consultores, S.L., Viper Web Tech, S.L."
        assert selection.domain() == [("company_id", "in", [1, 2])]
        assert selection.matches(2)
        assert not selection.matches(3)

    def test_single_company_uses_equality(self, client):
        """One id gives an '=' filter."""
        selection = asyncio.run(CompanyResolver(client).resolve_many("viper"))
        assert selection.domain() == [("company_id", "=", 2)]

    def test_empty_means_all(self, client):
        """Empty input selects every company."""
        selection = asyncio.run(CompanyResolver(client).resolve_many(" , "))
        assert selection.ids is None
        assert selection.label == "Todas"
        assert selection.domain() == []
        assert selection.matches(99)

    def test_none_resolved_raises(self, client):
        """If no name resolves the call fails naming the input."""
        with pytest.raises(CompanyNotFoundError, match="Nonexistent") as exc_info:
            asyncio.run(CompanyResolver(client).resolve_many("Nonexistent"))
        assert exc_info.value.names == ["Nonexistent"]

    def test_partial_resolution_keeps_subset(self, client, caplog):
        """Unresolved names are dropped with a warning."""
        with caplog.at_level(logging.WARNING, logger="odoo_dashboard.companies"):
            selection = asyncio.run(CompanyResolver(client).resolve_many("SMD,Typo"))

        assert selection.ids == (1,)
        assert "Typo" in caplog.text

    def test_duplicates_collapse(self, client):
        """Two names for the same company select it once."""
        selection = asyncio.run(CompanyResolver(client).resolve_many("smd, SMD Consultores"))
        assert selection.ids == (1,)
        assert selection.label == "SMD Consultores, S.L."

    def test_domain_retargeted(self):
        """The filter can target another field."""
        selection = CompanySelection(ids=(1, 3), label="x")
        assert selection.domain("employee_id.company_id") == [
            ("employee_id.company_id", "in", [1, 3])
        ]


class TestIsCompanyAllowed:
    """Test cases for is_company_allowed."""

    def test_unrestricted(self):
        """An empty allow-list permits everything, even no company."""
        assert is_company_allowed(None, [])
        assert is_company_allowed("anything", [])

    def test_restricted_requires_name(self):
        """A restricted caller must name a company."""
        assert not is_company_allowed(None, ["SMD"])
        assert not is_company_allowed("  ", ["SMD"])

    def test_alias_match(self):
        """Alias matches case-insensitively in either direction."""
        assert is_company_allowed("smd", ["SMD"])
        assert is_company_allowed("SMD Consultores", ["SMD"])
        assert is_company_allowed("Padel", ["Padel YVR"])

    def test_legal_name_match(self):
        """Fragments of the alias' legal name are allowed."""
        assert is_company_allowed("web tech", ["Viper"])

    def test_other_company_denied(self):
        """Companies outside the list are denied."""
        assert not is_company_allowed("Viper", ["SMD"])
