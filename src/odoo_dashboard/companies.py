"""Company name resolution and company filters.

Users refer to companies by short aliases ("smd", "mps") or fragments of
their legal names. This module maps those names to Odoo company ids and
builds the domain filters the report routines append to their queries.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from odoo_dashboard.client import OdooClient
from odoo_dashboard.config import split_csv
from odoo_dashboard.exceptions import CompanyNotFoundError
from odoo_dashboard.models import Company

logger = logging.getLogger(__name__)

ALL_COMPANIES_LABEL = "Todas"

# Alias -> lowercase fragment of the legal name
COMPANY_ALIASES: Mapping[str, str] = MappingProxyType({
    "samarluan": "samarluan",
    "mps": "matches padel solutions",
    "matches padel": "matches padel solutions",
    "matches": "matches padel solutions",
    "pm": "padelmatches",
    "padelmatches": "padelmatches",
    "padel matches": "padelmatches",
    "smd": "smd consultores",
    "smd consultores": "smd consultores",
    "smd asesores": "smd consultores",
    "viper": "viper web tech",
    "dpm": "davila property management",
    "davila property": "davila property management",
    "dsu": "domotic systems unit",
    "gasmedia": "gasmedia systems",
    "lucky losers": "lucky losers clothes",
    "padelprix": "padelprix worldwide",
    "menthor": "menthor padel academy",
    "r2pro": "r2pro nextgen",
    "alexan": "alexan events",
    "dayful": "dayful studio",
    "365": "365 receptión",
    "receptión": "365 receptión",
    "recepcion": "365 receptión",
    "padelplay": "padelplay 2022",
    "padel play": "padelplay 2022",
    "baycamp": "padelbaycamp",
    "padelbaycamp": "padelbaycamp",
    "yvr": "padel yvr",
    "padel yvr": "padel yvr",
    "arsgode": "arsgode",
    "danomaclean": "danomaclean",
    "padelmunity": "padelmunity",
    "assistantbot": "assistantbot",
    "grupo": "grupo",
})


# Alias as offered in the company filter -> full legal name
COMPANY_LABELS: Mapping[str, str] = MappingProxyType({
    "365": "365 Receptión, S.L.",
    "Alexan": "Alexan Events, S.L.",
    "Arsgode": "Arsgode, S.L.",
    "AssistantBot": "AssistantBot S.L.",
    "Danomaclean": "Danomaclean SL",
    "Davila Property": "Davila Property Management S.L.",
    "Dayful": "Dayful Studio S.L.",
    "DSU": "Domotic Systems Unit S.L.",
    "Gasmedia": "Gasmedia Systems, S.L.",
    "Lucky Losers": "Lucky Losers Clothes, S.L.",
    "Matches Padel": "Matches Padel Solutions S.L.",
    "Menthor": "Menthor Padel Academy SL",
    "Padelbaycamp": "Padelbaycamp, S.L.",
    "Padelmatches": "Padelmatches S.L.",
    "Padelmunity": "Padelmunity, S.L.",
    "Padelplay": "Padelplay 2022 S.L.",
    "Padelprix": "Padelprix Worldwide, S.L.",
    "Padel YVR": "Padel YVR S.L.",
    "R2PRO": "R2PRO Nextgen, S.L.",
    "Samarluan": "Samarluan S.L.",
    "SMD": "SMD Consultores, S.L.",
    "Viper": "Viper Web Tech, S.L.",
})


def company_label(alias: str) -> str:
    """Legal name of an alias, or the alias itself when unknown."""
    return COMPANY_LABELS.get(alias, alias)


def is_company_allowed(name: str | None, allowed: list[str]) -> bool:
    """Check a requested company against a list of allowed aliases.

    An empty list allows everything. Otherwise a name is required and must
    equal or contain an allowed alias, be contained in one, or be part of
    that alias' legal name (all case-insensitive).

    Args:
        name: Requested company name or alias.
        allowed: Allowed aliases (e.g., ["SMD", "Viper"]).

    Returns:
        True if the company may be queried.
    """
    if not allowed:
        return True
    if not name or not name.strip():
        return False

    requested = name.strip().lower()
    for alias in allowed:
        alias_lower = alias.lower()
        label_lower = COMPANY_LABELS.get(alias, "").lower()
        if (
            requested == alias_lower
            or alias_lower in requested
            or requested in alias_lower
            or requested in label_lower
        ):
            return True
    return False


def search_term(name: str) -> str:
    """Normalise a user supplied name and substitute its alias."""
    lower = name.strip().lower()
    return COMPANY_ALIASES.get(lower, lower)


def name_matches(term: str, company_name: str) -> bool:
    """Fuzzy match: substring containment in either direction."""
    candidate = company_name.lower()
    return bool(term) and bool(candidate) and (term in candidate or candidate in term)


@dataclass(frozen=True)
class ResolvedCompany:
    """A single resolved company (or no restriction).

    Args:
        id: Company id, None when no company was requested.
        label: Legal name, or "Todas" when unrestricted.
    """

    id: int | None
    label: str

    def domain(self, field: str = "company_id") -> list[Any]:
        return [(field, "=", self.id)] if self.id is not None else []


@dataclass(frozen=True)
class CompanySelection:
    """A set of resolved companies usable as a query filter.

    Args:
        ids: Selected company ids, None when unrestricted.
        label: Comma-separated legal names, or "Todas".
    """

    ids: tuple[int, ...] | None
    label: str

    def domain(self, field: str = "company_id") -> list[Any]:
        """Odoo domain restricting ``field`` to the selected companies.

        Args:
            field: Field holding the company (e.g., "employee_id.company_id"
                for attendance records).

        Returns:
            Empty list, an equality condition or an ``in`` condition.
        """
        if not self.ids:
            return []
        if len(self.ids) == 1:
            return [(field, "=", self.ids[0])]
        return [(field, "in", list(self.ids))]

    def matches(self, company_id: int | None) -> bool:
        """Predicate equivalent of the domain."""
        return self.ids is None or company_id in self.ids


class CompanyResolver:
    """Resolves company names against the client's company directory."""

    def __init__(self, client: OdooClient) -> None:
        self.client = client

    async def find(self, name: str | None) -> Company | None:
        """Find the first company matching a name or alias.

        Args:
            name: Name, legal-name fragment or alias (any case).

        Returns:
            The matching Company or None.
        """
        if not name or not name.strip():
            return None
        term = search_term(name)
        for company in await self.client.list_companies():
            if name_matches(term, company.name):
                return company
        return None

    async def resolve_one(self, name: str | None) -> ResolvedCompany:
        """Resolve an optional single company name.

        Raises:
            CompanyNotFoundError: If a name is given and nothing matches.
        """
        if not name or not name.strip():
            return ResolvedCompany(id=None, label=ALL_COMPANIES_LABEL)

        company = await self.find(name)
        if company is None:
            raise CompanyNotFoundError([name])
        return ResolvedCompany(id=company.id, label=company.name or name)

    async def resolve_many(self, names: str | None) -> CompanySelection:
        """Resolve a comma-separated list of company names.

        Names that do not resolve are dropped as long as at least one name
        resolves.

        Args:
            names: e.g. "SMD,Viper"; empty or None means every company.

        Returns:
            CompanySelection.

        Raises:
            CompanyNotFoundError: If none of the names resolve.
        """
        requested = split_csv(names)
        if not requested:
            return CompanySelection(ids=None, label=ALL_COMPANIES_LABEL)

        ids: list[int] = []
        labels: list[str] = []
        unresolved: list[str] = []
        for name in requested:
            company = await self.find(name)
            if company is None:
                unresolved.append(name)
            elif company.id not in ids:
                ids.append(company.id)
                labels.append(company.name or name)

        if not ids:
            raise CompanyNotFoundError(
                requested,
                f"No se encontraron las empresas: {', '.join(requested)}",
            )
        if unresolved:
            logger.warning(f"Ignoring unresolved companies: {', '.join(unresolved)}")

        return CompanySelection(ids=tuple(ids), label=", ".join(labels))
