"""Odoo client with result caching and in-flight deduplication.

This module provides the OdooClient class, the single entry point the report
routines use to read from Odoo. It owns all mutable access state: the
session, the result cache, the in-flight registry and the company directory.
"""

import asyncio
import logging
from typing import Any

from odoo_dashboard.cache import (
    CachedExecutor,
    InFlightRegistry,
    ResultCache,
    make_cache_key,
)
from odoo_dashboard.config import OdooSettings
from odoo_dashboard.exceptions import ResponseDecodeError
from odoo_dashboard.models import Company, ReadGroupRow
from odoo_dashboard.session import SessionManager
from odoo_dashboard.transport import XmlRpcTransport

logger = logging.getLogger(__name__)

# Methods without side effects; only these are cached and deduplicated
READ_METHODS = frozenset({
    "search_read",
    "read_group",
    "search_count",
    "read",
    "search",
    "name_search",
    "fields_get",
})

Domain = list[Any]


class OdooClient:
    """Async client for the Odoo external API.

    This client handles:
    - Lazy authentication and stale-session replay (SessionManager)
    - A short-lived result cache for read methods
    - Collapsing concurrent identical reads into one remote call
    - Typed validation of search_read, read_group and search_count results
    """

    def __init__(
        self,
        settings: OdooSettings | None = None,
        transport: XmlRpcTransport | None = None,
        session: SessionManager | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        """Initialize the Odoo client.

        Args:
            settings: Connection settings (or from environment variables).
            transport: Optional transport (defaults to XmlRpcTransport).
            session: Optional session manager wrapping the transport.
            cache: Optional result cache (defaults to the settings' TTL).
        """
        if session is None:
            if settings is None:
                settings = OdooSettings.from_env()
            if transport is None:
                transport = XmlRpcTransport(settings.url, timeout=settings.timeout)
            session = SessionManager(
                transport,
                database=settings.database,
                username=settings.username,
                api_key=settings.api_key,
            )
        if cache is None:
            cache = ResultCache(ttl=settings.cache_ttl if settings else 30.0)

        self.settings = settings
        self.session = session
        self.executor = CachedExecutor(cache, InFlightRegistry())
        self._companies: list[Company] | None = None
        self._companies_lock = asyncio.Lock()

    @property
    def cache(self) -> ResultCache:
        return self.executor.cache

    async def close(self) -> None:
        """Close the underlying transport."""
        await self.session.transport.close()

    async def execute(
        self,
        model: str,
        method: str,
        args: list[Any] | None = None,
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Call a model method.

        Read methods are served from the cache when fresh and shared with any
        identical call already in flight. Other methods always reach Odoo.

        Args:
            model: Odoo model name (e.g., "account.move").
            method: Model method (e.g., "search_read").
            args: Positional arguments.
            kwargs: Keyword arguments.

        Returns:
            Raw method result.

        Raises:
            OdooError: On authentication, transport or fault errors.
        """
        args = args if args is not None else []
        kwargs = kwargs if kwargs is not None else {}

        if method not in READ_METHODS:
            return await self.session.execute(model, method, args, kwargs)

        key = make_cache_key(model, method, args, kwargs)
        return await self.executor.get_or_call(
            key,
            lambda: self.session.execute(model, method, args, kwargs),
        )

    async def search_read(
        self,
        model: str,
        domain: Domain,
        fields: list[str],
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Search records and read fields.

        Args:
            model: Odoo model name.
            domain: Odoo domain (list of conditions).
            fields: Field names to read.
            order: Optional order clause (e.g., "id asc").
            limit: Optional maximum number of records.

        Returns:
            List of record dicts.

        Raises:
            ResponseDecodeError: If Odoo did not return a list of records.
        """
        kwargs: dict[str, Any] = {"fields": fields}
        if order:
            kwargs["order"] = order
        if limit:
            kwargs["limit"] = limit

        raw = await self.execute(model, "search_read", [domain], kwargs)
        if not isinstance(raw, list) or not all(isinstance(r, dict) for r in raw):
            raise ResponseDecodeError(model, "search_read", "expected a list of records")
        return raw

    async def read_group(
        self,
        model: str,
        domain: Domain,
        fields: list[str],
        groupby: list[str],
    ) -> list[ReadGroupRow]:
        """Aggregate records with ``read_group`` (non-lazy).

        Args:
            model: Odoo model name.
            domain: Odoo domain.
            fields: Fields to aggregate.
            groupby: Fields to group by (empty for a single total group).

        Returns:
            List of ReadGroupRow.
        """
        raw = await self.execute(
            model, "read_group", [domain, fields, groupby], {"lazy": False}
        )
        return ReadGroupRow.parse_rows(raw, model, fields, groupby)

    async def read_total(self, model: str, domain: Domain, field: str) -> float:
        """Sum one field over all records matching the domain."""
        rows = await self.read_group(model, domain, [field], [])
        return rows[0].value(field) if rows else 0.0

    async def search_count(self, model: str, domain: Domain) -> int:
        """Count records matching a domain.

        Raises:
            ResponseDecodeError: If Odoo did not return an integer.
        """
        raw = await self.execute(model, "search_count", [domain])
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ResponseDecodeError(model, "search_count", f"expected int, got {raw!r}")
        return raw

    async def search_ids(self, model: str, domain: Domain) -> list[int]:
        """Ids of the records matching a domain (via search_read)."""
        records = await self.search_read(model, domain, ["id"])
        return [r["id"] for r in records if isinstance(r.get("id"), int)]

    async def list_companies(self) -> list[Company]:
        """Get the company directory.

        Fetched once per client lifetime: legal entities change rarely and a
        restart refreshes the list.

        Returns:
            List of Company sorted by id.
        """
        if self._companies is not None:
            return self._companies

        async with self._companies_lock:
            if self._companies is None:
                records = await self.search_read(
                    "res.company", [], ["id", "name"], order="id asc"
                )
                self._companies = [
                    Company(id=r["id"], name=str(r.get("name") or ""))
                    for r in records
                ]
                logger.info(f"Loaded {len(self._companies)} companies from Odoo")
        return self._companies
