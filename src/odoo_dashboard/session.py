"""Odoo session management with lazy authentication and stale-session replay.

Odoo's XML-RPC API identifies a caller by the numeric user id (uid) returned
by ``common.authenticate``. The session manager holds that uid, obtains it on
first use and renews it when the transport reports a poisoned session.
"""

import asyncio
import logging
import random
from typing import Any

from odoo_dashboard.exceptions import (
    AuthenticationError,
    OdooError,
    PoisonedSessionError,
)
from odoo_dashboard.transport import XmlRpcTransport

logger = logging.getLogger(__name__)


class SessionManager:
    """Authenticated access to ``object.execute_kw``.

    States:
    - Unauthenticated: ``uid`` is None. The next call authenticates.
    - Authenticated: ``uid`` holds the id returned by Odoo.

    A call failing with PoisonedSessionError drops the uid, waits a random
    jitter, re-authenticates and is replayed exactly once.
    """

    DEFAULT_RETRY_JITTER = (0.2, 1.0)  # seconds

    def __init__(
        self,
        transport: XmlRpcTransport,
        database: str,
        username: str,
        api_key: str,
        retry_jitter: tuple[float, float] = DEFAULT_RETRY_JITTER,
    ) -> None:
        """Initialize the session manager.

        Args:
            transport: Transport used for both endpoints.
            database: Odoo database name.
            username: Service account login.
            api_key: Service account API key.
            retry_jitter: (min, max) seconds to wait before a replay.
        """
        self.transport = transport
        self.database = database
        self.username = username
        self._api_key = api_key
        self.retry_jitter = retry_jitter
        self.uid: int | None = None
        # Bumped on every successful authentication so that a late failure
        # from an older session does not discard a newer one.
        self._generation = 0
        self._auth_lock = asyncio.Lock()
        self.authentication_count = 0

    @property
    def is_authenticated(self) -> bool:
        return self.uid is not None

    async def authenticate(self) -> int:
        """Authenticate against Odoo and store the uid.

        Returns:
            The uid.

        Raises:
            AuthenticationError: If Odoo rejects the credentials or cannot be
                reached.
        """
        try:
            uid = await self.transport.call(
                "common",
                "authenticate",
                (self.database, self.username, self._api_key, {}),
            )
        except OdooError as e:
            logger.error(f"Authentication request failed: {e.message}")
            raise AuthenticationError(
                f"Autenticación con Odoo fallida: {e.message}"
            ) from e

        if not uid or not isinstance(uid, int):
            logger.error(f"Odoo rejected credentials for {self.username}@{self.database}")
            raise AuthenticationError()

        self.uid = uid
        self._generation += 1
        self.authentication_count += 1
        logger.info(f"Authenticated with Odoo as uid {uid} ({self.database})")
        return uid

    async def _ensure_session(self) -> tuple[int, int]:
        """Return the current (uid, generation), authenticating if needed."""
        if self.uid is not None:
            return self.uid, self._generation

        async with self._auth_lock:
            # Another caller may have authenticated while we waited
            if self.uid is None:
                await self.authenticate()
            return self.uid, self._generation

    def invalidate(self, generation: int | None = None) -> None:
        """Discard the session.

        Args:
            generation: If given, only discard when the session still belongs
                to this generation.
        """
        if generation is None or generation == self._generation:
            self.uid = None

    def _jitter(self) -> float:
        low, high = self.retry_jitter
        return random.uniform(low, high)

    async def _execute_kw(
        self,
        uid: int,
        model: str,
        method: str,
        args: list[Any],
        kwargs: dict[str, Any],
    ) -> Any:
        return await self.transport.call(
            "object",
            "execute_kw",
            (self.database, uid, self._api_key, model, method, args, kwargs),
        )

    async def execute(
        self,
        model: str,
        method: str,
        args: list[Any] | None = None,
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Execute a model method, authenticating on demand.

        Args:
            model: Odoo model name (e.g., "account.move.line").
            method: Model method (e.g., "read_group").
            args: Positional arguments of the method.
            kwargs: Keyword arguments of the method.

        Returns:
            The method result.

        Raises:
            AuthenticationError: If (re-)authentication fails.
            PoisonedSessionError: If the replay is poisoned too.
            OdooError: Any other transport or fault error, unretried.
        """
        args = args if args is not None else []
        kwargs = kwargs if kwargs is not None else {}

        uid, generation = await self._ensure_session()
        try:
            return await self._execute_kw(uid, model, method, args, kwargs)
        except PoisonedSessionError:
            wait_time = self._jitter()
            logger.warning(
                f"Odoo returned HTML for {model}.{method}, renewing session "
                f"and retrying in {wait_time:.2f}s"
            )
            self.invalidate(generation)
            await asyncio.sleep(wait_time)

        uid, _ = await self._ensure_session()
        return await self._execute_kw(uid, model, method, args, kwargs)
