"""Configuration and logging setup for the Odoo dashboard service.

Settings are read from environment variables, optionally loaded from a
``.env`` file in the working directory.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_CACHE_TTL = 30.0  # seconds

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

REQUIRED_VARIABLES = ("ODOO_URL", "ODOO_DB", "ODOO_USER", "ODOO_API_KEY")


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated string into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class OdooSettings:
    """Connection and runtime settings.

    Args:
        url: Base URL of the Odoo server (e.g., "https://erp.example.com").
        database: Odoo database name.
        username: Service account login.
        api_key: API key (or password) of the service account.
        timeout: Timeout in seconds for a single XML-RPC call.
        cache_ttl: Seconds a cached read result stays fresh.
        allowed_companies: Company aliases the chat tools may query
            (empty means unrestricted).
        log_level: Root logging level name.
        host: Bind address of the HTTP server.
        port: Port of the HTTP server.
    """

    url: str
    database: str
    username: str
    api_key: str = field(repr=False)
    timeout: float = DEFAULT_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    allowed_companies: list[str] = field(default_factory=list)
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "OdooSettings":
        """Build settings from the environment (and ``.env`` if present).

        Returns:
            OdooSettings instance.

        Raises:
            ValueError: If a required variable is missing.
        """
        load_dotenv()

        missing = [name for name in REQUIRED_VARIABLES if not os.getenv(name)]
        if missing:
            raise ValueError(
                f"Missing {', '.join(missing)}. Please set them in .env file."
            )

        return cls(
            url=os.environ["ODOO_URL"].rstrip("/"),
            database=os.environ["ODOO_DB"],
            username=os.environ["ODOO_USER"],
            api_key=os.environ["ODOO_API_KEY"],
            timeout=float(os.getenv("ODOO_TIMEOUT", DEFAULT_TIMEOUT)),
            cache_ttl=float(os.getenv("ODOO_CACHE_TTL", DEFAULT_CACHE_TTL)),
            allowed_companies=split_csv(os.getenv("ODOO_ALLOWED_COMPANIES")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("DASHBOARD_HOST", "127.0.0.1"),
            port=int(os.getenv("DASHBOARD_PORT", "8000")),
        )


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging to stderr.

    Stdout must stay clean: the MCP stdio transport writes protocol frames
    to it.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
