"""Entry point for running the dashboard HTTP API.

Run with: python -m odoo_dashboard
Or use the console script: odoo-dashboard
"""

import uvicorn

from odoo_dashboard.api import create_app
from odoo_dashboard.config import OdooSettings, setup_logging


def main() -> None:
    """Serve the API with uvicorn on DASHBOARD_HOST:DASHBOARD_PORT."""
    settings = OdooSettings.from_env()
    setup_logging(settings.log_level)
    app = create_app()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
