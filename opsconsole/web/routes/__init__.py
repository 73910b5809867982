"""OpsConsole web route modules.

Each module exports a `router` object (APIRouter instance); the app in
opsconsole.web.app includes them.

Usage:
    from opsconsole.web.routes import picks
    app.include_router(picks.router)
"""

from opsconsole.web.routes import health, orders, picks, products

__all__ = [
    "health",
    "orders",
    "picks",
    "products",
]
