"""Unit tests for OpsConsole web route modules.

One test file per route module:
    tests/unit/web/
    ├── test_routes_orders.py    # Order change detector routes
    ├── test_routes_picks.py     # Pick number allocation routes
    └── test_routes_products.py  # Catalog validation routes

Testing pattern:
    - Mount the router on a bare FastAPI app and use TestClient
    - Put long-lived objects on app.state directly
    - Patch get_session / CatalogRepository in the route module
"""
