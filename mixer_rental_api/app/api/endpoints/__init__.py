"""
Endpoint modules.

Each module defines an ``APIRouter`` for one domain (machines,
customers, quotations…).  The routers are aggregated in
``api/router.py`` and included in the application.
"""
