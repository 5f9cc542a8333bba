"""
Top‑level routers.

``admin_router`` is mounted under ``/api/admin``.  Its authentication
routes handle tokens themselves (login must stay public); every other
admin domain is included behind the ``get_current_user`` dependency.
``customer_router`` is mounted under ``/api/customer`` and is public.
"""

from fastapi import APIRouter, Depends

from mixer_rental_api.app.core.responses import ok
from mixer_rental_api.app.core.security import get_current_user

from .endpoints import (
    auth,
    company,
    customer_portal,
    customers,
    dashboard,
    machines,
    queries,
    quotations,
    services,
    terms,
)


admin_router = APIRouter()

admin_router.include_router(auth.router, prefix="/auth", tags=["auth"])

protected = [Depends(get_current_user)]
admin_router.include_router(machines.router, prefix="/machines", tags=["machines"], dependencies=protected)
admin_router.include_router(customers.router, prefix="/customers", tags=["customers"], dependencies=protected)
admin_router.include_router(quotations.router, prefix="/quotations", tags=["quotations"], dependencies=protected)
admin_router.include_router(services.router, prefix="/services", tags=["services"], dependencies=protected)
admin_router.include_router(queries.router, prefix="/queries", tags=["queries"], dependencies=protected)
admin_router.include_router(company.router, prefix="/company", tags=["company"], dependencies=protected)
admin_router.include_router(terms.router, prefix="/terms", tags=["terms"], dependencies=protected)
admin_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"], dependencies=protected)


@admin_router.get("/health", tags=["health"])
async def admin_health() -> dict:
    return ok({"status": "ok"}, "Admin API is running")


customer_router = APIRouter()
customer_router.include_router(customer_portal.router, tags=["customer"])
