"""
Application package initializer.

This package contains the main entrypoint for the API and all of its
submodules.  Each business area (machines, customers, quotations,
service records, customer queries) has its own schema module, service
class and router in ``api/endpoints``.  Admin routes are grouped under
``/api/admin`` and the public website routes under ``/api/customer``.
"""

from .main import app  # noqa: F401
