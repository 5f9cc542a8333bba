"""
Pydantic models for request and response payloads.

Each module groups the schemas of one business area.  ``*Create``
models describe POST bodies, ``*Update`` models have every field
optional for partial updates, and ``*Read`` models describe rows
returned to clients.
"""
