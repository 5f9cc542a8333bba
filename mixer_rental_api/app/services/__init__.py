"""
Service layer.

Each service encapsulates the business logic of one domain and talks to
SQLite directly, keeping API handlers free of SQL.
"""
