"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: DB session, repositories, ORM operations
- Redis: per-merchant sync locks

No business logic in stores - that belongs in services.
"""
