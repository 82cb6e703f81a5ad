"""
Todo Service package for the Todo Access Layer.

This package serves owner-scoped todo lists and their items. It provides:

- app.main: API surface for lists, items, and health.
- app.cache: Per-owner Redis hash cache with cache-aside reads and
  mutation-driven invalidation.
- app.persistence: PostgreSQL source of truth.
- app.auth: Bearer token identity.

Guidelines:
- The service is stateless; rely on external cache/DB.
- A cache failure fails the request; it never serves stale or absent data.
- Every mutation invalidates the cache after the database write commits.
"""
