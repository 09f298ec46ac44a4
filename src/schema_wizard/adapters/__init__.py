"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async PostgreSQL adapter.

Usage:
    from schema_wizard.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from schema_wizard.adapters.base import DatabaseClient
from schema_wizard.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "AsyncPostgresAdapter",
]
