"""Live column introspection via ``information_schema`` (async).

Only what the comparator needs: table name to column names for one
database schema. Runs over the adapter's SQLAlchemy ``AsyncEngine``.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine


class SchemaIntrospector:
    """Introspects table columns of a PostgreSQL database.

    Usage:
        async with SchemaIntrospector(engine) as introspector:
            columns = await introspector.get_column_names()
    """

    # Tables to exclude from introspection (system tables)
    EXCLUDED_TABLES = {
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        self._conn = await self._engine.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def get_column_names(self, schema_name: str = "public") -> dict[str, set[str]]:
        """Get column names for all base tables.

        Args:
            schema_name: PostgreSQL schema to query (default: public)

        Returns:
            Dict mapping table name to set of column names
        """
        if self._conn is None:
            raise RuntimeError("Introspector not connected. Use async with statement.")

        query = text("""
            SELECT c.table_name, c.column_name
            FROM information_schema.columns c
            JOIN information_schema.tables t
              ON t.table_schema = c.table_schema AND t.table_name = c.table_name
            WHERE c.table_schema = :schema AND t.table_type = 'BASE TABLE'
            ORDER BY c.table_name, c.ordinal_position
        """)
        result = await self._conn.execute(query, {"schema": schema_name})

        columns: dict[str, set[str]] = {}
        for table_name, column_name in result.fetchall():
            if table_name in self.EXCLUDED_TABLES:
                continue
            columns.setdefault(table_name, set()).add(column_name)
        return columns
