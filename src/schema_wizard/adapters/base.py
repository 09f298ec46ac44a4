"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol the record store runs on. All
methods are ``async def``.

Usage:
    from schema_wizard.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.select("lot", "id, code", filters={"code": "L-1"})
        row = await client.insert("lot", {"code": "L-2"})
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Row-level access to the relational store.

    Table and column names come from the schema document, never from user
    input; values are always bound as parameters.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names, or ``"*"``.
            filters: Optional dict of field=value filters (all must match via AND).
            order_by: Optional column name to sort by.

        Returns:
            List of dicts, one per row.  Empty list if no matches.
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert row into table and return the created row (including its id).

        Raises:
            Exception: If duplicate key or constraint violation.
        """
        ...

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        """Update rows in table and return the first updated row.

        Raises:
            Exception: If no rows match filters.
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
