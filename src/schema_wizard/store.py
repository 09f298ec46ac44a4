"""Record store: the read/write surface the wizard core consumes.

Wraps a ``DatabaseClient`` with schema-aware operations: scoped row
fetches, business-key suggestions, business-key lookups, and the
business-key upsert every step save goes through. Only tables and
columns named in the schema document reach SQL.

Usage:
    store = RecordStore(adapter, schema)
    options = await store.fetch_business_key_options("lot")
    lot_id = await store.write_row("lot", {"code": "L-7", "name": "Spring lot"})
"""

import logging
from typing import Any

from pydantic import BaseModel

from schema_wizard.adapters.base import DatabaseClient
from schema_wizard.schema.models import RelationshipKind, SchemaConfig, TableMeta

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================


class StoreError(Exception):
    """Base class for read/write failures surfaced to a section."""

    pass


class UnknownTableError(StoreError):
    """Raised when a table is not declared in the schema document."""

    pass


class RecordNotFoundError(StoreError):
    """Raised when a business-key lookup matches no row."""

    pass


class WriteError(StoreError):
    """Raised when inserting or updating a row fails."""

    pass


# ============================================================================
# Result Models
# ============================================================================


class KeyOption(BaseModel):
    """A business-key suggestion: the row id and its first business-key value."""

    id: int
    value: Any


# ============================================================================
# Store
# ============================================================================


class RecordStore:
    """Schema-aware CRUD over a ``DatabaseClient``.

    Args:
        client: Adapter implementing ``DatabaseClient``.
        schema: Schema document; defines which tables/columns are reachable.
        id_column: Surrogate primary key column shared by every table.
    """

    def __init__(
        self,
        client: DatabaseClient,
        schema: SchemaConfig,
        id_column: str = "id",
    ) -> None:
        self._client = client
        self._schema = schema
        self._id_column = id_column

    @property
    def id_column(self) -> str:
        return self._id_column

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _meta(self, table: str) -> TableMeta:
        meta = self._schema.table(table)
        if meta is None:
            raise UnknownTableError(f"Table '{table}' is not in the schema")
        return meta

    def _writable(self, meta: TableMeta, record: dict) -> dict:
        """Drop the surrogate id and anything the table does not declare."""
        allowed = set(meta.columns) | set(meta.foreign_keys)
        return {
            k: v
            for k, v in record.items()
            if k != self._id_column and (not allowed or k in allowed)
        }

    def scope_column(self, table: str, parent_table: str) -> str:
        """Column of ``table`` holding the id of a ``parent_table`` row.

        Looks at ``foreignKeys`` first, then at ``many`` relationships
        declared on ``table``.

        Raises:
            StoreError: If nothing links the two tables.
        """
        meta = self._meta(table)
        for column, referenced in meta.foreign_keys.items():
            if referenced == parent_table:
                return column
        for rel in meta.relationships.values():
            if (
                rel.kind is RelationshipKind.MANY
                and rel.parent_table == parent_table
                and rel.child_key
            ):
                return rel.child_key
        raise StoreError(f"No column links '{table}' to '{parent_table}'")

    async def _select(self, table: str, columns: str, filters: dict | None = None,
                      order_by: str | None = None) -> list[dict]:
        try:
            return await self._client.select(table, columns, filters=filters, order_by=order_by)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to load rows from '{table}': {e}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_rows(
        self,
        table: str,
        scope_parent_table: str | None = None,
        scope_parent_id: int | None = None,
        scope_column: str | None = None,
    ) -> list[dict]:
        """All columns plus surrogate id; filtered when a scope is given.

        Args:
            table: Table to read.
            scope_parent_table: Parent whose id constrains the rows.
            scope_parent_id: Id of the selected parent row.
            scope_column: Column of ``table`` to filter on; derived from
                the schema when omitted.
        """
        self._meta(table)
        filters: dict[str, Any] | None = None
        if scope_parent_table is not None and scope_parent_id is not None:
            column = scope_column or self.scope_column(table, scope_parent_table)
            filters = {column: scope_parent_id}
        return await self._select(table, "*", filters=filters, order_by=self._id_column)

    async def _key_options(self, table: str, filters: dict | None) -> list[KeyOption]:
        meta = self._meta(table)
        if not meta.business_keys:
            return []
        key = meta.business_keys[0]
        rows = await self._select(table, f"{self._id_column}, {key}", filters=filters,
                                  order_by=key)

        options: list[KeyOption] = []
        seen: set[Any] = set()
        for row in rows:
            value = row.get(key)
            if value is None or value in seen:
                continue
            seen.add(value)
            options.append(KeyOption(id=row[self._id_column], value=value))
        return options

    async def fetch_business_key_options(self, table: str) -> list[KeyOption]:
        """Distinct non-null values of the table's first business key."""
        return await self._key_options(table, None)

    async def fetch_scoped_business_key_options(
        self,
        table: str,
        parent_table: str,
        parent_id: int,
        key_column: str | None = None,
    ) -> list[KeyOption]:
        """Business-key suggestions limited to rows that reference ``parent_id``."""
        column = key_column or self.scope_column(table, parent_table)
        return await self._key_options(table, {column: parent_id})

    async def fetch_record_by_business_key(
        self, table: str, key_column: str, key_value: Any
    ) -> dict:
        """Full row whose ``key_column`` equals ``key_value``.

        Raises:
            RecordNotFoundError: If no row matches.
        """
        rows = await self._select(table, "*", filters={key_column: key_value})
        if not rows:
            raise RecordNotFoundError(
                f"No '{table}' row with {key_column} = {key_value!r}"
            )
        return rows[0]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write_row(self, table: str, record: dict) -> int:
        """Upsert ``record`` and return its surrogate id.

        When every business key of ``table`` has a value in ``record`` and a
        row with those values exists, that row is updated; otherwise a new
        row is inserted.

        Raises:
            UnknownTableError: If ``table`` is not in the schema.
            WriteError: If the database rejects the write.
        """
        meta = self._meta(table)
        data = self._writable(meta, record)
        keys = meta.business_keys

        try:
            if keys and all(data.get(k) not in (None, "") for k in keys):
                existing = await self._client.select(
                    table, self._id_column, filters={k: data[k] for k in keys}
                )
                if existing:
                    row_id = existing[0][self._id_column]
                    await self._client.update(table, data, {self._id_column: row_id})
                    logger.info(f"Updated {table} #{row_id} by business key")
                    return int(row_id)

            row = await self._client.insert(table, data)
        except Exception as e:
            raise WriteError(f"Failed to save '{table}': {e}") from e

        logger.info(f"Inserted {table} #{row[self._id_column]}")
        return int(row[self._id_column])
