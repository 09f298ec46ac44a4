"""Relationship resolver: which parent scopes a table's lookups.

Two cases, checked in order:

1. The table itself declares a ``many`` relationship: it is the child,
   and that relationship's parent scopes it.
2. Another table declares a ``many`` relationship naming this table as
   ``childTable`` and the declared parent already has an id in the FK
   context: the other table scopes it (e.g. a class table offered only for
   the record that uses it).

No match means lookups run against the whole table.
"""

import logging
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from schema_wizard.schema.models import RelationshipKind, SchemaConfig

logger = logging.getLogger(__name__)


class ScopingParent(BaseModel):
    """The table whose resolved id constrains another table's rows.

    ``filter_column`` is the column of the scoped table compared with the
    parent's id, when the relationship names one.
    """

    model_config = ConfigDict(frozen=True)

    parent_table: str
    parent_key: str | None = None
    filter_column: str | None = None


def find_scoping_parent(
    table: str,
    schema: SchemaConfig,
    fk_context: Mapping[str, int],
) -> ScopingParent | None:
    """Resolve the scoping parent of ``table``, or None for unscoped lookups.

    Relationships that name tables missing from the schema are ignored.
    """
    meta = schema.table(table)
    if meta is None:
        return None

    for rel in meta.relationships.values():
        if rel.kind is RelationshipKind.MANY and rel.parent_table in schema.tables:
            logger.debug(f"{table} scoped by own relationship to {rel.parent_table}")
            return ScopingParent(
                parent_table=rel.parent_table,
                parent_key=rel.parent_key,
                filter_column=rel.child_key,
            )

    for other_name, other in schema.tables.items():
        if other_name == table:
            continue
        for rel in other.relationships.values():
            if rel.kind is not RelationshipKind.MANY or rel.child_table != table:
                continue
            declared_parent = rel.parent_table or other_name
            if declared_parent in schema.tables and declared_parent in fk_context:
                logger.debug(f"{table} scoped by {other_name} via {rel.child_key}")
                return ScopingParent(
                    parent_table=other_name,
                    parent_key=rel.child_key,
                    filter_column=rel.child_key,
                )

    return None


def scope_id(scope: ScopingParent | None, fk_context: Mapping[str, int]) -> int | None:
    """Id to filter by for ``scope``; None when the parent is not resolved yet."""
    if scope is None:
        return None
    return fk_context.get(scope.parent_table)
