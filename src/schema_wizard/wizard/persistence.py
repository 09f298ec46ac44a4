"""Section and repeated-row persistence.

Saving a step goes through a ``SectionFlow``:

- A simple section writes one record of the step's table. Foreign-key
  columns always take their value from the FK context, whatever the form
  sent. Without a nested repeat block the flow completes at once.
- With a nested repeat block, the parent id is merged into the FK context
  immediately so child rows can reference it, and a ``RepeatRows`` block
  is pushed on the flow's stack. The flow completes when the stack is
  empty again.
- A repeat section at step level pushes its block straight away.

Blocks complete on behalf of their owner (the table one level up the
owning chain), never on behalf of the repeat table. A failed write leaves
the FK context, saved rows and pending forms untouched.
"""

import logging
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from schema_wizard.schema.models import SchemaConfig
from schema_wizard.store import RecordStore, StoreError
from schema_wizard.ui.models import FieldSpec, RepeatSection, SectionSpec, SimpleSection
from schema_wizard.wizard.context import FkContext
from schema_wizard.wizard.relationships import find_scoping_parent, scope_id

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    COMPLETED = "completed"
    AWAITING_ROWS = "awaiting_rows"
    FAILED = "failed"


class SaveOutcome(BaseModel):
    """Result of a section, row or block save.

    ``table``/``surrogate_key`` name the record the step completes with
    (for ``COMPLETED``) or the record just written (``AWAITING_ROWS`` and
    row saves).
    """

    status: SaveStatus
    table: str | None = None
    surrogate_key: int | None = None
    error: str | None = None
    field_errors: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is not SaveStatus.FAILED

    @classmethod
    def failed(cls, error: str, field_errors: dict[str, str] | None = None) -> "SaveOutcome":
        return cls(status=SaveStatus.FAILED, error=error, field_errors=field_errors or {})


# ============================================================================
# Helpers
# ============================================================================


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_required_fields(fields: Sequence[FieldSpec], data: Mapping[str, Any]) -> dict[str, str]:
    """Per-field messages for required fields left empty.

    Example:
        >>> missing_required_fields([FieldSpec(name="code", label="Code", required=True)], {})
        {'code': 'Code is required'}
    """
    return {
        field.name: f"{field.display_label} is required"
        for field in fields
        if field.required and _is_blank(data.get(field.name))
    }


def resolve_foreign_keys(
    table: str,
    data: Mapping[str, Any],
    schema: SchemaConfig,
    fk_context: Mapping[str, int],
) -> dict[str, Any]:
    """Copy ``data`` with every foreign-key column set from the FK context.

    A parent without an id in the context yields None for its column.
    """
    record = dict(data)
    meta = schema.table(table)
    if meta is None:
        return record
    for column, parent in meta.foreign_keys.items():
        record[column] = fk_context.get(parent)
    return record


# ============================================================================
# Repeated rows
# ============================================================================


class RepeatRows:
    """Saved rows plus unsaved row forms of one repeat block.

    Args:
        spec: The repeat section.
        owner_table: Table this block completes on behalf of.
        store: Record store.
        schema: Schema document.
        fk_context: Shared FK context.
        owner_key: Id of the owner record, when known at creation time.
    """

    def __init__(
        self,
        spec: RepeatSection,
        owner_table: str,
        store: RecordStore,
        schema: SchemaConfig,
        fk_context: FkContext,
        owner_key: int | None = None,
    ) -> None:
        self.spec = spec
        self.owner_table = owner_table
        self.owner_key = owner_key
        self.saved_rows: list[dict] = []
        self.pending: dict[int, dict[str, Any]] = {}
        self.error: str | None = None
        self._store = store
        self._schema = schema
        self._context = fk_context
        self._next_form_id = 1

    @property
    def table(self) -> str:
        return self.spec.table

    @property
    def can_complete(self) -> bool:
        return len(self.saved_rows) >= max(1, self.spec.min_rows)

    def _owner_scope(self) -> tuple[str, int] | None:
        owner_key = self.owner_key
        if owner_key is None:
            owner_key = self._context.get(self.owner_table)
        if owner_key is None or self.owner_table == self.table:
            return None
        try:
            return self._store.scope_column(self.table, self.owner_table), owner_key
        except StoreError:
            return None

    async def load(self, show_all: bool = False) -> list[dict]:
        """Fetch existing rows, scoped to the current scoping parent.

        Without a resolvable scoping parent the rows are filtered on the
        column linking them to the owner record, when there is one.
        """
        scope = None if show_all else find_scoping_parent(self.table, self._schema, self._context)
        parent_id = scope_id(scope, self._context)
        owner_scope = None if show_all else self._owner_scope()
        try:
            if scope is not None and parent_id is not None:
                rows = await self._store.fetch_rows(
                    self.table, scope.parent_table, parent_id, scope.filter_column
                )
            elif owner_scope is not None:
                column, owner_key = owner_scope
                rows = await self._store.fetch_rows(
                    self.table, self.owner_table, owner_key, column
                )
            else:
                rows = await self._store.fetch_rows(self.table)
        except StoreError as e:
            self.error = str(e)
            return self.saved_rows
        self.error = None
        self.saved_rows = rows
        return rows

    def add_form(self, initial: Mapping[str, Any] | None = None) -> int:
        form_id = self._next_form_id
        self._next_form_id += 1
        self.pending[form_id] = dict(initial or {})
        return form_id

    def update_form(self, form_id: int, values: Mapping[str, Any]) -> None:
        self.pending[form_id].update(values)

    def discard_form(self, form_id: int) -> None:
        self.pending.pop(form_id, None)

    async def save_row(self, form_id: int) -> SaveOutcome:
        """Persist one pending form; other pending forms are untouched."""
        if form_id not in self.pending:
            return SaveOutcome.failed(f"No pending row form {form_id}")
        data = self.pending[form_id]

        field_errors = missing_required_fields(self.spec.row_fields, data)
        if field_errors:
            return SaveOutcome.failed("Fill in the required fields", field_errors)

        record = resolve_foreign_keys(self.table, data, self._schema, self._context)
        try:
            row_id = await self._store.write_row(self.table, record)
        except StoreError as e:
            self.error = str(e)
            logger.warning(f"Row save failed for {self.table}: {e}")
            return SaveOutcome.failed(str(e))

        self.error = None
        self.saved_rows.append({**record, self._store.id_column: row_id})
        del self.pending[form_id]
        return SaveOutcome(status=SaveStatus.AWAITING_ROWS, table=self.table, surrogate_key=row_id)

    def complete(self) -> SaveOutcome:
        """Close the block; completes on behalf of the owner record."""
        if not self.can_complete:
            return SaveOutcome.failed("Add at least one row before completing")

        owner_key = self.owner_key
        if owner_key is None:
            owner_key = self._context.get(self.owner_table)
        if owner_key is None and self.table == self.owner_table:
            owner_key = self.saved_rows[-1][self._store.id_column]
        if owner_key is None:
            return SaveOutcome.failed(f"Select or save a {self.owner_table} record first")

        return SaveOutcome(
            status=SaveStatus.COMPLETED, table=self.owner_table, surrogate_key=owner_key
        )


# ============================================================================
# Section flow
# ============================================================================


class SectionFlow:
    """Saves one step's section and every repeat block hanging off it.

    Open blocks live on an explicit stack; the innermost block is always on
    top, so completion runs child first and ends with the step's own table.
    """

    def __init__(
        self,
        table: str,
        section: SectionSpec,
        store: RecordStore,
        schema: SchemaConfig,
        fk_context: FkContext,
    ) -> None:
        self.table = table
        self.section = section
        self.blocks: list[RepeatRows] = []
        self.error: str | None = None
        self.parent_key: int | None = None
        self._store = store
        self._schema = schema
        self._context = fk_context

    @property
    def active_block(self) -> RepeatRows | None:
        return self.blocks[-1] if self.blocks else None

    def _push(self, spec: RepeatSection, owner_table: str, owner_key: int | None) -> RepeatRows:
        block = RepeatRows(spec, owner_table, self._store, self._schema, self._context, owner_key)
        self.blocks.append(block)
        logger.debug(f"Opened {spec.table} rows for {owner_table} (depth {len(self.blocks)})")
        return block

    async def start(self) -> RepeatRows | None:
        """Open the step-level repeat block, if the section is one."""
        if isinstance(self.section, RepeatSection) and not self.blocks:
            block = self._push(self.section, self.table, self._context.get(self.table))
            await block.load()
            return block
        return self.active_block

    async def save(self, form_data: Mapping[str, Any], nested_complete: bool = False) -> SaveOutcome:
        """Write the simple section's record.

        Returns ``COMPLETED`` with ``(table, id)``, or ``AWAITING_ROWS`` when a
        nested repeat block has been opened and must be completed first.
        Re-saving while that block is still open rewrites the record and keeps
        the block, as long as the record id did not change.
        """
        if not isinstance(self.section, SimpleSection):
            return SaveOutcome.failed("This section only takes repeated rows")

        field_errors = missing_required_fields(self.section.fields, form_data)
        if field_errors:
            self.error = "Fill in the required fields"
            return SaveOutcome.failed(self.error, field_errors)

        record = resolve_foreign_keys(self.table, form_data, self._schema, self._context)
        try:
            pk = await self._store.write_row(self.table, record)
        except StoreError as e:
            self.error = str(e)
            logger.warning(f"Section save failed for {self.table}: {e}")
            return SaveOutcome.failed(str(e))

        self.error = None
        self.parent_key = pk
        nested = self.section.nested
        if nested is None or nested_complete:
            return SaveOutcome(status=SaveStatus.COMPLETED, table=self.table, surrogate_key=pk)

        self._context.merge(self.table, pk)
        if self.blocks and self.blocks[0].owner_key == pk:
            return SaveOutcome(status=SaveStatus.AWAITING_ROWS, table=self.table, surrogate_key=pk)
        if self.blocks:
            logger.debug(f"Discarding {len(self.blocks)} open block(s) of {self.table}")
            self.blocks = []
        block = self._push(nested, self.table, pk)
        await block.load()
        return SaveOutcome(status=SaveStatus.AWAITING_ROWS, table=self.table, surrogate_key=pk)

    async def save_row(self, form_id: int) -> SaveOutcome:
        """Save a pending row of the innermost block.

        Repeat sections inside the row form open their own blocks, owned by
        the row just saved.
        """
        block = self.active_block
        if block is None:
            return SaveOutcome.failed("No repeated rows are open")

        outcome = await block.save_row(form_id)
        if not outcome.ok:
            return outcome

        inner = [s for s in block.spec.sections if isinstance(s, RepeatSection)]
        if inner:
            self._context.merge(block.table, outcome.surrogate_key)
            for spec in reversed(inner):
                self._push(spec, block.table, outcome.surrogate_key)
        return outcome

    def complete_block(self) -> SaveOutcome:
        """Complete the innermost block.

        Returns ``COMPLETED`` once the outermost block closes, with the
        table/id the step completes on behalf of; ``AWAITING_ROWS`` while
        enclosing blocks remain open.
        """
        block = self.active_block
        if block is None:
            return SaveOutcome.failed("No repeated rows are open")

        outcome = block.complete()
        if not outcome.ok:
            block.error = outcome.error
            return outcome

        self.blocks.pop()
        logger.debug(f"Closed {block.table} rows for {block.owner_table}")
        if self.blocks:
            return SaveOutcome(
                status=SaveStatus.AWAITING_ROWS,
                table=outcome.table,
                surrogate_key=outcome.surrogate_key,
            )
        return outcome
