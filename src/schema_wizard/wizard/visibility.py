"""Visibility resolver: may a step be shown for the current state?

Pure functions of (step index, steps, schema, FK context, completed ids);
nothing is cached, callers re-evaluate on every render.

Rules, first match wins:

1. Step 0 is always visible.
2. ``table`` step with foreign keys: every referenced parent has an id in
   the context. Without foreign keys: some other table declares a ``many``
   relationship whose ``parentTable`` is this table, and that other table
   has an id in the context.
3. Business-key ``section`` step: visible for the root table, otherwise
   gated on its table's foreign-key parents like rule 2.
4. Other ``section`` steps: visible once their table's business-key step
   is completed.

``is_displayed`` adds the "already reached" signal: any step at or before
the current index is shown regardless of the rules.
"""

from collections.abc import Collection, Mapping, Sequence

from schema_wizard.schema.models import RelationshipKind, SchemaConfig
from schema_wizard.wizard.planner import Step, StepKind


def _parents_resolved(table: str, schema: SchemaConfig, fk_context: Mapping[str, int]) -> bool:
    meta = schema.table(table)
    if meta is None:
        return False
    return all(parent in fk_context for parent in meta.parent_tables)


def _referenced_by_selected_child(
    table: str, schema: SchemaConfig, fk_context: Mapping[str, int]
) -> bool:
    for other_name, other in schema.tables.items():
        if other_name == table or other_name not in fk_context:
            continue
        for rel in other.relationships.values():
            if rel.kind is RelationshipKind.MANY and rel.parent_table == table:
                return True
    return False


def business_key_step(table: str, steps: Sequence[Step]) -> Step | None:
    """The step that gates ``table``'s other sections.

    That is the section flagged as business-key section, else the first
    section step of the table.
    """
    first: Step | None = None
    for step in steps:
        if step.table != table or step.kind is not StepKind.SECTION:
            continue
        if step.requires_business_key:
            return step
        if first is None:
            first = step
    return first


def is_visible(
    step_index: int,
    steps: Sequence[Step],
    schema: SchemaConfig,
    fk_context: Mapping[str, int],
    completed_steps: Collection[str],
) -> bool:
    """Whether the step at ``step_index`` may be shown."""
    if step_index < 0 or step_index >= len(steps):
        return False
    if step_index == 0:
        return True

    step = steps[step_index]
    meta = schema.table(step.table)
    if meta is None:
        return False

    if step.kind is StepKind.TABLE:
        if meta.foreign_keys:
            return _parents_resolved(step.table, schema, fk_context)
        return _referenced_by_selected_child(step.table, schema, fk_context)

    if step.requires_business_key:
        if step.table == schema.root_table:
            return True
        return _parents_resolved(step.table, schema, fk_context)

    gate = business_key_step(step.table, steps)
    if gate is None or gate.id == step.id:
        return _parents_resolved(step.table, schema, fk_context)
    return gate.id in completed_steps


def is_reached(step_index: int, current_step_index: int) -> bool:
    return 0 <= step_index <= current_step_index


def is_displayed(
    step_index: int,
    current_step_index: int,
    steps: Sequence[Step],
    schema: SchemaConfig,
    fk_context: Mapping[str, int],
    completed_steps: Collection[str],
) -> bool:
    """Visible by the rules, or already reached."""
    return is_reached(step_index, current_step_index) or is_visible(
        step_index, steps, schema, fk_context, completed_steps
    )
