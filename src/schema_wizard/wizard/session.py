"""Wizard session: the surface a rendering layer drives.

A ``WizardSession`` owns the FK context, the step plan and the progress
state machine for one interactive session, and exposes:

- ``steps`` and ``views()`` (visibility, reached, completed, disabled per step)
- the progress state
- event handlers ``on_step_section_saved``, ``on_go_to_step``, ``on_go_back``,
  ``on_reset``
- async helpers that run section saves, record selection and lookups
  through the record store

Usage:
    session = WizardSession(schema, ui, store)
    outcome = await session.save_section("lot_0", {"code": "L-7"})
    for view in session.views():
        print(view.step.title, view.visible, view.disabled)
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from schema_wizard.schema.models import SchemaConfig
from schema_wizard.store import KeyOption, RecordStore, StoreError
from schema_wizard.ui.models import ScreenSpec, SectionSpec, UiConfig
from schema_wizard.wizard.context import FkContext
from schema_wizard.wizard.persistence import SaveOutcome, SaveStatus, SectionFlow
from schema_wizard.wizard.planner import Step, StepPlan, plan_steps
from schema_wizard.wizard.progress import Phase, ProgressState, TransitionResult, WizardProgress
from schema_wizard.wizard.relationships import ScopingParent, find_scoping_parent, scope_id
from schema_wizard.wizard.visibility import is_reached, is_visible

logger = logging.getLogger(__name__)


class StepView(BaseModel):
    """Everything a renderer needs to draw one step."""

    model_config = ConfigDict(frozen=True)

    index: int
    step: Step
    visible: bool
    reached: bool
    completed: bool
    current: bool
    editing: bool
    disabled: bool

    @property
    def displayed(self) -> bool:
        return self.visible or self.reached


class SummaryEntry(BaseModel):
    table: str
    id: int
    label: str


class WizardSummary(BaseModel):
    """Final FK context rendered in the terminal state."""

    context: dict[str, int] = Field(default_factory=dict)
    entries: list[SummaryEntry] = Field(default_factory=list)


class WizardSession:
    """One interactive pass through the wizard.

    Args:
        schema: Schema document.
        ui: UI document.
        store: Record store used for every read and write.
    """

    def __init__(self, schema: SchemaConfig, ui: UiConfig, store: RecordStore) -> None:
        self.schema = schema
        self.ui = ui
        self.store = store
        self.plan: StepPlan = plan_steps(schema, ui)
        self.fk_context = FkContext()
        self.progress = WizardProgress(self.plan.steps, self.fk_context)
        self.section_errors: dict[str, str] = {}
        self.saved_values: dict[str, dict[str, Any]] = {}
        self._flows: dict[str, SectionFlow] = {}

    # ------------------------------------------------------------------
    # Read-side surface
    # ------------------------------------------------------------------

    @property
    def steps(self) -> list[Step]:
        return self.plan.steps

    @property
    def state(self) -> ProgressState:
        return self.progress.state

    @property
    def phase(self) -> Phase:
        return self.progress.phase

    @property
    def current_step(self) -> Step | None:
        return self.progress.current_step

    def step(self, step_id: str) -> Step | None:
        index = self.plan.index_of(step_id)
        return self.steps[index] if index is not None else None

    def screen_for(self, step: Step) -> ScreenSpec:
        return self.ui.screens[step.screen_index]

    def section_for(self, step: Step) -> SectionSpec | None:
        sections = self.screen_for(step).sections
        return sections[step.section_index] if step.section_index < len(sections) else None

    def is_visible(self, index: int) -> bool:
        return is_visible(
            index, self.steps, self.schema, self.fk_context, self.state.completed_steps
        )

    def views(self) -> list[StepView]:
        """Per-step render state, recomputed from the current state."""
        current = self.current_step
        views: list[StepView] = []
        for index, step in enumerate(self.steps):
            views.append(
                StepView(
                    index=index,
                    step=step,
                    visible=self.is_visible(index),
                    reached=is_reached(index, self.state.current_step_index),
                    completed=step.id in self.state.completed_steps,
                    current=current is not None and current.id == step.id,
                    editing=self.state.editing_step == step.id,
                    disabled=self.progress.is_disabled(step.id),
                )
            )
        return views

    def initial_values(self, step_id: str) -> dict[str, Any]:
        """Values a step's form starts from (the last saved ones, if any)."""
        return dict(self.saved_values.get(step_id, {}))

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def on_step_section_saved(self, table: str, pk: int, step_id: str) -> TransitionResult:
        result = self.progress.on_done(table, pk, step_id)
        if result.accepted:
            self.section_errors.pop(step_id, None)
            self._flows.pop(step_id, None)
        return result

    def on_go_to_step(self, step_id: str, index: int) -> TransitionResult:
        return self.progress.go_to_step(step_id, index)

    def on_go_back(self) -> TransitionResult:
        return self.progress.go_back()

    def on_reset(self, force: bool = False) -> TransitionResult:
        result = self.progress.reset(force=force)
        if result.accepted:
            self.section_errors.clear()
            self.saved_values.clear()
            self._flows.clear()
        return result

    # ------------------------------------------------------------------
    # Saves
    # ------------------------------------------------------------------

    def flow(self, step_id: str) -> SectionFlow | None:
        """The save flow of a step, created on first use."""
        if step_id in self._flows:
            return self._flows[step_id]
        step = self.step(step_id)
        section = self.section_for(step) if step is not None else None
        if step is None or section is None:
            return None
        flow = SectionFlow(step.table, section, self.store, self.schema, self.fk_context)
        self._flows[step_id] = flow
        return flow

    def _record_values(self, table: str, step_id: str, form_data: dict[str, Any]) -> dict:
        values: dict[str, Any] = {}
        for step in self.steps:
            if step.table == table and step.id != step_id:
                values.update(self.saved_values.get(step.id, {}))
        values.update(form_data)
        return values

    def _editable(self, step_id: str) -> str | None:
        current = self.current_step
        if current is None:
            return "The wizard is complete"
        if current.id != step_id:
            return f"Step '{step_id}' is not the current step"
        return None

    def _finish(self, step_id: str, outcome: SaveOutcome) -> SaveOutcome:
        if not outcome.ok:
            self.section_errors[step_id] = outcome.error or "Save failed"
            return outcome
        self.section_errors.pop(step_id, None)
        if outcome.status is SaveStatus.COMPLETED:
            self.on_step_section_saved(outcome.table, outcome.surrogate_key, step_id)
        return outcome

    async def save_section(self, step_id: str, form_data: dict[str, Any]) -> SaveOutcome:
        """Save the current step's simple section.

        Values saved by earlier sections of the same table are carried into
        the record, so every section of a multi-section screen upserts the
        same row through its business key. Saving a completed step again
        (an edit) keeps its nested rows as they are and completes at once.
        """
        problem = self._editable(step_id)
        flow = self.flow(step_id) if problem is None else None
        if flow is None:
            outcome = SaveOutcome.failed(problem or f"Unknown step '{step_id}'")
            return self._finish(step_id, outcome)

        outcome = await flow.save(
            self._record_values(flow.table, step_id, form_data),
            nested_complete=step_id in self.state.completed_steps,
        )
        if outcome.ok:
            self.saved_values[step_id] = dict(form_data)
        return self._finish(step_id, outcome)

    async def open_rows(self, step_id: str) -> SectionFlow | None:
        """Open the step-level repeat block of the current step."""
        if self._editable(step_id) is not None:
            return None
        flow = self.flow(step_id)
        if flow is not None:
            await flow.start()
        return flow

    async def save_row(self, step_id: str, form_id: int) -> SaveOutcome:
        flow = self._flows.get(step_id)
        if flow is None:
            return self._finish(step_id, SaveOutcome.failed("No repeated rows are open"))
        outcome = await flow.save_row(form_id)
        if not outcome.ok:
            self.section_errors[step_id] = outcome.error or "Save failed"
        return outcome

    def complete_rows(self, step_id: str) -> SaveOutcome:
        """Complete the innermost open block of a step."""
        flow = self._flows.get(step_id)
        if flow is None:
            return self._finish(step_id, SaveOutcome.failed("No repeated rows are open"))
        return self._finish(step_id, flow.complete_block())

    def select_record(self, step_id: str, record_id: int) -> TransitionResult:
        """Complete a step by choosing an existing row of its table."""
        problem = self._editable(step_id)
        if problem is not None:
            return TransitionResult.rejected(problem)
        step = self.step(step_id)
        return self.on_step_section_saved(step.table, record_id, step_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def scoping_parent(self, table: str) -> ScopingParent | None:
        return find_scoping_parent(table, self.schema, self.fk_context)

    async def business_key_options(self, table: str) -> list[KeyOption]:
        """Suggestions for ``table``, scoped by its resolved parent when there is one."""
        scope = self.scoping_parent(table)
        parent_id = scope_id(scope, self.fk_context)
        if scope is not None and parent_id is not None:
            return await self.store.fetch_scoped_business_key_options(
                table, scope.parent_table, parent_id, scope.filter_column
            )
        return await self.store.fetch_business_key_options(table)

    async def related_rows(self, table: str, show_all: bool = False) -> list[dict]:
        """Rows of ``table`` for browsing; scoped unless ``show_all``."""
        scope = None if show_all else self.scoping_parent(table)
        parent_id = scope_id(scope, self.fk_context)
        if scope is not None and parent_id is not None:
            return await self.store.fetch_rows(
                table, scope.parent_table, parent_id, scope.filter_column
            )
        return await self.store.fetch_rows(table)

    async def lookup(self, step_id: str, key_value: Any) -> dict | None:
        """Find a record of the step's table by its first business key.

        Failures are recorded in ``section_errors`` and return None.
        """
        step = self.step(step_id)
        meta = self.schema.table(step.table) if step is not None else None
        if meta is None or not meta.business_keys:
            self.section_errors[step_id] = "This table has no business key"
            return None
        try:
            record = await self.store.fetch_record_by_business_key(
                step.table, meta.business_keys[0], key_value
            )
        except StoreError as e:
            self.section_errors[step_id] = str(e)
            return None
        self.section_errors.pop(step_id, None)
        return record

    async def summary(self) -> WizardSummary:
        """Final context with a display label per selected record."""
        entries: list[SummaryEntry] = []
        for table, pk in self.fk_context.items():
            found = self.ui.screen_for(table)
            label = f"{table} #{pk}"
            if found is not None:
                screen = found[1]
                try:
                    record = await self.store.fetch_record_by_business_key(
                        table, self.store.id_column, pk
                    )
                except StoreError as e:
                    logger.warning(f"Summary lookup failed for {table}: {e}")
                    record = None
                label = screen.record_label(record or {self.store.id_column: pk},
                                            self.store.id_column)
            entries.append(SummaryEntry(table=table, id=pk, label=label))
        return WizardSummary(context=self.fk_context.as_dict(), entries=entries)
