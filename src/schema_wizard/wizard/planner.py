"""Step planner: turn the table sequence and screens into wizard steps.

The first table in ``sequence`` gets one step per section of its screen;
every later table gets a single ``table`` step, whatever its screen holds.
Tables without a screen are skipped and reported in ``StepPlan.skipped_tables``.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from schema_wizard.schema.models import SchemaConfig
from schema_wizard.ui.models import SimpleSection, UiConfig

logger = logging.getLogger(__name__)


class StepKind(str, Enum):
    SECTION = "section"
    TABLE = "table"


class Step(BaseModel):
    """One unit of the wizard.

    Ids are ``<table>_<sectionIndex>`` for root-table sections and
    ``<table>_table`` otherwise; they stay stable while schema and UI keep
    their shape, and step indexes double as navigation history entries.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    screen_index: int
    section_index: int
    title: str
    table: str
    requires_business_key: bool = False
    kind: StepKind


class StepPlan(BaseModel):
    """Planner output: the ordered steps plus the tables that got none."""

    model_config = ConfigDict(frozen=True)

    steps: list[Step] = Field(default_factory=list)
    skipped_tables: list[str] = Field(default_factory=list)

    def index_of(self, step_id: str) -> int | None:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return None


def plan_steps(schema: SchemaConfig, ui: UiConfig) -> StepPlan:
    """Derive the ordered step list.

    Example:
        >>> from schema_wizard.schema.models import TableMeta
        >>> from schema_wizard.ui.models import ScreenSpec
        >>> schema = SchemaConfig(sequence=["lot", "batch"],
        ...                       tables={"lot": TableMeta(), "batch": TableMeta()})
        >>> ui = UiConfig(screens=[
        ...     ScreenSpec(table="lot", sections=[SimpleSection(is_business_key_section=True),
        ...                                       SimpleSection()]),
        ...     ScreenSpec(table="batch", sections=[SimpleSection(), SimpleSection()]),
        ... ])
        >>> [s.id for s in plan_steps(schema, ui).steps]
        ['lot_0', 'lot_1', 'batch_table']
    """
    steps: list[Step] = []
    skipped: list[str] = []

    for position, table in enumerate(schema.sequence):
        found = ui.screen_for(table)
        if found is None:
            logger.warning(f"No screen for table '{table}'; it gets no step")
            skipped.append(table)
            continue
        screen_index, screen = found

        if position == 0:
            for section_index, section in enumerate(screen.sections):
                steps.append(
                    Step(
                        id=f"{table}_{section_index}",
                        screen_index=screen_index,
                        section_index=section_index,
                        title=section.title or screen.display_title,
                        table=table,
                        requires_business_key=(
                            isinstance(section, SimpleSection)
                            and section.is_business_key_section
                        ),
                        kind=StepKind.SECTION,
                    )
                )
        else:
            steps.append(
                Step(
                    id=f"{table}_table",
                    screen_index=screen_index,
                    section_index=0,
                    title=screen.display_title,
                    table=table,
                    kind=StepKind.TABLE,
                )
            )

    return StepPlan(steps=steps, skipped_tables=skipped)
