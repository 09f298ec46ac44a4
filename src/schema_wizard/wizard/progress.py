"""Progress state machine: current step, completed steps, edit mode, history.

States:
    ACTIVE    current index inside the step list, nothing being edited
    EDITING   a completed step has been reopened with ``go_to_step``
    COMPLETE  current index past the last step; only ``reset`` leaves it

Transitions never raise for illegal requests; they return a
``TransitionResult`` with ``accepted=False`` and leave the state as it was.

Example:
    >>> from schema_wizard.wizard.context import FkContext
    >>> from schema_wizard.wizard.planner import Step, StepKind
    >>> steps = [Step(id="lot_0", screen_index=0, section_index=0, title="Lot",
    ...               table="lot", requires_business_key=True, kind=StepKind.SECTION)]
    >>> progress = WizardProgress(steps, FkContext())
    >>> progress.on_done("lot", 7, "lot_0").accepted
    True
    >>> progress.state.history, progress.phase
    ([0, 1], <Phase.COMPLETE: 'complete'>)
"""

import logging
from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, Field

from schema_wizard.wizard.context import FkContext
from schema_wizard.wizard.planner import Step

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    ACTIVE = "active"
    EDITING = "editing"
    COMPLETE = "complete"


class ProgressState(BaseModel):
    """Per-session progress; never persisted.

    ``history`` always starts with 0 and its last entry equals
    ``current_step_index`` between transitions; ``editing_step``, when set,
    is one of ``completed_steps``.
    """

    completed_steps: set[str] = Field(default_factory=set)
    current_step_index: int = 0
    editing_step: str | None = None
    history: list[int] = Field(default_factory=lambda: [0])


class TransitionResult(BaseModel):
    """Outcome of a transition request."""

    accepted: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> "TransitionResult":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: str) -> "TransitionResult":
        logger.debug(f"Transition rejected: {reason}")
        return cls(accepted=False, reason=reason)


class WizardProgress:
    """Drives ``ProgressState`` over a fixed step list and a shared FK context."""

    def __init__(self, steps: Sequence[Step], fk_context: FkContext) -> None:
        self._steps = list(steps)
        self._context = fk_context
        self.state = ProgressState()

    @property
    def steps(self) -> list[Step]:
        return self._steps

    @property
    def fk_context(self) -> FkContext:
        return self._context

    @property
    def phase(self) -> Phase:
        if self.state.current_step_index >= len(self._steps):
            return Phase.COMPLETE
        if self.state.editing_step is not None:
            return Phase.EDITING
        return Phase.ACTIVE

    @property
    def is_complete(self) -> bool:
        return self.phase is Phase.COMPLETE

    @property
    def current_step(self) -> Step | None:
        index = self.state.current_step_index
        return self._steps[index] if 0 <= index < len(self._steps) else None

    def is_completed(self, step_id: str) -> bool:
        return step_id in self.state.completed_steps

    def is_disabled(self, step_id: str) -> bool:
        """Completed, not being edited and not current: rendered read-only."""
        current = self.current_step
        return (
            step_id in self.state.completed_steps
            and self.state.editing_step != step_id
            and (current is None or current.id != step_id)
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def on_done(self, table: str, pk: int, step_id: str) -> TransitionResult:
        """A step saved ``pk`` for ``table``: record it and advance one step.

        Re-completing a step leaves ``completed_steps`` unchanged but always
        pushes the new index onto ``history``.
        """
        if self.is_complete:
            return TransitionResult.rejected("wizard already complete")

        self._context.merge(table, pk)
        self.state.completed_steps.add(step_id)
        if self.state.editing_step == step_id:
            self.state.editing_step = None
        self.state.current_step_index += 1
        self.state.history.append(self.state.current_step_index)

        logger.debug(
            f"Completed {step_id} ({table}={pk}); "
            f"now at {self.state.current_step_index}"
        )
        return TransitionResult.ok()

    def go_to_step(self, step_id: str, index: int) -> TransitionResult:
        """Reopen a completed step for editing."""
        if step_id not in self.state.completed_steps:
            return TransitionResult.rejected(f"step '{step_id}' is not completed")
        if not 0 <= index < len(self._steps):
            return TransitionResult.rejected(f"step index {index} out of range")
        if self._steps[index].id != step_id:
            return TransitionResult.rejected(f"step '{step_id}' is not at index {index}")

        self.state.editing_step = step_id
        self.state.current_step_index = index
        self.state.history.append(index)
        return TransitionResult.ok()

    def go_back(self) -> TransitionResult:
        """Return to the previous history entry."""
        if len(self.state.history) <= 1:
            return TransitionResult.rejected("no earlier step in history")

        self.state.history.pop()
        self.state.current_step_index = self.state.history[-1]
        self.state.editing_step = None
        return TransitionResult.ok()

    def reset(self, force: bool = False) -> TransitionResult:
        """Start over: clears the FK context and all progress.

        Only legal once the wizard is complete unless ``force`` is set.
        """
        if not self.is_complete and not force:
            return TransitionResult.rejected("wizard is not finished")

        self._context.clear()
        self.state = ProgressState()
        logger.info("Wizard reset")
        return TransitionResult.ok()
