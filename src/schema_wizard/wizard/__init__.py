"""Step planning, visibility, progress and persistence for the wizard.

Usage:
    from schema_wizard.wizard import WizardSession, plan_steps, is_visible
"""

from schema_wizard.wizard.context import ContextSnapshot, FkContext
from schema_wizard.wizard.persistence import (
    RepeatRows,
    SaveOutcome,
    SaveStatus,
    SectionFlow,
    missing_required_fields,
    resolve_foreign_keys,
)
from schema_wizard.wizard.planner import Step, StepKind, StepPlan, plan_steps
from schema_wizard.wizard.progress import (
    Phase,
    ProgressState,
    TransitionResult,
    WizardProgress,
)
from schema_wizard.wizard.relationships import ScopingParent, find_scoping_parent
from schema_wizard.wizard.session import StepView, WizardSession, WizardSummary
from schema_wizard.wizard.visibility import business_key_step, is_displayed, is_visible

__all__ = [
    "ContextSnapshot",
    "FkContext",
    "RepeatRows",
    "SaveOutcome",
    "SaveStatus",
    "SectionFlow",
    "missing_required_fields",
    "resolve_foreign_keys",
    "Step",
    "StepKind",
    "StepPlan",
    "plan_steps",
    "Phase",
    "ProgressState",
    "TransitionResult",
    "WizardProgress",
    "ScopingParent",
    "find_scoping_parent",
    "StepView",
    "WizardSession",
    "WizardSummary",
    "business_key_step",
    "is_displayed",
    "is_visible",
]
