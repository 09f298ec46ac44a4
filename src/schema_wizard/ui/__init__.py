"""Screen, section and field descriptors for the wizard UI.

Usage:
    from schema_wizard.ui import UiConfig, ScreenSpec, SimpleSection, RepeatSection
    from schema_wizard.ui import walk_sections
"""

from schema_wizard.ui.models import (
    FieldOption,
    FieldSpec,
    RepeatSection,
    ScreenSpec,
    SectionSpec,
    SimpleSection,
    UiConfig,
)
from schema_wizard.ui.tree import SectionNode, walk_sections

__all__ = [
    "FieldOption",
    "FieldSpec",
    "SimpleSection",
    "RepeatSection",
    "SectionSpec",
    "ScreenSpec",
    "UiConfig",
    "SectionNode",
    "walk_sections",
]
