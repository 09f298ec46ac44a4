"""schema-wizard: schema-driven multi-step data-entry wizard engine.

Reads a schema document (tables, business keys, relationships) and a UI
document (screens, sections, fields), plans the wizard steps, decides which
steps are visible, tracks progress and the foreign-key context, and writes
records through an async PostgreSQL adapter.

Usage:
    from schema_wizard import WizardSession, RecordStore, AsyncPostgresAdapter
    from schema_wizard import load_schema_config, load_ui_config
"""

__version__ = "0.1.0"

# Adapters
from schema_wizard.adapters.base import DatabaseClient
from schema_wizard.adapters.postgres import AsyncPostgresAdapter

# Config
from schema_wizard.config.loader import (
    load_schema_config,
    load_ui_config,
    load_wizard_config,
)
from schema_wizard.config.models import DatabaseProfile, WizardConfig

# Factory
from schema_wizard.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_adapter,
    open_store,
    resolve_url,
)

# Schema and UI documents
from schema_wizard.schema import (
    RelationshipMeta,
    SchemaConfig,
    TableMeta,
    check_config,
    validate_schema,
)
from schema_wizard.ui import RepeatSection, ScreenSpec, SimpleSection, UiConfig

# Store
from schema_wizard.store import (
    KeyOption,
    RecordNotFoundError,
    RecordStore,
    StoreError,
    UnknownTableError,
    WriteError,
)

# Wizard core
from schema_wizard.wizard import (
    FkContext,
    Step,
    StepKind,
    WizardProgress,
    WizardSession,
    find_scoping_parent,
    is_visible,
    plan_steps,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_wizard_config",
    "load_schema_config",
    "load_ui_config",
    "DatabaseProfile",
    "WizardConfig",
    # Factory
    "get_adapter",
    "open_store",
    "connect_and_validate",
    "ProfileNotFoundError",
    "resolve_url",
    # Schema and UI documents
    "SchemaConfig",
    "TableMeta",
    "RelationshipMeta",
    "check_config",
    "validate_schema",
    "UiConfig",
    "ScreenSpec",
    "SimpleSection",
    "RepeatSection",
    # Store
    "RecordStore",
    "KeyOption",
    "StoreError",
    "UnknownTableError",
    "RecordNotFoundError",
    "WriteError",
    # Wizard core
    "FkContext",
    "Step",
    "StepKind",
    "WizardProgress",
    "WizardSession",
    "find_scoping_parent",
    "is_visible",
    "plan_steps",
]
