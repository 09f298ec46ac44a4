"""Schema document models, consistency checks, and database validation.

Usage:
    from schema_wizard.schema import SchemaConfig, TableMeta, RelationshipMeta
    from schema_wizard.schema import check_config, validate_schema
"""

from schema_wizard.schema.comparator import validate_schema
from schema_wizard.schema.consistency import check_config
from schema_wizard.schema.introspector import SchemaIntrospector
from schema_wizard.schema.models import (
    ColumnDiff,
    ConfigReport,
    ConnectionResult,
    RelationshipKind,
    RelationshipMeta,
    SchemaConfig,
    SchemaValidationResult,
    TableMeta,
)

__all__ = [
    "validate_schema",
    "check_config",
    "SchemaIntrospector",
    "ColumnDiff",
    "ConfigReport",
    "ConnectionResult",
    "RelationshipKind",
    "RelationshipMeta",
    "SchemaConfig",
    "SchemaValidationResult",
    "TableMeta",
]
