"""Pydantic models for the table schema document and its validation.

This module contains schema-domain models:
- Schema document models: RelationshipMeta, TableMeta, SchemaConfig
- Consistency report: ConfigReport
- Live database validation: ColumnDiff, SchemaValidationResult, ConnectionResult

JSON documents use camelCase keys (``businessKeys``, ``foreignKeys``,
``parentTable``); attributes are snake_case.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ============================================================================
# Schema Document Models
# ============================================================================


class RelationshipKind(str, Enum):
    ONE = "one"
    MANY = "many"


class RelationshipMeta(_CamelModel):
    """A declared relationship between two tables.

    A ``many`` relationship says many rows of ``child_table`` reference one
    row of ``parent_table`` through ``child_key = parent_key``.

    Example:
        >>> rel = RelationshipMeta(kind="many", parent_table="lot", child_table="batch",
        ...                        parent_key="id", child_key="lot_id")
        >>> rel.kind is RelationshipKind.MANY
        True
    """

    kind: RelationshipKind
    parent_key: str | None = None
    parent_table: str | None = None
    child_key: str | None = None
    child_table: str | None = None


class TableMeta(_CamelModel):
    """Metadata for one logical table."""

    business_keys: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    foreign_keys: dict[str, str] = Field(default_factory=dict)  # column -> referenced table
    relationships: dict[str, RelationshipMeta] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _foreign_keys_are_columns(self) -> "TableMeta":
        if self.columns:
            unknown = sorted(set(self.foreign_keys) - set(self.columns))
            if unknown:
                raise ValueError(
                    f"foreignKeys reference unknown columns: {', '.join(unknown)}"
                )
        return self

    @property
    def parent_tables(self) -> set[str]:
        """Tables referenced by this table's foreign keys."""
        return set(self.foreign_keys.values())


class SchemaConfig(_CamelModel):
    """Complete schema document: processing order plus table metadata.

    Example:
        >>> schema = SchemaConfig(sequence=["lot"], tables={"lot": TableMeta()})
        >>> schema.root_table
        'lot'
    """

    sequence: list[str]
    tables: dict[str, TableMeta]

    @model_validator(mode="after")
    def _sequence_names_exist(self) -> "SchemaConfig":
        missing = [name for name in self.sequence if name not in self.tables]
        if missing:
            raise ValueError(
                f"sequence names tables not in schema: {', '.join(missing)}"
            )
        return self

    @property
    def root_table(self) -> str | None:
        """First table in ``sequence``, or None for an empty sequence."""
        return self.sequence[0] if self.sequence else None

    def table(self, name: str) -> TableMeta | None:
        return self.tables.get(name)

    def expected_columns(self, id_column: str = "id") -> dict[str, set[str]]:
        """Columns every table must have in the database (declared + surrogate id)."""
        return {
            name: {id_column, *meta.columns, *meta.foreign_keys}
            for name, meta in self.tables.items()
        }


# ============================================================================
# Config Consistency Report
# ============================================================================


class ConfigReport(BaseModel):
    """Configuration gaps found by ``check_config()``.

    None of these stop the wizard: unscreened tables are dropped from the
    plan, unknown relationship targets are ignored, and a table whose
    parent comes later in ``sequence`` simply never becomes visible. A
    repeat section on an unknown table fails on its first row save.
    """

    tables_without_screen: list[str] = Field(default_factory=list)
    screens_without_table: list[str] = Field(default_factory=list)
    unknown_relationship_tables: list[str] = Field(default_factory=list)
    unknown_section_tables: list[str] = Field(default_factory=list)
    late_foreign_keys: list[str] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (
            self.tables_without_screen
            or self.screens_without_table
            or self.unknown_relationship_tables
            or self.unknown_section_tables
            or self.late_foreign_keys
        )

    def format_report(self) -> str:
        """Format report as human-readable text."""
        if self.clean:
            return "Configuration consistent"

        lines = ["Configuration gaps:"]
        sections = [
            ("Tables in sequence without a screen", self.tables_without_screen),
            ("Screens for tables outside sequence", self.screens_without_table),
            ("Relationships naming unknown tables", self.unknown_relationship_tables),
            ("Repeat sections writing to unknown tables", self.unknown_section_tables),
            ("Foreign keys to tables not earlier in sequence", self.late_foreign_keys),
        ]
        for title, items in sections:
            if items:
                lines.append(f"\n  {title} ({len(items)}):")
                for item in items:
                    lines.append(f"    - {item}")

        return "\n".join(lines)


# ============================================================================
# Validation Result Models
# ============================================================================


class ColumnDiff(BaseModel):
    """A missing column detected during validation."""

    table: str
    column: str
    message: str = ""


class SchemaValidationResult(BaseModel):
    """Result of comparing the schema document against a live database.

    Example:
        >>> result = SchemaValidationResult(valid=True)
        >>> result.error_count
        0
        >>> result.format_report()
        'Schema valid'
    """

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)
    extra_tables: list[str] = Field(default_factory=list)  # Warning only

    @property
    def error_count(self) -> int:
        """Count of critical errors (missing tables + missing columns)."""
        return len(self.missing_tables) + len(self.missing_columns)

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        if self.valid:
            return "Schema valid"

        lines = ["Schema validation failed:"]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            for table in self.missing_tables:
                lines.append(f"    - {table}")

        if self.missing_columns:
            lines.append(f"\n  Missing columns ({len(self.missing_columns)}):")
            for diff in self.missing_columns:
                lines.append(f"    - {diff.table}.{diff.column}")

        if self.extra_tables:
            lines.append(f"\n  Extra tables (warning): {', '.join(self.extra_tables)}")

        return "\n".join(lines)


class ConnectionResult(BaseModel):
    """Result of connect_and_validate()."""

    success: bool
    profile_name: str | None = None
    schema_valid: bool | None = None
    schema_report: SchemaValidationResult | None = None
    error: str | None = None
