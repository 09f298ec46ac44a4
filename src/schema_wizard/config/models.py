"""Pydantic models for wizard runtime configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from wizard.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"


class WizardSettings(BaseModel):
    """The ``[wizard]`` table: where the schema and UI documents live."""

    schema_file: str = "schema.json"
    ui_file: str = "ui.json"
    validate_on_connect: bool = True
    id_column: str = "id"


class WizardConfig(BaseModel):
    """Complete wizard configuration from wizard.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    wizard: WizardSettings = Field(default_factory=WizardSettings)
