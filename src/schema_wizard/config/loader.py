"""Load wizard.toml and the JSON schema/UI documents it points at."""

import json
import tomllib
from pathlib import Path

from schema_wizard.config.models import DatabaseProfile, WizardConfig, WizardSettings
from schema_wizard.schema.models import SchemaConfig
from schema_wizard.ui.models import UiConfig

DEFAULT_CONFIG_NAME = "wizard.toml"


def load_wizard_config(config_path: Path | None = None) -> WizardConfig:
    """Load wizard configuration from a TOML file.

    Relative ``schema_file``/``ui_file`` entries are resolved against the
    directory holding the TOML file.

    Args:
        config_path: Path to wizard.toml (default: ./wizard.toml)

    Returns:
        WizardConfig with all profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_NAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Wizard config not found: {config_path}\n"
            f"Copy wizard.toml.example to wizard.toml and configure your profiles."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path.name}: {e}") from e

    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    settings = WizardSettings(**data.get("wizard", {}))
    base_dir = config_path.parent
    settings.schema_file = str(_resolve(base_dir, settings.schema_file))
    settings.ui_file = str(_resolve(base_dir, settings.ui_file))

    return WizardConfig(profiles=profiles, wizard=settings)


def _resolve(base_dir: Path, file_name: str) -> Path:
    path = Path(file_name)
    return path if path.is_absolute() else base_dir / path


def _read_json(path: Path, kind: str) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"{kind} config not found: {path}")
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path.name}: {e}") from e


def load_schema_config(path: str | Path) -> SchemaConfig:
    """Load the table/relationship document.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid JSON
        pydantic.ValidationError: If the document breaks a model invariant
    """
    return SchemaConfig.model_validate(_read_json(Path(path), "Schema"))


def load_ui_config(path: str | Path) -> UiConfig:
    """Load the screen/section/field document."""
    return UiConfig.model_validate(_read_json(Path(path), "UI"))
