"""Configuration management: profiles, TOML loading, and JSON documents.

Usage:
    >>> from schema_wizard.config import load_wizard_config, load_schema_config
"""

from schema_wizard.config.loader import (
    load_schema_config,
    load_ui_config,
    load_wizard_config,
)
from schema_wizard.config.models import DatabaseProfile, WizardConfig, WizardSettings

__all__ = [
    "load_wizard_config",
    "load_schema_config",
    "load_ui_config",
    "DatabaseProfile",
    "WizardConfig",
    "WizardSettings",
]
