"""Profile resolution and adapter/store construction.

Profile priority:
1. ``{env_prefix}WIZARD_PROFILE`` environment variable
2. ``.wizard-profile`` lock file written by a successful ``connect``
3. ``ProfileNotFoundError``
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from schema_wizard.adapters.postgres import AsyncPostgresAdapter
from schema_wizard.config.loader import load_schema_config, load_wizard_config
from schema_wizard.config.models import DatabaseProfile, WizardConfig
from schema_wizard.schema.comparator import validate_schema
from schema_wizard.schema.introspector import SchemaIntrospector
from schema_wizard.schema.models import ConnectionResult
from schema_wizard.store import RecordStore

logger = logging.getLogger(__name__)

# Profile lock file path
_PROFILE_LOCK_FILE = Path(".wizard-profile")


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


# ============================================================================
# Profile Lock File Operations
# ============================================================================


def read_profile_lock() -> str | None:
    """Profile name from the lock file, None if there is none."""
    if _PROFILE_LOCK_FILE.exists():
        return _PROFILE_LOCK_FILE.read_text().strip() or None
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to lock file. Only call after a successful validation."""
    _PROFILE_LOCK_FILE.write_text(profile_name)


def get_active_profile_name(env_prefix: str = "") -> str:
    """Resolve the active profile name.

    Raises:
        ProfileNotFoundError: If neither the env var nor the lock file names one
    """
    env_profile = os.environ.get(f"{env_prefix}WIZARD_PROFILE")
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Run: {env_prefix}WIZARD_PROFILE=<name> schema-wizard connect"
    )


def get_active_profile(
    env_prefix: str = "",
    config: WizardConfig | None = None,
) -> tuple[str, DatabaseProfile]:
    """Active profile name and its settings.

    Raises:
        ProfileNotFoundError: If no profile is configured
        KeyError: If the profile is not in wizard.toml
    """
    profile_name = get_active_profile_name(env_prefix)
    config = config or load_wizard_config()

    if profile_name not in config.profiles:
        raise KeyError(
            f"Profile '{profile_name}' not found in wizard.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Profile URL with the ``[YOUR-PASSWORD]`` placeholder substituted."""
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Adapter and Store Factory
# ============================================================================


async def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    database_url: str | None = None,
    config: WizardConfig | None = None,
) -> AsyncPostgresAdapter:
    """Create a new adapter; ``database_url`` wins over any profile.

    Raises:
        ProfileNotFoundError: If no URL is given and no profile resolves
        KeyError: If the named profile is not in wizard.toml
    """
    if database_url:
        return AsyncPostgresAdapter(database_url=database_url)

    config = config or load_wizard_config()
    if profile_name is None:
        profile_name, profile = get_active_profile(env_prefix, config)
    elif profile_name in config.profiles:
        profile = config.profiles[profile_name]
    else:
        raise KeyError(f"Profile '{profile_name}' not found in wizard.toml")

    logger.info(f"Using database profile '{profile_name}'")
    return AsyncPostgresAdapter(database_url=resolve_url(profile))


async def open_store(
    config: WizardConfig,
    profile_name: str | None = None,
    env_prefix: str = "",
) -> RecordStore:
    """Record store for the configured schema over a fresh adapter."""
    schema = load_schema_config(config.wizard.schema_file)
    adapter = await get_adapter(profile_name, env_prefix, config=config)
    return RecordStore(adapter, schema, id_column=config.wizard.id_column)


async def connect_and_validate(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: WizardConfig | None = None,
    validate_only: bool = False,
) -> ConnectionResult:
    """Connect, compare the live columns with the schema document, lock the profile.

    Args:
        profile_name: Profile from wizard.toml; resolved from env/lock when None.
        env_prefix: Prefix for the profile environment variable.
        config: Preloaded config (default: ./wizard.toml).
        validate_only: Do not write the lock file.
    """
    if profile_name is None:
        try:
            profile_name = get_active_profile_name(env_prefix)
        except ProfileNotFoundError as e:
            return ConnectionResult(success=False, error=str(e))

    try:
        config = config or load_wizard_config()
        schema = load_schema_config(config.wizard.schema_file)
    except (FileNotFoundError, ValueError) as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys())
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Profile '{profile_name}' not found. Available: {available}",
        )

    adapter = AsyncPostgresAdapter(database_url=resolve_url(config.profiles[profile_name]))
    try:
        async with SchemaIntrospector(adapter.engine) as introspector:
            actual_columns = await introspector.get_column_names()
    except Exception as e:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Failed to connect to database: {e}",
        )
    finally:
        await adapter.close()

    if not config.wizard.validate_on_connect:
        if not validate_only:
            write_profile_lock(profile_name)
        return ConnectionResult(success=True, profile_name=profile_name)

    validation = validate_schema(
        actual_columns, schema.expected_columns(config.wizard.id_column)
    )
    if not validation.valid:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            schema_valid=False,
            schema_report=validation,
            error=f"Schema validation failed: {validation.error_count} errors",
        )

    if not validate_only:
        write_profile_lock(profile_name)
    logger.info(f"Connected to profile '{profile_name}'")
    return ConnectionResult(
        success=True,
        profile_name=profile_name,
        schema_valid=True,
        schema_report=validation,
    )
