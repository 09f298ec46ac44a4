"""CLI for profile management, configuration checks and the terminal wizard.

Usage:
    WIZARD_PROFILE=local schema-wizard connect
    schema-wizard status
    schema-wizard profiles
    schema-wizard check
    schema-wizard plan
    schema-wizard run

Commands:
    connect   - Connect to database and validate it against the schema document
    status    - Show current connection status
    profiles  - List available profiles
    check     - Report gaps between the schema and UI documents
    plan      - Show the planned wizard steps
    run       - Walk through the wizard in the terminal
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from schema_wizard.config.loader import load_schema_config, load_ui_config, load_wizard_config
from schema_wizard.config.models import WizardConfig
from schema_wizard.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    open_store,
    read_profile_lock,
)
from schema_wizard.schema.consistency import check_config
from schema_wizard.ui.models import FieldSpec, RepeatSection, SimpleSection
from schema_wizard.wizard.persistence import SaveOutcome, SaveStatus
from schema_wizard.wizard.planner import StepKind, plan_steps
from schema_wizard.wizard.progress import Phase
from schema_wizard.wizard.session import WizardSession

console = Console()


def _load_config(args: argparse.Namespace) -> WizardConfig:
    return load_wizard_config(Path(args.config) if args.config else None)


# ============================================================================
# Rendering helpers
# ============================================================================


def _steps_table(session: WizardSession) -> Table:
    table = Table(title="Wizard Steps", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Step")
    table.add_column("Table", style="dim")
    table.add_column("State")

    for view in session.views():
        if not view.displayed:
            continue
        if view.current:
            state = "[bold cyan]editing[/bold cyan]" if view.editing else "[bold cyan]current[/bold cyan]"
        elif view.disabled:
            state = "[green]done[/green]"
        elif view.completed:
            state = "[green]done[/green] (open)"
        else:
            state = "[dim]available[/dim]"
        table.add_row(str(view.index), view.step.title, view.step.table, state)
    return table


def _coerce(field: FieldSpec, answer: str) -> Any:
    """Typed value for a prompt answer.

    Raises:
        ValueError: If the answer does not parse as the field's type.
    """
    if field.type == "number":
        return float(answer) if "." in answer else int(answer)
    if field.type == "date":
        return date.fromisoformat(answer)
    return answer


def _prompt_fields(fields: list[FieldSpec], initial: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field in fields:
        choices = [o.value for o in field.options] if field.options else None
        kwargs: dict[str, Any] = {"choices": choices, "console": console}
        if initial.get(field.name) is not None:
            kwargs["default"] = str(initial[field.name])
        elif not field.required:
            kwargs["default"] = ""
        while True:
            answer = Prompt.ask(
                f"{field.display_label}{' *' if field.required else ''}", **kwargs
            )
            if answer in (None, ""):
                break
            try:
                values[field.name] = _coerce(field, answer)
                break
            except ValueError:
                hint = "YYYY-MM-DD" if field.type == "date" else "a number"
                console.print(f"[red]{field.display_label} must be {hint}[/red]")
    return values


def _report(outcome: SaveOutcome) -> None:
    if outcome.ok:
        return
    console.print(f"[bold red]x[/bold red] {outcome.error}")
    for message in outcome.field_errors.values():
        console.print(f"    - {message}")


# ============================================================================
# Interactive wizard
# ============================================================================


async def _run_rows(session: WizardSession, step_id: str) -> None:
    flow = session.flow(step_id)
    while flow is not None and flow.active_block is not None:
        block = flow.active_block
        console.print(
            f"\n[bold]{block.spec.title or block.table}[/bold] "
            f"[dim]({len(block.saved_rows)} saved rows)[/dim]"
        )
        action = Prompt.ask("Rows", choices=["add", "done"], default="add", console=console)
        if action == "add":
            form_id = block.add_form(_prompt_fields(block.spec.row_fields, {}))
            _report(await session.save_row(step_id, form_id))
            block.discard_form(form_id)
        else:
            outcome = session.complete_rows(step_id)
            _report(outcome)
            if outcome.status is SaveStatus.COMPLETED:
                return


async def _run_step(session: WizardSession) -> bool:
    """Handle one prompt for the current step. Returns False to quit."""
    step = session.current_step
    section = session.section_for(step)
    choices = ["fill", "back", "edit", "quit"]
    if step.kind is StepKind.TABLE:
        choices.insert(1, "select")

    console.print(f"\n[bold cyan]{step.title}[/bold cyan]")
    if not session.is_visible(session.state.current_step_index):
        console.print("[yellow]Waiting on an earlier selection.[/yellow]")
    action = Prompt.ask("Action", choices=choices, default="fill", console=console)

    if action == "quit":
        return False
    if action == "back":
        session.on_go_back()
    elif action == "edit":
        target = Prompt.ask("Step id", console=console)
        index = session.plan.index_of(target)
        result = session.on_go_to_step(target, -1 if index is None else index)
        if not result.accepted:
            console.print(f"[yellow]{result.reason}[/yellow]")
    elif action == "select":
        for option in await session.business_key_options(step.table):
            console.print(f"  {option.id}: {option.value}")
        record_id = Prompt.ask("Record id", console=console)
        if record_id.isdigit():
            session.select_record(step.id, int(record_id))
    elif isinstance(section, RepeatSection):
        await session.open_rows(step.id)
        await _run_rows(session, step.id)
    elif isinstance(section, SimpleSection):
        values = _prompt_fields(section.fields, session.initial_values(step.id))
        outcome = await session.save_section(step.id, values)
        _report(outcome)
        if outcome.status is SaveStatus.AWAITING_ROWS:
            await _run_rows(session, step.id)
    return True


async def _async_run(args: argparse.Namespace) -> int:
    """Async implementation for run command."""
    try:
        config = _load_config(args)
        schema = load_schema_config(config.wizard.schema_file)
        ui = load_ui_config(config.wizard.ui_file)
        store = await open_store(config, env_prefix=args.env_prefix)
    except (FileNotFoundError, ValueError, KeyError, ProfileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    session = WizardSession(schema, ui, store)
    try:
        while True:
            console.print(_steps_table(session))
            if session.phase is Phase.COMPLETE:
                summary = await session.summary()
                console.print("\n[bold green]v[/bold green] Wizard complete")
                for entry in summary.entries:
                    console.print(f"  {entry.table}: {entry.label} [dim](#{entry.id})[/dim]")
                again = Prompt.ask("Start over", choices=["y", "n"], default="n", console=console)
                if again != "y":
                    return 0
                session.on_reset()
                continue
            if not await _run_step(session):
                return 0
    finally:
        await store.close()


# ============================================================================
# Command implementations
# ============================================================================


async def _async_connect(args: argparse.Namespace) -> int:
    """Async implementation for connect command."""
    previous_profile = read_profile_lock()
    console.print("Connecting to database...", style="dim")

    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    result = await connect_and_validate(env_prefix=args.env_prefix, config=config)

    if result.success:
        console.print()
        console.print(
            f"[bold green]v[/bold green] Connected to profile: "
            f"[bold cyan]{result.profile_name}[/bold cyan]"
        )
        if result.schema_valid:
            console.print("  Schema validation: [green]PASSED[/green]")
        if result.schema_report and result.schema_report.extra_tables:
            console.print(
                f"  Extra tables: [yellow]"
                f"{', '.join(result.schema_report.extra_tables)}[/yellow]"
            )
        if previous_profile and previous_profile != result.profile_name:
            console.print(
                f"\n[dim]Switched from[/dim] [bold]{previous_profile}[/bold] "
                f"[dim]to[/dim] [bold cyan]{result.profile_name}[/bold cyan]"
            )
        return 0

    console.print()
    console.print(f"[bold red]x[/bold red] {result.error}")
    if result.schema_report:
        console.print("\n[bold]Schema validation report:[/bold]")
        console.print(result.schema_report.format_report())
    return 1


def cmd_connect(args: argparse.Namespace) -> int:
    """Connect to database and validate it. Wraps the async implementation."""
    return asyncio.run(_async_connect(args))


def cmd_run(args: argparse.Namespace) -> int:
    """Run the wizard in the terminal. Wraps the async implementation."""
    return asyncio.run(_async_run(args))


def cmd_status(args: argparse.Namespace) -> int:
    """Show current connection status. Reads local files only."""
    profile = read_profile_lock()

    if not profile:
        console.print("[yellow]No validated profile.[/yellow]")
        console.print("[dim]Run:[/dim] [cyan]WIZARD_PROFILE=<name> schema-wizard connect[/cyan]")
        return 0

    table = Table(title="Connection Status", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Current profile", f"[bold cyan]{profile}[/bold cyan]")
    table.add_row("Profile source", ".wizard-profile (validated)")

    try:
        config = _load_config(args)
        if profile in config.profiles:
            p = config.profiles[profile]
            table.add_row("Provider", p.provider)
            if p.description:
                table.add_row("Description", p.description)
    except FileNotFoundError:
        table.add_row("Warning", "[yellow]wizard.toml not found[/yellow]")

    console.print(table)
    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from wizard.toml."""
    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = read_profile_lock()

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        table.add_row(
            marker,
            f"[bold cyan]{name}[/bold cyan]" if name == current else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)
    if current:
        console.print("\n[bold green]*[/bold green] = current profile")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Report configuration gaps. Returns 1 when any are found."""
    try:
        config = _load_config(args)
        schema = load_schema_config(config.wizard.schema_file)
        ui = load_ui_config(config.wizard.ui_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    report = check_config(schema, ui)
    if report.clean:
        console.print("[bold green]v[/bold green] Configuration consistent")
        return 0
    console.print(report.format_report())
    return 1


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the planned steps and any skipped tables."""
    try:
        config = _load_config(args)
        schema = load_schema_config(config.wizard.schema_file)
        ui = load_ui_config(config.wizard.ui_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    plan = plan_steps(schema, ui)

    table = Table(title="Planned Steps", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Id")
    table.add_column("Kind")
    table.add_column("Table")
    table.add_column("Title")
    table.add_column("BK")
    for index, step in enumerate(plan.steps):
        table.add_row(
            str(index),
            step.id,
            step.kind.value,
            step.table,
            step.title,
            "v" if step.requires_business_key else "",
        )
    console.print(table)

    if plan.skipped_tables:
        console.print(
            f"\n[yellow]Skipped (no screen):[/yellow] {', '.join(plan.skipped_tables)}"
        )
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="schema-wizard",
        description="Schema-driven data-entry wizard",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to wizard.toml (default: ./wizard.toml)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_WIZARD_PROFILE)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    commands = [
        ("connect", "Connect to database and validate schema", cmd_connect),
        ("status", "Show current connection status", cmd_status),
        ("profiles", "List available profiles", cmd_profiles),
        ("check", "Report gaps between schema and UI documents", cmd_check),
        ("plan", "Show the planned wizard steps", cmd_plan),
        ("run", "Walk through the wizard in the terminal", cmd_run),
    ]
    for name, help_text, func in commands:
        sub = subparsers.add_parser(name, help=help_text)
        sub.set_defaults(func=func)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
