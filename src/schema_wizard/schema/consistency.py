"""Cross-check the schema and UI documents for configuration gaps."""

import logging

from schema_wizard.schema.models import ConfigReport, SchemaConfig
from schema_wizard.ui.models import RepeatSection, UiConfig
from schema_wizard.ui.tree import walk_sections

logger = logging.getLogger(__name__)


def check_config(schema: SchemaConfig, ui: UiConfig) -> ConfigReport:
    """Collect every configuration gap between ``schema`` and ``ui``.

    Example:
        >>> from schema_wizard.schema.models import TableMeta
        >>> schema = SchemaConfig(sequence=["lot"], tables={"lot": TableMeta()})
        >>> check_config(schema, UiConfig()).tables_without_screen
        ['lot']
    """
    report = ConfigReport()
    screened = {screen.table for screen in ui.screens}

    report.tables_without_screen = [t for t in schema.sequence if t not in screened]
    report.screens_without_table = sorted(screened - set(schema.sequence))

    for screen in ui.screens:
        for node in walk_sections(screen):
            if isinstance(node.section, RepeatSection) and node.table not in schema.tables:
                path = ".".join(str(i) for i in node.path)
                report.unknown_section_tables.append(f"{screen.table}[{path}] -> {node.table}")

    position = {name: index for index, name in enumerate(schema.sequence)}
    for name, meta in schema.tables.items():
        for rel_name, rel in meta.relationships.items():
            for target in (rel.parent_table, rel.child_table):
                if target is not None and target not in schema.tables:
                    report.unknown_relationship_tables.append(
                        f"{name}.{rel_name} -> {target}"
                    )

        if name not in position:
            continue
        for column, parent in meta.foreign_keys.items():
            if position.get(parent, len(position)) >= position[name]:
                report.late_foreign_keys.append(f"{name}.{column} -> {parent}")

    if not report.clean:
        logger.warning(report.format_report())
    return report
