"""Tests for configuration gap reporting and live-schema comparison."""

import logging

from schema_wizard.schema.comparator import validate_schema
from schema_wizard.schema.consistency import check_config
from schema_wizard.schema.models import SchemaConfig
from schema_wizard.ui.models import ScreenSpec, UiConfig


class TestCheckConfig:
    """Gaps between the schema and UI documents."""

    def test_clean_config(self, schema, ui) -> None:
        """The shared fixtures are consistent."""
        report = check_config(schema, ui)
        assert report.clean
        assert report.format_report() == "Configuration consistent"

    def test_every_gap_reported(self, caplog) -> None:
        """Each kind of gap lands in its own list and is logged."""
        schema = SchemaConfig.model_validate(
            {
                "sequence": ["batch", "lot"],
                "tables": {
                    "lot": {
                        "relationships": {"x": {"kind": "many", "childTable": "ghost"}}
                    },
                    "batch": {"columns": ["lot_id"], "foreignKeys": {"lot_id": "lot"}},
                    "orphan": {},
                },
            }
        )
        ui = UiConfig(screens=[ScreenSpec(table="lot"), ScreenSpec(table="orphan")])

        with caplog.at_level(logging.WARNING, logger="schema_wizard.schema.consistency"):
            report = check_config(schema, ui)

        assert report.tables_without_screen == ["batch"]
        assert report.screens_without_table == ["orphan"]
        assert report.unknown_relationship_tables == ["lot.x -> ghost"]
        assert report.late_foreign_keys == ["batch.lot_id -> lot"]
        assert not report.clean
        assert "Configuration gaps" in caplog.text


class TestValidateSchema:
    """Live database columns against the schema document."""

    def test_valid(self, schema) -> None:
        """All expected tables and columns present; extras are warnings."""
        actual = {**schema.expected_columns(), "audit_log": {"id"}}
        result = validate_schema(actual, schema.expected_columns())

        assert result.valid
        assert result.extra_tables == ["audit_log"]

    def test_missing_table_and_column(self, schema) -> None:
        """Missing tables and columns make the result invalid."""
        actual = {"lot": {"id", "code", "name"}}
        result = validate_schema(actual, schema.expected_columns())

        assert not result.valid
        assert result.missing_tables == ["batch"]
        assert [d.column for d in result.missing_columns] == ["harvested_on"]
        assert result.error_count == 2
        assert "lot.harvested_on" in result.format_report()
        assert "Wizard writes 'lot.harvested_on'" in result.missing_columns[0].message


class TestSectionTables:
    """Repeat sections are checked against the schema."""

    def test_unknown_repeat_table(self, schema) -> None:
        """A nested repeat writing to an undeclared table is a gap."""
        ui = UiConfig.model_validate(
            {
                "screens": [
                    {"table": "lot", "sections": [{"nested": {"kind": "repeat", "table": "ghost"}}]},
                    {"table": "batch", "sections": [{"kind": "repeat", "table": "batch"}]},
                ]
            }
        )
        report = check_config(schema, ui)

        assert report.unknown_section_tables == ["lot[0.0] -> ghost"]
        assert "Repeat sections writing to unknown tables" in report.format_report()
