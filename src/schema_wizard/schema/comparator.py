"""Drift check between the schema document and the live database.

The wizard writes every declared column of every table in the sequence,
plus the surrogate id it completes steps with. A table or column the
document declares but the database lacks would make the first save of
that step fail, so ``connect`` refuses to lock a profile until this check
passes. Tables the document does not mention are left alone.

Usage:
    async with SchemaIntrospector(engine) as introspector:
        live = await introspector.get_column_names()

    result = validate_schema(live, schema.expected_columns())
"""

from schema_wizard.schema.models import ColumnDiff, SchemaValidationResult


def _missing_columns(
    live: dict[str, set[str]], written: dict[str, set[str]]
) -> list[ColumnDiff]:
    return [
        ColumnDiff(
            table=table,
            column=column,
            message=f"Wizard writes '{table}.{column}' but the database has no such column",
        )
        for table in sorted(written.keys() & live.keys())
        for column in sorted(written[table] - live[table])
    ]


def validate_schema(
    actual_columns: dict[str, set[str]],
    expected_columns: dict[str, set[str]],
) -> SchemaValidationResult:
    """Check that every column the wizard writes exists in the database.

    Args:
        actual_columns: Live columns per table, from
            ``SchemaIntrospector.get_column_names()``.
        expected_columns: Columns the wizard writes per table, from
            ``SchemaConfig.expected_columns()``.

    Returns:
        ``SchemaValidationResult``. Tables only the database has are listed
        in ``extra_tables`` and never make the result invalid.

    Examples:
        >>> validate_schema({"lot": {"id", "code"}}, {"lot": {"id", "code"}}).valid
        True
        >>> validate_schema({"lot": {"id"}}, {"lot": {"id", "code"}}).missing_columns[0].column
        'code'
    """
    missing_tables = sorted(expected_columns.keys() - actual_columns.keys())
    missing_columns = _missing_columns(actual_columns, expected_columns)
    return SchemaValidationResult(
        valid=not (missing_tables or missing_columns),
        missing_tables=missing_tables,
        missing_columns=missing_columns,
        extra_tables=sorted(actual_columns.keys() - expected_columns.keys()),
    )
