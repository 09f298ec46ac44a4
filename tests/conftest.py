"""Shared fixtures: an in-memory ``DatabaseClient`` and small schema/UI documents."""

from typing import Any

import pytest

from schema_wizard.schema.models import SchemaConfig
from schema_wizard.store import RecordStore
from schema_wizard.ui.models import UiConfig


class FakeClient:
    """In-memory ``DatabaseClient``: tables are lists of dicts keyed by ``id``."""

    def __init__(self, fail_writes: bool = False) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.fail_writes = fail_writes
        self.closed = False
        self.calls: list[tuple[str, str]] = []
        self._next_id = 1

    def seed(self, table: str, **row: Any) -> int:
        row_id = self._next_id
        self._next_id += 1
        self.tables.setdefault(table, []).append({"id": row_id, **row})
        return row_id

    @staticmethod
    def _matches(row: dict, filters: dict[str, Any] | None) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        self.calls.append(("select", table))
        rows = [dict(r) for r in self.tables.get(table, []) if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by) or 0))
        if columns.strip() != "*":
            names = [c.strip() for c in columns.split(",")]
            rows = [{n: r.get(n) for n in names} for r in rows]
        return rows

    async def insert(self, table: str, data: dict) -> dict:
        self.calls.append(("insert", table))
        if self.fail_writes:
            raise RuntimeError("connection lost")
        row_id = self.seed(table, **data)
        return dict(self.tables[table][-1], id=row_id)

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        self.calls.append(("update", table))
        if self.fail_writes:
            raise RuntimeError("connection lost")
        matched = [r for r in self.tables.get(table, []) if self._matches(r, filters)]
        if not matched:
            raise ValueError(f"No rows matched filters: {filters}")
        for row in matched:
            row.update(data)
        return dict(matched[0])

    async def close(self) -> None:
        self.closed = True


LOT_BATCH_SCHEMA = {
    "sequence": ["lot", "batch"],
    "tables": {
        "lot": {"businessKeys": ["code"], "columns": ["code", "name", "harvested_on"]},
        "batch": {
            "businessKeys": ["label"],
            "columns": ["label", "weight", "lot_id"],
            "foreignKeys": {"lot_id": "lot"},
            "relationships": {
                "lot": {
                    "kind": "many",
                    "parentTable": "lot",
                    "parentKey": "id",
                    "childKey": "lot_id",
                }
            },
        },
    },
}

LOT_BATCH_UI = {
    "screens": [
        {
            "table": "lot",
            "title": "Lot",
            "displayField": "code",
            "sections": [
                {
                    "title": "Identify",
                    "isBusinessKeySection": True,
                    "fields": [
                        {"name": "code", "label": "Lot code", "required": True},
                        {"name": "name"},
                    ],
                },
                {"title": "Harvest", "fields": [{"name": "harvested_on", "type": "date"}]},
            ],
        },
        {
            "table": "batch",
            "title": "Batches",
            "sections": [
                {
                    "kind": "repeat",
                    "table": "batch",
                    "sections": [
                        {"fields": [{"name": "label", "required": True}, {"name": "weight"}]}
                    ],
                }
            ],
        },
    ]
}


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def schema() -> SchemaConfig:
    return SchemaConfig.model_validate(LOT_BATCH_SCHEMA)


@pytest.fixture
def ui() -> UiConfig:
    return UiConfig.model_validate(LOT_BATCH_UI)


@pytest.fixture
def store(client: FakeClient, schema: SchemaConfig) -> RecordStore:
    return RecordStore(client, schema)
