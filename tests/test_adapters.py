"""Tests for the DatabaseClient protocol and the async PostgreSQL adapter."""

import asyncio
import inspect
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import pytest

from schema_wizard.adapters import AsyncPostgresAdapter, DatabaseClient
from schema_wizard.adapters.postgres import (
    _column_list,
    create_async_engine_pooled,
    normalize_url,
    quote_identifier,
)


def _adapter_with_engine() -> tuple[AsyncPostgresAdapter, MagicMock]:
    """Adapter whose engine yields a mocked connection."""
    conn = MagicMock()
    result = MagicMock()
    result.keys.return_value = ["id", "code"]
    result.fetchall.return_value = [(1, "L-1")]
    result.fetchone.return_value = (1, "L-1")
    conn.execute = AsyncMock(return_value=result)

    engine = MagicMock()
    engine.connect.return_value.__aenter__.return_value = conn
    engine.begin.return_value.__aenter__.return_value = conn
    engine.dispose = AsyncMock()

    with patch(
        "schema_wizard.adapters.postgres.create_async_engine_pooled", return_value=engine
    ):
        adapter = AsyncPostgresAdapter("postgresql://localhost/lots")
    return adapter, conn


class TestDatabaseClientProtocol:
    """Protocol surface."""

    def test_protocol_methods_async(self) -> None:
        """Every protocol method is async def."""
        for name in ("select", "insert", "update", "close"):
            assert inspect.iscoroutinefunction(getattr(DatabaseClient, name)), name

    def test_no_deletes(self) -> None:
        """The wizard never removes rows, so neither surface offers it."""
        assert not hasattr(DatabaseClient, "delete")
        assert not hasattr(AsyncPostgresAdapter, "delete")

    def test_adapter_methods_async(self) -> None:
        """The adapter implements every protocol method as a coroutine."""
        for name in ("select", "insert", "update", "close"):
            assert inspect.iscoroutinefunction(getattr(AsyncPostgresAdapter, name)), name


class TestUrlAndIdentifiers:
    """URL rewriting and identifier quoting."""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("postgres://u@h/db", "postgresql+asyncpg://u@h/db"),
            ("postgresql://u@h/db", "postgresql+asyncpg://u@h/db"),
            ("postgresql+asyncpg://u@h/db", "postgresql+asyncpg://u@h/db"),
        ],
    )
    def test_normalize_url(self, url, expected) -> None:
        """Plain postgres URLs get the asyncpg driver."""
        assert normalize_url(url) == expected

    def test_constructor_rewrites_url(self) -> None:
        """The adapter builds its engine from the normalized URL."""
        with patch("schema_wizard.adapters.postgres.create_async_engine_pooled") as create:
            AsyncPostgresAdapter("postgres://u@h/db", pool_size=2)
        create.assert_called_once_with("postgresql+asyncpg://u@h/db", pool_size=2)

    def test_pool_defaults_overridable(self) -> None:
        """Keyword arguments override pool defaults."""
        with patch("schema_wizard.adapters.postgres.create_async_engine") as create:
            create_async_engine_pooled("postgresql+asyncpg://h/db", pool_size=1)
        kwargs = create.call_args.kwargs
        assert kwargs["pool_size"] == 1
        assert kwargs["pool_pre_ping"] is True

    def test_quote_identifier(self) -> None:
        """Plain identifiers are double-quoted; anything else is refused."""
        assert quote_identifier("lot_id") == '"lot_id"'
        for bad in ("lot; drop table lot", 'a"b', "1abc", ""):
            with pytest.raises(ValueError):
                quote_identifier(bad)

    def test_column_list(self) -> None:
        """Star passes through; names are quoted."""
        assert _column_list("*") == "*"
        assert _column_list("id, code") == '"id", "code"'


class TestQueries:
    """SQL built by the adapter, run against a mocked engine."""

    def test_select_binds_filters(self) -> None:
        """Filters become bound parameters."""
        adapter, conn = _adapter_with_engine()
        rows = asyncio.run(adapter.select("lot", "id, code", filters={"code": "L-1"},
                                          order_by="code"))

        query, params = conn.execute.call_args.args
        assert str(query) == (
            'SELECT "id", "code" FROM "lot" WHERE "code" = :p_0 ORDER BY "code"'
        )
        assert params == {"p_0": "L-1"}
        assert rows == [{"id": 1, "code": "L-1"}]

    def test_insert_returns_row(self) -> None:
        """Insert uses RETURNING and yields the created row."""
        adapter, conn = _adapter_with_engine()
        row = asyncio.run(adapter.insert("lot", {"code": "L-1"}))

        query, params = conn.execute.call_args.args
        assert str(query) == 'INSERT INTO "lot" ("code") VALUES (:v_0) RETURNING *'
        assert params == {"v_0": "L-1"}
        assert row == {"id": 1, "code": "L-1"}

    def test_insert_without_values(self) -> None:
        """An empty record inserts defaults."""
        adapter, conn = _adapter_with_engine()
        asyncio.run(adapter.insert("lot", {}))
        query, _ = conn.execute.call_args.args
        assert str(query) == 'INSERT INTO "lot" DEFAULT VALUES RETURNING *'

    def test_update_without_match(self) -> None:
        """No matching row raises ValueError."""
        adapter, conn = _adapter_with_engine()
        conn.execute.return_value.fetchone.return_value = None
        with pytest.raises(ValueError, match="No rows matched"):
            asyncio.run(adapter.update("lot", {"code": "L-2"}, {"id": 9}))

    def test_close_disposes_engine(self) -> None:
        """close() disposes of the pool."""
        adapter, _ = _adapter_with_engine()
        asyncio.run(adapter.close())
        adapter.engine.dispose.assert_awaited_once()


class TestSerialization:
    """Result values become JSON-friendly."""

    def test_values(self) -> None:
        """UUID, dates and decimals are converted."""
        adapter, _ = _adapter_with_engine()
        row = adapter._serialize_row(
            {
                "uid": UUID("12345678-1234-5678-1234-567812345678"),
                "on": date(2026, 5, 1),
                "at": datetime(2026, 5, 1, 12, 30),
                "weight": Decimal("4.5"),
                "code": "L-1",
            }
        )
        assert row == {
            "uid": "12345678-1234-5678-1234-567812345678",
            "on": "2026-05-01",
            "at": "2026-05-01T12:30:00",
            "weight": 4.5,
            "code": "L-1",
        }
