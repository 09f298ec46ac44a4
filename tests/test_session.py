"""Tests for the wizard session surface, end to end over the in-memory client."""

import asyncio

import pytest

from conftest import FakeClient
from schema_wizard.schema.models import SchemaConfig
from schema_wizard.store import RecordStore
from schema_wizard.ui.models import UiConfig
from schema_wizard.wizard.persistence import SaveOutcome, SaveStatus
from schema_wizard.wizard.progress import Phase
from schema_wizard.wizard.session import WizardSession


@pytest.fixture
def session(schema, ui, store) -> WizardSession:
    return WizardSession(schema, ui, store)


def _finish_lot(session: WizardSession) -> int:
    outcome = asyncio.run(session.save_section("lot_0", {"code": "L-1", "name": "Spring"}))
    asyncio.run(session.save_section("lot_1", {"harvested_on": "2026-05-01"}))
    return outcome.surrogate_key


class TestSectionSaves:
    """Saving simple sections through the session."""

    def test_save_advances_step(self, session) -> None:
        """A completed save merges the id and moves to the next step."""
        outcome = asyncio.run(session.save_section("lot_0", {"code": "L-1"}))

        assert outcome.status is SaveStatus.COMPLETED
        assert session.fk_context["lot"] == outcome.surrogate_key
        assert session.current_step.id == "lot_1"
        assert session.initial_values("lot_0") == {"code": "L-1"}

    def test_required_field_error_recorded(self, session) -> None:
        """Errors are section-scoped and block the transition."""
        outcome = asyncio.run(session.save_section("lot_0", {"name": "Spring"}))

        assert outcome.field_errors == {"code": "Lot code is required"}
        assert session.section_errors["lot_0"]
        assert session.state.current_step_index == 0
        assert len(session.fk_context) == 0

    def test_only_current_step_saves(self, session) -> None:
        """Saving a step that is not current is refused."""
        outcome = asyncio.run(session.save_section("lot_1", {"harvested_on": "x"}))
        assert not outcome.ok
        assert "not the current step" in outcome.error

    def test_later_sections_update_same_row(self, session, client) -> None:
        """Every root section writes to the lot created by the first."""
        lot_id = _finish_lot(session)

        assert len(client.tables["lot"]) == 1
        assert client.tables["lot"][0] == {
            "id": lot_id,
            "code": "L-1",
            "name": "Spring",
            "harvested_on": "2026-05-01",
        }
        assert session.fk_context["lot"] == lot_id
        assert session.current_step.id == "batch_table"

    def test_write_failure_surfaces_error(self, schema, ui) -> None:
        """A failed write records the error and leaves progress alone."""
        session = WizardSession(schema, ui, RecordStore(FakeClient(fail_writes=True), schema))
        outcome = asyncio.run(session.save_section("lot_0", {"code": "L-1"}))

        assert not outcome.ok
        assert "connection lost" in session.section_errors["lot_0"]
        assert session.state.completed_steps == set()


class TestRepeatedRowStep:
    """A table step made of repeated rows."""

    def test_rows_then_complete(self, session, client) -> None:
        """Rows reference the lot; the step completes with the last batch."""
        lot_id = _finish_lot(session)

        async def rows():
            flow = await session.open_rows("batch_table")
            block = flow.active_block
            assert session.complete_rows("batch_table").status is SaveStatus.FAILED
            saved = await session.save_row("batch_table", block.add_form({"label": "B-1"}))
            assert saved.status is SaveStatus.AWAITING_ROWS
            return session.complete_rows("batch_table")

        outcome = asyncio.run(rows())

        assert outcome.status is SaveStatus.COMPLETED
        assert client.tables["batch"][0]["lot_id"] == lot_id
        assert session.fk_context["batch"] == client.tables["batch"][0]["id"]
        assert session.phase is Phase.COMPLETE

    def test_save_row_without_open_block(self, session) -> None:
        """No block, no row."""
        assert not asyncio.run(session.save_row("batch_table", 1)).ok


class TestNavigation:
    """Event handlers and views."""

    def test_select_existing_record(self, session, client) -> None:
        """Choosing an existing row completes the step like a save."""
        lot_id = client.seed("lot", code="L-9")
        result = session.select_record("lot_0", lot_id)

        assert result.accepted
        assert session.fk_context["lot"] == lot_id
        assert "lot_0" in session.state.completed_steps

    def test_select_refused_for_other_step(self, session) -> None:
        """Only the current step can be completed by selection."""
        assert not session.select_record("batch_table", 1).accepted

    def test_views_track_state(self, session) -> None:
        """Visible, reached and disabled flags after one completion."""
        asyncio.run(session.save_section("lot_0", {"code": "L-1"}))
        views = {v.step.id: v for v in session.views()}

        assert views["lot_0"].disabled and views["lot_0"].completed
        assert views["lot_1"].current and views["lot_1"].visible
        assert views["batch_table"].visible
        assert not views["batch_table"].reached

    def test_edit_completed_step(self, session) -> None:
        """Reopening a completed step makes it current and editable."""
        asyncio.run(session.save_section("lot_0", {"code": "L-1"}))

        assert session.on_go_to_step("lot_0", 0).accepted
        assert session.phase is Phase.EDITING
        assert session.on_go_back().accepted
        assert session.current_step.id == "lot_1"

    def test_reset_only_when_finished(self, session, client) -> None:
        """reset is refused mid-way and clears everything at the end."""
        _finish_lot(session)
        assert not session.on_reset().accepted

        assert session.on_reset(force=True).accepted
        assert len(session.fk_context) == 0
        assert session.saved_values == {}
        assert session.current_step.id == "lot_0"


class TestLookups:
    """Suggestions, browsing, business-key lookups and the summary."""

    def test_options_scoped_once_parent_known(self, session, client) -> None:
        """Batch suggestions follow the selected lot."""
        client.seed("batch", label="B-1", lot_id=1)
        client.seed("batch", label="B-2", lot_id=2)

        unscoped = asyncio.run(session.business_key_options("batch"))
        session.fk_context.merge("lot", 2)
        scoped = asyncio.run(session.business_key_options("batch"))

        assert [o.value for o in unscoped] == ["B-1", "B-2"]
        assert [o.value for o in scoped] == ["B-2"]

    def test_related_rows_show_all(self, session, client) -> None:
        """show_all ignores the scope."""
        client.seed("batch", label="B-1", lot_id=1)
        client.seed("batch", label="B-2", lot_id=2)
        session.fk_context.merge("lot", 1)

        assert len(asyncio.run(session.related_rows("batch"))) == 1
        assert len(asyncio.run(session.related_rows("batch", show_all=True))) == 2

    def test_lookup_found_and_missing(self, session, client) -> None:
        """Misses are recorded as section errors."""
        lot_id = client.seed("lot", code="L-1")

        assert asyncio.run(session.lookup("lot_0", "L-1"))["id"] == lot_id
        assert asyncio.run(session.lookup("lot_0", "L-404")) is None
        assert "L-404" in session.section_errors["lot_0"]

    def test_summary_uses_display_field(self, session) -> None:
        """Each context entry gets its record label."""
        lot_id = _finish_lot(session)
        summary = asyncio.run(session.summary())

        assert summary.context == {"lot": lot_id}
        assert summary.entries[0].label == "L-1"


LOT_WITH_BATCHES_SCHEMA = {
    "sequence": ["lot", "batch"],
    "tables": {
        "lot": {"businessKeys": ["code"], "columns": ["code", "note"]},
        "batch": {
            "businessKeys": ["label"],
            "columns": ["label", "lot_id"],
            "foreignKeys": {"lot_id": "lot"},
        },
    },
}

LOT_WITH_BATCHES_UI = {
    "screens": [
        {
            "table": "lot",
            "sections": [
                {
                    "isBusinessKeySection": True,
                    "fields": [{"name": "code", "required": True}],
                    "nested": {
                        "kind": "repeat",
                        "table": "batch",
                        "sections": [{"fields": [{"name": "label", "required": True}]}],
                    },
                },
                {"fields": [{"name": "note"}]},
            ],
        }
    ]
}


@pytest.fixture
def nested_session(client) -> WizardSession:
    schema = SchemaConfig.model_validate(LOT_WITH_BATCHES_SCHEMA)
    ui = UiConfig.model_validate(LOT_WITH_BATCHES_UI)
    return WizardSession(schema, ui, RecordStore(client, schema))


async def _lot_with_one_batch(session: WizardSession, resaves: int = 0) -> SaveOutcome:
    for _ in range(1 + resaves):
        saved = await session.save_section("lot_0", {"code": "L-1"})
        assert saved.status is SaveStatus.AWAITING_ROWS
    block = session.flow("lot_0").active_block
    await session.save_row("lot_0", block.add_form({"label": "B-1"}))
    return session.complete_rows("lot_0")


class TestNestedRowsSection:
    """A root section with rows nested under it."""

    def test_resave_keeps_open_block(self, nested_session, client) -> None:
        """Submitting the section again does not open a second block."""
        outcome = asyncio.run(_lot_with_one_batch(nested_session, resaves=1))

        assert outcome.status is SaveStatus.COMPLETED
        assert nested_session.current_step.id == "lot_1"
        assert len(client.tables["lot"]) == 1

    def test_resave_blocks_stack_once(self, nested_session) -> None:
        """Only one batch block is open after a repeated save."""

        async def run():
            await nested_session.save_section("lot_0", {"code": "L-1"})
            await nested_session.save_section("lot_0", {"code": "L-1"})
            return [b.table for b in nested_session.flow("lot_0").blocks]

        assert asyncio.run(run()) == ["batch"]

    def test_edit_completes_without_rows(self, nested_session, client) -> None:
        """Saving a reopened step keeps its rows and moves on."""
        asyncio.run(_lot_with_one_batch(nested_session))
        assert nested_session.on_go_to_step("lot_0", 0).accepted

        outcome = asyncio.run(nested_session.save_section("lot_0", {"code": "L-1"}))

        assert outcome.status is SaveStatus.COMPLETED
        assert nested_session.state.current_step_index == 1
        assert nested_session.state.editing_step is None
        assert [b["label"] for b in client.tables["batch"]] == ["B-1"]
