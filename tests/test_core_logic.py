"""Unit tests verifying the business logic layer with a mocked data access layer."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import Mock

import pytest

from warehouse_ledger import constants, core_logic, data_manager, ledger
from warehouse_ledger.constants import DocumentClass
from warehouse_ledger.tickets import TicketItem, WarehouseTicket


def _rows(*specs):
    return [
        data_manager.TransactionRow(document_id=document_id, item_name=name, quantity=quantity)
        for document_id, name, quantity in specs
    ]


def _ticket(document_class=DocumentClass.INBOUND, document_id="PN0002", items=None, partner="An Phát"):
    return WarehouseTicket(
        document_class=document_class,
        document_id=document_id,
        document_date="2024-03-05",
        partner=partner,
        items=tuple(items if items is not None else [TicketItem(item_name="Monitor", quantity=1, unit_price=100)]),
    )


@pytest.fixture
def ledger_rows(monkeypatch):
    """Serve a fixed ledger through a mocked iter_transactions."""

    rows = _rows(("PN0001", "Monitor", 3), ("PX0001", "Monitor", 1), ("PN0007", "Máy thở", 1))
    iter_mock = Mock(return_value=rows)
    monkeypatch.setattr(data_manager, "iter_transactions", iter_mock)
    return iter_mock


# ---------------------------------------------------------------------------
# Runtime/context management
# ---------------------------------------------------------------------------


def test_load_runtime_context_returns_context(monkeypatch, tmp_path):
    """load_runtime_context should assemble settings and workbook into a context."""

    config_path = tmp_path / "config.ini"
    parser = Mock(name="parser")
    parsed_settings = data_manager.ConfigSettings(
        data_file=tmp_path / "warehouse.xlsx",
        warehouse_name="Kho",
        schema_version=constants.EXPECTED_SCHEMA_VERSION,
    )
    workbook = Mock(name="workbook")

    find_config_file = Mock(return_value=config_path)
    read_config = Mock(return_value=parser)
    parse_settings = Mock(return_value=parsed_settings)
    open_workbook = Mock(return_value=workbook)

    monkeypatch.setattr(data_manager, "find_config_file", find_config_file)
    monkeypatch.setattr(data_manager, "read_config", read_config)
    monkeypatch.setattr(data_manager, "parse_settings", parse_settings)
    monkeypatch.setattr(data_manager, "open_workbook", open_workbook)

    context = core_logic.load_runtime_context(config_path)

    assert context.settings is parsed_settings
    assert context.workbook is workbook
    find_config_file.assert_called_once_with(config_path)
    read_config.assert_called_once_with(config_path.resolve())
    parse_settings.assert_called_once_with(parser, base_path=config_path.resolve().parent)
    open_workbook.assert_called_once_with(parsed_settings.data_file)


def test_ensure_schema_version_rejects_mismatch(context):
    bad_settings = replace(context.settings, schema_version="0.9")
    bad_context = core_logic.RuntimeContext(settings=bad_settings, workbook=context.workbook)

    with pytest.raises(RuntimeError):
        core_logic.ensure_schema_version(bad_context)


# ---------------------------------------------------------------------------
# Cached reads
# ---------------------------------------------------------------------------


def test_list_transactions_reads_sheet_once(context, ledger_rows):
    first = core_logic.list_transactions(context)
    second = core_logic.list_transactions(context)

    assert first == second
    assert first is not second
    ledger_rows.assert_called_once_with(context.workbook, "DULIEU")


def test_build_snapshot_is_cached_until_invalidated(context, ledger_rows):
    snapshot = core_logic.build_snapshot(context)

    assert snapshot.stock == {"monitor": 2, "máy thở": 1}
    assert core_logic.build_snapshot(context) is snapshot

    core_logic._invalidate_cache(context, "transactions")

    assert core_logic.build_snapshot(context) is not snapshot
    assert ledger_rows.call_count == 2


def test_next_document_number_uses_full_ledger(context, ledger_rows):
    assert core_logic.next_document_number(context, DocumentClass.INBOUND) == "PN0008"
    assert core_logic.next_document_number(context, DocumentClass.OUTBOUND) == "PX0002"


def test_list_available_items_filters_outbound_by_stock(monkeypatch, context, ledger_rows):
    catalog = [data_manager.ItemMetadata(item_code="TB-09", item_name="Đèn mổ")]
    monkeypatch.setattr(data_manager, "iter_catalog", Mock(return_value=catalog))

    inbound = core_logic.list_available_items(context, DocumentClass.INBOUND)
    outbound = core_logic.list_available_items(context, DocumentClass.OUTBOUND)

    assert [item.item_name for item in inbound] == ["Đèn mổ", "Monitor", "Máy thở"]
    assert [item.item_name for item in outbound] == ["Monitor", "Máy thở"]


def test_load_reference_lists_delegates_to_dal(monkeypatch, context):
    lists = data_manager.ReferenceLists(departments=("Hồi sức",))
    reader = Mock(return_value=lists)
    monkeypatch.setattr(data_manager, "read_reference_lists", reader)

    assert core_logic.load_reference_lists(context) is lists
    reader.assert_called_once_with(context.workbook, "DMDC")


# ---------------------------------------------------------------------------
# Ticket validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "ticket",
    [
        _ticket(document_id=""),
        _ticket(partner="  "),
        _ticket(items=[]),
        _ticket(document_id="PX0002"),
        _ticket(items=[TicketItem(item_name=" ", quantity=1)]),
        _ticket(items=[TicketItem(item_name="Monitor", quantity=0)]),
        _ticket(items=[TicketItem(item_name="Monitor", quantity=-2)]),
    ],
)
def test_validate_ticket_rejects_invalid_documents(ticket):
    with pytest.raises(core_logic.BusinessRuleViolation):
        core_logic.validate_ticket(ticket, ledger.reduce_ledger([]))


def test_validate_ticket_rejects_outbound_above_stock(context, ledger_rows):
    ticket = _ticket(
        DocumentClass.OUTBOUND,
        "PX0002",
        items=[TicketItem(item_name="Monitor", quantity=2), TicketItem(item_name="monitor", quantity=1)],
    )

    with pytest.raises(core_logic.BusinessRuleViolation, match="exceeds current stock"):
        core_logic.validate_ticket(ticket, core_logic.build_snapshot(context))


def test_validate_ticket_accepts_outbound_within_stock(context, ledger_rows):
    ticket = _ticket(DocumentClass.OUTBOUND, "PX0002", items=[TicketItem(item_name="Monitor", quantity=2)])

    core_logic.validate_ticket(ticket, core_logic.build_snapshot(context))


# ---------------------------------------------------------------------------
# Recording and loading documents
# ---------------------------------------------------------------------------


def test_record_ticket_appends_rows_and_invalidates_cache(monkeypatch, context, ledger_rows):
    append_mock = Mock()
    monkeypatch.setattr(data_manager, "append_transactions", append_mock)
    core_logic.build_snapshot(context)

    rows = core_logic.record_ticket(context, _ticket(document_id="PN0008"))

    append_mock.assert_called_once_with(context.workbook, rows, "DULIEU")
    assert rows[0].document_id == "PN0008"
    assert rows[0].line_total == 100
    assert "transactions" not in context._cache


def test_record_ticket_does_not_append_invalid_documents(monkeypatch, context, ledger_rows):
    append_mock = Mock()
    monkeypatch.setattr(data_manager, "append_transactions", append_mock)

    with pytest.raises(core_logic.BusinessRuleViolation):
        core_logic.record_ticket(context, _ticket(items=[TicketItem(item_name="Monitor", quantity=0)]))

    append_mock.assert_not_called()


def test_load_ticket_rebuilds_document(context, ledger_rows):
    ticket = core_logic.load_ticket(context, "px0001")

    assert ticket.document_class is DocumentClass.OUTBOUND
    assert ticket.items[0].item_name == "Monitor"


def test_load_ticket_missing_raises(context, ledger_rows):
    with pytest.raises(core_logic.MissingReferenceError):
        core_logic.load_ticket(context, "PN0404")


def test_document_folder_link(settings):
    assert core_logic.document_folder_link(settings, "PN0001") == ""

    configured = replace(settings, documents_folder_url="https://drive.example.org/folders/abc")
    assert core_logic.document_folder_link(configured, " PN 0001 ") == "https://drive.example.org/folders/abc?q=PN%200001"


def test_persist_context_saves_to_configured_file(monkeypatch, context):
    save_mock = Mock()
    monkeypatch.setattr(data_manager, "save_workbook", save_mock)

    core_logic.persist_context(context)

    save_mock.assert_called_once_with(context.workbook, destination=context.settings.data_file)
