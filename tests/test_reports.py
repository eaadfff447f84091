"""Unit tests for dashboard summaries and row lookup."""

from __future__ import annotations

from warehouse_ledger import data_manager, reports


def _row(document_id, item_name, **fields):
    return data_manager.TransactionRow(document_id=document_id, item_name=item_name, **fields)


def test_summarize_ledger_counts_distinct_values():
    rows = [
        _row("PN0001", "Monitor", partner="An Phát", department="Hồi sức", quantity=2, line_total=30_000_000),
        _row("PN0001", "Máy thở", partner="An Phát", department="Hồi sức", quantity=1, line_total=90_000_000),
        _row("PX0001", "Monitor", partner="Khoa Cấp cứu", department="Cấp cứu", quantity=1),
        _row("Số phiếu", "Tên thiết bị"),
        _row("", "Dòng trống"),
    ]

    stats = reports.summarize_ledger(rows)

    assert stats.total_rows == 3
    assert stats.unique_documents == 2
    assert stats.unique_departments == 2
    assert stats.unique_partners == 2
    assert stats.top_departments[0] == ("Hồi sức", 2)


def test_top_items_only_rank_inbound_rows_by_money():
    rows = [
        _row("PN0001", "Monitor", quantity=2, line_total=30_000_000),
        _row("PN0002", "Máy thở", quantity=0, line_total=90_000_000),
        _row("PX0001", "Máy thở", quantity=5, line_total=999_000_000),
    ]

    stats = reports.summarize_ledger(rows)

    assert [item.item_name for item in stats.top_items] == ["Máy thở", "Monitor"]
    assert stats.top_items[0].quantity == 1
    assert stats.top_items[0].total_money == 90_000_000


def test_recent_activity_lists_latest_documents_first():
    rows = [_row(f"PN{index:04d}", f"Thiết bị {index}", document_date="2024-03-05") for index in range(1, 9)]
    rows += [_row("PN0008", f"Phụ kiện {index}") for index in range(4)]

    stats = reports.summarize_ledger(rows)

    assert len(stats.recent_activity) == reports.RECENT_DOCUMENTS
    latest = stats.recent_activity[0]
    assert latest.document_id == "PN0008"
    assert latest.document_date == "2024-03-05"
    assert latest.total_items == 5
    assert len(latest.items) == reports.RECENT_ITEMS_SHOWN
    assert latest.remaining == 2
    assert stats.recent_activity[-1].document_id == "PN0003"


def test_search_rows_matches_several_columns_case_insensitively():
    rows = [
        _row("PN0001", "Monitor", model_serial="MX450"),
        _row("PX0002", "Máy thở", department="Khoa Hồi sức"),
        _row("PN0003", "Bơm tiêm"),
    ]

    assert [row.document_id for row in reports.search_rows(rows, "mx4")] == ["PN0001"]
    assert [row.document_id for row in reports.search_rows(rows, "hồi sức")] == ["PX0002"]
    assert [row.document_id for row in reports.search_rows(rows, "px0002")] == ["PX0002"]
    assert len(reports.search_rows(rows, "")) == 3
    assert len(reports.search_rows(rows, "", limit=2)) == 2
