"""Read-only summaries of the ledger for the dashboard and lookup screens."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

from .constants import DocumentClass
from .data_manager import TransactionRow
from .ledger import is_header_row


RECENT_DOCUMENTS = 6
RECENT_ITEMS_SHOWN = 3
TOP_DEPARTMENTS = 5
TOP_ITEMS = 10
SEARCH_LIMIT = 100


@dataclass(frozen=True)
class RecentActivity:
    """One of the latest documents, with a short preview of its items."""

    document_id: str
    document_date: str
    items: Tuple[str, ...]
    remaining: int
    total_items: int


@dataclass(frozen=True)
class ItemValue:
    """Received quantity and money of one item name across inbound rows."""

    item_name: str
    quantity: float
    total_money: float


@dataclass(frozen=True)
class DashboardStats:
    total_rows: int = 0
    unique_documents: int = 0
    unique_departments: int = 0
    unique_partners: int = 0
    recent_activity: Tuple[RecentActivity, ...] = field(default_factory=tuple)
    top_departments: Tuple[Tuple[str, int], ...] = field(default_factory=tuple)
    top_items: Tuple[ItemValue, ...] = field(default_factory=tuple)


def document_rows(rows: Iterable[TransactionRow]) -> List[TransactionRow]:
    """Keep rows that belong to a document, dropping pasted header lines."""
    return [row for row in rows if row.document_id.strip() and not is_header_row(row)]


def summarize_ledger(rows: Iterable[TransactionRow]) -> DashboardStats:
    """Compute the dashboard figures from the ledger.

    Recent activity walks the log backwards, so the first documents listed are
    the most recently appended ones. Item value rankings only consider inbound
    rows; a blank quantity counts as one unit.
    """

    data = document_rows(rows)

    items_by_document: Dict[str, List[str]] = {}
    dates: Dict[str, str] = {}
    for row in reversed(data):
        items_by_document.setdefault(row.document_id, []).append(row.item_name)
        if not dates.get(row.document_id) and row.document_date:
            dates[row.document_id] = row.document_date

    recent: List[RecentActivity] = []
    for document_id, names in list(items_by_document.items())[:RECENT_DOCUMENTS]:
        recent.append(
            RecentActivity(
                document_id=document_id,
                document_date=dates.get(document_id, ""),
                items=tuple(names[:RECENT_ITEMS_SHOWN]),
                remaining=max(len(names) - RECENT_ITEMS_SHOWN, 0),
                total_items=len(names),
            )
        )

    departments = Counter(row.department for row in data if row.department)

    values: Dict[str, List[float]] = {}
    for row in data:
        if DocumentClass.from_document_id(row.document_id) is DocumentClass.OUTBOUND:
            continue
        if not row.item_name:
            continue
        bucket = values.setdefault(row.item_name, [0.0, 0.0])
        bucket[0] += row.quantity or 1.0
        bucket[1] += row.line_total or 0.0

    ranked = sorted(values.items(), key=lambda pair: pair[1][1], reverse=True)[:TOP_ITEMS]

    return DashboardStats(
        total_rows=len(data),
        unique_documents=len({row.document_id for row in data}),
        unique_departments=len(departments),
        unique_partners=len({row.partner for row in data if row.partner}),
        recent_activity=tuple(recent),
        top_departments=tuple(departments.most_common(TOP_DEPARTMENTS)),
        top_items=tuple(ItemValue(name, quantity, money) for name, (quantity, money) in ranked),
    )


def search_rows(rows: Iterable[TransactionRow], term: str, *, limit: int = SEARCH_LIMIT) -> Sequence[TransactionRow]:
    """Case-insensitive lookup over document id, item, model/serial and department."""

    data = document_rows(rows)
    needle = term.strip().lower()
    if needle:
        data = [
            row for row in data
            if needle in row.document_id.lower()
            or needle in row.item_name.lower()
            or needle in row.model_serial.lower()
            or needle in row.department.lower()
        ]
    return data[:limit]
